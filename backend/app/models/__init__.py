"""Aggregate model imports for Alembic auto-detection."""

from app.models.organization import Organization  # noqa: F401
from app.models.user import User  # noqa: F401
from app.models.warehouse import Warehouse  # noqa: F401

# Access control
from app.models.role import Role  # noqa: F401
from app.models.access import OrganizationAccess, WarehouseAccess  # noqa: F401
from app.models.permission_override import PermissionOverride  # noqa: F401

# Audit
from app.models.activity_log import ActivityLog  # noqa: F401
