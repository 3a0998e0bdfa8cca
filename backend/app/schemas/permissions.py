"""Pydantic schemas for role templates, roles, assignments and overrides."""

from datetime import datetime

from pydantic import BaseModel, Field

from app.auth.permissions import PermissionOverrides, PermissionSet


# ── Templates & roles ─────────────────────────────────────────

class RoleTemplateOut(BaseModel):
    template_key: str
    name: str
    icon: str
    permissions: PermissionSet


class CreateRoleFromTemplateRequest(BaseModel):
    template_key: str
    organization_id: str
    custom_name: str | None = Field(None, max_length=100)


class CreateCustomRoleRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    organization_id: str
    icon: str | None = Field(None, max_length=100)
    permissions: PermissionOverrides = Field(default_factory=PermissionOverrides)


class RoleIdOut(BaseModel):
    role_id: str


class RoleOut(BaseModel):
    id: str
    organization_id: str | None
    name: str
    icon: str | None
    permissions: PermissionSet
    is_active: bool
    created_by: str | None = None
    created_at: datetime | None = None

    @classmethod
    def from_role(cls, role) -> "RoleOut":
        return cls(
            id=role.id,
            organization_id=role.organization_id,
            name=role.name,
            icon=role.icon,
            permissions=PermissionSet.from_row(role),
            is_active=role.is_active,
            created_by=role.created_by,
            created_at=role.created_at,
        )


# ── Assignments ───────────────────────────────────────────────

class AssignOrganizationRequest(BaseModel):
    user_id: str
    organization_id: str
    role_id: str


class AssignWarehouseRequest(BaseModel):
    user_id: str
    organization_id: str
    warehouse_id: str


class RemoveWarehouseRequest(BaseModel):
    user_id: str
    warehouse_id: str
    organization_id: str | None = None


class AccessIdOut(BaseModel):
    access_id: str


class OrganizationSummary(BaseModel):
    id: str
    name: str
    slug: str
    logo_url: str | None = None


class UserOrganizationOut(BaseModel):
    access_id: str
    organization_id: str
    role_id: str
    role_name: str | None
    organization: OrganizationSummary | None


# ── Resolution ────────────────────────────────────────────────

class EffectivePermissions(BaseModel):
    """Resolved permissions for one user in one organization.

    `warehouse_access` empty means the user may act on every warehouse.
    """
    role_id: str
    role_name: str
    organization_id: str
    permissions: PermissionSet
    warehouse_access: list[str]


class PermissionCheckOut(BaseModel):
    has_permission: bool


class WarehouseCheckOut(BaseModel):
    has_access: bool


# ── Overrides ─────────────────────────────────────────────────

class SetOverridesRequest(BaseModel):
    user_id: str
    organization_id: str
    role_id: str
    overrides: PermissionOverrides


class OverridesOut(BaseModel):
    success: bool
    message: str


# ── Audit ─────────────────────────────────────────────────────

class ActivityEntry(BaseModel):
    id: str
    user_id: str
    action: str
    entity_type: str
    entity_id: str | None = None
    summary: str | None = None
    details: dict | None = None
    created_at: datetime

    model_config = {"from_attributes": True}
