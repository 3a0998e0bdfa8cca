"""Effective-permission resolution for a (user, organization) pair.

Flow:
  1. Load the active OrganizationAccess joined to its Role. No row, or a
     missing / soft-deleted role, resolves to None (no access).
  2. Load the user's active warehouse scope for the organization.
  3. Load the override row, if any.
  4. Merge flag by flag: a non-null override wins, otherwise the role's flag.

Nothing is cached; every call reads the current state. Denial is expressed
as None / False, never as an exception, so callers can tell "not allowed"
apart from storage failures, which propagate unchanged.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.permissions import PermissionKey, PermissionSet, merge_permissions
from app.models.access import OrganizationAccess
from app.models.role import Role
from app.schemas.permissions import EffectivePermissions
from app.services import warehouse_scope
from app.services.overrides import get_permission_overrides, override_flags


async def get_effective_permissions(
    db: AsyncSession,
    user_id: str,
    organization_id: str,
) -> EffectivePermissions | None:
    row = (
        await db.execute(
            select(OrganizationAccess, Role)
            .outerjoin(
                Role,
                (OrganizationAccess.role_id == Role.id) & (Role.is_deleted == False),  # noqa: E712
            )
            .where(
                OrganizationAccess.user_id == user_id,
                OrganizationAccess.organization_id == organization_id,
                OrganizationAccess.is_deleted == False,  # noqa: E712
            )
            .limit(1)
        )
    ).first()
    if row is None:
        return None

    access, role = row
    if role is None:
        return None

    warehouse_ids = await warehouse_scope.list_warehouse_ids(db, user_id, organization_id)
    overrides = await get_permission_overrides(db, user_id, organization_id)

    permissions = merge_permissions(PermissionSet.from_row(role), override_flags(overrides))

    return EffectivePermissions(
        role_id=access.role_id,
        role_name=role.name,
        organization_id=organization_id,
        permissions=permissions,
        warehouse_access=warehouse_ids,
    )


async def has_permission(
    db: AsyncSession,
    user_id: str,
    organization_id: str,
    permission: PermissionKey | str,
) -> bool:
    """True when the resolved flag is set.

    Raises:
        ValueError if `permission` is not a known PermissionKey.
    """
    key = PermissionKey(permission)
    resolved = await get_effective_permissions(db, user_id, organization_id)
    if resolved is None:
        return False
    return resolved.permissions.get(key)


async def has_warehouse_access(
    db: AsyncSession,
    user_id: str,
    organization_id: str,
    warehouse_id: str,
) -> bool:
    """Membership first, then the warehouse allow-list for that organization."""
    if await get_effective_permissions(db, user_id, organization_id) is None:
        return False
    return await warehouse_scope.has_warehouse_access(db, user_id, organization_id, warehouse_id)
