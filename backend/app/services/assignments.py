"""Assignment store: bind users to organizations with a role.

At most one active OrganizationAccess row exists per (user, organization).
Assigning again swaps the role on that row instead of inserting a second
one. The partial unique index `uq_organization_access_active` enforces the
same rule for concurrent writers: the losing insert fails with
IntegrityError and is propagated to the caller.

The role is not checked against the organization here; callers that need
that guarantee must validate it themselves.
"""

import logging
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.access import OrganizationAccess
from app.models.organization import Organization
from app.models.role import Role
from app.utils.activity import log_activity

logger = logging.getLogger(__name__)


async def _active_access(
    db: AsyncSession, user_id: str, organization_id: str
) -> OrganizationAccess | None:
    result = await db.execute(
        select(OrganizationAccess)
        .where(
            OrganizationAccess.user_id == user_id,
            OrganizationAccess.organization_id == organization_id,
            OrganizationAccess.is_deleted == False,  # noqa: E712
        )
        .limit(1)
    )
    return result.scalar_one_or_none()


async def assign_user_to_organization(
    db: AsyncSession,
    user_id: str,
    organization_id: str,
    role_id: str,
    assigned_by: str,
) -> str:
    """Grant (or re-grant) a role in an organization and return the access id."""
    access = await _active_access(db, user_id, organization_id)

    if access:
        previous_role_id = access.role_id
        access.role_id = role_id
        access.updated_by = assigned_by
        access.updated_at = datetime.utcnow()
        await db.flush()
        details = {"role_id": role_id, "previous_role_id": previous_role_id}
        logger.info(
            "Reassigned user %s in organization %s: role %s -> %s",
            user_id, organization_id, previous_role_id, role_id,
        )
    else:
        access = OrganizationAccess(
            user_id=user_id,
            organization_id=organization_id,
            role_id=role_id,
            created_by=assigned_by,
        )
        db.add(access)
        await db.flush()
        details = {"role_id": role_id}
        logger.info(
            "Assigned user %s to organization %s with role %s",
            user_id, organization_id, role_id,
        )

    await log_activity(
        db, assigned_by, organization_id,
        action="organization_assigned", entity_type="organization_access",
        entity_id=access.id, summary=f"Assigned user {user_id}",
        details=details,
    )
    return access.id


async def remove_user_from_organization(
    db: AsyncSession,
    user_id: str,
    organization_id: str,
    removed_by: str,
) -> bool:
    """Soft-delete the active assignment. Returns False if there was none."""
    access = await _active_access(db, user_id, organization_id)
    if not access:
        return False

    access.is_deleted = True
    access.updated_by = removed_by
    access.updated_at = datetime.utcnow()
    await db.flush()

    await log_activity(
        db, removed_by, organization_id,
        action="organization_revoked", entity_type="organization_access",
        entity_id=access.id, summary=f"Removed user {user_id}",
    )
    logger.info("Removed user %s from organization %s", user_id, organization_id)
    return True


async def list_user_organizations(db: AsyncSession, user_id: str) -> list[dict]:
    """Active memberships for a user, for organization-switching screens.

    Each entry carries the role name and organization details; either may
    be None when the referenced row no longer exists.
    """
    result = await db.execute(
        select(OrganizationAccess, Role.name, Organization)
        .outerjoin(Role, OrganizationAccess.role_id == Role.id)
        .outerjoin(Organization, OrganizationAccess.organization_id == Organization.id)
        .where(
            OrganizationAccess.user_id == user_id,
            OrganizationAccess.is_deleted == False,  # noqa: E712
        )
        .order_by(OrganizationAccess.created_at)
    )

    entries = []
    for access, role_name, organization in result.all():
        entries.append({
            "access_id": access.id,
            "organization_id": access.organization_id,
            "role_id": access.role_id,
            "role_name": role_name,
            "organization": (
                {
                    "id": organization.id,
                    "name": organization.name,
                    "slug": organization.slug,
                    "logo_url": organization.logo_url,
                }
                if organization
                else None
            ),
        })
    return entries
