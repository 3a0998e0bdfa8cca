"""Role store: create organization roles from templates or explicit flags.

Template roles copy every flag from the catalog entry. Custom roles are
deny-by-default: any flag the caller leaves out is stored as False.
"""

import logging
from typing import Mapping

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.permissions import DEFAULT_ROLE_ICON, PermissionSet, get_template
from app.middleware.exceptions import ResourceNotFoundError
from app.models.role import Role
from app.utils.activity import log_activity

logger = logging.getLogger(__name__)


async def create_role_from_template(
    db: AsyncSession,
    template_key: str,
    organization_id: str,
    created_by: str,
    custom_name: str | None = None,
) -> str:
    """Insert a role seeded from a catalog template and return its id.

    Raises:
        ResourceNotFoundError if the template key is not in the catalog.
    """
    template = get_template(template_key)
    if template is None:
        raise ResourceNotFoundError("Role template", template_key)

    role = Role(
        organization_id=organization_id,
        name=custom_name or template.name,
        icon=template.icon,
        created_by=created_by,
        **template.permissions.model_dump(),
    )
    db.add(role)
    await db.flush()

    await log_activity(
        db, created_by, organization_id,
        action="role_created", entity_type="role", entity_id=role.id,
        summary=f"Created role {role.name} from template {template.key.value}",
        details={"template_key": template.key.value},
    )
    logger.info(
        "Created role %s (%s) for organization %s from template %s",
        role.id, role.name, organization_id, template.key.value,
    )
    return role.id


async def create_custom_role(
    db: AsyncSession,
    name: str,
    organization_id: str,
    permissions: Mapping[str, bool | None],
    created_by: str,
    icon: str | None = None,
) -> str:
    """Insert a role with explicit flags; unspecified flags are False.

    Raises:
        ValueError if `permissions` names a flag that does not exist.
    """
    flags = PermissionSet.from_flags(permissions)

    role = Role(
        organization_id=organization_id,
        name=name,
        icon=icon or DEFAULT_ROLE_ICON,
        created_by=created_by,
        **flags.model_dump(),
    )
    db.add(role)
    await db.flush()

    await log_activity(
        db, created_by, organization_id,
        action="role_created", entity_type="role", entity_id=role.id,
        summary=f"Created custom role {name}",
        details={"granted": flags.granted()},
    )
    logger.info("Created custom role %s (%s) for organization %s", role.id, name, organization_id)
    return role.id


async def list_organization_roles(db: AsyncSession, organization_id: str) -> list[Role]:
    result = await db.execute(
        select(Role)
        .where(
            Role.organization_id == organization_id,
            Role.is_deleted == False,  # noqa: E712
        )
        .order_by(Role.created_at)
    )
    return list(result.scalars().all())


async def get_role(db: AsyncSession, role_id: str) -> Role:
    """Return an active role or raise ResourceNotFoundError."""
    role = (
        await db.execute(
            select(Role).where(Role.id == role_id, Role.is_deleted == False)  # noqa: E712
        )
    ).scalar_one_or_none()
    if not role:
        raise ResourceNotFoundError("Role", role_id)
    return role
