"""Override store: per-user permission exceptions layered on a role.

One PermissionOverride row per (user, organization), upserted:
  - Only flags the caller supplied are written.
  - A flag supplied as None resets to "inherit from role".
  - Flags not supplied keep whatever was stored before.
"""

import logging
from datetime import datetime
from typing import Mapping

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.permissions import PERMISSION_KEYS
from app.models.permission_override import PermissionOverride
from app.utils.activity import log_activity

logger = logging.getLogger(__name__)


async def get_permission_overrides(
    db: AsyncSession, user_id: str, organization_id: str
) -> PermissionOverride | None:
    result = await db.execute(
        select(PermissionOverride).where(
            PermissionOverride.user_id == user_id,
            PermissionOverride.organization_id == organization_id,
        )
    )
    return result.scalar_one_or_none()


def override_flags(record: PermissionOverride | None) -> dict[str, bool | None]:
    """Flag map of an override row; {} when there is no row."""
    if record is None:
        return {}
    return {key: getattr(record, key) for key in PERMISSION_KEYS}


async def set_permission_overrides(
    db: AsyncSession,
    user_id: str,
    organization_id: str,
    role_id: str,
    overrides: Mapping[str, bool | None],
    set_by: str,
) -> None:
    unknown = set(overrides) - set(PERMISSION_KEYS)
    if unknown:
        raise ValueError(f"Unknown permission keys: {', '.join(sorted(unknown))}")

    record = await get_permission_overrides(db, user_id, organization_id)

    if record:
        for key, value in overrides.items():
            setattr(record, key, value)
        record.updated_by = set_by
        record.updated_at = datetime.utcnow()
    else:
        record = PermissionOverride(
            user_id=user_id,
            organization_id=organization_id,
            role_id=role_id,
            created_by=set_by,
            **dict(overrides),
        )
        db.add(record)
    await db.flush()

    await log_activity(
        db, set_by, organization_id,
        action="overrides_set", entity_type="permission_override",
        entity_id=record.id, summary=f"Set permission overrides for user {user_id}",
        details={"overrides": dict(overrides), "role_id": role_id},
    )
    logger.info(
        "Set %d permission override(s) for user %s in organization %s",
        len(overrides), user_id, organization_id,
    )
