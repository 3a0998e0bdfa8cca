"""Warehouse scope store: optional per-user warehouse allow-lists.

A user with no active WarehouseAccess rows in an organization may act on
every warehouse of that organization. Adding the first row turns the
user into a scoped user.
"""

import logging
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.permissions import warehouse_allowed
from app.models.access import WarehouseAccess
from app.utils.activity import log_activity

logger = logging.getLogger(__name__)


async def assign_user_to_warehouse(
    db: AsyncSession,
    user_id: str,
    organization_id: str,
    warehouse_id: str,
    assigned_by: str,
) -> str:
    """Add a warehouse to the user's scope; returns the existing id if already there."""
    existing = (
        await db.execute(
            select(WarehouseAccess)
            .where(
                WarehouseAccess.user_id == user_id,
                WarehouseAccess.warehouse_id == warehouse_id,
                WarehouseAccess.is_deleted == False,  # noqa: E712
            )
            .limit(1)
        )
    ).scalar_one_or_none()
    if existing:
        return existing.id

    access = WarehouseAccess(
        user_id=user_id,
        organization_id=organization_id,
        warehouse_id=warehouse_id,
        created_by=assigned_by,
    )
    db.add(access)
    await db.flush()

    await log_activity(
        db, assigned_by, organization_id,
        action="warehouse_assigned", entity_type="warehouse_access",
        entity_id=access.id, summary=f"Scoped user {user_id} to warehouse {warehouse_id}",
    )
    logger.info("Assigned user %s to warehouse %s", user_id, warehouse_id)
    return access.id


async def remove_user_from_warehouse(
    db: AsyncSession,
    user_id: str,
    warehouse_id: str,
    removed_by: str,
    organization_id: str | None = None,
) -> int:
    """Soft-delete the user's active rows for a warehouse.

    When organization_id is given only rows in that organization are
    touched. Returns the number of rows revoked.
    """
    stmt = select(WarehouseAccess).where(
        WarehouseAccess.user_id == user_id,
        WarehouseAccess.warehouse_id == warehouse_id,
        WarehouseAccess.is_deleted == False,  # noqa: E712
    )
    if organization_id is not None:
        stmt = stmt.where(WarehouseAccess.organization_id == organization_id)

    rows = (await db.execute(stmt)).scalars().all()
    now = datetime.utcnow()
    for row in rows:
        row.is_deleted = True
        row.updated_by = removed_by
        row.updated_at = now
        await log_activity(
            db, removed_by, row.organization_id,
            action="warehouse_revoked", entity_type="warehouse_access",
            entity_id=row.id, summary=f"Removed user {user_id} from warehouse {warehouse_id}",
        )
    await db.flush()

    if rows:
        logger.info("Removed user %s from warehouse %s (%d rows)", user_id, warehouse_id, len(rows))
    return len(rows)


async def list_warehouse_ids(
    db: AsyncSession, user_id: str, organization_id: str
) -> list[str]:
    result = await db.execute(
        select(WarehouseAccess.warehouse_id)
        .where(
            WarehouseAccess.user_id == user_id,
            WarehouseAccess.organization_id == organization_id,
            WarehouseAccess.is_deleted == False,  # noqa: E712
        )
        .order_by(WarehouseAccess.created_at)
    )
    return list(result.scalars().all())


async def has_warehouse_access(
    db: AsyncSession,
    user_id: str,
    organization_id: str,
    warehouse_id: str,
) -> bool:
    """Scope check alone, without looking at the organization membership."""
    scope = await list_warehouse_ids(db, user_id, organization_id)
    return warehouse_allowed(scope, warehouse_id)
