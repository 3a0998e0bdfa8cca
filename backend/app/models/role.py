"""Role: an organization-scoped bundle of the 16 permission flags.

Roles are seeded from a template or created with explicit flags. They are
never edited by the access-control layer; per-user exceptions live in
PermissionOverride instead.
"""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class Role(Base):
    __tablename__ = "roles"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    organization_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("organizations.id"), index=True
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    icon: Mapped[str | None] = mapped_column(String(100))

    # ── Receive ────────────────────────────────────────────────
    can_view_receive: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    can_update_receive: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    can_delete_receive: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    can_restore_receive: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # ── Deliver ────────────────────────────────────────────────
    can_view_deliver: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    can_update_deliver: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    can_delete_deliver: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    can_restore_deliver: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # ── Return ─────────────────────────────────────────────────
    can_view_return: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    can_update_return: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    can_delete_return: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    can_restore_return: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # ── Transfer ───────────────────────────────────────────────
    can_view_transfer: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    can_update_transfer: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    can_delete_transfer: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    can_restore_transfer: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False, index=True)

    created_by: Mapped[str | None] = mapped_column(String(36))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_by: Mapped[str | None] = mapped_column(String(36))
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )
