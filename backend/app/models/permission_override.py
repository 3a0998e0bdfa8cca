"""PermissionOverride: sparse per-user exceptions to a role's flags.

A NULL flag means "inherit from the role". At most one row exists per
(user, organization); writes are merge-updates onto that row.
"""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class PermissionOverride(Base):
    __tablename__ = "permission_overrides"
    __table_args__ = (
        UniqueConstraint(
            "user_id", "organization_id", name="uq_permission_overrides_user_org"
        ),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id"), nullable=False
    )
    organization_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("organizations.id"), nullable=False
    )
    # Role the override was recorded against (informational)
    role_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("roles.id"), nullable=False
    )

    can_view_receive: Mapped[bool | None] = mapped_column(Boolean)
    can_update_receive: Mapped[bool | None] = mapped_column(Boolean)
    can_delete_receive: Mapped[bool | None] = mapped_column(Boolean)
    can_restore_receive: Mapped[bool | None] = mapped_column(Boolean)

    can_view_deliver: Mapped[bool | None] = mapped_column(Boolean)
    can_update_deliver: Mapped[bool | None] = mapped_column(Boolean)
    can_delete_deliver: Mapped[bool | None] = mapped_column(Boolean)
    can_restore_deliver: Mapped[bool | None] = mapped_column(Boolean)

    can_view_return: Mapped[bool | None] = mapped_column(Boolean)
    can_update_return: Mapped[bool | None] = mapped_column(Boolean)
    can_delete_return: Mapped[bool | None] = mapped_column(Boolean)
    can_restore_return: Mapped[bool | None] = mapped_column(Boolean)

    can_view_transfer: Mapped[bool | None] = mapped_column(Boolean)
    can_update_transfer: Mapped[bool | None] = mapped_column(Boolean)
    can_delete_transfer: Mapped[bool | None] = mapped_column(Boolean)
    can_restore_transfer: Mapped[bool | None] = mapped_column(Boolean)

    created_by: Mapped[str | None] = mapped_column(String(36))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_by: Mapped[str | None] = mapped_column(String(36))
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )
