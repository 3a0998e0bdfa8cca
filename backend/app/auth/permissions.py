"""Permission flags, role templates, and the pure merge rules for RBAC.

Design:
  - Every role carries the same 16 boolean flags: four action domains
    (receive, deliver, return, transfer) x four operations
    (view, update, delete, restore).
  - ROLE_TEMPLATES is a static, read-only catalog used to seed new
    organization roles. Each template spells out all 16 flags.
  - Per-user overrides are sparse: a flag left as None inherits the
    role's value. `merge_permissions` applies them flag by flag.
  - Warehouse scope is an allow-list where an empty list means
    unrestricted (owners/admins are never scoped explicitly).

Flag naming: `can_<operation>_<domain>`, e.g. `can_delete_transfer`.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from types import MappingProxyType
from typing import Iterable, Mapping

from pydantic import BaseModel, ConfigDict


# ── Permission keys ─────────────────────────────────────────

class PermissionKey(str, enum.Enum):
    CAN_VIEW_RECEIVE = "can_view_receive"
    CAN_UPDATE_RECEIVE = "can_update_receive"
    CAN_DELETE_RECEIVE = "can_delete_receive"
    CAN_RESTORE_RECEIVE = "can_restore_receive"

    CAN_VIEW_DELIVER = "can_view_deliver"
    CAN_UPDATE_DELIVER = "can_update_deliver"
    CAN_DELETE_DELIVER = "can_delete_deliver"
    CAN_RESTORE_DELIVER = "can_restore_deliver"

    CAN_VIEW_RETURN = "can_view_return"
    CAN_UPDATE_RETURN = "can_update_return"
    CAN_DELETE_RETURN = "can_delete_return"
    CAN_RESTORE_RETURN = "can_restore_return"

    CAN_VIEW_TRANSFER = "can_view_transfer"
    CAN_UPDATE_TRANSFER = "can_update_transfer"
    CAN_DELETE_TRANSFER = "can_delete_transfer"
    CAN_RESTORE_TRANSFER = "can_restore_transfer"


PERMISSION_KEYS: tuple[str, ...] = tuple(key.value for key in PermissionKey)


class PermissionSet(BaseModel):
    """Fully specified flag record. Every field is required."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    can_view_receive: bool
    can_update_receive: bool
    can_delete_receive: bool
    can_restore_receive: bool

    can_view_deliver: bool
    can_update_deliver: bool
    can_delete_deliver: bool
    can_restore_deliver: bool

    can_view_return: bool
    can_update_return: bool
    can_delete_return: bool
    can_restore_return: bool

    can_view_transfer: bool
    can_update_transfer: bool
    can_delete_transfer: bool
    can_restore_transfer: bool

    @classmethod
    def deny_all(cls) -> PermissionSet:
        return cls(**{key: False for key in PERMISSION_KEYS})

    @classmethod
    def from_flags(cls, flags: Mapping[str, bool | None]) -> PermissionSet:
        """Build from a partial mapping; missing or None flags are False.

        Raises:
            ValueError if the mapping names a flag that does not exist.
        """
        unknown = set(flags) - set(PERMISSION_KEYS)
        if unknown:
            raise ValueError(f"Unknown permission keys: {', '.join(sorted(unknown))}")
        return cls(**{key: bool(flags.get(key) or False) for key in PERMISSION_KEYS})

    @classmethod
    def from_row(cls, row: object) -> PermissionSet:
        """Read the 16 flag columns off an ORM row."""
        return cls(**{key: bool(getattr(row, key)) for key in PERMISSION_KEYS})

    def get(self, key: PermissionKey | str) -> bool:
        return bool(getattr(self, PermissionKey(key).value, False))

    def granted(self) -> list[str]:
        return [key for key in PERMISSION_KEYS if getattr(self, key)]


class PermissionOverrides(BaseModel):
    """Sparse per-user override. None means inherit from the role."""

    model_config = ConfigDict(extra="forbid")

    can_view_receive: bool | None = None
    can_update_receive: bool | None = None
    can_delete_receive: bool | None = None
    can_restore_receive: bool | None = None

    can_view_deliver: bool | None = None
    can_update_deliver: bool | None = None
    can_delete_deliver: bool | None = None
    can_restore_deliver: bool | None = None

    can_view_return: bool | None = None
    can_update_return: bool | None = None
    can_delete_return: bool | None = None
    can_restore_return: bool | None = None

    can_view_transfer: bool | None = None
    can_update_transfer: bool | None = None
    can_delete_transfer: bool | None = None
    can_restore_transfer: bool | None = None


# ── Role templates ──────────────────────────────────────────

class RoleTemplateKey(str, enum.Enum):
    OWNER = "OWNER"
    ADMIN = "ADMIN"
    AGENT = "AGENT"
    CUSTOMER = "CUSTOMER"
    VIEWER = "VIEWER"


@dataclass(frozen=True)
class RoleTemplate:
    key: RoleTemplateKey
    name: str
    icon: str
    permissions: PermissionSet


ROLE_TEMPLATES: Mapping[RoleTemplateKey, RoleTemplate] = MappingProxyType({
    RoleTemplateKey.OWNER: RoleTemplate(
        key=RoleTemplateKey.OWNER,
        name="Owner",
        icon="crown",
        permissions=PermissionSet(
            can_view_receive=True,
            can_update_receive=True,
            can_delete_receive=True,
            can_restore_receive=True,
            can_view_deliver=True,
            can_update_deliver=True,
            can_delete_deliver=True,
            can_restore_deliver=True,
            can_view_return=True,
            can_update_return=True,
            can_delete_return=True,
            can_restore_return=True,
            can_view_transfer=True,
            can_update_transfer=True,
            can_delete_transfer=True,
            can_restore_transfer=True,
        ),
    ),
    RoleTemplateKey.ADMIN: RoleTemplate(
        key=RoleTemplateKey.ADMIN,
        name="Admin",
        icon="shield",
        permissions=PermissionSet(
            can_view_receive=True,
            can_update_receive=True,
            can_delete_receive=True,
            can_restore_receive=False,
            can_view_deliver=True,
            can_update_deliver=True,
            can_delete_deliver=True,
            can_restore_deliver=False,
            can_view_return=True,
            can_update_return=True,
            can_delete_return=True,
            can_restore_return=False,
            can_view_transfer=True,
            can_update_transfer=True,
            can_delete_transfer=True,
            can_restore_transfer=False,
        ),
    ),
    RoleTemplateKey.AGENT: RoleTemplate(
        key=RoleTemplateKey.AGENT,
        name="Agent",
        icon="user",
        permissions=PermissionSet(
            can_view_receive=True,
            can_update_receive=True,
            can_delete_receive=False,
            can_restore_receive=False,
            can_view_deliver=True,
            can_update_deliver=True,
            can_delete_deliver=False,
            can_restore_deliver=False,
            can_view_return=True,
            can_update_return=True,
            can_delete_return=False,
            can_restore_return=False,
            can_view_transfer=True,
            can_update_transfer=True,
            can_delete_transfer=False,
            can_restore_transfer=False,
        ),
    ),
    RoleTemplateKey.CUSTOMER: RoleTemplate(
        key=RoleTemplateKey.CUSTOMER,
        name="Customer",
        icon="user-circle",
        permissions=PermissionSet(
            can_view_receive=True,
            can_update_receive=False,
            can_delete_receive=False,
            can_restore_receive=False,
            can_view_deliver=True,
            can_update_deliver=False,
            can_delete_deliver=False,
            can_restore_deliver=False,
            can_view_return=True,
            can_update_return=False,
            can_delete_return=False,
            can_restore_return=False,
            can_view_transfer=False,
            can_update_transfer=False,
            can_delete_transfer=False,
            can_restore_transfer=False,
        ),
    ),
    RoleTemplateKey.VIEWER: RoleTemplate(
        key=RoleTemplateKey.VIEWER,
        name="Viewer",
        icon="eye",
        permissions=PermissionSet(
            can_view_receive=True,
            can_update_receive=False,
            can_delete_receive=False,
            can_restore_receive=False,
            can_view_deliver=True,
            can_update_deliver=False,
            can_delete_deliver=False,
            can_restore_deliver=False,
            can_view_return=True,
            can_update_return=False,
            can_delete_return=False,
            can_restore_return=False,
            can_view_transfer=True,
            can_update_transfer=False,
            can_delete_transfer=False,
            can_restore_transfer=False,
        ),
    ),
})

DEFAULT_ROLE_ICON = "user"


def get_template(template_key: str) -> RoleTemplate | None:
    try:
        return ROLE_TEMPLATES[RoleTemplateKey(template_key)]
    except ValueError:
        return None


def list_templates() -> list[dict]:
    """Return the catalog in declaration order."""
    return [
        {
            "template_key": template.key.value,
            "name": template.name,
            "icon": template.icon,
            "permissions": template.permissions,
        }
        for template in ROLE_TEMPLATES.values()
    ]


# ── Resolution ──────────────────────────────────────────────

def merge_permissions(
    role_flags: PermissionSet,
    overrides: Mapping[str, bool | None] | None = None,
) -> PermissionSet:
    """Layer a sparse override on top of a role's flags.

    Each flag is decided on its own: the override value wins only when it
    is not None, so a partial override never blanks the rest of the role.
    """
    if not overrides:
        return role_flags

    merged = {}
    for key in PERMISSION_KEYS:
        value = overrides.get(key)
        merged[key] = getattr(role_flags, key) if value is None else bool(value)
    return PermissionSet(**merged)


def warehouse_allowed(warehouse_ids: Iterable[str], warehouse_id: str) -> bool:
    """Empty scope means every warehouse; otherwise only listed ids."""
    scope = list(warehouse_ids)
    if not scope:
        return True
    return warehouse_id in scope
