"""Effective-permission resolution and override store tests."""

import pytest
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.permissions import PERMISSION_KEYS, PermissionKey
from app.models.access import OrganizationAccess
from app.models.permission_override import PermissionOverride
from app.models.role import Role
from app.services import assignments, overrides, resolver, roles, warehouse_scope


@pytest.mark.rbac
@pytest.mark.asyncio
class TestEffectivePermissions:
    """Resolution of role + override + warehouse scope."""

    async def test_no_membership_resolves_to_none(self, db_session: AsyncSession, test_organization, member_user):
        assert await resolver.get_effective_permissions(db_session, member_user.id, test_organization.id) is None
        assert await resolver.has_permission(
            db_session, member_user.id, test_organization.id, PermissionKey.CAN_VIEW_RECEIVE,
        ) is False
        assert await resolver.has_warehouse_access(
            db_session, member_user.id, test_organization.id, "wh-any",
        ) is False

    async def test_missing_role_resolves_to_none(self, db_session: AsyncSession, test_organization, member_user):
        db_session.add(OrganizationAccess(
            user_id=member_user.id, organization_id=test_organization.id, role_id="role-that-does-not-exist",
        ))
        await db_session.flush()

        assert await resolver.get_effective_permissions(db_session, member_user.id, test_organization.id) is None

    async def test_soft_deleted_role_resolves_to_none(
        self, db_session: AsyncSession, test_organization, admin_user, member_user,
    ):
        role_id = await roles.create_role_from_template(db_session, "OWNER", test_organization.id, admin_user.id)
        await assignments.assign_user_to_organization(
            db_session, member_user.id, test_organization.id, role_id, admin_user.id,
        )
        role = await db_session.get(Role, role_id)
        role.is_deleted = True
        await db_session.flush()

        assert await resolver.get_effective_permissions(db_session, member_user.id, test_organization.id) is None

    async def test_revoked_membership_resolves_to_none(
        self, db_session: AsyncSession, test_organization, admin_user, member_user,
    ):
        role_id = await roles.create_role_from_template(db_session, "OWNER", test_organization.id, admin_user.id)
        await assignments.assign_user_to_organization(
            db_session, member_user.id, test_organization.id, role_id, admin_user.id,
        )
        await assignments.remove_user_from_organization(
            db_session, member_user.id, test_organization.id, admin_user.id,
        )

        assert await resolver.get_effective_permissions(db_session, member_user.id, test_organization.id) is None

    async def test_role_flags_without_override(
        self, db_session: AsyncSession, test_organization, admin_user, member_user,
    ):
        role_id = await roles.create_role_from_template(db_session, "ADMIN", test_organization.id, admin_user.id)
        await assignments.assign_user_to_organization(
            db_session, member_user.id, test_organization.id, role_id, admin_user.id,
        )

        resolved = await resolver.get_effective_permissions(db_session, member_user.id, test_organization.id)

        assert resolved.role_id == role_id
        assert resolved.role_name == "Admin"
        assert resolved.organization_id == test_organization.id
        assert resolved.warehouse_access == []
        assert len(resolved.permissions.model_dump()) == 16
        assert resolved.permissions.can_delete_return is True
        assert resolved.permissions.can_restore_return is False

    async def test_membership_is_per_organization(
        self, db_session: AsyncSession, test_organization, other_organization, admin_user, member_user,
    ):
        role_id = await roles.create_role_from_template(db_session, "OWNER", test_organization.id, admin_user.id)
        await assignments.assign_user_to_organization(
            db_session, member_user.id, test_organization.id, role_id, admin_user.id,
        )

        assert await resolver.has_permission(
            db_session, member_user.id, other_organization.id, "can_view_receive",
        ) is False

    async def test_warehouse_scope_is_reported(
        self, db_session: AsyncSession, test_organization, admin_user, member_user, warehouses,
    ):
        role_id = await roles.create_role_from_template(db_session, "AGENT", test_organization.id, admin_user.id)
        await assignments.assign_user_to_organization(
            db_session, member_user.id, test_organization.id, role_id, admin_user.id,
        )
        assert await resolver.has_warehouse_access(
            db_session, member_user.id, test_organization.id, warehouses[2].id,
        ) is True

        await warehouse_scope.assign_user_to_warehouse(
            db_session, member_user.id, test_organization.id, warehouses[0].id, admin_user.id,
        )

        resolved = await resolver.get_effective_permissions(db_session, member_user.id, test_organization.id)
        assert resolved.warehouse_access == [warehouses[0].id]
        assert await resolver.has_warehouse_access(
            db_session, member_user.id, test_organization.id, warehouses[0].id,
        ) is True
        assert await resolver.has_warehouse_access(
            db_session, member_user.id, test_organization.id, warehouses[2].id,
        ) is False

    async def test_unknown_permission_key_raises(self, db_session: AsyncSession, test_organization, member_user):
        with pytest.raises(ValueError):
            await resolver.has_permission(db_session, member_user.id, test_organization.id, "can_fly")


@pytest.mark.rbac
@pytest.mark.asyncio
class TestPermissionOverrides:
    """Per-flag override merge through the store."""

    async def _agent(self, db_session, organization, admin_user, member_user) -> str:
        role_id = await roles.create_role_from_template(db_session, "AGENT", organization.id, admin_user.id)
        await assignments.assign_user_to_organization(
            db_session, member_user.id, organization.id, role_id, admin_user.id,
        )
        return role_id

    async def test_agent_scenario_end_to_end(
        self, db_session: AsyncSession, test_organization, admin_user, member_user,
    ):
        role_id = await self._agent(db_session, test_organization, admin_user, member_user)
        org = test_organization.id

        assert await resolver.has_permission(db_session, member_user.id, org, "can_view_receive") is True
        assert await resolver.has_permission(db_session, member_user.id, org, "can_delete_receive") is False

        await overrides.set_permission_overrides(
            db_session, member_user.id, org, role_id, {"can_delete_receive": True}, admin_user.id,
        )

        assert await resolver.has_permission(db_session, member_user.id, org, "can_delete_receive") is True
        assert await resolver.has_permission(db_session, member_user.id, org, "can_view_receive") is True

    async def test_partial_override_keeps_unrelated_flags(
        self, db_session: AsyncSession, test_organization, admin_user, member_user,
    ):
        role_id = await self._agent(db_session, test_organization, admin_user, member_user)

        await overrides.set_permission_overrides(
            db_session, member_user.id, test_organization.id, role_id,
            {"can_update_receive": False}, admin_user.id,
        )

        resolved = await resolver.get_effective_permissions(db_session, member_user.id, test_organization.id)
        assert resolved.permissions.can_view_receive is True
        assert resolved.permissions.can_update_receive is False
        assert resolved.permissions.can_update_deliver is True

    async def test_upsert_merges_into_single_row(
        self, db_session: AsyncSession, test_organization, admin_user, member_user,
    ):
        role_id = await self._agent(db_session, test_organization, admin_user, member_user)
        org = test_organization.id

        await overrides.set_permission_overrides(
            db_session, member_user.id, org, role_id, {"can_delete_receive": True}, admin_user.id,
        )
        await overrides.set_permission_overrides(
            db_session, member_user.id, org, role_id, {"can_view_transfer": False}, admin_user.id,
        )

        rows = (await db_session.execute(select(PermissionOverride))).scalars().all()
        assert len(rows) == 1
        assert rows[0].can_delete_receive is True
        assert rows[0].can_view_transfer is False
        assert rows[0].can_update_receive is None
        assert rows[0].updated_by == admin_user.id

        resolved = await resolver.get_effective_permissions(db_session, member_user.id, org)
        assert resolved.permissions.can_delete_receive is True
        assert resolved.permissions.can_view_transfer is False

    async def test_second_override_row_rejected_by_storage(
        self, db_session: AsyncSession, test_organization, admin_user, member_user,
    ):
        role_id = await self._agent(db_session, test_organization, admin_user, member_user)
        await overrides.set_permission_overrides(
            db_session, member_user.id, test_organization.id, role_id,
            {"can_delete_receive": True}, admin_user.id,
        )

        # A racing writer that skipped the existence check
        db_session.add(PermissionOverride(
            user_id=member_user.id, organization_id=test_organization.id, role_id=role_id,
            can_delete_receive=False,
        ))
        with pytest.raises(IntegrityError):
            await db_session.flush()

    async def test_explicit_none_resets_to_inherit(
        self, db_session: AsyncSession, test_organization, admin_user, member_user,
    ):
        role_id = await self._agent(db_session, test_organization, admin_user, member_user)
        org = test_organization.id

        await overrides.set_permission_overrides(
            db_session, member_user.id, org, role_id, {"can_view_deliver": False}, admin_user.id,
        )
        assert await resolver.has_permission(db_session, member_user.id, org, "can_view_deliver") is False

        await overrides.set_permission_overrides(
            db_session, member_user.id, org, role_id, {"can_view_deliver": None}, admin_user.id,
        )
        assert await resolver.has_permission(db_session, member_user.id, org, "can_view_deliver") is True

    async def test_override_survives_role_reassignment(
        self, db_session: AsyncSession, test_organization, admin_user, member_user,
    ):
        role_id = await self._agent(db_session, test_organization, admin_user, member_user)
        org = test_organization.id
        await overrides.set_permission_overrides(
            db_session, member_user.id, org, role_id, {"can_view_return": False}, admin_user.id,
        )

        owner_id = await roles.create_role_from_template(db_session, "OWNER", org, admin_user.id)
        await assignments.assign_user_to_organization(db_session, member_user.id, org, owner_id, admin_user.id)

        resolved = await resolver.get_effective_permissions(db_session, member_user.id, org)
        assert resolved.role_name == "Owner"
        granted = resolved.permissions.granted()
        assert "can_view_return" not in granted
        assert len(granted) == len(PERMISSION_KEYS) - 1

    async def test_unknown_override_key_rejected(
        self, db_session: AsyncSession, test_organization, admin_user, member_user,
    ):
        role_id = await self._agent(db_session, test_organization, admin_user, member_user)

        with pytest.raises(ValueError):
            await overrides.set_permission_overrides(
                db_session, member_user.id, test_organization.id, role_id, {"can_fly": True}, admin_user.id,
            )
