"""Organization membership and warehouse scope store tests."""

import pytest
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.access import OrganizationAccess, WarehouseAccess
from app.services import assignments, roles, warehouse_scope


@pytest.mark.rbac
@pytest.mark.asyncio
class TestOrganizationAssignment:
    """One active membership per (user, organization)."""

    async def test_reassign_updates_existing_row(
        self, db_session: AsyncSession, test_organization, admin_user, member_user,
    ):
        role_a = await roles.create_role_from_template(db_session, "AGENT", test_organization.id, admin_user.id)
        role_b = await roles.create_role_from_template(db_session, "ADMIN", test_organization.id, admin_user.id)

        first = await assignments.assign_user_to_organization(
            db_session, member_user.id, test_organization.id, role_a, admin_user.id,
        )
        second = await assignments.assign_user_to_organization(
            db_session, member_user.id, test_organization.id, role_b, admin_user.id,
        )

        assert first == second
        rows = (
            await db_session.execute(
                select(OrganizationAccess).where(
                    OrganizationAccess.user_id == member_user.id,
                    OrganizationAccess.is_deleted == False,  # noqa: E712
                )
            )
        ).scalars().all()
        assert len(rows) == 1
        assert rows[0].role_id == role_b
        assert rows[0].updated_by == admin_user.id

    async def test_duplicate_active_row_rejected_by_storage(
        self, db_session: AsyncSession, test_organization, admin_user, member_user,
    ):
        role_id = await roles.create_role_from_template(db_session, "AGENT", test_organization.id, admin_user.id)
        await assignments.assign_user_to_organization(
            db_session, member_user.id, test_organization.id, role_id, admin_user.id,
        )

        # A racing writer that skipped the existence check
        db_session.add(OrganizationAccess(
            user_id=member_user.id, organization_id=test_organization.id, role_id=role_id,
        ))
        with pytest.raises(IntegrityError):
            await db_session.flush()

    async def test_remove_then_reassign(
        self, db_session: AsyncSession, test_organization, admin_user, member_user,
    ):
        role_id = await roles.create_role_from_template(db_session, "AGENT", test_organization.id, admin_user.id)
        first = await assignments.assign_user_to_organization(
            db_session, member_user.id, test_organization.id, role_id, admin_user.id,
        )

        assert await assignments.remove_user_from_organization(
            db_session, member_user.id, test_organization.id, admin_user.id,
        ) is True
        assert await assignments.remove_user_from_organization(
            db_session, member_user.id, test_organization.id, admin_user.id,
        ) is False

        second = await assignments.assign_user_to_organization(
            db_session, member_user.id, test_organization.id, role_id, admin_user.id,
        )
        assert second != first

    async def test_list_user_organizations(
        self, db_session: AsyncSession, test_organization, other_organization, admin_user, member_user,
    ):
        agent = await roles.create_role_from_template(db_session, "AGENT", test_organization.id, admin_user.id)
        viewer = await roles.create_role_from_template(db_session, "VIEWER", other_organization.id, admin_user.id)
        await assignments.assign_user_to_organization(
            db_session, member_user.id, test_organization.id, agent, admin_user.id,
        )
        await assignments.assign_user_to_organization(
            db_session, member_user.id, other_organization.id, viewer, admin_user.id,
        )
        await assignments.remove_user_from_organization(
            db_session, member_user.id, other_organization.id, admin_user.id,
        )

        entries = await assignments.list_user_organizations(db_session, member_user.id)

        assert len(entries) == 1
        assert entries[0]["organization_id"] == test_organization.id
        assert entries[0]["role_id"] == agent
        assert entries[0]["role_name"] == "Agent"
        assert entries[0]["organization"]["slug"] == "acme-logistics"


@pytest.mark.rbac
@pytest.mark.asyncio
class TestWarehouseScope:
    """Warehouse allow-lists."""

    async def test_assign_is_idempotent(
        self, db_session: AsyncSession, test_organization, admin_user, member_user, warehouses,
    ):
        first = await warehouse_scope.assign_user_to_warehouse(
            db_session, member_user.id, test_organization.id, warehouses[0].id, admin_user.id,
        )
        second = await warehouse_scope.assign_user_to_warehouse(
            db_session, member_user.id, test_organization.id, warehouses[0].id, admin_user.id,
        )

        assert first == second
        rows = (await db_session.execute(select(WarehouseAccess))).scalars().all()
        assert len(rows) == 1

    async def test_duplicate_active_warehouse_row_rejected_by_storage(
        self, db_session: AsyncSession, test_organization, admin_user, member_user, warehouses,
    ):
        await warehouse_scope.assign_user_to_warehouse(
            db_session, member_user.id, test_organization.id, warehouses[0].id, admin_user.id,
        )

        # A racing writer that skipped the existence check
        db_session.add(WarehouseAccess(
            user_id=member_user.id, organization_id=test_organization.id, warehouse_id=warehouses[0].id,
        ))
        with pytest.raises(IntegrityError):
            await db_session.flush()

    async def test_revoked_warehouse_row_can_be_granted_again(
        self, db_session: AsyncSession, test_organization, admin_user, member_user, warehouses,
    ):
        first = await warehouse_scope.assign_user_to_warehouse(
            db_session, member_user.id, test_organization.id, warehouses[0].id, admin_user.id,
        )
        await warehouse_scope.remove_user_from_warehouse(
            db_session, member_user.id, warehouses[0].id, admin_user.id,
        )

        second = await warehouse_scope.assign_user_to_warehouse(
            db_session, member_user.id, test_organization.id, warehouses[0].id, admin_user.id,
        )
        assert second != first

    async def test_unscoped_user_reaches_every_warehouse(
        self, db_session: AsyncSession, test_organization, member_user, warehouses,
    ):
        for warehouse in warehouses:
            assert await warehouse_scope.has_warehouse_access(
                db_session, member_user.id, test_organization.id, warehouse.id,
            )

    async def test_scoped_user_reaches_only_listed(
        self, db_session: AsyncSession, test_organization, admin_user, member_user, warehouses,
    ):
        await warehouse_scope.assign_user_to_warehouse(
            db_session, member_user.id, test_organization.id, warehouses[1].id, admin_user.id,
        )

        assert await warehouse_scope.list_warehouse_ids(
            db_session, member_user.id, test_organization.id,
        ) == [warehouses[1].id]
        assert await warehouse_scope.has_warehouse_access(
            db_session, member_user.id, test_organization.id, warehouses[1].id,
        ) is True
        assert await warehouse_scope.has_warehouse_access(
            db_session, member_user.id, test_organization.id, warehouses[0].id,
        ) is False

    async def test_revoking_last_warehouse_restores_default_allow(
        self, db_session: AsyncSession, test_organization, admin_user, member_user, warehouses,
    ):
        await warehouse_scope.assign_user_to_warehouse(
            db_session, member_user.id, test_organization.id, warehouses[0].id, admin_user.id,
        )
        revoked = await warehouse_scope.remove_user_from_warehouse(
            db_session, member_user.id, warehouses[0].id, admin_user.id,
        )

        assert revoked == 1
        assert await warehouse_scope.list_warehouse_ids(db_session, member_user.id, test_organization.id) == []
        assert await warehouse_scope.has_warehouse_access(
            db_session, member_user.id, test_organization.id, warehouses[2].id,
        ) is True

    async def test_revoke_limited_to_organization(
        self, db_session: AsyncSession, test_organization, other_organization, admin_user, member_user, warehouses,
    ):
        await warehouse_scope.assign_user_to_warehouse(
            db_session, member_user.id, test_organization.id, warehouses[0].id, admin_user.id,
        )

        revoked = await warehouse_scope.remove_user_from_warehouse(
            db_session, member_user.id, warehouses[0].id, admin_user.id,
            organization_id=other_organization.id,
        )

        assert revoked == 0
        assert await warehouse_scope.list_warehouse_ids(
            db_session, member_user.id, test_organization.id,
        ) == [warehouses[0].id]
