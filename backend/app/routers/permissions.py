"""Role templates, organization roles, memberships and permission checks.

Endpoints:
    GET    /api/permissions/templates                                      Role template catalog
    POST   /api/permissions/roles/from-template                            Create role from template
    POST   /api/permissions/roles                                          Create custom role
    GET    /api/permissions/organizations/{organization_id}/roles          List organization roles
    POST   /api/permissions/organizations/assign                           Assign user to organization
    DELETE /api/permissions/organizations/{organization_id}/users/{user_id}  Remove user from organization
    GET    /api/permissions/organizations/{organization_id}/activity       Access-control audit trail
    POST   /api/permissions/warehouses/assign                              Scope user to a warehouse
    POST   /api/permissions/warehouses/remove                              Remove a warehouse from scope
    GET    /api/permissions/users/{user_id}/organizations/{organization_id}  Effective permissions
    GET    /api/permissions/users/{user_id}/organizations                  User's organizations
    GET    /api/permissions/my-organizations                               Caller's organizations
    GET    /api/permissions/check                                          Point permission check
    GET    /api/permissions/check-warehouse                                Point warehouse check
    PUT    /api/permissions/users/overrides                                Set per-user overrides
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.deps import get_current_user
from app.auth.permissions import PermissionKey, list_templates
from app.database import get_db
from app.middleware.exceptions import ResourceNotFoundError
from app.models.activity_log import ActivityLog
from app.models.user import User
from app.schemas.common import PaginatedResponse
from app.schemas.permissions import (
    AccessIdOut,
    ActivityEntry,
    AssignOrganizationRequest,
    AssignWarehouseRequest,
    CreateCustomRoleRequest,
    CreateRoleFromTemplateRequest,
    EffectivePermissions,
    OverridesOut,
    PermissionCheckOut,
    RemoveWarehouseRequest,
    RoleIdOut,
    RoleOut,
    RoleTemplateOut,
    SetOverridesRequest,
    UserOrganizationOut,
    WarehouseCheckOut,
)
from app.services import assignments, overrides, resolver, roles, warehouse_scope

router = APIRouter()


# ══════════════════════════════════════════════════════════════
# TEMPLATES & ROLES
# ══════════════════════════════════════════════════════════════

@router.get("/templates", response_model=list[RoleTemplateOut])
async def get_role_templates(
    user: User = Depends(get_current_user),
):
    return list_templates()


@router.post("/roles/from-template", response_model=RoleIdOut, status_code=status.HTTP_201_CREATED)
async def create_role_from_template(
    body: CreateRoleFromTemplateRequest,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    role_id = await roles.create_role_from_template(
        db, body.template_key, body.organization_id, user.id, body.custom_name,
    )
    return RoleIdOut(role_id=role_id)


@router.post("/roles", response_model=RoleIdOut, status_code=status.HTTP_201_CREATED)
async def create_custom_role(
    body: CreateCustomRoleRequest,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    role_id = await roles.create_custom_role(
        db,
        body.name,
        body.organization_id,
        body.permissions.model_dump(exclude_unset=True),
        user.id,
        body.icon,
    )
    return RoleIdOut(role_id=role_id)


@router.get("/organizations/{organization_id}/roles", response_model=list[RoleOut])
async def get_organization_roles(
    organization_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return [RoleOut.from_role(r) for r in await roles.list_organization_roles(db, organization_id)]


# ══════════════════════════════════════════════════════════════
# ORGANIZATION MEMBERSHIP
# ══════════════════════════════════════════════════════════════

@router.post("/organizations/assign", response_model=AccessIdOut)
async def assign_user_to_organization(
    body: AssignOrganizationRequest,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    # The role must exist; which organization owns it is not checked
    await roles.get_role(db, body.role_id)
    access_id = await assignments.assign_user_to_organization(
        db, body.user_id, body.organization_id, body.role_id, user.id,
    )
    return AccessIdOut(access_id=access_id)


@router.delete(
    "/organizations/{organization_id}/users/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def remove_user_from_organization(
    organization_id: str,
    user_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    removed = await assignments.remove_user_from_organization(
        db, user_id, organization_id, user.id,
    )
    if not removed:
        raise ResourceNotFoundError("Organization access", f"{user_id} in {organization_id}")


@router.get(
    "/organizations/{organization_id}/activity",
    response_model=PaginatedResponse[ActivityEntry],
)
async def list_activity(
    organization_id: str,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    action: str | None = Query(None),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    filters = [ActivityLog.organization_id == organization_id]
    if action:
        filters.append(ActivityLog.action == action)

    total = await db.scalar(select(func.count(ActivityLog.id)).where(*filters)) or 0
    result = await db.execute(
        select(ActivityLog)
        .where(*filters)
        .order_by(ActivityLog.created_at.desc())
        .limit(limit)
        .offset(offset)
    )
    items = [ActivityEntry.model_validate(row) for row in result.scalars().all()]
    return PaginatedResponse(items=items, total=total, limit=limit, offset=offset)


# ══════════════════════════════════════════════════════════════
# WAREHOUSE SCOPE
# ══════════════════════════════════════════════════════════════

@router.post("/warehouses/assign", response_model=AccessIdOut)
async def assign_user_to_warehouse(
    body: AssignWarehouseRequest,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    access_id = await warehouse_scope.assign_user_to_warehouse(
        db, body.user_id, body.organization_id, body.warehouse_id, user.id,
    )
    return AccessIdOut(access_id=access_id)


@router.post("/warehouses/remove", status_code=status.HTTP_204_NO_CONTENT)
async def remove_user_from_warehouse(
    body: RemoveWarehouseRequest,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    await warehouse_scope.remove_user_from_warehouse(
        db, body.user_id, body.warehouse_id, user.id, body.organization_id,
    )


# ══════════════════════════════════════════════════════════════
# RESOLUTION
# ══════════════════════════════════════════════════════════════

@router.get(
    "/users/{user_id}/organizations/{organization_id}",
    response_model=EffectivePermissions | None,
)
async def get_user_permissions(
    user_id: str,
    organization_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return await resolver.get_effective_permissions(db, user_id, organization_id)


@router.get("/check", response_model=PermissionCheckOut)
async def check_permission(
    user_id: str = Query(...),
    organization_id: str = Query(...),
    permission: PermissionKey = Query(...),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    allowed = await resolver.has_permission(db, user_id, organization_id, permission)
    return PermissionCheckOut(has_permission=allowed)


@router.get("/check-warehouse", response_model=WarehouseCheckOut)
async def check_warehouse_access(
    user_id: str = Query(...),
    organization_id: str = Query(...),
    warehouse_id: str = Query(...),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    allowed = await resolver.has_warehouse_access(db, user_id, organization_id, warehouse_id)
    return WarehouseCheckOut(has_access=allowed)


@router.get("/users/{user_id}/organizations", response_model=list[UserOrganizationOut])
async def get_user_organizations(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return await assignments.list_user_organizations(db, user_id)


@router.get("/my-organizations", response_model=list[UserOrganizationOut])
async def get_my_organizations(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return await assignments.list_user_organizations(db, user.id)


# ══════════════════════════════════════════════════════════════
# OVERRIDES
# ══════════════════════════════════════════════════════════════

@router.put("/users/overrides", response_model=OverridesOut)
async def set_permission_overrides(
    body: SetOverridesRequest,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    await roles.get_role(db, body.role_id)
    await overrides.set_permission_overrides(
        db,
        body.user_id,
        body.organization_id,
        body.role_id,
        body.overrides.model_dump(exclude_unset=True),
        user.id,
    )
    return OverridesOut(success=True, message="Permission overrides set")
