"""FastAPI dependencies for authentication and authorization.

Dependencies:
  get_current_user             → decode JWT, load user from DB, return User
  require_org_permission(...)  → resolve the caller's permissions in the
                                 `organization_id` path parameter and
                                 require every listed flag
"""

from fastapi import Depends, HTTPException, Path, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.jwt import decode_token
from app.auth.permissions import PermissionKey
from app.database import get_db
from app.middleware.exceptions import PermissionDeniedError
from app.models.user import User
from app.services.resolver import get_effective_permissions

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Decode the bearer token and return the active user it names."""
    payload = decode_token(token)
    user_id: str | None = payload.get("sub")
    if not user_id or payload.get("type") != "access":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if not user or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found or inactive",
        )
    return user


def require_org_permission(*perms: PermissionKey):
    """Dependency factory: the caller must hold ALL listed flags in the organization.

    Usage:
        @router.delete("/organizations/{organization_id}/receives/{receive_id}")
        async def delete_receive(
            user: User = Depends(require_org_permission(PermissionKey.CAN_DELETE_RECEIVE)),
        ):
            ...
    """
    async def _check(
        organization_id: str = Path(...),
        user: User = Depends(get_current_user),
        db: AsyncSession = Depends(get_db),
    ) -> User:
        resolved = await get_effective_permissions(db, user.id, organization_id)
        if resolved is None:
            raise PermissionDeniedError("No access to this organization")

        missing = [p.value for p in perms if not resolved.permissions.get(p)]
        if missing:
            raise PermissionDeniedError(f"Missing permissions: {', '.join(missing)}")
        return user

    return _check
