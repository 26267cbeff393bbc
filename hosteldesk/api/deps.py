from __future__ import annotations

from typing import Annotated, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from hosteldesk.db.session import get_session
from hosteldesk.core.config import settings
from hosteldesk.core.security import InvalidToken, decode_access_token
from hosteldesk.db.models import RoleEnum as Role, User
from hosteldesk.services.permissions import has_permission, role_of

# OAuth2 bearer (для інтеграції з /api/docs)
# Префікс /api задається в main.py, тож вкажемо повний шлях:
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/users/authenticate")

# Тип для DI сесії БД
DBDep = Annotated[AsyncSession, Depends(get_session)]


async def get_current_user(
    db: DBDep,
    token: Annotated[str, Depends(oauth2_scheme)]
) -> User:
    """
    Декодує Bearer JWT, дістає користувача з БД і перевіряє активність.
    Токен, виданий до зміни ролі, відхиляється.
    """
    try:
        claims = decode_access_token(token, settings.jwt_secret, settings.jwt_alg)
    except InvalidToken:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or expired token")

    user = await db.get(User, claims.user_id)
    if not user or not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User inactive or not found")
    if role_of(claims.role) != role_of(user):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Role changed, please sign in again")
    return user


UserDep = Annotated[User, Depends(get_current_user)]


def require_role(*allowed: Role):
    """
    Пускає лише користувачів, чия роль входить у перелік allowed.
    Приклад: @router.get(..., dependencies=[Depends(require_role(Role.ADMIN))])
    """
    allowed_set = set(allowed)

    async def _guard(current: UserDep) -> User:
        if role_of(current) not in allowed_set:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")
        return current

    return _guard


def require_permission(permission: str):
    """
    Пускає користувачів, чия роль має право permission.
    Приклад: Depends(require_permission("view_mappings"))
    """

    async def _guard(current: UserDep) -> User:
        if not has_permission(current, permission):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")
        return current

    return _guard


AdminDep = Annotated[User, Depends(require_role(Role.ADMIN))]


def check_actor(current: User, actor_id: Optional[int]) -> None:
    """
    Старі клієнти передають id виконавця дії у query (?updatedBy=, ?adminId=).
    Джерело ідентичності лише токен: чужий id → 403.
    """
    if actor_id is not None and actor_id != current.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Actor does not match the authenticated user")
