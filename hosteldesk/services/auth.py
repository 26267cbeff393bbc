# hosteldesk/services/auth.py
from __future__ import annotations
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hosteldesk.core.config import settings
from hosteldesk.core.security import verify_password, create_access_token
from hosteldesk.db.models import User


async def get_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    res = await db.execute(select(User).where(User.email == email.strip().lower()))
    return res.scalar_one_or_none()


async def authenticate(db: AsyncSession, *, email: str, password: str) -> Optional[User]:
    user = await get_user_by_email(db, email)
    if not user or not verify_password(password, user.password_hash):
        return None
    return user


def _value(v):
    return getattr(v, "value", v)


def serialize_user(user: User) -> dict:
    return {
        "id": user.id,
        "email": user.email,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "full_name": user.full_name,
        "role": str(_value(user.role)),
        "staff_vertical": _value(user.staff_vertical),
        "staff_id": user.staff_id,
        "student_id": user.student_id,
        "room_number": user.room_number,
        "hostel_block": _value(user.hostel_block),
        "phone": user.phone,
        "is_active": user.is_active,
    }


def make_token_for_user(user: User) -> str:
    return create_access_token(
        user.id,
        str(_value(user.role)),
        secret=settings.jwt_secret,
        expires_minutes=settings.jwt_expires_min,
        algorithm=settings.jwt_alg,
    )
