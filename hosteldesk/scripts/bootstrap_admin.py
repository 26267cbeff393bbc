from __future__ import annotations

import argparse
import asyncio
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from hosteldesk.core.config import settings
from hosteldesk.core.security import hash_password
from hosteldesk.db.models import HostelBlock, RoleEnum as Role, StaffVertical, User
from hosteldesk.db.session import AsyncSessionLocal, engine
from hosteldesk.services.auth import get_user_by_email


async def _ensure_user(
    db: AsyncSession,
    *,
    email: str,
    role: Role,
    password_plain: str,
    first_name: str,
    last_name: str,
    **profile,
) -> User:
    """
    Якщо користувача немає, створює його.
    Якщо є, оновлює роль і активує (пароль не чіпає).
    """
    email = email.strip().lower()
    user = await get_user_by_email(db, email)

    if user is None:
        user = User(
            email=email,
            password_hash=hash_password(password_plain),
            role=role,
            first_name=first_name,
            last_name=last_name,
            is_active=True,
            **profile,
        )
        db.add(user)
        await db.commit()
        await db.refresh(user)
        print(f"[bootstrap] створено користувача: {email} ({role.value})")
        return user

    if user.role != role or not user.is_active:
        user.role = role
        user.is_active = True
        await db.commit()
        print(f"[bootstrap] оновлено користувача: {email}")
    else:
        print(f"[bootstrap] існує без змін: {email} ({user.role.value})")
    return user


async def _seed(
    db: AsyncSession,
    admin_email: str,
    admin_password: str,
    first_name: str,
    last_name: str,
    make_demo: bool,
) -> None:
    # 1) admin
    await _ensure_user(
        db,
        email=admin_email,
        role=Role.ADMIN,
        password_plain=admin_password,
        first_name=first_name,
        last_name=last_name,
    )

    # 2) демо-персонал і студент
    if make_demo:
        await _ensure_user(
            db,
            email="plumber@example.com",
            role=Role.STAFF,
            password_plain="Staff123!",
            first_name="Demo",
            last_name="Plumber",
            staff_vertical=StaffVertical.PLUMBING,
            staff_id="STF-001",
        )
        await _ensure_user(
            db,
            email="student@example.com",
            role=Role.STUDENT,
            password_plain="Student123!",
            first_name="Demo",
            last_name="Student",
            student_id="STU-001",
            hostel_block=HostelBlock.BLOCK_A,
            room_number="A-101",
        )

    print("[bootstrap] завершено")


async def _run(**kwargs) -> None:
    async with AsyncSessionLocal() as db:
        await _seed(db, **kwargs)
    await engine.dispose()


def _parse_args(argv: Optional[list] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Seed admin та демо-користувачів")
    p.add_argument("email", nargs="?", default=settings.admin_email, help="Email адміністратора")
    p.add_argument("password", nargs="?", default=settings.admin_password, help="Пароль адміністратора")
    p.add_argument("--first-name", default=settings.admin_first_name)
    p.add_argument("--last-name", default=settings.admin_last_name)
    p.add_argument("--demo", dest="demo", action="store_true", help="Створити демо-персонал і студента")
    return p.parse_args(argv)


def main() -> None:
    args = _parse_args()

    if not args.email:
        raise SystemExit("Помилка: не задано email адміністратора (аргумент або ADMIN_EMAIL у .env)")
    if not args.password:
        raise SystemExit("Помилка: не задано пароль адміністратора (аргумент або ADMIN_PASSWORD у .env)")

    asyncio.run(
        _run(
            admin_email=args.email,
            admin_password=args.password,
            first_name=args.first_name,
            last_name=args.last_name,
            make_demo=args.demo,
        )
    )


if __name__ == "__main__":
    main()
