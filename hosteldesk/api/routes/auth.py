# hosteldesk/api/routes/auth.py
from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, HTTPException, status

from hosteldesk.api.deps import DBDep, UserDep
from hosteldesk.schemas.auth import AuthenticateIn, AuthenticateOut, UserOut
from hosteldesk.services.auth import authenticate, make_token_for_user, serialize_user

router = APIRouter()
log = logging.getLogger(__name__)


@router.post("/authenticate", response_model=AuthenticateOut)
async def authenticate_user(payload: AuthenticateIn, db: DBDep):
    user = await authenticate(db, email=payload.email, password=payload.password)
    if user is None:
        log.info("auth_failed", extra={"email": payload.email})
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )
    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is deactivated",
        )

    user.last_login_at = datetime.now(timezone.utc)
    await db.commit()
    await db.refresh(user)

    log.info("auth_ok", extra={"user_id": user.id})
    return {
        "authenticated": True,
        "user": UserOut(**serialize_user(user)),
        "token": make_token_for_user(user),
    }


@router.get("/me", response_model=UserOut)
async def me(current: UserDep):
    return UserOut(**serialize_user(current))
