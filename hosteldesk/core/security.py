"""
Паролі (bcrypt) і access-токени (JWT).

Токен несе id користувача (sub) і роль на момент входу. Якщо адмін змінив
роль, старий токен більше не приймається (див. api.deps.get_current_user).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt
from passlib.context import CryptContext

ALGORITHM = "HS256"
TOKEN_TYPE = "access"

_pwd_ctx = CryptContext(schemes=["bcrypt"], deprecated="auto")


class InvalidToken(ValueError):
    pass


@dataclass(frozen=True)
class TokenClaims:
    user_id: int
    role: str
    expires_at: datetime


def hash_password(password: str) -> str:
    return _pwd_ctx.hash(password)


def verify_password(plain_password: str, password_hash: str | None) -> bool:
    # користувачі без пароля (імпорт/SSO) увійти паролем не можуть
    if not password_hash:
        return False
    return _pwd_ctx.verify(plain_password, password_hash)


def create_access_token(
    user_id: int,
    role: str,
    *,
    secret: str,
    expires_minutes: int = 60,
    algorithm: str = ALGORITHM,
) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "role": role,
        "type": TOKEN_TYPE,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(minutes=expires_minutes)).timestamp()),
    }
    return jwt.encode(payload, secret, algorithm=algorithm)


def decode_access_token(token: str, secret: str, algorithm: str = ALGORITHM) -> TokenClaims:
    try:
        data = jwt.decode(token, secret, algorithms=[algorithm])
    except JWTError as e:
        raise InvalidToken("invalid_token") from e
    if data.get("type") != TOKEN_TYPE:
        raise InvalidToken("wrong_token_type")
    try:
        return TokenClaims(
            user_id=int(data["sub"]),
            role=str(data["role"]),
            expires_at=datetime.fromtimestamp(int(data["exp"]), tz=timezone.utc),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise InvalidToken("invalid_token_payload") from e
