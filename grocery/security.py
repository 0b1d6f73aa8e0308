from datetime import datetime, timedelta, timezone

import jwt

from .config import Settings


def create_access_token(settings: Settings, data: dict, expires_delta: timedelta | None = None):
    to_encode = data.copy()

    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )

    to_encode.update({"exp": expire})

    token = jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)

    return token


def session_token_for(settings: Settings, user) -> str:
    return create_access_token(
        settings,
        data={
            "sub": user.open_id,
            "user_id": user.id,
        },
    )


def decode_access_token(settings: Settings, token: str) -> dict:
    """Raises jwt.ExpiredSignatureError / jwt.InvalidTokenError."""
    return jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
