from datetime import datetime, timedelta, timezone

import jwt

from doctor_booking.core import config
from doctor_booking.models.user import User

REQUIRED_CLAIMS = ["sub", "exp"]


def create_access_token(subject: str, role: str | None = None, expires_minutes: int | None = None) -> str:
    expire_minutes = expires_minutes or config.JWT_EXPIRES_MINUTES
    issued_at = datetime.now(timezone.utc)
    payload = {"sub": subject, "exp": issued_at + timedelta(minutes=expire_minutes), "iat": issued_at}
    if role is not None:
        payload["role"] = role
    return jwt.encode(payload, config.JWT_SECRET_KEY, algorithm=config.JWT_ALGORITHM)


def create_user_token(user: User, expires_minutes: int | None = None) -> str:
    """Token for a patient or doctor account, carrying its e-mail and role."""
    return create_access_token(user.email, role=user.role, expires_minutes=expires_minutes)


def decode_access_token(token: str) -> dict:
    return jwt.decode(
        token,
        config.JWT_SECRET_KEY,
        algorithms=[config.JWT_ALGORITHM],
        options={"require": REQUIRED_CLAIMS},
    )
