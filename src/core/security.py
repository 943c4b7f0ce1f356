"""JWT helpers for staff sessions."""

from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt

from .config import settings


class TokenDecodeError(Exception):
    """Raised when a JWT cannot be decoded or is invalid."""


def create_access_token(user_id: str, role: str, expires_minutes: int | None = None) -> str:
    """Create a signed JWT identifying a staff user and their role."""
    issued_at = datetime.now(tz=timezone.utc)
    expire_in = expires_minutes or settings.jwt_expires_in_minutes
    claims: dict[str, Any] = {
        "sub": user_id,
        "role": role,
        "iat": issued_at,
        "exp": issued_at + timedelta(minutes=expire_in),
    }
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> dict[str, Any]:
    """Decode and validate a JWT, raising TokenDecodeError on failure."""
    try:
        claims = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except JWTError as exc:  # pragma: no cover - jose already well tested
        raise TokenDecodeError("Invalid token") from exc
    if not claims.get("sub"):
        raise TokenDecodeError("Token has no subject")
    return claims
