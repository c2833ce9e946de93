"""JWT helpers for the planner API.

Tokens are issued at login by the web app with the same AUTH_SECRET_KEY and
carry the profile id in 'sub'. The API only verifies them; create_access_token
mints the same shape for local tooling and tests.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt
from loguru import logger

from ride_planner.config.settings import settings

TOKEN_ISSUER = "ride-planner"


def create_access_token(user_id: str, expires_in: timedelta | None = None) -> str:
    """Mint a signed token for a profile id."""
    if not user_id:
        raise ValueError("user_id cannot be empty")

    issued_at = datetime.now(timezone.utc)
    lifetime = expires_in if expires_in is not None else timedelta(days=settings.auth_token_expire_days)
    claims = {"sub": str(user_id), "iat": issued_at, "exp": issued_at + lifetime, "iss": TOKEN_ISSUER}
    return jwt.encode(claims, settings.auth_secret_key, algorithm=settings.auth_algorithm)


def decode_access_token(token: str) -> str:
    """Verify signature, expiry and issuer, and return the profile id.

    Raises:
        ValueError: If the token cannot be trusted or has no subject
    """
    try:
        claims = jwt.decode(
            token,
            settings.auth_secret_key,
            algorithms=[settings.auth_algorithm],
            issuer=TOKEN_ISSUER,
        )
    except JWTError as e:
        logger.warning(f"Rejected access token: {e}")
        raise ValueError("Invalid or expired token") from e

    subject = claims.get("sub")
    if not subject:
        raise ValueError("Token missing user ID")
    return str(subject)
