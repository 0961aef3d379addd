from __future__ import annotations

from typing import Any, Mapping, Optional

from jose import JWTError, jwt

from .config import settings
from .logging_config import logger


class AuthError(Exception):
    pass


def parse_bearer(headers: Mapping[str, str], query_params: Optional[Mapping[str, Any]] = None) -> Optional[str]:
    """Parse a Bearer token from HTTP headers or query params.

    - Looks for Authorization: Bearer <token>
    - Falls back to query param `token` (browsers cannot set headers on WebSockets)
    """
    auth = headers.get("authorization") or headers.get("Authorization")
    if auth:
        parts = auth.split()
        if len(parts) == 2 and parts[0].lower() == "bearer":
            return parts[1]
    if query_params is not None:
        token = query_params.get("token")  # type: ignore[index]
        if isinstance(token, str) and token:
            return token
    return None


def decode_jwt(
    token: str,
    *,
    secret: str,
    algorithm: str,
    issuer: Optional[str] = None,
    audience: Optional[str] = None,
) -> dict:
    """Decode and verify a JWT.

    If issuer or audience are None/empty, their verification is disabled.
    """
    options = {
        "verify_signature": True,
        "verify_exp": True,
        "verify_iss": bool(issuer),
        "verify_aud": bool(audience),
    }
    try:
        return jwt.decode(
            token,
            secret,
            algorithms=[algorithm],
            audience=audience if audience else None,
            issuer=issuer if issuer else None,
            options=options,
        )
    except JWTError as e:
        raise AuthError(str(e))


def decode_user_jwt(token: str) -> dict:
    return decode_jwt(
        token,
        secret=settings.USER_JWT_SECRET_KEY,
        algorithm=settings.USER_JWT_ALGORITHM,
        issuer=settings.USER_JWT_ISSUER,
        audience=settings.USER_JWT_AUDIENCE,
    )


def decode_m2m_jwt(token: str) -> dict:
    return decode_jwt(
        token,
        secret=settings.M2M_JWT_SECRET_KEY,
        algorithm=settings.M2M_JWT_ALGORITHM,
        issuer=settings.M2M_JWT_ISSUER,
        audience=settings.M2M_JWT_AUDIENCE,
    )


def decode_any_jwt(token: str) -> dict:
    """Try validating as a USER token first, then M2M."""
    try:
        return decode_user_jwt(token)
    except AuthError as user_err:
        logger.debug(f"User JWT validation failed: {user_err}. Trying M2M validation...")
    try:
        return decode_m2m_jwt(token)
    except AuthError as m2m_err:
        logger.debug(f"M2M JWT validation failed: {m2m_err}")
        raise
