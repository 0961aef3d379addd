"""
Authentication utilities for testing.

Tokens are signed with the test secrets so requests travel through the real
JWT validation dependencies.
"""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

from jose import jwt

from messaging_service.config import settings

# Default test user IDs
USER_A = uuid.UUID("00000000-0000-0000-0000-00000000000a")
USER_B = uuid.UUID("00000000-0000-0000-0000-00000000000b")
USER_C = uuid.UUID("00000000-0000-0000-0000-00000000000c")
SERVICE_ID = uuid.UUID("00000000-0000-0000-0000-0000000000ff")


def create_user_token(
    user_id: uuid.UUID,
    expires_in: timedelta = timedelta(minutes=30),
    roles: Optional[List[str]] = None,
) -> str:
    payload = {
        "sub": str(user_id),
        "iss": settings.USER_JWT_ISSUER,
        "aud": settings.USER_JWT_AUDIENCE,
        "exp": datetime.now(timezone.utc) + expires_in,
        "roles": roles or ["user"],
    }
    return jwt.encode(payload, settings.USER_JWT_SECRET_KEY, algorithm=settings.USER_JWT_ALGORITHM)


def create_service_token(client_id: uuid.UUID = SERVICE_ID) -> str:
    payload = {
        "sub": str(client_id),
        "iss": settings.M2M_JWT_ISSUER,
        "aud": settings.M2M_JWT_AUDIENCE,
        "exp": datetime.now(timezone.utc) + timedelta(minutes=5),
        "roles": ["service"],
    }
    return jwt.encode(payload, settings.M2M_JWT_SECRET_KEY, algorithm=settings.M2M_JWT_ALGORITHM)


def auth_headers(user_id: uuid.UUID) -> Dict[str, str]:
    return {"Authorization": f"Bearer {create_user_token(user_id)}"}


def service_headers(client_id: uuid.UUID = SERVICE_ID) -> Dict[str, str]:
    return {"Authorization": f"Bearer {create_service_token(client_id)}"}
