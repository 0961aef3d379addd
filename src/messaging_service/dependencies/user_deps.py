from typing import List, Optional
from uuid import UUID

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from pydantic import BaseModel, Field, ValidationError

from ..exceptions import Forbidden, NotAuthenticated
from ..logging_config import logger
from ..security import AuthError, decode_any_jwt, decode_m2m_jwt

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/users/login", auto_error=False)


class UserTokenData(BaseModel):
    """Validated JWT payload of the calling user or service."""

    user_id: UUID = Field(..., alias="sub")
    roles: List[str] = Field(default_factory=list)
    permissions: List[str] = Field(default_factory=list)


def _validate_payload(payload: dict) -> UserTokenData:
    try:
        return UserTokenData.model_validate(payload)
    except ValidationError as e:
        logger.error(f"Token payload failed Pydantic validation: {e}")
        raise NotAuthenticated()


def get_current_user_token_data(token: Optional[str] = Depends(oauth2_scheme)) -> UserTokenData:
    """
    A dependency that decodes and validates a JWT locally, as a user token
    first and as an M2M token second.
    """
    if not token:
        raise NotAuthenticated()
    try:
        payload = decode_any_jwt(token)
    except AuthError as e:
        logger.warning(f"Rejected bearer token: {e}")
        raise NotAuthenticated()
    return _validate_payload(payload)


def get_current_user_id(
    token_data: UserTokenData = Depends(get_current_user_token_data),
) -> UUID:
    """
    Routes that only need the caller's ID depend on this.
    """
    return token_data.user_id


def require_service_token(token: Optional[str] = Depends(oauth2_scheme)) -> UserTokenData:
    """
    Dependency for service-to-service routes: only M2M tokens are accepted.
    """
    if not token:
        raise NotAuthenticated()
    try:
        payload = decode_m2m_jwt(token)
    except AuthError as e:
        logger.warning(f"Rejected service token: {e}")
        raise Forbidden("A service token is required for this operation")
    return _validate_payload(payload)
