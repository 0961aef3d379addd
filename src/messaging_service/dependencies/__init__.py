from .user_deps import (
    UserTokenData,
    get_current_user_id,
    get_current_user_token_data,
    require_service_token,
)

__all__ = [
    "UserTokenData",
    "get_current_user_id",
    "get_current_user_token_data",
    "require_service_token",
]
