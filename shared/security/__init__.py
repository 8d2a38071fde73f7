from .api_key import verify_api_key
from .dependencies import get_current_user, verify_internal_api_key
from .jwt_handler import create_access_token, user_id_from_token, verify_access_token
from .rate_limiter import CHECKOUT_RATE_LIMIT, limiter, user_id_or_ip

__all__ = [
    "CHECKOUT_RATE_LIMIT",
    "create_access_token",
    "get_current_user",
    "limiter",
    "user_id_from_token",
    "user_id_or_ip",
    "verify_access_token",
    "verify_api_key",
    "verify_internal_api_key",
]
