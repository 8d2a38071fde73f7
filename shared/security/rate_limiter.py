import os

from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from .jwt_handler import user_id_from_token

# Applied to checkout only: every accepted request holds stock row locks
CHECKOUT_RATE_LIMIT = os.getenv("CHECKOUT_RATE_LIMIT", "10/minute")


def user_id_or_ip(request: Request) -> str:
    """
    Key function for SlowAPI. Buckets by buyer when the bearer token is valid,
    so students behind one campus NAT don't share a quota, and by client IP
    otherwise.
    """
    user_id = getattr(request.state, "user_id", None)
    if user_id is None:
        scheme, _, token = request.headers.get("Authorization", "").partition(" ")
        if scheme.lower() == "bearer":
            user_id = user_id_from_token(token)
    if user_id is not None:
        return f"user:{user_id}"
    return f"ip:{get_remote_address(request)}"


limiter = Limiter(
    key_func=user_id_or_ip,
    enabled=os.getenv("RATE_LIMIT_ENABLED", "true").lower() == "true",
)
