"""
Shared secret for service-to-service and back-office calls: the stock
reserve/release endpoints, order status progression and payment outcome
recording. Sent as the X-Internal-API-Key header.
"""
import os
import secrets
import warnings

from dotenv import load_dotenv

load_dotenv()

_INSECURE_DEFAULT = "insecure-default-change-me"


def _load_internal_key() -> str:
    key = os.getenv("INTERNAL_API_KEY", "")
    if key:
        return key
    # Local runs keep working; production misconfiguration stays visible
    warnings.warn(
        "INTERNAL_API_KEY is not set; back-office endpoints accept the insecure default key.",
        stacklevel=2,
    )
    return _INSECURE_DEFAULT


INTERNAL_API_KEY: str = _load_internal_key()


def verify_api_key(provided_key: str) -> bool:
    """Constant-time comparison against the configured key."""
    if not provided_key:
        return False
    return secrets.compare_digest(provided_key.encode(), INTERNAL_API_KEY.encode())
