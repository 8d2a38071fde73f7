from fastapi import Depends, HTTPException, Request, status
from fastapi.security import APIKeyHeader, OAuth2PasswordBearer

from .api_key import verify_api_key
from .jwt_handler import user_id_from_token

# tokenUrl is documentation only: login lives in the auth service
bearer_scheme = OAuth2PasswordBearer(tokenUrl="auth/login", auto_error=False)
internal_key_header = APIKeyHeader(name="X-Internal-API-Key", auto_error=False)


async def get_current_user(request: Request, token: str = Depends(bearer_scheme)) -> int:
    """Resolve the buyer id from the bearer token; 401 if absent or invalid."""
    user_id = user_id_from_token(token)
    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    # Read again by the checkout rate limiter
    request.state.user_id = user_id
    return user_id


async def verify_internal_api_key(api_key: str = Depends(internal_key_header)) -> bool:
    if not verify_api_key(api_key):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid or missing X-Internal-API-Key header",
        )
    return True
