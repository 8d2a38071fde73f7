"""
Bearer token verification.

Tokens are minted by the campus auth service and carry the numeric user id in
`sub`. This package only needs the shared secret to check them;
create_access_token() exists for local tooling and the test suite.
"""
import os
from datetime import datetime, timedelta, timezone
from typing import Optional

from dotenv import load_dotenv
from jose import JWTError, jwt

load_dotenv()

SECRET_KEY = os.getenv("JWT_SECRET_KEY")
if not SECRET_KEY:
    raise ValueError("FATAL ERROR: JWT_SECRET_KEY is not set in the environment!")

ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60"))


def create_access_token(claims: dict, lifetime: Optional[timedelta] = None) -> str:
    expires_at = datetime.now(timezone.utc) + (lifetime or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    return jwt.encode({**claims, "exp": expires_at}, SECRET_KEY, algorithm=ALGORITHM)


def verify_access_token(token: str) -> Optional[dict]:
    """Return the decoded claims, or None if the token is malformed, forged or expired."""
    try:
        return jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        return None


def user_id_from_token(token: str) -> Optional[int]:
    """The buyer id a token was issued for, or None when it can't be trusted."""
    claims = verify_access_token(token) if token else None
    if not claims:
        return None
    try:
        return int(claims.get("sub"))
    except (TypeError, ValueError):
        return None
