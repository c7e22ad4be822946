from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import JWTError, jwt

from ..config import settings
from ..exceptions import AuthenticationRequiredError

ACCESS_TOKEN_EXPIRE_MINUTES = 60


def create_access_token(user_id: str, expires_delta: Optional[timedelta] = None) -> str:
    """Mint a token the way the identity provider does (used by tests and seed_data)."""
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode = {"sub": user_id, "exp": expire}
    return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_user_id(token: str) -> str:
    try:
        payload = jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError as e:
        raise AuthenticationRequiredError("Could not validate credentials") from e

    user_id = payload.get("sub")
    if not user_id:
        raise AuthenticationRequiredError("Could not validate credentials")
    return user_id


def require_user_id(user_id: Optional[str]) -> str:
    if not user_id:
        raise AuthenticationRequiredError()
    return user_id
