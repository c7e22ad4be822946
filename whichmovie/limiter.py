from slowapi import Limiter
from slowapi.util import get_remote_address

from .config import settings

# key_func: determines how to identify the caller (IP address by default)
# storage_uri: "memory://" for a single process, the Redis URL when replicated
limiter = Limiter(
    key_func=get_remote_address,
    storage_uri=settings.RATE_LIMIT_STORAGE_URI,
    default_limits=["100/minute"]  # Global default limit
)
