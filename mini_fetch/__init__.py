"""
mini-fetch
Authenticated HTTP client for Python

Wraps httpx with bearer token attachment, a single coordinated
refresh-and-retry on 401, JSON response parsing, normalized errors and a
non-raising ``(data, error)`` calling convention.
"""

from .client import AsyncFetch, Fetch, create_async_fetch_client, create_fetch_client
from .types import (
    FetchConfig,
    FetchRequest,
    SafeResult,
    TokenStorage,
    LOGOUT_REFRESH_FAILED,
    LOGOUT_REFRESH_EXCEPTION,
)
from .errors import (
    FetchError,
    ConfigurationError,
    is_fetch_error,
    is_auth_error,
)
from .safe import safe_call, safe_call_sync, safe_get, safe_post, safe_put, safe_delete
from .storage import MemoryStorage
from .log import PrefixedLogger

__version__ = "0.1.0"
__all__ = [
    # Clients
    "Fetch",
    "AsyncFetch",
    "create_fetch_client",
    "create_async_fetch_client",
    # Types
    "FetchConfig",
    "FetchRequest",
    "SafeResult",
    "TokenStorage",
    "LOGOUT_REFRESH_FAILED",
    "LOGOUT_REFRESH_EXCEPTION",
    # Errors
    "FetchError",
    "ConfigurationError",
    "is_fetch_error",
    "is_auth_error",
    # Safe calls
    "safe_call",
    "safe_call_sync",
    "safe_get",
    "safe_post",
    "safe_put",
    "safe_delete",
    # Storage
    "MemoryStorage",
    # Logging
    "PrefixedLogger",
]
