"""
mini-fetch Type Definitions

Configuration, request descriptor, result and protocol types shared by the
sync and async clients.
"""

import os
from dataclasses import dataclass, field
from typing import (
    Any,
    Awaitable,
    Callable,
    Dict,
    Generic,
    Iterator,
    Literal,
    Optional,
    Protocol,
    Tuple,
    TypeVar,
    Union,
    runtime_checkable,
)

import httpx

from .log import LoggerLike


T = TypeVar("T")

HttpMethod = Literal["GET", "POST", "PUT", "DELETE"]
CredentialsMode = Literal["omit", "same-origin", "include"]
LogoutReason = Literal["refresh_failed", "refresh_exception"]

CREDENTIALS_MODES = ("omit", "same-origin", "include")
DEFAULT_CREDENTIALS: CredentialsMode = "same-origin"

LOGOUT_REFRESH_FAILED: LogoutReason = "refresh_failed"
LOGOUT_REFRESH_EXCEPTION: LogoutReason = "refresh_exception"

# Endpoints under these path prefixes never trigger a refresh, so login,
# the refresh call itself and session revocation fail on their own 401s.
DEFAULT_NO_REFRESH_PATHS: Tuple[str, ...] = ("/auth/",)


@runtime_checkable
class TokenStorage(Protocol):
    """Token storage interface for custom implementations."""

    def get_token(self) -> Optional[str]:
        """Get the stored access token."""
        ...

    def set_token(self, token: Optional[str]) -> None:
        """Store a new access token, or clear it with None."""
        ...


RefreshResult = Union[str, bool, None]
RefreshFn = Callable[[], Union[RefreshResult, Awaitable[RefreshResult]]]


@dataclass
class FetchRequest:
    """Fully built request, as seen (and possibly mutated) by before-request hooks."""

    method: HttpMethod
    url: str
    endpoint: str
    headers: Dict[str, str] = field(default_factory=dict)
    body: Optional[str] = None
    credentials: CredentialsMode = DEFAULT_CREDENTIALS


BeforeRequestHook = Callable[[FetchRequest], Any]
AfterResponseHook = Callable[[httpx.Response], Any]


@dataclass
class FetchConfig:
    """Client configuration."""

    # Prefix prepended to relative endpoints
    base_url: str = ""
    # Returns the current access token, or None
    get_token: Optional[Callable[[], Optional[str]]] = None
    # Receives a refreshed token, or None when the session is dropped
    on_token: Optional[Callable[[Optional[str]], None]] = None
    # Renews the session; a token string or True means success
    refresh_fn: Optional[RefreshFn] = None
    # Notified with a reason tag when refresh fails for good
    on_logout: Optional[Callable[[LogoutReason], None]] = None
    # Token store used when get_token/on_token are not given
    storage: Optional[TokenStorage] = None
    # Logger to use instead of the package logger
    logger: Optional[LoggerLike] = None
    # Client-level credentials mode
    credentials: Optional[CredentialsMode] = None
    # Path prefixes exempt from 401 refresh handling
    no_refresh_paths: Tuple[str, ...] = DEFAULT_NO_REFRESH_PATHS
    # Headers sent with every request, under per-call headers
    headers: Optional[Dict[str, str]] = None
    # Timeout in seconds for the httpx client created by the library
    timeout: float = 30.0
    # Enable debug logging
    debug: bool = False

    @classmethod
    def from_env(cls, prefix: str = "MINI_FETCH_", **overrides: Any) -> "FetchConfig":
        """Build a config from environment variables (``MINI_FETCH_BASE_URL`` etc.)."""
        values: Dict[str, Any] = {}
        base_url = os.environ.get(f"{prefix}BASE_URL")
        if base_url is not None:
            values["base_url"] = base_url
        credentials = os.environ.get(f"{prefix}CREDENTIALS")
        if credentials:
            values["credentials"] = credentials
        timeout = os.environ.get(f"{prefix}TIMEOUT")
        if timeout:
            values["timeout"] = float(timeout)
        debug = os.environ.get(f"{prefix}DEBUG", "")
        values["debug"] = debug.lower() in ("1", "true", "yes", "on")
        values.update(overrides)
        return cls(**values)


@dataclass(frozen=True)
class SafeResult(Generic[T]):
    """Outcome of a safe call: either data or error is meaningful, never both."""

    data: Optional[T] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def __iter__(self) -> Iterator[Any]:
        yield self.data
        yield self.error
