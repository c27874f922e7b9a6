"""
mini-fetch Error Classes

Errors raised by the authenticated client once a request is finalized.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional


DEFAULT_ERROR_CODE = "HTTP_ERROR"


class FetchError(Exception):
    """Error raised for a non-2xx response after any refresh retry."""

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        code: str = DEFAULT_ERROR_CODE,
        data: Any = None,
    ):
        super().__init__(message)
        self.message = message
        self.status = status
        self.code = code
        self.data = data
        self.timestamp = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")

    @property
    def error(self) -> str:
        """Normalized message, kept under the name callers read from the payload."""
        return self.message

    @classmethod
    def from_response(
        cls, status: int, message: str, data: Any = None
    ) -> "FetchError":
        """Create error from a parsed response body."""
        code = None
        if isinstance(data, dict):
            code = data.get("code")
        return cls(
            message=message,
            status=status,
            code=code or DEFAULT_ERROR_CODE,
            data=data,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging/serialization."""
        return {
            "name": self.__class__.__name__,
            "status": self.status,
            "code": self.code,
            "error": self.message,
            "data": self.data,
            "timestamp": self.timestamp,
        }

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(status={self.status!r}, "
            f"code={self.code!r}, message={self.message!r})"
        )


class ConfigurationError(FetchError):
    """Configuration error."""

    def __init__(self, message: str):
        super().__init__(message, None, "CONFIGURATION_ERROR")


def is_fetch_error(error: Any) -> bool:
    """Check if error is a FetchError."""
    return isinstance(error, FetchError)


def is_auth_error(error: Any) -> bool:
    """Check if error is an HTTP 401/403 failure."""
    return isinstance(error, FetchError) and error.status in (401, 403)
