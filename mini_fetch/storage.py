"""
mini-fetch Token Storage

In-memory token store usable as ``FetchConfig.storage``.
"""

import threading
from typing import Optional


class MemoryStorage:
    """In-memory token storage (default, non-persistent)."""

    def __init__(self, token: Optional[str] = None) -> None:
        self._token = token
        self._lock = threading.Lock()

    def get_token(self) -> Optional[str]:
        """Get the stored access token."""
        with self._lock:
            return self._token

    def set_token(self, token: Optional[str]) -> None:
        """Store a new access token, or clear it with None."""
        with self._lock:
            self._token = token

    def clear(self) -> None:
        """Clear the stored token."""
        self.set_token(None)
