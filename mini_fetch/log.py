"""
mini-fetch logging helpers

All package logging goes through the standard ``logging`` module. Callers
may hand in their own logger; it is wrapped once, at construction, into a
``PrefixedLogger`` so scoped sub-loggers are always available.
"""

import logging
from typing import Any, MutableMapping, Optional, Tuple, Union


PACKAGE_LOGGER = "mini_fetch"

LoggerLike = Union[logging.Logger, logging.LoggerAdapter]


class PrefixedLogger(logging.LoggerAdapter):
    """Logger adapter that prepends a bracketed scope to every message."""

    def __init__(self, logger: logging.Logger, prefix: str = "") -> None:
        super().__init__(logger, {})
        self.prefix = prefix

    def process(
        self, msg: Any, kwargs: MutableMapping[str, Any]
    ) -> Tuple[Any, MutableMapping[str, Any]]:
        if self.prefix:
            return f"{self.prefix} {msg}", kwargs
        return msg, kwargs

    def with_prefix(self, prefix: str) -> "PrefixedLogger":
        """Return a sub-logger scoped under ``prefix``."""
        combined = f"{self.prefix} {prefix}" if self.prefix else prefix
        return PrefixedLogger(self.logger, combined)


def get_logger(logger: Optional[LoggerLike] = None, prefix: str = "") -> PrefixedLogger:
    """Resolve a caller-supplied logger (or the package logger) to a PrefixedLogger."""
    if isinstance(logger, PrefixedLogger):
        return logger.with_prefix(prefix) if prefix else logger
    if isinstance(logger, logging.LoggerAdapter):
        base = logger.logger
    elif logger is not None:
        base = logger
    else:
        base = logging.getLogger(PACKAGE_LOGGER)
    return PrefixedLogger(base, prefix)
