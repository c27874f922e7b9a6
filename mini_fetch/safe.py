"""
Safe-call helpers.

Wrap client calls so failures come back as ``SafeResult`` values instead of
exceptions::

    data, error = await safe_get(api, "/me")
    if error:
        ...
"""

from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar, Union

from .client import AsyncFetch, Fetch
from .log import LoggerLike, PrefixedLogger, get_logger
from .types import CredentialsMode, SafeResult


T = TypeVar("T")

Client = Union[Fetch, AsyncFetch]


def _describe(error: Exception) -> str:
    label = getattr(error, "code", None) or getattr(error, "status", None) or "Error"
    message = getattr(error, "message", None) or str(error) or "Unknown error"
    return f"{label}: {message}"


def _succeeded(data: T, logger: PrefixedLogger) -> SafeResult[T]:
    logger.debug("Safe request succeeded.")
    return SafeResult(data=data, error=None)


def _failed(error: Exception, logger: PrefixedLogger) -> SafeResult[Any]:
    logger.error("Safe request failed: %s", _describe(error))
    return SafeResult(data=None, error=error)


async def safe_call(
    action: Callable[[], Awaitable[T]], logger: Optional[LoggerLike] = None
) -> SafeResult[T]:
    """Await ``action()`` and capture its result or exception."""
    scoped = get_logger(logger)
    try:
        data = await action()
    except Exception as error:
        return _failed(error, scoped)
    return _succeeded(data, scoped)


def safe_call_sync(
    action: Callable[[], T], logger: Optional[LoggerLike] = None
) -> SafeResult[T]:
    """Call ``action()`` and capture its result or exception."""
    scoped = get_logger(logger)
    try:
        data = action()
    except Exception as error:
        return _failed(error, scoped)
    return _succeeded(data, scoped)


def _run(
    api: Client,
    action: Callable[[], Any],
    logger: Optional[LoggerLike],
    prefix: str,
) -> Any:
    scoped = get_logger(logger, prefix)
    if isinstance(api, AsyncFetch):
        return safe_call(action, scoped)
    return safe_call_sync(action, scoped)


def safe_get(
    api: Client,
    url: str,
    headers: Optional[Dict[str, str]] = None,
    logger: Optional[LoggerLike] = None,
    credentials: Optional[CredentialsMode] = None,
) -> Any:
    """Safe GET. Returns a SafeResult, or an awaitable of one for AsyncFetch."""
    return _run(
        api,
        lambda: api.get(url, headers=headers, credentials=credentials),
        logger,
        "[SafeGet]",
    )


def safe_post(
    api: Client,
    url: str,
    body: Any = None,
    headers: Optional[Dict[str, str]] = None,
    logger: Optional[LoggerLike] = None,
    credentials: Optional[CredentialsMode] = None,
) -> Any:
    """Safe POST."""
    return _run(
        api,
        lambda: api.post(url, body, headers=headers, credentials=credentials),
        logger,
        "[SafePost]",
    )


def safe_put(
    api: Client,
    url: str,
    body: Any = None,
    headers: Optional[Dict[str, str]] = None,
    logger: Optional[LoggerLike] = None,
    credentials: Optional[CredentialsMode] = None,
) -> Any:
    """Safe PUT."""
    return _run(
        api,
        lambda: api.put(url, body, headers=headers, credentials=credentials),
        logger,
        "[SafePut]",
    )


def safe_delete(
    api: Client,
    url: str,
    body: Any = None,
    headers: Optional[Dict[str, str]] = None,
    logger: Optional[LoggerLike] = None,
    credentials: Optional[CredentialsMode] = None,
) -> Any:
    """Safe DELETE."""
    return _run(
        api,
        lambda: api.delete(url, body, headers=headers, credentials=credentials),
        logger,
        "[SafeDelete]",
    )
