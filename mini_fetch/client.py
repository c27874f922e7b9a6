"""
mini-fetch Client

Authenticated HTTP clients: bearer token attachment, a single
refresh-and-retry on 401, JSON response parsing and normalized errors.
Provides both a synchronous and an asynchronous client over httpx.
"""

import asyncio
import inspect
import threading
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urlsplit

import httpx

from .errors import ConfigurationError, FetchError
from .log import get_logger
from .request import (
    build_request,
    error_message_from,
    mask_headers,
    normalize_error_message,
    resolve_url,
    safe_json,
)
from .types import (
    CREDENTIALS_MODES,
    LOGOUT_REFRESH_EXCEPTION,
    LOGOUT_REFRESH_FAILED,
    AfterResponseHook,
    BeforeRequestHook,
    CredentialsMode,
    FetchConfig,
    FetchRequest,
    HttpMethod,
    LogoutReason,
    RefreshResult,
    TokenStorage,
)


class _BaseFetch:
    """Configuration, request building and refresh bookkeeping shared by both clients."""

    def __init__(self, config: FetchConfig) -> None:
        self._validate_config(config)

        storage = config.storage
        self._base_url = config.base_url
        self._get_token = config.get_token or (storage.get_token if storage else None)
        self._on_token = config.on_token or (storage.set_token if storage else None)
        self._refresh_fn = config.refresh_fn
        self._on_logout = config.on_logout
        self._credentials = config.credentials
        self._no_refresh_paths = tuple(config.no_refresh_paths)
        self._default_headers = dict(config.headers or {})
        self._timeout = config.timeout
        self._debug = config.debug
        self._logger = get_logger(config.logger, "[Fetch]")

        # Hooks
        self._before_request: List[BeforeRequestHook] = []
        self._after_response: List[AfterResponseHook] = []

    def _validate_config(self, config: FetchConfig) -> None:
        """Validate configuration."""
        if not isinstance(config.base_url, str):
            raise ConfigurationError("base_url must be a string")
        if config.credentials is not None and config.credentials not in CREDENTIALS_MODES:
            raise ConfigurationError(
                f"Invalid credentials mode {config.credentials!r}. "
                f"Expected one of: {', '.join(CREDENTIALS_MODES)}"
            )
        for name in ("get_token", "on_token", "refresh_fn", "on_logout"):
            value = getattr(config, name)
            if value is not None and not callable(value):
                raise ConfigurationError(f"{name} must be callable")
        if config.storage is not None and not isinstance(config.storage, TokenStorage):
            raise ConfigurationError("storage must implement get_token() and set_token()")
        timeout = config.timeout
        if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
            raise ConfigurationError("timeout must be a positive number")

    def _log(self, message: str, *args: Any) -> None:
        """Log debug message."""
        if self._debug:
            self._logger.debug(message, *args)

    # =========================================================================
    # Hooks
    # =========================================================================

    def register_before_request(self, fn: BeforeRequestHook) -> None:
        """Run ``fn(request)`` before every transport call, in registration order."""
        self._before_request.append(fn)

    def register_after_response(self, fn: AfterResponseHook) -> None:
        """Run ``fn(response)`` after every transport call, in registration order."""
        self._after_response.append(fn)

    # =========================================================================
    # Internal Methods
    # =========================================================================

    def _prepare(
        self,
        method: HttpMethod,
        endpoint: str,
        body: Any,
        headers: Optional[Dict[str, str]],
        credentials: Optional[CredentialsMode],
    ) -> FetchRequest:
        """Build a request with the token as it is right now."""
        token = self._get_token() if self._get_token else None
        request = build_request(
            method,
            resolve_url(self._base_url, endpoint),
            endpoint,
            body=body,
            headers=headers,
            credentials=credentials,
            token=token,
            default_headers=self._default_headers,
            default_credentials=self._credentials,
        )
        self._log(
            "Request %s %s headers=%s credentials=%s",
            request.method,
            request.url,
            mask_headers(request.headers),
            request.credentials,
        )
        return request

    def _is_refresh_exempt(self, endpoint: str) -> bool:
        path = urlsplit(endpoint).path
        return any(path.startswith(pattern) for pattern in self._no_refresh_paths)

    def _should_refresh(self, status: int, endpoint: str) -> bool:
        return (
            status == 401
            and self._refresh_fn is not None
            and not self._is_refresh_exempt(endpoint)
        )

    def _fail(self, response: httpx.Response, data: Any) -> FetchError:
        """Finalize a non-2xx response into a FetchError."""
        message = normalize_error_message(
            error_message_from(data, response.reason_phrase)
        )
        error = FetchError.from_response(response.status_code, message, data)
        self._logger.error(
            "%s %s failed: %s (%s)",
            response.request.method,
            response.request.url,
            error.message,
            error.code,
        )
        return error

    def _settle_refresh(self, result: RefreshResult) -> bool:
        """Interpret the refresh function's return value."""
        if isinstance(result, str) and result:
            if self._on_token:
                self._on_token(result)
            self._logger.info("Token refreshed")
            return True
        if result:
            self._logger.info("Token refreshed")
            return True
        self._logger.warning("Refresh function returned %r", result)
        self._drop_session(LOGOUT_REFRESH_FAILED)
        return False

    def _refresh_raised(self, error: Exception) -> bool:
        self._logger.error("Refresh exception: %r", error)
        self._drop_session(LOGOUT_REFRESH_EXCEPTION)
        return False

    def _drop_session(self, reason: LogoutReason) -> None:
        """Clear the token and signal logout."""
        if self._on_token:
            self._on_token(None)
        if self._on_logout:
            self._on_logout(reason)


class _RefreshFlight:
    """A refresh in progress, shared by every thread that hit a 401 meanwhile."""

    def __init__(self) -> None:
        self.done = threading.Event()
        self.outcome = False


class Fetch(_BaseFetch):
    """
    mini-fetch Client - synchronous entry point.

    Safe to share between threads; concurrent 401s are served by a single
    refresh call.
    """

    def __init__(
        self, config: FetchConfig, http_client: Optional[httpx.Client] = None
    ) -> None:
        """Initialize the client; an injected httpx client is not closed by ``close()``."""
        super().__init__(config)
        if inspect.iscoroutinefunction(config.refresh_fn):
            raise ConfigurationError(
                "refresh_fn must be synchronous for Fetch; use AsyncFetch for async refresh"
            )

        self._owns_client = http_client is None
        self._http_client = http_client or httpx.Client(timeout=self._timeout)

        # State
        self._refresh_lock = threading.Lock()
        self._refresh_flight: Optional[_RefreshFlight] = None

        self._log("Fetch initialized (base_url=%s)", self._base_url)

    # =========================================================================
    # Verb Methods
    # =========================================================================

    def get(
        self,
        endpoint: str,
        *,
        headers: Optional[Dict[str, str]] = None,
        credentials: Optional[CredentialsMode] = None,
    ) -> Any:
        """GET ``endpoint`` and return the parsed JSON body."""
        return self._send("GET", endpoint, None, headers, credentials)

    def post(
        self,
        endpoint: str,
        body: Any = None,
        *,
        headers: Optional[Dict[str, str]] = None,
        credentials: Optional[CredentialsMode] = None,
    ) -> Any:
        """POST ``body`` as JSON to ``endpoint``."""
        return self._send("POST", endpoint, body, headers, credentials)

    def put(
        self,
        endpoint: str,
        body: Any = None,
        *,
        headers: Optional[Dict[str, str]] = None,
        credentials: Optional[CredentialsMode] = None,
    ) -> Any:
        """PUT ``body`` as JSON to ``endpoint``."""
        return self._send("PUT", endpoint, body, headers, credentials)

    def delete(
        self,
        endpoint: str,
        body: Any = None,
        *,
        headers: Optional[Dict[str, str]] = None,
        credentials: Optional[CredentialsMode] = None,
    ) -> Any:
        """DELETE ``endpoint``, optionally with a JSON body."""
        return self._send("DELETE", endpoint, body, headers, credentials)

    # =========================================================================
    # Internal Methods
    # =========================================================================

    def _send(
        self,
        method: HttpMethod,
        endpoint: str,
        body: Any,
        headers: Optional[Dict[str, str]],
        credentials: Optional[CredentialsMode],
    ) -> Any:
        """Run one logical request, with at most one retry after a refresh."""
        response, data = self._dispatch(method, endpoint, body, headers, credentials)
        if response.is_success:
            return data

        if self._should_refresh(response.status_code, endpoint):
            self._logger.warning("401 received, attempting refresh...")
            if self._try_refresh():
                response, data = self._dispatch(method, endpoint, body, headers, credentials)
                if response.is_success:
                    return data

        raise self._fail(response, data)

    def _dispatch(
        self,
        method: HttpMethod,
        endpoint: str,
        body: Any,
        headers: Optional[Dict[str, str]],
        credentials: Optional[CredentialsMode],
    ) -> Tuple[httpx.Response, Any]:
        """Build, hook, send and parse a single transport call."""
        request = self._prepare(method, endpoint, body, headers, credentials)
        for hook in self._before_request:
            hook(request)

        self._logger.info("→ %s %s", request.method, request.url)
        response = self._http_client.request(
            request.method,
            request.url,
            headers=request.headers,
            content=request.body,
        )

        for hook in self._after_response:
            hook(response)

        data = safe_json(response.text)
        self._logger.info("← %s %s", response.status_code, endpoint)
        return response, data

    def _try_refresh(self) -> bool:
        """Refresh once for all concurrent callers and return the shared outcome."""
        with self._refresh_lock:
            flight = self._refresh_flight
            leader = flight is None
            if leader:
                flight = self._refresh_flight = _RefreshFlight()

        if not leader:
            self._log("Refresh already in progress, waiting")
            flight.done.wait()
            return flight.outcome

        try:
            flight.outcome = self._run_refresh()
        finally:
            with self._refresh_lock:
                self._refresh_flight = None
            flight.done.set()
        return flight.outcome

    def _run_refresh(self) -> bool:
        try:
            result = self._refresh_fn()
        except Exception as error:
            return self._refresh_raised(error)
        if inspect.isawaitable(result):
            if inspect.iscoroutine(result):
                result.close()
            raise ConfigurationError(
                "refresh_fn returned an awaitable; use AsyncFetch for async refresh"
            )
        return self._settle_refresh(result)

    def close(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._owns_client:
            self._http_client.close()

    def __enter__(self) -> "Fetch":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()


# =============================================================================
# Async Client
# =============================================================================

class AsyncFetch(_BaseFetch):
    """
    mini-fetch Async Client - asynchronous entry point.

    Requests sharing one instance may be in flight concurrently; a 401 on any
    of them while a refresh is running awaits that same refresh.
    """

    def __init__(
        self, config: FetchConfig, http_client: Optional[httpx.AsyncClient] = None
    ) -> None:
        """Initialize the async client; an injected httpx client is not closed by ``close()``."""
        super().__init__(config)

        # HTTP client (created lazily)
        self._owns_client = http_client is None
        self._http_client = http_client

        # State
        self._refresh_task: Optional["asyncio.Future[bool]"] = None

        self._log("AsyncFetch initialized (base_url=%s)", self._base_url)

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self._timeout)
        return self._http_client

    # =========================================================================
    # Verb Methods
    # =========================================================================

    async def get(
        self,
        endpoint: str,
        *,
        headers: Optional[Dict[str, str]] = None,
        credentials: Optional[CredentialsMode] = None,
    ) -> Any:
        """GET ``endpoint`` and return the parsed JSON body."""
        return await self._send("GET", endpoint, None, headers, credentials)

    async def post(
        self,
        endpoint: str,
        body: Any = None,
        *,
        headers: Optional[Dict[str, str]] = None,
        credentials: Optional[CredentialsMode] = None,
    ) -> Any:
        """POST ``body`` as JSON to ``endpoint``."""
        return await self._send("POST", endpoint, body, headers, credentials)

    async def put(
        self,
        endpoint: str,
        body: Any = None,
        *,
        headers: Optional[Dict[str, str]] = None,
        credentials: Optional[CredentialsMode] = None,
    ) -> Any:
        """PUT ``body`` as JSON to ``endpoint``."""
        return await self._send("PUT", endpoint, body, headers, credentials)

    async def delete(
        self,
        endpoint: str,
        body: Any = None,
        *,
        headers: Optional[Dict[str, str]] = None,
        credentials: Optional[CredentialsMode] = None,
    ) -> Any:
        """DELETE ``endpoint``, optionally with a JSON body."""
        return await self._send("DELETE", endpoint, body, headers, credentials)

    # =========================================================================
    # Internal Methods
    # =========================================================================

    async def _send(
        self,
        method: HttpMethod,
        endpoint: str,
        body: Any,
        headers: Optional[Dict[str, str]],
        credentials: Optional[CredentialsMode],
    ) -> Any:
        """Run one logical request, with at most one retry after a refresh."""
        response, data = await self._dispatch(method, endpoint, body, headers, credentials)
        if response.is_success:
            return data

        if self._should_refresh(response.status_code, endpoint):
            self._logger.warning("401 received, attempting refresh...")
            if await self._try_refresh():
                response, data = await self._dispatch(
                    method, endpoint, body, headers, credentials
                )
                if response.is_success:
                    return data

        raise self._fail(response, data)

    async def _dispatch(
        self,
        method: HttpMethod,
        endpoint: str,
        body: Any,
        headers: Optional[Dict[str, str]],
        credentials: Optional[CredentialsMode],
    ) -> Tuple[httpx.Response, Any]:
        """Build, hook, send and parse a single transport call."""
        request = self._prepare(method, endpoint, body, headers, credentials)
        for hook in self._before_request:
            result = hook(request)
            if inspect.isawaitable(result):
                await result

        self._logger.info("→ %s %s", request.method, request.url)
        client = self._get_client()
        response = await client.request(
            request.method,
            request.url,
            headers=request.headers,
            content=request.body,
        )

        for hook in self._after_response:
            result = hook(response)
            if inspect.isawaitable(result):
                await result

        data = safe_json(response.text)
        self._logger.info("← %s %s", response.status_code, endpoint)
        return response, data

    async def _try_refresh(self) -> bool:
        """Refresh once for all concurrent callers and return the shared outcome."""
        if self._refresh_task is None:
            # The task clears the slot itself, before its result is published.
            self._refresh_task = asyncio.ensure_future(self._run_refresh())
        else:
            self._log("Refresh already in progress, waiting")
        return await asyncio.shield(self._refresh_task)

    async def _run_refresh(self) -> bool:
        try:
            try:
                result = self._refresh_fn()
                if inspect.isawaitable(result):
                    result = await result
            except Exception as error:
                return self._refresh_raised(error)
            return self._settle_refresh(result)
        finally:
            self._refresh_task = None

    async def close(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._owns_client and self._http_client:
            await self._http_client.aclose()
            self._http_client = None

    async def __aenter__(self) -> "AsyncFetch":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()


# =============================================================================
# Factory Functions
# =============================================================================

def create_fetch_client(
    config: FetchConfig, http_client: Optional[httpx.Client] = None
) -> Fetch:
    """Create a new synchronous client."""
    return Fetch(config, http_client)


def create_async_fetch_client(
    config: FetchConfig, http_client: Optional[httpx.AsyncClient] = None
) -> AsyncFetch:
    """Create a new asynchronous client."""
    return AsyncFetch(config, http_client)
