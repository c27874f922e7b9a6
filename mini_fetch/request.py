"""
Request building and response parsing helpers.

Pure functions used by both clients: URL resolution, request descriptor
construction, tolerant JSON parsing and error message normalization.
"""

import json
import re
from typing import Any, Dict, Mapping, Optional

from .types import (
    DEFAULT_CREDENTIALS,
    CredentialsMode,
    FetchRequest,
    HttpMethod,
)


ABSOLUTE_URL_REGEX = re.compile(r"^https?://", re.IGNORECASE)

# Field aliases in server validation messages ("body/<field> ...")
FIELD_ALIASES = (
    (re.compile(r"\buser\b"), "User/Email"),
    (re.compile(r"\bpwd\b"), "Password"),
)

SENSITIVE_HEADERS = ("authorization",)


def resolve_url(base_url: str, endpoint: str) -> str:
    """Return ``endpoint`` verbatim if absolute, else appended to ``base_url``."""
    if ABSOLUTE_URL_REGEX.match(endpoint):
        return endpoint
    return f"{base_url}{endpoint}"


def build_request(
    method: HttpMethod,
    url: str,
    endpoint: str,
    body: Any = None,
    headers: Optional[Mapping[str, str]] = None,
    credentials: Optional[CredentialsMode] = None,
    token: Optional[str] = None,
    default_headers: Optional[Mapping[str, str]] = None,
    default_credentials: Optional[CredentialsMode] = None,
) -> FetchRequest:
    """
    Build the request descriptor for one transport call.

    Per-call headers override client defaults. The bearer header is applied
    last so a caller-supplied Authorization header never wins over the
    configured token.
    """
    merged: Dict[str, str] = {**(default_headers or {}), **(headers or {})}

    payload: Optional[str] = None
    if body is not None and method != "GET":
        for key in [k for k in merged if k.lower() == "content-type"]:
            del merged[key]
        merged["Content-Type"] = "application/json"
        payload = json.dumps(body)

    if token:
        for key in [k for k in merged if k.lower() == "authorization"]:
            del merged[key]
        merged["Authorization"] = f"Bearer {token}"

    return FetchRequest(
        method=method,
        url=url,
        endpoint=endpoint,
        headers=merged,
        body=payload,
        credentials=credentials or default_credentials or DEFAULT_CREDENTIALS,
    )


def safe_json(text: str) -> Any:
    """Parse JSON text; empty or malformed text yields None."""
    if not text:
        return None
    try:
        return json.loads(text)
    except ValueError:
        return None


def normalize_error_message(message: str) -> str:
    """Rewrite ``body/<field> ...`` validation messages into readable text."""
    if not message.startswith("body/"):
        return message
    message = message[len("body/"):]
    for pattern, replacement in FIELD_ALIASES:
        message = pattern.sub(replacement, message, count=1)
    return message[:1].upper() + message[1:]


def error_message_from(data: Any, reason: Optional[str] = None) -> str:
    """Pick the most specific message available for a failed response."""
    if isinstance(data, dict):
        for key in ("message", "error"):
            value = data.get(key)
            if value and isinstance(value, str):
                return value
    return reason or "Request failed"


def mask_headers(headers: Mapping[str, str]) -> Dict[str, str]:
    """Copy of ``headers`` with credential values hidden."""
    masked = dict(headers)
    for key in masked:
        if key.lower() in SENSITIVE_HEADERS:
            masked[key] = "Bearer ***"
    return masked
