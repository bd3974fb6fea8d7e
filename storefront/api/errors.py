"""Error hierarchy for calls against the marketplace backend.

Every failure a storefront action can hit is one of:

- TransportError: the request never completed (connect error, timeout)
- BackendError: the backend answered non-2xx, usually with an ``error`` field
- ResponseFormatError: a 2xx body we could not read into the expected struct
- InvalidInputError: form values rejected before any request was made

Callers show ``user_message(fallback)``: the backend's own message when it
sent one, the generic fallback otherwise.
"""

from __future__ import annotations

from typing import Any

import httpx
from pydantic import ValidationError


class StorefrontError(Exception):
    """Base exception for all storefront failures."""

    code = "STOREFRONT_ERROR"

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message

    def user_message(self, fallback: str) -> str:
        return self.message or fallback


class TransportError(StorefrontError):
    """The backend could not be reached."""

    code = "TRANSPORT_ERROR"

    def user_message(self, fallback: str) -> str:
        # connection details are for the log, not the user
        return fallback


class BackendError(StorefrontError):
    """The backend rejected the request."""

    code = "BACKEND_ERROR"

    def __init__(self, status_code: int, message: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code

    def __str__(self) -> str:
        return f"HTTP {self.status_code}: {self.message or '(no message)'}"

    @classmethod
    def from_response(cls, response: httpx.Response) -> "BackendError":
        return cls(response.status_code, _extract_message(response))


class ResponseFormatError(StorefrontError):
    """A successful response carried an unexpected body."""

    code = "RESPONSE_FORMAT_ERROR"

    def user_message(self, fallback: str) -> str:
        return fallback


class InvalidInputError(StorefrontError):
    """Form values failed validation before submission."""

    code = "INVALID_INPUT"

    @classmethod
    def from_validation(cls, exc: ValidationError) -> "InvalidInputError":
        parts = []
        for err in exc.errors():
            field = ".".join(str(loc) for loc in err["loc"]) or "value"
            parts.append(f"{field}: {err['msg']}")
        return cls("Invalid input - " + "; ".join(parts))


def _extract_message(response: httpx.Response) -> str:
    try:
        body: Any = response.json()
    except ValueError:
        return ""
    if isinstance(body, dict):
        for key in ("error", "message", "detail"):
            value = body.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
    return ""
