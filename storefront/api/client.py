"""HTTP client for the marketplace backend.

Every backend call turns into either a typed struct or a StorefrontError;
web routes and bot handlers never build URLs or check status codes.

Each method is a single attempt: no retries, no deduplication. Failures are
raised to the caller, which decides whether to log (fetches) or to tell the
user (mutations).
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx
from pydantic import TypeAdapter, ValidationError

from storefront.config import Settings
from storefront.models import (
    AuthResponse,
    Book,
    BookPayload,
    LoginRequest,
    Order,
    PurchaseRequest,
    RegisterRequest,
)
from storefront.api.errors import BackendError, ResponseFormatError, TransportError

logger = logging.getLogger(__name__)

_BOOKS = TypeAdapter(list[Book])
_ORDERS = TypeAdapter(list[Order])


def create_http_client(
    settings: Settings,
    transport: Optional[httpx.BaseTransport] = None,
) -> httpx.Client:
    """Create the shared connection pool for one process.

    ``transport`` lets tests plug in an ``httpx.MockTransport``.
    """
    return httpx.Client(
        base_url=settings.api_base_url,
        timeout=settings.request_timeout,
        transport=transport,
    )


class MarketplaceClient:
    """Backend calls made on behalf of one session.

    The underlying ``httpx.Client`` is shared; the token is per session.
    """

    def __init__(self, http: httpx.Client, token: Optional[str] = None) -> None:
        self._http = http
        self.token = token

    # --- users ------------------------------------------------------------

    def register(self, req: RegisterRequest) -> AuthResponse:
        data = self._request("POST", "/api/users/register", json=req.to_json())
        return self._parse(AuthResponse.model_validate, data)

    def login(self, req: LoginRequest) -> AuthResponse:
        data = self._request("POST", "/api/users/login", json=req.to_json())
        return self._parse(AuthResponse.model_validate, data)

    # --- books ------------------------------------------------------------

    def list_books(self) -> list[Book]:
        return self._parse(_BOOKS.validate_python, self._request("GET", "/api/books"))

    def list_available_books(self) -> list[Book]:
        return self._parse(_BOOKS.validate_python, self._request("GET", "/api/books/available"))

    def list_seller_books(self, seller_id: int) -> list[Book]:
        data = self._request("GET", f"/api/books/seller/{seller_id}")
        return self._parse(_BOOKS.validate_python, data)

    def get_book(self, book_id: int) -> Book:
        return self._parse(Book.model_validate, self._request("GET", f"/api/books/{book_id}"))

    def create_book(self, payload: BookPayload) -> Book:
        data = self._request("POST", "/api/books", json=payload.to_json())
        return self._parse(Book.model_validate, data)

    def update_book(self, book_id: int, payload: BookPayload) -> Book:
        data = self._request("PUT", f"/api/books/{book_id}", json=payload.to_json())
        return self._parse(Book.model_validate, data)

    def delete_book(self, book_id: int) -> None:
        self._request("DELETE", f"/api/books/{book_id}")

    # --- orders -----------------------------------------------------------

    def purchase(self, req: PurchaseRequest) -> Order:
        data = self._request("POST", "/api/orders/purchase", json=req.to_json())
        return self._parse(Order.model_validate, data)

    def buyer_orders(self, buyer_id: int) -> list[Order]:
        data = self._request("GET", f"/api/orders/buyer/{buyer_id}")
        return self._parse(_ORDERS.validate_python, data)

    def seller_orders(self, seller_id: int) -> list[Order]:
        data = self._request("GET", f"/api/orders/seller/{seller_id}")
        return self._parse(_ORDERS.validate_python, data)

    # --- plumbing ---------------------------------------------------------

    def _request(self, method: str, path: str, json: Optional[dict[str, Any]] = None) -> Any:
        headers = {"Authorization": f"Bearer {self.token}"} if self.token else {}
        try:
            resp = self._http.request(method, path, json=json, headers=headers)
        except httpx.TransportError as e:
            logger.warning("%s %s failed: %s", method, path, e)
            raise TransportError(str(e)) from e

        if resp.is_error:
            err = BackendError.from_response(resp)
            logger.info("%s %s rejected: %s", method, path, err)
            raise err

        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as e:
            raise ResponseFormatError(f"{method} {path}: body is not JSON") from e

    @staticmethod
    def _parse(validate, data: Any):
        try:
            return validate(data)
        except ValidationError as e:
            raise ResponseFormatError(f"unexpected response shape: {e.error_count()} error(s)") from e
