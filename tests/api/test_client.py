"""MarketplaceClient tests - wire shapes and error mapping."""

import httpx
import pytest

from storefront.api.client import MarketplaceClient
from storefront.api.errors import BackendError, ResponseFormatError, TransportError
from storefront.models import BookPayload, LoginRequest, PurchaseRequest, RegisterRequest, Role


def _client(handler, token=None):
    http = httpx.Client(base_url="http://backend.test", transport=httpx.MockTransport(handler))
    return MarketplaceClient(http, token)


def test_register_sends_name_and_role(api, backend):
    auth = api.register(RegisterRequest(name="Ann", email="ann@x.io", password="pw", role=Role.SELLER))

    method, path, body = backend.calls[0]
    assert (method, path) == ("POST", "/api/users/register")
    assert body == {"name": "Ann", "email": "ann@x.io", "password": "pw", "role": "SELLER"}
    assert auth.user.role is Role.SELLER
    assert auth.token


def test_login_rejected_raises_backend_error(api, buyer):
    with pytest.raises(BackendError) as exc:
        api.login(LoginRequest(email="bea@mail.io", password="nope"))

    assert exc.value.status_code == 400
    assert exc.value.user_message("Authentication failed") == "Invalid credentials"
    assert str(exc.value) == "HTTP 400: Invalid credentials"


def test_user_accepts_username_alias():
    def handler(request):
        return httpx.Response(200, json={"token": "t", "user": {"id": 1, "username": "old", "role": "BUYER"}})

    auth = _client(handler).login(LoginRequest(email="a@b.c", password="p"))

    assert auth.user.name == "old"


def test_no_authorization_header_without_token():
    seen = {}

    def handler(request):
        seen.update(request.headers)
        return httpx.Response(200, json=[])

    _client(handler).list_books()

    assert "authorization" not in seen


def test_bearer_header_with_token():
    seen = {}

    def handler(request):
        seen.update(request.headers)
        return httpx.Response(200, json=[])

    _client(handler, token="abc").list_available_books()

    assert seen["authorization"] == "Bearer abc"


def test_book_payload_omits_empty_optionals(api, backend, seller):
    api.create_book(BookPayload(title="T", author="A", isbn="1", price="", quantity=""))

    assert backend.calls[0][2] == {"title": "T", "author": "A", "isbn": "1"}


def test_delete_with_empty_body_returns_none(api, backend, seller):
    book = backend.add_book("Dune", seller["id"])

    assert api.delete_book(book["id"]) is None
    assert book["id"] not in backend.books


def test_purchase_returns_order(api, backend, seller, buyer):
    book = backend.add_book("Dune", seller["id"], price=3.5, quantity=4)

    order = api.purchase(PurchaseRequest(buyerId=buyer["id"], bookId=book["id"], quantity=2))

    assert order.totalPrice == 7.0
    assert order.orderDate.year == 2024
    assert [o.id for o in api.buyer_orders(buyer["id"])] == [order.id]
    assert [o.id for o in api.seller_orders(seller["id"])] == [order.id]


def test_transport_failure_hides_details_from_user(api, backend):
    backend.offline = True

    with pytest.raises(TransportError) as exc:
        api.list_books()

    assert exc.value.user_message("Could not load list") == "Could not load list"


@pytest.mark.parametrize(
    "body, expected",
    [
        ({"error": "Book not found"}, "Book not found"),
        ({"message": "Bad price"}, "Bad price"),
        ({"detail": "Nope"}, "Nope"),
        ({"error": "   "}, ""),
        (["not", "a", "dict"], ""),
    ],
)
def test_backend_message_extraction(body, expected):
    def handler(request):
        return httpx.Response(400, json=body)

    with pytest.raises(BackendError) as exc:
        _client(handler).get_book(1)

    assert exc.value.message == expected


def test_non_json_error_body_falls_back():
    def handler(request):
        return httpx.Response(502, text="<html>bad gateway</html>")

    with pytest.raises(BackendError) as exc:
        _client(handler).list_books()

    assert exc.value.user_message("Could not load list") == "Could not load list"


def test_unexpected_success_shape_is_format_error():
    def handler(request):
        return httpx.Response(200, json={"books": []})

    with pytest.raises(ResponseFormatError):
        _client(handler).list_books()


def test_success_body_not_json_is_format_error():
    def handler(request):
        return httpx.Response(200, text="ok")

    with pytest.raises(ResponseFormatError):
        _client(handler).get_book(1)
