from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

from storefront.api.client import MarketplaceClient
from storefront.api.errors import ResponseFormatError, StorefrontError
from storefront.constants import (
    ALL_BOOKS,
    AVAILABLE_BOOKS,
    BUYER_ORDERS,
    CATALOG_FORM_FIELDS,
    DELETE_BOOK_FAILED,
    PURCHASE_FAILED,
    SAVE_BOOK_FAILED,
    SELLER_BOOKS,
    SELLER_FORM_FIELDS,
    SELLER_ORDERS,
)
from storefront.core.cart import Cart
from storefront.core.forms import EntityForm
from storefront.core.lists import ListRegistry
from storefront.models import Book, BookPayload, Order, PurchaseRequest, User, parse_request
from storefront.services.pricing import line_total

logger = logging.getLogger(__name__)


class Dashboard:
    kind = ""
    invalidations: Dict[str, Tuple[str, ...]] = {}

    def __init__(self, client: MarketplaceClient, user: User) -> None:
        self.client = client
        self.user = user
        self.lists = ListRegistry()

    def mount(self) -> None:
        self.lists.ensure_loaded()

    def refresh(self) -> None:
        self.lists.load()

    def _mutate(self, action: str, call: Callable[[], Any]) -> Any:
        try:
            result = call()
        except ResponseFormatError as e:
            # 2xx with an unreadable body: the backend applied the change
            logger.warning("%s succeeded with an unreadable reply: %s", action, e)
            result = None
        self.lists.invalidate(*self.invalidations.get(action, ()))
        return result


class BookManager(Dashboard):
    """Create/edit/delete over one book list."""

    books_key = ALL_BOOKS
    form_fields: Tuple[str, ...] = CATALOG_FORM_FIELDS

    def __init__(self, client: MarketplaceClient, user: User) -> None:
        super().__init__(client, user)
        self.form = EntityForm(self.form_fields, SAVE_BOOK_FAILED)
        self.invalidations = {
            "create_book": (self.books_key,),
            "update_book": (self.books_key,),
            "delete_book": (self.books_key,),
        }

    @property
    def books(self) -> List[Book]:
        return self.lists.get(self.books_key)

    def find_book(self, book_id: int) -> Optional[Book]:
        for book in self.books:
            if book.id == book_id:
                return book
        return None

    def edit(self, book_id: int) -> Tuple[bool, str]:
        book = self.find_book(book_id)
        if book is None:
            try:
                book = self.client.get_book(book_id)
            except StorefrontError as e:
                return False, e.user_message(f"Book {book_id} not found")
        self.form.select(book)
        return True, "ok"

    def cancel_edit(self) -> None:
        self.form.cancel()

    def submit_book(self, values: Dict[str, Any]) -> Tuple[bool, str]:
        return self.form.submit(values, self._save_book)

    def delete_book(self, book_id: int, confirmed: bool = False) -> Tuple[bool, str]:
        if not confirmed:
            return False, "Deletion not confirmed"
        try:
            self._mutate("delete_book", lambda: self.client.delete_book(book_id))
        except StorefrontError as e:
            return False, e.user_message(DELETE_BOOK_FAILED)
        if self.form.selected_id == book_id:
            self.form.cancel()
        return True, "ok"

    def _payload(self, values: Dict[str, Any]) -> BookPayload:
        return parse_request(BookPayload, values)

    def _save_book(self, book_id: Optional[int], values: Dict[str, Any]) -> Optional[Book]:
        payload = self._payload(values)
        if book_id is None:
            return self._mutate("create_book", lambda: self.client.create_book(payload))
        return self._mutate("update_book", lambda: self.client.update_book(book_id, payload))


class CatalogManager(BookManager):
    """Every book in the marketplace, regardless of seller."""

    kind = "catalog"

    def __init__(self, client: MarketplaceClient, user: User) -> None:
        super().__init__(client, user)
        self.lists.register(ALL_BOOKS, client.list_books)


class SellerDashboard(BookManager):
    kind = "seller"
    books_key = SELLER_BOOKS
    form_fields = SELLER_FORM_FIELDS

    def __init__(self, client: MarketplaceClient, user: User) -> None:
        super().__init__(client, user)
        self.lists.register(SELLER_BOOKS, lambda: client.list_seller_books(user.id))
        self.lists.register(SELLER_ORDERS, lambda: client.seller_orders(user.id))

    @property
    def sales(self) -> List[Order]:
        return self.lists.get(SELLER_ORDERS)

    def _payload(self, values: Dict[str, Any]) -> BookPayload:
        return parse_request(BookPayload, {**values, "sellerId": self.user.id})


class BuyerDashboard(Dashboard):
    kind = "buyer"
    invalidations = {
        "purchase": (AVAILABLE_BOOKS, BUYER_ORDERS),
    }

    def __init__(self, client: MarketplaceClient, user: User) -> None:
        super().__init__(client, user)
        self.cart = Cart()
        self.lists.register(AVAILABLE_BOOKS, client.list_available_books)
        self.lists.register(BUYER_ORDERS, lambda: client.buyer_orders(user.id))

    @property
    def books(self) -> List[Book]:
        return self.lists.get(AVAILABLE_BOOKS)

    @property
    def orders(self) -> List[Order]:
        return self.lists.get(BUYER_ORDERS)

    def add_to_cart(self, book_id: int) -> int:
        return self.cart.add(book_id)

    def remove_from_cart(self, book_id: int) -> int:
        return self.cart.remove(book_id)

    def line_total(self, book: Book) -> float:
        return line_total(book.price or 0.0, self.cart.quantity(book.id))

    def cart_total(self) -> float:
        return self.cart.total(self.books)

    def purchase(self, book_id: int) -> Tuple[bool, str]:
        qty = self.cart.quantity(book_id)
        if qty <= 0:
            return False, "Book is not in the cart"
        try:
            req = parse_request(PurchaseRequest, {"buyerId": self.user.id, "bookId": book_id, "quantity": qty})
            order = self._mutate("purchase", lambda: self.client.purchase(req))
        except StorefrontError as e:
            logger.info("Purchase of book %s x%s failed: %s", book_id, qty, e)
            return False, e.user_message(PURCHASE_FAILED)

        # only after the mutation succeeded; a failure keeps the entry for retry
        self.cart.discard(book_id)
        if order is None:
            logger.info("Order placed: book %s x%s", book_id, qty)
            return True, "Purchase successful!"
        logger.info("Order %s placed: book %s x%s", order.id, book_id, qty)
        return True, f"Purchase successful! Order #{order.id}"
