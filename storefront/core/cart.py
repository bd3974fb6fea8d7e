from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable

from storefront.config import settings
from storefront.models import Book
from storefront.services.pricing import line_total


@dataclass
class Cart:
    """Staged purchase quantities, book id -> qty. Never persisted.

    An entry exists only while its quantity is >= 1.
    """

    items: Dict[int, int] = field(default_factory=dict)

    def add(self, book_id: int) -> int:
        qty = self.items.get(book_id, 0) + 1
        self.items[book_id] = qty
        return qty

    def remove(self, book_id: int) -> int:
        qty = self.items.get(book_id, 0) - 1
        if qty <= 0:
            self.items.pop(book_id, None)
            return 0
        self.items[book_id] = qty
        return qty

    def discard(self, book_id: int) -> None:
        self.items.pop(book_id, None)

    def quantity(self, book_id: int) -> int:
        return self.items.get(book_id, 0)

    def __contains__(self, book_id: object) -> bool:
        return book_id in self.items

    def __len__(self) -> int:
        return len(self.items)

    def total(self, books: Iterable[Book]) -> float:
        prices = {b.id: b.price or 0.0 for b in books}
        total = sum(line_total(prices.get(book_id, 0.0), qty) for book_id, qty in self.items.items())
        return round(total, settings.decimals)
