"""ListRegistry tests - mount, targeted invalidation, failed fetches."""

from storefront.api.errors import TransportError
from storefront.core.lists import ListRegistry


class _Counter:
    def __init__(self, items):
        self.items = items
        self.calls = 0
        self.fail = False

    def __call__(self):
        self.calls += 1
        if self.fail:
            raise TransportError("down")
        return list(self.items)


def _registry():
    books = _Counter(["a", "b"])
    orders = _Counter(["o1"])
    reg = ListRegistry()
    reg.register("books", books)
    reg.register("orders", orders)
    return reg, books, orders


def test_ensure_loaded_fetches_each_key_once():
    reg, books, orders = _registry()

    reg.ensure_loaded()
    reg.ensure_loaded()

    assert books.calls == 1
    assert orders.calls == 1
    assert reg.get("books") == ["a", "b"]
    assert reg.is_loaded("orders")


def test_invalidate_refetches_only_named_keys():
    reg, books, orders = _registry()
    reg.ensure_loaded()

    books.items = ["a", "b", "c"]
    reg.invalidate("books")

    assert books.calls == 2
    assert orders.calls == 1
    assert reg.get("books") == ["a", "b", "c"]


def test_invalidate_ignores_unknown_keys():
    reg, books, orders = _registry()
    reg.ensure_loaded()

    reg.invalidate("nope")

    assert books.calls == 1


def test_load_refetches_everything():
    reg, books, orders = _registry()
    reg.ensure_loaded()

    reg.load()

    assert books.calls == 2
    assert orders.calls == 2


def test_failed_fetch_keeps_previous_items():
    reg, books, _ = _registry()
    reg.ensure_loaded()

    books.fail = True
    books.items = ["changed"]
    reg.invalidate("books")

    assert reg.get("books") == ["a", "b"]
    assert reg.errors["books"] == "Could not load list"

    books.fail = False
    reg.invalidate("books")
    assert reg.get("books") == ["changed"]
    assert "books" not in reg.errors


def test_failed_first_fetch_counts_as_mounted():
    reg, books, _ = _registry()
    books.fail = True

    reg.ensure_loaded()
    reg.ensure_loaded()

    assert books.calls == 1
    assert reg.get("books") == []


def test_get_returns_a_copy():
    reg, _, _ = _registry()
    reg.ensure_loaded()

    reg.get("books").append("x")

    assert reg.get("books") == ["a", "b"]
