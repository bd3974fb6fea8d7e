from __future__ import annotations

import shlex
from html import escape
from typing import Dict, List, Optional

from storefront.core.dashboards import BuyerDashboard
from storefront.models import Book, Order
from storefront.utils.formatters import book_line, money, order_line

BUYER_HELP = (
    "<b>Buyer commands</b>\n"
    "/books - available books\n"
    "/cart - show cart\n"
    "/cart_add ID - one more copy in the cart\n"
    "/cart_remove ID - one copy less\n"
    "/buy ID - purchase the cart quantity of a book\n"
    "/orders - my orders\n"
    "/refresh - reload lists\n"
)

SELLER_HELP = (
    "<b>Seller commands</b>\n"
    "/mybooks - my listings\n"
    "/book_add - list a new book\n"
    "/book_edit ID - edit a listing\n"
    "/book_delete ID - remove a listing\n"
    "/sales - orders for my books\n"
    "/refresh - reload lists\n"
)

GUEST_HELP = (
    "<b>Book Marketplace</b>\n"
    "/login EMAIL PASSWORD - log in\n"
    "/register - create an account (wizard)\n"
    "/register NAME EMAIL PASSWORD BUYER|SELLER - in one line\n"
)

COMMON_HELP = (
    "\n/cancel - stop the current input\n"
    "/logout - log out\n"
)


def help_text(kind: Optional[str]) -> str:
    if kind == "seller":
        return SELLER_HELP + COMMON_HELP
    if kind == "buyer":
        return BUYER_HELP + COMMON_HELP
    return GUEST_HELP


def parse_register_args(text: str) -> Dict[str, str]:
    """
    /register NAME EMAIL PASSWORD ROLE
    NAME may be quoted: /register "Ann Lee" ann@x.io secret SELLER
    """
    args = shlex.split(text)[1:]
    if len(args) != 4:
        raise ValueError("Format: /register NAME EMAIL PASSWORD BUYER|SELLER")
    name, email, password, role = args
    return {"name": name, "email": email, "password": password, "role": role.upper()}


def books_text(books: List[Book], title: str, cart: Optional[Dict[int, int]] = None) -> str:
    if not books:
        return f"<b>{title}</b>: (empty)"
    cart = cart or {}
    lines = [f"<b>{title}</b> ({len(books)}):"]
    for b in books:
        lines.append("• " + escape(book_line(b, cart.get(b.id, 0))))
    return "\n".join(lines)


def orders_text(orders: List[Order], title: str) -> str:
    if not orders:
        return f"<b>{title}</b>: (none)"
    lines = [f"<b>{title}</b> ({len(orders)}):"]
    for o in orders:
        lines.append("• " + escape(order_line(o)))
    return "\n".join(lines)


def cart_text(dash: BuyerDashboard) -> str:
    if not len(dash.cart):
        return "🧺 Cart is empty. Add books: /cart_add ID"
    books = {b.id: b for b in dash.books}
    lines = ["🧺 <b>Cart</b>:"]
    for book_id, qty in dash.cart.items.items():
        book = books.get(book_id)
        if book is None:
            lines.append(f"• #{book_id} × {qty} (no longer listed)")
            continue
        lines.append(f"• #{book_id} {escape(book.title)} × {qty} = {money(dash.line_total(book))}")
    lines.append(f"\nTotal: <b>{money(dash.cart_total())}</b>")
    lines.append("Buy one title: /buy ID")
    return "\n".join(lines)
