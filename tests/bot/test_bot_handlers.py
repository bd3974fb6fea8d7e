"""Bot handler tests - handlers called directly with a stub message and a memory FSM."""

import asyncio
import time
from types import SimpleNamespace

import pytest
from aiogram.fsm.context import FSMContext
from aiogram.fsm.storage.base import StorageKey
from aiogram.fsm.storage.memory import MemoryStorage

from storefront.bot import handlers
from storefront.bot.states import BookWizard, DeleteConfirm, RegisterWizard

CHAT_ID = 501


class _Chat:
    def __init__(self, chat_id=CHAT_ID):
        self.chat_id = chat_id
        self.replies = []

    def message(self, text):
        async def answer(reply, **kwargs):
            self.replies.append(reply)

        return SimpleNamespace(text=text, chat=SimpleNamespace(id=self.chat_id), answer=answer)

    @property
    def last(self):
        return self.replies[-1]


def run(coro):
    return asyncio.run(coro)


@pytest.fixture
def chat():
    return _Chat()


@pytest.fixture
def state():
    return FSMContext(storage=MemoryStorage(), key=StorageKey(bot_id=1, chat_id=CHAT_ID, user_id=CHAT_ID))


def test_start_for_guest_shows_login_help(chat, ctx):
    run(handlers.cmd_start(chat.message("/start"), ctx))

    assert "/login EMAIL PASSWORD" in chat.last


def test_login_command(chat, state, ctx, buyer):
    run(handlers.cmd_login(chat.message("/login bea@mail.io pw"), state, ctx))

    assert "Logged in as <b>Bea Buyer</b> (BUYER)" in chat.last
    assert ctx.workspace(f"tg:{CHAT_ID}").session.user.id == buyer["id"]


def test_login_wrong_password(chat, state, ctx, buyer):
    run(handlers.cmd_login(chat.message("/login bea@mail.io nope"), state, ctx))

    assert chat.last == "❌ Invalid credentials"
    assert ctx.workspace(f"tg:{CHAT_ID}").session.user is None


def test_register_wizard(chat, state, ctx):
    run(handlers.cmd_register(chat.message("/register"), state, ctx))
    assert run(state.get_state()) == RegisterWizard.waiting_name.state

    run(handlers.register_name(chat.message("Ann"), state))
    run(handlers.register_email(chat.message("ann@x.io"), state))
    run(handlers.register_password(chat.message("pw"), state))
    run(handlers.register_role(chat.message("seller"), state, ctx))

    assert run(state.get_state()) is None
    assert "Seller commands" in chat.last
    assert ctx.workspace(f"tg:{CHAT_ID}").session.dashboard_kind == "seller"


def test_register_one_line(chat, state, ctx):
    run(handlers.cmd_register(chat.message("/register Bob bob@x.io pw BUYER"), state, ctx))

    assert "Buyer commands" in chat.last


def test_buyer_cart_and_buy(chat, state, ctx, backend, buyer, seller):
    book = backend.add_book("Dune", seller["id"], price=5.0, quantity=3)
    run(handlers.cmd_login(chat.message("/login bea@mail.io pw"), state, ctx))

    run(handlers.cmd_cart_add(chat.message(f"/cart_add {book['id']}"), ctx))
    run(handlers.cmd_cart_add(chat.message(f"/cart_add #{book['id']}"), ctx))
    assert chat.last == f"✅ In cart: book #{book['id']} × 2"

    run(handlers.cmd_cart(chat.message("/cart"), ctx))
    assert "Total: <b>10.00 USD</b>" in chat.last

    run(handlers.cmd_buy(chat.message(f"/buy {book['id']}"), ctx))
    assert chat.last.startswith("✅ Purchase successful! Order #")

    run(handlers.cmd_cart(chat.message("/cart"), ctx))
    assert "Cart is empty" in chat.last


def test_buy_bad_id(chat, state, ctx, buyer):
    run(handlers.cmd_login(chat.message("/login bea@mail.io pw"), state, ctx))

    run(handlers.cmd_buy(chat.message("/buy abc"), ctx))

    assert chat.last == "❌ book id must be a whole number"


def test_buyer_commands_need_login(chat, ctx):
    run(handlers.cmd_books(chat.message("/books"), ctx))

    assert chat.last.startswith("Log in first")


def test_seller_commands_refuse_buyers(chat, state, ctx, buyer):
    run(handlers.cmd_login(chat.message("/login bea@mail.io pw"), state, ctx))

    run(handlers.cmd_mybooks(chat.message("/mybooks"), ctx))

    assert chat.last == "This command is for sellers. See /help"


def _login_seller(chat, state, ctx):
    run(handlers.cmd_login(chat.message("/login sam@shop.io pw"), state, ctx))


def _answer_steps(chat, state, ctx, answers):
    steps = [handlers.book_title, handlers.book_author, handlers.book_isbn, handlers.book_price, handlers.book_quantity]
    for step, text in zip(steps, answers):
        run(step(chat.message(text), state, ctx))


def test_book_add_wizard(chat, state, ctx, backend, seller):
    _login_seller(chat, state, ctx)

    run(handlers.cmd_book_add(chat.message("/book_add"), state, ctx))
    assert run(state.get_state()) == BookWizard.waiting_title.state
    _answer_steps(chat, state, ctx, ["Emma", "Austen", "978", "4,50", "2"])

    assert chat.last == "✅ Book saved: Emma"
    created = backend.calls_to("POST", "/api/books")[0][2]
    assert created["price"] == 4.5
    assert created["sellerId"] == seller["id"]


def test_book_edit_wizard_keeps_values_with_dash(chat, state, ctx, backend, seller):
    book = backend.add_book("Dune", seller["id"], price=9.0, quantity=1, author="Herbert")
    _login_seller(chat, state, ctx)

    run(handlers.cmd_book_edit(chat.message(f"/book_edit {book['id']}"), state, ctx))
    assert "(now: Dune)" in chat.last
    _answer_steps(chat, state, ctx, ["-", "-", "-", "11", "-"])

    assert backend.calls_to("POST", "/api/books") == []
    put = backend.calls_to("PUT", f"/api/books/{book['id']}")[0][2]
    assert put["title"] == "Dune"
    assert put["author"] == "Herbert"
    assert put["price"] == 11.0
    assert put["quantity"] == 1


def test_cancel_during_edit_resets_form(chat, state, ctx, backend, seller):
    book = backend.add_book("Dune", seller["id"])
    _login_seller(chat, state, ctx)
    run(handlers.cmd_book_edit(chat.message(f"/book_edit {book['id']}"), state, ctx))

    run(handlers.cmd_cancel(chat.message("/cancel"), state, ctx))

    assert run(state.get_state()) is None
    assert ctx.workspace(f"tg:{CHAT_ID}").dashboard.form.selected_id is None


def test_book_delete_needs_yes(chat, state, ctx, backend, seller):
    book = backend.add_book("Dune", seller["id"])
    _login_seller(chat, state, ctx)

    run(handlers.cmd_book_delete(chat.message(f"/book_delete {book['id']}"), state, ctx))
    assert run(state.get_state()) == DeleteConfirm.waiting_answer.state
    run(handlers.book_delete_no(chat.message("no"), state))
    assert chat.last == "❎ Kept."
    assert backend.calls_to("DELETE") == []

    run(handlers.cmd_book_delete(chat.message(f"/book_delete {book['id']}"), state, ctx))
    run(handlers.book_delete_yes(chat.message("yes"), state, ctx))

    assert chat.last == f"🗑 Book #{book['id']} deleted."
    assert book["id"] not in backend.books


def test_logout(chat, state, ctx, buyer):
    run(handlers.cmd_login(chat.message("/login bea@mail.io pw"), state, ctx))

    run(handlers.cmd_logout(chat.message("/logout"), state, ctx))

    assert chat.last == "👋 Logged out."
    assert ctx.store.load(f"tg:{CHAT_ID}") is None


def test_slow_backend_in_one_chat_does_not_stall_another(ctx, backend, buyer):
    backend.slow_down("/api/users/login", 1.0)
    slow_chat, other_chat = _Chat(7), _Chat(8)
    slow_state = FSMContext(storage=MemoryStorage(), key=StorageKey(bot_id=1, chat_id=7, user_id=7))

    async def scenario():
        start = time.monotonic()
        login = asyncio.create_task(
            handlers.cmd_login(slow_chat.message("/login bea@mail.io pw"), slow_state, ctx)
        )
        await asyncio.sleep(0.05)
        await handlers.cmd_help(other_chat.message("/help"), ctx)
        help_after = time.monotonic() - start
        await login
        return help_after

    help_after = run(scenario())

    assert help_after < 0.5
    assert "/login EMAIL PASSWORD" in other_chat.last
    assert "Logged in as" in slow_chat.last


def test_command_while_delete_pending_drops_the_confirmation(chat, state, ctx, backend, seller):
    book = backend.add_book("Dune", seller["id"])
    _login_seller(chat, state, ctx)
    run(handlers.cmd_book_delete(chat.message(f"/book_delete {book['id']}"), state, ctx))

    run(handlers.book_delete_no(chat.message("/mybooks"), state))

    assert chat.last == "❎ Kept. Send the command again."
    assert run(state.get_state()) is None
    assert backend.calls_to("DELETE") == []


def test_delete_answers_take_priority_over_commands():
    callbacks = [h.callback for h in handlers.router.message.handlers]
    first_command = callbacks.index(handlers.cmd_start)

    assert callbacks.index(handlers.book_delete_yes) < first_command
    assert callbacks.index(handlers.book_delete_no) < first_command
