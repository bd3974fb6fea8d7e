import asyncio
import logging
from html import escape
from typing import Optional

from aiogram import F, Router
from aiogram.filters import Command
from aiogram.fsm.context import FSMContext
from aiogram.types import Message, ReplyKeyboardRemove

from storefront.bot.keyboards import main_kb, role_kb, yes_no_kb
from storefront.bot.states import BookWizard, DeleteConfirm, RegisterWizard
from storefront.bot.texts import books_text, cart_text, help_text, orders_text, parse_register_args
from storefront.constants import ROLES
from storefront.core.context import AppContext
from storefront.core.dashboards import BuyerDashboard, SellerDashboard
from storefront.utils.validators import parse_id

logger = logging.getLogger(__name__)

router = Router()

# core calls hit the backend over blocking httpx; handlers run them with
# asyncio.to_thread so polling keeps serving other chats

BOOK_STEPS = (
    ("title", BookWizard.waiting_title, "1/5) TITLE"),
    ("author", BookWizard.waiting_author, "2/5) AUTHOR"),
    ("isbn", BookWizard.waiting_isbn, "3/5) ISBN"),
    ("price", BookWizard.waiting_price, "4/5) PRICE (e.g. 12.50)"),
    ("quantity", BookWizard.waiting_quantity, "5/5) QUANTITY in stock"),
)


def _key(message: Message) -> str:
    return f"tg:{message.chat.id}"


def _arg(message: Message) -> Optional[str]:
    parts = (message.text or "").split(maxsplit=1)
    if len(parts) < 2 or not parts[1].strip():
        return None
    return parts[1].strip()


async def _buyer(message: Message, ctx: AppContext) -> Optional[BuyerDashboard]:
    dash = await asyncio.to_thread(ctx.dashboard, _key(message))
    if dash is None:
        await message.answer("Log in first: /login EMAIL PASSWORD (or /register)")
        return None
    if not isinstance(dash, BuyerDashboard):
        await message.answer("This command is for buyers. See /help")
        return None
    return dash


async def _seller(message: Message, ctx: AppContext) -> Optional[SellerDashboard]:
    dash = await asyncio.to_thread(ctx.dashboard, _key(message))
    if dash is None:
        await message.answer("Log in first: /login EMAIL PASSWORD (or /register)")
        return None
    if not isinstance(dash, SellerDashboard):
        await message.answer("This command is for sellers. See /help")
        return None
    return dash


async def _book_id(message: Message, usage: str) -> Optional[int]:
    raw = _arg(message)
    if raw is None:
        await message.answer(f"Format: {usage}")
        return None
    try:
        return parse_id(raw, "book id")
    except ValueError as e:
        await message.answer(f"❌ {e}")
        return None


def _logged_in_text(ctx: AppContext, message: Message) -> str:
    user = ctx.workspace(_key(message)).session.user
    return f"✅ Logged in as <b>{escape(user.name)}</b> ({user.role.value})"


# ---------------- delete confirmation ----------------
# registered before the commands: any message while a confirmation is
# pending is its answer, commands included

@router.message(DeleteConfirm.waiting_answer, F.text.lower() == "yes")
async def book_delete_yes(message: Message, state: FSMContext, ctx: AppContext):
    data = await state.get_data()
    await state.clear()
    dash = await _seller(message, ctx)
    if dash is None:
        return
    book_id = int(data.get("book_id", 0))
    ok, err = await asyncio.to_thread(dash.delete_book, book_id, True)
    if not ok:
        await message.answer(f"❌ {escape(err)}", reply_markup=main_kb("seller"))
        return
    await message.answer(f"🗑 Book #{book_id} deleted.", reply_markup=main_kb("seller"))


@router.message(DeleteConfirm.waiting_answer)
async def book_delete_no(message: Message, state: FSMContext):
    await state.clear()
    if (message.text or "").startswith("/"):
        await message.answer("❎ Kept. Send the command again.", reply_markup=main_kb("seller"))
        return
    await message.answer("❎ Kept.", reply_markup=main_kb("seller"))


# ---------------- common ----------------

@router.message(Command("start"))
async def cmd_start(message: Message, ctx: AppContext):
    ws = ctx.workspace(_key(message))
    kind = ws.session.dashboard_kind
    if kind is None:
        await message.answer(help_text(None), reply_markup=main_kb(None))
        return
    await message.answer(_logged_in_text(ctx, message) + "\n\n" + help_text(kind), reply_markup=main_kb(kind))


@router.message(Command("help"))
async def cmd_help(message: Message, ctx: AppContext):
    kind = ctx.workspace(_key(message)).session.dashboard_kind
    await message.answer(help_text(kind))


@router.message(Command("cancel"))
async def cmd_cancel(message: Message, state: FSMContext, ctx: AppContext):
    await state.clear()
    dash = ctx.workspace(_key(message)).dashboard
    if isinstance(dash, SellerDashboard):
        dash.cancel_edit()
    kind = ctx.workspace(_key(message)).session.dashboard_kind
    await message.answer("❎ Cancelled.", reply_markup=main_kb(kind))


@router.message(Command("refresh"))
async def cmd_refresh(message: Message, ctx: AppContext):
    dash = await asyncio.to_thread(ctx.dashboard, _key(message))
    if dash is None:
        await message.answer("Log in first: /login EMAIL PASSWORD")
        return
    await asyncio.to_thread(dash.refresh)
    await message.answer("🔄 Lists reloaded.")


# ---------------- auth ----------------

@router.message(Command("login"))
async def cmd_login(message: Message, state: FSMContext, ctx: AppContext):
    await state.clear()
    parts = (message.text or "").split()
    if len(parts) != 3:
        await message.answer("Format: /login EMAIL PASSWORD")
        return

    _, email, password = parts
    ok, err = await asyncio.to_thread(ctx.login, _key(message), email, password)
    if not ok:
        await message.answer(f"❌ {escape(err)}")
        return

    kind = ctx.workspace(_key(message)).session.dashboard_kind
    await message.answer(_logged_in_text(ctx, message), reply_markup=main_kb(kind))


@router.message(Command("logout"))
async def cmd_logout(message: Message, state: FSMContext, ctx: AppContext):
    await state.clear()
    ctx.logout(_key(message))
    await message.answer("👋 Logged out.", reply_markup=main_kb(None))


@router.message(Command("register"))
async def cmd_register(message: Message, state: FSMContext, ctx: AppContext):
    await state.clear()

    if _arg(message) is not None:
        try:
            form = parse_register_args(message.text or "")
        except ValueError as e:
            await message.answer(f"❌ {e}")
            return
        await _finish_register(message, state, ctx, form)
        return

    await state.set_state(RegisterWizard.waiting_name)
    await message.answer(
        "Ok, creating an account.\n\n1/4) Your NAME\nCancel: /cancel",
        reply_markup=ReplyKeyboardRemove(),
    )


@router.message(RegisterWizard.waiting_name)
async def register_name(message: Message, state: FSMContext):
    name = (message.text or "").strip()
    if not name or name.startswith("/"):
        await message.answer("Send the name as text. Cancel: /cancel")
        return
    await state.update_data(name=name)
    await state.set_state(RegisterWizard.waiting_email)
    await message.answer("2/4) EMAIL\nCancel: /cancel")


@router.message(RegisterWizard.waiting_email)
async def register_email(message: Message, state: FSMContext):
    email = (message.text or "").strip()
    if not email or "@" not in email:
        await message.answer("That does not look like an email. Cancel: /cancel")
        return
    await state.update_data(email=email)
    await state.set_state(RegisterWizard.waiting_password)
    await message.answer("3/4) PASSWORD\nCancel: /cancel")


@router.message(RegisterWizard.waiting_password)
async def register_password(message: Message, state: FSMContext):
    password = (message.text or "").strip()
    if not password:
        await message.answer("Password cannot be empty. Cancel: /cancel")
        return
    await state.update_data(password=password)
    await state.set_state(RegisterWizard.waiting_role)
    await message.answer("4/4) ROLE", reply_markup=role_kb())


@router.message(RegisterWizard.waiting_role)
async def register_role(message: Message, state: FSMContext, ctx: AppContext):
    role = (message.text or "").strip().upper()
    if role not in ROLES:
        await message.answer("Pick BUYER or SELLER. Cancel: /cancel", reply_markup=role_kb())
        return
    data = await state.get_data()
    form = {
        "name": data.get("name", ""),
        "email": data.get("email", ""),
        "password": data.get("password", ""),
        "role": role,
    }
    await _finish_register(message, state, ctx, form)


async def _finish_register(message: Message, state: FSMContext, ctx: AppContext, form: dict):
    try:
        ok, err = await asyncio.to_thread(ctx.register, _key(message), form)
    finally:
        await state.clear()
    if not ok:
        await message.answer(f"❌ {escape(err)}", reply_markup=main_kb(None))
        return
    kind = ctx.workspace(_key(message)).session.dashboard_kind
    await message.answer(_logged_in_text(ctx, message) + "\n\n" + help_text(kind), reply_markup=main_kb(kind))


# ---------------- buyer ----------------

@router.message(Command("books"))
async def cmd_books(message: Message, ctx: AppContext):
    dash = await _buyer(message, ctx)
    if dash is None:
        return
    text = books_text(dash.books, "Available books", dash.cart.items)
    err = dash.lists.errors.get("books.available")
    if err:
        text += f"\n\n⚠️ {escape(err)}"
    await message.answer(text)


@router.message(Command("cart"))
async def cmd_cart(message: Message, ctx: AppContext):
    dash = await _buyer(message, ctx)
    if dash is None:
        return
    await message.answer(cart_text(dash))


@router.message(Command("cart_add"))
async def cmd_cart_add(message: Message, ctx: AppContext):
    dash = await _buyer(message, ctx)
    if dash is None:
        return
    book_id = await _book_id(message, "/cart_add ID")
    if book_id is None:
        return
    qty = dash.add_to_cart(book_id)
    await message.answer(f"✅ In cart: book #{book_id} × {qty}")


@router.message(Command("cart_remove"))
async def cmd_cart_remove(message: Message, ctx: AppContext):
    dash = await _buyer(message, ctx)
    if dash is None:
        return
    book_id = await _book_id(message, "/cart_remove ID")
    if book_id is None:
        return
    qty = dash.remove_from_cart(book_id)
    if qty:
        await message.answer(f"✅ In cart: book #{book_id} × {qty}")
    else:
        await message.answer(f"✅ Book #{book_id} removed from cart")


@router.message(Command("buy"))
async def cmd_buy(message: Message, ctx: AppContext):
    dash = await _buyer(message, ctx)
    if dash is None:
        return
    book_id = await _book_id(message, "/buy ID")
    if book_id is None:
        return
    ok, msg = await asyncio.to_thread(dash.purchase, book_id)
    if not ok:
        await message.answer(f"❌ {escape(msg)}")
        return
    await message.answer(f"✅ {escape(msg)}")


@router.message(Command("orders"))
async def cmd_orders(message: Message, ctx: AppContext):
    dash = await _buyer(message, ctx)
    if dash is None:
        return
    await message.answer(orders_text(dash.orders, "My orders"))


# ---------------- seller ----------------

@router.message(Command("mybooks"))
async def cmd_mybooks(message: Message, ctx: AppContext):
    dash = await _seller(message, ctx)
    if dash is None:
        return
    text = books_text(dash.books, "My books")
    err = dash.lists.errors.get("books.seller")
    if err:
        text += f"\n\n⚠️ {escape(err)}"
    await message.answer(text)


@router.message(Command("sales"))
async def cmd_sales(message: Message, ctx: AppContext):
    dash = await _seller(message, ctx)
    if dash is None:
        return
    await message.answer(orders_text(dash.sales, "Sales"))


@router.message(Command("book_add"))
async def cmd_book_add(message: Message, state: FSMContext, ctx: AppContext):
    dash = await _seller(message, ctx)
    if dash is None:
        return
    dash.cancel_edit()
    await state.clear()
    await state.set_state(BookWizard.waiting_title)
    await message.answer(
        f"Ok, listing a new book.\n\n{BOOK_STEPS[0][2]}\nCancel: /cancel",
        reply_markup=ReplyKeyboardRemove(),
    )


@router.message(Command("book_edit"))
async def cmd_book_edit(message: Message, state: FSMContext, ctx: AppContext):
    dash = await _seller(message, ctx)
    if dash is None:
        return
    book_id = await _book_id(message, "/book_edit ID")
    if book_id is None:
        return
    ok, err = await asyncio.to_thread(dash.edit, book_id)
    if not ok:
        await message.answer(f"❌ {escape(err)}")
        return

    await state.clear()
    await state.set_state(BookWizard.waiting_title)
    current = escape(str(dash.form.values["title"]))
    await message.answer(
        f"Editing book #{book_id}. Send '-' to keep a value.\n\n"
        f"{BOOK_STEPS[0][2]} (now: {current})\nCancel: /cancel",
        reply_markup=ReplyKeyboardRemove(),
    )


@router.message(BookWizard.waiting_title)
async def book_title(message: Message, state: FSMContext, ctx: AppContext):
    await _book_step(message, state, ctx, 0)


@router.message(BookWizard.waiting_author)
async def book_author(message: Message, state: FSMContext, ctx: AppContext):
    await _book_step(message, state, ctx, 1)


@router.message(BookWizard.waiting_isbn)
async def book_isbn(message: Message, state: FSMContext, ctx: AppContext):
    await _book_step(message, state, ctx, 2)


@router.message(BookWizard.waiting_price)
async def book_price(message: Message, state: FSMContext, ctx: AppContext):
    await _book_step(message, state, ctx, 3)


@router.message(BookWizard.waiting_quantity)
async def book_quantity(message: Message, state: FSMContext, ctx: AppContext):
    await _book_step(message, state, ctx, 4)


async def _book_step(message: Message, state: FSMContext, ctx: AppContext, index: int):
    dash = await _seller(message, ctx)
    if dash is None:
        await state.clear()
        return

    field, _, prompt = BOOK_STEPS[index]
    raw = (message.text or "").strip()

    if raw == "-" and dash.form.is_editing:
        value = str(dash.form.values.get(field, ""))
    elif not raw or raw.startswith("/"):
        await message.answer(f"{prompt}: send it as text. Cancel: /cancel")
        return
    else:
        value = raw.replace(",", ".") if field == "price" else raw

    await state.update_data(**{field: value})

    if index + 1 < len(BOOK_STEPS):
        _, next_state, next_prompt = BOOK_STEPS[index + 1]
        await state.set_state(next_state)
        hint = ""
        if dash.form.is_editing:
            next_field = BOOK_STEPS[index + 1][0]
            hint = f" (now: {escape(str(dash.form.values.get(next_field, '')))})"
        await message.answer(f"{next_prompt}{hint}\nCancel: /cancel")
        return

    values = await state.get_data()
    await state.clear()
    ok, err = await asyncio.to_thread(dash.submit_book, values)
    if not ok:
        await message.answer(
            f"❌ {escape(err)}\nNothing was saved. Start again: /book_add or /book_edit ID",
            reply_markup=main_kb("seller"),
        )
        return
    await message.answer(f"✅ Book saved: {escape(str(values.get('title', '')))}", reply_markup=main_kb("seller"))


@router.message(Command("book_delete"))
async def cmd_book_delete(message: Message, state: FSMContext, ctx: AppContext):
    dash = await _seller(message, ctx)
    if dash is None:
        return
    book_id = await _book_id(message, "/book_delete ID")
    if book_id is None:
        return
    book = dash.find_book(book_id)
    if book is None:
        await message.answer(f"❌ Book #{book_id} is not in your list. See /mybooks")
        return

    await state.set_state(DeleteConfirm.waiting_answer)
    await state.update_data(book_id=book_id)
    await message.answer(f"Delete <b>{escape(book.title)}</b> (#{book_id})?", reply_markup=yes_no_kb())
