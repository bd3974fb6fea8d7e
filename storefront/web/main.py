from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional
from urllib.parse import urlencode
from uuid import uuid4

import uvicorn
from fastapi import FastAPI, Form, HTTPException, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates

from storefront.api.errors import StorefrontError
from storefront.config import settings
from storefront.constants import DEFAULT_ROLE, ROLES
from storefront.core.context import AppContext
from storefront.core.dashboards import BookManager
from storefront.core.session import SqliteSessionStore
from storefront.db.sqlite import count_sessions
from storefront.utils.formatters import money, order_date
from storefront.utils.logs import setup_logging

logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).resolve().parent
TEMPLATES_DIR = BASE_DIR / "templates"
STATIC_DIR = BASE_DIR / "static"

BOOK_AREAS = ("seller", "catalog")

app = FastAPI(title="Book Marketplace Storefront")

templates = Jinja2Templates(directory=str(TEMPLATES_DIR))
templates.env.filters["money"] = money
templates.env.filters["order_date"] = order_date

if STATIC_DIR.exists():
    app.mount("/static", StaticFiles(directory=str(STATIC_DIR)), name="static")


@app.on_event("startup")
def _startup() -> None:
    setup_logging(settings.log_level)
    # tests install their own context before startup
    if getattr(app.state, "ctx", None) is None:
        app.state.ctx = AppContext.from_settings(settings)


@app.on_event("shutdown")
def _shutdown() -> None:
    ctx = getattr(app.state, "ctx", None)
    if ctx is not None:
        ctx.close()


@app.middleware("http")
async def _session_cookie(request: Request, call_next):
    sid = request.cookies.get(settings.session_cookie)
    fresh = not sid
    if fresh:
        sid = uuid4().hex
    request.state.sid = sid
    response = await call_next(request)
    if fresh:
        response.set_cookie(settings.session_cookie, sid, httponly=True, samesite="lax")
    return response


@app.exception_handler(StorefrontError)
async def _storefront_error(request: Request, exc: StorefrontError):
    logger.error("Unhandled %s on %s: %s", exc.code, request.url.path, exc)
    return templates.TemplateResponse(
        request,
        "error.html",
        {"user": None, "message": exc.user_message("The marketplace is unavailable right now")},
        status_code=502,
    )


def _ctx(request: Request) -> AppContext:
    return request.app.state.ctx


def _sid(request: Request) -> str:
    return request.state.sid


def _redirect(url: str, msg: Optional[str] = None) -> RedirectResponse:
    if msg:
        url = f"{url}?{urlencode({'msg': msg})}"
    return RedirectResponse(url=url, status_code=303)


def _render(request: Request, name: str, ctx: dict[str, Any]) -> HTMLResponse:
    ws = _ctx(request).workspace(_sid(request))
    base = {
        "user": ws.session.user,
        "msg": request.query_params.get("msg", ""),
    }
    base.update(ctx)
    return templates.TemplateResponse(request, name, base)


def _manager(request: Request, area: str) -> Optional[BookManager]:
    if area not in BOOK_AREAS:
        raise HTTPException(status_code=404)
    ctx = _ctx(request)
    sid = _sid(request)
    if area == "catalog":
        return ctx.catalog(sid)
    dash = ctx.dashboard(sid)
    if dash is None or dash.kind != "seller":
        return None
    return dash


@app.get("/health")
def health(request: Request):
    store = _ctx(request).store
    sessions = count_sessions(store.db_path) if isinstance(store, SqliteSessionStore) else None
    return {"status": "ok", "saved_sessions": sessions}


@app.get("/", response_class=HTMLResponse)
def index(request: Request):
    ws = _ctx(request).workspace(_sid(request))
    kind = ws.session.dashboard_kind
    if kind is None:
        return _redirect("/login")
    return _redirect(f"/{kind}")


# ---------------- auth ----------------

@app.get("/login", response_class=HTMLResponse)
def login_get(request: Request):
    ws = _ctx(request).workspace(_sid(request))
    if ws.session.is_authenticated:
        return _redirect("/")
    return _render(request, "auth.html", {"mode": "login", "roles": ROLES, "default_role": DEFAULT_ROLE})


@app.post("/login")
def login_post(
    request: Request,
    email: str = Form(...),
    password: str = Form(...),
):
    ok, err = _ctx(request).login(_sid(request), email, password)
    if not ok:
        return _redirect("/login", err)
    return _redirect("/")


@app.get("/register", response_class=HTMLResponse)
def register_get(request: Request):
    ws = _ctx(request).workspace(_sid(request))
    if ws.session.is_authenticated:
        return _redirect("/")
    return _render(request, "auth.html", {"mode": "register", "roles": ROLES, "default_role": DEFAULT_ROLE})


@app.post("/register")
def register_post(
    request: Request,
    name: str = Form(...),
    email: str = Form(...),
    password: str = Form(...),
    role: str = Form(DEFAULT_ROLE),
):
    form = {"name": name, "email": email, "password": password, "role": role.strip().upper()}
    ok, err = _ctx(request).register(_sid(request), form)
    if not ok:
        return _redirect("/register", err)
    return _redirect("/")


@app.post("/logout")
def logout(request: Request):
    _ctx(request).logout(_sid(request))
    return _redirect("/login")


@app.post("/refresh")
def refresh(request: Request, page: str = Form("/")):
    ctx = _ctx(request)
    sid = _sid(request)
    target = page if page in ("/buyer", "/seller", "/catalog") else "/"
    view = ctx.catalog(sid) if target == "/catalog" else ctx.dashboard(sid)
    if view is not None:
        view.refresh()
    return _redirect(target)


# ---------------- buyer ----------------

def _buyer(request: Request):
    dash = _ctx(request).dashboard(_sid(request))
    if dash is None or dash.kind != "buyer":
        return None
    return dash


@app.get("/buyer", response_class=HTMLResponse)
def buyer(request: Request):
    dash = _buyer(request)
    if dash is None:
        return _redirect("/")
    return _render(
        request,
        "buyer.html",
        {
            "dash": dash,
            "books": dash.books,
            "orders": dash.orders,
            "cart": dash.cart,
            "errors": dash.lists.errors,
        },
    )


@app.post("/buyer/cart/add")
def buyer_cart_add(request: Request, book_id: int = Form(...)):
    dash = _buyer(request)
    if dash is None:
        return _redirect("/")
    dash.add_to_cart(book_id)
    return _redirect("/buyer")


@app.post("/buyer/cart/remove")
def buyer_cart_remove(request: Request, book_id: int = Form(...)):
    dash = _buyer(request)
    if dash is None:
        return _redirect("/")
    dash.remove_from_cart(book_id)
    return _redirect("/buyer")


@app.post("/buyer/purchase")
def buyer_purchase(request: Request, book_id: int = Form(...)):
    dash = _buyer(request)
    if dash is None:
        return _redirect("/")
    ok, msg = dash.purchase(book_id)
    return _redirect("/buyer", msg)


# ---------------- books (seller dashboard / catalog) ----------------

@app.get("/seller", response_class=HTMLResponse)
def seller(request: Request):
    return _books_page(request, "seller")


@app.get("/catalog", response_class=HTMLResponse)
def catalog(request: Request):
    return _books_page(request, "catalog")


def _books_page(request: Request, area: str):
    mgr = _manager(request, area)
    if mgr is None:
        return _redirect("/")
    return _render(
        request,
        "books.html",
        {
            "area": area,
            "mgr": mgr,
            "form": mgr.form,
            "books": mgr.books,
            "sales": mgr.sales if area == "seller" else None,
            "errors": mgr.lists.errors,
        },
    )


@app.post("/{area}/books")
def books_submit(
    request: Request,
    area: str,
    title: str = Form(...),
    author: str = Form(...),
    isbn: str = Form(...),
    price: str = Form(""),
    quantity: str = Form(""),
):
    mgr = _manager(request, area)
    if mgr is None:
        return _redirect("/")
    values = {"title": title, "author": author, "isbn": isbn, "price": price, "quantity": quantity}
    ok, err = mgr.submit_book(values)
    return _redirect(f"/{area}", "Book saved" if ok else err)


@app.get("/{area}/books/{book_id}/edit")
def books_edit(request: Request, area: str, book_id: int):
    mgr = _manager(request, area)
    if mgr is None:
        return _redirect("/")
    ok, err = mgr.edit(book_id)
    return _redirect(f"/{area}", None if ok else err)


@app.post("/{area}/cancel")
def books_cancel(request: Request, area: str):
    mgr = _manager(request, area)
    if mgr is None:
        return _redirect("/")
    mgr.cancel_edit()
    return _redirect(f"/{area}")


@app.get("/{area}/books/{book_id}/delete", response_class=HTMLResponse)
def books_delete_confirm(request: Request, area: str, book_id: int):
    mgr = _manager(request, area)
    if mgr is None:
        return _redirect("/")
    book = mgr.find_book(book_id)
    if book is None:
        return _redirect(f"/{area}", f"Book {book_id} not found")
    return _render(request, "confirm_delete.html", {"area": area, "book": book})


@app.post("/{area}/books/{book_id}/delete")
def books_delete(request: Request, area: str, book_id: int, confirm: str = Form("")):
    mgr = _manager(request, area)
    if mgr is None:
        return _redirect("/")
    if confirm != "yes":
        return _redirect(f"/{area}")
    ok, err = mgr.delete_book(book_id, confirmed=True)
    return _redirect(f"/{area}", "Book deleted" if ok else err)


def run() -> None:
    uvicorn.run("storefront.web.main:app", host=settings.web_host, port=settings.web_port)


if __name__ == "__main__":
    run()
