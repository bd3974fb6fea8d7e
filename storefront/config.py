from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ROOT_DIR = Path(__file__).resolve().parents[1]  # .../storefront checkout
load_dotenv(dotenv_path=ROOT_DIR / ".env")


def _get_env(*keys: str, default: str | None = None) -> str | None:
    for k in keys:
        v = os.getenv(k)
        if v is not None and str(v).strip() != "":
            return v.strip()
    return default


def _get_int(*keys: str, default: int | None = None) -> int | None:
    v = _get_env(*keys, default=None)
    if v is None:
        return default
    return int(v)


def _get_float(*keys: str, default: float | None = None) -> float | None:
    v = _get_env(*keys, default=None)
    if v is None:
        return default
    return float(v)


def _get_path(*keys: str, default: str) -> str:
    v = _get_env(*keys, default=default)
    return str(v)


@dataclass(frozen=True)
class Settings:
    api_base_url: str
    request_timeout: float
    bot_token: str
    db_path: str
    currency: str
    decimals: int
    log_level: str
    session_cookie: str
    web_host: str
    web_port: int


settings = Settings(
    api_base_url=(_get_env("API_BASE_URL", "BACKEND_URL", default="http://localhost:8080") or "").rstrip("/"),
    request_timeout=_get_float("REQUEST_TIMEOUT", default=10.0) or 10.0,
    bot_token=_get_env("BOT_TOKEN", "TELEGRAM_BOT_TOKEN", default="") or "",
    db_path=_get_path("DB_PATH", "SESSION_DB_PATH", default=str(ROOT_DIR / "data" / "sessions.db")),
    currency=_get_env("CURRENCY", default="USD") or "USD",
    decimals=_get_int("DECIMALS", default=2),
    log_level=_get_env("LOG_LEVEL", default="INFO") or "INFO",
    session_cookie=_get_env("SESSION_COOKIE", default="sid") or "sid",
    web_host=_get_env("WEB_HOST", default="127.0.0.1") or "127.0.0.1",
    web_port=_get_int("WEB_PORT", default=8000) or 8000,
)


def require_bot_token() -> str:
    if not settings.bot_token:
        raise RuntimeError("BOT_TOKEN is empty. Set BOT_TOKEN in .env")
    return settings.bot_token
