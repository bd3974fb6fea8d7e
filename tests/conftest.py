"""Root conftest - shared test configuration.

Environment is pinned before anything imports ``storefront.config``.
"""

import os
import tempfile
from pathlib import Path

_TMP = Path(tempfile.mkdtemp(prefix="storefront-tests-"))

os.environ.setdefault("API_BASE_URL", "http://backend.test")
os.environ.setdefault("DB_PATH", str(_TMP / "sessions.db"))
os.environ.setdefault("CURRENCY", "USD")
os.environ.setdefault("DECIMALS", "2")
os.environ.setdefault("BOT_TOKEN", "")

import httpx  # noqa: E402
import pytest  # noqa: E402

from fake_backend import FakeBackend  # noqa: E402
from storefront.api.client import MarketplaceClient  # noqa: E402
from storefront.config import settings  # noqa: E402
from storefront.core.context import AppContext  # noqa: E402
from storefront.core.session import MemorySessionStore  # noqa: E402


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def http(backend):
    client = httpx.Client(base_url=settings.api_base_url, transport=httpx.MockTransport(backend.handle))
    yield client
    client.close()


@pytest.fixture
def api(http) -> MarketplaceClient:
    return MarketplaceClient(http)


@pytest.fixture
def store() -> MemorySessionStore:
    return MemorySessionStore()


@pytest.fixture
def ctx(backend, store):
    context = AppContext.from_settings(settings, transport=httpx.MockTransport(backend.handle), store=store)
    yield context
    context.close()


@pytest.fixture
def seller(backend) -> dict:
    return backend.add_user("Sam Seller", "sam@shop.io", "pw", "SELLER")


@pytest.fixture
def buyer(backend) -> dict:
    return backend.add_user("Bea Buyer", "bea@mail.io", "pw", "BUYER")
