from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple, Union

import httpx

from storefront.api.client import MarketplaceClient, create_http_client
from storefront.config import Settings
from storefront.core.dashboards import BuyerDashboard, CatalogManager, SellerDashboard
from storefront.core.session import SessionHolder, SessionStore, SqliteSessionStore

logger = logging.getLogger(__name__)

AnyDashboard = Union[BuyerDashboard, SellerDashboard]


@dataclass
class Workspace:
    key: str
    session: SessionHolder
    dashboard: Optional[AnyDashboard] = None
    catalog: Optional[CatalogManager] = None

    def reset_views(self) -> None:
        self.dashboard = None
        self.catalog = None


class AppContext:
    def __init__(self, http: httpx.Client, store: SessionStore) -> None:
        self.http = http
        self.store = store
        self.workspaces: Dict[str, Workspace] = {}

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        transport: Optional[httpx.BaseTransport] = None,
        store: Optional[SessionStore] = None,
    ) -> "AppContext":
        http = create_http_client(settings, transport=transport)
        return cls(http, store or SqliteSessionStore(settings.db_path))

    def close(self) -> None:
        self.http.close()

    def client(self, token: Optional[str] = None) -> MarketplaceClient:
        return MarketplaceClient(self.http, token)

    def workspace(self, key: str) -> Workspace:
        # only authenticated workspaces are held; guests get a fresh one per call
        ws = self.workspaces.get(key)
        if ws is not None:
            return ws
        session = SessionHolder(self.store, key)
        ws = Workspace(key=key, session=session)
        if session.restore():
            self._keep(ws)
        return ws

    def _keep(self, ws: Workspace) -> None:
        self.workspaces[ws.key] = ws
        logger.debug("Holding workspace %s (%d held)", ws.key, len(self.workspaces))

    # --- auth -------------------------------------------------------------

    def login(self, key: str, email: str, password: str) -> Tuple[bool, str]:
        ws = self.workspace(key)
        ok, msg = ws.session.login(self.client(), email, password)
        if ok:
            ws.reset_views()
            self._keep(ws)
        return ok, msg

    def register(self, key: str, form: Dict[str, Any]) -> Tuple[bool, str]:
        ws = self.workspace(key)
        ok, msg = ws.session.register(self.client(), form)
        if ok:
            ws.reset_views()
            self._keep(ws)
        return ok, msg

    def logout(self, key: str) -> None:
        ws = self.workspace(key)
        ws.session.logout()
        ws.reset_views()
        self.workspaces.pop(key, None)

    # --- views ------------------------------------------------------------

    def dashboard(self, key: str) -> Optional[AnyDashboard]:
        """The role's dashboard, mounted (lists fetched once)."""
        ws = self.workspace(key)
        user = ws.session.user
        if user is None:
            return None
        if ws.dashboard is None:
            client = self.client(ws.session.token)
            if ws.session.dashboard_kind == "seller":
                ws.dashboard = SellerDashboard(client, user)
            else:
                ws.dashboard = BuyerDashboard(client, user)
        ws.dashboard.mount()
        return ws.dashboard

    def catalog(self, key: str) -> Optional[CatalogManager]:
        ws = self.workspace(key)
        user = ws.session.user
        if user is None:
            return None
        if ws.catalog is None:
            ws.catalog = CatalogManager(self.client(ws.session.token), user)
        ws.catalog.mount()
        return ws.catalog
