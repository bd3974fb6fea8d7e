from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Protocol, Tuple

from pydantic import ValidationError

from storefront.api.client import MarketplaceClient
from storefront.api.errors import StorefrontError
from storefront.constants import AUTH_FAILED
from storefront.db import sqlite
from storefront.models import AuthResponse, LoginRequest, RegisterRequest, Role, User, parse_request

logger = logging.getLogger(__name__)


class SessionStore(Protocol):
    def load(self, key: str) -> Optional[Dict[str, Any]]: ...

    def save(self, key: str, token: str, user: Dict[str, Any]) -> None: ...

    def clear(self, key: str) -> None: ...


class SqliteSessionStore:
    def __init__(self, db_path: Optional[str] = None) -> None:
        self.db_path = db_path
        sqlite.init_db(db_path)

    def load(self, key: str) -> Optional[Dict[str, Any]]:
        return sqlite.load_session(key, self.db_path)

    def save(self, key: str, token: str, user: Dict[str, Any]) -> None:
        sqlite.save_session(key, token, user, self.db_path)

    def clear(self, key: str) -> None:
        sqlite.clear_session(key, self.db_path)


class MemorySessionStore:
    def __init__(self) -> None:
        self.rows: Dict[str, Dict[str, Any]] = {}

    def load(self, key: str) -> Optional[Dict[str, Any]]:
        row = self.rows.get(key)
        return dict(row) if row else None

    def save(self, key: str, token: str, user: Dict[str, Any]) -> None:
        self.rows[key] = {"token": token, "user": dict(user)}

    def clear(self, key: str) -> None:
        self.rows.pop(key, None)


class SessionHolder:
    def __init__(self, store: SessionStore, key: str) -> None:
        self.store = store
        self.key = key
        self.user: Optional[User] = None
        self.token: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    @property
    def dashboard_kind(self) -> Optional[str]:
        if self.user is None:
            return None
        return "seller" if self.user.role == Role.SELLER else "buyer"

    def restore(self) -> bool:
        """Pick up a previously saved identity, if any."""
        saved = self.store.load(self.key)
        if not saved:
            return False
        try:
            user = User.model_validate(saved.get("user"))
        except ValidationError:
            logger.warning("Discarding unreadable saved session %s", self.key)
            self.store.clear(self.key)
            return False
        self.user = user
        self.token = saved.get("token")
        logger.info("Restored session %s for user %s (%s)", self.key, user.id, user.role.value)
        return True

    def login(self, client: MarketplaceClient, email: str, password: str) -> Tuple[bool, str]:
        try:
            req = parse_request(LoginRequest, {"email": email, "password": password})
            auth = client.login(req)
        except StorefrontError as e:
            return False, e.user_message(AUTH_FAILED)
        self._accept(auth)
        return True, "ok"

    def register(self, client: MarketplaceClient, form: Dict[str, Any]) -> Tuple[bool, str]:
        try:
            req = parse_request(RegisterRequest, form)
            auth = client.register(req)
        except StorefrontError as e:
            return False, e.user_message(AUTH_FAILED)
        self._accept(auth)
        return True, "ok"

    def logout(self) -> None:
        if self.user is not None:
            logger.info("Logging out user %s from %s", self.user.id, self.key)
        self.store.clear(self.key)
        self.user = None
        self.token = None

    def _accept(self, auth: AuthResponse) -> None:
        self.user = auth.user
        self.token = auth.token
        self.store.save(self.key, auth.token, auth.user.model_dump(mode="json"))
        logger.info("Session %s now holds user %s (%s)", self.key, auth.user.id, auth.user.role.value)
