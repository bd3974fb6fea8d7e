from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Set

from storefront.api.errors import StorefrontError

logger = logging.getLogger(__name__)

Fetcher = Callable[[], List[Any]]


class ListRegistry:
    def __init__(self) -> None:
        self._fetchers: Dict[str, Fetcher] = {}
        self._items: Dict[str, List[Any]] = {}
        self._loaded: Set[str] = set()
        self.errors: Dict[str, str] = {}

    def register(self, key: str, fetcher: Fetcher) -> None:
        self._fetchers[key] = fetcher

    def get(self, key: str) -> List[Any]:
        return list(self._items.get(key, []))

    def is_loaded(self, key: str) -> bool:
        return key in self._loaded

    def ensure_loaded(self) -> None:
        for key in self._fetchers:
            if key not in self._loaded:
                self._fetch(key)

    def load(self) -> None:
        for key in self._fetchers:
            self._fetch(key)

    def invalidate(self, *keys: str) -> None:
        for key in keys:
            if key in self._fetchers:
                self._fetch(key)

    def _fetch(self, key: str) -> None:
        try:
            items = self._fetchers[key]()
        except StorefrontError as e:
            logger.warning("Error fetching %s: %s", key, e)
            self.errors[key] = e.user_message("Could not load list")
            # still counts as mounted; the next invalidate/refresh retries
            self._loaded.add(key)
            return
        self._items[key] = list(items)
        self._loaded.add(key)
        self.errors.pop(key, None)
