"""Search box state and recent searches."""

from __future__ import annotations

from typing import Any

from ..constants import RECENT_SEARCH_LIMIT, STORAGE_KEYS
from .base import LocalFirstStore


class UIStore(LocalFirstStore):
    """Device-local UI state; never mirrored to the server."""

    storage_key = STORAGE_KEYS["ui"]

    def __init__(self, storage=None):
        self.search_query = ""
        self._recent_searches: list[str] = []
        super().__init__(storage)

    @property
    def recent_searches(self) -> list[str]:
        return list(self._recent_searches)

    def set_search_query(self, query: str) -> None:
        self.search_query = query

    def add_recent_search(self, query: str) -> None:
        """Record ``query`` as the most recent search, dropping older duplicates."""

        query = query.strip()
        if not query:
            return
        lowered = query.casefold()
        remaining = [
            entry for entry in self._recent_searches if entry.casefold() != lowered
        ]
        self._recent_searches = [query, *remaining][:RECENT_SEARCH_LIMIT]
        self._persist()

    def clear_recent_searches(self) -> None:
        self._recent_searches = []
        self._persist()

    def _restore(self, data: Any | None) -> None:
        if not isinstance(data, dict):
            return
        searches = data.get("recentSearches")
        if isinstance(searches, list):
            self._recent_searches = [
                str(entry) for entry in searches if isinstance(entry, str)
            ][:RECENT_SEARCH_LIMIT]

    def _snapshot(self) -> dict[str, Any]:
        return {"recentSearches": list(self._recent_searches)}
