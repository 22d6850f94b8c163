"""Local-first watchlist."""

from __future__ import annotations

import logging
from typing import Any, Iterable

from pydantic import ValidationError

from ..constants import STORAGE_KEYS, MediaType
from ..models import WatchlistEntry, WatchlistItemPayload
from ..utils import utcnow
from .base import LocalFirstStore, field_of, title_of

logger = logging.getLogger(__name__)


class WatchlistStore(LocalFirstStore):
    storage_key = STORAGE_KEYS["watchlist"]

    def __init__(self, storage=None):
        self._items: dict[int, WatchlistEntry] = {}
        super().__init__(storage)

    def add(self, item: Any, kind: MediaType) -> WatchlistEntry:
        entry = WatchlistEntry(
            id=int(field_of(item, "id")),
            type=kind,
            title=title_of(item),
            poster_path=field_of(item, "poster_path"),
        )
        self._items[entry.id] = entry
        self._persist()
        payload = WatchlistItemPayload(
            id=entry.id, type=kind, title=entry.title, poster_path=entry.poster_path
        )
        self._mirror(
            f"watchlist item {entry.id}",
            lambda remote: remote.add_to_watchlist(payload),
        )
        return entry

    def remove(self, item_id: int) -> None:
        self._items.pop(item_id, None)
        self._persist()
        self._mirror(
            f"watchlist removal {item_id}",
            lambda remote: remote.remove_from_watchlist(item_id),
        )

    def mark_as_watched(self, item_id: int) -> None:
        entry = self._items.get(item_id)
        if entry is None:
            return
        self._items[item_id] = entry.model_copy(
            update={"watched": True, "watched_at": utcnow()}
        )
        self._persist()
        self._mirror(
            f"watched flag {item_id}", lambda remote: remote.mark_watched(item_id)
        )

    def mark_as_unwatched(self, item_id: int) -> None:
        entry = self._items.get(item_id)
        if entry is None:
            return
        self._items[item_id] = entry.model_copy(
            update={"watched": False, "watched_at": None}
        )
        self._persist()
        self._mirror(
            f"unwatched flag {item_id}",
            lambda remote: remote.mark_unwatched(item_id),
        )

    def is_in_watchlist(self, item_id: int) -> bool:
        return item_id in self._items

    def is_watched(self, item_id: int) -> bool:
        entry = self._items.get(item_id)
        return bool(entry and entry.watched)

    def get_all(self) -> list[WatchlistEntry]:
        return list(self._items.values())

    def clear(self) -> None:
        self._items.clear()
        self._persist()

    def set_from_server(self, items: Iterable[WatchlistEntry]) -> None:
        self._items = {item.id: item for item in items}
        self._persist()

    def _restore(self, data: Any | None) -> None:
        if not isinstance(data, dict) or not isinstance(data.get("items"), dict):
            return
        for raw_id, raw_item in data["items"].items():
            entry = _migrate_entry(raw_id, raw_item)
            if entry is not None:
                self._items[entry.id] = entry

    def _snapshot(self) -> dict[str, Any]:
        return {
            "items": {
                str(item_id): entry.model_dump(mode="json", by_alias=True)
                for item_id, entry in self._items.items()
            }
        }


def _migrate_entry(raw_id: str, raw_item: Any) -> WatchlistEntry | None:
    """Fill in fields that older persisted entries did not record."""

    if not isinstance(raw_item, dict):
        return None
    try:
        item_id = int(raw_id)
    except ValueError:
        return None
    try:
        return WatchlistEntry(
            id=item_id,
            type=raw_item.get("type") or "movie",
            title=raw_item.get("title") or raw_item.get("name") or "Unknown",
            poster_path=raw_item.get("poster_path") or None,
            added_at=raw_item.get("addedAt") or utcnow(),
            watched=bool(raw_item.get("watched") or False),
            watched_at=raw_item.get("watchedAt") or None,
        )
    except ValidationError as exc:
        logger.warning("Dropping unreadable watchlist entry %s: %s", raw_id, exc)
        return None
