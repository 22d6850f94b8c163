"""Local-first favorites with named folders."""

from __future__ import annotations

import logging
from typing import Any, Iterable

from pydantic import ValidationError

from ..constants import STORAGE_KEYS, MediaType
from ..models import (
    FavoriteEntry,
    FavoriteFolder,
    FavoriteItemPayload,
    FavoritesSnapshot,
)
from ..utils import generate_id
from .base import LocalFirstStore, field_of, title_of

logger = logging.getLogger(__name__)


class FavoritesStore(LocalFirstStore):
    """Favorites keyed by catalog id; each item sits in at most one folder.

    Folder membership lives on the items (``folder_id``); the ``movie_ids``
    of folders returned by :meth:`get_folders` are derived from it.
    """

    storage_key = STORAGE_KEYS["favorites"]

    def __init__(self, storage=None):
        self._items: dict[int, FavoriteEntry] = {}
        self._folders: dict[str, FavoriteFolder] = {}
        super().__init__(storage)

    def add(self, item: Any, kind: MediaType) -> FavoriteEntry:
        entry = FavoriteEntry(
            id=int(field_of(item, "id")),
            type=kind,
            title=title_of(item),
            poster_path=field_of(item, "poster_path"),
        )
        self._items[entry.id] = entry
        self._persist()
        payload = FavoriteItemPayload(
            id=entry.id, type=kind, title=entry.title, poster_path=entry.poster_path
        )
        self._mirror(
            f"favorite {entry.id}", lambda remote: remote.add_favorite(payload)
        )
        return entry

    def remove(self, item_id: int) -> None:
        self._items.pop(item_id, None)
        self._persist()
        self._mirror(
            f"favorite removal {item_id}",
            lambda remote: remote.remove_favorite(item_id),
        )

    def is_favorite(self, item_id: int) -> bool:
        return item_id in self._items

    def get_all(self) -> list[FavoriteEntry]:
        return list(self._items.values())

    def clear(self) -> None:
        """Drop local state only; the server copy is left untouched."""

        self._items.clear()
        self._folders.clear()
        self._persist()

    def set_from_server(
        self,
        snapshot: FavoritesSnapshot | Iterable[FavoriteEntry],
    ) -> None:
        """Replace all local state with the server's copy."""

        if isinstance(snapshot, FavoritesSnapshot):
            items, folders = snapshot.items, snapshot.folders
        else:
            items, folders = list(snapshot), []
        self._items = {item.id: item for item in items}
        self._folders = {
            folder.id: folder.model_copy(update={"movie_ids": []})
            for folder in folders
        }
        # Folder memberships the server reported only on the folder side.
        for folder in folders:
            for item_id in folder.movie_ids:
                entry = self._items.get(item_id)
                if entry is not None and entry.folder_id is None:
                    self._items[item_id] = entry.model_copy(
                        update={"folder_id": folder.id}
                    )
        self._drop_dangling_folder_refs()
        self._persist()

    # Folders

    def get_folders(self) -> list[FavoriteFolder]:
        return [
            folder.model_copy(update={"movie_ids": self._member_ids(folder.id)})
            for folder in self._folders.values()
        ]

    def get_folder(self, folder_id: str) -> FavoriteFolder | None:
        folder = self._folders.get(folder_id)
        if folder is None:
            return None
        return folder.model_copy(update={"movie_ids": self._member_ids(folder_id)})

    def create_folder(self, name: str) -> FavoriteFolder:
        name = name.strip()
        if not name:
            raise ValueError("Folder name may not be blank")
        folder = FavoriteFolder(id=generate_id(), name=name)
        self._folders[folder.id] = folder
        self._persist()
        self._mirror(
            f"folder {folder.id}",
            lambda remote: remote.create_folder(folder.id, folder.name),
        )
        return folder

    def rename_folder(self, folder_id: str, name: str) -> FavoriteFolder:
        folder = self._require_folder(folder_id)
        name = name.strip()
        if not name:
            raise ValueError("Folder name may not be blank")
        self._folders[folder_id] = folder.model_copy(update={"name": name})
        self._persist()
        self._mirror(
            f"folder rename {folder_id}",
            lambda remote: remote.rename_folder(folder_id, name),
        )
        return self._folders[folder_id]

    def delete_folder(self, folder_id: str) -> None:
        """Unfile every member before dropping the folder itself."""

        for item_id in self._member_ids(folder_id):
            self._items[item_id] = self._items[item_id].model_copy(
                update={"folder_id": None}
            )
        self._folders.pop(folder_id, None)
        self._persist()
        self._mirror(
            f"folder deletion {folder_id}",
            lambda remote: remote.delete_folder(folder_id),
        )

    def move_to_folder(self, item_id: int, folder_id: str | None) -> FavoriteEntry:
        entry = self._items.get(item_id)
        if entry is None:
            raise LookupError(f"Favorite {item_id} not found")
        if folder_id is not None:
            self._require_folder(folder_id)
        entry = entry.model_copy(update={"folder_id": folder_id})
        self._items[item_id] = entry
        self._persist()
        self._mirror(
            f"move of {item_id}",
            lambda remote: remote.move_to_folder(item_id, folder_id),
        )
        return entry

    def remove_from_folder(self, item_id: int, folder_id: str) -> None:
        entry = self._items.get(item_id)
        if entry is None or entry.folder_id != folder_id:
            return
        self._items[item_id] = entry.model_copy(update={"folder_id": None})
        self._persist()
        self._mirror(
            f"unfiling of {item_id}",
            lambda remote: remote.remove_from_folder(item_id, folder_id),
        )

    def items_in_folder(self, folder_id: str | None) -> list[FavoriteEntry]:
        """Items filed under ``folder_id``; ``None`` lists unfiled items."""

        return [item for item in self._items.values() if item.folder_id == folder_id]

    def _member_ids(self, folder_id: str) -> list[int]:
        return [item.id for item in self._items.values() if item.folder_id == folder_id]

    def _require_folder(self, folder_id: str) -> FavoriteFolder:
        folder = self._folders.get(folder_id)
        if folder is None:
            raise LookupError(f"Folder {folder_id} not found")
        return folder

    # Persistence

    def _restore(self, data: Any | None) -> None:
        if not isinstance(data, dict):
            return
        try:
            snapshot = FavoritesSnapshot.model_validate(data)
        except ValidationError as exc:
            logger.warning("Discarding unreadable favorites state: %s", exc)
            return
        self._items = {item.id: item for item in snapshot.items}
        self._folders = {folder.id: folder for folder in snapshot.folders}
        self._drop_dangling_folder_refs()

    def _drop_dangling_folder_refs(self) -> None:
        for item_id, item in list(self._items.items()):
            if item.folder_id and item.folder_id not in self._folders:
                self._items[item_id] = item.model_copy(update={"folder_id": None})

    def _snapshot(self) -> dict[str, Any]:
        return FavoritesSnapshot(
            items=list(self._items.values()), folders=self.get_folders()
        ).model_dump(mode="json", by_alias=True)
