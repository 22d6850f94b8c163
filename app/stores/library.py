"""Bundle of client stores sharing one storage and one API session."""

from __future__ import annotations

import asyncio
import logging

from ..models import AuthSession
from .base import KeyValueStorage, LocalFirstStore, MemoryStorage
from .favorites import FavoritesStore
from .notifications import NotificationsStore
from .ratings import RatingsStore
from .remote import FilmaziaAPIClient, FilmaziaAPIError
from .settings import SettingsStore
from .ui import UIStore
from .watchlist import WatchlistStore

logger = logging.getLogger(__name__)


class ClientLibrary:
    def __init__(
        self, api: FilmaziaAPIClient, storage: KeyValueStorage | None = None
    ):
        self.api = api
        storage = storage if storage is not None else MemoryStorage()
        self.favorites = FavoritesStore(storage)
        self.watchlist = WatchlistStore(storage)
        self.ratings = RatingsStore(storage)
        self.settings = SettingsStore(storage)
        self.notifications = NotificationsStore(storage)
        self.ui = UIStore(storage)

    @property
    def synced_stores(self) -> tuple[LocalFirstStore, ...]:
        return (
            self.favorites,
            self.watchlist,
            self.ratings,
            self.settings,
            self.notifications,
        )

    async def sign_in(self, email: str, password: str) -> AuthSession:
        """Sign in, then overwrite local state with the server's copy."""

        session = await self.api.sign_in(email, password)
        for store in self.synced_stores:
            store.connect(self.api)
        await self.reconcile()
        return session

    async def reconcile(self) -> None:
        favorites, watchlist, ratings, preferences, notifications = await asyncio.gather(
            self.api.get_favorites(),
            self.api.get_watchlist(),
            self.api.get_ratings(),
            self.api.get_preferences(),
            self.api.get_notifications(),
        )
        self.favorites.set_from_server(favorites)
        self.watchlist.set_from_server(watchlist)
        self.ratings.set_from_server(ratings)
        self.settings.set_from_server(preferences)
        self.notifications.set_from_server(notifications)
        logger.info(
            "Reconciled library: %d favorites, %d watchlist items, %d ratings",
            len(favorites.items),
            len(watchlist),
            len(ratings),
        )

    async def sign_out(self) -> None:
        """Drop the session and the locally cached copies of server state."""

        await self.flush()
        try:
            await self.api.sign_out()
        except FilmaziaAPIError as exc:
            logger.warning("Sign out request failed: %s", exc)
        for store in self.synced_stores:
            store.disconnect()
        self.favorites.clear()
        self.watchlist.clear()
        self.ratings.clear()
        self.notifications.clear_all()

    async def flush(self) -> None:
        await asyncio.gather(*(store.flush() for store in self.synced_stores))
