"""Local-first client stores mirroring library state to the server."""

from .base import JsonFileStorage, KeyValueStorage, LocalFirstStore, MemoryStorage
from .favorites import FavoritesStore
from .library import ClientLibrary
from .notifications import NotificationsStore
from .ratings import RatingsStore
from .remote import FilmaziaAPIClient, FilmaziaAPIError
from .settings import SettingsStore
from .ui import UIStore
from .watchlist import WatchlistStore

__all__ = [
    "ClientLibrary",
    "FavoritesStore",
    "FilmaziaAPIClient",
    "FilmaziaAPIError",
    "JsonFileStorage",
    "KeyValueStorage",
    "LocalFirstStore",
    "MemoryStorage",
    "NotificationsStore",
    "RatingsStore",
    "SettingsStore",
    "UIStore",
    "WatchlistStore",
]
