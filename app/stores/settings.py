"""Local-first user preferences."""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from ..constants import STORAGE_KEYS
from ..models import PreferencesUpdate, UserPreferences
from .base import LocalFirstStore

logger = logging.getLogger(__name__)


class SettingsStore(LocalFirstStore):
    storage_key = STORAGE_KEYS["settings"]

    def __init__(self, storage=None):
        self._preferences = UserPreferences()
        super().__init__(storage)

    @property
    def preferences(self) -> UserPreferences:
        return self._preferences

    def update(self, **changes: Any) -> UserPreferences:
        """Apply preference changes given by field name (or camelCase alias)."""

        update = PreferencesUpdate.model_validate(changes)
        values = update.changes()
        if not values:
            return self._preferences
        self._preferences = self._preferences.model_copy(update=values)
        self._persist()
        body = update.model_dump(mode="json", by_alias=True, exclude_none=True)
        self._mirror("preferences", lambda remote: remote.update_preferences(body))
        return self._preferences

    def reset(self) -> UserPreferences:
        self._preferences = UserPreferences()
        self._persist()
        body = self._preferences.model_dump(mode="json", by_alias=True)
        self._mirror("preferences reset", lambda remote: remote.update_preferences(body))
        return self._preferences

    def set_from_server(self, preferences: UserPreferences) -> None:
        self._preferences = preferences
        self._persist()

    def _restore(self, data: Any | None) -> None:
        if not isinstance(data, dict):
            return
        try:
            self._preferences = UserPreferences.model_validate(data)
        except ValidationError as exc:
            logger.warning("Discarding unreadable settings: %s", exc)

    def _snapshot(self) -> dict[str, Any]:
        return self._preferences.model_dump(mode="json", by_alias=True)
