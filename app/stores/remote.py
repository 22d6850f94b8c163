"""Async HTTP client for the Filmazia JSON routes."""

from __future__ import annotations

import logging
from typing import Any, Mapping

import httpx

from ..models import (
    AuthSession,
    AuthUser,
    FavoriteEntry,
    FavoriteFolder,
    FavoriteItemPayload,
    FavoritesSnapshot,
    Notification,
    RatingPayload,
    UserPreferences,
    UserRating,
    WatchlistEntry,
    WatchlistItemPayload,
)

logger = logging.getLogger(__name__)


class FilmaziaAPIError(RuntimeError):
    """Raised when a server route fails or cannot be reached."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class FilmaziaAPIClient:
    """Talks to the server routes on behalf of the client stores.

    The access token obtained by :meth:`sign_in` is sent as a bearer token
    on every subsequent call.
    """

    def __init__(
        self, http_client: httpx.AsyncClient, *, access_token: str | None = None
    ):
        self._client = http_client
        self._access_token = access_token
        self.user: AuthUser | None = None

    @property
    def authenticated(self) -> bool:
        return bool(self._access_token)

    @property
    def access_token(self) -> str | None:
        return self._access_token

    # Auth

    async def sign_up(
        self,
        email: str,
        password: str,
        *,
        name: str = "",
        avatar_url: str | None = None,
    ) -> AuthUser:
        data = await self._request(
            "POST",
            "/api/auth/sign-up",
            json={
                "email": email,
                "password": password,
                "name": name,
                "avatarUrl": avatar_url,
            },
        )
        return AuthUser.model_validate(data.get("user") or {})

    async def sign_in(self, email: str, password: str) -> AuthSession:
        data = await self._request(
            "POST",
            "/api/auth/sign-in",
            json={"email": email, "password": password},
        )
        session = AuthSession.model_validate(data.get("session") or {})
        self._access_token = session.access_token
        self.user = session.user
        return session

    async def sign_out(self) -> None:
        try:
            if self._access_token:
                await self._request("POST", "/api/auth/sign-out")
        finally:
            self._access_token = None
            self.user = None

    # Favorites

    async def get_favorites(self) -> FavoritesSnapshot:
        return FavoritesSnapshot.model_validate(
            await self._request("GET", "/api/favorites")
        )

    async def add_favorite(self, payload: FavoriteItemPayload) -> FavoriteEntry:
        data = await self._request(
            "POST", "/api/favorites", json=_dump(payload)
        )
        return FavoriteEntry.model_validate(data)

    async def remove_favorite(self, item_id: int) -> None:
        await self._request("DELETE", f"/api/favorites/{item_id}")

    async def create_folder(self, folder_id: str, name: str) -> FavoriteFolder:
        data = await self._request(
            "POST", "/api/favorites/folders", json={"id": folder_id, "name": name}
        )
        return FavoriteFolder.model_validate(data)

    async def rename_folder(self, folder_id: str, name: str) -> FavoriteFolder:
        data = await self._request(
            "PATCH", f"/api/favorites/folders/{folder_id}", json={"name": name}
        )
        return FavoriteFolder.model_validate(data)

    async def delete_folder(self, folder_id: str) -> None:
        await self._request("DELETE", f"/api/favorites/folders/{folder_id}")

    async def move_to_folder(
        self, item_id: int, folder_id: str | None
    ) -> FavoriteEntry:
        data = await self._request(
            "PUT",
            f"/api/favorites/{item_id}/folder",
            json={"folderId": folder_id},
        )
        return FavoriteEntry.model_validate(data)

    async def remove_from_folder(self, item_id: int, folder_id: str) -> None:
        await self._request(
            "DELETE", f"/api/favorites/folders/{folder_id}/items/{item_id}"
        )

    # Watchlist

    async def get_watchlist(self) -> list[WatchlistEntry]:
        data = await self._request("GET", "/api/watchlist")
        return [WatchlistEntry.model_validate(entry) for entry in data.get("items", [])]

    async def add_to_watchlist(self, payload: WatchlistItemPayload) -> WatchlistEntry:
        data = await self._request("POST", "/api/watchlist", json=_dump(payload))
        return WatchlistEntry.model_validate(data)

    async def remove_from_watchlist(self, item_id: int) -> None:
        await self._request("DELETE", f"/api/watchlist/{item_id}")

    async def mark_watched(self, item_id: int) -> None:
        await self._request("POST", f"/api/watchlist/{item_id}/watched")

    async def mark_unwatched(self, item_id: int) -> None:
        await self._request("DELETE", f"/api/watchlist/{item_id}/watched")

    async def clear_watchlist(self) -> None:
        await self._request("DELETE", "/api/watchlist")

    # Ratings

    async def get_ratings(self) -> list[UserRating]:
        data = await self._request("GET", "/api/ratings")
        return [UserRating.model_validate(entry) for entry in data.get("ratings", [])]

    async def upsert_rating(self, movie_id: int, payload: RatingPayload) -> UserRating:
        data = await self._request(
            "PUT", f"/api/ratings/{movie_id}", json=_dump(payload)
        )
        return UserRating.model_validate(data)

    async def remove_rating(self, rating_id: str) -> None:
        await self._request("DELETE", f"/api/ratings/{rating_id}")

    # Account

    async def get_preferences(self) -> UserPreferences:
        data = await self._action("GET", "/api/preferences")
        return UserPreferences.model_validate(data or {})

    async def update_preferences(self, changes: Mapping[str, Any]) -> UserPreferences:
        data = await self._action("PATCH", "/api/preferences", json=dict(changes))
        return UserPreferences.model_validate(data or {})

    async def get_notifications(self) -> list[Notification]:
        data = await self._action("GET", "/api/notifications")
        return [Notification.model_validate(entry) for entry in data or []]

    async def mark_notification_read(self, notification_id: int) -> None:
        await self._action("POST", f"/api/notifications/{notification_id}/read")

    async def mark_all_notifications_read(self) -> None:
        await self._action("POST", "/api/notifications/read-all")

    async def clear_notifications(self) -> None:
        await self._action("DELETE", "/api/notifications")

    # Helpers

    async def _action(
        self, method: str, path: str, *, json: dict[str, Any] | None = None
    ) -> Any:
        """Call an account route and unwrap its ``{success, data, error}`` body."""

        body = await self._request(method, path, json=json)
        if not body.get("success"):
            raise FilmaziaAPIError(str(body.get("error") or "Request failed"))
        return body.get("data")

    async def _request(
        self, method: str, path: str, *, json: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        headers = {"Accept": "application/json"}
        if self._access_token:
            headers["Authorization"] = f"Bearer {self._access_token}"
        try:
            response = await self._client.request(
                method, path.lstrip("/"), headers=headers, json=json
            )
        except httpx.HTTPError as exc:
            logger.debug("Request %s %s failed: %s", method, path, exc)
            raise FilmaziaAPIError(f"{method} {path} failed: {exc}") from exc

        try:
            data = response.json() if response.content else {}
        except ValueError:
            data = {}
        if response.status_code >= 400:
            detail = data.get("detail") if isinstance(data, dict) else None
            raise FilmaziaAPIError(
                str(detail or response.reason_phrase), status_code=response.status_code
            )
        if not isinstance(data, dict):
            raise FilmaziaAPIError("Unexpected response structure")
        return data


def _dump(payload: Any) -> dict[str, Any]:
    return payload.model_dump(mode="json", by_alias=True)
