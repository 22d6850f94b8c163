"""Client for the hosted (GoTrue compatible) authentication service."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from ..config import Settings
from ..models import AuthSession, AuthUser

logger = logging.getLogger(__name__)


class AuthError(RuntimeError):
    """Raised when the auth service rejects a request or is unreachable."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class AuthClient:
    """Thin wrapper around the auth service REST API."""

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient):
        self._settings = settings
        self._client = http_client

    def _headers(self, *, access_token: str | None = None) -> dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "User-Agent": f"{self._settings.app_name} (filmazia)",
        }
        if self._settings.auth_anon_key:
            headers["apikey"] = self._settings.auth_anon_key
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"
        return headers

    async def sign_up(
        self,
        email: str,
        password: str,
        *,
        name: str | None = None,
        avatar_url: str | None = None,
    ) -> AuthUser:
        """Register an account; email confirmation redirects back to the app."""

        metadata: dict[str, Any] = {"name": name or None}
        if avatar_url:
            metadata["avatar_url"] = avatar_url
        data = await self._request(
            "POST",
            "/auth/v1/signup",
            params={"redirect_to": self._settings.auth_callback_url},
            json={"email": email, "password": password, "data": metadata},
        )
        # Depending on confirmation settings the user is top level or nested.
        user = self._parse_user(data.get("user") or data)
        if user is None:
            raise AuthError("User creation failed")
        return user

    async def sign_in(self, email: str, password: str) -> AuthSession:
        data = await self._request(
            "POST",
            "/auth/v1/token",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
        )
        access_token = data.get("access_token")
        if not isinstance(access_token, str) or not access_token:
            raise AuthError("Auth service did not return an access token")
        return AuthSession(
            access_token=access_token,
            refresh_token=data.get("refresh_token"),
            expires_in=_coerce_int(data.get("expires_in")),
            user=self._parse_user(data.get("user")),
        )

    async def get_user(self, access_token: str | None) -> AuthUser | None:
        """Resolve the user owning ``access_token``; ``None`` when invalid."""

        if not access_token:
            return None
        try:
            data = await self._request(
                "GET", "/auth/v1/user", access_token=access_token
            )
        except AuthError as exc:
            if exc.status_code in {401, 403, 404}:
                return None
            raise
        return self._parse_user(data)

    async def sign_out(self, access_token: str) -> None:
        await self._request("POST", "/auth/v1/logout", access_token=access_token)

    async def _request(
        self,
        method: str,
        path: str,
        *,
        access_token: str | None = None,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        if not self._settings.auth_configured:
            raise AuthError("Authentication is not configured", status_code=503)
        try:
            response = await self._client.request(
                method,
                path.lstrip("/"),
                headers=self._headers(access_token=access_token),
                params=params,
                json=json,
            )
        except httpx.HTTPError as exc:
            logger.warning("Auth service request %s %s failed: %s", method, path, exc)
            raise AuthError("Unable to reach the authentication service") from exc

        data = _response_json(response)
        if response.status_code >= 400:
            raise AuthError(_format_auth_error(data), status_code=response.status_code)
        return data

    @staticmethod
    def _parse_user(data: Any) -> AuthUser | None:
        if not isinstance(data, dict):
            return None
        user_id = data.get("id")
        email = data.get("email")
        if not (isinstance(user_id, str) and user_id and isinstance(email, str)):
            return None
        metadata = data.get("user_metadata") or {}
        if not isinstance(metadata, dict):
            metadata = {}
        return AuthUser(
            id=user_id,
            email=email,
            name=metadata.get("name") or metadata.get("full_name"),
            avatar_url=metadata.get("avatar_url"),
        )


def _coerce_int(value: Any) -> int | None:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _response_json(response: httpx.Response) -> dict[str, Any]:
    if not response.content:
        return {}
    try:
        data = response.json()
    except ValueError:
        return {}
    if isinstance(data, dict):
        return data
    return {}


def _format_auth_error(data: dict[str, Any]) -> str:
    return str(
        data.get("error_description")
        or data.get("msg")
        or data.get("message")
        or data.get("error")
        or "Authentication request failed"
    )
