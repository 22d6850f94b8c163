"""Entry point for the Filmazia FastAPI service."""

from __future__ import annotations

import json
import logging
from contextlib import AsyncExitStack, asynccontextmanager
from typing import Any, Awaitable, Iterable, TypeVar

import httpx
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError

from .browse import BrowseFilters
from .config import settings
from .constants import GENRES, SORT_OPTIONS
from .database import Database
from .models import (
    ActionResult,
    AuthUser,
    FavoriteItemPayload,
    FolderAssignment,
    FolderPayload,
    FolderRename,
    MediaRef,
    PreferencesUpdate,
    RatingPayload,
    SignInPayload,
    SignUpPayload,
    WatchlistItemPayload,
)
from .services.account import AccountService
from .services.auth import AuthClient, AuthError
from .services.catalog import CatalogService
from .services.favorites import FavoritesService
from .services.ratings import RatingsService
from .services.tmdb import TMDBClient, TMDBError
from .services.watchlist import WatchlistService

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

ACCESS_TOKEN_COOKIE = "sb-access-token"

app: FastAPI

ModelT = TypeVar("ModelT", bound=BaseModel)
ResultT = TypeVar("ResultT")


@asynccontextmanager
async def lifespan(_: FastAPI):
    exit_stack = AsyncExitStack()
    tmdb_http_client = await exit_stack.enter_async_context(
        httpx.AsyncClient(
            base_url=str(settings.tmdb_api_url),
            timeout=httpx.Timeout(15.0, connect=5.0),
        )
    )
    auth_client_kwargs: dict[str, Any] = {
        "timeout": httpx.Timeout(15.0, connect=5.0)
    }
    if settings.auth_url:
        auth_client_kwargs["base_url"] = str(settings.auth_url)
    auth_http_client = await exit_stack.enter_async_context(
        httpx.AsyncClient(**auth_client_kwargs)
    )
    database = Database(settings.database_url)
    await database.create_all()

    tmdb = TMDBClient(settings, tmdb_http_client)
    if not settings.tmdb_api_key:
        logger.warning("TMDB_API_KEY is not set; catalog requests will fail")
    if not settings.auth_configured:
        logger.warning("Auth service is not configured; sign in is disabled")

    app.state.database = database
    app.state.catalog_service = CatalogService(tmdb)
    app.state.auth_client = AuthClient(settings, auth_http_client)
    app.state.favorites_service = FavoritesService(database.session_factory)
    app.state.watchlist_service = WatchlistService(database.session_factory)
    app.state.ratings_service = RatingsService(database.session_factory)
    app.state.account_service = AccountService(database.session_factory)

    try:
        yield
    finally:  # pragma: no cover - teardown path exercised at runtime
        await database.dispose()
        await exit_stack.aclose()


def create_app() -> FastAPI:
    fastapi_app = FastAPI(
        title=settings.app_name,
        description="Track movies and TV shows you love",
        version="1.0.0",
        lifespan=lifespan,
    )

    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials="*" not in settings.cors_origins,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
        allow_headers=["*"],
    )

    register_routes(fastapi_app)
    return fastapi_app


def _get_state_service(app: FastAPI, name: str, expected: type[ResultT]) -> ResultT:
    service = getattr(app.state, name, None)
    if not isinstance(service, expected):
        raise RuntimeError(f"{expected.__name__} not initialised")
    return service


def get_catalog_service(app: FastAPI) -> CatalogService:
    return _get_state_service(app, "catalog_service", CatalogService)


def get_auth_client(app: FastAPI) -> AuthClient:
    return _get_state_service(app, "auth_client", AuthClient)


def get_favorites_service(app: FastAPI) -> FavoritesService:
    return _get_state_service(app, "favorites_service", FavoritesService)


def get_watchlist_service(app: FastAPI) -> WatchlistService:
    return _get_state_service(app, "watchlist_service", WatchlistService)


def get_ratings_service(app: FastAPI) -> RatingsService:
    return _get_state_service(app, "ratings_service", RatingsService)


def get_account_service(app: FastAPI) -> AccountService:
    return _get_state_service(app, "account_service", AccountService)


def register_routes(fastapi_app: FastAPI) -> None:
    async def _require_user(request: Request) -> AuthUser:
        """Resolve the caller from the bearer token; every call re-checks it."""

        token = _access_token_from_request(request)
        if not token:
            raise HTTPException(status_code=401, detail="Not authenticated")
        try:
            user = await get_auth_client(fastapi_app).get_user(token)
        except AuthError as exc:
            raise HTTPException(
                status_code=exc.status_code or 503, detail=exc.message
            ) from exc
        if user is None:
            raise HTTPException(status_code=401, detail="Not authenticated")
        return user

    async def _catalog_call(awaitable: Awaitable[ResultT]) -> ResultT:
        try:
            return await awaitable
        except TMDBError as exc:
            raise HTTPException(status_code=502, detail=str(exc)) from exc

    async def _library_call(awaitable: Awaitable[ResultT]) -> ResultT:
        try:
            return await awaitable
        except LookupError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc

    @fastapi_app.get("/healthz")
    async def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    @fastapi_app.get("/api/constants")
    async def catalog_constants() -> dict[str, Any]:
        return {
            "genres": [{"id": genre.id, "name": genre.name} for genre in GENRES],
            "sortOptions": [
                {"value": option.value, "label": option.label}
                for option in SORT_OPTIONS
            ],
        }

    # Catalog: movies

    @fastapi_app.get("/api/movies")
    async def browse_movies(request: Request) -> dict[str, Any]:
        filters = BrowseFilters.from_query(request.query_params)
        service = get_catalog_service(fastapi_app)
        return _dump(await _catalog_call(service.browse_movies(filters)))

    @fastapi_app.get("/api/movies/trending")
    async def trending_movies(window: str = "week") -> dict[str, Any]:
        if window not in {"day", "week"}:
            raise HTTPException(status_code=400, detail="window must be day or week")
        tmdb = get_catalog_service(fastapi_app).tmdb
        return {"results": _dump_all(await _catalog_call(tmdb.get_trending(window)))}

    @fastapi_app.get("/api/movies/popular")
    async def popular_movies(page: int = 1) -> dict[str, Any]:
        tmdb = get_catalog_service(fastapi_app).tmdb
        return _dump(await _catalog_call(tmdb.get_popular(max(page, 1))))

    @fastapi_app.get("/api/movies/now-playing")
    async def now_playing_movies(page: int = 1) -> dict[str, Any]:
        tmdb = get_catalog_service(fastapi_app).tmdb
        return _dump(await _catalog_call(tmdb.get_now_playing(max(page, 1))))

    @fastapi_app.get("/api/movies/top-rated")
    async def top_rated_movies(page: int = 1) -> dict[str, Any]:
        tmdb = get_catalog_service(fastapi_app).tmdb
        return _dump(await _catalog_call(tmdb.get_top_rated(max(page, 1))))

    @fastapi_app.get("/api/movies/upcoming")
    async def upcoming_movies(page: int = 1) -> dict[str, Any]:
        tmdb = get_catalog_service(fastapi_app).tmdb
        return _dump(await _catalog_call(tmdb.get_upcoming(max(page, 1))))

    @fastapi_app.get("/api/movies/genres")
    async def movie_genres() -> dict[str, Any]:
        tmdb = get_catalog_service(fastapi_app).tmdb
        return {"genres": _dump_all(await _catalog_call(tmdb.get_genres()))}

    @fastapi_app.get("/api/movies/providers")
    async def movie_providers() -> dict[str, Any]:
        tmdb = get_catalog_service(fastapi_app).tmdb
        return {"results": _dump_all(await _catalog_call(tmdb.get_movie_providers()))}

    @fastapi_app.get("/api/movies/{movie_id}")
    async def movie_details(movie_id: int) -> dict[str, Any]:
        tmdb = get_catalog_service(fastapi_app).tmdb
        return _dump(await _catalog_call(tmdb.get_movie_details(movie_id)))

    @fastapi_app.get("/api/movies/{movie_id}/similar")
    async def similar_movies(movie_id: int, page: int = 1) -> dict[str, Any]:
        tmdb = get_catalog_service(fastapi_app).tmdb
        return _dump(
            await _catalog_call(tmdb.get_similar_movies(movie_id, max(page, 1)))
        )

    @fastapi_app.get("/api/movies/{movie_id}/credits")
    async def movie_credits(movie_id: int) -> dict[str, Any]:
        tmdb = get_catalog_service(fastapi_app).tmdb
        return _dump(await _catalog_call(tmdb.get_movie_credits(movie_id)))

    # Catalog: TV

    @fastapi_app.get("/api/tv")
    async def browse_tv(request: Request) -> dict[str, Any]:
        filters = BrowseFilters.from_query(request.query_params)
        service = get_catalog_service(fastapi_app)
        return _dump(await _catalog_call(service.browse_tv(filters)))

    @fastapi_app.get("/api/tv/trending")
    async def trending_tv(window: str = "week") -> dict[str, Any]:
        if window not in {"day", "week"}:
            raise HTTPException(status_code=400, detail="window must be day or week")
        tmdb = get_catalog_service(fastapi_app).tmdb
        return {"results": _dump_all(await _catalog_call(tmdb.get_trending_tv(window)))}

    @fastapi_app.get("/api/tv/popular")
    async def popular_tv(page: int = 1) -> dict[str, Any]:
        tmdb = get_catalog_service(fastapi_app).tmdb
        return _dump(await _catalog_call(tmdb.get_popular_tv(max(page, 1))))

    @fastapi_app.get("/api/tv/top-rated")
    async def top_rated_tv(page: int = 1) -> dict[str, Any]:
        tmdb = get_catalog_service(fastapi_app).tmdb
        return _dump(await _catalog_call(tmdb.get_top_rated_tv(max(page, 1))))

    @fastapi_app.get("/api/tv/airing-today")
    async def airing_today_tv(page: int = 1) -> dict[str, Any]:
        tmdb = get_catalog_service(fastapi_app).tmdb
        return _dump(await _catalog_call(tmdb.get_airing_today_tv(max(page, 1))))

    @fastapi_app.get("/api/tv/on-the-air")
    async def on_the_air_tv(page: int = 1) -> dict[str, Any]:
        tmdb = get_catalog_service(fastapi_app).tmdb
        return _dump(await _catalog_call(tmdb.get_on_the_air_tv(max(page, 1))))

    @fastapi_app.get("/api/tv/genres")
    async def tv_genres() -> dict[str, Any]:
        tmdb = get_catalog_service(fastapi_app).tmdb
        return {"genres": _dump_all(await _catalog_call(tmdb.get_tv_genres()))}

    @fastapi_app.get("/api/tv/providers")
    async def tv_providers() -> dict[str, Any]:
        tmdb = get_catalog_service(fastapi_app).tmdb
        return {"results": _dump_all(await _catalog_call(tmdb.get_tv_providers()))}

    @fastapi_app.get("/api/tv/{show_id}")
    async def tv_details(show_id: int) -> dict[str, Any]:
        tmdb = get_catalog_service(fastapi_app).tmdb
        return _dump(await _catalog_call(tmdb.get_tv_details(show_id)))

    @fastapi_app.get("/api/search")
    async def search(q: str = "", page: int = 1) -> dict[str, Any]:
        query = q.strip()
        if not query:
            raise HTTPException(status_code=400, detail="Query parameter q is required")
        service = get_catalog_service(fastapi_app)
        return _dump(await _catalog_call(service.search(query, max(page, 1))))

    @fastapi_app.post("/api/content/watchlist")
    async def watchlist_content(request: Request) -> dict[str, Any]:
        refs = await _read_refs(request)
        service = get_catalog_service(fastapi_app)
        return _dump(await service.watchlist_content(refs))

    @fastapi_app.post("/api/content/favorites")
    async def favorites_content(request: Request) -> dict[str, Any]:
        refs = await _read_refs(request)
        service = get_catalog_service(fastapi_app)
        return _dump(await service.favorites_content(refs))

    # Auth

    @fastapi_app.post("/api/auth/sign-up")
    async def sign_up(request: Request) -> dict[str, Any]:
        payload = await _read_model(request, SignUpPayload)
        auth = get_auth_client(fastapi_app)
        try:
            user = await auth.sign_up(
                payload.email,
                payload.password,
                name=payload.name,
                avatar_url=payload.avatar_url,
            )
        except AuthError as exc:
            raise _auth_http_error(exc) from exc
        await get_account_service(fastapi_app).upsert_user(
            user, name=payload.name, avatar_url=payload.avatar_url
        )
        logger.info("Registered user %s", user.id)
        return {"success": True, "user": _dump(user)}

    @fastapi_app.post("/api/auth/sign-in")
    async def sign_in(request: Request) -> JSONResponse:
        payload = await _read_model(request, SignInPayload)
        auth = get_auth_client(fastapi_app)
        try:
            session = await auth.sign_in(payload.email, payload.password)
        except AuthError as exc:
            raise _auth_http_error(exc) from exc
        response = JSONResponse({"success": True, "session": _dump(session)})
        response.set_cookie(
            ACCESS_TOKEN_COOKIE,
            session.access_token,
            max_age=session.expires_in,
            httponly=True,
            samesite="lax",
            secure=settings.environment == "production",
        )
        return response

    @fastapi_app.post("/api/auth/sign-out")
    async def sign_out(request: Request) -> JSONResponse:
        token = _access_token_from_request(request)
        if token:
            try:
                await get_auth_client(fastapi_app).sign_out(token)
            except AuthError as exc:
                logger.warning("Sign out failed upstream: %s", exc.message)
        response = JSONResponse({"success": True})
        response.delete_cookie(ACCESS_TOKEN_COOKIE)
        return response

    @fastapi_app.get("/api/auth/me")
    async def current_user(request: Request) -> dict[str, Any]:
        user = await _require_user(request)
        return {"user": _dump(user)}

    # Favorites

    @fastapi_app.get("/api/favorites")
    async def get_favorites(request: Request) -> dict[str, Any]:
        user = await _require_user(request)
        service = get_favorites_service(fastapi_app)
        return _dump(await service.get_favorites(user))

    @fastapi_app.post("/api/favorites")
    async def add_favorite(request: Request) -> dict[str, Any]:
        user = await _require_user(request)
        payload = await _read_model(request, FavoriteItemPayload)
        service = get_favorites_service(fastapi_app)
        return _dump(await _library_call(service.add_favorite(user, payload)))

    @fastapi_app.delete("/api/favorites/{item_id}")
    async def remove_favorite(request: Request, item_id: int) -> dict[str, bool]:
        user = await _require_user(request)
        await get_favorites_service(fastapi_app).remove_favorite(user, item_id)
        return {"success": True}

    @fastapi_app.put("/api/favorites/{item_id}/folder")
    async def move_favorite(request: Request, item_id: int) -> dict[str, Any]:
        user = await _require_user(request)
        payload = await _read_model(request, FolderAssignment)
        service = get_favorites_service(fastapi_app)
        return _dump(
            await _library_call(
                service.move_to_folder(user, item_id, payload.folder_id)
            )
        )

    @fastapi_app.post("/api/favorites/folders")
    async def create_folder(request: Request) -> dict[str, Any]:
        user = await _require_user(request)
        payload = await _read_model(request, FolderPayload)
        service = get_favorites_service(fastapi_app)
        return _dump(await _library_call(service.create_folder(user, payload)))

    @fastapi_app.patch("/api/favorites/folders/{folder_id}")
    async def rename_folder(request: Request, folder_id: str) -> dict[str, Any]:
        user = await _require_user(request)
        payload = await _read_model(request, FolderRename)
        service = get_favorites_service(fastapi_app)
        return _dump(
            await _library_call(service.rename_folder(user, folder_id, payload.name))
        )

    @fastapi_app.delete("/api/favorites/folders/{folder_id}")
    async def delete_folder(request: Request, folder_id: str) -> dict[str, bool]:
        user = await _require_user(request)
        await get_favorites_service(fastapi_app).delete_folder(user, folder_id)
        return {"success": True}

    @fastapi_app.delete("/api/favorites/folders/{folder_id}/items/{item_id}")
    async def remove_from_folder(
        request: Request, folder_id: str, item_id: int
    ) -> dict[str, bool]:
        user = await _require_user(request)
        await get_favorites_service(fastapi_app).remove_from_folder(
            user, item_id, folder_id
        )
        return {"success": True}

    # Watchlist

    @fastapi_app.get("/api/watchlist")
    async def get_watchlist(request: Request) -> dict[str, Any]:
        user = await _require_user(request)
        items = await get_watchlist_service(fastapi_app).get_watchlist(user)
        return {"items": _dump_all(items)}

    @fastapi_app.post("/api/watchlist")
    async def add_to_watchlist(request: Request) -> dict[str, Any]:
        user = await _require_user(request)
        payload = await _read_model(request, WatchlistItemPayload)
        service = get_watchlist_service(fastapi_app)
        return _dump(await _library_call(service.add_to_watchlist(user, payload)))

    @fastapi_app.delete("/api/watchlist")
    async def clear_watchlist(request: Request) -> dict[str, bool]:
        user = await _require_user(request)
        await get_watchlist_service(fastapi_app).clear_watchlist(user)
        return {"success": True}

    @fastapi_app.delete("/api/watchlist/{item_id}")
    async def remove_from_watchlist(request: Request, item_id: int) -> dict[str, bool]:
        user = await _require_user(request)
        await get_watchlist_service(fastapi_app).remove_from_watchlist(user, item_id)
        return {"success": True}

    @fastapi_app.post("/api/watchlist/{item_id}/watched")
    async def mark_watched(request: Request, item_id: int) -> dict[str, Any]:
        user = await _require_user(request)
        service = get_watchlist_service(fastapi_app)
        return _dump(await _library_call(service.mark_as_watched(user, item_id)))

    @fastapi_app.delete("/api/watchlist/{item_id}/watched")
    async def mark_unwatched(request: Request, item_id: int) -> dict[str, Any]:
        user = await _require_user(request)
        service = get_watchlist_service(fastapi_app)
        return _dump(await _library_call(service.mark_as_unwatched(user, item_id)))

    # Ratings

    @fastapi_app.get("/api/ratings")
    async def get_ratings(request: Request) -> dict[str, Any]:
        user = await _require_user(request)
        ratings = await get_ratings_service(fastapi_app).get_ratings(user)
        return {"ratings": _dump_all(ratings)}

    @fastapi_app.put("/api/ratings/{movie_id}")
    async def upsert_rating(request: Request, movie_id: int) -> dict[str, Any]:
        user = await _require_user(request)
        payload = await _read_model(request, RatingPayload)
        service = get_ratings_service(fastapi_app)
        return _dump(
            await _library_call(service.upsert_rating(user, movie_id, payload))
        )

    @fastapi_app.delete("/api/ratings/{rating_id}")
    async def remove_rating(request: Request, rating_id: str) -> dict[str, bool]:
        user = await _require_user(request)
        await get_ratings_service(fastapi_app).remove_rating(user, rating_id)
        return {"success": True}

    # Account

    @fastapi_app.get("/api/preferences")
    async def get_preferences(request: Request) -> dict[str, Any]:
        user = await _require_user(request)
        result = await get_account_service(fastapi_app).get_preferences(user)
        return _dump_result(result)

    @fastapi_app.patch("/api/preferences")
    async def update_preferences(request: Request) -> dict[str, Any]:
        user = await _require_user(request)
        changes = await _read_model(request, PreferencesUpdate)
        result = await get_account_service(fastapi_app).update_preferences(
            user, changes
        )
        return _dump_result(result)

    @fastapi_app.get("/api/notifications")
    async def list_notifications(request: Request) -> dict[str, Any]:
        user = await _require_user(request)
        result = await get_account_service(fastapi_app).list_notifications(user)
        return _dump_result(result)

    @fastapi_app.post("/api/notifications")
    async def create_notification(request: Request) -> dict[str, Any]:
        user = await _require_user(request)
        payload = await _read_json(request)
        title = payload.get("title")
        if not isinstance(title, str) or not title.strip():
            raise HTTPException(status_code=400, detail="title is required")
        item_type = payload.get("itemType")
        if item_type not in {None, "movie", "tv"}:
            raise HTTPException(status_code=400, detail="itemType must be movie or tv")
        result = await get_account_service(fastapi_app).create_notification(
            user,
            title=title.strip(),
            message=str(payload.get("message") or ""),
            kind=str(payload.get("type") or "info"),
            item_id=_coerce_int(payload.get("itemId")),
            item_type=item_type,
        )
        return _dump_result(result)

    @fastapi_app.post("/api/notifications/read-all")
    async def mark_all_notifications_read(request: Request) -> dict[str, Any]:
        user = await _require_user(request)
        service = get_account_service(fastapi_app)
        return _dump_result(await service.mark_all_notifications_read(user))

    @fastapi_app.post("/api/notifications/{notification_id}/read")
    async def mark_notification_read(
        request: Request, notification_id: int
    ) -> dict[str, Any]:
        user = await _require_user(request)
        service = get_account_service(fastapi_app)
        return _dump_result(
            await service.mark_notification_read(user, notification_id)
        )

    @fastapi_app.delete("/api/notifications")
    async def clear_notifications(request: Request) -> dict[str, Any]:
        user = await _require_user(request)
        service = get_account_service(fastapi_app)
        return _dump_result(await service.clear_notifications(user))


def _access_token_from_request(request: Request) -> str | None:
    header = request.headers.get("authorization") or ""
    scheme, _, token = header.partition(" ")
    if scheme.lower() == "bearer" and token.strip():
        return token.strip()
    cookie = request.cookies.get(ACCESS_TOKEN_COOKIE)
    return cookie or None


async def _read_json(request: Request) -> dict[str, Any]:
    body = await request.body()
    if not body.strip():
        return {}
    try:
        payload = json.loads(body)
    except ValueError as exc:
        # Covers malformed JSON and bodies that are not valid UTF-8.
        raise HTTPException(status_code=400, detail="Invalid JSON body") from exc
    if not isinstance(payload, dict):
        raise HTTPException(status_code=400, detail="Invalid payload")
    return payload


async def _read_model(request: Request, model: type[ModelT]) -> ModelT:
    payload = await _read_json(request)
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise HTTPException(
            status_code=400, detail=exc.errors(include_url=False, include_context=False)
        ) from exc


async def _read_refs(request: Request) -> list[MediaRef]:
    payload = await _read_json(request)
    raw_items = payload.get("items") or []
    if not isinstance(raw_items, list):
        raise HTTPException(status_code=400, detail="items must be a list")
    try:
        return [MediaRef.model_validate(entry) for entry in raw_items]
    except ValidationError as exc:
        raise HTTPException(
            status_code=400, detail=exc.errors(include_url=False, include_context=False)
        ) from exc


def _auth_http_error(exc: AuthError) -> HTTPException:
    status_code = 503 if exc.status_code == 503 else 400
    return HTTPException(status_code=status_code, detail=exc.message)


def _dump(model: BaseModel) -> dict[str, Any]:
    return model.model_dump(mode="json", by_alias=True)


def _dump_all(models: Iterable[BaseModel]) -> list[dict[str, Any]]:
    return [_dump(model) for model in models]


def _dump_result(result: ActionResult) -> dict[str, Any]:
    data = result.data
    if isinstance(data, BaseModel):
        data = _dump(data)
    elif isinstance(data, list):
        data = [_dump(entry) if isinstance(entry, BaseModel) else entry for entry in data]
    return {"success": result.success, "data": data, "error": result.error}


def _coerce_int(value: Any, *, default: int | None = None) -> int | None:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


app = create_app()


if __name__ == "__main__":  # pragma: no cover - manual execution
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.server_host,
        port=settings.server_port,
        reload=settings.environment == "development",
    )
