"""Client for The Movie Database (TMDB) catalog API."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Literal, Mapping

import httpx

from ..config import Settings
from ..constants import DEFAULT_SORT, IMAGE_SIZES, ImageKind
from ..models import (
    Credits,
    Genre,
    Movie,
    MovieDetails,
    PagedResponse,
    TVShow,
    TVShowDetails,
    VideoList,
    WatchProvider,
)

logger = logging.getLogger(__name__)

TimeWindow = Literal["day", "week"]


class TMDBError(RuntimeError):
    """Raised when TMDB answers with an error status or cannot be reached."""

    def __init__(self, status_code: int | None, reason: str):
        self.status_code = status_code
        self.reason = reason
        if status_code is None:
            super().__init__(f"TMDB API Error: {reason}")
        else:
            super().__init__(f"TMDB API Error: {status_code} {reason}")


class TMDBClient:
    """Thin wrapper around the TMDB v3 HTTP API."""

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient):
        self._settings = settings
        self._client = http_client
        self._image_base_url = settings.tmdb_image_base_url.rstrip("/")

    async def fetch(
        self, endpoint: str, params: Mapping[str, Any] | None = None
    ) -> dict[str, Any]:
        """GET ``endpoint`` and return the decoded JSON body.

        Parameters whose value is ``None`` are dropped so optional filters
        can be passed straight through.
        """

        query: dict[str, Any] = {"api_key": self._settings.tmdb_api_key or ""}
        for key, value in (params or {}).items():
            if value is None:
                continue
            if isinstance(value, bool):
                value = "true" if value else "false"
            query[key] = value

        try:
            response = await self._client.get(endpoint.lstrip("/"), params=query)
        except httpx.HTTPError as exc:
            logger.warning("TMDB request to %s failed: %s", endpoint, exc)
            raise TMDBError(None, exc.__class__.__name__) from exc

        if response.status_code >= 400:
            raise TMDBError(response.status_code, response.reason_phrase)

        try:
            data = response.json()
        except ValueError as exc:
            raise TMDBError(response.status_code, "Invalid JSON payload") from exc
        if not isinstance(data, dict):
            raise TMDBError(response.status_code, "Unexpected response structure")
        return data

    def image_url(
        self,
        path: str | None,
        kind: ImageKind = "poster",
        size: str = "medium",
    ) -> str | None:
        """Build a display URL for a TMDB image path."""

        if not path:
            return None
        if path.startswith("http"):
            return path
        sizes = IMAGE_SIZES[kind]
        segment = sizes.get(size) or sizes.get("medium") or next(iter(sizes.values()))
        if not path.startswith("/"):
            path = f"/{path}"
        return f"{self._image_base_url}{segment}{path}"

    # Movies

    async def get_trending(self, time_window: TimeWindow = "week") -> list[Movie]:
        data = await self.fetch(f"/trending/movie/{time_window}")
        return [Movie.model_validate(entry) for entry in data.get("results", [])]

    async def get_popular(self, page: int = 1) -> PagedResponse[Movie]:
        return await self._movie_page("/movie/popular", {"page": page})

    async def get_now_playing(self, page: int = 1) -> PagedResponse[Movie]:
        return await self._movie_page("/movie/now_playing", {"page": page})

    async def get_top_rated(self, page: int = 1) -> PagedResponse[Movie]:
        return await self._movie_page("/movie/top_rated", {"page": page})

    async def get_upcoming(self, page: int = 1) -> PagedResponse[Movie]:
        return await self._movie_page("/movie/upcoming", {"page": page})

    async def get_movie_details(self, movie_id: int) -> MovieDetails:
        """Fetch a movie with credits, recommendations, videos and providers."""

        movie, credits, recommendations, videos, providers = await asyncio.gather(
            self.fetch(f"/movie/{movie_id}"),
            self.fetch(f"/movie/{movie_id}/credits"),
            self.fetch(f"/movie/{movie_id}/recommendations", {"page": 1}),
            self.fetch(f"/movie/{movie_id}/videos"),
            self._optional_fetch(f"/movie/{movie_id}/watch/providers"),
        )
        return MovieDetails.model_validate(
            {
                **movie,
                "credits": Credits.model_validate(credits),
                "recommendations": PagedResponse[Movie].model_validate(recommendations),
                "videos": VideoList.model_validate(videos),
                "watch_providers": providers,
            }
        )

    async def get_similar_movies(
        self, movie_id: int, page: int = 1
    ) -> PagedResponse[Movie]:
        return await self._movie_page(f"/movie/{movie_id}/similar", {"page": page})

    async def get_movie_credits(self, movie_id: int) -> Credits:
        return Credits.model_validate(await self.fetch(f"/movie/{movie_id}/credits"))

    async def search_movies(self, query: str, page: int = 1) -> PagedResponse[Movie]:
        return await self._movie_page("/search/movie", {"query": query, "page": page})

    async def discover_movies(
        self,
        *,
        page: int = 1,
        query: str | None = None,
        genre: int | None = None,
        year: int | None = None,
        min_rating: float | None = None,
        max_rating: float | None = None,
        sort_by: str | None = None,
        provider: int | None = None,
    ) -> PagedResponse[Movie]:
        params: dict[str, Any] = {
            "page": page or 1,
            "query": query,
            "with_genres": genre,
            "primary_release_year": year,
            "vote_average.gte": min_rating,
            "vote_average.lte": max_rating,
            "sort_by": sort_by or DEFAULT_SORT,
        }
        if provider:
            params["with_watch_providers"] = provider
            params["watch_region"] = self._settings.tmdb_watch_region
        return await self._movie_page("/discover/movie", params)

    async def get_genres(self) -> list[Genre]:
        data = await self.fetch("/genre/movie/list")
        return [Genre.model_validate(entry) for entry in data.get("genres", [])]

    async def get_movies_by_genre(
        self, genre_id: int, page: int = 1
    ) -> PagedResponse[Movie]:
        return await self.discover_movies(genre=genre_id, page=page)

    async def get_movies_by_year(self, year: int, page: int = 1) -> PagedResponse[Movie]:
        return await self.discover_movies(year=year, page=page)

    async def get_movie_providers(self) -> list[WatchProvider]:
        return await self._providers("/watch/providers/movie")

    # TV shows

    async def get_trending_tv(self, time_window: TimeWindow = "week") -> list[TVShow]:
        data = await self.fetch(f"/trending/tv/{time_window}")
        return [TVShow.model_validate(entry) for entry in data.get("results", [])]

    async def get_popular_tv(self, page: int = 1) -> PagedResponse[TVShow]:
        return await self._tv_page("/tv/popular", {"page": page})

    async def get_top_rated_tv(self, page: int = 1) -> PagedResponse[TVShow]:
        return await self._tv_page("/tv/top_rated", {"page": page})

    async def get_airing_today_tv(self, page: int = 1) -> PagedResponse[TVShow]:
        return await self._tv_page("/tv/airing_today", {"page": page})

    async def get_on_the_air_tv(self, page: int = 1) -> PagedResponse[TVShow]:
        return await self._tv_page("/tv/on_the_air", {"page": page})

    async def get_tv_details(self, show_id: int) -> TVShowDetails:
        """Fetch a show with credits, recommendations, videos and providers."""

        show, credits, recommendations, videos, providers = await asyncio.gather(
            self.fetch(f"/tv/{show_id}"),
            self.fetch(f"/tv/{show_id}/credits"),
            self.fetch(f"/tv/{show_id}/recommendations", {"page": 1}),
            self.fetch(f"/tv/{show_id}/videos"),
            self._optional_fetch(f"/tv/{show_id}/watch/providers"),
        )
        return TVShowDetails.model_validate(
            {
                **show,
                "credits": Credits.model_validate(credits),
                "recommendations": PagedResponse[TVShow].model_validate(recommendations),
                "videos": VideoList.model_validate(videos),
                "watch_providers": providers,
            }
        )

    async def search_tv(self, query: str, page: int = 1) -> PagedResponse[TVShow]:
        return await self._tv_page("/search/tv", {"query": query, "page": page})

    async def get_tv_genres(self) -> list[Genre]:
        data = await self.fetch("/genre/tv/list")
        return [Genre.model_validate(entry) for entry in data.get("genres", [])]

    async def get_tv_by_genre(self, genre_id: int, page: int = 1) -> PagedResponse[TVShow]:
        return await self.discover_tv(genre=genre_id, page=page)

    async def discover_tv(
        self,
        *,
        page: int = 1,
        genre: int | None = None,
        year: int | None = None,
        sort_by: str | None = None,
        provider: int | None = None,
    ) -> PagedResponse[TVShow]:
        params: dict[str, Any] = {
            "page": page or 1,
            "with_genres": genre,
            "first_air_date_year": year,
            "sort_by": sort_by or DEFAULT_SORT,
        }
        if provider:
            params["with_watch_providers"] = provider
            params["watch_region"] = self._settings.tmdb_watch_region
        return await self._tv_page("/discover/tv", params)

    async def get_tv_providers(self) -> list[WatchProvider]:
        return await self._providers("/watch/providers/tv")

    # Helpers

    async def _movie_page(
        self, endpoint: str, params: Mapping[str, Any]
    ) -> PagedResponse[Movie]:
        return PagedResponse[Movie].model_validate(await self.fetch(endpoint, params))

    async def _tv_page(
        self, endpoint: str, params: Mapping[str, Any]
    ) -> PagedResponse[TVShow]:
        return PagedResponse[TVShow].model_validate(await self.fetch(endpoint, params))

    async def _providers(self, endpoint: str) -> list[WatchProvider]:
        data = await self.fetch(endpoint)
        return [WatchProvider.model_validate(entry) for entry in data.get("results", [])]

    async def _optional_fetch(self, endpoint: str) -> dict[str, Any] | None:
        try:
            return await self.fetch(endpoint)
        except TMDBError as exc:
            logger.debug("Optional TMDB lookup %s failed: %s", endpoint, exc)
            return None
