"""Catalog queries backing the browse, search and library pages."""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from typing import Iterable, Sequence

from ..browse import BrowseFilters, clamp_page
from ..constants import MAX_CATALOG_PAGES
from ..models import (
    FavoritesContent,
    HydratedContent,
    MediaRef,
    Movie,
    MovieDetails,
    PagedResponse,
    SearchResults,
    TVShow,
    TVShowDetails,
)
from .tmdb import TMDBClient, TMDBError

logger = logging.getLogger(__name__)

UNFILED_FOLDER_KEY = "default"


class CatalogService:
    """Server-side catalog actions built on top of :class:`TMDBClient`."""

    def __init__(self, tmdb_client: TMDBClient):
        self._tmdb = tmdb_client

    @property
    def tmdb(self) -> TMDBClient:
        return self._tmdb

    async def browse_movies(
        self, filters: BrowseFilters, page: int | None = None
    ) -> PagedResponse[Movie]:
        """Discover movies for the filter state.

        Requested pages past the catalog limit are clamped to it and the
        reported page count is capped the same way.
        """

        response = await self._tmdb.discover_movies(
            page=clamp_page(page or filters.page, MAX_CATALOG_PAGES),
            genre=filters.genre,
            year=filters.year,
            sort_by=filters.sort_by,
            provider=filters.provider,
        )
        return _cap_pages(response)

    async def browse_tv(
        self, filters: BrowseFilters, page: int | None = None
    ) -> PagedResponse[TVShow]:
        response = await self._tmdb.discover_tv(
            page=clamp_page(page or filters.page, MAX_CATALOG_PAGES),
            genre=filters.genre,
            year=filters.year,
            sort_by=filters.sort_by,
            provider=filters.provider,
        )
        return _cap_pages(response)

    async def search(self, query: str, page: int = 1) -> SearchResults:
        """Search movies and TV shows concurrently."""

        movies, tv_shows = await asyncio.gather(
            self._tmdb.search_movies(query, page),
            self._tmdb.search_tv(query, page),
        )
        normalised = [
            movie.model_copy(
                update={
                    "video": False,
                    "original_language": movie.original_language or "en",
                    "adult": bool(movie.adult),
                    "vote_count": movie.vote_count or 0,
                    "genre_ids": movie.genre_ids or [],
                    "popularity": movie.popularity or 0,
                }
            )
            for movie in movies.results
        ]
        return SearchResults(
            movies=movies.model_copy(update={"results": normalised}),
            tv_shows=tv_shows,
        )

    async def movies_by_ids(self, ids: Iterable[int]) -> list[MovieDetails]:
        """Hydrate movie ids one at a time, skipping any that fail."""

        movies: list[MovieDetails] = []
        for movie_id in ids:
            try:
                movies.append(await self._tmdb.get_movie_details(movie_id))
            except TMDBError as exc:
                logger.warning("Skipping movie %s during hydration: %s", movie_id, exc)
        return movies

    async def tv_by_ids(self, ids: Iterable[int]) -> list[TVShowDetails]:
        shows: list[TVShowDetails] = []
        for show_id in ids:
            try:
                shows.append(await self._tmdb.get_tv_details(show_id))
            except TMDBError as exc:
                logger.warning("Skipping show %s during hydration: %s", show_id, exc)
        return shows

    async def watchlist_content(self, refs: Sequence[MediaRef]) -> HydratedContent:
        movie_ids, tv_ids = _split_refs(refs)
        movies, tv_shows = await asyncio.gather(
            self.movies_by_ids(movie_ids), self.tv_by_ids(tv_ids)
        )
        return HydratedContent(movies=movies, tv_shows=tv_shows)

    async def favorites_content(self, refs: Sequence[MediaRef]) -> FavoritesContent:
        """Hydrate favorites and group them by folder.

        Unfiled items are grouped under ``"default"``.
        """

        grouped: dict[str, list[MediaRef]] = defaultdict(list)
        for ref in refs:
            grouped[ref.folder_id or UNFILED_FOLDER_KEY].append(ref)

        folder_keys = list(grouped)
        folder_contents = await asyncio.gather(
            *(self.watchlist_content(grouped[key]) for key in folder_keys)
        )
        by_folder = dict(zip(folder_keys, folder_contents))

        # Flat lists keep the caller's ordering rather than folder ordering.
        details_by_key: dict[tuple[str, int], MovieDetails | TVShowDetails] = {}
        for content in folder_contents:
            for movie in content.movies:
                details_by_key[("movie", movie.id)] = movie
            for show in content.tv_shows:
                details_by_key[("tv", show.id)] = show

        movies: list[MovieDetails] = []
        tv_shows: list[TVShowDetails] = []
        for ref in refs:
            found = details_by_key.get((ref.type, ref.id))
            if isinstance(found, MovieDetails):
                movies.append(found)
            elif isinstance(found, TVShowDetails):
                tv_shows.append(found)

        return FavoritesContent(movies=movies, tv_shows=tv_shows, by_folder=by_folder)


def _split_refs(refs: Sequence[MediaRef]) -> tuple[list[int], list[int]]:
    movie_ids = [ref.id for ref in refs if ref.type == "movie"]
    tv_ids = [ref.id for ref in refs if ref.type == "tv"]
    return movie_ids, tv_ids


def _cap_pages(response):
    if response.total_pages > MAX_CATALOG_PAGES:
        return response.model_copy(update={"total_pages": MAX_CATALOG_PAGES})
    return response
