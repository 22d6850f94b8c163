from __future__ import annotations

import asyncio
from typing import cast

import httpx

from app.browse import BrowseFilters
from app.config import Settings
from app.models import MediaRef, Movie, MovieDetails, PagedResponse, TVShow, TVShowDetails
from app.services.catalog import CatalogService
from app.services.tmdb import TMDBClient, TMDBError


class StubTMDBClient(TMDBClient):
    """TMDB client stub serving canned catalog data."""

    def __init__(self, failing_ids: set[int] | None = None) -> None:
        super().__init__(Settings(_env_file=None), cast(httpx.AsyncClient, object()))
        self.failing_ids = failing_ids or set()
        self.detail_calls: list[tuple[str, int]] = []
        self.discover_calls: list[dict[str, object]] = []

    async def get_movie_details(self, movie_id: int) -> MovieDetails:  # type: ignore[override]
        self.detail_calls.append(("movie", movie_id))
        if movie_id in self.failing_ids:
            raise TMDBError(404, "Not Found")
        return MovieDetails(id=movie_id, title=f"Movie {movie_id}")

    async def get_tv_details(self, show_id: int) -> TVShowDetails:  # type: ignore[override]
        self.detail_calls.append(("tv", show_id))
        if show_id in self.failing_ids:
            raise TMDBError(404, "Not Found")
        return TVShowDetails(id=show_id, name=f"Show {show_id}")

    async def discover_movies(self, **kwargs) -> PagedResponse[Movie]:  # type: ignore[override]
        self.discover_calls.append(kwargs)
        return PagedResponse[Movie](
            page=kwargs["page"],
            results=[Movie(id=1, title="Heat")],
            total_pages=1200,
            total_results=24000,
        )

    async def discover_tv(self, **kwargs) -> PagedResponse[TVShow]:  # type: ignore[override]
        self.discover_calls.append(kwargs)
        return PagedResponse[TVShow](page=kwargs["page"], total_pages=12, total_results=230)

    async def search_movies(self, query: str, page: int = 1) -> PagedResponse[Movie]:  # type: ignore[override]
        return PagedResponse[Movie](
            page=page,
            results=[Movie(id=7, title=query.title(), original_language=None, video=True)],
            total_pages=1,
            total_results=1,
        )

    async def search_tv(self, query: str, page: int = 1) -> PagedResponse[TVShow]:  # type: ignore[override]
        return PagedResponse[TVShow](
            page=page, results=[TVShow(id=8, name=query.title())], total_pages=1
        )


def test_movies_by_ids_skips_failures_and_keeps_order() -> None:
    tmdb = StubTMDBClient(failing_ids={2})
    service = CatalogService(tmdb)

    movies = asyncio.run(service.movies_by_ids([3, 2, 1]))

    assert [movie.id for movie in movies] == [3, 1]
    assert tmdb.detail_calls == [("movie", 3), ("movie", 2), ("movie", 1)]


def test_browse_movies_caps_total_pages() -> None:
    tmdb = StubTMDBClient()
    service = CatalogService(tmdb)
    filters = BrowseFilters(genre=80, year=1995, provider=8, page=4)

    page = asyncio.run(service.browse_movies(filters))

    assert page.total_pages == 500
    assert tmdb.discover_calls == [
        {
            "page": 4,
            "genre": 80,
            "year": 1995,
            "sort_by": "popularity.desc",
            "provider": 8,
        }
    ]


def test_browse_clamps_requested_page_to_catalog_limit() -> None:
    tmdb = StubTMDBClient()
    service = CatalogService(tmdb)

    asyncio.run(service.browse_movies(BrowseFilters(page=600)))
    asyncio.run(service.browse_tv(BrowseFilters(), page=9999))

    assert [call["page"] for call in tmdb.discover_calls] == [500, 500]


def test_browse_tv_keeps_small_page_counts() -> None:
    service = CatalogService(StubTMDBClient())

    page = asyncio.run(service.browse_tv(BrowseFilters(), page=2))

    assert page.page == 2
    assert page.total_pages == 12


def test_search_combines_results_and_normalises_movies() -> None:
    service = CatalogService(StubTMDBClient())

    results = asyncio.run(service.search("heat"))

    movie = results.movies.results[0]
    assert movie.original_language == "en"
    assert movie.video is False
    assert movie.vote_count == 0
    assert movie.genre_ids == []
    assert [show.id for show in results.tv_shows.results] == [8]


def test_watchlist_content_splits_by_type() -> None:
    service = CatalogService(StubTMDBClient(failing_ids={99}))
    refs = [
        MediaRef(id=1, type="movie"),
        MediaRef(id=10, type="tv"),
        MediaRef(id=99, type="movie"),
    ]

    content = asyncio.run(service.watchlist_content(refs))

    assert [movie.id for movie in content.movies] == [1]
    assert [show.id for show in content.tv_shows] == [10]


def test_favorites_content_groups_by_folder() -> None:
    service = CatalogService(StubTMDBClient())
    refs = [
        MediaRef(id=5, type="movie", folder_id="weekend"),
        MediaRef(id=2, type="movie"),
        MediaRef(id=10, type="tv", folder_id="weekend"),
        MediaRef(id=1, type="movie", folder_id="weekend"),
    ]

    content = asyncio.run(service.favorites_content(refs))

    assert set(content.by_folder) == {"weekend", "default"}
    weekend = content.by_folder["weekend"]
    assert [movie.id for movie in weekend.movies] == [5, 1]
    assert [show.id for show in weekend.tv_shows] == [10]
    assert [movie.id for movie in content.by_folder["default"].movies] == [2]
    assert [movie.id for movie in content.movies] == [5, 2, 1]
    assert [show.id for show in content.tv_shows] == [10]
    dumped = content.model_dump(by_alias=True)
    assert "byFolder" in dumped and "tvShows" in dumped
