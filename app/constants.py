"""Static catalog reference data shared by the server and client stores."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal


MediaType = Literal["movie", "tv"]
ImageKind = Literal["poster", "backdrop", "profile"]

IMAGE_SIZES: dict[str, dict[str, str]] = {
    "poster": {
        "small": "/w185",
        "medium": "/w342",
        "large": "/w500",
        "xlarge": "/w780",
    },
    "backdrop": {
        "small": "/w300",
        "medium": "/w780",
        "large": "/w1280",
        "original": "/original",
    },
    "profile": {
        "small": "/w45",
        "medium": "/w185",
        "large": "/h632",
        "original": "/original",
    },
}


@dataclass(frozen=True)
class GenreDefinition:
    """A catalog genre offered as a browse filter."""

    id: int
    name: str


GENRES: tuple[GenreDefinition, ...] = (
    GenreDefinition(id=28, name="Action"),
    GenreDefinition(id=12, name="Adventure"),
    GenreDefinition(id=16, name="Animation"),
    GenreDefinition(id=35, name="Comedy"),
    GenreDefinition(id=80, name="Crime"),
    GenreDefinition(id=99, name="Documentary"),
    GenreDefinition(id=18, name="Drama"),
    GenreDefinition(id=10751, name="Family"),
    GenreDefinition(id=14, name="Fantasy"),
    GenreDefinition(id=36, name="History"),
    GenreDefinition(id=27, name="Horror"),
    GenreDefinition(id=10402, name="Music"),
    GenreDefinition(id=9648, name="Mystery"),
    GenreDefinition(id=10749, name="Romance"),
    GenreDefinition(id=878, name="Science Fiction"),
    GenreDefinition(id=53, name="Thriller"),
    GenreDefinition(id=10752, name="War"),
    GenreDefinition(id=37, name="Western"),
)


@dataclass(frozen=True)
class SortOption:
    """A discover sort order and its display label."""

    value: str
    label: str


SORT_OPTIONS: tuple[SortOption, ...] = (
    SortOption(value="popularity.desc", label="Most Popular"),
    SortOption(value="popularity.asc", label="Least Popular"),
    SortOption(value="vote_average.desc", label="Highest Rated"),
    SortOption(value="vote_average.asc", label="Lowest Rated"),
    SortOption(value="release_date.desc", label="Newest First"),
    SortOption(value="release_date.asc", label="Oldest First"),
)

DEFAULT_SORT = "popularity.desc"
SORT_VALUES: frozenset[str] = frozenset(option.value for option in SORT_OPTIONS)

ITEMS_PER_PAGE = 20
# TMDB refuses discover pages beyond this.
MAX_CATALOG_PAGES = 500

RATING_MIN = 1
RATING_MAX = 10

NOTIFICATION_LIMIT = 50
RECENT_SEARCH_LIMIT = 10
TOP_RATED_LIMIT = 10

STORAGE_KEYS = {
    "favorites": "filmazia-favorites",
    "watchlist": "filmazia-watchlist",
    "ratings": "filmazia-ratings",
    "settings": "filmazia-settings",
    "ui": "filmazia-ui",
}
