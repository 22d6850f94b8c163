"""Pydantic models describing catalog payloads and library records."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any, Generic, Literal, TypeVar

from pydantic import (
    AfterValidator,
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)

from .constants import RATING_MAX, RATING_MIN, MediaType
from .utils import ensure_utc, utcnow

T = TypeVar("T")

Timestamp = Annotated[datetime, AfterValidator(ensure_utc)]

PosterQuality = Literal["small", "medium", "large", "xlarge"]
ViewMode = Literal["grid", "list"]


class CatalogModel(BaseModel):
    """Base for TMDB payloads; unknown upstream fields are preserved."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)


class Genre(CatalogModel):
    id: int
    name: str


class WatchProvider(CatalogModel):
    id: int = Field(validation_alias=AliasChoices("provider_id", "id"))
    name: str = Field(validation_alias=AliasChoices("provider_name", "name"))
    logo_path: str | None = None


class Movie(CatalogModel):
    """Movie summary as returned by list and search endpoints."""

    id: int
    title: str = ""
    original_title: str | None = None
    overview: str = ""
    poster_path: str | None = None
    backdrop_path: str | None = None
    release_date: str | None = None
    vote_average: float = 0.0
    vote_count: int = 0
    popularity: float = 0.0
    genre_ids: list[int] = Field(default_factory=list)
    adult: bool = False
    original_language: str | None = None
    video: bool = False


class TVShow(CatalogModel):
    """TV show summary as returned by list and search endpoints."""

    id: int
    name: str = ""
    original_name: str | None = None
    overview: str = ""
    poster_path: str | None = None
    backdrop_path: str | None = None
    first_air_date: str | None = None
    vote_average: float = 0.0
    vote_count: int = 0
    popularity: float = 0.0
    genre_ids: list[int] = Field(default_factory=list)
    adult: bool = False
    original_language: str | None = None
    origin_country: list[str] = Field(default_factory=list)


class PagedResponse(CatalogModel, Generic[T]):
    page: int = 1
    results: list[T] = Field(default_factory=list)
    total_pages: int = 0
    total_results: int = 0


class Credits(CatalogModel):
    cast: list[dict[str, Any]] = Field(default_factory=list)
    crew: list[dict[str, Any]] = Field(default_factory=list)


class VideoList(CatalogModel):
    results: list[dict[str, Any]] = Field(default_factory=list)


class MovieDetails(Movie):
    genres: list[Genre] = Field(default_factory=list)
    runtime: int | None = None
    tagline: str | None = None
    credits: Credits = Field(default_factory=Credits)
    recommendations: PagedResponse[Movie] = Field(default_factory=PagedResponse[Movie])
    videos: VideoList = Field(default_factory=VideoList)
    watch_providers: dict[str, Any] | None = None


class TVShowDetails(TVShow):
    genres: list[Genre] = Field(default_factory=list)
    number_of_seasons: int | None = None
    number_of_episodes: int | None = None
    episode_run_time: list[int] = Field(default_factory=list)
    credits: Credits = Field(default_factory=Credits)
    recommendations: PagedResponse[TVShow] = Field(
        default_factory=PagedResponse[TVShow]
    )
    videos: VideoList = Field(default_factory=VideoList)
    watch_providers: dict[str, Any] | None = None


class SearchResults(BaseModel):
    """Combined movie and TV search response."""

    model_config = ConfigDict(populate_by_name=True)

    movies: PagedResponse[Movie]
    tv_shows: PagedResponse[TVShow] = Field(alias="tvShows")


class MediaRef(BaseModel):
    """A catalog item reference used to hydrate library lists."""

    model_config = ConfigDict(populate_by_name=True)

    id: int
    type: MediaType = "movie"
    folder_id: str | None = Field(default=None, alias="folderId")


class HydratedContent(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    movies: list[MovieDetails] = Field(default_factory=list)
    tv_shows: list[TVShowDetails] = Field(default_factory=list, alias="tvShows")


class FavoritesContent(HydratedContent):
    by_folder: dict[str, HydratedContent] = Field(
        default_factory=dict, alias="byFolder"
    )


class LibraryModel(BaseModel):
    """Base for records shared between the server routes and client stores."""

    model_config = ConfigDict(populate_by_name=True)


class FavoriteItemPayload(LibraryModel):
    id: int
    type: MediaType
    title: str = Field(min_length=1)
    poster_path: str | None = None
    folder_id: str | None = Field(default=None, alias="folderId")


class FavoriteEntry(FavoriteItemPayload):
    added_at: Timestamp = Field(default_factory=utcnow, alias="addedAt")


class FavoriteFolder(LibraryModel):
    id: str = Field(min_length=1, max_length=64)
    name: str = Field(min_length=1, max_length=120)
    movie_ids: list[int] = Field(default_factory=list, alias="movieIds")
    created_at: Timestamp = Field(default_factory=utcnow, alias="createdAt")


class FavoritesSnapshot(LibraryModel):
    items: list[FavoriteEntry] = Field(default_factory=list)
    folders: list[FavoriteFolder] = Field(default_factory=list)


def _clean_folder_name(value: str) -> str:
    stripped = value.strip()
    if not stripped:
        raise ValueError("Folder name may not be blank")
    return stripped


class FolderRename(LibraryModel):
    name: str = Field(min_length=1, max_length=120)

    @field_validator("name")
    @classmethod
    def _strip_name(cls, value: str) -> str:
        return _clean_folder_name(value)


class FolderPayload(FolderRename):
    id: str = Field(min_length=1, max_length=64)


class FolderAssignment(LibraryModel):
    folder_id: str | None = Field(default=None, alias="folderId")


class WatchlistItemPayload(LibraryModel):
    id: int
    type: MediaType
    title: str = Field(min_length=1)
    poster_path: str | None = None


class WatchlistEntry(WatchlistItemPayload):
    added_at: Timestamp = Field(default_factory=utcnow, alias="addedAt")
    watched: bool = False
    watched_at: Timestamp | None = Field(default=None, alias="watchedAt")


class RatingPayload(LibraryModel):
    # Client-chosen id, used when the rating is first created.
    id: str | None = Field(default=None, min_length=1, max_length=64)
    movie_title: str = Field(alias="movieTitle")
    movie_poster: str | None = Field(default=None, alias="moviePoster")
    rating: int = Field(ge=RATING_MIN, le=RATING_MAX)
    review: str | None = None


class UserRating(RatingPayload):
    id: str
    movie_id: int = Field(alias="movieId")
    created_at: Timestamp = Field(default_factory=utcnow, alias="createdAt")


class UserPreferences(LibraryModel):
    poster_quality: PosterQuality = Field(default="medium", alias="posterQuality")
    view_mode: ViewMode = Field(default="grid", alias="viewMode")
    show_ratings: bool = Field(default=True, alias="showRatings")
    show_release_year: bool = Field(default=True, alias="showReleaseYear")
    genre_alerts_enabled: bool = Field(default=False, alias="genreAlertsEnabled")
    favorite_genres: list[int] = Field(default_factory=list, alias="favoriteGenres")
    watchlist_reminders: bool = Field(default=False, alias="watchlistReminders")
    private_profile: bool = Field(default=False, alias="privateProfile")


class PreferencesUpdate(LibraryModel):
    """Partial preferences update; unset fields are left untouched."""

    poster_quality: PosterQuality | None = Field(default=None, alias="posterQuality")
    view_mode: ViewMode | None = Field(default=None, alias="viewMode")
    show_ratings: bool | None = Field(default=None, alias="showRatings")
    show_release_year: bool | None = Field(default=None, alias="showReleaseYear")
    genre_alerts_enabled: bool | None = Field(default=None, alias="genreAlertsEnabled")
    favorite_genres: list[int] | None = Field(default=None, alias="favoriteGenres")
    watchlist_reminders: bool | None = Field(default=None, alias="watchlistReminders")
    private_profile: bool | None = Field(default=None, alias="privateProfile")

    def changes(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


class Notification(LibraryModel):
    id: int
    type: str = "info"
    title: str
    message: str = ""
    item_id: int | None = Field(default=None, alias="itemId")
    item_type: MediaType | None = Field(default=None, alias="itemType")
    is_read: bool = Field(default=False, alias="isRead")
    created_at: Timestamp = Field(default_factory=utcnow, alias="createdAt")


class ActionResult(BaseModel):
    """Outcome of an account action, mirrored to the caller for display."""

    success: bool
    data: Any = None
    error: str | None = None

    @classmethod
    def ok(cls, data: Any = None) -> "ActionResult":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: str) -> "ActionResult":
        return cls(success=False, error=error)


class AuthUser(LibraryModel):
    id: str
    email: str
    name: str | None = None
    avatar_url: str | None = Field(default=None, alias="avatarUrl")


class AuthSession(LibraryModel):
    access_token: str = Field(alias="accessToken")
    refresh_token: str | None = Field(default=None, alias="refreshToken")
    expires_in: int | None = Field(default=None, alias="expiresIn")
    user: AuthUser | None = None


class SignUpPayload(LibraryModel):
    email: str = Field(min_length=3)
    password: str = Field(min_length=6)
    name: str = ""
    avatar_url: str | None = Field(
        default=None,
        validation_alias=AliasChoices("avatar_url", "avatarUrl", "avatar"),
    )

    @field_validator("avatar_url", mode="before")
    @classmethod
    def _strip_blank(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip() or None
        return value


class SignInPayload(LibraryModel):
    email: str
    password: str
