"""Server-side favorites, watchlist, ratings and account actions."""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, TypeVar

import pytest

from app.database import Database
from app.models import (
    AuthUser,
    FavoriteItemPayload,
    FolderPayload,
    PreferencesUpdate,
    RatingPayload,
    WatchlistItemPayload,
)
from app.services.account import AccountService
from app.services.favorites import FavoritesService
from app.services.ratings import RatingsService
from app.services.watchlist import WatchlistService

T = TypeVar("T")

VIEWER = AuthUser(id="user-viewer", email="viewer@example.com", name="Viewer")
OTHER = AuthUser(id="user-other", email="other@example.com")

MATRIX = FavoriteItemPayload(id=603, type="movie", title="The Matrix", poster_path="/m.jpg")
THRONES = FavoriteItemPayload(id=1399, type="tv", title="Game of Thrones")


def run_with_database(
    tmp_path, scenario: Callable[[Database], Awaitable[T]]
) -> T:
    """Run ``scenario`` against a fresh SQLite database."""

    async def _run() -> T:
        database = Database(f"sqlite+aiosqlite:///{tmp_path / 'library.db'}")
        await database.create_all()
        try:
            return await scenario(database)
        finally:
            await database.dispose()

    return asyncio.run(_run())


def test_delete_folder_unfiles_members_without_deleting_them(tmp_path) -> None:
    async def scenario(database: Database):
        service = FavoritesService(database.session_factory)
        await service.create_folder(VIEWER, FolderPayload(id="weekend", name=" Weekend "))
        await service.add_favorite(VIEWER, MATRIX.model_copy(update={"folder_id": "weekend"}))
        await service.add_favorite(VIEWER, THRONES)
        await service.move_to_folder(VIEWER, THRONES.id, "weekend")
        before = await service.get_favorites(VIEWER)
        await service.delete_folder(VIEWER, "weekend")
        after = await service.get_favorites(VIEWER)
        return before, after

    before, after = run_with_database(tmp_path, scenario)

    assert before.folders[0].name == "Weekend"
    assert sorted(before.folders[0].movie_ids) == [603, 1399]
    assert after.folders == []
    assert {item.id: item.folder_id for item in after.items} == {603: None, 1399: None}


def test_add_favorite_upsert_resets_folder(tmp_path) -> None:
    async def scenario(database: Database):
        service = FavoritesService(database.session_factory)
        await service.create_folder(VIEWER, FolderPayload(id="noir", name="Noir"))
        await service.add_favorite(VIEWER, MATRIX.model_copy(update={"folder_id": "noir"}))
        await service.add_favorite(
            VIEWER, MATRIX.model_copy(update={"title": "The Matrix (1999)"})
        )
        return await service.get_favorites(VIEWER)

    snapshot = run_with_database(tmp_path, scenario)

    assert len(snapshot.items) == 1
    assert snapshot.items[0].title == "The Matrix (1999)"
    assert snapshot.items[0].folder_id is None
    assert snapshot.folders[0].movie_ids == []


def test_move_to_folder_rejects_foreign_or_missing_folders(tmp_path) -> None:
    async def scenario(database: Database):
        service = FavoritesService(database.session_factory)
        await service.create_folder(OTHER, FolderPayload(id="theirs", name="Theirs"))
        await service.add_favorite(VIEWER, MATRIX)
        errors = []
        for item_id, folder_id in ((603, "theirs"), (603, "missing"), (1, None)):
            try:
                await service.move_to_folder(VIEWER, item_id, folder_id)
            except LookupError as exc:
                errors.append(str(exc))
        duplicate = None
        try:
            await service.create_folder(OTHER, FolderPayload(id="theirs", name="Again"))
        except ValueError as exc:
            duplicate = str(exc)
        return errors, duplicate

    errors, duplicate = run_with_database(tmp_path, scenario)

    assert errors == [
        "Folder theirs not found",
        "Folder missing not found",
        "Favorite 1 not found",
    ]
    assert duplicate == "Folder theirs already exists"


def test_remove_from_folder_only_clears_matching_folder(tmp_path) -> None:
    async def scenario(database: Database):
        service = FavoritesService(database.session_factory)
        await service.create_folder(VIEWER, FolderPayload(id="a", name="A"))
        await service.create_folder(VIEWER, FolderPayload(id="b", name="B"))
        await service.add_favorite(VIEWER, MATRIX.model_copy(update={"folder_id": "a"}))
        await service.remove_from_folder(VIEWER, 603, "b")
        unchanged = await service.get_favorites(VIEWER)
        await service.remove_from_folder(VIEWER, 603, "a")
        cleared = await service.get_favorites(VIEWER)
        renamed = await service.rename_folder(VIEWER, "b", "Bee")
        return unchanged, cleared, renamed

    unchanged, cleared, renamed = run_with_database(tmp_path, scenario)

    assert unchanged.items[0].folder_id == "a"
    assert cleared.items[0].folder_id is None
    assert renamed.name == "Bee"


def test_favorites_are_scoped_per_user(tmp_path) -> None:
    async def scenario(database: Database):
        service = FavoritesService(database.session_factory)
        await service.add_favorite(VIEWER, MATRIX)
        await service.add_favorite(OTHER, THRONES)
        await service.remove_favorite(OTHER, MATRIX.id)
        return await service.get_favorites(VIEWER), await service.get_favorites(OTHER)

    mine, theirs = run_with_database(tmp_path, scenario)

    assert [item.id for item in mine.items] == [603]
    assert [item.id for item in theirs.items] == [1399]


def test_watchlist_watched_state_round_trip(tmp_path) -> None:
    payload = WatchlistItemPayload(id=27205, type="movie", title="Inception")

    async def scenario(database: Database):
        service = WatchlistService(database.session_factory)
        await service.add_to_watchlist(VIEWER, payload)
        watched = await service.mark_as_watched(VIEWER, 27205)
        unwatched = await service.mark_as_unwatched(VIEWER, 27205)
        await service.mark_as_watched(VIEWER, 27205)
        readded = await service.add_to_watchlist(VIEWER, payload)
        missing = None
        try:
            await service.mark_as_watched(VIEWER, 1)
        except LookupError as exc:
            missing = exc
        await service.clear_watchlist(VIEWER)
        remaining = await service.get_watchlist(VIEWER)
        return watched, unwatched, readded, missing, remaining

    watched, unwatched, readded, missing, remaining = run_with_database(
        tmp_path, scenario
    )

    assert watched.watched is True and watched.watched_at is not None
    assert unwatched.watched is False and unwatched.watched_at is None
    assert readded.watched is False and readded.watched_at is None
    assert isinstance(missing, LookupError)
    assert remaining == []


def test_ratings_upsert_per_movie_and_list_newest_first(tmp_path) -> None:
    async def scenario(database: Database):
        service = RatingsService(database.session_factory)
        first = await service.upsert_rating(
            VIEWER, 603, RatingPayload(movie_title="The Matrix", rating=7)
        )
        updated = await service.upsert_rating(
            VIEWER, 603, RatingPayload(movie_title="The Matrix", rating=9, review="Still great")
        )
        await service.upsert_rating(
            VIEWER, 27205, RatingPayload(movie_title="Inception", rating=8)
        )
        listed = await service.get_ratings(VIEWER)
        await service.remove_rating(VIEWER, first.id)
        remaining = await service.get_ratings(VIEWER)
        return first, updated, listed, remaining

    first, updated, listed, remaining = run_with_database(tmp_path, scenario)

    assert updated.id == first.id
    assert updated.rating == 9
    assert updated.review == "Still great"
    assert [rating.movie_id for rating in listed] == [27205, 603]
    assert [rating.movie_id for rating in remaining] == [27205]


def test_ratings_keep_client_chosen_ids(tmp_path) -> None:
    async def scenario(database: Database):
        service = RatingsService(database.session_factory)
        mine = await service.upsert_rating(
            VIEWER, 603, RatingPayload(id="local-1", movie_title="The Matrix", rating=7)
        )
        again = await service.upsert_rating(
            VIEWER, 603, RatingPayload(id="local-2", movie_title="The Matrix", rating=8)
        )
        theirs = await service.upsert_rating(
            OTHER, 603, RatingPayload(id="local-1", movie_title="The Matrix", rating=5)
        )
        await service.remove_rating(VIEWER, "local-1")
        remaining = await service.get_ratings(VIEWER)
        return mine, again, theirs, remaining

    mine, again, theirs, remaining = run_with_database(tmp_path, scenario)

    assert mine.id == "local-1"
    assert again.id == "local-1"
    assert again.rating == 8
    assert theirs.id != "local-1"
    assert remaining == []


def test_ratings_reject_out_of_range_scores(tmp_path) -> None:
    async def scenario(database: Database):
        service = RatingsService(database.session_factory)
        payload = RatingPayload.model_construct(movie_title="Bad", rating=11)
        await service.upsert_rating(VIEWER, 1, payload)

    with pytest.raises(ValueError, match="between 1 and 10"):
        run_with_database(tmp_path, scenario)


def test_preferences_default_then_partial_update(tmp_path) -> None:
    async def scenario(database: Database):
        service = AccountService(database.session_factory)
        defaults = await service.get_preferences(VIEWER)
        updated = await service.update_preferences(
            VIEWER, PreferencesUpdate(view_mode="list", favorite_genres=[28, 35])
        )
        again = await service.update_preferences(
            VIEWER, PreferencesUpdate(private_profile=True)
        )
        stored = await service.get_preferences(VIEWER)
        return defaults, updated, again, stored

    defaults, updated, again, stored = run_with_database(tmp_path, scenario)

    assert defaults.success is True
    assert defaults.data.view_mode == "grid"
    assert defaults.data.poster_quality == "medium"
    assert updated.data.view_mode == "list"
    assert updated.data.show_ratings is True
    assert again.data.favorite_genres == [28, 35]
    assert stored.data.private_profile is True
    assert stored.data.view_mode == "list"


def test_notifications_listing_and_read_state(tmp_path) -> None:
    async def scenario(database: Database):
        service = AccountService(database.session_factory)
        for index in range(52):
            await service.create_notification(
                VIEWER, title=f"Notice {index}", item_id=index, item_type="movie"
            )
        await service.create_notification(OTHER, title="Not yours")
        listed = await service.list_notifications(VIEWER)
        newest = listed.data[0]
        await service.mark_notification_read(VIEWER, newest.id)
        after_one = await service.list_notifications(VIEWER)
        await service.mark_all_notifications_read(VIEWER)
        after_all = await service.list_notifications(VIEWER)
        await service.clear_notifications(VIEWER)
        cleared = await service.list_notifications(VIEWER)
        theirs = await service.list_notifications(OTHER)
        return listed, after_one, after_all, cleared, theirs

    listed, after_one, after_all, cleared, theirs = run_with_database(
        tmp_path, scenario
    )

    assert len(listed.data) == 50
    assert listed.data[0].title == "Notice 51"
    assert after_one.data[0].is_read is True
    assert after_one.data[1].is_read is False
    assert all(notification.is_read for notification in after_all.data)
    assert cleared.data == []
    assert [notification.title for notification in theirs.data] == ["Not yours"]
