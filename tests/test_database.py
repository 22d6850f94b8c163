from __future__ import annotations

import asyncio

from sqlalchemy import create_engine, inspect, text

from app.database import Database


def _initialise_legacy_schema(database_path: str) -> None:
    """Create tables from before folders, watched timestamps and private profiles."""

    engine = create_engine(f"sqlite:///{database_path}")
    try:
        with engine.begin() as connection:
            connection.execute(
                text(
                    """
                    CREATE TABLE favorites (
                        user_id VARCHAR(36) NOT NULL,
                        item_id INTEGER NOT NULL,
                        item_type VARCHAR(8),
                        title VARCHAR(512),
                        poster_path VARCHAR(512),
                        added_at DATETIME,
                        PRIMARY KEY (user_id, item_id)
                    )
                    """
                )
            )
            connection.execute(
                text(
                    """
                    CREATE TABLE watchlist (
                        user_id VARCHAR(36) NOT NULL,
                        item_id INTEGER NOT NULL,
                        item_type VARCHAR(8),
                        title VARCHAR(512),
                        poster_path VARCHAR(512),
                        added_at DATETIME,
                        watched BOOLEAN,
                        PRIMARY KEY (user_id, item_id)
                    )
                    """
                )
            )
            connection.execute(
                text(
                    """
                    CREATE TABLE user_preferences (
                        user_id VARCHAR(36) PRIMARY KEY,
                        poster_quality VARCHAR(16),
                        view_mode VARCHAR(16),
                        show_ratings BOOLEAN,
                        show_release_year BOOLEAN,
                        genre_alerts_enabled BOOLEAN,
                        favorite_genres JSON,
                        watchlist_reminders BOOLEAN,
                        updated_at DATETIME
                    )
                    """
                )
            )
            connection.execute(
                text(
                    "INSERT INTO user_preferences (user_id, view_mode) "
                    "VALUES ('legacy-user', 'list')"
                )
            )
    finally:
        engine.dispose()


def test_create_all_adds_new_columns(tmp_path) -> None:
    """Schema migrations should backfill columns added after the first release."""

    database_path = tmp_path / "legacy.db"
    _initialise_legacy_schema(str(database_path))

    database = Database(f"sqlite+aiosqlite:///{database_path}")
    asyncio.run(database.create_all())
    asyncio.run(database.dispose())

    inspector_engine = create_engine(f"sqlite:///{database_path}")
    try:
        inspector = inspect(inspector_engine)
        favorites = {column["name"] for column in inspector.get_columns("favorites")}
        watchlist = {column["name"] for column in inspector.get_columns("watchlist")}
        preferences = {
            column["name"] for column in inspector.get_columns("user_preferences")
        }
        tables = set(inspector.get_table_names())
        with inspector_engine.connect() as connection:
            private_profile = connection.execute(
                text(
                    "SELECT private_profile FROM user_preferences "
                    "WHERE user_id = 'legacy-user'"
                )
            ).scalar_one()
    finally:
        inspector_engine.dispose()

    assert "folder_id" in favorites
    assert "watched_at" in watchlist
    assert "private_profile" in preferences
    assert not private_profile
    assert {"users", "favorite_folders", "ratings", "notifications"} <= tables


def test_create_all_is_idempotent(tmp_path) -> None:
    database = Database(f"sqlite+aiosqlite:///{tmp_path / 'fresh.db'}")

    async def _run() -> None:
        await database.create_all()
        await database.create_all()
        await database.dispose()

    asyncio.run(_run())
