"""Authenticated watchlist actions."""

from __future__ import annotations

import logging

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..db_models import WatchlistRecord
from ..models import AuthUser, WatchlistEntry, WatchlistItemPayload
from ..utils import utcnow
from .account import ensure_user_row

logger = logging.getLogger(__name__)


class WatchlistService:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def get_watchlist(self, user: AuthUser) -> list[WatchlistEntry]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(WatchlistRecord)
                .where(WatchlistRecord.user_id == user.id)
                .order_by(WatchlistRecord.added_at)
            )
            return [_entry_from_record(record) for record in result.scalars()]

    async def add_to_watchlist(
        self, user: AuthUser, payload: WatchlistItemPayload
    ) -> WatchlistEntry:
        """Insert or refresh an entry; re-adding resets the watched state."""

        async with self._session_factory() as session:
            await ensure_user_row(session, user)
            record = await session.get(WatchlistRecord, (user.id, payload.id))
            if record is None:
                record = WatchlistRecord(user_id=user.id, item_id=payload.id)
                session.add(record)
            record.item_type = payload.type
            record.title = payload.title
            record.poster_path = payload.poster_path
            record.added_at = utcnow()
            record.watched = False
            record.watched_at = None
            await session.commit()
            return _entry_from_record(record)

    async def remove_from_watchlist(self, user: AuthUser, item_id: int) -> None:
        async with self._session_factory() as session:
            await session.execute(
                delete(WatchlistRecord).where(
                    WatchlistRecord.user_id == user.id,
                    WatchlistRecord.item_id == item_id,
                )
            )
            await session.commit()

    async def mark_as_watched(self, user: AuthUser, item_id: int) -> WatchlistEntry:
        return await self._set_watched(user, item_id, True)

    async def mark_as_unwatched(
        self, user: AuthUser, item_id: int
    ) -> WatchlistEntry:
        return await self._set_watched(user, item_id, False)

    async def clear_watchlist(self, user: AuthUser) -> None:
        async with self._session_factory() as session:
            await session.execute(
                delete(WatchlistRecord).where(WatchlistRecord.user_id == user.id)
            )
            await session.commit()
        logger.info("Cleared watchlist for user %s", user.id)

    async def _set_watched(
        self, user: AuthUser, item_id: int, watched: bool
    ) -> WatchlistEntry:
        async with self._session_factory() as session:
            record = await session.get(WatchlistRecord, (user.id, item_id))
            if record is None:
                raise LookupError(f"Watchlist item {item_id} not found")
            record.watched = watched
            record.watched_at = utcnow() if watched else None
            await session.commit()
            return _entry_from_record(record)


def _entry_from_record(record: WatchlistRecord) -> WatchlistEntry:
    return WatchlistEntry(
        id=record.item_id,
        type=record.item_type,
        title=record.title,
        poster_path=record.poster_path,
        added_at=record.added_at,
        watched=record.watched,
        watched_at=record.watched_at,
    )
