"""Authenticated favorites and favorite-folder actions."""

from __future__ import annotations

import logging
from collections import defaultdict

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..db_models import FavoriteFolderRecord, FavoriteRecord
from ..models import (
    AuthUser,
    FavoriteEntry,
    FavoriteFolder,
    FavoriteItemPayload,
    FavoritesSnapshot,
    FolderPayload,
)
from ..utils import utcnow
from .account import ensure_user_row

logger = logging.getLogger(__name__)


class FavoritesService:
    """Server-side favorites actions; every call is scoped to one user."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def get_favorites(self, user: AuthUser) -> FavoritesSnapshot:
        """Return the user's favorites plus folders with derived membership."""

        async with self._session_factory() as session:
            items = (
                await session.execute(
                    select(FavoriteRecord)
                    .where(FavoriteRecord.user_id == user.id)
                    .order_by(FavoriteRecord.added_at)
                )
            ).scalars().all()
            folders = (
                await session.execute(
                    select(FavoriteFolderRecord)
                    .where(FavoriteFolderRecord.user_id == user.id)
                    .order_by(FavoriteFolderRecord.created_at)
                )
            ).scalars().all()

        members: dict[str, list[int]] = defaultdict(list)
        for item in items:
            if item.folder_id:
                members[item.folder_id].append(item.item_id)

        return FavoritesSnapshot(
            items=[_entry_from_record(item) for item in items],
            folders=[
                FavoriteFolder(
                    id=folder.id,
                    name=folder.name,
                    movie_ids=members.get(folder.id, []),
                    created_at=folder.created_at,
                )
                for folder in folders
            ],
        )

    async def add_favorite(
        self, user: AuthUser, payload: FavoriteItemPayload
    ) -> FavoriteEntry:
        """Insert or refresh a favorite; re-adding resets folder and timestamp."""

        async with self._session_factory() as session:
            await ensure_user_row(session, user)
            if payload.folder_id:
                await self._require_folder(session, user, payload.folder_id)
            record = await session.get(FavoriteRecord, (user.id, payload.id))
            if record is None:
                record = FavoriteRecord(user_id=user.id, item_id=payload.id)
                session.add(record)
            record.item_type = payload.type
            record.title = payload.title
            record.poster_path = payload.poster_path
            record.folder_id = payload.folder_id
            record.added_at = utcnow()
            await session.commit()
            return _entry_from_record(record)

    async def remove_favorite(self, user: AuthUser, item_id: int) -> None:
        async with self._session_factory() as session:
            await session.execute(
                delete(FavoriteRecord).where(
                    FavoriteRecord.user_id == user.id,
                    FavoriteRecord.item_id == item_id,
                )
            )
            await session.commit()

    async def create_folder(
        self, user: AuthUser, payload: FolderPayload
    ) -> FavoriteFolder:
        async with self._session_factory() as session:
            await ensure_user_row(session, user)
            if await session.get(FavoriteFolderRecord, payload.id) is not None:
                raise ValueError(f"Folder {payload.id} already exists")
            now = utcnow()
            record = FavoriteFolderRecord(
                id=payload.id,
                user_id=user.id,
                name=payload.name,
                created_at=now,
                updated_at=now,
            )
            session.add(record)
            await session.commit()
            return FavoriteFolder(
                id=record.id, name=record.name, movie_ids=[], created_at=now
            )

    async def rename_folder(
        self, user: AuthUser, folder_id: str, name: str
    ) -> FavoriteFolder:
        async with self._session_factory() as session:
            folder = await self._require_folder(session, user, folder_id)
            folder.name = name
            folder.updated_at = utcnow()
            await session.commit()
            member_ids = (
                await session.execute(
                    select(FavoriteRecord.item_id).where(
                        FavoriteRecord.user_id == user.id,
                        FavoriteRecord.folder_id == folder_id,
                    )
                )
            ).scalars().all()
            return FavoriteFolder(
                id=folder.id,
                name=folder.name,
                movie_ids=list(member_ids),
                created_at=folder.created_at,
            )

    async def delete_folder(self, user: AuthUser, folder_id: str) -> None:
        """Unfile every member favorite, then drop the folder."""

        async with self._session_factory() as session:
            await session.execute(
                update(FavoriteRecord)
                .where(
                    FavoriteRecord.user_id == user.id,
                    FavoriteRecord.folder_id == folder_id,
                )
                .values(folder_id=None)
            )
            await session.execute(
                delete(FavoriteFolderRecord).where(
                    FavoriteFolderRecord.user_id == user.id,
                    FavoriteFolderRecord.id == folder_id,
                )
            )
            await session.commit()
        logger.info("Deleted favorite folder %s for user %s", folder_id, user.id)

    async def remove_from_folder(
        self, user: AuthUser, item_id: int, folder_id: str
    ) -> None:
        """Unfile ``item_id`` only if it currently sits in ``folder_id``."""

        async with self._session_factory() as session:
            await session.execute(
                update(FavoriteRecord)
                .where(
                    FavoriteRecord.user_id == user.id,
                    FavoriteRecord.item_id == item_id,
                    FavoriteRecord.folder_id == folder_id,
                )
                .values(folder_id=None)
            )
            await session.commit()

    async def move_to_folder(
        self, user: AuthUser, item_id: int, folder_id: str | None
    ) -> FavoriteEntry:
        async with self._session_factory() as session:
            record = await session.get(FavoriteRecord, (user.id, item_id))
            if record is None:
                raise LookupError(f"Favorite {item_id} not found")
            if folder_id is not None:
                await self._require_folder(session, user, folder_id)
            record.folder_id = folder_id
            await session.commit()
            return _entry_from_record(record)

    @staticmethod
    async def _require_folder(
        session: AsyncSession, user: AuthUser, folder_id: str
    ) -> FavoriteFolderRecord:
        folder = await session.get(FavoriteFolderRecord, folder_id)
        if folder is None or folder.user_id != user.id:
            raise LookupError(f"Folder {folder_id} not found")
        return folder


def _entry_from_record(record: FavoriteRecord) -> FavoriteEntry:
    return FavoriteEntry(
        id=record.item_id,
        type=record.item_type,
        title=record.title,
        poster_path=record.poster_path,
        folder_id=record.folder_id,
        added_at=record.added_at,
    )
