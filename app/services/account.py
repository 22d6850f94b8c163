"""Account actions: user profile rows, preferences and notifications."""

from __future__ import annotations

import logging

from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..constants import NOTIFICATION_LIMIT, MediaType
from ..db_models import NotificationRecord, User, UserPreferencesRecord
from ..models import (
    ActionResult,
    AuthUser,
    Notification,
    PreferencesUpdate,
    UserPreferences,
)
from ..utils import utcnow

logger = logging.getLogger(__name__)


async def ensure_user_row(session: AsyncSession, user: AuthUser) -> User:
    """Return the profile row for ``user``, creating it when missing.

    Accounts created directly in the auth service have no row until their
    first write.
    """

    record = await session.get(User, user.id)
    if record is None:
        record = User(id=user.id, email=user.email, name=user.name or "")
        session.add(record)
        await session.flush()
    return record


class AccountService:
    """Server-side account actions scoped to the authenticated user."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def upsert_user(
        self, user: AuthUser, *, name: str, avatar_url: str | None = None
    ) -> None:
        """Create or refresh the profile row after signing up."""

        async with self._session_factory() as session:
            record = await session.get(User, user.id)
            if record is None:
                record = User(id=user.id)
                session.add(record)
            record.email = user.email
            record.name = name
            record.avatar_url = avatar_url
            record.updated_at = utcnow()
            await session.commit()

    async def get_preferences(self, user: AuthUser) -> ActionResult:
        try:
            async with self._session_factory() as session:
                record = await session.get(UserPreferencesRecord, user.id)
        except SQLAlchemyError:
            logger.exception("Error getting preferences for %s", user.id)
            return ActionResult.fail("Failed to get preferences")

        if record is None:
            return ActionResult.ok(UserPreferences())
        return ActionResult.ok(_preferences_from_record(record))

    async def update_preferences(
        self, user: AuthUser, changes: PreferencesUpdate
    ) -> ActionResult:
        """Apply a partial update, creating the preferences row when missing."""

        values = changes.changes()
        try:
            async with self._session_factory() as session:
                await ensure_user_row(session, user)
                record = await session.get(UserPreferencesRecord, user.id)
                if record is None:
                    record = UserPreferencesRecord(
                        user_id=user.id, **UserPreferences().model_dump()
                    )
                    session.add(record)
                for key, value in values.items():
                    setattr(record, key, value)
                record.updated_at = utcnow()
                await session.commit()
                preferences = _preferences_from_record(record)
        except SQLAlchemyError:
            logger.exception("Error updating preferences for %s", user.id)
            return ActionResult.fail("Failed to update preferences")
        return ActionResult.ok(preferences)

    async def list_notifications(self, user: AuthUser) -> ActionResult:
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(NotificationRecord)
                    .where(NotificationRecord.user_id == user.id)
                    .order_by(
                        NotificationRecord.created_at.desc(),
                        NotificationRecord.id.desc(),
                    )
                    .limit(NOTIFICATION_LIMIT)
                )
                records = result.scalars().all()
        except SQLAlchemyError:
            logger.exception("Error getting notifications for %s", user.id)
            return ActionResult.fail("Failed to get notifications")
        return ActionResult.ok([_notification_from_record(record) for record in records])

    async def create_notification(
        self,
        user: AuthUser,
        *,
        title: str,
        message: str = "",
        kind: str = "info",
        item_id: int | None = None,
        item_type: MediaType | None = None,
    ) -> ActionResult:
        try:
            async with self._session_factory() as session:
                await ensure_user_row(session, user)
                record = NotificationRecord(
                    user_id=user.id,
                    kind=kind,
                    title=title,
                    message=message,
                    item_id=item_id,
                    item_type=item_type,
                    is_read=False,
                    created_at=utcnow(),
                )
                session.add(record)
                await session.commit()
                notification = _notification_from_record(record)
        except SQLAlchemyError:
            logger.exception("Error creating notification for %s", user.id)
            return ActionResult.fail("Failed to create notification")
        return ActionResult.ok(notification)

    async def mark_notification_read(
        self, user: AuthUser, notification_id: int
    ) -> ActionResult:
        try:
            async with self._session_factory() as session:
                await session.execute(
                    update(NotificationRecord)
                    .where(
                        NotificationRecord.id == notification_id,
                        NotificationRecord.user_id == user.id,
                    )
                    .values(is_read=True)
                )
                await session.commit()
        except SQLAlchemyError:
            logger.exception("Error marking notification %s as read", notification_id)
            return ActionResult.fail("Failed to mark notification as read")
        return ActionResult.ok()

    async def mark_all_notifications_read(self, user: AuthUser) -> ActionResult:
        try:
            async with self._session_factory() as session:
                await session.execute(
                    update(NotificationRecord)
                    .where(NotificationRecord.user_id == user.id)
                    .values(is_read=True)
                )
                await session.commit()
        except SQLAlchemyError:
            logger.exception("Error marking all notifications as read for %s", user.id)
            return ActionResult.fail("Failed to mark all notifications as read")
        return ActionResult.ok()

    async def clear_notifications(self, user: AuthUser) -> ActionResult:
        try:
            async with self._session_factory() as session:
                await session.execute(
                    delete(NotificationRecord).where(
                        NotificationRecord.user_id == user.id
                    )
                )
                await session.commit()
        except SQLAlchemyError:
            logger.exception("Error clearing notifications for %s", user.id)
            return ActionResult.fail("Failed to clear notifications")
        return ActionResult.ok()


def _preferences_from_record(record: UserPreferencesRecord) -> UserPreferences:
    defaults = UserPreferences()
    return UserPreferences(
        poster_quality=record.poster_quality or defaults.poster_quality,
        view_mode=record.view_mode or defaults.view_mode,
        show_ratings=bool(record.show_ratings),
        show_release_year=bool(record.show_release_year),
        genre_alerts_enabled=bool(record.genre_alerts_enabled),
        favorite_genres=list(record.favorite_genres or []),
        watchlist_reminders=bool(record.watchlist_reminders),
        private_profile=bool(record.private_profile),
    )


def _notification_from_record(record: NotificationRecord) -> Notification:
    return Notification(
        id=record.id,
        type=record.kind,
        title=record.title,
        message=record.message or "",
        item_id=record.item_id,
        item_type=record.item_type,
        is_read=record.is_read,
        created_at=record.created_at,
    )
