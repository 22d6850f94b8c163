"""Authenticated rating actions."""

from __future__ import annotations

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..constants import RATING_MAX, RATING_MIN
from ..db_models import RatingRecord
from ..models import AuthUser, RatingPayload, UserRating
from ..utils import generate_id, utcnow
from .account import ensure_user_row


class RatingsService:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def get_ratings(self, user: AuthUser) -> list[UserRating]:
        """Return the user's ratings, newest first."""

        async with self._session_factory() as session:
            result = await session.execute(
                select(RatingRecord)
                .where(RatingRecord.user_id == user.id)
                .order_by(RatingRecord.created_at.desc())
            )
            return [_rating_from_record(record) for record in result.scalars()]

    async def upsert_rating(
        self, user: AuthUser, movie_id: int, payload: RatingPayload
    ) -> UserRating:
        """Create the rating for ``movie_id`` or overwrite the existing one.

        New ratings keep the id chosen by the client unless it is already
        taken; an existing rating keeps its id.
        """

        if not RATING_MIN <= payload.rating <= RATING_MAX:
            raise ValueError(
                f"Rating must be between {RATING_MIN} and {RATING_MAX}"
            )

        async with self._session_factory() as session:
            await ensure_user_row(session, user)
            result = await session.execute(
                select(RatingRecord).where(
                    RatingRecord.user_id == user.id,
                    RatingRecord.item_id == movie_id,
                )
            )
            record = result.scalar_one_or_none()
            now = utcnow()
            if record is None:
                rating_id = payload.id
                if rating_id is None or await session.get(RatingRecord, rating_id):
                    rating_id = generate_id()
                record = RatingRecord(
                    id=rating_id,
                    user_id=user.id,
                    item_id=movie_id,
                    created_at=now,
                )
                session.add(record)
            record.title = payload.movie_title
            record.poster_path = payload.movie_poster
            record.rating = payload.rating
            record.review = payload.review
            record.updated_at = now
            await session.commit()
            return _rating_from_record(record)

    async def remove_rating(self, user: AuthUser, rating_id: str) -> None:
        async with self._session_factory() as session:
            await session.execute(
                delete(RatingRecord).where(
                    RatingRecord.user_id == user.id,
                    RatingRecord.id == rating_id,
                )
            )
            await session.commit()


def _rating_from_record(record: RatingRecord) -> UserRating:
    return UserRating(
        id=record.id,
        movie_id=record.item_id,
        movie_title=record.title,
        movie_poster=record.poster_path,
        rating=record.rating,
        review=record.review,
        created_at=record.created_at,
    )
