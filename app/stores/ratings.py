"""Local-first movie ratings."""

from __future__ import annotations

import logging
from typing import Any, Iterable

from pydantic import ValidationError

from ..constants import RATING_MAX, RATING_MIN, STORAGE_KEYS, TOP_RATED_LIMIT
from ..models import RatingPayload, UserRating
from ..utils import generate_id
from .base import LocalFirstStore, field_of, title_of

logger = logging.getLogger(__name__)


def _check_rating(rating: int) -> None:
    if not RATING_MIN <= rating <= RATING_MAX:
        raise ValueError(f"Rating must be between {RATING_MIN} and {RATING_MAX}")


class RatingsStore(LocalFirstStore):
    """Ratings keyed by rating id; at most one rating per movie."""

    storage_key = STORAGE_KEYS["ratings"]

    def __init__(self, storage=None):
        self._ratings: dict[str, UserRating] = {}
        super().__init__(storage)

    def add_rating(
        self, movie: Any, rating: int, review: str | None = None
    ) -> UserRating:
        """Rate ``movie``; an existing rating for it is updated in place."""

        _check_rating(rating)
        movie_id = int(field_of(movie, "id"))
        existing = self.get_rating(movie_id)
        if existing is not None:
            return self.update_rating(existing.id, rating, review)

        entry = UserRating(
            id=generate_id(),
            movie_id=movie_id,
            movie_title=title_of(movie),
            movie_poster=field_of(movie, "poster_path"),
            rating=rating,
            review=review,
        )
        self._ratings[entry.id] = entry
        self._persist()
        self._mirror_upsert(entry)
        return entry

    def update_rating(
        self, rating_id: str, rating: int, review: str | None = None
    ) -> UserRating:
        _check_rating(rating)
        current = self._ratings.get(rating_id)
        if current is None:
            raise LookupError(f"Rating {rating_id} not found")
        entry = current.model_copy(update={"rating": rating, "review": review})
        self._ratings[rating_id] = entry
        self._persist()
        self._mirror_upsert(entry)
        return entry

    def remove_rating(self, rating_id: str) -> None:
        self._ratings.pop(rating_id, None)
        self._persist()
        self._mirror(
            f"rating removal {rating_id}",
            lambda remote: remote.remove_rating(rating_id),
        )

    def get_rating(self, movie_id: int) -> UserRating | None:
        for entry in self._ratings.values():
            if entry.movie_id == movie_id:
                return entry
        return None

    def get_all_ratings(self) -> list[UserRating]:
        return sorted(
            self._ratings.values(), key=lambda entry: entry.created_at, reverse=True
        )

    def get_average_rating(self) -> float:
        if not self._ratings:
            return 0
        return sum(entry.rating for entry in self._ratings.values()) / len(
            self._ratings
        )

    def get_highest_rated(self) -> list[UserRating]:
        return sorted(
            self._ratings.values(), key=lambda entry: entry.rating, reverse=True
        )[:TOP_RATED_LIMIT]

    def get_lowest_rated(self) -> list[UserRating]:
        return sorted(self._ratings.values(), key=lambda entry: entry.rating)[
            :TOP_RATED_LIMIT
        ]

    def clear(self) -> None:
        self._ratings.clear()
        self._persist()

    def set_from_server(self, ratings: Iterable[UserRating]) -> None:
        self._ratings = {entry.id: entry for entry in ratings}
        self._persist()

    def _mirror_upsert(self, entry: UserRating) -> None:
        payload = RatingPayload(
            id=entry.id,
            movie_title=entry.movie_title,
            movie_poster=entry.movie_poster,
            rating=entry.rating,
            review=entry.review,
        )
        self._mirror(
            f"rating for {entry.movie_id}",
            lambda remote: remote.upsert_rating(entry.movie_id, payload),
        )

    def _restore(self, data: Any | None) -> None:
        if not isinstance(data, dict) or not isinstance(data.get("ratings"), dict):
            return
        for rating_id, raw in data["ratings"].items():
            try:
                entry = UserRating.model_validate(raw)
            except ValidationError as exc:
                logger.warning("Dropping unreadable rating %s: %s", rating_id, exc)
                continue
            self._ratings[entry.id] = entry

    def _snapshot(self) -> dict[str, Any]:
        return {
            "ratings": {
                rating_id: entry.model_dump(mode="json", by_alias=True)
                for rating_id, entry in self._ratings.items()
            }
        }
