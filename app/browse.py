"""Browse page state: filter/query-string reconciliation and pagination."""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from typing import Any, Mapping

from .constants import DEFAULT_SORT, ITEMS_PER_PAGE, MAX_CATALOG_PAGES


def total_pages(total_items: int, page_size: int = ITEMS_PER_PAGE) -> int:
    """Return ``ceil(total_items / page_size)``; zero items means zero pages."""

    if page_size <= 0:
        raise ValueError("page_size must be positive")
    if total_items <= 0:
        return 0
    return math.ceil(total_items / page_size)


def clamp_page(page: int, pages: int) -> int:
    """Keep ``page`` inside ``[1, pages]`` (or 1 when there are no pages)."""

    if pages < 1:
        return 1
    return max(1, min(page, pages))


def page_window(current: int, pages: int, size: int = 5) -> list[int]:
    """Return the page numbers shown as pagination buttons around ``current``."""

    if pages <= 0:
        return []
    if pages <= size:
        return list(range(1, pages + 1))
    current = clamp_page(current, pages)
    half = size // 2
    start = current - half
    start = max(1, min(start, pages - size + 1))
    return list(range(start, start + size))


def _parse_int(value: Any) -> int | None:
    if value is None or value == "":
        return None
    try:
        parsed = int(str(value))
    except (TypeError, ValueError):
        return None
    return parsed if parsed > 0 else None


@dataclass(frozen=True)
class BrowseFilters:
    """Filter state for the movie and TV browse pages.

    The query string is the source of truth: pages parse it with
    :meth:`from_query` and produce the next query string with
    :meth:`with_filters` or :meth:`with_page`.
    """

    genre: int | None = None
    year: int | None = None
    sort_by: str = DEFAULT_SORT
    provider: int | None = None
    page: int = 1

    @classmethod
    def from_query(cls, params: Mapping[str, Any]) -> "BrowseFilters":
        sort_by = params.get("sort") or params.get("sortBy") or DEFAULT_SORT
        return cls(
            genre=_parse_int(params.get("genre")),
            year=_parse_int(params.get("year")),
            sort_by=str(sort_by),
            provider=_parse_int(params.get("provider")),
            page=_parse_int(params.get("page")) or 1,
        )

    def to_query(self) -> dict[str, str]:
        query: dict[str, str] = {}
        if self.genre:
            query["genre"] = str(self.genre)
        if self.year:
            query["year"] = str(self.year)
        if self.provider:
            query["provider"] = str(self.provider)
        if self.sort_by:
            query["sort"] = self.sort_by
        query["page"] = str(self.page)
        return query

    def with_filters(self, **changes: Any) -> "BrowseFilters":
        """Apply filter changes; any filter change returns to the first page.

        Falsy ``genre``/``year``/``provider`` values clear the filter and a
        falsy ``sort_by`` restores the default order.
        """

        allowed = {"genre", "year", "sort_by", "provider"}
        unknown = set(changes) - allowed
        if unknown:
            raise TypeError(f"Unknown filters: {', '.join(sorted(unknown))}")
        cleaned: dict[str, Any] = {}
        for key, value in changes.items():
            if key == "sort_by":
                cleaned[key] = value or DEFAULT_SORT
            else:
                cleaned[key] = _parse_int(value)
        return replace(self, page=1, **cleaned)

    def with_page(self, page: int, pages: int) -> "BrowseFilters":
        """Move to ``page``, never leaving ``[1, pages]``."""

        return replace(self, page=clamp_page(page, min(pages, MAX_CATALOG_PAGES)))


def merge_query(
    current: Mapping[str, str], filters: BrowseFilters
) -> dict[str, str]:
    """Overlay ``filters`` on an existing query string, keeping unrelated keys."""

    merged = {
        key: value
        for key, value in current.items()
        if key not in {"genre", "year", "provider", "sort", "sortBy", "page"}
    }
    merged.update(filters.to_query())
    return merged
