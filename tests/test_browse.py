"""Browse filter and pagination behaviour."""

from __future__ import annotations

import pytest

from app.browse import BrowseFilters, clamp_page, merge_query, page_window, total_pages


def test_total_pages_rounds_up() -> None:
    assert total_pages(41, 20) == 3
    assert total_pages(40, 20) == 2
    assert total_pages(1, 20) == 1
    assert total_pages(45) == 3


def test_total_pages_is_zero_without_items() -> None:
    assert total_pages(0, 20) == 0


def test_total_pages_rejects_non_positive_page_size() -> None:
    with pytest.raises(ValueError):
        total_pages(10, 0)


@pytest.mark.parametrize(
    ("page", "pages", "expected"),
    [(0, 5, 1), (-3, 5, 1), (3, 5, 3), (9, 5, 5), (4, 0, 1)],
)
def test_clamp_page_stays_in_range(page: int, pages: int, expected: int) -> None:
    assert clamp_page(page, pages) == expected


def test_page_window_is_centred_on_current_page() -> None:
    assert page_window(1, 3) == [1, 2, 3]
    assert page_window(1, 20) == [1, 2, 3, 4, 5]
    assert page_window(10, 20) == [8, 9, 10, 11, 12]
    assert page_window(20, 20) == [16, 17, 18, 19, 20]
    assert page_window(1, 0) == []


def test_from_query_parses_filters_and_ignores_bad_values() -> None:
    filters = BrowseFilters.from_query(
        {"genre": "28", "year": "nope", "provider": "8", "page": "-2"}
    )

    assert filters.genre == 28
    assert filters.year is None
    assert filters.provider == 8
    assert filters.sort_by == "popularity.desc"
    assert filters.page == 1


def test_from_query_accepts_sort_alias() -> None:
    filters = BrowseFilters.from_query({"sortBy": "vote_average.desc", "page": "4"})

    assert filters.sort_by == "vote_average.desc"
    assert filters.page == 4


def test_with_filters_resets_page_and_clears_falsy_values() -> None:
    filters = BrowseFilters(genre=28, year=1999, provider=8, page=7)

    updated = filters.with_filters(genre=None, year="2010", sort_by="")

    assert updated.page == 1
    assert updated.genre is None
    assert updated.year == 2010
    assert updated.provider == 8
    assert updated.sort_by == "popularity.desc"
    assert "genre" not in updated.to_query()


def test_with_filters_rejects_unknown_keys() -> None:
    with pytest.raises(TypeError):
        BrowseFilters().with_filters(page=3)


def test_with_page_never_leaves_the_page_range() -> None:
    filters = BrowseFilters(genre=35)

    assert filters.with_page(12, 10).page == 10
    assert filters.with_page(0, 10).page == 1
    assert filters.with_page(900, 5000).page == 500


def test_merge_query_keeps_unrelated_parameters() -> None:
    filters = BrowseFilters(genre=18, page=2)

    merged = merge_query({"q": "noir", "genre": "35", "sortBy": "x"}, filters)

    assert merged == {"q": "noir", "genre": "18", "sort": "popularity.desc", "page": "2"}
