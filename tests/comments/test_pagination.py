"""Tests for page-number pagination metadata."""

import pytest

from marginalia.comments.schemas import Pagination


@pytest.mark.parametrize(
    ("page", "has_next", "has_prev"),
    [(1, True, False), (2, True, True), (3, False, True)],
)
def test_seven_items_three_per_page(page: int, has_next: bool, has_prev: bool) -> None:
    pagination = Pagination.from_counts(page=page, limit=3, total=7)
    assert pagination.total_pages == 3
    assert pagination.total_comments == 7
    assert pagination.current_page == page
    assert pagination.has_next_page is has_next
    assert pagination.has_prev_page is has_prev


def test_empty_listing() -> None:
    pagination = Pagination.from_counts(page=1, limit=20, total=0)
    assert pagination.total_pages == 0
    assert pagination.has_next_page is False
    assert pagination.has_prev_page is False


def test_page_past_the_end() -> None:
    pagination = Pagination.from_counts(page=5, limit=3, total=7)
    assert pagination.has_next_page is False
    assert pagination.has_prev_page is True


def test_bounds() -> None:
    assert Pagination.bounds(1, 3) == (0, 3)
    assert Pagination.bounds(3, 3) == (6, 9)


def test_wire_keys_are_camel_case() -> None:
    data = Pagination.from_counts(page=1, limit=3, total=7).model_dump(by_alias=True)
    assert data == {
        "currentPage": 1,
        "totalPages": 3,
        "totalComments": 7,
        "hasNextPage": True,
        "hasPrevPage": False,
    }
