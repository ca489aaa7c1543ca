"""Tests for the error taxonomy."""

import pytest
from fastapi import HTTPException

from marginalia.comments.exceptions import (
    CommentNotFoundError,
    NotCommentAuthorError,
    ParentMismatchError,
)
from marginalia.core.errors import (
    ConflictError,
    DirectoryError,
    MarginaliaError,
    RenderError,
    StoreError,
    handle_error,
    status_for,
)
from marginalia.notifications.service import NotificationNotFoundError


@pytest.mark.parametrize(
    ("error", "expected"),
    [
        (ParentMismatchError(), 400),
        (CommentNotFoundError(), 404),
        (NotificationNotFoundError(), 404),
        (NotCommentAuthorError(), 403),
        (ConflictError(), 409),
        (StoreError(), 503),
        (RenderError(), 503),
        (DirectoryError(), 503),
        (MarginaliaError("unclassified"), 500),
    ],
)
def test_status_for(error, expected) -> None:
    assert status_for(error) == expected


def test_handle_error_keeps_message() -> None:
    exc = handle_error(CommentNotFoundError())

    assert isinstance(exc, HTTPException)
    assert exc.status_code == 404
    assert exc.detail == "Comment not found"


def test_codes_are_stable() -> None:
    assert StoreError("boom").code == "store_error"
    assert NotCommentAuthorError().code == "not_comment_author"
