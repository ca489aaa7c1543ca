"""Tests for @mention extraction."""

import pytest

from marginalia.comments.mentions import extract_mentions, iter_mentions


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("hi @bob and @bob", ["bob", "bob"]),
        ("@alice_2: thanks, cc @Carol", ["alice_2", "Carol"]),
        ("no mentions here", []),
        ("email me at someone@example.com", ["example"]),
        ("@ alone and @@double", ["double"]),
        ("trailing @", []),
    ],
)
def test_extract_mentions(text: str, expected: list[str]) -> None:
    assert extract_mentions(text) == expected


def test_non_ascii_letters_end_a_handle() -> None:
    """Only ASCII word characters are part of a handle."""
    assert extract_mentions("@josé @zoë") == ["jos", "zo"]


def test_iter_mentions_is_lazy() -> None:
    mentions = iter_mentions("@a @b")
    assert next(mentions) == "a"
    assert list(mentions) == ["b"]
