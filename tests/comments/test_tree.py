"""Tests for threaded tree assembly."""

from datetime import UTC, datetime, timedelta
from uuid import uuid4

from marginalia.comments.models import Comment, Tally
from marginalia.comments.tree import build_comment_tree, count_nodes


URL = "https://example.com/article"
BASE_TIME = datetime(2024, 1, 1, tzinfo=UTC)


def make_comment(parent=None, minutes: int = 0, url: str = URL) -> Comment:
    return Comment(
        comment_id=uuid4(),
        url=url,
        parent_id=parent.comment_id if parent else None,
        author_id=uuid4(),
        author_name="alice",
        raw_text="text",
        text="<p>text</p>",
        created_at=BASE_TIME + timedelta(minutes=minutes),
    )


def test_empty_input() -> None:
    assert build_comment_tree([]) == []


def test_reply_nests_under_parent() -> None:
    a = make_comment()
    b = make_comment(parent=a, minutes=1)

    forest = build_comment_tree([b, a])

    assert [n.comment for n in forest] == [a]
    assert [n.comment for n in forest[0].replies] == [b]


def test_full_depth_nesting() -> None:
    a = make_comment()
    b = make_comment(parent=a, minutes=1)
    c = make_comment(parent=b, minutes=2)

    forest = build_comment_tree([c, b, a])

    assert forest[0].replies[0].replies[0].comment == c
    assert count_nodes(forest) == 3


def test_orphan_is_dropped_not_promoted() -> None:
    a = make_comment()
    b = make_comment(parent=a, minutes=1)
    root = make_comment(minutes=2)

    # ``a`` fell onto another page
    forest = build_comment_tree([root, b])

    assert [n.comment for n in forest] == [root]
    assert count_nodes(forest) == 1


def test_descendants_of_orphan_are_dropped() -> None:
    a = make_comment()
    b = make_comment(parent=a, minutes=1)
    c = make_comment(parent=b, minutes=2)

    forest = build_comment_tree([c, b])

    assert forest == []


def test_self_parent_becomes_root() -> None:
    comment = make_comment()
    comment.parent_id = comment.comment_id

    forest = build_comment_tree([comment])

    assert [n.comment for n in forest] == [comment]
    assert forest[0].replies == []


def test_sibling_order_follows_input() -> None:
    a = make_comment()
    first = make_comment(parent=a, minutes=2)
    second = make_comment(parent=a, minutes=1)

    forest = build_comment_tree([a, first, second])

    assert [n.comment for n in forest[0].replies] == [first, second]


def test_tallies_attached_and_default_to_zero() -> None:
    a = make_comment()
    b = make_comment(parent=a, minutes=1)

    forest = build_comment_tree([a, b], {a.comment_id: Tally(upvotes=3, downvotes=1)})

    assert forest[0].tally == Tally(upvotes=3, downvotes=1)
    assert forest[0].replies[0].tally == Tally()


def test_reachable_count_matches_present_parents() -> None:
    roots = [make_comment(minutes=i) for i in range(3)]
    replies = [make_comment(parent=roots[i], minutes=10 + i) for i in range(3)]
    missing_parent = make_comment()
    orphans = [make_comment(parent=missing_parent, minutes=20)]
    page = roots + replies + orphans

    forest = build_comment_tree(page)

    assert count_nodes(forest) == len(roots) + len(replies)
