"""Threaded view over a flat page of comments.

Replies are attached to their parent when the parent is on the same page.
Replies whose parent is missing from the page are dropped rather than
promoted to roots, so a page never shows a reply out of context.
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from uuid import UUID

from marginalia.comments.models import Comment, Tally


@dataclass
class CommentNode:
    """Comment with its tally and nested replies."""

    comment: Comment
    tally: Tally = field(default_factory=Tally)
    replies: list["CommentNode"] = field(default_factory=list)


def build_comment_tree(
    comments: Sequence[Comment],
    tallies: Mapping[UUID, Tally] | None = None,
) -> list[CommentNode]:
    """Assemble a forest from comments of a single URL.

    Sibling order follows input order. A comment naming itself as parent is
    treated as a root.

    Args:
        comments: One page of comments, already filtered to a URL
        tallies: Vote tallies by comment ID (missing entries count as zero)

    Returns:
        Root nodes in input order
    """
    tallies = tallies or {}
    lookup = {
        comment.comment_id: CommentNode(
            comment=comment, tally=tallies.get(comment.comment_id, Tally())
        )
        for comment in comments
    }

    roots: list[CommentNode] = []
    for comment in comments:
        node = lookup[comment.comment_id]
        parent_id = comment.parent_id
        if parent_id is None or parent_id == comment.comment_id:
            roots.append(node)
        elif parent_id in lookup:
            lookup[parent_id].replies.append(node)

    return roots


def count_nodes(forest: Sequence[CommentNode]) -> int:
    """Number of nodes reachable from the roots."""
    total = 0
    stack = list(forest)
    while stack:
        node = stack.pop()
        total += 1
        stack.extend(node.replies)
    return total
