"""Comment system module.

Provides threaded comments anchored to page URLs with:
- Threaded replies (parent/child)
- Up/down votes
- @mentions

Note: Service and router are not exported here to avoid circular imports.
Import directly from marginalia.comments.service / .router when needed.
"""

from .mentions import extract_mentions, iter_mentions
from .models import COMMENTS_TABLES_CQL, Comment, Tally, Vote, VoteKind
from .tree import CommentNode, build_comment_tree, count_nodes


__all__ = [
    "COMMENTS_TABLES_CQL",
    "Comment",
    "CommentNode",
    "Tally",
    "Vote",
    "VoteKind",
    "build_comment_tree",
    "count_nodes",
    "extract_mentions",
    "iter_mentions",
]
