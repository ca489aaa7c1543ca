"""Vote aggregation.

One live vote per (comment, voter). Tallies are always derived from the vote
rows, so they can never drift from what is stored.
"""

import asyncio
from collections import Counter
from collections.abc import Iterable
from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from marginalia.comments.exceptions import CommentNotFoundError
from marginalia.comments.models import Tally, VoteKind, create_vote
from marginalia.core.errors import ConflictError


if TYPE_CHECKING:
    from marginalia.store.base import CommentStore


logger = structlog.get_logger(__name__)


class VoteAggregator:
    """Idempotent per-voter vote mutations and tally reads."""

    def __init__(self, store: "CommentStore"):
        self.store = store

    async def _ensure_comment(self, comment_id: UUID) -> None:
        if await self.store.get_comment(comment_id) is None:
            raise CommentNotFoundError

    async def cast_vote(
        self, comment_id: UUID, voter_id: UUID, kind: VoteKind
    ) -> Tally:
        """Record ``kind`` as the voter's vote.

        Inserts when the voter has no vote yet, switches the kind in place
        when it differs, and does nothing when it is already ``kind``.

        Returns:
            Tally after the write

        Raises:
            CommentNotFoundError: If the comment does not exist
        """
        await self._ensure_comment(comment_id)

        existing = await self.store.get_vote(comment_id, voter_id)
        if existing is None:
            try:
                await self.store.insert_vote(create_vote(comment_id, voter_id, kind))
            except ConflictError:
                # Lost the insert race to another request from this voter
                logger.info(
                    "vote_insert_conflict",
                    comment_id=str(comment_id),
                    voter_id=str(voter_id),
                )
                await self.store.update_vote(comment_id, voter_id, kind)
        elif existing.kind != kind:
            await self.store.update_vote(comment_id, voter_id, kind)

        return await self.tally(comment_id)

    async def remove_vote(self, comment_id: UUID, voter_id: UUID) -> Tally:
        """Withdraw the voter's vote, if any.

        Raises:
            CommentNotFoundError: If the comment does not exist
        """
        await self._ensure_comment(comment_id)

        if await self.store.get_vote(comment_id, voter_id) is not None:
            await self.store.delete_vote(comment_id, voter_id)

        return await self.tally(comment_id)

    async def tally(self, comment_id: UUID) -> Tally:
        """Count live votes by kind."""
        votes = await self.store.list_votes(comment_id)
        counts = Counter(vote.kind for vote in votes)
        return Tally(upvotes=counts[VoteKind.UP], downvotes=counts[VoteKind.DOWN])

    async def tallies(self, comment_ids: Iterable[UUID]) -> dict[UUID, Tally]:
        """Tally every comment in ``comment_ids``."""
        ids = list(dict.fromkeys(comment_ids))
        results = await asyncio.gather(*(self.tally(cid) for cid in ids))
        return dict(zip(ids, results, strict=True))
