"""Database models for page comments and votes.

Cassandra table definitions for:
- Comments by URL: listing a page's comments newest first
- Comments by ID: O(1) lookup for edit / delete / vote
- Comment votes: one row per (comment, voter)

Architecture: Adjacency List pattern
- parent_id references the parent comment on the same URL (NULL for roots)
- Tallies are derived from vote rows, never stored as counters
"""

from dataclasses import dataclass, replace
from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4


class VoteKind(str, Enum):
    """Direction of a vote."""

    UP = "up"
    DOWN = "down"


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

# Partition by url, clustering by created_at for newest-first listings
COMMENTS_BY_URL_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.comments_by_url (
    url TEXT,
    created_at TIMESTAMP,
    comment_id UUID,
    parent_id UUID,
    author_id UUID,
    author_name TEXT,
    raw_text TEXT,
    text TEXT,
    edited_at TIMESTAMP,
    PRIMARY KEY ((url), created_at, comment_id)
) WITH CLUSTERING ORDER BY (created_at DESC, comment_id ASC)
"""

COMMENTS_BY_ID_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.comments_by_id (
    comment_id UUID PRIMARY KEY,
    url TEXT,
    created_at TIMESTAMP,
    parent_id UUID,
    author_id UUID,
    author_name TEXT,
    raw_text TEXT,
    text TEXT,
    edited_at TIMESTAMP
)
"""

# One live row per (comment_id, voter_id)
COMMENT_VOTES_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.comment_votes (
    comment_id UUID,
    voter_id UUID,
    kind TEXT,
    updated_at TIMESTAMP,
    PRIMARY KEY ((comment_id), voter_id)
)
"""

COMMENTS_TABLES_CQL = [
    COMMENTS_BY_URL_TABLE_CQL,
    COMMENTS_BY_ID_TABLE_CQL,
    COMMENT_VOTES_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


@dataclass
class Comment:
    """Comment anchored to a page URL."""

    comment_id: UUID
    url: str
    parent_id: UUID | None
    author_id: UUID
    author_name: str
    raw_text: str
    text: str
    created_at: datetime
    edited_at: datetime | None = None

    @classmethod
    def from_row(cls, row: Any) -> "Comment":
        """Create Comment from Cassandra row."""
        return cls(
            comment_id=row.comment_id,
            url=row.url,
            parent_id=row.parent_id,
            author_id=row.author_id,
            author_name=row.author_name or "anonymous",
            raw_text=row.raw_text or "",
            text=row.text or "",
            created_at=as_utc(row.created_at),
            edited_at=as_utc(row.edited_at),
        )

    def edited(self, raw_text: str, text: str) -> "Comment":
        """Copy of this comment with new content and edit timestamp."""
        return replace(self, raw_text=raw_text, text=text, edited_at=datetime.now(UTC))


@dataclass(frozen=True)
class Vote:
    """A voter's live vote on a comment."""

    comment_id: UUID
    voter_id: UUID
    kind: VoteKind
    updated_at: datetime

    @classmethod
    def from_row(cls, row: Any) -> "Vote":
        """Create Vote from Cassandra row."""
        return cls(
            comment_id=row.comment_id,
            voter_id=row.voter_id,
            kind=VoteKind(row.kind),
            updated_at=as_utc(row.updated_at),
        )


@dataclass(frozen=True)
class Tally:
    """Up/down summary derived from live vote rows."""

    upvotes: int = 0
    downvotes: int = 0


# ==============================================================================
# Factory Functions
# ==============================================================================


def create_comment(
    url: str,
    author_id: UUID,
    author_name: str,
    raw_text: str,
    text: str,
    parent_id: UUID | None = None,
) -> Comment:
    """Create a new comment with default values."""
    return Comment(
        comment_id=uuid4(),
        url=url,
        parent_id=parent_id,
        author_id=author_id,
        author_name=author_name,
        raw_text=raw_text,
        text=text,
        created_at=datetime.now(UTC),
    )


def create_vote(comment_id: UUID, voter_id: UUID, kind: VoteKind) -> Vote:
    """Create a vote row stamped now."""
    return Vote(
        comment_id=comment_id,
        voter_id=voter_id,
        kind=kind,
        updated_at=datetime.now(UTC),
    )


def as_utc(value: datetime | None) -> datetime | None:
    """Mark a naive timestamp as UTC; aware values and None pass through."""
    # Cassandra returns naive UTC timestamps
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=UTC)
