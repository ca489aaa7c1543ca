"""Persistence backends for comments, votes and notifications."""

from marginalia.store.base import CommentStore
from marginalia.store.cassandra import CassandraStore
from marginalia.store.memory import InMemoryStore


__all__ = [
    "CassandraStore",
    "CommentStore",
    "InMemoryStore",
]
