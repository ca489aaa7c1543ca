"""Authentication boundary.

Verifies access tokens and resolves @handles. Router is imported directly in
main.py to avoid circular imports.
"""

from marginalia.auth.directory import (
    CassandraUserDirectory,
    InMemoryUserDirectory,
    UserDirectory,
)
from marginalia.auth.models import AUTH_TABLES_CQL, AuthenticatedUser, UserRef


__all__ = [
    "AUTH_TABLES_CQL",
    "AuthenticatedUser",
    "CassandraUserDirectory",
    "InMemoryUserDirectory",
    "UserDirectory",
    "UserRef",
]
