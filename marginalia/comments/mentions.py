"""@mention extraction.

A mention is ``@`` followed by one or more ASCII word characters. Handles are
returned without the ``@`` and in order of appearance; a handle mentioned
twice appears twice. Resolving handles to users happens elsewhere.
"""

import re
from collections.abc import Iterator


MENTION_PATTERN = re.compile(r"@(\w+)", re.ASCII)


def iter_mentions(text: str) -> Iterator[str]:
    """Lazily yield mentioned handles."""
    for match in MENTION_PATTERN.finditer(text):
        yield match.group(1)


def extract_mentions(text: str) -> list[str]:
    """Extract mentioned handles from comment text.

    >>> extract_mentions("hi @bob and @bob, cc @Alice_2")
    ['bob', 'bob', 'Alice_2']
    """
    return list(iter_mentions(text))
