"""Word counts carried inside commit messages.

Chapter commits end in ``(<N> words)`` and whole-project commits in
``(<N> total words)``. Other tools parse this suffix, so the format is fixed.
"""

import re
from enum import Enum
from typing import Any, Optional

WORD_COUNT_PATTERN = re.compile(r"\((\d+)\s+(?:total\s+)?words?\)")


class Scope(str, Enum):
    CHAPTER = "chapter"
    PROJECT = "project"


def encode_word_count(message: str, word_count: int, scope: Scope = Scope.CHAPTER) -> str:
    """Append the encoded word count to ``message``."""
    if word_count < 0:
        raise ValueError(f"word_count must be non-negative, got {word_count}")

    suffix = "total words" if scope == Scope.PROJECT else "words"
    return f"{message} ({word_count} {suffix})"


def decode_word_count(message: Any) -> Optional[int]:
    """Extract the first encoded word count, or None when there is none.

    Human-written messages usually carry no count; that is not an error.
    """
    if not isinstance(message, str):
        return None

    match = WORD_COUNT_PATTERN.search(message)
    if not match:
        return None
    return int(match.group(1))
