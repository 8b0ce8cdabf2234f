"""Whitespace word counting.

Commit messages store the numbers produced here and later parse them back, so
the tokenisation must stay exactly as it is: split on runs of whitespace and
count what is left. No punctuation stripping, no locale rules.

Whitespace is the fixed set below rather than ``str.isspace``: the ASCII
information separators and NEL are part of a word, a byte-order mark is not.
"""

import re
from pathlib import Path
from typing import Iterable, Union

from loguru import logger

WHITESPACE_PATTERN = re.compile(r"[\t\n\v\f\r \u00a0\u1680\u2000-\u200a\u2028\u2029\u202f\u205f\u3000\ufeff]+")


def count_words(text: str) -> int:
    """Count whitespace-separated tokens in ``text``."""
    return sum(1 for token in WHITESPACE_PATTERN.split(text) if token)


def count_file_words(path: Union[str, Path]) -> int:
    """Count the words of a UTF-8 file; unreadable files count as zero."""
    try:
        content = Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        logger.debug(f"Skipping word count for {path}: {e}")
        return 0
    return count_words(content)


def is_writing_file(path: Union[str, Path], extensions: Iterable[str]) -> bool:
    return Path(path).suffix.lower() in {ext.lower() for ext in extensions}
