"""ASCII progress charts."""

import math
from typing import Sequence

from manuscriptgit.models.base import WordCountHistoryEntry

BAR_CHARACTER = "█"
EMPTY_CHARACTER = "░"
NO_HISTORY_MESSAGE = "No writing history found."


def _signed(value: int) -> str:
    return f"+{value}" if value > 0 else str(value)


def _scaled(value: float, scale: float) -> int:
    return math.floor(value * scale + 0.5)


def render_progress(history: Sequence[WordCountHistoryEntry], width: int = 50, window_days: int = 30) -> str:
    """Render one bar per entry, scaled so the largest count fills ``width``."""
    if not history:
        return NO_HISTORY_MESSAGE

    max_words = max(entry.word_count for entry in history)
    scale = width / max_words if max_words > 0 else 0

    lines = [f"Writing Progress (Last {window_days} Days)", "=" * 60]
    for entry in history:
        bar = BAR_CHARACTER * _scaled(entry.word_count, scale)
        lines.append(f"{entry.date.isoformat()} {bar} {entry.word_count} words ({_signed(entry.change)})")

    return "\n".join(lines) + "\n"


def render_goal_progress(current: int, target: int, width: int = 20) -> str:
    """Render a ``[████░░░░]`` bar of ``current`` against ``target``."""
    if target <= 0:
        return f"[{EMPTY_CHARACTER * width}]"

    filled = min(_scaled(current / target, width), width)
    percent = current / target * 100
    return f"[{BAR_CHARACTER * filled}{EMPTY_CHARACTER * (width - filled)}] {percent:.1f}%"
