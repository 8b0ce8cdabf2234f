"""Tests for the ASCII progress charts."""

from datetime import date

from manuscriptgit.models.base import WordCountHistoryEntry
from manuscriptgit.services.progress import NO_HISTORY_MESSAGE, render_goal_progress, render_progress


def entry(day: int, word_count: int, change: int) -> WordCountHistoryEntry:
    return WordCountHistoryEntry(date=date(2026, 10, day), word_count=word_count, change=change)


def test_render_empty_history():
    assert render_progress([]) == NO_HISTORY_MESSAGE
    assert NO_HISTORY_MESSAGE == "No writing history found."


def test_render_scales_to_width():
    chart = render_progress([entry(1, 100, 100), entry(2, 200, 100), entry(3, 150, -50)], width=10, window_days=7)

    assert chart.splitlines() == [
        "Writing Progress (Last 7 Days)",
        "=" * 60,
        "2026-10-01 █████ 100 words (+100)",
        "2026-10-02 ██████████ 200 words (+100)",
        "2026-10-03 ████████ 150 words (-50)",
    ]
    assert chart.endswith("\n")


def test_render_one_line_per_entry():
    history = [entry(day, day * 10, 10) for day in range(1, 8)]

    lines = render_progress(history).splitlines()

    assert len(lines) == 2 + len(history)
    assert lines[-1].startswith("2026-10-07 " + "█" * 50 + " ")


def test_render_all_zero_counts():
    chart = render_progress([entry(1, 0, 0), entry(2, 0, 0)])

    assert "2026-10-01  0 words (0)" in chart.splitlines()


def test_goal_progress_half_way():
    assert render_goal_progress(500, 1000, width=10) == "[█████░░░░░] 50.0%"


def test_goal_progress_caps_bar_at_target():
    assert render_goal_progress(1500, 1000, width=4) == "[████] 150.0%"


def test_goal_progress_without_target():
    assert render_goal_progress(100, 0, width=5) == "[░░░░░]"
