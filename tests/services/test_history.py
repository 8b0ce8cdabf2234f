"""Tests for history and diff reporting."""

from datetime import date, datetime, timedelta
from pathlib import Path

import pytest
from git import Repo

from manuscriptgit.config import ManuscriptConfig
from manuscriptgit.errors import ManuscriptError, SnapshotNotFound
from manuscriptgit.services.history import HistoryReporter, estimate_word_change, parse_numstat
from manuscriptgit.services.session import RepositorySession


def write(session: RepositorySession, name: str, content: str) -> Path:
    path = session.project_path / name
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


def lines(count: int, prefix: str = "line") -> str:
    return "".join(f"{prefix} {index}\n" for index in range(count))


def create_dated_commit(repo: Repo, file_path: Path, content: str, message: str, when: datetime):
    """Helper function to create a commit with a fixed date."""
    file_path.write_text(content, encoding="utf-8")
    repo.index.add([file_path.name])
    stamp = when.strftime("%Y-%m-%dT%H:%M:%S")
    return repo.index.commit(message, author_date=stamp, commit_date=stamp)


@pytest.fixture
def reporter(session) -> HistoryReporter:
    return HistoryReporter(session)


@pytest.mark.parametrize(
    "insertions,deletions,expected",
    [
        (0, 0, 0),
        (10, 0, 2),
        (0, 10, -2),
        (12, 0, 2),
        (13, 0, 3),
        (7, 0, 1),
        (0, 7, -1),
        (0, 8, -2),
    ],
)
def test_estimate_word_change_rounds_half_up(insertions, deletions, expected):
    assert estimate_word_change(insertions, deletions, 5) == expected


def test_parse_numstat_counts_binary_files():
    output = "3\t1\tchapters/01.md\n-\t-\tcover.png\n10\t0\tnotes.txt\n"

    assert parse_numstat(output) == (3, 13, 1)


def test_parse_numstat_empty():
    assert parse_numstat("") == (0, 0, 0)


def test_get_history_newest_first(session, reporter):
    for index in range(5):
        write(session, "ch1.md", lines(index + 1))
        session.commit_chapter("ch1.md", f"Pass {index}")

    history = reporter.get_history(3)

    assert [record.message for record in history] == [
        "Pass 4 (10 words)",
        "Pass 3 (8 words)",
        "Pass 2 (6 words)",
    ]
    assert [record.word_count for record in history] == [10, 8, 6]
    assert all(older.timestamp <= newer.timestamp for newer, older in zip(history, history[1:]))


@pytest.mark.parametrize("limit,expected", [(1, 1), (3, 3), (4, 4), (50, 4)])
def test_get_history_length_is_min_of_limit_and_total(session, reporter, limit, expected):
    for index in range(3):
        write(session, f"ch{index}.md", "words")
        session.commit_chapter(f"ch{index}.md")

    assert len(reporter.get_history(limit)) == expected


def test_get_history_records(session, reporter):
    write(session, "chapter1.md", "The quick brown fox jumps.")
    session.commit_chapter("chapter1.md", "First line")

    record = reporter.get_history(1)[0]

    assert record.message == "First line (5 words)"
    assert record.word_count == 5
    assert record.author == "Test Author"
    assert record.hash == session.repo.head.commit.hexsha
    assert record.short_hash == record.hash[:7]


def test_get_history_undecodable_message(session, reporter):
    write(session, "ch1.md", "words")
    session.repo.index.add(["ch1.md"])
    session.repo.index.commit("Fix typo")

    assert reporter.get_history(1)[0].word_count is None


def test_get_history_without_commits(project_path, config):
    repo = Repo.init(project_path)
    session = RepositorySession(project_path.resolve(), repo, config, token_lookup=None)

    assert HistoryReporter(session).get_history() == []
    assert HistoryReporter(session).get_word_count_history() == []


def test_get_file_history_follows_renames(session, reporter):
    write(session, "draft.md", lines(20))
    session.commit_chapter("draft.md", "Start draft")
    write(session, "other.md", "unrelated")
    session.commit_chapter("other.md", "Other file")

    session.repo.git.mv("draft.md", "chapter-01.md")
    session.repo.git.commit("-m", "Rename draft")

    history = reporter.get_file_history("chapter-01.md")

    assert [record.message for record in history] == ["Rename draft", "Start draft (40 words)"]


def test_get_file_history_absolute_path(session, reporter):
    chapter = write(session, "ch1.md", "one")
    session.commit_chapter(chapter, "First")

    assert [record.message for record in reporter.get_file_history(chapter)] == ["First (1 words)"]


def test_get_file_history_outside_project(tmp_path, reporter):
    stray = tmp_path / "elsewhere.md"
    stray.write_text("not part of the novel", encoding="utf-8")

    with pytest.raises(ManuscriptError, match="is outside") as exc_info:
        reporter.get_file_history(stray)
    assert exc_info.value.remediation


def test_get_diff_between_refs(session, reporter):
    base = session.repo.head.commit.hexsha
    write(session, "ch1.md", lines(10))
    session.commit_chapter("ch1.md", "Draft")

    diff = reporter.get_diff(base, "HEAD")

    assert diff.files_changed == 1
    assert diff.insertions == 10
    assert diff.deletions == 0
    assert diff.net_word_change == 2


def test_get_diff_working_tree(session, reporter):
    write(session, "ch1.md", lines(10))
    session.commit_chapter("ch1.md", "Draft")
    write(session, "ch1.md", lines(4))

    diff = reporter.get_diff()

    assert (diff.files_changed, diff.insertions, diff.deletions) == (1, 0, 6)
    assert diff.net_word_change == -1
    # Nothing was staged or committed by the diff
    assert not session.repo.index.diff("HEAD")
    assert (session.project_path / "ch1.md").read_text(encoding="utf-8") == lines(4)


def test_get_diff_single_ref_against_working_tree(session, reporter):
    base = session.repo.head.commit.hexsha
    write(session, "ch1.md", lines(5))
    session.commit_chapter("ch1.md", "Draft")
    write(session, "ch1.md", lines(10))

    diff = reporter.get_diff(base)

    assert (diff.files_changed, diff.insertions, diff.deletions) == (1, 10, 0)


def test_get_diff_is_additive_for_appended_text(session, reporter):
    first = session.repo.head.commit.hexsha
    write(session, "ch1.md", lines(6))
    second = session.commit_chapter("ch1.md", "Part one")
    write(session, "ch1.md", lines(6) + lines(9, "more"))
    write(session, "ch2.md", lines(3))
    third = session.commit_all("Part two")

    a_b = reporter.get_diff(first, second)
    b_c = reporter.get_diff(second, third)
    a_c = reporter.get_diff(first, third)

    assert a_b.insertions + b_c.insertions == a_c.insertions == 18
    assert a_b.deletions + b_c.deletions == a_c.deletions == 0


def test_get_diff_unknown_ref(reporter):
    with pytest.raises(SnapshotNotFound, match="backup-nope"):
        reporter.get_diff("backup-nope", "HEAD")


def test_compare_snapshots_lists_files(session, reporter):
    session.repo.create_tag("draft-a")
    write(session, "ch1.md", lines(3))
    write(session, "notes/ch2.md", lines(2))
    session.commit_all("More")
    session.repo.create_tag("draft-b")

    comparison = reporter.compare_snapshots("draft-a", "draft-b")

    assert comparison.files == ["ch1.md", "notes/ch2.md"]
    assert comparison.diff.files_changed == 2
    assert comparison.diff.insertions == 5


def test_words_per_line_is_configurable(session):
    reporter = HistoryReporter(session, ManuscriptConfig(words_per_line_estimate=10))
    base = session.repo.head.commit.hexsha
    write(session, "ch1.md", lines(10))
    session.commit_chapter("ch1.md")

    assert reporter.get_diff(base, "HEAD").net_word_change == 1


def test_word_count_history_oldest_first(session, reporter):
    write(session, "ch1.md", "The quick brown fox jumps.")
    session.commit_chapter("ch1.md", "First")
    write(session, "ch1.md", "The quick brown fox jumps over the lazy dog, twice.")
    session.commit_chapter("ch1.md", "Second")
    write(session, "ch1.md", "The quick brown fox.")
    session.commit_chapter("ch1.md", "Trim")

    history = reporter.get_word_count_history(30)

    assert [entry.word_count for entry in history] == [0, 5, 10, 4]
    assert [entry.change for entry in history] == [0, 5, 5, -6]
    assert all(entry.date == date.today() for entry in history)


def test_word_count_history_counts_undecodable_as_zero(session, reporter):
    write(session, "ch1.md", "one two three")
    session.commit_chapter("ch1.md", "Draft")
    write(session, "ch1.md", "one two three four")
    session.repo.index.add(["ch1.md"])
    session.repo.index.commit("Fix typo")

    history = reporter.get_word_count_history(30)

    assert [(entry.word_count, entry.change) for entry in history[-2:]] == [(3, 3), (0, -3)]


def test_word_count_history_daily_keeps_last_commit_of_day(session, reporter):
    for text in ("one", "one two", "one two three"):
        write(session, "ch1.md", text)
        session.commit_chapter("ch1.md")

    history = reporter.get_word_count_history(30, daily=True)

    assert len(history) == 1
    assert history[0].word_count == 3
    assert history[0].change == 3


def test_word_count_history_window(project_path, config):
    repo = Repo.init(project_path)
    chapter = project_path / "ch1.md"
    now = datetime.now()
    create_dated_commit(repo, chapter, "a", "Old (100 words)", now - timedelta(days=60))
    create_dated_commit(repo, chapter, "b", "Recent (200 words)", now - timedelta(days=5))
    create_dated_commit(repo, chapter, "c", "Today (250 words)", now - timedelta(minutes=1))
    reporter = HistoryReporter(RepositorySession.open(project_path, config=config))

    history = reporter.get_word_count_history(30)

    assert [entry.word_count for entry in history] == [200, 250]
    assert [entry.change for entry in history] == [200, 50]

    assert len(reporter.get_word_count_history(90)) == 3
    assert reporter.get_word_count_history(0) == []


def test_statistics(session, reporter):
    write(session, "ch1.md", "The quick brown fox jumps.")
    session.commit_chapter("ch1.md", "First")
    write(session, "ch1.md", "The quick brown fox jumps over the lazy dog, then naps.")
    session.commit_chapter("ch1.md", "Second")

    stats = reporter.get_statistics()

    assert stats.total_commits == 3
    assert stats.current_word_count == 11
    assert stats.words_added == 6
    assert stats.average_words_per_commit == 2


def test_statistics_without_encoded_commits(reporter):
    stats = reporter.get_statistics()

    assert stats.total_commits == 1
    assert stats.current_word_count == 0
    assert stats.words_added == 0
    assert stats.average_words_per_commit == 0
