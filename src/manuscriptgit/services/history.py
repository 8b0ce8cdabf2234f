"""History and diff reporting for a manuscript repository.

Turns the commit graph into writer-facing data: commit records with decoded
word counts, chapter histories that follow renames, diff statistics with an
estimated word delta, and the word count timeline behind the progress chart.
"""

import math
from datetime import datetime, timedelta
from typing import List, Optional

from git.exc import GitCommandError
from loguru import logger

from manuscriptgit.config import ManuscriptConfig
from manuscriptgit.errors import translate_git_error
from manuscriptgit.models.base import (
    CommitRecord,
    HistoryStatistics,
    ManuscriptDiff,
    SnapshotComparison,
    WordCountHistoryEntry,
)
from manuscriptgit.services.message_codec import decode_word_count
from manuscriptgit.services.session import RepositorySession


def estimate_word_change(insertions: int, deletions: int, words_per_line: int) -> int:
    """Net word delta estimated from line counts, rounding halves up."""
    return math.floor((insertions - deletions) / words_per_line + 0.5)


def parse_numstat(output: str) -> tuple:
    """Sum ``git diff --numstat`` output into (files, insertions, deletions)."""
    files = insertions = deletions = 0
    for line in output.splitlines():
        parts = line.split("\t", 2)
        if len(parts) != 3:
            continue
        added, removed, _ = parts
        files += 1
        # Binary files report '-' for both columns
        if added.isdigit():
            insertions += int(added)
        if removed.isdigit():
            deletions += int(removed)
    return files, insertions, deletions


class HistoryReporter:
    """Reads history and diffs for one repository session."""

    def __init__(self, session: RepositorySession, config: Optional[ManuscriptConfig] = None):
        self.session = session
        self.config = config or session.config

    @property
    def repo(self):
        return self.session.repo

    def _has_commits(self) -> bool:
        try:
            self.repo.head.commit
        except ValueError:
            return False
        return True

    def get_history(self, limit: int = 20) -> List[CommitRecord]:
        """Return the ``limit`` most recent commits, newest first."""
        if limit <= 0 or not self._has_commits():
            return []
        return [CommitRecord.from_git_commit(commit) for commit in self.repo.iter_commits("HEAD", max_count=limit)]

    def get_file_history(self, path: str) -> List[CommitRecord]:
        """Return every commit that touched ``path``, following renames."""
        if not self._has_commits():
            return []

        relative = self.session.relative_path(path)
        try:
            hashes = self.repo.git.log("--follow", "--format=%H", "--", relative).split()
        except GitCommandError as e:
            raise translate_git_error(e, f"read the history of {relative}") from e

        logger.debug(f"Found {len(hashes)} commits touching {relative}")
        return [CommitRecord.from_git_commit(self.repo.commit(sha)) for sha in hashes]

    def get_diff(self, from_ref: Optional[str] = None, to_ref: Optional[str] = None) -> ManuscriptDiff:
        """Diff statistics between two refs, or between a ref and the working tree.

        With no refs the working tree is compared against the last commit.
        Neither the working tree nor the index is touched.
        """
        refs = [ref for ref in (from_ref, to_ref) if ref]
        for ref in refs:
            self.session.resolve_commit(ref)
        if not refs:
            refs = ["HEAD"]

        try:
            output = self.repo.git.diff("--numstat", "--no-renames", *refs, "--")
        except GitCommandError as e:
            raise translate_git_error(e, f"diff {' '.join(refs)}") from e

        files, insertions, deletions = parse_numstat(output)
        return ManuscriptDiff(
            files_changed=files,
            insertions=insertions,
            deletions=deletions,
            net_word_change=estimate_word_change(insertions, deletions, self.config.words_per_line_estimate),
        )

    def compare_snapshots(self, tag_a: str, tag_b: str) -> SnapshotComparison:
        """Diff two snapshots and list the paths that changed between them."""
        diff = self.get_diff(tag_a, tag_b)
        try:
            output = self.repo.git.diff("--name-only", "--no-renames", tag_a, tag_b, "--")
        except GitCommandError as e:
            raise translate_git_error(e, f"compare {tag_a} and {tag_b}") from e

        files = [line for line in output.splitlines() if line]
        return SnapshotComparison(diff=diff, files=files)

    def get_word_count_history(self, window_days: Optional[int] = None, daily: bool = False) -> List[WordCountHistoryEntry]:
        """Word counts of the commits in the trailing window, oldest first.

        Commits without an encoded count are taken as zero rather than
        skipped, so a hand-written commit between two encoded ones shows up
        as a dip in the timeline.
        """
        if window_days is None:
            window_days = self.config.history_days
        if not self._has_commits():
            return []

        since = (datetime.now() - timedelta(days=window_days)).isoformat()
        commits = list(self.repo.iter_commits("HEAD", since=since))
        commits.reverse()

        samples = [
            (datetime.fromtimestamp(commit.committed_date).date(), decode_word_count(commit.message) or 0)
            for commit in commits
        ]
        if daily:
            last_per_day = {}
            for day, count in samples:
                last_per_day[day] = count
            samples = list(last_per_day.items())

        history = []
        previous = 0
        for day, count in samples:
            history.append(WordCountHistoryEntry(date=day, word_count=count, change=count - previous))
            previous = count

        logger.debug(f"Word count history: {len(history)} entries over {window_days} days")
        return history

    def get_statistics(self, limit: int = 1000) -> HistoryStatistics:
        """Totals over the encoded commits among the last ``limit`` commits."""
        history = self.get_history(limit)
        counts = [record.word_count for record in history if record.word_count is not None]

        current = counts[0] if counts else 0
        first = counts[-1] if counts else 0
        added = current - first
        average = math.floor(added / len(history) + 0.5) if history else 0

        return HistoryStatistics(
            total_commits=len(history),
            current_word_count=current,
            words_added=added,
            average_words_per_commit=average,
        )
