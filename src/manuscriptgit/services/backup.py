"""Backups as dated tags, restores onto fresh branches."""

from datetime import date
from typing import List, Optional, Sequence

from loguru import logger

from manuscriptgit.config import ManuscriptConfig
from manuscriptgit.errors import ManuscriptError
from manuscriptgit.models.base import SnapshotComparison, SnapshotTag
from manuscriptgit.services.history import HistoryReporter
from manuscriptgit.services.message_codec import Scope, encode_word_count
from manuscriptgit.services.session import RepositorySession

SNAPSHOT_PREFIXES = ("backup-", "draft-")


class BackupEngine:
    """Creates, lists, restores and compares manuscript snapshots."""

    def __init__(
        self,
        session: RepositorySession,
        reporter: Optional[HistoryReporter] = None,
        config: Optional[ManuscriptConfig] = None,
    ):
        self.session = session
        self.config = config or session.config
        self.reporter = reporter or HistoryReporter(session, self.config)

    def _unique_tag_name(self, base: str) -> str:
        if not self.session.tag_exists(base):
            return base
        suffix = 2
        while self.session.tag_exists(f"{base}-{suffix}"):
            suffix += 1
        return f"{base}-{suffix}"

    def create_backup(self, message: Optional[str] = None, tag_name: Optional[str] = None) -> str:
        """Commit everything and tag the result. Returns the tag name.

        A clean working tree is a valid backup: the tag then points at the
        current HEAD. If tagging fails right after a fresh commit, that commit
        is undone so the caller never sees one without the other.
        """
        today = date.today().isoformat()
        name = self._unique_tag_name(tag_name or f"backup-{today}")
        message = message or f"Backup: {today}"

        total_words = self.session.total_word_count()
        logger.info(f"Creating backup {name} ({total_words} words)")

        commit = self.session.commit_all(message)
        try:
            self.session.create_tag(name, encode_word_count(message, total_words, Scope.PROJECT))
        except ManuscriptError:
            if commit is not None:
                logger.warning(f"Tagging {name} failed, undoing backup commit {commit[:7]}")
                self.session.undo_last_commit()
            raise

        return name

    def list_snapshots(self, prefixes: Sequence[str] = SNAPSHOT_PREFIXES) -> List[SnapshotTag]:
        """Snapshot tags, newest first. An empty ``prefixes`` lists every tag."""
        tags = [tag for tag in self.session.list_tags() if not prefixes or tag.name.startswith(tuple(prefixes))]
        return sorted(tags, key=lambda tag: tag.created, reverse=True)

    def restore_snapshot(self, tag_name: str) -> str:
        """Check out ``tag_name`` on a new ``restore-<tag_name>`` branch.

        The branch that was checked out before stays exactly as it was;
        merging the restored content back is left to the caller.
        """
        target = self.session.resolve_commit(tag_name)
        branch = f"restore-{tag_name}"

        if self.session.branch_exists(branch):
            raise ManuscriptError(
                f"Branch {branch} already exists",
                remediation=f"Switch to it with 'git checkout {branch}' or delete it before restoring again.",
            )
        if not self.session.status().is_clean:
            raise ManuscriptError(
                "Uncommitted changes would be carried onto the restore branch",
                remediation="Commit them with 'manuscriptgit commit' or back them up with 'manuscriptgit backup' first.",
            )

        previous = self.session.current_branch
        self.session.checkout_new_branch(branch, target)
        logger.info(f"Restored {tag_name} onto {branch} (previous branch {previous} untouched)")
        return branch

    def compare_versions(self, tag_a: str, tag_b: str) -> SnapshotComparison:
        return self.reporter.compare_snapshots(tag_a, tag_b)
