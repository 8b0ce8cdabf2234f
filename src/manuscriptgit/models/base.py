"""Base types used across the manuscriptgit system."""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import List, Literal, Optional

from git.objects.commit import Commit
from pydantic import BaseModel, ConfigDict, Field

from manuscriptgit.services.message_codec import decode_word_count

ChangeKind = Literal["modified", "added", "deleted", "untracked"]


class CommitRecord(BaseModel):
    """Structured, read-only view of one commit in the manuscript history."""

    model_config = ConfigDict(frozen=True)

    hash: str = Field(..., description="The commit hash")
    author: str = Field(..., description="The committer's display name")
    timestamp: datetime = Field(..., description="When the commit was created")
    message: str = Field(..., description="The commit message")
    word_count: Optional[int] = Field(None, description="Word count decoded from the message")

    @classmethod
    def from_git_commit(cls, commit: Commit) -> "CommitRecord":
        """Create a CommitRecord from a GitPython Commit object."""
        message = commit.message.strip()
        return cls(
            hash=commit.hexsha,
            author=commit.author.name,
            timestamp=datetime.fromtimestamp(commit.committed_date),
            message=message,
            word_count=decode_word_count(message),
        )

    @property
    def short_hash(self) -> str:
        return self.hash[:7]


@dataclass(frozen=True)
class FileChange:
    """A single path in the working tree status."""

    path: str
    change: ChangeKind


@dataclass
class WorkingTreeStatus:
    """Uncommitted state of the project, computed fresh on every query."""

    current_branch: str
    modified_files: List[FileChange] = field(default_factory=list)
    ahead_count: int = 0
    behind_count: int = 0
    tracking_branch: Optional[str] = None

    @property
    def is_clean(self) -> bool:
        return not self.modified_files


@dataclass(frozen=True)
class SnapshotTag:
    """A named, dated backup pointer."""

    name: str
    message: str
    target_commit: str
    created: datetime
    word_count: Optional[int] = None


@dataclass(frozen=True)
class ManuscriptDiff:
    """Comparison between two points in history."""

    files_changed: int
    insertions: int
    deletions: int
    net_word_change: int


@dataclass(frozen=True)
class SnapshotComparison:
    """Diff statistics plus the paths that changed between two snapshots."""

    diff: ManuscriptDiff
    files: List[str]


@dataclass(frozen=True)
class WordCountHistoryEntry:
    """One sample in the word count timeline."""

    date: date
    word_count: int
    change: int


@dataclass(frozen=True)
class HistoryStatistics:
    """Aggregate numbers shown by ``history --stats``."""

    total_commits: int
    current_word_count: int
    words_added: int
    average_words_per_commit: int


@dataclass(frozen=True)
class TokenAttempt:
    """Outcome of looking for a token in one source."""

    source: str
    outcome: str  # 'found', 'missing', 'empty', 'unreadable'


@dataclass
class TokenLookup:
    """Result of credential discovery, including every source that was tried."""

    token: Optional[str] = None
    source: Optional[str] = None
    attempts: List[TokenAttempt] = field(default_factory=list)

    @property
    def found(self) -> bool:
        return self.token is not None
