"""
manuscriptgit sync workflow state.
"""

from typing import Any, Dict, List, Optional, TypedDict

from manuscriptgit.config import ManuscriptConfig
from manuscriptgit.models.base import WorkingTreeStatus


class SyncState(TypedDict, total=False):
    """State container for the sync workflow.

    Using TypedDict for LangGraph compatibility. total=False means all fields
    are optional.
    """

    # Configuration
    repo_path: str  # Project directory
    manuscript_config: ManuscriptConfig
    remote: str  # Remote name, usually 'origin'
    branch: Optional[str]  # Branch to sync; defaults to the current branch
    token: Optional[str]  # Explicit GitHub token, overrides discovery
    do_pull: bool
    do_push: bool
    commit_message: str  # Message for the auto-commit before pushing

    # Progress
    pulled: bool
    stashed: bool
    committed: Optional[str]  # Hash of the auto-commit, if one was made
    pushed: bool
    push_attempts: int
    push_rejected: bool

    # Outcome
    status: WorkingTreeStatus
    remote_url: Optional[str]
    errors: List[Dict[str, Any]]
