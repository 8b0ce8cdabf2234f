"""Nodes of the sync workflow: pull, commit, push, report.

Each node opens its own session from ``state["repo_path"]``, records
failures in ``state["errors"]`` and leaves routing decisions to the graph.
"""

from datetime import datetime

from loguru import logger

from manuscriptgit.config import ManuscriptConfig
from manuscriptgit.errors import ManuscriptError, PushRejected
from manuscriptgit.models.state import SyncState
from manuscriptgit.services.session import RepositorySession

MAX_PUSH_ATTEMPTS = 2


def _session(state: SyncState) -> RepositorySession:
    config = state.get("manuscript_config") or ManuscriptConfig()
    return RepositorySession.open(state["repo_path"], config=config, token=state.get("token"))


def _record_error(state: SyncState, node: str, error: ManuscriptError) -> SyncState:
    logger.error(f"{node}: {error}")
    state.setdefault("errors", []).append(
        {
            "node": node,
            "error": str(error),
            "remediation": error.remediation,
            "retryable": error.retryable,
            "timestamp": datetime.now(),
        }
    )
    return state


def pull_node(state: SyncState) -> SyncState:
    """Pull the remote branch, stashing tracked local changes around it."""
    state.setdefault("errors", [])
    state["push_rejected"] = False
    if not state.get("do_pull", True):
        return state

    logger.info("Executing Pull Node")
    session = _session(state)
    remote = state.get("remote", "origin")
    stashed = False
    try:
        branch = state.get("branch") or session.current_branch
        if not session.remote_has_branch(remote, branch):
            logger.info(f"{remote} has no branch {branch} yet, nothing to pull")
            return state
        stashed = session.stash_push("manuscriptgit: auto-stash before pull")
        session.pull(remote, branch)
        state["pulled"] = True
    except ManuscriptError as e:
        _record_error(state, "pull_node", e)
    finally:
        if stashed:
            try:
                session.stash_pop()
            except ManuscriptError as e:
                _record_error(state, "pull_node", e)
    state["stashed"] = stashed
    return state


def commit_node(state: SyncState) -> SyncState:
    """Commit outstanding changes so they travel with the push."""
    if not state.get("do_push", True):
        return state

    logger.info("Executing Commit Node")
    session = _session(state)
    try:
        commit = session.commit_all(state.get("commit_message", "Auto-commit before sync"))
        if commit:
            state["committed"] = commit
    except ManuscriptError as e:
        _record_error(state, "commit_node", e)
    return state


def push_node(state: SyncState) -> SyncState:
    """Push the branch, flagging a non-fast-forward rejection for one pull-and-retry."""
    if not state.get("do_push", True):
        return state

    logger.info("Executing Push Node")
    session = _session(state)
    state["push_attempts"] = state.get("push_attempts", 0) + 1
    try:
        session.push(state.get("remote", "origin"), state.get("branch") or session.current_branch)
        state["pushed"] = True
        state["push_rejected"] = False
    except PushRejected as e:
        if state["push_attempts"] < MAX_PUSH_ATTEMPTS:
            logger.warning(f"Push rejected, pulling before retrying: {e}")
            state["push_rejected"] = True
            state["do_pull"] = True
        else:
            _record_error(state, "push_node", e)
    except ManuscriptError as e:
        _record_error(state, "push_node", e)
    return state


def report_node(state: SyncState) -> SyncState:
    """Attach the final working tree status and the display URL of the remote."""
    logger.info("Executing Report Node")
    session = _session(state)
    try:
        state["status"] = session.status()
        state["remote_url"] = session.remote_url(state.get("remote", "origin"))
    except ManuscriptError as e:
        _record_error(state, "report_node", e)
    return state
