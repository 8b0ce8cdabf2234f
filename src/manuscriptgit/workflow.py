"""manuscriptgit sync workflow using LangGraph for orchestration."""

import asyncio
from typing import Any, Dict

from langgraph.graph import END, StateGraph
from loguru import logger

from manuscriptgit.models.state import SyncState
from manuscriptgit.nodes.sync_nodes import commit_node, pull_node, push_node, report_node


def _after_step(state: SyncState) -> str:
    return "failed" if state.get("errors") else "continue"


def _after_push(state: SyncState) -> str:
    if state.get("errors"):
        return "failed"
    if state.get("push_rejected"):
        return "retry"
    return "continue"


def create_workflow() -> StateGraph:
    """Create the sync workflow graph: pull, commit, push, report."""
    workflow = StateGraph(SyncState)

    # Add nodes
    workflow.add_node("pull_node", pull_node)
    workflow.add_node("commit_node", commit_node)
    workflow.add_node("push_node", push_node)
    workflow.add_node("report_node", report_node)

    workflow.set_entry_point("pull_node")

    # Define edges; any recorded error skips straight to the report
    workflow.add_conditional_edges("pull_node", _after_step, {"continue": "commit_node", "failed": "report_node"})
    workflow.add_conditional_edges("commit_node", _after_step, {"continue": "push_node", "failed": "report_node"})
    workflow.add_conditional_edges(
        "push_node",
        _after_push,
        {"continue": "report_node", "retry": "pull_node", "failed": "report_node"},
    )
    workflow.add_edge("report_node", END)

    return workflow.compile()


def initial_state(config: Dict[str, Any]) -> SyncState:
    state: SyncState = {
        "repo_path": config["repo_path"],
        "remote": config.get("remote", "origin"),
        "branch": config.get("branch"),
        "token": config.get("token"),
        "do_pull": config.get("do_pull", True),
        "do_push": config.get("do_push", True),
        "commit_message": config.get("commit_message", "Auto-commit before sync"),
        "push_attempts": 0,
        "errors": [],
    }
    if config.get("manuscript_config") is not None:
        state["manuscript_config"] = config["manuscript_config"]
    return state


async def run_sync_async(config: Dict[str, Any]) -> SyncState:
    """Run the sync workflow asynchronously and return the final state."""
    app = create_workflow()
    final_state = None
    async for state in app.astream(initial_state(config), stream_mode="values"):
        final_state = state

    if final_state.get("errors"):
        logger.error(f"Sync finished with {len(final_state['errors'])} error(s)")
    return final_state


def run_sync(config: Dict[str, Any]) -> SyncState:
    """Synchronous wrapper for the async workflow."""
    return asyncio.run(run_sync_async(config))
