"""Commit message suggestions from the LLM gateway.

The model only ever sees a summary of the pending changes (paths, change
kinds, line and word deltas), never the manuscript text itself.
"""

import os
from typing import Any, List, Optional

from langchain_core.output_parsers import StrOutputParser
from langchain_core.prompts import PromptTemplate
from langchain_groq import ChatGroq
from loguru import logger

from manuscriptgit.services.history import HistoryReporter
from manuscriptgit.services.session import RepositorySession

MAX_MESSAGE_LENGTH = 72

COMMIT_MESSAGE_TEMPLATE = """
You write commit messages for an author who keeps a manuscript under version control.

Pending changes:
{changes}

Diff summary: {files_changed} files changed, {insertions} lines added, {deletions} lines removed,
roughly {net_words} words net.

Reply with a single line of at most {max_length} characters in the imperative mood that
describes the writing work (for example "Draft the storm scene in chapter 3").
Do not mention word counts, do not use quotes, do not add any other text.
"""


def summarize_changes(session: RepositorySession) -> List[str]:
    return [f"{change.change}: {change.path}" for change in session.status().modified_files]


def fallback_message(changes: List[str]) -> str:
    if len(changes) == 1:
        return f"Update {changes[0].split(': ', 1)[1]}"
    return f"Update {len(changes)} files"


def _clean(message: str) -> str:
    first_line = message.strip().splitlines()[0] if message.strip() else ""
    return first_line.strip().strip("\"'")[:MAX_MESSAGE_LENGTH].rstrip()


def suggest_commit_message(
    session: RepositorySession,
    llm: Optional[Any] = None,
    api_key: Optional[str] = None,
) -> str:
    """Ask the LLM for a one-line commit message describing the pending changes.

    Falls back to a plain ``Update ...`` message when no model is configured
    or the call fails.
    """
    changes = summarize_changes(session)
    default = fallback_message(changes) if changes else "Update manuscript"
    if not changes:
        return default

    if llm is None:
        api_key = api_key or os.getenv("GROQ_API_KEY")
        if not api_key:
            logger.debug("GROQ_API_KEY not set, using default commit message")
            return default
        llm = ChatGroq(api_key=api_key, model=session.config.groq_model)

    diff = HistoryReporter(session).get_diff()
    chain = PromptTemplate.from_template(COMMIT_MESSAGE_TEMPLATE) | llm | StrOutputParser()

    try:
        logger.debug(f"Requesting commit message for {len(changes)} changed files")
        suggestion = _clean(
            chain.invoke(
                {
                    "changes": "\n".join(changes),
                    "files_changed": diff.files_changed,
                    "insertions": diff.insertions,
                    "deletions": diff.deletions,
                    "net_words": diff.net_word_change,
                    "max_length": MAX_MESSAGE_LENGTH,
                }
            )
        )
    except Exception as e:
        logger.warning(f"Commit message suggestion failed, using default: {e}")
        return default

    return suggestion or default
