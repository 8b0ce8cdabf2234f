"""Runtime configuration for manuscriptgit.

Values that used to be process-wide constants (the words-per-line estimate,
the chart width, the writing file extensions) live here so that callers and
tests can inject their own without touching global state.
"""

import os
from pathlib import Path
from typing import List, Optional, Tuple

from dotenv import load_dotenv
from pydantic import BaseModel, Field

DEFAULT_IGNORE_PATTERNS = [
    "# manuscriptgit",
    ".writer/cache/",
    "exports/*.tmp",
    "*.backup.*",
    ".DS_Store",
    "Thumbs.db",
    "node_modules/",
    ".venv/",
    "*.log",
    ".env",
    "*.token",
]


def default_token_file() -> Path:
    return Path.home() / ".writer" / "github-token"


class ManuscriptConfig(BaseModel):
    """Settings shared by the session, the reporters and the CLI."""

    words_per_line_estimate: int = Field(5, gt=0, description="Heuristic words per diff line")
    writing_extensions: Tuple[str, ...] = Field(
        (".md", ".txt", ".fountain"), description="Files that count towards the manuscript"
    )
    chart_width: int = Field(50, gt=0, description="Width of a full progress bar")
    history_days: int = Field(30, gt=0, description="Default trailing window for word history")
    default_branch: str = Field("main", description="Branch created by a fresh init")
    initial_commit_message: str = Field("Initial commit: project setup")
    ignore_patterns: List[str] = Field(default_factory=lambda: list(DEFAULT_IGNORE_PATTERNS))
    token_file: Path = Field(default_factory=default_token_file, description="Per-user GitHub token")
    groq_model: str = Field("llama-3.1-8b-instant", description="Model used for commit suggestions")

    @classmethod
    def from_env(cls, env_file: Optional[Path] = None) -> "ManuscriptConfig":
        """Build a config from MANUSCRIPT_* environment variables.

        A ``.env`` file is loaded first (without overriding variables that are
        already set), the same way the CLI picks up API keys.
        """
        load_dotenv(dotenv_path=env_file)

        overrides = {}
        if os.getenv("MANUSCRIPT_WORDS_PER_LINE"):
            overrides["words_per_line_estimate"] = int(os.environ["MANUSCRIPT_WORDS_PER_LINE"])
        if os.getenv("MANUSCRIPT_CHART_WIDTH"):
            overrides["chart_width"] = int(os.environ["MANUSCRIPT_CHART_WIDTH"])
        if os.getenv("MANUSCRIPT_HISTORY_DAYS"):
            overrides["history_days"] = int(os.environ["MANUSCRIPT_HISTORY_DAYS"])
        if os.getenv("MANUSCRIPT_DEFAULT_BRANCH"):
            overrides["default_branch"] = os.environ["MANUSCRIPT_DEFAULT_BRANCH"]
        if os.getenv("MANUSCRIPT_TOKEN_FILE"):
            overrides["token_file"] = Path(os.environ["MANUSCRIPT_TOKEN_FILE"]).expanduser()
        if os.getenv("MANUSCRIPT_GROQ_MODEL"):
            overrides["groq_model"] = os.environ["MANUSCRIPT_GROQ_MODEL"]

        return cls(**overrides)

    def gitignore_content(self) -> str:
        return "\n".join(self.ignore_patterns) + "\n"
