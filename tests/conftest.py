"""Shared fixtures: isolated HOME, a fixed git identity and a fresh manuscript."""

import os
from pathlib import Path

import pytest

from manuscriptgit.config import ManuscriptConfig
from manuscriptgit.services.session import RepositorySession


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path, monkeypatch):
    """Keep the user's tokens and git configuration out of the tests."""
    for name in ("GITHUB_TOKEN", "GH_TOKEN", "GROQ_API_KEY"):
        monkeypatch.delenv(name, raising=False)
    for name in list(os.environ):
        if name.startswith("MANUSCRIPT_"):
            monkeypatch.delenv(name, raising=False)

    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    monkeypatch.setenv("GIT_AUTHOR_NAME", "Test Author")
    monkeypatch.setenv("GIT_AUTHOR_EMAIL", "author@example.com")
    monkeypatch.setenv("GIT_COMMITTER_NAME", "Test Author")
    monkeypatch.setenv("GIT_COMMITTER_EMAIL", "author@example.com")
    return home


@pytest.fixture
def config(tmp_path):
    return ManuscriptConfig(token_file=tmp_path / "home" / ".writer" / "github-token")


@pytest.fixture
def project_path(tmp_path) -> Path:
    path = tmp_path / "novel"
    path.mkdir()
    return path


@pytest.fixture
def session(project_path, config) -> RepositorySession:
    """An initialised manuscript repository."""
    session = RepositorySession.open(project_path, config=config)
    session.ensure_initialized()
    return session

