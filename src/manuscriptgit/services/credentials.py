"""GitHub token discovery.

Sources are tried in order: an explicit token, the ``GITHUB_TOKEN`` and
``GH_TOKEN`` environment variables, the per-user token file and finally a
``GITHUB_TOKEN=`` line in the project's ``.env``. Every failure falls through
silently; authentication is optional for local-only use. The returned
``TokenLookup`` keeps a record of what was tried for diagnostics.
"""

import base64
import os
from pathlib import Path
from typing import Dict, Mapping, Optional, Union

from dotenv import dotenv_values
from loguru import logger

from manuscriptgit.models.base import TokenAttempt, TokenLookup

ENV_VARIABLES = ("GITHUB_TOKEN", "GH_TOKEN")
GITHUB_HTTPS_PREFIX = "https://github.com/"


def _read_token_file(token_file: Path) -> Optional[str]:
    if not token_file.is_file():
        return None
    return token_file.read_text(encoding="utf-8").strip()


def discover_token(
    project_path: Union[str, Path],
    token_file: Path,
    explicit: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> TokenLookup:
    """Look up a GitHub token, recording the outcome of each source."""
    environ = os.environ if environ is None else environ
    lookup = TokenLookup()

    def attempt(source: str, value: Optional[str], missing: str = "missing") -> bool:
        if value is None:
            lookup.attempts.append(TokenAttempt(source, missing))
            return False
        if not value.strip():
            lookup.attempts.append(TokenAttempt(source, "empty"))
            return False
        lookup.attempts.append(TokenAttempt(source, "found"))
        lookup.token = value.strip()
        lookup.source = source
        return True

    if explicit is not None and attempt("argument", explicit):
        return lookup

    for name in ENV_VARIABLES:
        if attempt(f"env:{name}", environ.get(name)):
            return lookup

    try:
        if attempt("token_file", _read_token_file(token_file)):
            return lookup
    except (OSError, UnicodeDecodeError) as e:
        logger.debug(f"Could not read token file {token_file}: {e}")
        lookup.attempts.append(TokenAttempt("token_file", "unreadable"))

    env_file = Path(project_path) / ".env"
    if env_file.is_file():
        try:
            values = dotenv_values(env_file)
        except (OSError, UnicodeDecodeError) as e:
            logger.debug(f"Could not read {env_file}: {e}")
            lookup.attempts.append(TokenAttempt("project_env", "unreadable"))
        else:
            if attempt("project_env", values.get("GITHUB_TOKEN")):
                return lookup
    else:
        lookup.attempts.append(TokenAttempt("project_env", "missing"))

    logger.debug(f"No GitHub token found ({', '.join(f'{a.source}={a.outcome}' for a in lookup.attempts)})")
    return lookup


def store_user_token(token: str, token_file: Path) -> Path:
    """Write ``token`` to the per-user token file, readable by the owner only."""
    token_file.parent.mkdir(parents=True, exist_ok=True)
    token_file.write_text(token.strip() + "\n", encoding="utf-8")
    os.chmod(token_file, 0o600)
    logger.info(f"Saved GitHub token to {token_file}")
    return token_file


def save_project_token(project_path: Union[str, Path], token: str) -> bool:
    """Append ``GITHUB_TOKEN=`` to the project's ``.env`` unless one is already set.

    Returns True when the file was changed.
    """
    env_file = Path(project_path) / ".env"
    content = env_file.read_text(encoding="utf-8") if env_file.exists() else ""
    if "GITHUB_TOKEN=" in content:
        return False

    if content and not content.endswith("\n"):
        content += "\n"
    env_file.write_text(f"{content}GITHUB_TOKEN={token.strip()}\n", encoding="utf-8")
    logger.info(f"Saved GitHub token to {env_file}")
    return True


def auth_environment(token: Optional[str]) -> Dict[str, str]:
    """Per-command git configuration that authenticates HTTPS remotes.

    The header travels in the child process environment only, so the token
    never lands in ``.git/config`` or in history.
    """
    if not token:
        return {}

    credentials = base64.b64encode(f"x-access-token:{token}".encode("utf-8")).decode("ascii")
    return {
        "GIT_TERMINAL_PROMPT": "0",
        "GIT_CONFIG_COUNT": "1",
        "GIT_CONFIG_KEY_0": f"http.{GITHUB_HTTPS_PREFIX}.extraHeader",
        "GIT_CONFIG_VALUE_0": f"Authorization: Basic {credentials}",
    }


def strip_credentials(url: str) -> str:
    """Remove user info from an HTTPS URL before it is shown to anyone."""
    if url.startswith("https://") and "@" in url.split("/", 3)[2]:
        scheme_host = url.split("/", 3)
        scheme_host[2] = scheme_host[2].split("@", 1)[1]
        return "/".join(scheme_host)
    return url
