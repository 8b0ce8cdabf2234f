"""Error taxonomy for manuscript version control.

Git failures never leave this package as raw ``GitCommandError``s: they are
translated into one of the classes below so that commands can print a
readable message and a remediation hint.
"""

from typing import Optional

from git.exc import GitCommandError

LOCK_MARKERS = ("index.lock", ".lock': File exists", "Another git process seems to be running")
AUTH_MARKERS = (
    "Authentication failed",
    "could not read Username",
    "could not read Password",
    "terminal prompts disabled",
    "Permission denied (publickey)",
    "The requested URL returned error: 401",
    "The requested URL returned error: 403",
    "Invalid username or password",
)
REJECTED_MARKERS = ("[rejected]", "non-fast-forward", "fetch first")

TOKEN_HELP = (
    "Create a token at https://github.com/settings/tokens, then either "
    "export GITHUB_TOKEN=<token>, run 'manuscriptgit auth --token <token>' "
    "or pass --token to 'manuscriptgit sync'."
)


class ManuscriptError(Exception):
    """Base class for every failure surfaced to a command."""

    retryable = False

    def __init__(self, message: str, remediation: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.remediation = remediation

    def __str__(self) -> str:
        return self.message


class NotARepository(ManuscriptError):
    """The project directory is not a repository and could not be made one."""


class SnapshotNotFound(ManuscriptError):
    """A tag or ref named by restore/compare does not exist."""

    def __init__(self, ref: str):
        super().__init__(
            f"Snapshot not found: {ref}",
            remediation="List available snapshots with 'manuscriptgit backup --list'.",
        )
        self.ref = ref


class RepositoryLocked(ManuscriptError):
    """Another git process holds the index lock."""

    retryable = True


class RemoteAuthFailure(ManuscriptError):
    """Push or pull was refused for missing or rejected credentials."""


class PushRejected(ManuscriptError):
    """The remote has commits the local branch does not; pull first."""

    retryable = True


def _git_output(error: GitCommandError) -> str:
    # GitPython wraps each stream as "\n  stderr: '...'"
    parts = []
    for stream, label in ((error.stderr, "stderr:"), (error.stdout, "stdout:")):
        text = (stream or "").strip()
        if text.startswith(label):
            text = text[len(label) :].strip()
            if len(text) >= 2 and text[0] == text[-1] == "'":
                text = text[1:-1]
        if text:
            parts.append(text)
    return "\n".join(parts)


def translate_git_error(error: GitCommandError, action: str) -> ManuscriptError:
    """Map a failed git command onto the error taxonomy."""
    output = _git_output(error)

    if any(marker in output for marker in LOCK_MARKERS):
        return RepositoryLocked(
            f"Repository is locked while trying to {action}",
            remediation="Another git process is running. Wait for it to finish and retry.",
        )
    if any(marker in output for marker in AUTH_MARKERS):
        return RemoteAuthFailure(f"Authentication failed while trying to {action}", remediation=TOKEN_HELP)
    if any(marker in output for marker in REJECTED_MARKERS):
        return PushRejected(
            f"Remote rejected the update while trying to {action}",
            remediation="Pull the remote changes first with 'manuscriptgit sync --pull'.",
        )

    detail = output.splitlines()[-1] if output else str(error)
    return ManuscriptError(f"Failed to {action}: {detail.strip()}")
