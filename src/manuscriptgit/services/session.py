"""Repository session: one git handle per manuscript directory.

The session guarantees the project is a repository (initialising it on
demand), exposes the small slice of git the writing tools need and converts
every git failure into the manuscriptgit error taxonomy.
"""

import re
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Union

from git import Actor, Repo
from git.exc import GitCommandError, InvalidGitRepositoryError, NoSuchPathError
from loguru import logger

from manuscriptgit.config import ManuscriptConfig
from manuscriptgit.errors import ManuscriptError, NotARepository, SnapshotNotFound, translate_git_error
from manuscriptgit.models.base import ChangeKind, FileChange, SnapshotTag, TokenLookup, WorkingTreeStatus
from manuscriptgit.services.credentials import auth_environment, discover_token, strip_credentials
from manuscriptgit.services.message_codec import Scope, decode_word_count, encode_word_count
from manuscriptgit.services.word_count import count_file_words, is_writing_file


def _change_kind(code: str) -> ChangeKind:
    if code == "??":
        return "untracked"
    if "D" in code:
        return "deleted"
    if "A" in code:
        return "added"
    return "modified"


class RepositorySession:
    """Owns the GitPython ``Repo`` for a single project directory."""

    def __init__(
        self,
        project_path: Path,
        repo: Optional[Repo],
        config: ManuscriptConfig,
        token_lookup: TokenLookup,
    ):
        self.project_path = project_path
        self.config = config
        self.token_lookup = token_lookup
        self._repo = repo
        if repo is not None:
            self._configure_identity()

    @classmethod
    def open(
        cls,
        project_path: Union[str, Path],
        config: Optional[ManuscriptConfig] = None,
        token: Optional[str] = None,
    ) -> "RepositorySession":
        """Open a session for ``project_path``; the directory need not be a repository yet."""
        config = config or ManuscriptConfig()
        path = Path(project_path).resolve()
        lookup = discover_token(path, config.token_file, explicit=token)

        try:
            repo = Repo(path)
        except (InvalidGitRepositoryError, NoSuchPathError):
            repo = None

        logger.debug(f"Opened session for {path} (repository: {repo is not None}, token: {lookup.source})")
        return cls(path, repo, config, lookup)

    @property
    def repo(self) -> Repo:
        if self._repo is None:
            raise NotARepository(
                f"{self.project_path} is not a manuscript repository",
                remediation=f"Run 'manuscriptgit init' in {self.project_path}",
            )
        return self._repo

    @property
    def token(self) -> Optional[str]:
        return self.token_lookup.token

    def is_initialized(self) -> bool:
        return self._repo is not None

    def ensure_initialized(self) -> None:
        """Make the project directory a repository with a first commit.

        Does nothing when the directory already is one.
        """
        if self._repo is not None:
            return

        logger.info(f"Initializing manuscript repository in {self.project_path}")
        try:
            self.project_path.mkdir(parents=True, exist_ok=True)
            repo = Repo.init(self.project_path)
            # Unborn HEAD: pointing it elsewhere just names the first branch
            repo.git.symbolic_ref("HEAD", f"refs/heads/{self.config.default_branch}")
            self._repo = repo
            self._configure_identity()

            gitignore = self.project_path / ".gitignore"
            if not gitignore.exists():
                gitignore.write_text(self.config.gitignore_content(), encoding="utf-8")
            repo.git.add(".gitignore")
            repo.git.commit("-m", self.config.initial_commit_message)
        except (OSError, GitCommandError) as e:
            self._repo = None
            raise NotARepository(
                f"Could not initialize a repository in {self.project_path}: {e}",
                remediation=f"Check the permissions of {self.project_path} and run 'manuscriptgit init' again.",
            ) from e

    def _configure_identity(self) -> None:
        # git CLI commands need an identity even when user.name/user.email are unset
        reader = self._repo.config_reader()
        author = Actor.author(reader)
        committer = Actor.committer(reader)
        self._repo.git.update_environment(
            GIT_AUTHOR_NAME=author.name,
            GIT_AUTHOR_EMAIL=author.email,
            GIT_COMMITTER_NAME=committer.name,
            GIT_COMMITTER_EMAIL=committer.email,
        )

    def _git(self, action: str, command: str, *args, **kwargs) -> str:
        try:
            return getattr(self.repo.git, command)(*args, **kwargs)
        except GitCommandError as e:
            raise translate_git_error(e, action) from e

    def relative_path(self, path: Union[str, Path]) -> str:
        path = Path(path)
        if path.is_absolute():
            try:
                path = path.resolve().relative_to(self.project_path)
            except ValueError as e:
                raise ManuscriptError(
                    f"{path} is outside {self.project_path}",
                    remediation="Pass a path inside the project, or relative to it.",
                ) from e
        return path.as_posix()

    # Working tree

    @property
    def current_branch(self) -> str:
        try:
            return self.repo.active_branch.name
        except TypeError:
            return "HEAD"

    def status(self) -> WorkingTreeStatus:
        """Compute the current uncommitted state."""
        output = self._git("read status", "status", "--porcelain=v1", "-z", "--untracked-files=all")

        changes: List[FileChange] = []
        entries = output.split("\0")
        index = 0
        while index < len(entries):
            entry = entries[index]
            index += 1
            if not entry:
                continue
            code, path = entry[:2], entry[3:]
            if code[0] in "RC":
                # Renames and copies are followed by their source path
                index += 1
            changes.append(FileChange(path=path, change=_change_kind(code)))

        status = WorkingTreeStatus(current_branch=self.current_branch, modified_files=changes)

        if status.current_branch != "HEAD":
            tracking = self.repo.active_branch.tracking_branch()
            if tracking is not None and tracking.is_valid():
                counts = self._git(
                    "count commits ahead of the remote",
                    "rev_list",
                    "--left-right",
                    "--count",
                    f"{status.current_branch}...{tracking.name}",
                )
                ahead, behind = counts.split()
                status.ahead_count = int(ahead)
                status.behind_count = int(behind)
                status.tracking_branch = tracking.name

        return status

    def writing_files(self) -> List[str]:
        """Tracked and untracked-but-not-ignored writing files that exist on disk."""
        output = self._git("list project files", "ls_files", "--cached", "--others", "--exclude-standard", "-z")
        files = sorted({path for path in output.split("\0") if path})
        return [
            path
            for path in files
            if is_writing_file(path, self.config.writing_extensions) and (self.project_path / path).is_file()
        ]

    def total_word_count(self) -> int:
        return sum(count_file_words(self.project_path / path) for path in self.writing_files())

    # Commits

    def _has_staged_changes(self, *paths: str) -> bool:
        args = ["--cached", "--name-only"]
        if paths:
            args += ["--", *paths]
        return bool(self._git("inspect staged changes", "diff", *args).strip())

    def commit_chapter(self, chapter_path: Union[str, Path], message: Optional[str] = None) -> Optional[str]:
        """Commit a single chapter file with its word count in the message.

        Returns the new commit hash, or None when the chapter has no changes.
        """
        relative = self.relative_path(chapter_path)
        word_count = count_file_words(self.project_path / relative)
        full_message = encode_word_count(message or f"Update {relative}", word_count, Scope.CHAPTER)

        self._git(f"stage {relative}", "add", "--", relative)
        if not self._has_staged_changes(relative):
            logger.info(f"No changes to commit in {relative}")
            return None

        self._git(f"commit {relative}", "commit", "-m", full_message, "--", relative)
        logger.info(f"Committed {relative}: {full_message}")
        return self.repo.head.commit.hexsha

    def commit_all(self, message: str) -> Optional[str]:
        """Commit every outstanding change with the project word count in the message.

        Returns the new commit hash, or None when there is nothing to commit.
        """
        full_message = encode_word_count(message, self.total_word_count(), Scope.PROJECT)

        self._git("stage changes", "add", "--all")
        if not self._has_staged_changes():
            logger.info("Nothing to commit, working tree clean")
            return None

        self._git("commit changes", "commit", "-m", full_message)
        logger.info(f"Committed all changes: {full_message}")
        return self.repo.head.commit.hexsha

    def undo_last_commit(self) -> None:
        """Move the branch back one commit, keeping the changes staged."""
        self._git("undo the last commit", "reset", "--soft", "HEAD~1")

    # Refs

    def resolve_commit(self, ref: str) -> str:
        """Return the commit hash ``ref`` points to, or raise SnapshotNotFound."""
        try:
            return self.repo.git.rev_parse("--verify", "--quiet", f"{ref}^{{commit}}").strip()
        except GitCommandError as e:
            raise SnapshotNotFound(ref) from e

    def tag_exists(self, name: str) -> bool:
        return any(tag.name == name for tag in self.repo.tags)

    def create_tag(self, name: str, message: str) -> None:
        self._git(f"create tag {name}", "tag", "-a", name, "-m", message)
        logger.info(f"Created tag {name}")

    def list_tags(self) -> List[SnapshotTag]:
        snapshots = []
        for tag in self.repo.tags:
            commit = tag.commit
            if tag.tag is not None:
                message = tag.tag.message.strip()
                created = datetime.fromtimestamp(tag.tag.tagged_date)
            else:
                message = commit.message.strip()
                created = datetime.fromtimestamp(commit.committed_date)
            snapshots.append(
                SnapshotTag(
                    name=tag.name,
                    message=message,
                    target_commit=commit.hexsha,
                    created=created,
                    word_count=decode_word_count(message),
                )
            )
        return snapshots

    def branch_exists(self, name: str) -> bool:
        return any(head.name == name for head in self.repo.heads)

    def checkout_new_branch(self, name: str, start_point: Optional[str] = None) -> None:
        if self.branch_exists(name):
            raise ManuscriptError(
                f"Branch {name} already exists",
                remediation=f"Switch to it with 'git checkout {name}' or delete it first.",
            )
        args = ["-b", name] + ([start_point] if start_point else [])
        self._git(f"create branch {name}", "checkout", *args)
        logger.info(f"Switched to new branch {name}")

    def checkout(self, name: str) -> None:
        self._git(f"switch to {name}", "checkout", name)

    def rename_branch(self, new_name: str) -> None:
        old_name = self.current_branch
        self._git(f"rename branch {old_name}", "branch", "-m", new_name)
        logger.info(f"Renamed branch {old_name} to {new_name}")

    def branch_chapter(self, chapter_name: str) -> str:
        """Start a ``chapter/<name>`` branch for drafting a chapter in isolation."""
        branch = "chapter/" + re.sub(r"\s+", "-", chapter_name.strip().lower())
        self.checkout_new_branch(branch)
        return branch

    def merge_chapter(self, chapter_branch: str, into: Optional[str] = None) -> None:
        target = into or self.config.default_branch
        self.checkout(target)
        self._git(f"merge {chapter_branch}", "merge", "--no-edit", chapter_branch)
        logger.info(f"Merged {chapter_branch} into {target}")

    # Stash

    def stash_push(self, message: str = "Work in progress") -> bool:
        """Stash tracked changes. Returns False when there was nothing to stash."""
        if not self.repo.is_dirty(untracked_files=False):
            return False
        self._git("stash changes", "stash", "push", "-m", message)
        logger.info(f"Stashed local changes: {message}")
        return True

    def stash_pop(self) -> None:
        self._git("restore stashed changes", "stash", "pop")
        logger.info("Restored stashed changes")

    # Remotes

    def _remote_env(self) -> Dict[str, str]:
        env = {"GIT_TERMINAL_PROMPT": "0"}
        env.update(auth_environment(self.token))
        return env

    def has_remote(self) -> bool:
        return bool(self.repo.remotes)

    def configure_remote(self, url: str, name: str = "origin") -> bool:
        """Point ``name`` at ``url``. Returns True when the remote was newly added.

        Credentials embedded in ``url`` are dropped; tokens are supplied per
        command instead.
        """
        clean_url = strip_credentials(url)
        if any(remote.name == name for remote in self.repo.remotes):
            self._git(f"update remote {name}", "remote", "set-url", name, clean_url)
            logger.info(f"Updated remote {name} -> {clean_url}")
            return False

        self._git(f"add remote {name}", "remote", "add", name, clean_url)
        logger.info(f"Added remote {name} -> {clean_url}")
        return True

    def remote_url(self, name: str = "origin") -> Optional[str]:
        for remote in self.repo.remotes:
            if remote.name == name:
                return strip_credentials(remote.url)
        return None

    def remote_has_branch(self, remote: str, branch: str) -> bool:
        output = self._git(
            f"query {remote}", "ls_remote", "--heads", remote, f"refs/heads/{branch}", env=self._remote_env()
        )
        return bool(output.strip())

    def push(self, remote: str = "origin", branch: Optional[str] = None) -> None:
        branch = branch or self.current_branch
        logger.info(f"Pushing {branch} to {remote}")
        self._git(f"push to {remote}", "push", "--set-upstream", remote, branch, env=self._remote_env())

    def pull(self, remote: str = "origin", branch: Optional[str] = None) -> None:
        branch = branch or self.current_branch
        logger.info(f"Pulling {branch} from {remote}")
        self._git(f"pull from {remote}", "pull", "--no-rebase", "--no-edit", remote, branch, env=self._remote_env())
