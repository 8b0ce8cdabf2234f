"""Command line entry point for manuscriptgit."""

import argparse
import os
import sys
from typing import List, Optional

from loguru import logger

from manuscriptgit.config import ManuscriptConfig
from manuscriptgit.errors import ManuscriptError
from manuscriptgit.models.base import CommitRecord
from manuscriptgit.nodes.commit_message_node import suggest_commit_message
from manuscriptgit.services.backup import BackupEngine
from manuscriptgit.services.credentials import save_project_token, store_user_token
from manuscriptgit.services.history import HistoryReporter
from manuscriptgit.services.progress import render_goal_progress, render_progress
from manuscriptgit.services.session import RepositorySession
from manuscriptgit.workflow import run_sync

CHANGE_ICONS = {"modified": "M", "added": "A", "deleted": "D", "untracked": "?"}


def _open(args: argparse.Namespace, config: ManuscriptConfig, token: Optional[str] = None) -> RepositorySession:
    session = RepositorySession.open(args.project, config=config, token=token)
    session.ensure_initialized()
    return session


def _format_commit(commit: CommitRecord) -> str:
    when = commit.timestamp.strftime("%Y-%m-%d %H:%M")
    return f"{commit.short_hash} {when} - {commit.message}\n   Author: {commit.author}"


def _signed(value: int) -> str:
    return f"+{value:,}" if value > 0 else f"{value:,}"


def cmd_init(args: argparse.Namespace, config: ManuscriptConfig) -> int:
    session = RepositorySession.open(args.project, config=config)
    already = session.is_initialized()
    session.ensure_initialized()
    if already:
        print(f"{session.project_path} is already under version control")
    else:
        print(f"Initialized manuscript repository in {session.project_path}")
    return 0


def cmd_commit(args: argparse.Namespace, config: ManuscriptConfig) -> int:
    session = _open(args, config)

    message = args.message
    if args.auto or (not message and not args.chapter):
        message = suggest_commit_message(session)
        print(f"Suggested message: {message}")

    if args.chapter:
        commit = session.commit_chapter(args.chapter, message)
    else:
        commit = session.commit_all(message)

    if commit is None:
        print("Nothing to commit, working tree clean")
        return 0

    print(f"Committed {commit[:7]}")
    for record in HistoryReporter(session).get_history(3):
        print(f"  {_format_commit(record)}")
    return 0


def cmd_history(args: argparse.Namespace, config: ManuscriptConfig) -> int:
    session = _open(args, config)
    reporter = HistoryReporter(session)

    if args.graph:
        days = args.days or config.history_days
        history = reporter.get_word_count_history(days, daily=args.daily)
        print(render_progress(history, width=config.chart_width, window_days=days))
        return 0

    if args.words:
        history = reporter.get_word_count_history(args.days or config.history_days, daily=args.daily)
        if not history:
            print("No word count history found.")
            return 0
        print("Date       | Words    | Change")
        print("-----------|----------|--------")
        for entry in history:
            print(f"{entry.date.isoformat()} | {entry.word_count:>8,} | {_signed(entry.change)}")
        return 0

    if args.chapter:
        print(f"Chapter: {args.chapter}")
        commits = reporter.get_file_history(args.chapter)
    else:
        print(f"Project history (last {args.limit} commits):")
        commits = reporter.get_history(args.limit)

    if not commits:
        print("No commits found.")
        return 0
    for commit in commits:
        print(f"\n{_format_commit(commit)}")

    if args.stats:
        stats = reporter.get_statistics()
        print("\nStatistics:")
        print(f"   Total commits: {stats.total_commits}")
        print(f"   Current word count: {stats.current_word_count:,}")
        print(f"   Total words added: {stats.words_added:,}")
        print(f"   Average words per commit: {stats.average_words_per_commit:,}")
    return 0


def cmd_backup(args: argparse.Namespace, config: ManuscriptConfig) -> int:
    session = _open(args, config)
    engine = BackupEngine(session)

    if args.list:
        snapshots = engine.list_snapshots()
        if not snapshots:
            print("No backups found. Create one with: manuscriptgit backup <tag-name>")
            return 0
        print("Available backups:")
        for snapshot in snapshots:
            words = f" ({snapshot.word_count:,} words)" if snapshot.word_count is not None else ""
            print(f"  {snapshot.name}  {snapshot.created.strftime('%Y-%m-%d %H:%M')}{words}")
            print(f"     {snapshot.message}")
        return 0

    if args.restore:
        branch = engine.restore_snapshot(args.restore)
        print(f"Restored {args.restore} to branch: {branch}")
        print("   Review the restored content and merge it if you are satisfied")
        return 0

    if args.compare:
        tag_a, tag_b = args.compare
        comparison = engine.compare_versions(tag_a, tag_b)
        print(f"Comparing {tag_a} -> {tag_b}:")
        print(f"   Files changed: {comparison.diff.files_changed}")
        print(f"   Lines added: +{comparison.diff.insertions}")
        print(f"   Lines removed: -{comparison.diff.deletions}")
        print(f"   Net word change: {_signed(comparison.diff.net_word_change)}")
        for path in comparison.files:
            print(f"   * {path}")
        return 0

    tag_name = f"draft-{args.tag}" if args.tag else None
    message = args.message or (f"Draft backup: {args.tag}" if args.tag else None)
    tag = engine.create_backup(message=message, tag_name=tag_name)
    print(f"Backup created: {tag}")
    print(f"   Use 'manuscriptgit backup --restore {tag}' to restore it later")
    return 0


def cmd_status(args: argparse.Namespace, config: ManuscriptConfig) -> int:
    session = _open(args, config)
    status = session.status()

    print(f"Branch: {status.current_branch}")
    if status.tracking_branch:
        print(f"Tracking {status.tracking_branch}: {status.ahead_count} ahead, {status.behind_count} behind")

    if status.is_clean:
        print("Working directory clean")
    else:
        print(f"{len(status.modified_files)} files with changes")
        if args.show_files:
            for change in status.modified_files:
                print(f"   {CHANGE_ICONS[change.change]} {change.path}")

    current = session.total_word_count()
    print(f"Current word count: {current:,}")
    if args.goal:
        print(f"Target: {args.goal:,} {render_goal_progress(current, args.goal)}")
    return 0


def cmd_sync(args: argparse.Namespace, config: ManuscriptConfig) -> int:
    session = _open(args, config, token=args.token)

    if args.setup:
        if not args.remote:
            raise ManuscriptError(
                "A remote repository URL is required for --setup",
                remediation="Example: manuscriptgit sync --setup --remote https://github.com/you/my-novel.git",
            )
        added = session.configure_remote(args.remote)
        print("Added new remote" if added else "Updated existing remote")
        if args.branch and session.current_branch != args.branch:
            session.rename_branch(args.branch)
        if args.token and save_project_token(session.project_path, args.token):
            print("Saved GitHub token to .env")
        print("Remote configured. Push with: manuscriptgit sync --push")
        return 0

    if not session.has_remote():
        raise ManuscriptError(
            "No remote repository configured",
            remediation="Set one up with: manuscriptgit sync --setup --remote <url>",
        )

    both = not args.push and not args.pull
    state = run_sync(
        {
            "repo_path": str(session.project_path),
            "manuscript_config": config,
            "branch": args.branch,
            "token": args.token,
            "do_pull": args.pull or both,
            "do_push": args.push or both,
        }
    )

    status = state.get("status")
    if status is not None:
        print("Sync status:")
        print(f"   Branch: {status.current_branch}")
        print(f"   Clean: {'yes' if status.is_clean else f'no ({len(status.modified_files)} uncommitted files)'}")
        print(f"   Ahead: {status.ahead_count} commits")
        print(f"   Behind: {status.behind_count} commits")
    if state.get("remote_url"):
        print(f"   Remote: {state['remote_url']}")

    for error in state.get("errors", []):
        print(f"{error['node']}: {error['error']}", file=sys.stderr)
        if error.get("remediation"):
            print(f"   {error['remediation']}", file=sys.stderr)
    return 1 if state.get("errors") else 0


def cmd_auth(args: argparse.Namespace, config: ManuscriptConfig) -> int:
    if args.project_env:
        saved = save_project_token(args.project, args.token)
        print("Saved GitHub token to .env" if saved else ".env already contains a GITHUB_TOKEN")
    else:
        path = store_user_token(args.token, config.token_file)
        print(f"Saved GitHub token to {path}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="manuscriptgit", description="Version control for manuscripts")
    parser.add_argument("-C", "--project", type=str, default=os.getcwd(), help="Project directory")
    parser.add_argument("--verbose", action="store_true", help="Enable verbose logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    init = subparsers.add_parser("init", help="Put the project under version control")
    init.set_defaults(handler=cmd_init)

    commit = subparsers.add_parser("commit", help="Commit changes with their word count")
    commit.add_argument("message", nargs="?", help="Commit message")
    commit.add_argument("-c", "--chapter", type=str, help="Commit only this chapter file")
    commit.add_argument("--auto", action="store_true", help="Let the LLM suggest the message")
    commit.set_defaults(handler=cmd_commit)

    history = subparsers.add_parser("history", help="Show history and writing progress")
    history.add_argument("-n", "--limit", type=int, default=10, help="Number of commits to show")
    history.add_argument("-c", "--chapter", type=str, help="Show the history of one chapter")
    history.add_argument("-g", "--graph", action="store_true", help="Show the progress chart")
    history.add_argument("-w", "--words", action="store_true", help="Show the word count table")
    history.add_argument("-s", "--stats", action="store_true", help="Show statistics")
    history.add_argument("--days", type=int, help="Trailing window for --graph and --words")
    history.add_argument("--daily", action="store_true", help="One sample per day")
    history.set_defaults(handler=cmd_history)

    backup = subparsers.add_parser("backup", help="Create, list, restore and compare backups")
    backup.add_argument("tag", nargs="?", help="Name the backup draft-<tag>")
    backup.add_argument("-m", "--message", type=str, help="Backup description")
    backup.add_argument("-r", "--restore", type=str, help="Restore a backup onto a new branch")
    backup.add_argument("-l", "--list", action="store_true", help="List backups")
    backup.add_argument("--compare", nargs=2, metavar=("TAG_A", "TAG_B"), help="Compare two backups")
    backup.set_defaults(handler=cmd_backup)

    status = subparsers.add_parser("status", help="Show working tree status and word count")
    status.add_argument("-v", "--verbose", dest="show_files", action="store_true", help="List changed files")
    status.add_argument("--goal", type=int, help="Word count target")
    status.set_defaults(handler=cmd_status)

    sync = subparsers.add_parser("sync", help="Sync with GitHub or another remote")
    sync.add_argument("--push", action="store_true", help="Push only")
    sync.add_argument("--pull", action="store_true", help="Pull only")
    sync.add_argument("--setup", action="store_true", help="Configure the origin remote")
    sync.add_argument("--remote", type=str, help="Remote repository URL")
    sync.add_argument("--branch", type=str, help="Branch name")
    sync.add_argument("--token", type=str, help="GitHub token (or set GITHUB_TOKEN)")
    sync.set_defaults(handler=cmd_sync)

    auth = subparsers.add_parser("auth", help="Store a GitHub token")
    auth.add_argument("--token", type=str, required=True, help="GitHub personal access token")
    auth.add_argument("--project-env", action="store_true", help="Store it in the project's .env instead")
    auth.set_defaults(handler=cmd_auth)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    if not args.verbose:
        logger.remove()
        logger.add(sys.stderr, level="INFO")

    config = ManuscriptConfig.from_env()
    try:
        return args.handler(args, config)
    except ManuscriptError as e:
        logger.error(str(e))
        if e.remediation:
            print(f"   {e.remediation}", file=sys.stderr)
        if e.retryable:
            print("   This is usually temporary; run the command again.", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
