"""
Tool: Git Subtree Sync
Purpose: Copy files that exist on a shared remote branch but are missing locally

A shared workspace directory (default .windsurf) tracks a separate
repository. Rather than a full `git subtree pull`, files present on the
remote branch and absent under the local prefix are copied in, leaving
local edits untouched.

Usage:
    python -m tools.git.subtree list-remote [remote] [branch]
    python -m tools.git.subtree find-missing [remote] [branch] [prefix]
    python -m tools.git.subtree sync [remote] [branch] [prefix]
    python -m tools.git.subtree full-sync

Dependencies:
    - git on PATH
"""

from __future__ import annotations

import argparse
import logging
import subprocess
import sys
from pathlib import Path
from typing import Any

from tools.exceptions import GitCommandError

logger = logging.getLogger(__name__)


DEFAULT_REMOTE = "windsurf_subtree"
DEFAULT_REMOTE_URL = "https://github.com/zantha-im/.windsurf.git"
DEFAULT_BRANCH = "main"
DEFAULT_PREFIX = ".windsurf"
GIT_TIMEOUT = 120


def _run(args: list[str], cwd: str | Path | None) -> subprocess.CompletedProcess:
    command = "git " + " ".join(args)
    try:
        result = subprocess.run(
            ["git", *args],
            cwd=str(cwd or Path.cwd()),
            capture_output=True,
            timeout=GIT_TIMEOUT,
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        raise GitCommandError(command, str(e)) from e

    if result.returncode != 0:
        raise GitCommandError(command, result.stderr.decode("utf-8", errors="replace"))
    return result


def exec_git(args: list[str], cwd: str | Path | None = None) -> str:
    """Run git and return stdout as stripped text."""
    return _run(args, cwd).stdout.decode("utf-8", errors="replace").strip()


def exec_git_binary(args: list[str], cwd: str | Path | None = None) -> bytes:
    """Run git and return stdout bytes unchanged."""
    return _run(args, cwd).stdout


def remote_exists(remote_name: str, cwd: str | Path | None = None) -> bool:
    try:
        exec_git(["remote", "get-url", remote_name], cwd)
    except GitCommandError:
        return False
    return True


def ensure_remote(remote_name: str, url: str, cwd: str | Path | None = None) -> dict[str, Any]:
    """Add the remote unless present. An existing remote keeps its URL."""
    if remote_exists(remote_name, cwd):
        return {"added": False, "url": exec_git(["remote", "get-url", remote_name], cwd)}
    logger.info(f"Adding remote {remote_name} -> {url}")
    exec_git(["remote", "add", remote_name, url], cwd)
    return {"added": True, "url": url}


def fetch_remote(remote_name: str, cwd: str | Path | None = None) -> None:
    logger.info(f"Fetching {remote_name}")
    exec_git(["fetch", remote_name], cwd)


def list_remote_files(remote_name: str, branch: str, cwd: str | Path | None = None) -> list[str]:
    """Paths on the remote branch. NUL-separated so git never quotes them."""
    output = exec_git_binary(
        ["ls-tree", "-r", "-z", "--name-only", f"{remote_name}/{branch}"], cwd
    ).decode("utf-8", errors="replace")
    return [name for name in output.split("\0") if name]


def get_remote_file_content(
    remote_name: str, branch: str, file_path: str, cwd: str | Path | None = None
) -> str:
    return exec_git(["show", f"{remote_name}/{branch}:{file_path}"], cwd)


def get_remote_file_content_binary(
    remote_name: str, branch: str, file_path: str, cwd: str | Path | None = None
) -> bytes:
    return exec_git_binary(["show", f"{remote_name}/{branch}:{file_path}"], cwd)


def find_missing_files(
    remote_name: str, branch: str, local_prefix: str, cwd: str | Path | None = None
) -> dict[str, Any]:
    base = Path(cwd or Path.cwd()) / local_prefix
    remote_files = list_remote_files(remote_name, branch, cwd)
    missing: list[str] = []
    existing: list[str] = []

    for file_path in remote_files:
        (existing if (base / file_path).exists() else missing).append(file_path)

    return {"missing": missing, "existing": existing, "total": len(remote_files)}


def sync_missing_files(
    remote_name: str, branch: str, local_prefix: str, cwd: str | Path | None = None
) -> dict[str, Any]:
    """
    Copy every missing file from the remote branch, byte for byte.

    A failure on one file is recorded and the rest still sync.

    Returns:
        {"synced": [...], "skipped": [...], "errors": [{"file", "error"}]}
    """
    base = Path(cwd or Path.cwd()) / local_prefix
    missing = find_missing_files(remote_name, branch, local_prefix, cwd)["missing"]
    synced: list[str] = []
    errors: list[dict[str, str]] = []

    for file_path in missing:
        target = base / file_path
        try:
            content = get_remote_file_content_binary(remote_name, branch, file_path, cwd)
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(content)
            synced.append(file_path)
        except (GitCommandError, OSError) as e:
            logger.warning(f"Failed to sync {file_path}: {e}")
            errors.append({"file": file_path, "error": str(e)})

    return {"synced": synced, "skipped": [], "errors": errors}


def compare_with_remote(
    remote_name: str, branch: str, local_prefix: str, cwd: str | Path | None = None
) -> dict[str, Any]:
    result = find_missing_files(remote_name, branch, local_prefix, cwd)
    if result["missing"]:
        summary = f"{len(result['missing'])} of {result['total']} files missing locally"
    else:
        summary = f"All {result['total']} files present locally"
    return {**result, "summary": summary}


def subtree_sync(
    remote_name: str = DEFAULT_REMOTE,
    remote_url: str = DEFAULT_REMOTE_URL,
    branch: str = DEFAULT_BRANCH,
    local_prefix: str = DEFAULT_PREFIX,
    cwd: str | Path | None = None,
) -> dict[str, Any]:
    """Ensure the remote, fetch it, compare, then sync whatever is missing."""
    remote = ensure_remote(remote_name, remote_url, cwd)
    fetch_remote(remote_name, cwd)
    comparison = compare_with_remote(remote_name, branch, local_prefix, cwd)

    if comparison["missing"]:
        sync = sync_missing_files(remote_name, branch, local_prefix, cwd)
    else:
        sync = {"synced": [], "skipped": [], "errors": []}

    return {
        "remote": remote,
        "fetch": {"success": True},
        "comparison": comparison,
        "sync": sync,
    }


# ─────────────────────────────────────────────────────────────────────────────
# CLI
# ─────────────────────────────────────────────────────────────────────────────


def cmd_list_remote(args: argparse.Namespace) -> int:
    files = list_remote_files(args.remote, args.branch)
    print(f"Files in {args.remote}/{args.branch}:")
    for file_path in files:
        print(f"  {file_path}")
    print(f"\nTotal: {len(files)} files")
    return 0


def cmd_find_missing(args: argparse.Namespace) -> int:
    result = compare_with_remote(args.remote, args.branch, args.prefix)
    print(f"Comparison: {args.remote}/{args.branch} -> {args.prefix}/")
    print(f"\n{result['summary']}")
    if result["missing"]:
        print("\nMissing files:")
        for file_path in result["missing"]:
            print(f"  {file_path}")
    return 0


def _print_sync(result: dict[str, Any], indent: str = "  ") -> None:
    for file_path in result["synced"]:
        print(f"{indent}✓ {file_path}")
    for error in result["errors"]:
        print(f"{indent}✗ {error['file']}: {error['error']}")


def cmd_sync(args: argparse.Namespace) -> int:
    result = sync_missing_files(args.remote, args.branch, args.prefix)
    print(f"Sync from {args.remote}/{args.branch} -> {args.prefix}/")
    if not result["synced"] and not result["errors"]:
        print("\nNo files needed syncing.")
    _print_sync(result)
    return 1 if result["errors"] else 0


def cmd_full_sync(args: argparse.Namespace) -> int:
    result = subtree_sync()
    remote = result["remote"]
    print("Subtree Sync Results:")
    print(f"  Remote: {'Added' if remote['added'] else 'Exists'} ({remote['url']})")
    print("  Fetch: Success")
    print(f"  Comparison: {result['comparison']['summary']}")
    if result["sync"]["synced"]:
        print(f"  Synced: {len(result['sync']['synced'])} files")
    if result["sync"]["errors"]:
        print(f"  Errors: {len(result['sync']['errors'])}")
    _print_sync(result["sync"], indent="    ")
    return 1 if result["sync"]["errors"] else 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Subtree management utilities",
        epilog=f"Defaults: remote={DEFAULT_REMOTE} branch={DEFAULT_BRANCH} prefix={DEFAULT_PREFIX}",
    )
    subparsers = parser.add_subparsers(dest="command")

    def add(name: str, handler, help_text: str, with_prefix: bool = True) -> None:
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("remote", nargs="?", default=DEFAULT_REMOTE)
        sub.add_argument("branch", nargs="?", default=DEFAULT_BRANCH)
        if with_prefix:
            sub.add_argument("prefix", nargs="?", default=DEFAULT_PREFIX)
        sub.set_defaults(func=handler)

    add("list-remote", cmd_list_remote, "List files in remote branch", with_prefix=False)
    add("find-missing", cmd_find_missing, "Find files missing locally")
    add("sync", cmd_sync, "Sync missing files from remote")

    full = subparsers.add_parser("full-sync", help="Ensure remote, fetch, compare and sync")
    full.set_defaults(func=cmd_full_sync)
    return parser


COMMANDS = ("list-remote", "find-missing", "sync", "full-sync")


def main(argv: list[str] | None = None) -> int:
    from tools.logging_config import setup_logging

    setup_logging()
    argv = sys.argv[1:] if argv is None else argv
    parser = build_parser()

    if argv and not argv[0].startswith("-") and argv[0] not in COMMANDS:
        print(f"Unknown command: {argv[0]}", file=sys.stderr)
        return 1

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    try:
        return args.func(args)
    except GitCommandError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        logger.debug(f"Unexpected failure in {args.command}", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
