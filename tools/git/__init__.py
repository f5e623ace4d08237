"""Git helpers for keeping a shared workspace directory in step with its remote.

Components:
    subtree.py: Remote listing, missing-file detection and binary-safe sync
"""

from tools.git.subtree import (
    DEFAULT_BRANCH,
    DEFAULT_PREFIX,
    DEFAULT_REMOTE,
    DEFAULT_REMOTE_URL,
    compare_with_remote,
    ensure_remote,
    exec_git,
    exec_git_binary,
    fetch_remote,
    find_missing_files,
    get_remote_file_content,
    get_remote_file_content_binary,
    list_remote_files,
    remote_exists,
    subtree_sync,
    sync_missing_files,
)

__all__ = [
    "DEFAULT_REMOTE",
    "DEFAULT_REMOTE_URL",
    "DEFAULT_BRANCH",
    "DEFAULT_PREFIX",
    "exec_git",
    "exec_git_binary",
    "remote_exists",
    "ensure_remote",
    "fetch_remote",
    "list_remote_files",
    "get_remote_file_content",
    "get_remote_file_content_binary",
    "find_missing_files",
    "sync_missing_files",
    "compare_with_remote",
    "subtree_sync",
]
