"""Git operations inside session containers."""

from .models import ChangeKind, GitBranch, GitCommit, GitFileChange, GitStash, GitStatus
from .panel import GitPanelService, describe_git_failure
from .porcelain import parse_porcelain_status, unquote_path
from .service import GitService, authenticated_clone_url

__all__ = [
    "authenticated_clone_url",
    "ChangeKind",
    "describe_git_failure",
    "GitBranch",
    "GitCommit",
    "GitFileChange",
    "GitPanelService",
    "GitService",
    "GitStash",
    "GitStatus",
    "parse_porcelain_status",
    "unquote_path",
]
