"""Git panel state with user-facing failure guidance."""

from __future__ import annotations

import logging as py_logging
import re
from collections.abc import Callable

from zeroide.errors import ZeroError
from zeroide.git.models import GitBranch, GitStatus
from zeroide.git.service import GitService
from zeroide.logstore import AppLogStore

logger = py_logging.getLogger(__name__)

NON_FAST_FORWARD_GUIDANCE = (
    "Push rejected because remote has new commits. Pull, resolve conflicts if needed, then push again."
)
MERGE_CONFLICT_GUIDANCE = "Pull hit merge conflicts. Resolve conflicted files, commit, then pull again."
AUTH_FAILURE_GUIDANCE = (
    "Git authentication or permission failed. Verify credentials and repository access, then retry."
)

_NON_FAST_FORWARD_MARKERS = (
    "non-fast-forward",
    "[rejected]",
    "fetch first",
    "updates were rejected",
)
_CONFLICT_MARKERS = (
    "merge conflict",
    "automatic merge failed",
    "fix conflicts",
    "conflict (",
)
_AUTH_FAILURE_MARKERS = (
    "authentication failed",
    "invalid credentials",
    "could not read username",
    "permission denied",
    "permission to",
    "access denied",
    "error: 403",
    "error: 401",
    "http 403",
    "http 401",
)
_CONFLICT_FILE_PATTERN = re.compile(r"^CONFLICT \([^)]*\): Merge conflict in (.+)$", re.MULTILINE)


def conflicted_files(text: str) -> list[str]:
    files: list[str] = []
    for match in _CONFLICT_FILE_PATTERN.finditer(text):
        path = match.group(1).strip()
        if path and path not in files:
            files.append(path)
    return files


def describe_git_failure(text: str) -> str:
    """Map raw git failure output to guidance; unknown failures pass through unchanged."""
    lowered = text.lower()
    if any(marker in lowered for marker in _NON_FAST_FORWARD_MARKERS):
        return NON_FAST_FORWARD_GUIDANCE
    if any(marker in lowered for marker in _CONFLICT_MARKERS):
        files = conflicted_files(text)
        if files:
            return (
                f"Pull hit merge conflicts in {', '.join(files)}. "
                "Resolve conflicted files, commit, then pull again."
            )
        return MERGE_CONFLICT_GUIDANCE
    if any(marker in lowered for marker in _AUTH_FAILURE_MARKERS):
        return AUTH_FAILURE_GUIDANCE
    return text.strip()


class GitPanelService:
    """Holds the git panel view state for one session container."""

    def __init__(self, git: GitService, *, log_store: AppLogStore) -> None:
        self.git = git
        self.log_store = log_store
        self.status = GitStatus(branch="main")
        self.branches: list[GitBranch] = []
        self.current_branch = "main"
        self.error_message: str | None = None
        self.is_loading = False

    def _fail(self, action: str, exc: ZeroError) -> None:
        raw = getattr(exc, "output", "") or exc.message
        self.error_message = describe_git_failure(raw)
        self.log_store.append(f"GitPanelService {action} failed: {self.error_message} [{exc.debug_details or raw}]")
        logger.warning("Git panel action failed action=%s code=%s", action, exc.telemetry_code)

    def _perform(self, action: str, operation: Callable[[], object]) -> bool:
        try:
            operation()
        except ZeroError as exc:
            self._fail(action, exc)
            return False
        return self.refresh()

    def refresh(self) -> bool:
        self.is_loading = True
        try:
            self.status = self.git.status()
            self.current_branch = self.status.branch
            self.branches = self.git.branches()
            self.error_message = None
        except ZeroError as exc:
            self._fail("refresh", exc)
            return False
        finally:
            self.is_loading = False
        return True

    def stage(self, files: list[str]) -> bool:
        return self._perform("stage", lambda: self.git.add(files))

    def stage_all(self) -> bool:
        return self._perform("stage", self.git.add_all)

    def commit(self, message: str) -> bool:
        return self._perform("commit", lambda: self.git.commit(message))

    def commit_all(self, message: str) -> bool:
        return self._perform("commit", lambda: self.git.commit_all(message))

    def create_branch(self, name: str) -> bool:
        return self._perform("branch", lambda: self.git.create_and_checkout_branch(name))

    def checkout(self, branch: str) -> bool:
        return self._perform("checkout", lambda: self.git.checkout(branch))

    def push(self) -> bool:
        return self._perform("push", self.git.push)

    def pull(self) -> bool:
        return self._perform("pull", self.git.pull)
