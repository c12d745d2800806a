"""Git command builder and result parsing over a container shell."""

from __future__ import annotations

import logging as py_logging
import re
from urllib.parse import quote, urlsplit, urlunsplit

from zeroide.config import DEFAULT_WORKSPACE_ROOT
from zeroide.errors import CloneFailedError, CommandError, ExitCode, GitCommandError, ZeroError
from zeroide.git.models import GitBranch, GitCommit, GitStash, GitStatus
from zeroide.git.porcelain import parse_porcelain_status
from zeroide.logstore import AppLogStore
from zeroide.runtime.command import single_quote
from zeroide.runtime.container import ContainerRuntime
from zeroide.security import mask_secrets, sanitize_log_text

logger = py_logging.getLogger(__name__)

TOKEN_USERNAME = "x-access-token"
_FIELD_SEPARATOR = "\x1f"
_LOG_FORMAT = "%H%x1f%h%x1f%s%x1f%an%x1f%ar"
_STASH_FORMAT = "%gd%x1f%s%x1f%H"
_STASH_INDEX_PATTERN = re.compile(r"stash@\{(\d+)\}")
_BRANCH_NAME_PATTERN = re.compile(r"^(?!-)(?!.*\.\.)(?!.*//)(?!.*@\{)[A-Za-z0-9._/-]+$")
_REVISION_PATTERN = re.compile(r"^(?!-)[A-Za-z0-9._/@{}~^-]+$")
_NO_COMMITS_MARKERS = (
    "does not have any commits yet",
    "bad default revision",
    "unknown revision or path not in the working tree",
)


def authenticated_clone_url(repo_url: str, token: str) -> str:
    """Embed ``x-access-token:<token>`` userinfo into an HTTPS clone URL."""
    token_value = token.strip()
    parts = urlsplit(repo_url.strip())
    if not token_value or parts.scheme not in ("http", "https") or not parts.hostname:
        return repo_url.strip()
    host = parts.hostname
    if parts.port:
        host = f"{host}:{parts.port}"
    netloc = f"{TOKEN_USERNAME}:{quote(token_value, safe='')}@{host}"
    return urlunsplit((parts.scheme, netloc, parts.path, parts.query, parts.fragment))


def validate_branch_name(name: str) -> str:
    value = name.strip()
    if not value or not _BRANCH_NAME_PATTERN.match(value) or value.endswith((".lock", "/", ".")):
        raise ZeroError(
            f"Invalid branch name: {name!r}",
            code=ExitCode.VALIDATION_ERROR,
            hint="Use letters, digits, '.', '_', '-' and '/' only.",
        )
    return value


def validate_revision(revision: str) -> str:
    value = revision.strip()
    if not value or not _REVISION_PATTERN.match(value):
        raise ZeroError(
            f"Invalid commit reference: {revision!r}",
            code=ExitCode.VALIDATION_ERROR,
            hint="Pass a commit hash, branch or tag name.",
        )
    return value


def parse_log_output(output: str) -> list[GitCommit]:
    commits: list[GitCommit] = []
    for line in output.splitlines():
        fields = line.split(_FIELD_SEPARATOR)
        if len(fields) < 5:
            continue
        commits.append(
            GitCommit(
                hash=fields[0].strip(),
                short_hash=fields[1].strip(),
                message=fields[2],
                author=fields[3],
                date=_FIELD_SEPARATOR.join(fields[4:]).strip(),
            )
        )
    return commits


def parse_branch_output(output: str) -> list[GitBranch]:
    branches: list[GitBranch] = []
    for line in output.splitlines():
        if not line.strip():
            continue
        name, _, head = line.partition("\t")
        branches.append(GitBranch(name=name.strip(), is_current=head.strip() == "*"))
    return branches


def parse_stash_output(output: str) -> list[GitStash]:
    stashes: list[GitStash] = []
    for line in output.splitlines():
        fields = line.split(_FIELD_SEPARATOR)
        if len(fields) < 3:
            continue
        match = _STASH_INDEX_PATTERN.search(fields[0])
        if not match:
            continue
        stashes.append(GitStash(index=int(match.group(1)), message=fields[1], hash=fields[2].strip()))
    return stashes


class GitService:
    """Stateless git operations inside one container's workspace."""

    def __init__(
        self,
        runtime: ContainerRuntime,
        container_name: str,
        *,
        workspace_root: str = DEFAULT_WORKSPACE_ROOT,
        log_store: AppLogStore | None = None,
    ) -> None:
        self.runtime = runtime
        self.container_name = container_name
        self.workspace_root = workspace_root
        self.log_store = log_store

    def _record_failure(self, step: str, detail: str) -> None:
        if self.log_store is not None:
            self.log_store.append(f"GitService {step} failed {self.container_name}: {sanitize_log_text(detail)}")

    def _run(self, git_args: str, *, step: str, expected_failures: tuple[str, ...] = ()) -> str:
        script = f"cd {single_quote(self.workspace_root)} && git {git_args}"
        logger.debug("Running git step=%s container=%s", step, self.container_name)
        try:
            return self.runtime.execute_shell(self.container_name, script)
        except CommandError as exc:
            output = mask_secrets(exc.output)
            logger.error("Git step failed step=%s exit=%s", step, exc.exit_code)
            if not any(marker in output.lower() for marker in expected_failures):
                self._record_failure(step, exc.debug_details or output)
            raise GitCommandError(
                f"Git {step} failed.",
                hint=sanitize_log_text(output, limit=320) or "Inspect the application log for details.",
                debug_details=exc.debug_details,
                output=output,
            ) from exc

    def clone(self, repo_url: str, token: str, *, timeout_seconds: float | None = None) -> None:
        url = authenticated_clone_url(repo_url, token)
        root = single_quote(self.workspace_root)
        script = f"mkdir -p {root} && cd {root} && git clone {single_quote(url)} ."
        logger.info("Cloning repository url=%s container=%s", sanitize_log_text(repo_url), self.container_name)
        try:
            self.runtime.execute_shell(self.container_name, script, timeout_seconds=timeout_seconds)
        except CommandError as exc:
            output = mask_secrets(exc.output.replace(token, "***") if token.strip() else exc.output)
            logger.error("Clone failed url=%s output=%s", sanitize_log_text(repo_url), sanitize_log_text(output))
            self._record_failure("clone", mask_secrets(exc.debug_details) or output)
            raise CloneFailedError(
                "Repository clone failed.",
                hint=sanitize_log_text(output, limit=320) or "Verify repository access and retry.",
                debug_details=mask_secrets(exc.debug_details),
            ) from exc

    def status(self) -> GitStatus:
        return parse_porcelain_status(self._run("status --porcelain=v1 --branch", step="status"))

    def add(self, files: list[str]) -> None:
        if not files:
            return
        self._run("add -- " + " ".join(single_quote(path) for path in files), step="add")

    def add_all(self) -> None:
        self._run("add -A", step="add")

    def commit(self, message: str) -> str:
        if not message.strip():
            raise ZeroError(
                "Commit message is empty.",
                code=ExitCode.VALIDATION_ERROR,
                hint="Describe the change before committing.",
            )
        return self._run(f"commit -m {single_quote(message)}", step="commit")

    def commit_all(self, message: str) -> str:
        self.add_all()
        return self.commit(message)

    def diff(self, file: str | None = None) -> str:
        return self._run(self._diff_args("diff", file), step="diff")

    def diff_staged(self, file: str | None = None) -> str:
        return self._run(self._diff_args("diff --staged", file), step="diff")

    @staticmethod
    def _diff_args(base: str, file: str | None) -> str:
        if file:
            return f"{base} -- {single_quote(file)}"
        return base

    def log(self, max_count: int = 50) -> list[GitCommit]:
        count = max(1, int(max_count))
        try:
            output = self._run(
                f"log -n {count} --pretty=format:'{_LOG_FORMAT}'",
                step="log",
                expected_failures=_NO_COMMITS_MARKERS,
            )
        except GitCommandError as exc:
            if any(marker in exc.output.lower() for marker in _NO_COMMITS_MARKERS):
                return []
            raise
        return parse_log_output(output)

    def branches(self) -> list[GitBranch]:
        output = self._run("branch --format='%(refname:short)%09%(HEAD)'", step="branch")
        return parse_branch_output(output)

    def current_branch(self) -> str:
        return self._run("rev-parse --abbrev-ref HEAD", step="rev-parse").strip()

    def create_branch(self, name: str) -> None:
        self._run(f"branch {single_quote(validate_branch_name(name))}", step="branch")

    def checkout(self, name: str) -> None:
        self._run(f"checkout {single_quote(validate_branch_name(name))}", step="checkout")

    def create_and_checkout_branch(self, name: str) -> None:
        self._run(f"checkout -b {single_quote(validate_branch_name(name))}", step="checkout")

    def delete_branch(self, name: str, *, force: bool = False) -> None:
        flag = "-D" if force else "-d"
        self._run(f"branch {flag} {single_quote(validate_branch_name(name))}", step="branch")

    def stash_list(self) -> list[GitStash]:
        return parse_stash_output(self._run(f"stash list --format='{_STASH_FORMAT}'", step="stash"))

    def stash(self, message: str | None = None) -> str:
        if message and message.strip():
            return self._run(f"stash push -m {single_quote(message)}", step="stash")
        return self._run("stash push", step="stash")

    def stash_apply(self, index: int = 0) -> str:
        return self._run(f"stash apply {single_quote(self._stash_ref(index))}", step="stash")

    def stash_pop(self, index: int = 0) -> str:
        return self._run(f"stash pop {single_quote(self._stash_ref(index))}", step="stash")

    def stash_drop(self, index: int = 0) -> str:
        return self._run(f"stash drop {single_quote(self._stash_ref(index))}", step="stash")

    @staticmethod
    def _stash_ref(index: int) -> str:
        if index < 0:
            raise ZeroError(f"Invalid stash index: {index}", code=ExitCode.VALIDATION_ERROR)
        return f"stash@{{{index}}}"

    def show(self, commit: str) -> str:
        return self._run(f"show --stat --patch {single_quote(validate_revision(commit))}", step="show")

    def push(self, branch: str | None = None) -> str:
        if branch:
            return self._run(f"push -u origin {single_quote(validate_branch_name(branch))}", step="push")
        return self._run("push", step="push")

    def pull(self) -> str:
        return self._run("pull", step="pull")
