"""Language runtime installation before a run, with bounded retry."""

from __future__ import annotations

import logging as py_logging
import re
from collections.abc import Callable
from dataclasses import dataclass

from zeroide.errors import CommandCancelledError, CommandError, EnvironmentSetupError
from zeroide.logstore import AppLogStore
from zeroide.retry import RecoverableError, RetryCancelled, RetryPolicy, run_with_retry
from zeroide.runtime.command import CANCELLED_MESSAGE, CancellationToken, single_quote
from zeroide.runtime.container import ContainerRuntime

logger = py_logging.getLogger(__name__)

DEFAULT_SETUP_TIMEOUT_SECONDS = 20
DEFAULT_SETUP_ATTEMPTS = 3
_WORD_PATTERN = re.compile(r"[A-Za-z0-9_.+-]+")


@dataclass(frozen=True)
class Toolchain:
    name: str
    probe: str
    apk_packages: str
    apt_packages: str
    triggers: frozenset[str]


TOOLCHAINS: tuple[Toolchain, ...] = (
    Toolchain(
        name="Node.js",
        probe="npm",
        apk_packages="nodejs npm",
        apt_packages="nodejs npm",
        triggers=frozenset({"npm", "npx", "yarn", "pnpm", "node"}),
    ),
    Toolchain(
        name="Python",
        probe="python3",
        apk_packages="python3 py3-pip",
        apt_packages="python3 python3-pip",
        triggers=frozenset({"python", "python3", "pip", "pip3"}),
    ),
    Toolchain(
        name="Go",
        probe="go",
        apk_packages="go",
        apt_packages="golang-go",
        triggers=frozenset({"go"}),
    ),
)


def required_toolchain(command: str) -> Toolchain | None:
    """Return the toolchain a command needs, matched on whole words only."""
    words = set(_WORD_PATTERN.findall(command))
    for toolchain in TOOLCHAINS:
        if words & toolchain.triggers:
            return toolchain
    return None


def install_script(toolchain: Toolchain, timeout_seconds: int) -> str:
    inner = (
        f"command -v {toolchain.probe} >/dev/null 2>&1 && exit 0; "
        f"if command -v apk >/dev/null 2>&1; then apk add --no-cache {toolchain.apk_packages}; "
        "elif command -v apt-get >/dev/null 2>&1; then "
        f"apt-get update && apt-get install -y {toolchain.apt_packages}; "
        "else echo 'no supported package manager' >&2; exit 127; fi"
    )
    return f"timeout {timeout_seconds}s sh -c {single_quote(inner)}"


class _InstallAttemptFailed(RecoverableError):
    def __init__(self, error: CommandError) -> None:
        super().__init__(error.message)
        self.error = error


class EnvironmentSetup:
    def __init__(
        self,
        runtime: ContainerRuntime,
        *,
        log_store: AppLogStore,
        timeout_seconds: int = DEFAULT_SETUP_TIMEOUT_SECONDS,
        max_attempts: int = DEFAULT_SETUP_ATTEMPTS,
        initial_backoff_seconds: float = 1.0,
        sleep: Callable[[float], None] | None = None,
    ) -> None:
        self.runtime = runtime
        self.log_store = log_store
        self.timeout_seconds = timeout_seconds
        self.policy = RetryPolicy(max_attempts=max_attempts, initial_backoff_seconds=initial_backoff_seconds)
        self.sleep = sleep

    def prepare(
        self,
        container: str,
        command: str,
        *,
        on_status: Callable[[str], None],
        cancel_token: CancellationToken,
    ) -> Toolchain | None:
        """Install the runtime ``command`` needs; no-op when none is required.

        Raises :class:`EnvironmentSetupError` once every attempt failed and
        :class:`CommandCancelledError` when cancellation is seen between attempts.
        """
        toolchain = required_toolchain(command)
        if toolchain is None:
            return None
        script = install_script(toolchain, self.timeout_seconds)
        attempts = self.policy.max_attempts

        def announce(attempt: int, total: int) -> None:
            on_status(f"Installing {toolchain.name} (attempt {attempt}/{total})...\n")

        def attempt_install() -> None:
            try:
                self.runtime.execute_shell(container, script, timeout_seconds=self.timeout_seconds + 5)
            except CommandError as exc:
                logger.warning("Runtime install attempt failed toolchain=%s container=%s", toolchain.name, container)
                self.log_store.append(
                    f"ExecutionService {toolchain.name} install attempt failed {container}: {exc.debug_details}"
                )
                raise _InstallAttemptFailed(exc) from exc

        try:
            run_with_retry(
                attempt_install,
                policy=self.policy,
                sleep=self.sleep or cancel_token.wait,
                cancelled=lambda: cancel_token.is_cancelled,
                on_attempt=announce,
            )
        except RetryCancelled as exc:
            raise CommandCancelledError(CANCELLED_MESSAGE) from exc
        except _InstallAttemptFailed as exc:
            message = f"Environment setup failed after {attempts} attempts"
            self.log_store.append(f"ExecutionService {message} ({toolchain.name}) in {container}")
            raise EnvironmentSetupError(
                message,
                hint=exc.error.hint or f"Install {toolchain.name} in the container image and retry.",
                debug_details=exc.error.debug_details,
                attempts=attempts,
            ) from exc
        on_status(f"{toolchain.name} ready.\n")
        return toolchain
