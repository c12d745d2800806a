"""Run state machine for one session container."""

from __future__ import annotations

import logging as py_logging
import threading
import time
from collections.abc import Callable

from zeroide.config import DEFAULT_WORKSPACE_ROOT
from zeroide.errors import CommandCancelledError, ExecutionBusyError, ZeroError
from zeroide.execution.detection import ProjectDetector
from zeroide.execution.environment import EnvironmentSetup
from zeroide.execution.models import CANCELLED_REASON, ExecutionState, ExecutionStatus
from zeroide.execution.telemetry import ExecutionTelemetry
from zeroide.logstore import AppLogStore
from zeroide.runtime.command import CancellationToken, single_quote
from zeroide.runtime.container import ContainerRuntime
from zeroide.settings.run_profiles import RunProfileStore

logger = py_logging.getLogger(__name__)


class ExecutionService:
    """Detects, prepares and runs a project's command inside its container.

    ``run`` blocks the calling thread; ``stop_running`` is meant to be called
    from another thread and only flips the cooperative cancel flag. Once the
    flag is observed the run ends as ``FAILED("Execution cancelled")`` even if
    the command itself succeeded or failed.
    """

    def __init__(
        self,
        runtime: ContainerRuntime,
        container_name: str,
        *,
        log_store: AppLogStore,
        run_profiles: RunProfileStore | None = None,
        environment: EnvironmentSetup | None = None,
        telemetry: ExecutionTelemetry | None = None,
        workspace_root: str = DEFAULT_WORKSPACE_ROOT,
        clock: Callable[[], float] = time.monotonic,
        output_listener: Callable[[str], None] | None = None,
    ) -> None:
        self.runtime = runtime
        self.container_name = container_name
        self.log_store = log_store
        self.run_profiles = run_profiles
        self.environment = environment or EnvironmentSetup(runtime, log_store=log_store)
        self.telemetry = telemetry or ExecutionTelemetry(enabled=False)
        self.workspace_root = workspace_root
        self.detector = ProjectDetector(runtime, container_name, workspace_root=workspace_root)
        self.clock = clock
        self.output_listener = output_listener
        self._lock = threading.Lock()
        self._status = ExecutionStatus.idle()
        self._chunks: list[str] = []
        self._token: CancellationToken | None = None

    @property
    def status(self) -> ExecutionStatus:
        with self._lock:
            return self._status

    @property
    def output(self) -> str:
        with self._lock:
            return "".join(self._chunks)

    def _append_output(self, chunk: str) -> None:
        if not chunk:
            return
        with self._lock:
            self._chunks.append(chunk)
        if self.output_listener is not None:
            self.output_listener(chunk)

    def detect_run_command(self, repository_url: str | None = None) -> str:
        profile_command = None
        if repository_url and self.run_profiles is not None:
            profile_command = self.run_profiles.load_command(repository_url)
        return self.detector.detect(profile_command).command

    def run(self, command: str) -> ExecutionStatus:
        with self._lock:
            if self._status.is_running:
                raise ExecutionBusyError(
                    "A run is already in progress.",
                    hint="Stop the current run or wait for it to finish.",
                )
            token = CancellationToken()
            self._token = token
            self._status = ExecutionStatus.running()

        started = self.clock()
        error_code: str | None = None
        logger.info("Execution started container=%s command=%s", self.container_name, command)
        self._append_output(f"$ {command}\n")
        try:
            self.environment.prepare(
                self.container_name,
                command,
                on_status=self._append_output,
                cancel_token=token,
            )
            token.raise_if_cancelled()
            script = f"cd {single_quote(self.workspace_root)} && {command}"
            self.runtime.execute_shell_streaming(
                self.container_name,
                script,
                self._append_output,
                cancel_token=token,
            )
            final = ExecutionStatus.success()
        except CommandCancelledError:
            final = ExecutionStatus.failed(CANCELLED_REASON)
        except ZeroError as exc:
            error_code = exc.telemetry_code
            final = ExecutionStatus.failed(exc.message)
            self._append_output(f"\nError: {exc.message}\n")
            self.log_store.append(
                f"ExecutionService run failed {self.container_name} [{exc.telemetry_code}]: "
                f"{exc.debug_details or exc.message}"
            )
        except Exception as exc:
            logger.exception("Unexpected execution failure container=%s", self.container_name)
            with self._lock:
                self._status = ExecutionStatus.failed(str(exc) or type(exc).__name__)
                self._token = None
            raise

        if token.is_cancelled:
            final = ExecutionStatus.failed(CANCELLED_REASON)
            error_code = CommandCancelledError.telemetry_code

        with self._lock:
            self._status = final
            self._token = None

        duration = self.clock() - started
        self.telemetry.record(
            success=final.state is ExecutionState.SUCCESS,
            duration_seconds=duration,
            error_code=error_code,
        )
        logger.info(
            "Execution finished container=%s status=%s duration=%.2fs",
            self.container_name,
            final,
            duration,
        )
        return final

    def stop_running(self) -> bool:
        """Request cancellation of the active run; returns False when nothing is running."""
        with self._lock:
            token = self._token
            if not self._status.is_running or token is None or token.is_cancelled:
                return False
            token.cancel()
        logger.info("Execution cancellation requested container=%s", self.container_name)
        self.runtime.cancel_current_execution()
        return True

    def clear_output(self) -> None:
        with self._lock:
            if self._status.is_running:
                raise ExecutionBusyError("Output cannot be cleared while a run is in progress.")
            self._chunks.clear()

    def clear_status(self) -> None:
        with self._lock:
            if self._status.is_running:
                raise ExecutionBusyError("Status cannot be reset while a run is in progress.")
            self._status = ExecutionStatus.idle()
