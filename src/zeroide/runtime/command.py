"""Host process execution with captured and streamed output."""

from __future__ import annotations

import logging as py_logging
import subprocess
import threading
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from zeroide.errors import CommandCancelledError, CommandError, CommandTimeoutError
from zeroide.security import command_for_log, sanitize_log_text

logger = py_logging.getLogger(__name__)

CANCELLED_MESSAGE = "Execution cancelled"


class CancellationToken:
    """Cooperative cancel flag shared between a caller and a running command."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, seconds: float) -> bool:
        """Sleep up to ``seconds``, returning early with True once cancelled."""
        return self._event.wait(seconds)

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise CommandCancelledError(CANCELLED_MESSAGE, hint="Start the run again when ready.")


@dataclass
class CommandResult:
    argv: list[str]
    returncode: int
    output: str


def single_quote(value: str) -> str:
    """Quote ``value`` for ``sh -c`` as one word, always wrapped in single quotes."""
    return "'" + value.replace("'", "'\"'\"'") + "'"


def _combined(stdout: str | None, stderr: str | None) -> str:
    parts = [part for part in (stdout or "", stderr or "") if part]
    return "\n".join(part.rstrip("\n") for part in parts)


def _failure(argv: list[str], returncode: int | None, output: str, *, detail: str = "") -> CommandError:
    debug = f"{command_for_log(argv)} [exit={returncode}] [output={sanitize_log_text(output)}]"
    if detail:
        debug = f"{debug} [script={sanitize_log_text(detail)}]"
    return CommandError(
        "Container command failed.",
        hint=sanitize_log_text(output, limit=320) or "Inspect the application log for details.",
        debug_details=debug,
        output=output,
        exit_code=returncode,
    )


class CommandExecutor:
    """Runs host binaries, either to completion or streaming output lines.

    Streaming runs register their cancellation token so that
    :meth:`cancel_current` can flip it from another thread. Only the flag is
    set; the child process keeps running until it finishes or the caller
    stops reading.
    """

    def __init__(
        self,
        *,
        runner: Callable[..., subprocess.CompletedProcess] = subprocess.run,
        popen: Callable[..., subprocess.Popen] = subprocess.Popen,
        default_timeout_seconds: float | None = None,
    ) -> None:
        self.runner = runner
        self.popen = popen
        self.default_timeout_seconds = default_timeout_seconds
        self._lock = threading.Lock()
        self._active_tokens: list[CancellationToken] = []

    def execute(
        self,
        argv: Sequence[str],
        *,
        input_text: str | None = None,
        timeout_seconds: float | None = None,
        debug_context: str = "",
    ) -> CommandResult:
        command = list(argv)
        timeout = timeout_seconds if timeout_seconds is not None else self.default_timeout_seconds
        logger.debug("Running command=%s timeout=%s", command_for_log(command), timeout)
        try:
            completed = self.runner(
                command,
                input=input_text,
                capture_output=True,
                text=True,
                check=False,
                timeout=timeout,
            )
        except subprocess.TimeoutExpired as exc:
            logger.error("Command timed out command=%s", command_for_log(command))
            raise CommandTimeoutError(
                "Container command timed out.",
                hint="Increase the timeout or inspect the hanging process.",
                debug_details=f"{command_for_log(command)} [timeout={timeout}]",
                output=_combined(_text(exc.stdout), _text(exc.stderr)),
            ) from exc
        except OSError as exc:
            logger.error("Command could not start command=%s error=%s", command_for_log(command), exc)
            raise CommandError(
                "Container CLI is not available.",
                hint="Install Docker or set docker_path in the config file.",
                debug_details=f"{command_for_log(command)} [error={exc}]",
            ) from exc

        output = _combined(completed.stdout, completed.stderr)
        if completed.returncode != 0:
            logger.warning(
                "Command failed exit=%s command=%s output=%s",
                completed.returncode,
                command_for_log(command),
                sanitize_log_text(output, limit=320),
            )
            raise _failure(command, completed.returncode, output, detail=debug_context)
        return CommandResult(argv=command, returncode=completed.returncode, output=completed.stdout or "")

    def execute_streaming(
        self,
        argv: Sequence[str],
        on_output: Callable[[str], None],
        *,
        cancel_token: CancellationToken | None = None,
        debug_context: str = "",
    ) -> CommandResult:
        """Run ``argv`` delivering each output line to ``on_output`` in order.

        stderr is merged into stdout. The token is checked before start, at
        every chunk and after exit; once set, :class:`CommandCancelledError`
        wins over both success and failure.
        """
        command = list(argv)
        token = cancel_token or CancellationToken()
        token.raise_if_cancelled()
        logger.debug("Streaming command=%s", command_for_log(command))

        with self._lock:
            self._active_tokens.append(token)
        collected: list[str] = []
        try:
            try:
                process = self.popen(
                    command,
                    stdout=subprocess.PIPE,
                    stderr=subprocess.STDOUT,
                    text=True,
                    bufsize=1,
                )
            except OSError as exc:
                raise CommandError(
                    "Container CLI is not available.",
                    hint="Install Docker or set docker_path in the config file.",
                    debug_details=f"{command_for_log(command)} [error={exc}]",
                ) from exc

            stream = process.stdout
            if stream is not None:
                try:
                    for chunk in stream:
                        if token.is_cancelled:
                            break
                        collected.append(chunk)
                        on_output(chunk)
                    # Output after cancellation is discarded.
                    token.raise_if_cancelled()
                finally:
                    stream.close()
            returncode = process.wait()
            token.raise_if_cancelled()
        finally:
            with self._lock:
                if token in self._active_tokens:
                    self._active_tokens.remove(token)

        output = "".join(collected)
        if returncode != 0:
            logger.warning("Streaming command failed exit=%s command=%s", returncode, command_for_log(command))
            raise _failure(command, returncode, output, detail=debug_context)
        return CommandResult(argv=command, returncode=returncode, output=output)

    def cancel_current(self) -> None:
        with self._lock:
            tokens = list(self._active_tokens)
        logger.debug("Cancelling active streaming commands count=%s", len(tokens))
        for token in tokens:
            token.cancel()


def _text(value: object) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    if isinstance(value, str):
        return value
    return ""
