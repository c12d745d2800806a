"""Deterministic error model and exit code contract."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import ClassVar


class ExitCode(IntEnum):
    SUCCESS = 0
    INVALID_ARGS = 2
    CONFIG_ERROR = 3
    RUNTIME_ERROR = 4
    GIT_ERROR = 5
    CONTAINER_ERROR = 6
    VALIDATION_ERROR = 7
    WORKSPACE_ERROR = 8
    EXECUTION_ERROR = 9


@dataclass
class ZeroError(Exception):
    message: str
    code: ExitCode = ExitCode.RUNTIME_ERROR
    hint: str = ""
    debug_details: str = ""

    telemetry_code: ClassVar[str] = "unknown_error"

    def __str__(self) -> str:
        if self.hint:
            return f"{self.message} Hint: {self.hint}"
        return self.message


@dataclass
class WorkspacePathError(ZeroError):
    """Path resolves outside the workspace root."""

    code: ExitCode = ExitCode.WORKSPACE_ERROR
    telemetry_code: ClassVar[str] = "path_escapes_workspace"


@dataclass
class CommandError(ZeroError):
    """A container CLI invocation exited non-zero."""

    code: ExitCode = ExitCode.CONTAINER_ERROR
    output: str = ""
    exit_code: int | None = None
    telemetry_code: ClassVar[str] = "runtime_command_failed"


@dataclass
class CommandTimeoutError(CommandError):
    telemetry_code: ClassVar[str] = "runtime_command_timeout"


@dataclass
class CommandCancelledError(ZeroError):
    code: ExitCode = ExitCode.EXECUTION_ERROR
    telemetry_code: ClassVar[str] = "execution_cancelled"


@dataclass
class ContainerCreationError(ZeroError):
    code: ExitCode = ExitCode.CONTAINER_ERROR
    telemetry_code: ClassVar[str] = "container_creation_failed"


@dataclass
class CloneFailedError(ZeroError):
    code: ExitCode = ExitCode.GIT_ERROR
    telemetry_code: ClassVar[str] = "git_clone_failed"


@dataclass
class GitCommandError(ZeroError):
    code: ExitCode = ExitCode.GIT_ERROR
    output: str = ""
    telemetry_code: ClassVar[str] = "git_command_failed"


@dataclass
class ProjectDetectionError(ZeroError):
    code: ExitCode = ExitCode.EXECUTION_ERROR
    telemetry_code: ClassVar[str] = "project_detection_failed"


@dataclass
class EnvironmentSetupError(ZeroError):
    code: ExitCode = ExitCode.EXECUTION_ERROR
    attempts: int = 0
    telemetry_code: ClassVar[str] = "environment_setup_failed"


@dataclass
class ExecutionBusyError(ZeroError):
    code: ExitCode = ExitCode.EXECUTION_ERROR
    telemetry_code: ClassVar[str] = "execution_already_running"


@dataclass
class ConfigDecodeError(ZeroError):
    code: ExitCode = ExitCode.CONFIG_ERROR
    telemetry_code: ClassVar[str] = "config_decode_failed"


@dataclass
class SessionUnavailableError(ZeroError):
    code: ExitCode = ExitCode.VALIDATION_ERROR
    telemetry_code: ClassVar[str] = "session_unavailable"


def user_facing_error(message: str, *, hint: str = "") -> str:
    if hint:
        return f"Error: {message}. Next step: {hint}"
    return f"Error: {message}."
