from __future__ import annotations

from zeroide.errors import (
    CommandError,
    CommandTimeoutError,
    ConfigDecodeError,
    EnvironmentSetupError,
    ExitCode,
    WorkspacePathError,
    ZeroError,
    user_facing_error,
)
from zeroide.logging import LOG_LEVELS, configure_logging


def test_exit_codes_are_deterministic() -> None:
    assert int(ExitCode.SUCCESS) == 0
    assert int(ExitCode.INVALID_ARGS) == 2
    assert int(ExitCode.CONFIG_ERROR) == 3
    assert int(ExitCode.CONTAINER_ERROR) == 6
    assert int(ExitCode.WORKSPACE_ERROR) == 8
    assert int(ExitCode.EXECUTION_ERROR) == 9


def test_zero_error_string_contains_hint() -> None:
    err = ZeroError("docker not found", code=ExitCode.CONTAINER_ERROR, hint="Install Docker")
    assert "Install Docker" in str(err)
    assert str(ZeroError("plain")) == "plain"


def test_subclasses_carry_their_own_codes_and_telemetry() -> None:
    assert WorkspacePathError("escape").code is ExitCode.WORKSPACE_ERROR
    assert WorkspacePathError.telemetry_code == "path_escapes_workspace"
    assert ConfigDecodeError("bad").code is ExitCode.CONFIG_ERROR
    assert EnvironmentSetupError("failed", attempts=3).attempts == 3


def test_command_error_keeps_output_and_exit_code() -> None:
    err = CommandTimeoutError("timed out", output="partial", exit_code=None)
    assert isinstance(err, CommandError)
    assert isinstance(err, ZeroError)
    assert err.output == "partial"
    assert err.telemetry_code == "runtime_command_timeout"
    assert CommandError("failed", exit_code=2).exit_code == 2


def test_user_facing_error_template() -> None:
    text = user_facing_error("Path escapes workspace", hint="Use a path inside /workspace")
    assert text == "Error: Path escapes workspace. Next step: Use a path inside /workspace"
    assert user_facing_error("Boom") == "Error: Boom."


def test_logging_levels() -> None:
    logger = configure_logging("WARN")
    assert logger.level == LOG_LEVELS["WARN"]
