"""Public CLI contract and entrypoint."""

from __future__ import annotations

import argparse
import logging as py_logging
import sys
import threading
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import TextIO

from .config import AppConfig, load_config
from .context import AppContext
from .errors import ExitCode, ZeroError, user_facing_error
from .execution.models import ExecutionState, ExecutionStatus
from .execution.service import ExecutionService
from .logging import configure_logging, default_log_path
from .session.models import Repository

logger = py_logging.getLogger(__name__)

_VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARN", "ERROR")

ContextFactory = Callable[[AppConfig], AppContext]


def _log_level_type(value: str) -> str:
    normalized = value.upper()
    if normalized == "WARNING":
        normalized = "WARN"
    if normalized not in _VALID_LOG_LEVELS:
        accepted = ", ".join(_VALID_LOG_LEVELS)
        raise argparse.ArgumentTypeError(f"--log-level must be one of: {accepted}")
    return normalized


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError("value must be an integer") from exc
    if number < 1:
        raise argparse.ArgumentTypeError("value must be at least 1")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="zeroide")
    parser.add_argument("--config", type=Path, default=None)
    parser.add_argument("--log-level", type=_log_level_type, default="WARN")
    parser.add_argument("--log-file", type=Path, default=None)
    commands = parser.add_subparsers(dest="command", required=True)

    session = commands.add_parser("session", help="Manage development sessions")
    session_commands = session.add_subparsers(dest="session_command", required=True)
    start = session_commands.add_parser("start", help="Provision a container and clone a repository")
    start.add_argument("clone_url")
    start.add_argument("--token", default=None, help="Access token; defaults to the configured token")
    listing = session_commands.add_parser("list", help="List stored sessions")
    listing.add_argument("--check-health", action="store_true", help="Prune sessions whose container is gone")
    for name in ("stop", "delete"):
        sub = session_commands.add_parser(name)
        sub.add_argument("session_id")

    run = commands.add_parser("run", help="Detect and run the project command in a session")
    run.add_argument("session_id")
    run.add_argument("--command", dest="run_command", default=None)
    run.add_argument(
        "--export-logs",
        dest="export_dir",
        type=Path,
        default=None,
        metavar="DIR",
        help="Write a support log bundle with this run's output when it ends",
    )

    git = commands.add_parser("git", help="Inspect git state in a session")
    git_commands = git.add_subparsers(dest="git_command", required=True)
    status = git_commands.add_parser("status")
    status.add_argument("session_id")
    log = git_commands.add_parser("log")
    log.add_argument("session_id")
    log.add_argument("-n", "--max-count", type=_positive_int, default=20)

    profile = commands.add_parser("profile", help="Saved run commands per repository")
    profile_commands = profile.add_subparsers(dest="profile_command", required=True)
    profile_set = profile_commands.add_parser("set")
    profile_set.add_argument("repo_url")
    profile_set.add_argument("run_command")
    for name in ("clear", "show"):
        sub = profile_commands.add_parser(name)
        sub.add_argument("repo_url")

    commands.add_parser("diagnostics", help="Check docker and network readiness")

    export = commands.add_parser("export-logs", help="Write a diagnostics-only log bundle")
    export.add_argument("--dir", dest="export_dir", type=Path, default=None)
    return parser


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    return build_parser().parse_args(argv)


def _print(out: TextIO, text: str = "") -> None:
    print(text, file=out)


def _session_start(ctx: AppContext, namespace: argparse.Namespace, out: TextIO) -> int:
    token = namespace.token if namespace.token is not None else ctx.config.github_token
    repository = Repository.from_clone_url(namespace.clone_url)
    session = ctx.orchestrator.start_session(repository, token)
    _print(out, f"{session.id}\t{session.container_name}\t{session.repo_url}")
    return int(ExitCode.SUCCESS)


def _session_list(ctx: AppContext, namespace: argparse.Namespace, out: TextIO) -> int:
    if namespace.check_health:
        sessions = ctx.orchestrator.load_sessions_with_health_check()
    else:
        sessions = ctx.orchestrator.list_sessions()
    for session in sessions:
        _print(
            out,
            f"{session.id}\t{session.container_name}\t{session.repo_url}\t"
            f"{session.last_active_at.isoformat(timespec='seconds')}",
        )
    return int(ExitCode.SUCCESS)


def run_in_foreground(service: ExecutionService, command: str) -> ExecutionStatus:
    """Run on a worker thread so Ctrl-C turns into a cooperative stop."""
    result: dict[str, ExecutionStatus] = {}
    failure: list[BaseException] = []

    def worker() -> None:
        try:
            result["status"] = service.run(command)
        except BaseException as exc:  # re-raised on the calling thread
            failure.append(exc)

    thread = threading.Thread(target=worker, name="zeroide-run", daemon=True)
    thread.start()
    while thread.is_alive():
        try:
            thread.join(timeout=0.2)
        except KeyboardInterrupt:
            service.stop_running()
    if failure:
        raise failure[0]
    return result.get("status", service.status)


def _write_log_bundle(ctx: AppContext, execution_output: str, directory: Path | None) -> Path:
    try:
        snapshot = ctx.diagnostics().collect_snapshot()
    except TypeError:
        snapshot = None
    export_dir = directory or Path(ctx.config.log_export_dir)
    return ctx.log_export().export(snapshot, execution_output, ctx.log_store.recent_entries(), export_dir)


def _run(ctx: AppContext, namespace: argparse.Namespace, out: TextIO) -> int:
    session = ctx.orchestrator.resume_session(namespace.session_id)
    service = ctx.execution(session.container_name, output_listener=out.write)
    command = namespace.run_command
    resolved = command.strip() if command and command.strip() else service.detect_run_command(session.repo_url)

    status = run_in_foreground(service, resolved)
    _print(out)
    _print(out, f"[{status}]")
    if ctx.telemetry.enabled:
        logger.info("Run telemetry %s", ctx.telemetry.summary().to_dict())
    if namespace.export_dir is not None:
        _print(out, str(_write_log_bundle(ctx, service.output, namespace.export_dir)))
    if status.state is ExecutionState.SUCCESS:
        return int(ExitCode.SUCCESS)
    return int(ExitCode.EXECUTION_ERROR)


def _git(ctx: AppContext, namespace: argparse.Namespace, out: TextIO) -> int:
    session = ctx.orchestrator.resume_session(namespace.session_id)
    git = ctx.git(session.container_name)
    if namespace.git_command == "status":
        status = git.status()
        tracking = f" [ahead {status.ahead}, behind {status.behind}]" if status.ahead or status.behind else ""
        _print(out, f"On branch {status.branch}{tracking}")
        for label, changes in (("staged", status.staged), ("unstaged", status.unstaged)):
            for change in changes:
                _print(out, f"{label}\t{change.kind.value}\t{change.path}")
        for path in status.untracked:
            _print(out, f"untracked\t{path}")
        return int(ExitCode.SUCCESS)

    for commit in git.log(namespace.max_count):
        _print(out, f"{commit.short_hash}\t{commit.date}\t{commit.author}\t{commit.message}")
    return int(ExitCode.SUCCESS)


def _profile(ctx: AppContext, namespace: argparse.Namespace, out: TextIO) -> int:
    if namespace.profile_command == "set":
        ctx.run_profiles.save_command(namespace.repo_url, namespace.run_command)
    elif namespace.profile_command == "clear":
        ctx.run_profiles.clear_command(namespace.repo_url)
    else:
        _print(out, ctx.run_profiles.load_command(namespace.repo_url) or "(none)")
    return int(ExitCode.SUCCESS)


def _diagnostics(ctx: AppContext, namespace: argparse.Namespace, out: TextIO) -> int:
    del namespace
    snapshot = ctx.diagnostics().collect_snapshot()
    _print(out, f"Docker Path: {snapshot.docker_path}")
    _print(out, f"Docker Version: {snapshot.docker_version or 'unknown'}")
    _print(out, f"Docker Socket: {snapshot.docker_socket_status_message}")
    _print(out, f"Network: {snapshot.network_status_message}")
    _print(out, f"Running Containers: {', '.join(snapshot.running_containers) or 'none'}")
    _print(out, snapshot.docker_status_message)
    if snapshot.is_docker_daemon_running:
        return int(ExitCode.SUCCESS)
    return int(ExitCode.CONTAINER_ERROR)


def _export_logs(ctx: AppContext, namespace: argparse.Namespace, out: TextIO) -> int:
    _print(out, str(_write_log_bundle(ctx, "", namespace.export_dir)))
    return int(ExitCode.SUCCESS)


def _session(ctx: AppContext, namespace: argparse.Namespace, out: TextIO) -> int:
    if namespace.session_command == "start":
        return _session_start(ctx, namespace, out)
    if namespace.session_command == "list":
        return _session_list(ctx, namespace, out)
    if namespace.session_command == "stop":
        ctx.orchestrator.stop_session(namespace.session_id)
    else:
        ctx.orchestrator.delete_session(namespace.session_id)
    return int(ExitCode.SUCCESS)


_HANDLERS: dict[str, Callable[[AppContext, argparse.Namespace, TextIO], int]] = {
    "session": _session,
    "run": _run,
    "git": _git,
    "profile": _profile,
    "diagnostics": _diagnostics,
    "export-logs": _export_logs,
}


def main(
    argv: Sequence[str] | None = None,
    *,
    context_factory: ContextFactory | None = None,
    stdout: TextIO | None = None,
) -> int:
    out = stdout or sys.stdout
    log_path = default_log_path()
    logger = configure_logging("WARN", log_file=log_path)
    parser = build_parser()
    try:
        namespace = parser.parse_args(argv)
    except SystemExit as exc:
        if exc.code not in (None, 0):
            logger.warning("Argument parsing failed with exit code %s", exc.code)
        return int(exc.code or 0)

    if namespace.log_file is not None:
        log_path = namespace.log_file.expanduser()
    logger = configure_logging(level=namespace.log_level, log_file=log_path)

    try:
        config = load_config(namespace.config)
        factory = context_factory or AppContext.from_config
        ctx = factory(config)
        logger.debug("Dispatching command=%s", namespace.command)
        return _HANDLERS[namespace.command](ctx, namespace, out)
    except ZeroError as exc:
        logger.error(
            "Handled ZeroError (code=%s telemetry=%s): %s",
            int(exc.code),
            exc.telemetry_code,
            exc.message,
            exc_info=logger.isEnabledFor(py_logging.DEBUG),
        )
        if exc.debug_details:
            logger.debug("Error detail: %s", exc.debug_details)
        print(user_facing_error(exc.message.rstrip("."), hint=exc.hint), file=sys.stderr)
        return int(exc.code)
    except Exception:
        logger.exception("Unhandled exception in CLI entrypoint")
        hint = f"Inspect logs: {log_path}"
        print(user_facing_error("Unexpected runtime failure", hint=hint), file=sys.stderr)
        return int(ExitCode.RUNTIME_ERROR)


def run(argv: Sequence[str] | None = None) -> int:
    return main(argv)
