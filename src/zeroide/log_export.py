"""Plain-text support bundle: diagnostics, execution output and app logs."""

from __future__ import annotations

import logging as py_logging
from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path

from zeroide.diagnostics import DiagnosticsSnapshot
from zeroide.errors import ExitCode, ZeroError
from zeroide.security import mask_secrets

logger = py_logging.getLogger(__name__)


def _yes_no(value: bool) -> str:
    return "yes" if value else "no"


def bundle_filename(moment: datetime) -> str:
    return f"zero-logs-{moment.astimezone(timezone.utc).strftime('%Y%m%d-%H%M%S')}.txt"


class LogExportService:
    def __init__(self, *, now: Callable[[], datetime] = lambda: datetime.now(timezone.utc)) -> None:
        self.now = now

    def build_bundle_text(
        self,
        snapshot: DiagnosticsSnapshot | None,
        execution_output: str,
        app_logs: list[str],
    ) -> str:
        generated_at = self.now().astimezone(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")
        sections = ["# Zero Runtime Log Bundle", f"Generated At: {generated_at}", "## Diagnostics Snapshot"]

        if snapshot is not None:
            sections.append(f"Checked At: {snapshot.checked_at.isoformat(timespec='seconds')}")
            sections.append(f"Docker Path: {snapshot.docker_path}")
            sections.append(f"Docker Installed: {_yes_no(snapshot.is_docker_installed)}")
            sections.append(f"Docker Daemon Running: {_yes_no(snapshot.is_docker_daemon_running)}")
            if snapshot.docker_version:
                sections.append(f"Docker Version: {snapshot.docker_version}")
            sections.append(f"Docker Socket Access: {_yes_no(snapshot.is_docker_socket_accessible)}")
            sections.append(f"Docker Socket Status: {snapshot.docker_socket_status_message}")
            sections.append(f"Network Reachable: {_yes_no(snapshot.is_network_reachable)}")
            sections.append(f"Network Status: {snapshot.network_status_message}")
            containers = ", ".join(snapshot.running_containers) if snapshot.running_containers else "none"
            sections.append(f"Running Containers: {containers}")
            sections.append(f"Diagnostics Message: {snapshot.docker_status_message}")
        else:
            sections.append("No diagnostics snapshot captured.")

        sections.append("## Execution Output")
        trimmed = mask_secrets(execution_output.strip())
        sections.append(trimmed or "(empty)")

        sections.append("## App Service Logs")
        sections.extend(app_logs or ["(empty)"])
        return "\n".join(sections) + "\n"

    def export(
        self,
        snapshot: DiagnosticsSnapshot | None,
        execution_output: str,
        app_logs: list[str],
        directory: str | Path,
    ) -> Path:
        export_dir = Path(directory).expanduser()
        destination = export_dir / bundle_filename(self.now())
        text = self.build_bundle_text(snapshot, execution_output, app_logs)
        try:
            export_dir.mkdir(parents=True, exist_ok=True)
            destination.write_text(text, encoding="utf-8")
        except OSError as exc:
            logger.error("Log bundle write failed path=%s error=%s", destination, exc)
            raise ZeroError(
                f"Failed to write log bundle to {destination}.",
                code=ExitCode.RUNTIME_ERROR,
                hint="Choose a writable export directory.",
                debug_details=str(exc),
            ) from exc
        logger.info("Exported log bundle path=%s", destination)
        return destination
