"""Host readiness checks: docker CLI, daemon, socket access and network."""

from __future__ import annotations

import logging as py_logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from zeroide.errors import ZeroError
from zeroide.runtime.docker import DockerContainerRuntime

logger = py_logging.getLogger(__name__)

NETWORK_PROBE_URL = "https://api.github.com/meta"


@dataclass(frozen=True)
class NetworkStatus:
    is_reachable: bool
    message: str


@dataclass(frozen=True)
class DiagnosticsSnapshot:
    checked_at: datetime
    docker_path: str
    is_docker_installed: bool
    docker_version: str | None
    is_docker_daemon_running: bool
    is_docker_socket_accessible: bool
    docker_socket_status_message: str
    is_network_reachable: bool
    network_status_message: str
    running_containers: list[str] = field(default_factory=list)
    docker_status_message: str = ""


def probe_network(url: str = NETWORK_PROBE_URL, *, timeout_seconds: float = 3.0) -> NetworkStatus:
    request = Request(url, method="HEAD")
    try:
        with urlopen(request, timeout=timeout_seconds) as response:  # nosec B310
            status = response.status
    except HTTPError as exc:
        status = exc.code
    except (URLError, OSError) as exc:
        reason = getattr(exc, "reason", exc)
        return NetworkStatus(is_reachable=False, message=f"Network unreachable: {reason}")
    if 200 <= status < 500:
        return NetworkStatus(is_reachable=True, message=f"Network reachable (HTTP {status})")
    return NetworkStatus(is_reachable=False, message="Network unreachable: unexpected response")


def _error_message(exc: ZeroError) -> str:
    detail = (getattr(exc, "output", "") or exc.hint or exc.message).strip()
    return detail or "Unknown error"


def _socket_status(installed: bool, daemon_running: bool, daemon_error: str | None) -> tuple[bool, str]:
    if not installed:
        return False, "Docker CLI unavailable; socket access not checked"
    if daemon_running:
        return True, "Docker socket access is available"
    if daemon_error and "permission denied" in daemon_error.lower():
        return False, "Docker socket permission denied"
    return False, "Docker socket access could not be verified"


class DiagnosticsService:
    def __init__(
        self,
        runtime: DockerContainerRuntime,
        *,
        now: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
        network_probe: Callable[[], NetworkStatus] = probe_network,
    ) -> None:
        self.runtime = runtime
        self.now = now
        self.network_probe = network_probe

    def collect_snapshot(self) -> DiagnosticsSnapshot:
        checked_at = self.now()
        network = self.network_probe()
        docker_path = self.runtime.docker_path

        def snapshot(
            *,
            installed: bool,
            daemon_running: bool,
            daemon_error: str | None,
            version: str | None,
            containers: list[str],
            message: str,
        ) -> DiagnosticsSnapshot:
            accessible, socket_message = _socket_status(installed, daemon_running, daemon_error)
            return DiagnosticsSnapshot(
                checked_at=checked_at,
                docker_path=docker_path,
                is_docker_installed=installed,
                docker_version=version,
                is_docker_daemon_running=daemon_running,
                is_docker_socket_accessible=accessible,
                docker_socket_status_message=socket_message,
                is_network_reachable=network.is_reachable,
                network_status_message=network.message,
                running_containers=containers,
                docker_status_message=message,
            )

        try:
            self.runtime.check_installation()
        except ZeroError as exc:
            logger.warning("Docker CLI check failed path=%s", docker_path)
            return snapshot(
                installed=False,
                daemon_running=False,
                daemon_error=None,
                version=None,
                containers=[],
                message=f"Docker CLI not found: {_error_message(exc)}",
            )

        try:
            version = self.runtime.server_version()
            containers = self.runtime.list_containers()
        except ZeroError as exc:
            daemon_error = _error_message(exc)
            logger.warning("Docker daemon check failed error=%s", daemon_error)
            return snapshot(
                installed=True,
                daemon_running=False,
                daemon_error=daemon_error,
                version=None,
                containers=[],
                message=f"Docker daemon is not reachable: {daemon_error}",
            )

        return snapshot(
            installed=True,
            daemon_running=True,
            daemon_error=None,
            version=version or None,
            containers=containers,
            message="Docker is ready",
        )
