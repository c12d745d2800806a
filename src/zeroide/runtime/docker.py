"""Docker CLI implementation of the container runtime contract."""

from __future__ import annotations

import logging as py_logging
import shutil
from collections.abc import Callable
from pathlib import Path

from zeroide.errors import CommandError, ContainerCreationError
from zeroide.runtime.command import CancellationToken, CommandExecutor, single_quote

logger = py_logging.getLogger(__name__)

DOCKER_PATH_CANDIDATES = (
    "/usr/local/bin/docker",
    "/opt/homebrew/bin/docker",
    "/usr/bin/docker",
    "/Applications/Docker.app/Contents/Resources/bin/docker",
)
KEEP_ALIVE_COMMAND = ("tail", "-f", "/dev/null")


def resolve_docker_path(
    configured: str = "",
    *,
    which: Callable[[str], str | None] = shutil.which,
    exists: Callable[[str], bool] = lambda value: Path(value).is_file(),
) -> str:
    """Return the docker binary: explicit config, then PATH, then well-known locations."""
    if configured.strip():
        return configured.strip()
    found = which("docker")
    if found:
        return found
    for candidate in DOCKER_PATH_CANDIDATES:
        if exists(candidate):
            return candidate
    return "docker"


class DockerContainerRuntime:
    def __init__(
        self,
        docker_path: str = "",
        *,
        executor: CommandExecutor | None = None,
    ) -> None:
        self.docker_path = resolve_docker_path(docker_path)
        self.executor = executor or CommandExecutor()

    def _docker(self, *args: str) -> list[str]:
        return [self.docker_path, *args]

    def check_installation(self) -> str:
        return self.executor.execute(self._docker("--version"), timeout_seconds=10).output.strip()

    def server_version(self) -> str:
        result = self.executor.execute(
            self._docker("info", "--format", "{{.ServerVersion}}"),
            timeout_seconds=15,
        )
        return result.output.strip()

    def list_containers(self) -> list[str]:
        result = self.executor.execute(self._docker("ps", "--format", "{{.Names}}"), timeout_seconds=15)
        return [line.strip() for line in result.output.splitlines() if line.strip()]

    def run_container(self, image: str, name: str) -> str:
        command = self._docker("run", "-d", "--rm", "--name", name, image, *KEEP_ALIVE_COMMAND)
        logger.debug("Running docker run image=%s name=%s", image, name)
        try:
            result = self.executor.execute(command)
        except CommandError as exc:
            logger.error("Container creation failed name=%s image=%s", name, image)
            raise ContainerCreationError(
                f"Could not start container {name}.",
                hint=exc.hint or "Check that the Docker daemon is running.",
                debug_details=exc.debug_details,
            ) from exc
        container_id = result.output.strip()
        logger.info("Container started name=%s id=%s", name, container_id[:12])
        return container_id

    def stop_container(self, name: str) -> None:
        logger.debug("Stopping container name=%s", name)
        self.executor.execute(self._docker("stop", name))

    def remove_container(self, name: str) -> None:
        logger.debug("Removing container name=%s", name)
        self.executor.execute(self._docker("rm", "-f", name))

    def container_exists(self, name: str) -> bool:
        try:
            self.executor.execute(
                self._docker("inspect", "--format", "{{.State.Running}}", name),
                timeout_seconds=15,
            )
        except CommandError:
            return False
        return True

    def execute_command(self, container: str, command: list[str]) -> str:
        return self.executor.execute(self._docker("exec", container, *command)).output

    def execute_shell(
        self,
        container: str,
        script: str,
        *,
        timeout_seconds: float | None = None,
    ) -> str:
        result = self.executor.execute(
            self._docker("exec", container, "sh", "-c", script),
            timeout_seconds=timeout_seconds,
            debug_context=script,
        )
        return result.output

    def execute_shell_streaming(
        self,
        container: str,
        script: str,
        on_output: Callable[[str], None],
        *,
        cancel_token: CancellationToken | None = None,
    ) -> str:
        result = self.executor.execute_streaming(
            self._docker("exec", container, "sh", "-c", script),
            on_output,
            cancel_token=cancel_token,
            debug_context=script,
        )
        return result.output

    def list_files(self, container: str, path: str) -> str:
        return self.execute_shell(container, f"ls -la {single_quote(path)}")

    def read_file(self, container: str, path: str) -> str:
        return self.execute_shell(container, f"cat {single_quote(path)}")

    def write_file(self, container: str, path: str, content: str) -> None:
        script = f"cat > {single_quote(path)}"
        self.executor.execute(
            self._docker("exec", "-i", container, "sh", "-c", script),
            input_text=content,
            debug_context=script,
        )

    def ensure_directory(self, container: str, path: str) -> None:
        self.execute_shell(container, f"mkdir -p {single_quote(path)}")

    def rename(self, container: str, source: str, destination: str) -> None:
        self.execute_shell(container, f"mv {single_quote(source)} {single_quote(destination)}")

    def remove(self, container: str, path: str, *, recursive: bool = False) -> None:
        flags = "-rf" if recursive else "-f"
        self.execute_shell(container, f"rm {flags} {single_quote(path)}")

    def file_exists(self, container: str, path: str) -> bool:
        try:
            self.execute_shell(container, f"test -e {single_quote(path)}")
        except CommandError:
            return False
        return True

    def cancel_current_execution(self) -> None:
        self.executor.cancel_current()
