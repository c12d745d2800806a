"""Run command detection from project marker files."""

from __future__ import annotations

import logging as py_logging
import posixpath
from collections.abc import Callable
from dataclasses import dataclass

from zeroide.config import DEFAULT_WORKSPACE_ROOT
from zeroide.errors import CommandError, ProjectDetectionError
from zeroide.runtime.command import single_quote
from zeroide.runtime.container import ContainerRuntime

logger = py_logging.getLogger(__name__)

DOCKER_CAPABILITY_PROBE = "command -v docker >/dev/null 2>&1 && docker info >/dev/null 2>&1"
_SPRING_BOOT_MARKERS = ("spring-boot", "org.springframework.boot")


@dataclass(frozen=True)
class DetectedCommand:
    command: str
    source: str


class ProjectDetector:
    """Resolves the command to run for a workspace, first match wins.

    Order: saved run profile, Dockerfile (only when docker works inside the
    container), then Swift, Maven, Gradle, Node, Python, plain Java and Go
    marker files.
    """

    def __init__(
        self,
        runtime: ContainerRuntime,
        container_name: str,
        *,
        workspace_root: str = DEFAULT_WORKSPACE_ROOT,
    ) -> None:
        self.runtime = runtime
        self.container_name = container_name
        self.workspace_root = workspace_root

    def _path(self, name: str) -> str:
        return posixpath.join(self.workspace_root, name)

    def _exists(self, name: str) -> bool:
        return self.runtime.file_exists(self.container_name, self._path(name))

    def _mentions_spring_boot(self, name: str) -> bool:
        try:
            content = self.runtime.read_file(self.container_name, self._path(name))
        except CommandError:
            return False
        return any(marker in content for marker in _SPRING_BOOT_MARKERS)

    def docker_available(self) -> bool:
        try:
            self.runtime.execute_shell(self.container_name, DOCKER_CAPABILITY_PROBE)
        except CommandError:
            return False
        return True

    def _dockerfile(self) -> str | None:
        if not self._exists("Dockerfile"):
            return None
        if not self.docker_available():
            logger.info("Dockerfile present but docker is unavailable container=%s", self.container_name)
            return None
        tag = f"{self.container_name}-app"
        root = single_quote(self.workspace_root)
        return f"docker build -t {tag} {root} && docker run --rm {tag}"

    def _maven(self) -> str | None:
        if not self._exists("pom.xml"):
            return None
        if self._mentions_spring_boot("pom.xml"):
            return "mvn spring-boot:run"
        return "mvn clean package"

    def _gradle(self) -> str | None:
        for name in ("build.gradle", "build.gradle.kts"):
            if self._exists(name):
                if self._mentions_spring_boot(name):
                    return "gradle bootRun"
                return "gradle build"
        return None

    def _marker(self, name: str, command: str) -> Callable[[], str | None]:
        return lambda: command if self._exists(name) else None

    def detect(self, profile_command: str | None = None) -> DetectedCommand:
        if profile_command is not None and profile_command.strip():
            return DetectedCommand(command=profile_command.strip(), source="profile")

        checks: list[tuple[str, Callable[[], str | None]]] = [
            ("Dockerfile", self._dockerfile),
            ("Package.swift", self._marker("Package.swift", "swift run")),
            ("pom.xml", self._maven),
            ("build.gradle", self._gradle),
            ("package.json", self._marker("package.json", "npm start")),
            ("main.py", self._marker("main.py", "python3 main.py")),
            ("Main.java", self._marker("Main.java", "javac Main.java && java Main")),
            ("go.mod", self._marker("go.mod", "go run .")),
        ]
        for source, check in checks:
            command = check()
            if command:
                logger.debug("Detected run command source=%s command=%s", source, command)
                return DetectedCommand(command=command, source=source)

        raise ProjectDetectionError(
            "Cannot detect project type.",
            hint="Save a run command for this repository with `zeroide profile set`.",
        )
