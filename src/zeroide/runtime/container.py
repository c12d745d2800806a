"""Container runtime contract shared by the workspace, git and execution layers."""

from __future__ import annotations

from collections.abc import Callable
from typing import Protocol, runtime_checkable

from zeroide.runtime.command import CancellationToken


@runtime_checkable
class ContainerRuntime(Protocol):
    def run_container(self, image: str, name: str) -> str: ...

    def stop_container(self, name: str) -> None: ...

    def remove_container(self, name: str) -> None: ...

    def container_exists(self, name: str) -> bool: ...

    def execute_command(self, container: str, command: list[str]) -> str: ...

    def execute_shell(
        self,
        container: str,
        script: str,
        *,
        timeout_seconds: float | None = None,
    ) -> str: ...

    def execute_shell_streaming(
        self,
        container: str,
        script: str,
        on_output: Callable[[str], None],
        *,
        cancel_token: CancellationToken | None = None,
    ) -> str: ...

    def list_files(self, container: str, path: str) -> str: ...

    def read_file(self, container: str, path: str) -> str: ...

    def write_file(self, container: str, path: str, content: str) -> None: ...

    def ensure_directory(self, container: str, path: str) -> None: ...

    def rename(self, container: str, source: str, destination: str) -> None: ...

    def remove(self, container: str, path: str, *, recursive: bool = False) -> None: ...

    def file_exists(self, container: str, path: str) -> bool: ...

    def cancel_current_execution(self) -> None: ...
