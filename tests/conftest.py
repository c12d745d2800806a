from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

from zeroide.errors import CommandError

_SECURITY_TEST_FILES = {
    "test_security.py",
    "test_workspace_files.py",
    "test_workspace_path_properties.py",
}

ShellResponse = object


def command_error(output: str, exit_code: int = 1) -> CommandError:
    return CommandError(
        "Container command failed.",
        hint=output,
        debug_details=f"docker exec [exit={exit_code}] [output={output}]",
        output=output,
        exit_code=exit_code,
    )


class FakeContainerRuntime:
    """In-memory container: files, shell responses keyed by script substring."""

    def __init__(self) -> None:
        self.files: dict[str, str] = {}
        self.directories: set[str] = {"/workspace"}
        self.listings: dict[str, str] = {}
        self.containers: dict[str, str] = {}
        self.shell_calls: list[str] = []
        self.calls: list[tuple[object, ...]] = []
        self.stream_chunks: list[str] = []
        self.stream_error: Exception | None = None
        self.on_stream: Callable[[], None] | None = None
        self.run_error: Exception | None = None
        self.remove_error: Exception | None = None
        self.cancel_calls = 0
        self._responses: list[tuple[str, list[ShellResponse]]] = []

    def respond(self, substring: str, *responses: ShellResponse) -> None:
        """Queue responses for scripts containing ``substring``; the last one repeats."""
        self._responses.append((substring, list(responses)))

    def _shell(self, script: str) -> str:
        self.shell_calls.append(script)
        for substring, responses in self._responses:
            if substring not in script:
                continue
            response = responses.pop(0) if len(responses) > 1 else responses[0]
            if isinstance(response, Exception):
                raise response
            if callable(response):
                return str(response(script))
            return str(response)
        return ""

    def run_container(self, image: str, name: str) -> str:
        self.calls.append(("run_container", image, name))
        if self.run_error is not None:
            raise self.run_error
        self.containers[name] = image
        return f"id-{name}"

    def stop_container(self, name: str) -> None:
        self.calls.append(("stop_container", name))

    def remove_container(self, name: str) -> None:
        self.calls.append(("remove_container", name))
        if self.remove_error is not None:
            raise self.remove_error
        self.containers.pop(name, None)

    def container_exists(self, name: str) -> bool:
        return name in self.containers

    def execute_command(self, container: str, command: list[str]) -> str:
        self.calls.append(("execute_command", container, tuple(command)))
        return self._shell(" ".join(command))

    def execute_shell(self, container: str, script: str, *, timeout_seconds: float | None = None) -> str:
        self.calls.append(("execute_shell", container, timeout_seconds))
        return self._shell(script)

    def execute_shell_streaming(
        self,
        container: str,
        script: str,
        on_output: Callable[[str], None],
        *,
        cancel_token: object | None = None,
    ) -> str:
        self.calls.append(("execute_shell_streaming", container, script))
        self.shell_calls.append(script)
        for chunk in self.stream_chunks:
            on_output(chunk)
        if self.on_stream is not None:
            self.on_stream()
        if self.stream_error is not None:
            raise self.stream_error
        return "".join(self.stream_chunks)

    def list_files(self, container: str, path: str) -> str:
        self.calls.append(("list_files", container, path))
        return self.listings.get(path, "total 0\n")

    def read_file(self, container: str, path: str) -> str:
        self.calls.append(("read_file", container, path))
        if path not in self.files:
            raise command_error(f"cat: can't open '{path}': No such file or directory")
        return self.files[path]

    def write_file(self, container: str, path: str, content: str) -> None:
        self.calls.append(("write_file", container, path))
        self.files[path] = content

    def ensure_directory(self, container: str, path: str) -> None:
        self.calls.append(("ensure_directory", container, path))
        self.directories.add(path)

    def rename(self, container: str, source: str, destination: str) -> None:
        self.calls.append(("rename", container, source, destination))
        if source in self.files:
            self.files[destination] = self.files.pop(source)

    def remove(self, container: str, path: str, *, recursive: bool = False) -> None:
        self.calls.append(("remove", container, path, recursive))
        self.files.pop(path, None)
        self.directories.discard(path)

    def file_exists(self, container: str, path: str) -> bool:
        self.calls.append(("file_exists", container, path))
        return path in self.files or path in self.directories

    def cancel_current_execution(self) -> None:
        self.cancel_calls += 1


@pytest.fixture
def runtime() -> FakeContainerRuntime:
    return FakeContainerRuntime()


@pytest.hookimpl(trylast=True)
def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    del config
    for item in items:
        path = Path(str(getattr(item, "path", item.fspath)))
        name = path.name

        if "integration" in path.parts:
            item.add_marker(pytest.mark.integration)
            item.add_marker(pytest.mark.slow)

        if "property" in path.parts:
            item.add_marker(pytest.mark.property)

        if name in _SECURITY_TEST_FILES:
            item.add_marker(pytest.mark.security)
