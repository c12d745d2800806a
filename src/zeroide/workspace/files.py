"""Path-confined file operations against a session container."""

from __future__ import annotations

import itertools
import logging as py_logging
import posixpath
from dataclasses import dataclass, field

from zeroide.config import DEFAULT_WORKSPACE_ROOT
from zeroide.errors import WorkspacePathError, ZeroError
from zeroide.logstore import AppLogStore
from zeroide.runtime.container import ContainerRuntime
from zeroide.security import sanitize_log_text

logger = py_logging.getLogger(__name__)

_ITEM_IDS = itertools.count(1)


@dataclass
class FileItem:
    name: str
    path: str
    is_directory: bool
    children: list[FileItem] | None = None
    id: int = field(default_factory=lambda: next(_ITEM_IDS), compare=False)


def resolve_workspace_path(path: str, root: str = DEFAULT_WORKSPACE_ROOT) -> str:
    """Return the normalized absolute path for ``path`` inside ``root``.

    Relative input is joined onto the root. The result must equal the root or
    live below ``root + "/"``; anything else raises :class:`WorkspacePathError`.
    """
    normalized_root = posixpath.normpath(root)
    candidate = path or ""
    if not candidate.strip():
        raise WorkspacePathError(
            "Path is empty.",
            hint="Choose a file or folder inside the workspace.",
        )
    if not candidate.startswith("/"):
        candidate = f"{normalized_root}/{candidate}"
    resolved = posixpath.normpath(candidate)
    # POSIX keeps a leading double slash; it still names the filesystem root.
    if resolved.startswith("//"):
        resolved = "/" + resolved.lstrip("/")
    if resolved == normalized_root or resolved.startswith(normalized_root.rstrip("/") + "/"):
        return resolved
    raise WorkspacePathError(
        "Path escapes workspace.",
        hint=f"Use a path inside {normalized_root}.",
        debug_details=f"requested={path!r} resolved={resolved!r}",
    )


def _sort_key(item: FileItem) -> tuple[int, str]:
    return (0 if item.is_directory else 1, item.name.lower())


def parse_ls_output(output: str, directory: str) -> list[FileItem]:
    """Parse ``ls -la`` lines of ``directory`` into sorted file items."""
    items: list[FileItem] = []
    base = directory.rstrip("/") or "/"
    for line in output.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("total"):
            continue
        fields = stripped.split()
        if len(fields) < 9:
            continue
        name = " ".join(fields[8:])
        is_directory = fields[0].startswith("d")
        if fields[0].startswith("l") and " -> " in name:
            name = name.split(" -> ", 1)[0]
        if name in (".", ".."):
            continue
        items.append(
            FileItem(
                name=name,
                path=posixpath.join(base, name),
                is_directory=is_directory,
            )
        )
    items.sort(key=_sort_key)
    return items


class WorkspaceFileService:
    """File browser operations for one container, confined to its workspace root."""

    def __init__(
        self,
        runtime: ContainerRuntime,
        container_name: str,
        *,
        workspace_root: str = DEFAULT_WORKSPACE_ROOT,
        log_store: AppLogStore | None = None,
    ) -> None:
        self.runtime = runtime
        self.container_name = container_name
        self.workspace_root = posixpath.normpath(workspace_root)
        self.log_store = log_store

    def resolve(self, path: str | None) -> str:
        if path is None:
            return self.workspace_root
        try:
            return resolve_workspace_path(path, self.workspace_root)
        except WorkspacePathError as exc:
            logger.warning("Rejected workspace path container=%s %s", self.container_name, exc.debug_details)
            if self.log_store is not None:
                self.log_store.append(f"FileService rejected path {path!r}: {exc.message}")
            raise

    def _record_failure(self, operation: str, path: str, exc: ZeroError) -> None:
        logger.warning("Workspace %s failed container=%s path=%s", operation, self.container_name, path)
        if self.log_store is not None:
            detail = sanitize_log_text(exc.debug_details or exc.message)
            self.log_store.append(f"FileService {operation} failed {path}: {detail}")

    def list_directory(self, path: str | None = None) -> list[FileItem]:
        directory = self.resolve(path)
        try:
            output = self.runtime.list_files(self.container_name, directory)
        except ZeroError as exc:
            self._record_failure("list", directory, exc)
            raise
        items = parse_ls_output(output, directory)
        logger.debug("Listed directory path=%s entries=%s", directory, len(items))
        return items

    def load_children(self, item: FileItem) -> FileItem:
        if item.is_directory and item.children is None:
            item.children = self.list_directory(item.path)
        return item

    def read_file(self, path: str) -> str:
        resolved = self.resolve(path)
        try:
            return self.runtime.read_file(self.container_name, resolved)
        except ZeroError as exc:
            self._record_failure("read", resolved, exc)
            raise

    def write_file(self, path: str, content: str) -> str:
        resolved = self.resolve(path)
        try:
            self.runtime.write_file(self.container_name, resolved, content)
        except ZeroError as exc:
            self._record_failure("write", resolved, exc)
            raise
        logger.debug("Wrote file path=%s bytes=%s", resolved, len(content.encode("utf-8")))
        return resolved

    def create_directory(self, path: str) -> str:
        resolved = self.resolve(path)
        try:
            self.runtime.ensure_directory(self.container_name, resolved)
        except ZeroError as exc:
            self._record_failure("mkdir", resolved, exc)
            raise
        return resolved

    def create_file(self, path: str, initial_content: str = "") -> str:
        resolved = self.resolve(path)
        parent = posixpath.dirname(resolved)
        try:
            if parent and parent != resolved:
                self.runtime.ensure_directory(self.container_name, parent)
            self.runtime.write_file(self.container_name, resolved, initial_content)
        except ZeroError as exc:
            self._record_failure("create", resolved, exc)
            raise
        return resolved

    def rename_item(self, source: str, destination: str) -> str:
        resolved_source = self.resolve(source)
        resolved_destination = self.resolve(destination)
        if resolved_source == self.workspace_root:
            raise WorkspacePathError("The workspace root cannot be renamed.", hint="Pick a file or folder inside it.")
        try:
            self.runtime.rename(self.container_name, resolved_source, resolved_destination)
        except ZeroError as exc:
            self._record_failure("rename", resolved_source, exc)
            raise
        return resolved_destination

    def delete_item(self, path: str, *, recursive: bool = False) -> None:
        resolved = self.resolve(path)
        if resolved == self.workspace_root:
            raise WorkspacePathError("The workspace root cannot be deleted.", hint="Pick a file or folder inside it.")
        try:
            self.runtime.remove(self.container_name, resolved, recursive=recursive)
        except ZeroError as exc:
            self._record_failure("delete", resolved, exc)
            raise
