"""Parser for ``git status --porcelain=v1 --branch`` output."""

from __future__ import annotations

import re

from zeroide.git.models import ChangeKind, GitFileChange, GitStatus

_HEADER_PATTERN = re.compile(
    r"^## (?:No commits yet on |Initial commit on )?"
    r"(?P<branch>.+?)"
    r"(?:\.\.\.(?P<upstream>\S+))?"
    r"(?: \[(?P<tracking>[^\]]*)\])?$"
)
_AHEAD_PATTERN = re.compile(r"ahead (\d+)")
_BEHIND_PATTERN = re.compile(r"behind (\d+)")
_RENAME_SEPARATOR = " -> "

_KIND_BY_CODE = {
    "A": ChangeKind.ADDED,
    "M": ChangeKind.MODIFIED,
    "D": ChangeKind.DELETED,
    "R": ChangeKind.RENAMED,
    "C": ChangeKind.COPIED,
    "T": ChangeKind.MODIFIED,
    "U": ChangeKind.MODIFIED,
}

_SIMPLE_ESCAPES = {
    "a": 0x07,
    "b": 0x08,
    "f": 0x0C,
    "n": 0x0A,
    "r": 0x0D,
    "t": 0x09,
    "v": 0x0B,
    "\\": 0x5C,
    '"': 0x22,
}


def unquote_path(value: str) -> str:
    """Decode a C-style quoted path as printed by git; other input is returned as is.

    Octal escapes are raw bytes and are decoded together as UTF-8.
    """
    if len(value) < 2 or not (value.startswith('"') and value.endswith('"')):
        return value
    body = value[1:-1]
    buffer = bytearray()
    index = 0
    while index < len(body):
        char = body[index]
        if char != "\\" or index + 1 >= len(body):
            buffer.extend(char.encode("utf-8"))
            index += 1
            continue
        marker = body[index + 1]
        if marker in "01234567":
            end = index + 1
            while end < len(body) and end < index + 4 and body[end] in "01234567":
                end += 1
            buffer.append(int(body[index + 1 : end], 8) & 0xFF)
            index = end
            continue
        escaped = _SIMPLE_ESCAPES.get(marker)
        if escaped is None:
            buffer.extend(marker.encode("utf-8"))
        else:
            buffer.append(escaped)
        index += 2
    return buffer.decode("utf-8", errors="replace")


def _closing_quote(value: str) -> int:
    index = 1
    while index < len(value):
        if value[index] == "\\":
            index += 2
            continue
        if value[index] == '"':
            return index
        index += 1
    return -1


def _rename_destination(rest: str) -> str:
    if rest.startswith('"'):
        end = _closing_quote(rest)
        if end != -1 and rest[end + 1 :].startswith(_RENAME_SEPARATOR):
            return unquote_path(rest[end + 1 + len(_RENAME_SEPARATOR) :])
    if _RENAME_SEPARATOR in rest:
        return unquote_path(rest.split(_RENAME_SEPARATOR, 1)[1])
    return unquote_path(rest)


def _apply_header(status: GitStatus, line: str) -> None:
    match = _HEADER_PATTERN.match(line)
    if not match:
        return
    status.branch = match.group("branch").strip()
    tracking = match.group("tracking") or ""
    ahead = _AHEAD_PATTERN.search(tracking)
    behind = _BEHIND_PATTERN.search(tracking)
    status.ahead = int(ahead.group(1)) if ahead else 0
    status.behind = int(behind.group(1)) if behind else 0


def _append_unique(target: list[GitFileChange], seen: set[str], change: GitFileChange) -> None:
    if change.path in seen:
        return
    seen.add(change.path)
    target.append(change)


def parse_porcelain_status(output: str) -> GitStatus:
    status = GitStatus()
    staged_seen: set[str] = set()
    unstaged_seen: set[str] = set()
    untracked_seen: set[str] = set()

    for line in output.splitlines():
        if line.startswith("## "):
            _apply_header(status, line)
            continue
        if len(line) < 4:
            continue
        code = line[:2]
        rest = line[3:]
        if code == "!!":
            continue
        if code == "??":
            path = unquote_path(rest)
            if path not in untracked_seen:
                untracked_seen.add(path)
                status.untracked.append(path)
            continue

        index_code, worktree_code = code[0], code[1]
        if "R" in code or "C" in code:
            path = _rename_destination(rest)
        else:
            path = unquote_path(rest)

        index_kind = _KIND_BY_CODE.get(index_code)
        if index_kind is not None:
            _append_unique(status.staged, staged_seen, GitFileChange(path=path, kind=index_kind))
        worktree_kind = _KIND_BY_CODE.get(worktree_code)
        if worktree_kind is not None:
            _append_unique(status.unstaged, unstaged_seen, GitFileChange(path=path, kind=worktree_kind))

    return status
