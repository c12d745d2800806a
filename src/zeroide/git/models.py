from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class ChangeKind(str, Enum):
    ADDED = "added"
    MODIFIED = "modified"
    DELETED = "deleted"
    RENAMED = "renamed"
    COPIED = "copied"


@dataclass(frozen=True)
class GitFileChange:
    path: str
    kind: ChangeKind


@dataclass
class GitStatus:
    branch: str = ""
    ahead: int = 0
    behind: int = 0
    staged: list[GitFileChange] = field(default_factory=list)
    unstaged: list[GitFileChange] = field(default_factory=list)
    untracked: list[str] = field(default_factory=list)

    @property
    def is_clean(self) -> bool:
        return not (self.staged or self.unstaged or self.untracked)


@dataclass(frozen=True)
class GitBranch:
    name: str
    is_current: bool = False


@dataclass(frozen=True)
class GitCommit:
    hash: str
    short_hash: str
    message: str
    author: str
    date: str


@dataclass(frozen=True)
class GitStash:
    index: int
    message: str
    hash: str

    @property
    def ref(self) -> str:
        return f"stash@{{{self.index}}}"
