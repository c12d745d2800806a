from __future__ import annotations

import uuid
from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field, field_validator


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Repository(BaseModel):
    """GitHub repository record as returned by the REST API."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: int = 0
    name: str
    full_name: str = ""
    private: bool = False
    html_url: str = ""
    clone_url: str

    @field_validator("clone_url")
    @classmethod
    def _validate_clone_url(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError("Repository clone URL is empty")
        return normalized

    @classmethod
    def from_clone_url(cls, clone_url: str) -> Repository:
        trimmed = clone_url.strip().rstrip("/")
        tail = trimmed.rsplit("/", 2)
        name = tail[-1].removesuffix(".git") if tail else trimmed
        full_name = f"{tail[-2].split(':')[-1]}/{name}" if len(tail) >= 2 else name
        return cls(name=name, full_name=full_name, clone_url=trimmed)


class Session(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    repo_url: str = Field(alias="repoURL")
    container_name: str = Field(alias="containerName")
    created_at: datetime = Field(default_factory=utc_now, alias="createdAt")
    last_active_at: datetime = Field(default_factory=utc_now, alias="lastActiveAt")

    def to_json(self) -> dict[str, object]:
        return self.model_dump(mode="json", by_alias=True)
