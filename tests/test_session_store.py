from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path

import pytest

from zeroide.errors import ConfigDecodeError
from zeroide.session.models import Repository, Session
from zeroide.session.store import SessionStore


def _session(name: str = "zero-dev-aaaa0001") -> Session:
    moment = datetime(2024, 1, 1, tzinfo=timezone.utc)
    return Session(
        repo_url="https://github.com/org/repo.git",
        container_name=name,
        created_at=moment,
        last_active_at=moment,
    )


def test_missing_file_is_empty(tmp_path: Path) -> None:
    assert SessionStore(tmp_path / "sessions.json").load() == []


def test_add_find_and_delete(tmp_path: Path) -> None:
    store = SessionStore(tmp_path / "sessions.json")
    first = store.add(_session("zero-dev-aaaa0001"))
    store.add(_session("zero-dev-bbbb0002"))

    assert store.find(first.id) == first
    assert store.delete(first.id) is True
    assert store.delete(first.id) is False
    assert [session.container_name for session in store.load()] == ["zero-dev-bbbb0002"]


def test_add_replaces_existing_id(tmp_path: Path) -> None:
    store = SessionStore(tmp_path / "sessions.json")
    session = store.add(_session())

    store.add(session.model_copy(update={"container_name": "zero-dev-renamed"}))

    assert [item.container_name for item in store.load()] == ["zero-dev-renamed"]


def test_file_uses_camel_case_keys(tmp_path: Path) -> None:
    store = SessionStore(tmp_path / "sessions.json")
    store.add(_session())

    raw = json.loads(store.path.read_text(encoding="utf-8"))

    assert set(raw[0]) == {"id", "repoURL", "containerName", "createdAt", "lastActiveAt"}


def test_touch_updates_last_active(tmp_path: Path) -> None:
    store = SessionStore(tmp_path / "sessions.json")
    session = store.add(_session())

    touched = store.touch(session.id)

    assert touched is not None
    assert touched.last_active_at > session.last_active_at
    assert touched.created_at == session.created_at
    assert store.touch("missing") is None


def test_corrupt_file_raises(tmp_path: Path) -> None:
    path = tmp_path / "sessions.json"
    path.write_text("{broken", encoding="utf-8")

    with pytest.raises(ConfigDecodeError):
        SessionStore(path).load()

    path.write_text(json.dumps({"sessions": []}), encoding="utf-8")
    with pytest.raises(ConfigDecodeError):
        SessionStore(path).load()


def test_malformed_entries_are_skipped(tmp_path: Path) -> None:
    path = tmp_path / "sessions.json"
    good = _session().to_json()
    path.write_text(json.dumps([{"id": "x"}, good]), encoding="utf-8")

    assert [session.id for session in SessionStore(path).load()] == [good["id"]]


def test_repository_from_clone_url() -> None:
    repository = Repository.from_clone_url("https://github.com/owner/repo.git")

    assert repository.name == "repo"
    assert repository.full_name == "owner/repo"
    assert Repository.from_clone_url("git@github.com:owner/tool.git").full_name == "owner/tool"
