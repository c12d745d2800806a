"""Provision a container for a repository and track its session."""

from __future__ import annotations

import logging as py_logging
import uuid

from pydantic import BaseModel, ConfigDict, field_validator

from zeroide.config import DEFAULT_BASE_IMAGE, DEFAULT_NODE_IMAGE, DEFAULT_PYTHON_IMAGE, DEFAULT_WORKSPACE_ROOT
from zeroide.errors import CommandError, SessionUnavailableError, ZeroError
from zeroide.git.service import GitService
from zeroide.logstore import AppLogStore
from zeroide.progress import ProgressRecorder
from zeroide.runtime.container import ContainerRuntime
from zeroide.security import sanitize_log_text
from zeroide.session.models import Repository, Session
from zeroide.session.store import SessionStore
from zeroide.settings.build_config import BuildConfigurationStore

logger = py_logging.getLogger(__name__)

CONTAINER_NAME_PREFIX = "zero-dev-"
SESSION_UNAVAILABLE_MESSAGE = "Session is no longer available. Please start a new session."

_JAVA_HINTS = ("java", "spring", "maven", "gradle")
_NODE_HINTS = ("node", "react", "vue", "angular")
_PYTHON_HINTS = ("python", "django", "flask")


class ImageCatalog(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    base_image: str = DEFAULT_BASE_IMAGE
    node_image: str = DEFAULT_NODE_IMAGE
    python_image: str = DEFAULT_PYTHON_IMAGE

    @field_validator("base_image", "node_image", "python_image")
    @classmethod
    def _validate_image(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError("Image reference is empty")
        return normalized


def new_container_name() -> str:
    return f"{CONTAINER_NAME_PREFIX}{uuid.uuid4().hex[:8]}"


def git_install_script() -> str:
    """Install git with whichever package manager the image ships."""
    return (
        "command -v git >/dev/null 2>&1 && exit 0; "
        "if command -v apk >/dev/null 2>&1; then apk add --no-cache git; "
        "elif command -v apt-get >/dev/null 2>&1; then apt-get update && apt-get install -y git; "
        "elif command -v dnf >/dev/null 2>&1; then dnf install -y git; "
        "elif command -v yum >/dev/null 2>&1; then yum install -y git; "
        "else echo 'no supported package manager' >&2; exit 127; fi"
    )


class SessionOrchestrator:
    def __init__(
        self,
        runtime: ContainerRuntime,
        store: SessionStore,
        build_config: BuildConfigurationStore,
        *,
        log_store: AppLogStore,
        images: ImageCatalog | None = None,
        workspace_root: str = DEFAULT_WORKSPACE_ROOT,
        clone_timeout_seconds: float | None = None,
    ) -> None:
        self.runtime = runtime
        self.store = store
        self.build_config = build_config
        self.log_store = log_store
        self.images = images or ImageCatalog()
        self.workspace_root = workspace_root
        self.clone_timeout_seconds = clone_timeout_seconds

    def select_image(self, repository: Repository) -> str:
        """Pick a base image from hints in the repository name; the owner is ignored."""
        hint = repository.name.lower()
        if any(marker in hint for marker in _JAVA_HINTS):
            return self.build_config.load().selected_jdk.image
        if any(marker in hint for marker in _NODE_HINTS):
            return self.images.node_image
        if any(marker in hint for marker in _PYTHON_HINTS):
            return self.images.python_image
        return self.images.base_image

    def _install_git(self, container: str, image: str, progress: ProgressRecorder) -> None:
        progress.record_started("git-install", "Installing git")
        try:
            self.runtime.execute_shell(container, git_install_script())
        except CommandError as exc:
            # Non-fatal; a missing git binary surfaces as a clone failure.
            logger.warning("Git install failed container=%s image=%s", container, image)
            self.log_store.append(f"SessionOrchestrator git install failed {container}: {exc.debug_details}")
            progress.record_warning("git-install", "git install failed; continuing")
            return
        progress.record_success("git-install", "git installed")

    def start_session(
        self,
        repository: Repository,
        token: str,
        *,
        progress: ProgressRecorder | None = None,
    ) -> Session:
        recorder = progress or ProgressRecorder()
        container = new_container_name()
        image = self.select_image(repository)
        logger.info(
            "Starting session repo=%s image=%s container=%s",
            sanitize_log_text(repository.clone_url),
            image,
            container,
        )

        recorder.record_started("container", f"Starting {image}")
        try:
            self.runtime.run_container(image, container)
        except ZeroError as exc:
            recorder.record_error("container", exc.message)
            self.log_store.append(f"SessionOrchestrator container start failed {container}: {exc.debug_details}")
            raise
        recorder.record_success("container", container)

        try:
            self._install_git(container, image, recorder)
            recorder.record_started("clone", "Cloning repository")
            GitService(self.runtime, container, workspace_root=self.workspace_root).clone(
                repository.clone_url,
                token,
                timeout_seconds=self.clone_timeout_seconds,
            )
            recorder.record_success("clone", "Repository cloned")
            session = self.store.add(Session(repo_url=repository.clone_url, container_name=container))
        except ZeroError as exc:
            recorder.record_error("clone", exc.message)
            self.log_store.append(f"SessionOrchestrator session start failed {container}: {exc.debug_details}")
            self._rollback(container)
            raise
        logger.info("Session ready id=%s container=%s", session.id, container)
        return session

    def _rollback(self, container: str) -> None:
        try:
            self.runtime.remove_container(container)
        except ZeroError as cleanup_error:
            logger.error("Session rollback failed container=%s error=%s", container, cleanup_error)
            self.log_store.append(f"SessionOrchestrator rollback failed {container}: {cleanup_error.debug_details}")
        else:
            logger.warning("Session rollback removed container=%s", container)

    def list_sessions(self) -> list[Session]:
        return self.store.load()

    def _require(self, session_id: str) -> Session:
        session = self.store.find(session_id)
        if session is None:
            raise SessionUnavailableError(SESSION_UNAVAILABLE_MESSAGE, hint="Run `zeroide session list`.")
        return session

    def stop_session(self, session_id: str) -> Session:
        session = self._require(session_id)
        try:
            self.runtime.stop_container(session.container_name)
        except ZeroError as exc:
            self.log_store.append(f"SessionOrchestrator stop failed {session.container_name}: {exc.debug_details}")
            raise
        logger.info("Stopped session id=%s container=%s", session.id, session.container_name)
        return session

    def delete_session(self, session_id: str) -> None:
        """Remove the container, then the record; a failed removal keeps the record."""
        session = self._require(session_id)
        try:
            self.runtime.remove_container(session.container_name)
        except ZeroError as exc:
            self.log_store.append(f"SessionOrchestrator delete failed {session.container_name}: {exc.debug_details}")
            raise
        self.store.delete(session.id)
        logger.info("Deleted session id=%s container=%s", session.id, session.container_name)

    def load_sessions_with_health_check(self) -> list[Session]:
        healthy: list[Session] = []
        for session in self.store.load():
            if self.runtime.container_exists(session.container_name):
                healthy.append(session)
                continue
            logger.warning("Pruning stale session id=%s container=%s", session.id, session.container_name)
            self.log_store.append(f"SessionOrchestrator pruned stale session {session.container_name}")
            self.store.delete(session.id)
        return healthy

    def resume_session(self, session_id: str) -> Session:
        session = self._require(session_id)
        if not self.runtime.container_exists(session.container_name):
            self.store.delete(session.id)
            self.log_store.append(f"SessionOrchestrator pruned stale session {session.container_name}")
            raise SessionUnavailableError(SESSION_UNAVAILABLE_MESSAGE, hint="Start a new session for the repository.")
        return self.store.touch(session.id) or session
