"""Composition root wiring config into long-lived services."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field

from zeroide.config import AppConfig
from zeroide.diagnostics import DiagnosticsService
from zeroide.execution.environment import EnvironmentSetup
from zeroide.execution.service import ExecutionService
from zeroide.execution.telemetry import ExecutionTelemetry
from zeroide.git.panel import GitPanelService
from zeroide.git.service import GitService
from zeroide.log_export import LogExportService
from zeroide.logstore import AppLogStore
from zeroide.runtime.container import ContainerRuntime
from zeroide.runtime.docker import DockerContainerRuntime
from zeroide.session.orchestrator import ImageCatalog, SessionOrchestrator
from zeroide.session.store import SessionStore
from zeroide.settings.build_config import BuildConfigurationStore
from zeroide.settings.run_profiles import RunProfileStore
from zeroide.workspace.files import WorkspaceFileService


@dataclass
class AppContext:
    config: AppConfig
    runtime: ContainerRuntime
    log_store: AppLogStore
    sessions: SessionStore
    build_config: BuildConfigurationStore
    run_profiles: RunProfileStore
    telemetry: ExecutionTelemetry
    orchestrator: SessionOrchestrator = field(init=False)

    def __post_init__(self) -> None:
        self.orchestrator = SessionOrchestrator(
            self.runtime,
            self.sessions,
            self.build_config,
            log_store=self.log_store,
            images=ImageCatalog(
                base_image=self.config.base_image,
                node_image=self.config.node_image,
                python_image=self.config.python_image,
            ),
            workspace_root=self.config.workspace_root,
        )

    @classmethod
    def from_config(cls, config: AppConfig, *, runtime: ContainerRuntime | None = None) -> AppContext:
        log_store = AppLogStore(config.log_store_max_entries)
        return cls(
            config=config,
            runtime=runtime or DockerContainerRuntime(config.docker_path),
            log_store=log_store,
            sessions=SessionStore(config.sessions_path),
            build_config=BuildConfigurationStore(config.build_config_path),
            run_profiles=RunProfileStore(config.run_profiles_path, log_store=log_store),
            telemetry=ExecutionTelemetry(enabled=config.telemetry_enabled),
        )

    def files(self, container_name: str) -> WorkspaceFileService:
        return WorkspaceFileService(
            self.runtime,
            container_name,
            workspace_root=self.config.workspace_root,
            log_store=self.log_store,
        )

    def git(self, container_name: str) -> GitService:
        return GitService(
            self.runtime,
            container_name,
            workspace_root=self.config.workspace_root,
            log_store=self.log_store,
        )

    def git_panel(self, container_name: str) -> GitPanelService:
        # The panel records its own failures with user guidance attached.
        git = GitService(self.runtime, container_name, workspace_root=self.config.workspace_root)
        return GitPanelService(git, log_store=self.log_store)

    def execution(
        self,
        container_name: str,
        *,
        output_listener: Callable[[str], None] | None = None,
    ) -> ExecutionService:
        environment = EnvironmentSetup(
            self.runtime,
            log_store=self.log_store,
            timeout_seconds=self.config.setup_timeout_seconds,
            max_attempts=self.config.setup_max_attempts,
        )
        return ExecutionService(
            self.runtime,
            container_name,
            log_store=self.log_store,
            run_profiles=self.run_profiles,
            environment=environment,
            telemetry=self.telemetry,
            workspace_root=self.config.workspace_root,
            output_listener=output_listener,
        )

    def diagnostics(self) -> DiagnosticsService:
        if not isinstance(self.runtime, DockerContainerRuntime):
            raise TypeError("Diagnostics require the docker CLI runtime")
        return DiagnosticsService(self.runtime)

    def log_export(self) -> LogExportService:
        return LogExportService()
