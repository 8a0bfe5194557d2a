"""
Mission Control

런치 상태 머신: 저장소 생성 → 웹훅 등록 → 배포 트리거.
각 전이마다 StatusMessageEvent를 발행하며, 단계 오류는 FAILED 이벤트로 변환되어
호출자에게 예외로 전파되지 않습니다.
"""

from __future__ import annotations

import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Tuple

import structlog

from ..core.metrics import LAUNCHES
from ..events.models import LaunchState, StatusMessageEvent
from ..git.errors import GitServiceError, NoSuchRepositoryError
from ..git.interfaces import GitService
from ..git.models import GitOrganization, GitRepository
from ..git.naming import create_repository_full_name
from .catalog import BoosterCatalog
from .deployment import DeploymentTrigger
from .projectile import Projectile
from .reaper import DirectoryReaper

logger = structlog.get_logger(__name__)


@dataclass
class LaunchResult:
    job_id: str
    state: LaunchState
    repository: Optional[GitRepository] = None
    error: Optional[BaseException] = None

    @property
    def succeeded(self) -> bool:
        return self.state is LaunchState.LAUNCHED


class MissionControl:
    """Sequences a projectile through the launch pipeline."""

    def __init__(
        self,
        git_service_factory: Callable[[], GitService],
        deployment_trigger: DeploymentTrigger,
        *,
        catalog: Optional[BoosterCatalog] = None,
        reaper: Optional[DirectoryReaper] = None,
        webhook_url: Optional[str] = None,
        webhook_secret: Optional[str] = None,
        push_enabled: bool = True,
        work_dir: Optional[str] = None,
    ):
        self._git_service_factory = git_service_factory
        self._deployment_trigger = deployment_trigger
        self._catalog = catalog
        self.reaper = reaper or DirectoryReaper()
        self._webhook_url = webhook_url
        self._webhook_secret = webhook_secret
        self._push_enabled = push_enabled
        self._work_dir = work_dir

    def prepare(self, mission: str, runtime: str) -> Path:
        """부스터를 전용 임시 디렉터리에 생성하고 그 경로를 반환"""
        if self._catalog is None:
            raise RuntimeError("No booster catalog configured")
        project_dir = Path(tempfile.mkdtemp(prefix="projectile-", dir=self._work_dir))
        try:
            return self._catalog.materialize(mission, runtime, project_dir)
        except Exception:
            self.reaper.delete(project_dir)
            raise

    async def launch(self, projectile: Projectile, git_service: Optional[GitService] = None) -> LaunchResult:
        """Run the projectile to a terminal state; step errors end in FAILED, not an exception."""
        owns_service = git_service is None
        git = git_service if git_service is not None else self._git_service_factory()
        try:
            return await self._run(projectile, git)
        finally:
            if owns_service:
                await git.close()

    async def _run(self, projectile: Projectile, git: GitService) -> LaunchResult:
        state = projectile.start_of_step.state
        repository: Optional[GitRepository] = None
        try:
            if state is LaunchState.PREPARED:
                if not projectile.project_location.is_dir():
                    raise FileNotFoundError(f"Project location {projectile.project_location} does not exist")
                state = self._advance(projectile, state, LaunchState.CREATING_REPOSITORY)

            if state is LaunchState.CREATING_REPOSITORY:
                repository, created = await self._create_repository(projectile, git)
                state = self._advance(
                    projectile,
                    state,
                    LaunchState.REGISTERING_HOOK,
                    {
                        "repository": repository.full_name,
                        "homepage": repository.homepage,
                        "created": created,
                    },
                )

            if state is LaunchState.REGISTERING_HOOK:
                repository = repository or await self._require_repository(projectile, git)
                hook_data = await self._register_hook(git, repository)
                state = self._advance(projectile, state, LaunchState.DEPLOYING, hook_data)

            if state is LaunchState.DEPLOYING:
                repository = repository or await self._require_repository(projectile, git)
                acceptance = await self._deployment_trigger.trigger(repository, projectile.target_namespace)
                state = self._advance(
                    projectile,
                    state,
                    LaunchState.LAUNCHED,
                    {"namespace": projectile.target_namespace, "dry_run": bool(acceptance.get("dry_run"))},
                )
        except Exception as e:
            logger.warning(
                "projectile_step_failed",
                job_id=projectile.id,
                state=state.value,
                error_type=type(e).__name__,
                error=str(e),
            )
            LAUNCHES.labels(outcome="failed").inc()
            projectile.event_sink(StatusMessageEvent.failure(projectile.id, e, source=state))
            return LaunchResult(projectile.id, LaunchState.FAILED, repository, e)

        LAUNCHES.labels(outcome="launched").inc()
        return LaunchResult(projectile.id, state, repository)

    def _advance(
        self,
        projectile: Projectile,
        source: LaunchState,
        target: LaunchState,
        data: Optional[Dict[str, Any]] = None,
    ) -> LaunchState:
        projectile.event_sink(StatusMessageEvent.transition(projectile.id, source, target, data))
        logger.info("projectile_transition", job_id=projectile.id, source=source.value, target=target.value)
        return target

    def _organization(self, projectile: Projectile) -> Optional[GitOrganization]:
        if projectile.git_organization:
            return GitOrganization(projectile.git_organization)
        return None

    async def _create_repository(self, projectile: Projectile, git: GitService) -> Tuple[GitRepository, bool]:
        organization = self._organization(projectile)
        existing = await git.get_repository(projectile.git_repository_name, organization)
        if existing is not None:
            logger.info("repository_exists", job_id=projectile.id, repository=existing.full_name)
            return existing, False

        repository = await git.create_repository(
            projectile.git_repository_name, projectile.description, organization
        )
        if self._push_enabled:
            await git.push(repository, projectile.project_location)
        return repository, True

    async def _require_repository(self, projectile: Projectile, git: GitService) -> GitRepository:
        organization = self._organization(projectile)
        repository = await git.get_repository(projectile.git_repository_name, organization)
        if repository is None:
            name = projectile.git_repository_name
            if organization is not None:
                name = create_repository_full_name(organization.name, name)
            raise NoSuchRepositoryError(name)
        return repository

    async def _register_hook(self, git: GitService, repository: GitRepository) -> Dict[str, Any]:
        if not self._webhook_url:
            return {"skipped": True}

        existing = await git.get_hook(repository, self._webhook_url)
        if existing is not None:
            return {"hook": existing.name, "existing": True}

        try:
            hook = await git.create_hook(repository, self._webhook_url, secret=self._webhook_secret)
        except GitServiceError:
            # a concurrent registration with the same URL is as good as ours
            existing = await git.get_hook(repository, self._webhook_url)
            if existing is None:
                raise
            logger.info("webhook_already_registered", repository=repository.full_name, hook=existing.name)
            return {"hook": existing.name, "existing": True}
        return {"hook": hook.name if hook else None, "existing": False}
