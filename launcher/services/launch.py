"""
Launch Workflow

요청을 받아 Projectile을 만들고, 확인 응답(job id + 이벤트 종류)을 먼저 돌려준 뒤
별도 태스크에서 오케스트레이션을 진행합니다. 어떤 경로로 끝나든 임시 디렉터리는
정확히 한 번 정리됩니다.
"""

from __future__ import annotations

import asyncio
import dataclasses
import time
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Union

import structlog
from pydantic import BaseModel, Field

from ..core.metrics import LAUNCH_DURATION
from ..events.broker import StatusMessageEventBroker
from ..events.models import StatusEventKind, StatusMessageEvent
from ..git.interfaces import GitService
from .mission_control import LaunchResult, MissionControl
from .projectile import EventSink, Projectile
from .reaper import DirectoryReaper

logger = structlog.get_logger(__name__)

PathLike = Union[str, Path]


class LaunchAcknowledgment(BaseModel):
    """런치 요청에 대한 동기 응답"""

    uuid: str
    event_types: List[str] = Field(default_factory=lambda: [kind.value for kind in StatusEventKind])


class _TerminalTracker:
    """Forwards events and remembers whether a terminal one went out."""

    def __init__(self, sink: EventSink) -> None:
        self._sink = sink
        self.terminal_seen = False

    def __call__(self, event: StatusMessageEvent) -> None:
        if event.is_terminal:
            self.terminal_seen = True
        self._sink(event)


def cleanup_roots(paths: Iterable[Optional[PathLike]]) -> List[Path]:
    """Collapse paths so that nothing nested inside another entry is listed twice."""
    candidates = sorted({Path(p).absolute() for p in paths if p is not None}, key=lambda p: len(p.parts))
    roots: List[Path] = []
    for path in candidates:
        if not any(path == root or path.is_relative_to(root) for root in roots):
            roots.append(path)
    return roots


class LaunchWorkflow:
    def __init__(
        self,
        mission_control: MissionControl,
        broker: StatusMessageEventBroker,
        reaper: Optional[DirectoryReaper] = None,
    ) -> None:
        self.mission_control = mission_control
        self.broker = broker
        self.reaper = reaper or DirectoryReaper()
        self._tasks: Dict[str, asyncio.Task] = {}

    def projectile(self, **kwargs) -> Projectile:
        """Build a projectile whose events go to the broker."""
        kwargs.setdefault("event_sink", self.broker.send)
        return Projectile(**kwargs)

    def acknowledge(self, projectile: Projectile) -> LaunchAcknowledgment:
        return LaunchAcknowledgment(uuid=projectile.id)

    @property
    def running(self) -> int:
        return sum(1 for task in self._tasks.values() if not task.done())

    async def dispatch(
        self,
        projectile: Projectile,
        cleanup: Sequence[Optional[PathLike]] = (),
        git_service: Optional[GitService] = None,
    ) -> asyncio.Task:
        """Start the launch on its own task so the caller can answer its client without waiting.

        The task takes ownership of ``git_service`` and closes it when the launch ends.
        """
        task = asyncio.create_task(
            self.run(projectile, cleanup, git_service),
            name=f"launch-{projectile.id}",
        )
        self._tasks[projectile.id] = task
        task.add_done_callback(lambda _: self._tasks.pop(projectile.id, None))
        return task

    async def run(
        self,
        projectile: Projectile,
        cleanup: Sequence[Optional[PathLike]] = (),
        git_service: Optional[GitService] = None,
    ) -> Optional[LaunchResult]:
        tracker = _TerminalTracker(projectile.event_sink)
        tracked = dataclasses.replace(projectile, event_sink=tracker)

        started = time.perf_counter()
        logger.info(
            "launch_started",
            job_id=projectile.id,
            repository=projectile.git_repository_name,
            organization=projectile.git_organization,
            start_of_step=projectile.start_of_step.value,
        )
        try:
            result = await self.mission_control.launch(tracked, git_service)
            logger.info(
                "launch_finished",
                job_id=projectile.id,
                state=result.state.value,
                elapsed=round(time.perf_counter() - started, 3),
            )
            return result
        except Exception as e:
            logger.exception(
                "launch_failed",
                job_id=projectile.id,
                elapsed=round(time.perf_counter() - started, 3),
            )
            if not tracker.terminal_seen:
                tracker(StatusMessageEvent.failure(projectile.id, e))
            return None
        finally:
            LAUNCH_DURATION.observe(time.perf_counter() - started)
            for root in cleanup_roots([projectile.project_location, *cleanup]):
                self.reaper.delete(root)
            if git_service is not None:
                try:
                    await git_service.close()
                except Exception as e:  # noqa: BLE001
                    logger.warning("git_service_close_failed", job_id=projectile.id, error=str(e))

    async def join(self, job_id: str) -> None:
        task = self._tasks.get(job_id)
        if task is not None:
            await asyncio.gather(task, return_exceptions=True)

    async def shutdown(self) -> None:
        """진행 중인 런치가 모두 끝날 때까지 대기"""
        tasks = list(self._tasks.values())
        if tasks:
            logger.info("waiting_for_launches", count=len(tasks))
            await asyncio.gather(*tasks, return_exceptions=True)
