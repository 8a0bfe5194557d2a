from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable
from uuid import uuid4

from ..events.models import LaunchStep, StatusMessageEvent
from ..git.naming import check_repository_name

EventSink = Callable[[StatusMessageEvent], None]


@dataclass(frozen=True)
class Projectile:
    """One project launch: a materialized source tree and where it is going.

    The identifier is assigned at construction and never reused; the
    backing directory belongs to this launch until it is reaped.
    """

    project_location: Path
    git_repository_name: str
    event_sink: EventSink = field(repr=False)
    git_organization: str | None = None
    namespace: str | None = None
    start_of_step: LaunchStep = LaunchStep.PREPARE
    mission: str | None = None
    runtime: str | None = None
    id: str = field(default_factory=lambda: str(uuid4()))

    def __post_init__(self) -> None:
        if self.event_sink is None or not callable(self.event_sink):
            raise ValueError("event_sink must be a callable")
        check_repository_name(self.git_repository_name)
        object.__setattr__(self, "project_location", Path(self.project_location))
        object.__setattr__(self, "start_of_step", LaunchStep(self.start_of_step))

    @property
    def target_namespace(self) -> str:
        return self.namespace or self.git_repository_name

    @property
    def description(self) -> str:
        if self.mission and self.runtime:
            return f"{self.mission} ({self.runtime}) launched by the projectile launcher"
        return "Project launched by the projectile launcher"
