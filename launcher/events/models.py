"""Launch states and the status events emitted on every transition.

Events are immutable records; ordering is only meaningful among events
sharing a job identifier.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Mapping


class LaunchState(str, Enum):
    PREPARED = "PREPARED"
    CREATING_REPOSITORY = "CREATING_REPOSITORY"
    REGISTERING_HOOK = "REGISTERING_HOOK"
    DEPLOYING = "DEPLOYING"
    LAUNCHED = "LAUNCHED"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self in (LaunchState.LAUNCHED, LaunchState.FAILED)


class LaunchStep(str, Enum):
    """Step a launch starts from; later steps resume a partial launch."""

    PREPARE = "PREPARE"
    CREATE_REPOSITORY = "CREATE_REPOSITORY"
    REGISTER_HOOK = "REGISTER_HOOK"
    DEPLOY = "DEPLOY"

    @property
    def state(self) -> LaunchState:
        return _STEP_STATES[self]


_STEP_STATES = {
    LaunchStep.PREPARE: LaunchState.PREPARED,
    LaunchStep.CREATE_REPOSITORY: LaunchState.CREATING_REPOSITORY,
    LaunchStep.REGISTER_HOOK: LaunchState.REGISTERING_HOOK,
    LaunchStep.DEPLOY: LaunchState.DEPLOYING,
}


class StatusEventKind(str, Enum):
    STEP_STARTED = "step-started"
    STEP_COMPLETED = "step-completed"
    STEP_FAILED = "step-failed"
    LAUNCH_COMPLETED = "launch-completed"

    @property
    def is_terminal(self) -> bool:
        return self in (StatusEventKind.STEP_FAILED, StatusEventKind.LAUNCH_COMPLETED)


def _kind_for(source: LaunchState | None, target: LaunchState) -> StatusEventKind:
    if target is LaunchState.FAILED:
        return StatusEventKind.STEP_FAILED
    if target is LaunchState.LAUNCHED:
        return StatusEventKind.LAUNCH_COMPLETED
    if source is LaunchState.PREPARED:
        return StatusEventKind.STEP_STARTED
    return StatusEventKind.STEP_COMPLETED


@dataclass(frozen=True)
class StatusMessageEvent:
    job_id: str
    kind: StatusEventKind
    source: LaunchState | None = None
    target: LaunchState | None = None
    error: Mapping[str, str] | None = None
    data: Mapping[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def transition(
        cls,
        job_id: str,
        source: LaunchState | None,
        target: LaunchState,
        data: Mapping[str, Any] | None = None,
    ) -> "StatusMessageEvent":
        return cls(
            job_id=job_id,
            kind=_kind_for(source, target),
            source=source,
            target=target,
            data=dict(data or {}),
        )

    @classmethod
    def failure(
        cls,
        job_id: str,
        exc: BaseException,
        source: LaunchState | None = None,
    ) -> "StatusMessageEvent":
        return cls(
            job_id=job_id,
            kind=StatusEventKind.STEP_FAILED,
            source=source,
            target=LaunchState.FAILED,
            error={"type": type(exc).__name__, "message": str(exc)},
        )

    @property
    def is_terminal(self) -> bool:
        return self.kind.is_terminal

    def to_dict(self) -> dict[str, Any]:
        return {
            "job_id": self.job_id,
            "kind": self.kind.value,
            "source": self.source.value if self.source else None,
            "target": self.target.value if self.target else None,
            "error": dict(self.error) if self.error else None,
            "data": dict(self.data),
            "timestamp": self.timestamp.isoformat(),
        }
