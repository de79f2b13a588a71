"""Pipeline state and stage models."""

from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

from rawi.models.errors import ErrorKind, PipelineError, RawiError


class PipelineStage(StrEnum):
    """Stages of the generation pipeline, in execution order."""

    STORY_GENERATION = "story_generation"
    IMAGE_GENERATION = "image_generation"
    VOICE_OVER = "voice_over"
    MUSIC = "music"
    EDITING = "editing"
    EXPORT = "export"


STAGE_ORDER: tuple[PipelineStage, ...] = tuple(PipelineStage)


class StageStatus(StrEnum):
    PENDING = "pending"
    ACTIVE = "active"
    COMPLETED = "completed"
    FAILED = "failed"


class RunStatus(StrEnum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


TERMINAL_RUN_STATUSES = frozenset({RunStatus.COMPLETED, RunStatus.FAILED, RunStatus.CANCELLED})

# Completed and Failed are terminal for a stage.
STAGE_TRANSITIONS: dict[StageStatus, frozenset[StageStatus]] = {
    StageStatus.PENDING: frozenset({StageStatus.ACTIVE}),
    StageStatus.ACTIVE: frozenset({StageStatus.COMPLETED, StageStatus.FAILED}),
    StageStatus.COMPLETED: frozenset(),
    StageStatus.FAILED: frozenset(),
}


class ErrorInfo(BaseModel):
    """Terminal error recorded on a failed or cancelled run."""

    model_config = ConfigDict(frozen=True)

    kind: ErrorKind
    message: str
    stage: PipelineStage | None = None

    @classmethod
    def from_exception(cls, exc: RawiError, stage: PipelineStage | None = None) -> "ErrorInfo":
        return cls(kind=exc.kind, message=exc.message, stage=stage)


def _initial_stages() -> dict[PipelineStage, StageStatus]:
    return {stage: StageStatus.PENDING for stage in STAGE_ORDER}


class PipelineState(BaseModel):
    """Immutable snapshot of one run's per-stage progress.

    Every mutation goes through ``with_stage``/``with_status`` and returns a
    new snapshot, so observers holding an older one never see it change.
    """

    model_config = ConfigDict(frozen=True)

    run_id: str | None = None
    status: RunStatus = RunStatus.IDLE
    stages: dict[PipelineStage, StageStatus] = Field(default_factory=_initial_stages)
    title: str = ""
    duration_minutes: float | None = None
    started_at: datetime | None = None
    updated_at: datetime | None = None
    completed_at: datetime | None = None
    error: ErrorInfo | None = None

    @property
    def active_stage(self) -> PipelineStage | None:
        for stage in STAGE_ORDER:
            if self.stages[stage] == StageStatus.ACTIVE:
                return stage
        return None

    @property
    def failed_stage(self) -> PipelineStage | None:
        for stage in STAGE_ORDER:
            if self.stages[stage] == StageStatus.FAILED:
                return stage
        return None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_RUN_STATUSES

    @property
    def progress(self) -> float:
        """Fraction of stages completed, in [0, 1]."""
        done = sum(1 for s in self.stages.values() if s == StageStatus.COMPLETED)
        return done / len(STAGE_ORDER)

    def with_stage(self, stage: PipelineStage, status: StageStatus) -> "PipelineState":
        """Return a new snapshot with ``stage`` moved to ``status``.

        Enforces the transition table plus the run-level invariants: at most
        one Active stage, stages start in order, and nothing becomes Active
        after a stage has Failed.
        """
        current = self.stages[stage]
        if status not in STAGE_TRANSITIONS[current]:
            raise PipelineError(
                f"Illegal transition for {stage.value}: {current.value} -> {status.value}",
                details={"stage": stage.value, "from": current.value, "to": status.value},
            )
        if status == StageStatus.ACTIVE:
            if self.status != RunStatus.RUNNING:
                raise PipelineError(f"Cannot start {stage.value}: run is {self.status.value}")
            if self.active_stage is not None:
                raise PipelineError(
                    f"Cannot start {stage.value}: {self.active_stage.value} is still active"
                )
            if self.failed_stage is not None:
                raise PipelineError(
                    f"Cannot start {stage.value}: {self.failed_stage.value} has failed"
                )
            index = STAGE_ORDER.index(stage)
            earlier = STAGE_ORDER[:index]
            if any(self.stages[s] != StageStatus.COMPLETED for s in earlier):
                raise PipelineError(f"Cannot start {stage.value} before earlier stages complete")

        stages = dict(self.stages)
        stages[stage] = status
        return self.model_copy(update={"stages": stages, "updated_at": datetime.now(UTC)})

    def with_status(self, status: RunStatus, error: ErrorInfo | None = None) -> "PipelineState":
        now = datetime.now(UTC)
        update: dict = {"status": status, "updated_at": now}
        if status == RunStatus.RUNNING:
            update["started_at"] = now
        if status in TERMINAL_RUN_STATUSES:
            update["completed_at"] = now
        if error is not None:
            update["error"] = error
        return self.model_copy(update=update)
