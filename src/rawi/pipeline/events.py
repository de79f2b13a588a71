"""Pipeline events for progress observers."""

from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

from rawi.models.output import GenerationOutput
from rawi.models.pipeline import ErrorInfo, PipelineStage, PipelineState


class PipelineEventType(StrEnum):
    RUN_STARTED = "run_started"
    STAGE_STARTED = "stage_started"
    STAGE_COMPLETED = "stage_completed"
    STAGE_FAILED = "stage_failed"
    SCENE_COMPLETED = "scene_completed"
    RETRYING = "retrying"
    RUN_COMPLETED = "run_completed"
    RUN_FAILED = "run_failed"
    RUN_CANCELLED = "run_cancelled"
    RESET = "reset"


class EventLevel(StrEnum):
    """Notification severity for presentation layers."""

    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


STAGE_STARTED_MESSAGES = {
    PipelineStage.STORY_GENERATION: "Generating story...",
    PipelineStage.IMAGE_GENERATION: "Illustrating scenes...",
    PipelineStage.VOICE_OVER: "Synthesizing voice-over...",
    PipelineStage.MUSIC: "Generating ambient background music...",
    PipelineStage.EDITING: "Combining all elements...",
    PipelineStage.EXPORT: "Preparing final exports...",
}

STAGE_COMPLETED_MESSAGES = {
    PipelineStage.STORY_GENERATION: "Story generated",
    PipelineStage.IMAGE_GENERATION: "Scene illustrations ready",
    PipelineStage.VOICE_OVER: "Voice-over generated",
    PipelineStage.MUSIC: "Background music generated",
    PipelineStage.EDITING: "Story assembled",
    PipelineStage.EXPORT: "Exports ready",
}


class PipelineEvent(BaseModel):
    """One discrete, human-readable notification with state snapshots attached."""

    model_config = ConfigDict(frozen=True)

    type: PipelineEventType
    level: EventLevel = EventLevel.INFO
    message: str = ""
    stage: PipelineStage | None = None
    scene_index: int | None = None
    attempt: int | None = None
    error: ErrorInfo | None = None
    state: PipelineState
    output: GenerationOutput
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))

    def to_dict(self) -> dict:
        """JSON-serializable form for SSE/WebSocket style transports."""
        data = self.model_dump(mode="json", exclude={"output"})
        data["output"] = self.output.model_dump(mode="json", by_alias=True)
        return data
