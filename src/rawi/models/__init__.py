"""Data models for Rawi."""

from rawi.models.errors import (
    AlreadyRunningError,
    EmptyStoryError,
    ErrorKind,
    ErrorResponse,
    InvalidInputError,
    InvalidResponseError,
    InvalidStoryStructureError,
    NormalizationError,
    PipelineError,
    QuotaExhaustedError,
    RateLimitedError,
    RawiError,
    RemoteError,
    RemoteFailureError,
    RunCancelledError,
)
from rawi.models.media import AudioArtifact, Music, Voiceover
from rawi.models.output import GenerationOutput
from rawi.models.pipeline import (
    ErrorInfo,
    PipelineStage,
    PipelineState,
    RunStatus,
    StageStatus,
)
from rawi.models.story import (
    LegacyStoryPayload,
    RawScene,
    Scene,
    Story,
    StoryPayload,
    StructuredStoryPayload,
)

__all__ = [
    "AlreadyRunningError",
    "AudioArtifact",
    "EmptyStoryError",
    "ErrorInfo",
    "ErrorKind",
    "ErrorResponse",
    "GenerationOutput",
    "InvalidInputError",
    "InvalidResponseError",
    "InvalidStoryStructureError",
    "LegacyStoryPayload",
    "Music",
    "NormalizationError",
    "PipelineError",
    "PipelineStage",
    "PipelineState",
    "QuotaExhaustedError",
    "RateLimitedError",
    "RawScene",
    "RawiError",
    "RemoteError",
    "RemoteFailureError",
    "RunCancelledError",
    "RunStatus",
    "Scene",
    "StageStatus",
    "Story",
    "StoryPayload",
    "StructuredStoryPayload",
    "Voiceover",
]
