"""Error hierarchy and error response models."""

from enum import StrEnum

from pydantic import BaseModel, Field


class ErrorKind(StrEnum):
    """Failure categories surfaced by the pipeline."""

    INVALID_INPUT = "invalid_input"
    RATE_LIMITED = "rate_limited"
    QUOTA_EXHAUSTED = "quota_exhausted"
    REMOTE_FAILURE = "remote_failure"
    INVALID_RESPONSE = "invalid_response"
    INVALID_STORY_STRUCTURE = "invalid_story_structure"
    EMPTY_STORY = "empty_story"
    ALREADY_RUNNING = "already_running"
    CANCELLED = "cancelled"
    PIPELINE = "pipeline"


REMOTE_KINDS = frozenset(
    {
        ErrorKind.RATE_LIMITED,
        ErrorKind.QUOTA_EXHAUSTED,
        ErrorKind.REMOTE_FAILURE,
        ErrorKind.INVALID_RESPONSE,
    }
)


class RawiError(Exception):
    """Base error for all Rawi errors."""

    kind: ErrorKind = ErrorKind.PIPELINE

    def __init__(self, message: str, component: str = "", details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.component = component
        self.details = details or {}


class InvalidInputError(RawiError):
    """Caller-supplied title or duration out of bounds."""

    kind = ErrorKind.INVALID_INPUT

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message, component="validation", details=details)


class RemoteError(RawiError):
    """Failure of a single remote service call."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        component: str = "remote",
        details: dict | None = None,
    ):
        super().__init__(message, component=component, details=details)
        self.status_code = status_code


class RateLimitedError(RemoteError):
    kind = ErrorKind.RATE_LIMITED


class QuotaExhaustedError(RemoteError):
    kind = ErrorKind.QUOTA_EXHAUSTED


class RemoteFailureError(RemoteError):
    kind = ErrorKind.REMOTE_FAILURE


class InvalidResponseError(RemoteError):
    kind = ErrorKind.INVALID_RESPONSE


class NormalizationError(RawiError):
    """Story response could not be turned into scenes."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message, component="normalizer", details=details)


class InvalidStoryStructureError(NormalizationError):
    kind = ErrorKind.INVALID_STORY_STRUCTURE


class EmptyStoryError(NormalizationError):
    kind = ErrorKind.EMPTY_STORY


class AlreadyRunningError(RawiError):
    kind = ErrorKind.ALREADY_RUNNING

    def __init__(self, message: str = "A generation run is already in progress"):
        super().__init__(message, component="pipeline")


class RunCancelledError(RawiError):
    kind = ErrorKind.CANCELLED

    def __init__(self, message: str = "Generation run was cancelled"):
        super().__init__(message, component="pipeline")


class PipelineError(RawiError):
    """Unexpected failure inside the orchestrator or an invalid state transition."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message, component="pipeline", details=details)


def error_for_status(
    status_code: int, message: str | None = None, component: str = "remote"
) -> RemoteError:
    """Classify a non-success HTTP status into a typed remote error."""
    if status_code == 429:
        return RateLimitedError(
            message or "Rate limit exceeded", status_code=status_code, component=component
        )
    if status_code == 402:
        return QuotaExhaustedError(
            message or "AI credits exhausted", status_code=status_code, component=component
        )
    return RemoteFailureError(
        message or f"Request failed: {status_code}", status_code=status_code, component=component
    )


class ErrorResponse(BaseModel):
    """Standardized error response for API."""

    error_type: str = Field(..., description="Error category")
    kind: str = Field(default=ErrorKind.PIPELINE.value)
    component: str = Field(default="", description="Component that raised the error")
    message: str = Field(..., description="Human-readable error message")
    details: dict = Field(default_factory=dict)
    actionable_guidance: str = Field(default="", description="Suggested user action")
    retry_possible: bool = Field(default=False)

    @classmethod
    def from_exception(
        cls, exc: RawiError, guidance: str = "", retry: bool = False
    ) -> "ErrorResponse":
        return cls(
            error_type=type(exc).__name__,
            kind=exc.kind.value,
            component=exc.component,
            message=exc.message,
            details=exc.details,
            actionable_guidance=guidance,
            retry_possible=retry,
        )
