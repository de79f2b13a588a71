"""Error handling middleware."""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse

from rawi.models.errors import ErrorKind, ErrorResponse, RawiError

logger = logging.getLogger(__name__)

STATUS_BY_KIND = {
    ErrorKind.INVALID_INPUT: 400,
    ErrorKind.INVALID_STORY_STRUCTURE: 400,
    ErrorKind.EMPTY_STORY: 400,
    ErrorKind.QUOTA_EXHAUSTED: 402,
    ErrorKind.ALREADY_RUNNING: 409,
    ErrorKind.CANCELLED: 409,
    ErrorKind.RATE_LIMITED: 429,
}

GUIDANCE_BY_KIND = {
    ErrorKind.INVALID_INPUT: "Check the title and duration and try again.",
    ErrorKind.RATE_LIMITED: "Rate limit exceeded. Please wait a moment and try again.",
    ErrorKind.QUOTA_EXHAUSTED: "AI credits exhausted. Please add credits to continue.",
    ErrorKind.ALREADY_RUNNING: "Wait for the current generation to finish or cancel it.",
}

RETRYABLE_KINDS = frozenset(
    {ErrorKind.RATE_LIMITED, ErrorKind.REMOTE_FAILURE, ErrorKind.INVALID_RESPONSE}
)


async def rawi_error_handler(request: Request, exc: RawiError) -> JSONResponse:
    """Handle RawiError exceptions."""
    response = ErrorResponse.from_exception(
        exc,
        guidance=_get_guidance(exc),
        retry=exc.kind in RETRYABLE_KINDS,
    )
    status_code = _get_status_code(exc)
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=status_code, content=response.model_dump(mode="json"))


def _get_status_code(exc: RawiError) -> int:
    """Map error kind to HTTP status code."""
    return STATUS_BY_KIND.get(exc.kind, 500)


def _get_guidance(exc: RawiError) -> str:
    return GUIDANCE_BY_KIND.get(exc.kind, "Please try again or contact support.")
