"""Pipeline control and status endpoints."""

import logging

from fastapi import APIRouter, BackgroundTasks, Depends

from rawi.api.dependencies import get_orchestrator
from rawi.models.errors import InvalidInputError, RawiError
from rawi.models.requests import GenerateRequest
from rawi.pipeline.orchestrator import PipelineOrchestrator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["pipeline"])


async def run_in_background(orchestrator: PipelineOrchestrator, title: str, duration: float):
    """Run the pipeline; the outcome is recorded on the orchestrator state."""
    try:
        await orchestrator.run(title, duration, claimed=True)
    except RawiError as e:
        logger.info(f"Background run ended with {e.kind.value}: {e.message}")


@router.post("/generate", status_code=202)
async def start_generation(
    request: GenerateRequest,
    background_tasks: BackgroundTasks,
    orchestrator: PipelineOrchestrator = Depends(get_orchestrator),
):
    """Start a generation run.

    The orchestrator is claimed before the response is sent, so a second start
    gets 409 even while the first run is still queued.
    """
    title, duration = orchestrator.claim(request.title, request.duration)
    background_tasks.add_task(run_in_background, orchestrator, title, duration)
    return {"status": "running", "title": title, "duration": duration}


@router.get("/status")
async def get_status(orchestrator: PipelineOrchestrator = Depends(get_orchestrator)):
    """Current per-stage state and accumulated output."""
    state = orchestrator.state
    return {
        "is_running": orchestrator.is_running,
        "progress": state.progress,
        "state": state.model_dump(mode="json"),
        "output": orchestrator.output.model_dump(mode="json", by_alias=True),
    }


@router.post("/cancel")
async def cancel_generation(orchestrator: PipelineOrchestrator = Depends(get_orchestrator)):
    if not orchestrator.cancel():
        raise InvalidInputError("No generation run in progress")
    return {"status": "cancelling"}


@router.post("/reset")
async def reset_pipeline(orchestrator: PipelineOrchestrator = Depends(get_orchestrator)):
    orchestrator.reset()
    return {"status": orchestrator.state.status.value}
