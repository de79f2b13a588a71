"""Celery task definitions."""

import asyncio

from celery import Celery

from rawi.config import get_settings
from rawi.models.errors import RawiError

settings = get_settings()

celery_app = Celery(
    "rawi",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
)
celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
)


async def _run_pipeline(title: str, duration: float):
    from rawi.client.service import ServiceClient
    from rawi.pipeline.orchestrator import PipelineOrchestrator

    async with ServiceClient() as client:
        orchestrator = PipelineOrchestrator(client=client)
        error = None
        try:
            await orchestrator.run(title, duration)
        except RawiError as e:
            error = e
        return orchestrator, error


@celery_app.task(bind=True, name="rawi.generate_story")
def generate_story_task(self, title: str, duration: float):
    """Celery task wrapping one PipelineOrchestrator.run()."""
    orchestrator, error = asyncio.run(_run_pipeline(title, duration))
    return {
        "task_id": self.request.id,
        "status": orchestrator.state.status.value,
        "state": orchestrator.state.model_dump(mode="json"),
        "output": orchestrator.output.model_dump(mode="json", by_alias=True),
        "error": (
            {"kind": error.kind.value, "message": error.message} if error is not None else None
        ),
    }
