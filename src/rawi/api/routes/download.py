"""Download endpoints."""

from urllib.parse import quote

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse, Response

from rawi.api.dependencies import get_orchestrator
from rawi.exports.artifacts import (
    artifact_filename,
    audio_media_type,
    decode_audio,
    scene_voiceover,
    story_to_text,
)
from rawi.models.errors import InvalidInputError
from rawi.models.media import AudioArtifact
from rawi.pipeline.orchestrator import PipelineOrchestrator

router = APIRouter(prefix="/api/v1", tags=["download"])


def _attachment(filename: str) -> dict[str, str]:
    if filename.isascii():
        return {"Content-Disposition": f'attachment; filename="{filename}"'}
    return {"Content-Disposition": f"attachment; filename*=utf-8''{quote(filename)}"}


def _audio_response(artifact: AudioArtifact, filename: str) -> Response:
    return Response(
        content=decode_audio(artifact),
        media_type=audio_media_type(artifact.format),
        headers=_attachment(filename),
    )


@router.get("/download/story")
async def download_story(orchestrator: PipelineOrchestrator = Depends(get_orchestrator)):
    """Download the story as plain text."""
    story = orchestrator.output.story
    if story is None:
        raise InvalidInputError("No story has been generated yet")
    return PlainTextResponse(
        story_to_text(story), headers=_attachment(artifact_filename(story.title, "story", "txt"))
    )


@router.get("/download/voiceover/{scene_index}")
async def download_voiceover(
    scene_index: int,
    orchestrator: PipelineOrchestrator = Depends(get_orchestrator),
):
    """Download the narration of one scene."""
    output = orchestrator.output
    voiceover = scene_voiceover(output, scene_index)
    name = artifact_filename(output.story.title, f"voiceover-{scene_index + 1}", voiceover.format)
    return _audio_response(voiceover, name)


@router.get("/download/music")
async def download_music(orchestrator: PipelineOrchestrator = Depends(get_orchestrator)):
    """Download the background music."""
    output = orchestrator.output
    if output.music is None:
        raise InvalidInputError("No music has been generated yet")
    title = output.story.title if output.story else "story"
    return _audio_response(output.music, artifact_filename(title, "music", output.music.format))
