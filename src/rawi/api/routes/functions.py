"""Generation endpoints consumed by the remote service client."""

from fastapi import APIRouter, Depends

from rawi.api.dependencies import (
    get_app_settings,
    get_elevenlabs_service,
    get_gateway_service,
)
from rawi.config import Settings
from rawi.models.errors import InvalidInputError
from rawi.models.media import Music, Voiceover
from rawi.models.requests import (
    ImageRequest,
    ImageResponse,
    MusicRequest,
    StoryRequest,
    VoiceoverRequest,
)
from rawi.services.elevenlabs import ElevenLabsService
from rawi.services.gateway import GatewayService
from rawi.services.story import build_story_payload

router = APIRouter(prefix="/functions/v1", tags=["functions"])


@router.post("/generate-story")
async def generate_story(
    request: StoryRequest,
    gateway: GatewayService = Depends(get_gateway_service),
    settings: Settings = Depends(get_app_settings),
):
    """Generate a story and return it split into illustrated scenes."""
    title = request.title.strip()
    if not title:
        raise InvalidInputError("Title is required")
    text = await gateway.generate_story_text(title, request.duration_minutes)
    payload = build_story_payload(title, text, settings.max_scenes)
    return payload.model_dump(mode="json", by_alias=True, exclude={"variant"})


@router.post("/generate-image", response_model=ImageResponse)
async def generate_image(
    request: ImageRequest,
    gateway: GatewayService = Depends(get_gateway_service),
):
    """Illustrate one scene prompt."""
    if not request.prompt.strip():
        raise InvalidInputError("Prompt is required")
    return ImageResponse(image_url=await gateway.generate_image(request.prompt))


@router.post("/generate-voiceover", response_model=Voiceover, response_model_exclude_none=True)
async def generate_voiceover(
    request: VoiceoverRequest,
    elevenlabs: ElevenLabsService = Depends(get_elevenlabs_service),
):
    """Narrate one scene."""
    if not request.text.strip():
        raise InvalidInputError("Text is required")
    return await elevenlabs.synthesize(request.text)


@router.post("/generate-music", response_model=Music, response_model_exclude_none=True)
async def generate_music(
    request: MusicRequest,
    elevenlabs: ElevenLabsService = Depends(get_elevenlabs_service),
):
    """Compose background music, clamped to the configured maximum length."""
    return await elevenlabs.compose_music(request.duration)
