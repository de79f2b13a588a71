"""Request and response bodies of the generation endpoints."""

from pydantic import Field

from rawi.models.base import WireModel


class StoryRequest(WireModel):
    title: str = Field(..., description="Story title the narrative is inspired by")
    duration_minutes: float = Field(default=5.0, gt=0, description="Target narration length")


class ImageRequest(WireModel):
    prompt: str = Field(..., description="Scene description to illustrate")


class ImageResponse(WireModel):
    image_url: str


class VoiceoverRequest(WireModel):
    text: str = Field(..., description="Narration text")


class MusicRequest(WireModel):
    duration: float = Field(default=60.0, gt=0, description="Requested length in seconds")


class GenerateRequest(WireModel):
    """Body of the pipeline start route."""

    title: str
    duration: float = Field(..., description="Target duration in minutes")
