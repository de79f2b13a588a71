"""Audio artifact models."""

import base64
import binascii
import re

from pydantic import Field, field_validator

from rawi.models.base import WireModel

_DATA_URL = re.compile(r"^data:audio/(?P<format>[\w.+-]+);base64,(?P<content>.*)$", re.DOTALL)


class AudioArtifact(WireModel):
    """Encoded audio payload returned by a remote service. Immutable once produced."""

    audio_content: str = Field(..., min_length=1, description="Base64-encoded audio bytes")
    format: str = Field(default="mp3", min_length=1, description="Codec tag")
    duration: float | None = Field(default=None, ge=0)

    @field_validator("audio_content")
    @classmethod
    def check_base64(cls, v: str) -> str:
        try:
            base64.b64decode(v, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ValueError(f"audio_content is not valid base64: {e}")
        return v

    def decode(self) -> bytes:
        return base64.b64decode(self.audio_content)

    @property
    def mime_type(self) -> str:
        return f"audio/{self.format}"

    def to_data_url(self) -> str:
        return f"data:{self.mime_type};base64,{self.audio_content}"

    @classmethod
    def from_data_url(cls, url: str):
        """Rebuild an artifact from a ``data:audio/<fmt>;base64,...`` reference."""
        match = _DATA_URL.match(url)
        if not match:
            raise ValueError("Not a base64 audio data URL")
        return cls(audio_content=match.group("content"), format=match.group("format"))

    @classmethod
    def from_bytes(cls, data: bytes, format: str = "mp3", duration: float | None = None):
        return cls(
            audio_content=base64.b64encode(data).decode("ascii"),
            format=format,
            duration=duration,
        )


class Voiceover(AudioArtifact):
    """Narration for one scene."""


class Music(AudioArtifact):
    """Background score for the whole story."""
