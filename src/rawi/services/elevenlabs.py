"""Narration and background music through the ElevenLabs HTTP API."""

import logging

import httpx

from rawi.config import Settings, get_settings
from rawi.models.errors import RemoteFailureError, error_for_status
from rawi.models.media import Music, Voiceover
from rawi.services.prompts import MUSIC_PROMPT

logger = logging.getLogger(__name__)


class ElevenLabsService:
    """Text-to-speech and music composition returning base64 audio artifacts."""

    def __init__(
        self, http_client: httpx.AsyncClient | None = None, settings: Settings | None = None
    ):
        self.settings = settings or get_settings()
        self._http = http_client or httpx.AsyncClient(timeout=120)

    async def aclose(self) -> None:
        await self._http.aclose()

    def _headers(self) -> dict[str, str]:
        if not self.settings.elevenlabs_api_key:
            raise RemoteFailureError(
                "RAWI_ELEVENLABS_API_KEY is not configured", component="elevenlabs"
            )
        return {"xi-api-key": self.settings.elevenlabs_api_key, "Content-Type": "application/json"}

    async def _post_audio(self, path: str, body: dict) -> bytes:
        url = f"{self.settings.elevenlabs_url.rstrip('/')}/{path}"
        headers = self._headers()
        try:
            response = await self._http.post(url, json=body, headers=headers)
        except httpx.HTTPError as e:
            logger.error(f"ElevenLabs request to {path} failed: {e}")
            raise RemoteFailureError(f"ElevenLabs unreachable: {e}", component="elevenlabs")
        if not response.is_success:
            logger.error(f"ElevenLabs error {response.status_code}: {response.text[:200]}")
            raise error_for_status(
                response.status_code,
                f"ElevenLabs API error: {response.status_code}",
                component="elevenlabs",
            )
        if not response.content:
            raise RemoteFailureError("ElevenLabs returned no audio", component="elevenlabs")
        return response.content

    def estimate_duration(self, text: str) -> float:
        """Spoken length in seconds at the configured narration pace."""
        return round(len(text.split()) / self.settings.words_per_minute * 60, 2)

    async def synthesize(self, text: str) -> Voiceover:
        if not self.settings.elevenlabs_voice_id:
            raise RemoteFailureError(
                "RAWI_ELEVENLABS_VOICE_ID is not configured", component="elevenlabs"
            )
        body = {
            "text": text,
            "model_id": self.settings.voice_model,
            "voice_settings": {"stability": 0.5, "similarity_boost": 0.75},
        }
        audio = await self._post_audio(f"text-to-speech/{self.settings.elevenlabs_voice_id}", body)
        return Voiceover.from_bytes(audio, format="mp3", duration=self.estimate_duration(text))

    def clamp_music_duration(self, seconds: float) -> float:
        return min(seconds, self.settings.music_max_seconds)

    async def compose_music(self, seconds: float) -> Music:
        duration = self.clamp_music_duration(seconds)
        logger.info(f"Composing {duration:g}s of background music")
        audio = await self._post_audio(
            "music", {"prompt": MUSIC_PROMPT, "duration_seconds": duration}
        )
        return Music.from_bytes(audio, format="mp3")
