"""Story text and image generation through an OpenAI-compatible AI gateway."""

import logging

import openai
from openai import AsyncOpenAI

from rawi.config import Settings, get_settings
from rawi.models.errors import RemoteError, RemoteFailureError, error_for_status
from rawi.services.prompts import build_image_prompt, build_story_messages

logger = logging.getLogger(__name__)

STATUS_MESSAGES = {
    429: "Rate limit exceeded. Please try again later.",
    402: "AI credits exhausted. Please add credits.",
}


def _gateway_error(exc: openai.APIError) -> RemoteError:
    if isinstance(exc, openai.APIStatusError):
        status = exc.status_code
        message = STATUS_MESSAGES.get(status, f"AI gateway error: {status}")
        return error_for_status(status, message, component="gateway")
    return RemoteFailureError(f"AI gateway unreachable: {exc}", component="gateway")


class GatewayService:
    """Generates story text and scene images."""

    def __init__(self, client: AsyncOpenAI | None = None, settings: Settings | None = None):
        self.settings = settings or get_settings()
        self.client = client
        if self.client is None and self.settings.gateway_api_key:
            self.client = AsyncOpenAI(
                api_key=self.settings.gateway_api_key,
                base_url=self.settings.gateway_url,
                max_retries=0,
            )

    def _require_client(self) -> AsyncOpenAI:
        if self.client is None:
            raise RemoteFailureError("RAWI_GATEWAY_API_KEY is not configured", component="gateway")
        return self.client

    async def generate_story_text(self, title: str, duration_minutes: float) -> str:
        client = self._require_client()
        messages = build_story_messages(
            title,
            duration_minutes,
            self.settings.words_per_minute,
            self.settings.story_language,
            self.settings.max_scenes,
        )
        logger.info(f"Generating story for '{title}' ({duration_minutes:g} min)")
        try:
            response = await client.chat.completions.create(
                model=self.settings.story_model, messages=messages
            )
        except openai.APIError as e:
            logger.error(f"Story generation failed: {e}")
            raise _gateway_error(e)

        text = response.choices[0].message.content if response.choices else None
        if not text or not text.strip():
            raise RemoteFailureError("No story generated", component="gateway")
        return text

    async def generate_image(self, prompt: str) -> str:
        client = self._require_client()
        enhanced = build_image_prompt(prompt)
        logger.info(f"Generating image for prompt: {prompt[:100]}")
        try:
            response = await client.images.generate(
                model=self.settings.image_model,
                prompt=enhanced,
                n=1,
                size=self.settings.image_size,
            )
        except openai.APIError as e:
            logger.error(f"Image generation failed: {e}")
            raise _gateway_error(e)

        url = response.data[0].url if response.data else None
        if not url:
            raise RemoteFailureError("No image generated - empty response", component="gateway")
        return url
