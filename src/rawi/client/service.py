"""HTTP client for the story, image, voiceover and music endpoints."""

import json
import logging
from typing import Any

import httpx
from pydantic import ValidationError

from rawi.config import get_settings
from rawi.models.errors import (
    InvalidResponseError,
    RemoteFailureError,
    error_for_status,
)
from rawi.models.media import Music, Voiceover
from rawi.models.requests import ImageResponse

logger = logging.getLogger(__name__)

STORY_FUNCTION = "generate-story"
IMAGE_FUNCTION = "generate-image"
VOICEOVER_FUNCTION = "generate-voiceover"
MUSIC_FUNCTION = "generate-music"


class ServiceClient:
    """One request per call, no retries; failures come back as typed errors.

    Retrying is layered outside (see ``rawi.pipeline.retry``).
    """

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        timeout: float | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        settings = get_settings()
        self.base_url = (base_url or settings.functions_url).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.service_api_key
        self.timeout = timeout or settings.request_timeout_seconds
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=self.timeout)

    async def __aenter__(self) -> "ServiceClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["apikey"] = self.api_key
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def request_story(self, title: str, duration_minutes: float) -> dict[str, Any]:
        """Return the raw story payload; its shape is resolved by the normalizer."""
        return await self._post(
            STORY_FUNCTION, {"title": title, "durationMinutes": duration_minutes}
        )

    async def request_image(self, prompt: str) -> str:
        data = await self._post(IMAGE_FUNCTION, {"prompt": prompt})
        return self._parse(IMAGE_FUNCTION, ImageResponse, data).image_url

    async def request_voiceover(self, text: str) -> Voiceover:
        data = await self._post(VOICEOVER_FUNCTION, {"text": text})
        return self._parse(VOICEOVER_FUNCTION, Voiceover, data)

    async def request_music(self, duration_seconds: float) -> Music:
        data = await self._post(MUSIC_FUNCTION, {"duration": duration_seconds})
        return self._parse(MUSIC_FUNCTION, Music, data)

    async def _post(self, function: str, body: dict[str, Any]) -> dict[str, Any]:
        url = f"{self.base_url}/{function}"
        logger.debug(f"POST {url}")
        try:
            response = await self._http.post(
                url, json=body, headers=self._headers(), timeout=self.timeout
            )
        except httpx.TimeoutException as e:
            logger.warning(f"{function} timed out after {self.timeout}s")
            raise RemoteFailureError(
                f"{function} timed out after {self.timeout}s",
                component=function,
                details={"timeout": self.timeout, "error": str(e)},
            )
        except httpx.HTTPError as e:
            logger.warning(f"{function} transport error: {e}")
            raise RemoteFailureError(
                f"{function} request failed: {e}", component=function
            )

        if not response.is_success:
            error = error_for_status(
                response.status_code, _error_message(response), component=function
            )
            logger.warning(f"{function} failed with {response.status_code}: {error.message}")
            raise error

        try:
            data = response.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            raise InvalidResponseError(
                f"{function} returned a non-JSON body",
                status_code=response.status_code,
                component=function,
                details={"response_preview": response.text[:200]},
            )
        if not isinstance(data, dict):
            raise InvalidResponseError(
                f"{function} returned {type(data).__name__}, expected an object",
                status_code=response.status_code,
                component=function,
            )
        return data

    @staticmethod
    def _parse(function: str, model_class, data: dict[str, Any]):
        try:
            return model_class.model_validate(data)
        except ValidationError as e:
            errors = e.errors(include_url=False, include_context=False, include_input=False)
            raise InvalidResponseError(
                f"{function} response has an unexpected shape",
                component=function,
                details={"errors": errors},
            )


def _error_message(response: httpx.Response) -> str | None:
    """Server-provided error message, if the body carries one."""
    try:
        payload = response.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None
    if isinstance(payload, dict):
        message = payload.get("error") or payload.get("message")
        if isinstance(message, str) and message:
            return message
    return None
