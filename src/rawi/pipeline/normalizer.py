"""Story response normalization.

The story endpoint has answered in two shapes over time: a structured list of
scenes, and a legacy single narration string. ``decode_story_payload`` picks
the variant once; ``normalize_story`` turns either into a canonical ``Story``.
"""

import logging
from typing import Any

from pydantic import TypeAdapter, ValidationError

from rawi.models.errors import EmptyStoryError, InvalidStoryStructureError
from rawi.models.story import (
    LegacyStoryPayload,
    Scene,
    Story,
    StoryPayload,
    StructuredStoryPayload,
)

logger = logging.getLogger(__name__)

_payload_adapter = TypeAdapter(StoryPayload)


def decode_story_payload(raw: Any) -> StructuredStoryPayload | LegacyStoryPayload:
    """Classify a raw story response into one of the known variants."""
    if not isinstance(raw, dict):
        raise InvalidStoryStructureError(
            f"Story response must be an object, got {type(raw).__name__}"
        )
    title = raw.get("title") if isinstance(raw.get("title"), str) else None

    scenes = raw.get("scenes")
    if isinstance(scenes, list):
        try:
            return _payload_adapter.validate_python(
                {"variant": "structured", "title": title, "scenes": scenes}
            )
        except ValidationError as e:
            logger.warning(f"Ignoring malformed scene list ({e.error_count()} errors)")

    story = raw.get("story")
    if isinstance(story, str):
        return _payload_adapter.validate_python(
            {"variant": "legacy", "title": title, "story": story}
        )

    raise InvalidStoryStructureError(
        "Story response has neither a scene list nor a narration string",
        details={"keys": sorted(str(k) for k in raw)},
    )


def synthesize_image_prompt(title: str, text: str, index: int = 0, count: int = 1) -> str:
    """Deterministic cinematic description for a scene that came without one."""
    subject = title.strip() or " ".join(text.split()[:12])
    position = f", scene {index + 1} of {count}" if count > 1 else ""
    return (
        f'Cinematic illustration of the tale "{subject}"{position}: '
        "dramatic lighting, rich atmosphere, detailed background"
    )


def normalize_story(raw: Any, title: str = "") -> Story:
    """Convert a raw story response into a non-empty, ordered ``Story``.

    Raises InvalidStoryStructureError when no known shape is present and
    EmptyStoryError when the shape is known but yields no narration.
    """
    payload = decode_story_payload(raw)
    story_title = (payload.title or "").strip() or title

    if isinstance(payload, StructuredStoryPayload):
        parts = [(s.text, s.image_prompt) for s in payload.scenes if s.text.strip()]
    else:
        parts = [(payload.story, None)] if payload.story.strip() else []

    if not parts:
        raise EmptyStoryError(f"Story response for '{story_title}' contains no narration")

    count = len(parts)
    scenes = tuple(
        Scene(
            text=text,
            image_prompt=(
                prompt
                if prompt and prompt.strip()
                else synthesize_image_prompt(story_title, text, i, count)
            ),
        )
        for i, (text, prompt) in enumerate(parts)
    )
    logger.info(f"Normalized {payload.variant} story response into {count} scene(s)")
    return Story(title=story_title, scenes=scenes)
