"""Downloadable artifacts derived from a generation output."""

import re

from rawi.models.errors import InvalidInputError
from rawi.models.media import AudioArtifact, Voiceover
from rawi.models.output import GenerationOutput
from rawi.models.story import Story

_UNSAFE = re.compile(r"[^\w-]+", re.UNICODE)


def story_to_text(story: Story) -> str:
    """Plain-text export: title, blank line, then the scenes separated by blank lines."""
    return f"{story.title}\n\n{story.text}\n"


def decode_audio(artifact: AudioArtifact) -> bytes:
    return artifact.decode()


def audio_media_type(format: str) -> str:
    return "audio/mpeg" if format == "mp3" else f"audio/{format}"


def artifact_filename(title: str, suffix: str, extension: str) -> str:
    """Filesystem-safe download name such as ``the-lantern-music.mp3``."""
    slug = _UNSAFE.sub("-", title.strip().lower()).strip("-_") or "story"
    return f"{slug}-{suffix}.{extension}"


def scene_voiceover(output: GenerationOutput, scene_index: int) -> Voiceover:
    """Voiceover artifact attached to one scene of the output."""
    if output.story is None:
        raise InvalidInputError("No story has been generated yet")
    scenes = output.story.scenes
    if not 0 <= scene_index < len(scenes):
        raise InvalidInputError(
            f"Scene index {scene_index} out of range (story has {len(scenes)} scenes)"
        )
    ref = scenes[scene_index].voiceover_url
    if ref is None:
        raise InvalidInputError(f"Scene {scene_index} has no voiceover yet")
    return Voiceover.from_data_url(ref)
