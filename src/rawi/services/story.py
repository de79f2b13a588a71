"""Shapes generated story text into the structured scene response."""

import re

from rawi.models.story import RawScene, StructuredStoryPayload

_PARAGRAPH_BREAK = re.compile(r"\n\s*\n")

PROMPT_EXCERPT_WORDS = 30


def split_paragraphs(text: str) -> list[str]:
    return [p.strip() for p in _PARAGRAPH_BREAK.split(text) if p.strip()]


def group_paragraphs(paragraphs: list[str], max_scenes: int) -> list[str]:
    """Merge adjacent paragraphs until there are at most ``max_scenes`` groups.

    Groups are contiguous and keep reading order; earlier groups take the
    extra paragraph when the split is uneven.
    """
    if max_scenes < 1:
        raise ValueError("max_scenes must be at least 1")
    if len(paragraphs) <= max_scenes:
        return list(paragraphs)
    base, extra = divmod(len(paragraphs), max_scenes)
    groups = []
    pos = 0
    for i in range(max_scenes):
        size = base + (1 if i < extra else 0)
        groups.append("\n\n".join(paragraphs[pos : pos + size]))
        pos += size
    return groups


def scene_image_prompt(title: str, text: str) -> str:
    words = text.split()
    excerpt = " ".join(words[:PROMPT_EXCERPT_WORDS])
    if len(words) > PROMPT_EXCERPT_WORDS:
        excerpt += "..."
    return f"{title}: {excerpt}"


def build_story_payload(title: str, text: str, max_scenes: int) -> StructuredStoryPayload:
    """Structured ``{title, scenes, wordCount}`` response for a generated story."""
    scenes = [
        RawScene(text=chunk, image_prompt=scene_image_prompt(title, chunk))
        for chunk in group_paragraphs(split_paragraphs(text), max_scenes)
    ]
    return StructuredStoryPayload(title=title, scenes=scenes, word_count=len(text.split()))
