"""Story and scene data models."""

from typing import Annotated, Literal

from pydantic import Field, computed_field

from rawi.models.base import WireModel


class Scene(WireModel):
    """One narrative and visual unit of a story."""

    text: str = Field(..., min_length=1, description="Narration-ready prose")
    image_prompt: str = Field(..., min_length=1, description="Visual description for imagery")
    image_url: str | None = None
    voiceover_url: str | None = None

    @property
    def word_count(self) -> int:
        return len(self.text.split())

    @property
    def has_media(self) -> bool:
        return self.image_url is not None and self.voiceover_url is not None


class Story(WireModel):
    """A titled, ordered, non-empty sequence of scenes."""

    title: str
    scenes: tuple[Scene, ...] = Field(..., min_length=1)

    @computed_field(alias="wordCount")
    @property
    def word_count(self) -> int:
        return sum(scene.word_count for scene in self.scenes)

    @property
    def text(self) -> str:
        return "\n\n".join(scene.text for scene in self.scenes)


# Story endpoint response variants. The normalizer picks one per response;
# nothing downstream inspects raw payload keys again.


class RawScene(WireModel):
    text: str
    image_prompt: str | None = None


class StructuredStoryPayload(WireModel):
    """``{title, scenes: [{text, imagePrompt}], wordCount}``"""

    variant: Literal["structured"] = "structured"
    title: str | None = None
    scenes: list[RawScene]
    word_count: int | None = None


class LegacyStoryPayload(WireModel):
    """``{story, title, wordCount}``: the whole narration as one string."""

    variant: Literal["legacy"] = "legacy"
    story: str
    title: str | None = None
    word_count: int | None = None


StoryPayload = Annotated[
    StructuredStoryPayload | LegacyStoryPayload, Field(discriminator="variant")
]
