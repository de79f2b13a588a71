"""Accumulated generation output."""

from collections.abc import Sequence

from pydantic import computed_field

from rawi.models.base import WireModel
from rawi.models.errors import PipelineError
from rawi.models.media import Music
from rawi.models.story import Story


class GenerationOutput(WireModel):
    """Result container for one run.

    Frozen: every merge returns a new snapshot, so a reader holding an
    earlier object sees either the pre-merge or the post-merge value.
    """

    story: Story | None = None
    music: Music | None = None

    @computed_field(alias="isComplete")
    @property
    def is_complete(self) -> bool:
        """Readiness flag: story present, every scene has media, music present."""
        if self.story is None or self.music is None:
            return False
        return all(scene.has_media for scene in self.story.scenes)

    @property
    def is_empty(self) -> bool:
        return self.story is None and self.music is None

    def with_story(self, story: Story) -> "GenerationOutput":
        return self.model_copy(update={"story": story})

    def with_music(self, music: Music) -> "GenerationOutput":
        return self.model_copy(update={"music": music})

    def with_scene_images(self, image_urls: Sequence[str]) -> "GenerationOutput":
        return self._with_scene_field("image_url", image_urls)

    def with_scene_voiceovers(self, voiceover_urls: Sequence[str]) -> "GenerationOutput":
        return self._with_scene_field("voiceover_url", voiceover_urls)

    def _with_scene_field(self, field: str, values: Sequence[str]) -> "GenerationOutput":
        """Fold one value per scene into the story, positionally."""
        if self.story is None:
            raise PipelineError(f"Cannot attach {field}: no story generated yet")
        scenes = self.story.scenes
        if len(values) != len(scenes):
            raise PipelineError(
                f"Cannot attach {field}: got {len(values)} values for {len(scenes)} scenes"
            )
        updated = tuple(
            scene.model_copy(update={field: value}) for scene, value in zip(scenes, values)
        )
        return self.with_story(self.story.model_copy(update={"scenes": updated}))
