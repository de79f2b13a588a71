"""Property-based tests for story normalization and scene shaping."""

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from rawi.models.errors import EmptyStoryError
from rawi.pipeline.normalizer import normalize_story
from rawi.services.story import build_story_payload, group_paragraphs
from tests.property.conftest import (
    generate_paragraphs,
    generate_structured_story,
    scene_text,
    words,
)

pytestmark = pytest.mark.property


class TestNormalizationProperties:
    @given(raw=generate_structured_story())
    @settings(max_examples=100)
    def test_structured_scenes_keep_order(self, raw):
        """Non-blank scenes survive in order; blank ones are dropped."""
        expected = [s["text"] for s in raw["scenes"] if s["text"].strip()]
        if not expected:
            with pytest.raises(EmptyStoryError):
                normalize_story(raw, title="Fallback")
            return
        story = normalize_story(raw, title="Fallback")
        assert [s.text for s in story.scenes] == expected
        assert story.word_count == sum(len(t.split()) for t in expected)

    @given(raw=generate_structured_story(min_scenes=1))
    @settings(max_examples=100)
    def test_every_scene_has_a_prompt(self, raw):
        try:
            story = normalize_story(raw, title="Fallback")
        except EmptyStoryError:
            return
        assert all(s.image_prompt.strip() for s in story.scenes)
        assert all(s.image_url is None and s.voiceover_url is None for s in story.scenes)

    @given(raw=generate_structured_story(min_scenes=1))
    @settings(max_examples=50)
    def test_deterministic(self, raw):
        try:
            first = normalize_story(raw)
        except EmptyStoryError:
            return
        assert normalize_story(raw) == first

    @given(text=scene_text, title=words)
    @settings(max_examples=100)
    def test_legacy_is_one_scene(self, text, title):
        story = normalize_story({"story": text, "title": title})
        assert len(story.scenes) == 1
        assert story.scenes[0].text == text
        assert story.title == title


class TestSceneShapingProperties:
    @given(paragraphs=generate_paragraphs(), max_scenes=st.integers(min_value=1, max_value=10))
    @settings(max_examples=100)
    def test_grouping_preserves_text(self, paragraphs, max_scenes):
        groups = group_paragraphs(paragraphs, max_scenes)
        assert len(groups) == min(len(paragraphs), max_scenes)
        assert "\n\n".join(groups) == "\n\n".join(paragraphs)

    @given(paragraphs=generate_paragraphs(), max_scenes=st.integers(min_value=1, max_value=10))
    @settings(max_examples=100)
    def test_groups_are_balanced(self, paragraphs, max_scenes):
        groups = group_paragraphs(paragraphs, max_scenes)
        sizes = [g.count("\n\n") + 1 for g in groups]
        if sizes:
            assert max(sizes) - min(sizes) <= 1

    @given(
        paragraphs=st.lists(scene_text, min_size=1, max_size=20),
        max_scenes=st.integers(min_value=1, max_value=10),
    )
    @settings(max_examples=50)
    def test_server_payload_normalizes(self, paragraphs, max_scenes):
        """What the story endpoint produces is always accepted by the normalizer."""
        payload = build_story_payload("Title", "\n\n".join(paragraphs), max_scenes)
        raw = payload.model_dump(mode="json", by_alias=True, exclude={"variant"})
        story = normalize_story(raw)
        assert len(story.scenes) == min(len(paragraphs), max_scenes)
        assert story.text == "\n\n".join(paragraphs)
