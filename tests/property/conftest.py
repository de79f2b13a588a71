"""Hypothesis strategies for property-based testing."""

from hypothesis import strategies as st

from rawi.models.errors import (
    InvalidResponseError,
    QuotaExhaustedError,
    RateLimitedError,
    RemoteFailureError,
)

words = st.text(alphabet="abcdefghijklmnopqrstuvwxyz", min_size=1, max_size=10)

scene_text = st.lists(words, min_size=1, max_size=12).map(" ".join)

blank_text = st.sampled_from(["", " ", "\n", "  \t "])

remote_errors = st.sampled_from(
    [
        (RateLimitedError, "Rate limit exceeded", 429),
        (QuotaExhaustedError, "AI credits exhausted", 402),
        (RemoteFailureError, "Request failed: 500", 500),
        (InvalidResponseError, "unexpected shape", None),
    ]
).map(lambda entry: entry[0](entry[1], status_code=entry[2]))


@st.composite
def generate_raw_scene(draw):
    """A raw scene dict as the story endpoint might send it."""
    text = draw(st.one_of(scene_text, blank_text))
    scene = {"text": text}
    prompt = draw(st.one_of(st.none(), blank_text, scene_text))
    if prompt is not None:
        scene["imagePrompt"] = prompt
    return scene


@st.composite
def generate_structured_story(draw, min_scenes: int = 0, max_scenes: int = 10):
    """Structured story response with a mix of blank and real scenes."""
    scenes = draw(st.lists(generate_raw_scene(), min_size=min_scenes, max_size=max_scenes))
    title = draw(st.one_of(st.none(), words))
    raw = {"scenes": scenes}
    if title is not None:
        raw["title"] = title
    return raw


@st.composite
def generate_paragraphs(draw, max_size: int = 20):
    return draw(st.lists(scene_text, min_size=0, max_size=max_size))
