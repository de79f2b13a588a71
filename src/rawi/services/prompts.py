"""Prompt templates for story and image generation."""

SYSTEM_PROMPT_TEMPLATE = (
    "You are a professional storyteller writing original tales for audio "
    "narration in {language}.\n"
    "\n"
    "Rules:\n"
    "1. Write in {language}{script_rule}\n"
    "2. Calm, immersive style suited to being read aloud\n"
    "3. No direct dialogue in quotation marks\n"
    "4. No emoji\n"
    "5. Never mention artificial intelligence or any tools\n"
    "6. Keep the story coherent from beginning to end\n"
    "7. Use rich sensory description\n"
    "8. Separate scenes with a blank line; each scene is one paragraph\n"
    "9. Target length: about {word_count} words\n"
    "\n"
    "Begin the story directly, without preamble or commentary."
)

ARABIC_SCRIPT_RULE = " (Modern Standard Arabic) with full diacritics on every word"

USER_PROMPT_TEMPLATE = (
    'Write an original story inspired by this title: "{title}"\n'
    "\n"
    "Remember: plain narration only, {scene_hint}."
)

IMAGE_PROMPT_TEMPLATE = (
    "Cinematic, high-quality, realistic storybook scene: {prompt}. "
    "Dramatic lighting, 8k resolution, detailed background."
)

MUSIC_PROMPT = (
    "Soft ambient music, calm and peaceful, suitable for storytelling and "
    "narration. Middle Eastern inspired, gentle oud and soft strings, very low "
    "volume background music, no vocals, cinematic and atmospheric."
)


def target_word_count(duration_minutes: float, words_per_minute: int) -> int:
    """Narration length in words for a spoken duration."""
    return max(1, round(words_per_minute * duration_minutes))


def build_story_messages(
    title: str, duration_minutes: float, words_per_minute: int, language: str, max_scenes: int
) -> list[dict]:
    """Chat messages asking for a narration-ready story."""
    script_rule = ARABIC_SCRIPT_RULE if language.lower() == "arabic" else ""
    system = SYSTEM_PROMPT_TEMPLATE.format(
        language=language,
        script_rule=script_rule,
        word_count=target_word_count(duration_minutes, words_per_minute),
    )
    user = USER_PROMPT_TEMPLATE.format(
        title=title, scene_hint=f"between 3 and {max_scenes} scenes"
    )
    return [
        {"role": "system", "content": system},
        {"role": "user", "content": user},
    ]


def build_image_prompt(prompt: str) -> str:
    return IMAGE_PROMPT_TEMPLATE.format(prompt=prompt.strip())
