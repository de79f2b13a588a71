"""Application configuration using Pydantic BaseSettings."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Rawi configuration loaded from environment variables."""

    model_config = {"env_prefix": "RAWI_", "env_file": ".env", "extra": "ignore"}

    log_level: str = "INFO"

    # Remote service client
    functions_url: str = "http://localhost:8000/functions/v1"
    service_api_key: str = ""
    request_timeout_seconds: float = 30.0

    # Retry
    max_retries: int = 2
    retry_backoff_seconds: float = 2.0
    retry_quota_exhausted: bool = True

    # Run input bounds
    min_duration_minutes: float = 1.0
    max_duration_minutes: float = 60.0
    max_title_length: int = 200

    # Placeholder assembly stages
    editing_delay_seconds: float = 2.0
    export_delay_seconds: float = 1.5

    # Per-scene image/voice calls in flight at once (1 = sequential)
    scene_concurrency: int = 1

    # Redis / Celery
    celery_broker_url: str = "redis://localhost:6379/0"
    celery_result_backend: str = "redis://localhost:6379/1"

    # AI gateway (OpenAI-compatible) for story text and images
    gateway_url: str = "https://ai.gateway.lovable.dev/v1"
    gateway_api_key: str = ""
    story_model: str = "google/gemini-2.5-pro"
    image_model: str = "recraft-v3"
    image_size: str = "1024x1024"

    # ElevenLabs for narration and music
    elevenlabs_url: str = "https://api.elevenlabs.io/v1"
    elevenlabs_api_key: str = ""
    elevenlabs_voice_id: str = ""
    voice_model: str = "eleven_multilingual_v2"
    music_max_seconds: float = 120.0

    # Story shaping
    words_per_minute: int = 100
    story_language: str = "Arabic"
    max_scenes: int = 8

    # CORS
    allowed_origins: list[str] = ["*"]


def get_settings() -> Settings:
    """Return a settings instance read from the environment."""
    return Settings()
