"""Dependency injection providers for FastAPI."""

from functools import lru_cache

from rawi.config import Settings, get_settings
from rawi.pipeline.orchestrator import PipelineOrchestrator
from rawi.services.elevenlabs import ElevenLabsService
from rawi.services.gateway import GatewayService


@lru_cache
def get_orchestrator() -> PipelineOrchestrator:
    return PipelineOrchestrator()


@lru_cache
def get_gateway_service() -> GatewayService:
    return GatewayService()


@lru_cache
def get_elevenlabs_service() -> ElevenLabsService:
    return ElevenLabsService()


def get_app_settings() -> Settings:
    return get_settings()
