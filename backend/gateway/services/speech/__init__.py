"""
Speech Services Package

Thin STT/TTS forwarding behind the gateway's auth and rate-limit gate.
"""
from typing import Optional

from gateway.config.settings import Settings
from gateway.services.speech.protocols import SpeechService
from gateway.services.speech.gcp import GCPSpeechService


def create_speech_service(settings: Settings) -> Optional[SpeechService]:
    """Build the configured speech backend, or None when speech is disabled."""
    if settings.SPEECH_BACKEND == "none":
        return None
    if settings.SPEECH_BACKEND == "gcp":
        return GCPSpeechService(
            credentials_path=settings.GOOGLE_APPLICATION_CREDENTIALS,
            timeout_s=settings.PROVIDER_TIMEOUT_MS / 1000.0,
        )
    raise ValueError(f"Unsupported speech backend `{settings.SPEECH_BACKEND}`.")


__all__ = [
    "SpeechService",
    "GCPSpeechService",
    "create_speech_service",
]
