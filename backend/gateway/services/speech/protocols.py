"""
Protocol definitions for speech services.

This module defines the interface the speech endpoints depend on, which allows:
- Swapping implementations (e.g., GCP → local models)
- Testing without real API credentials

Usage:
    from gateway.services.speech.protocols import SpeechService

    async def handle(speech: SpeechService, audio: bytes):
        transcript = await speech.transcribe(audio, "en-US")
        audio_out = await speech.synthesize(transcript, "en-US")
"""

from typing import Optional, Protocol


class SpeechService(Protocol):
    """
    Interface for speech-to-text and text-to-speech.

    Implementations accept raw PCM16 audio at 16kHz and return WAV audio.
    """

    async def transcribe(self, audio_data: bytes, language_code: str) -> str:
        """
        Transcribe audio to text.

        Args:
            audio_data: Raw PCM16 audio bytes at 16kHz
            language_code: Language code (e.g., "en-US", "he-IL")

        Returns:
            Transcribed text (empty when nothing was recognized)
        """
        ...

    async def synthesize(
        self,
        text: str,
        language_code: str,
        voice: Optional[str] = None
    ) -> bytes:
        """
        Synthesize speech from text.

        Args:
            text: Text to synthesize
            language_code: Language code (e.g., "en-US", "he-IL")
            voice: Optional voice name for the TTS service

        Returns:
            WAV audio bytes (PCM16, 16kHz)
        """
        ...

    async def close(self) -> None:
        ...
