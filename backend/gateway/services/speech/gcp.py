"""
GCP Speech Service

Handles Google Cloud Speech-to-Text and Text-to-Speech operations.
SDK clients are synchronous and created on first use; calls run in the
default executor, bounded by the provider timeout.
"""

import asyncio
import functools
import logging
import threading
from typing import Optional

from google.auth import exceptions as auth_exceptions
from google.cloud import speech, texttospeech

from gateway.config.constants import AUDIO_SAMPLE_RATE
from gateway.config.google import ensure_google_credentials
from gateway.services.core.exceptions import ProviderError
from gateway.services.providers.cloud import GOOGLE_CALL_ERRORS, classify_google_error

logger = logging.getLogger(__name__)


class GCPSpeechService:
    """Speech-to-Text and Text-to-Speech through Google Cloud."""

    provider_id = "gcp_speech"

    def __init__(
        self,
        credentials_path: Optional[str] = None,
        timeout_s: float = 10.0,
        stt_client=None,
        tts_client=None,
    ):
        self.timeout_s = timeout_s
        self._credentials_path = credentials_path
        self._stt_client = stt_client
        self._tts_client = tts_client
        self._lock = threading.Lock()

    def _get_stt_client(self):
        with self._lock:
            if self._stt_client is None:
                ensure_google_credentials(self._credentials_path)
                try:
                    self._stt_client = speech.SpeechClient()
                except auth_exceptions.DefaultCredentialsError as e:
                    raise ProviderError.permanent(f"Google credentials not found: {e}", self.provider_id) from e
            return self._stt_client

    def _get_tts_client(self):
        with self._lock:
            if self._tts_client is None:
                ensure_google_credentials(self._credentials_path)
                try:
                    self._tts_client = texttospeech.TextToSpeechClient()
                except auth_exceptions.DefaultCredentialsError as e:
                    raise ProviderError.permanent(f"Google credentials not found: {e}", self.provider_id) from e
            return self._tts_client

    def _transcribe_sync(self, audio_data: bytes, language_code: str) -> str:
        config = speech.RecognitionConfig(
            encoding=speech.RecognitionConfig.AudioEncoding.LINEAR16,
            sample_rate_hertz=AUDIO_SAMPLE_RATE,
            language_code=language_code,
            enable_automatic_punctuation=True,
        )
        audio = speech.RecognitionAudio(content=audio_data)

        try:
            response = self._get_stt_client().recognize(config=config, audio=audio)
        except GOOGLE_CALL_ERRORS as e:
            raise classify_google_error(e, self.provider_id) from e

        if not response.results:
            return ""
        return " ".join(
            result.alternatives[0].transcript.strip()
            for result in response.results
            if result.alternatives
        ).strip()

    def _synthesize_sync(self, text: str, language_code: str, voice: Optional[str]) -> bytes:
        voice_params = texttospeech.VoiceSelectionParams(
            language_code=language_code,
            name=voice or f"{language_code}-Standard-A",
        )
        audio_config = texttospeech.AudioConfig(
            audio_encoding=texttospeech.AudioEncoding.LINEAR16,
            sample_rate_hertz=AUDIO_SAMPLE_RATE,
            speaking_rate=1.0,
            pitch=0.0,
        )
        synthesis_input = texttospeech.SynthesisInput(text=text)

        try:
            response = self._get_tts_client().synthesize_speech(
                input=synthesis_input,
                voice=voice_params,
                audio_config=audio_config,
            )
        except GOOGLE_CALL_ERRORS as e:
            raise classify_google_error(e, self.provider_id) from e

        # LINEAR16 responses carry a WAV header
        return response.audio_content

    async def _run(self, operation: str, fn, *args):
        loop = asyncio.get_running_loop()
        try:
            return await asyncio.wait_for(
                loop.run_in_executor(None, functools.partial(fn, *args)),
                timeout=self.timeout_s,
            )
        except asyncio.TimeoutError as e:
            logger.warning(f"GCP {operation} timed out after {self.timeout_s}s")
            raise ProviderError.transient(f"{operation} timed out", self.provider_id) from e

    async def transcribe(self, audio_data: bytes, language_code: str) -> str:
        return await self._run("transcribe", self._transcribe_sync, audio_data, language_code)

    async def synthesize(self, text: str, language_code: str, voice: Optional[str] = None) -> bytes:
        return await self._run("synthesize", self._synthesize_sync, text, language_code, voice)

    async def close(self) -> None:
        return None
