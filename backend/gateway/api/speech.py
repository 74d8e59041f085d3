"""
Speech API - STT/TTS forwarding

Audio is passed through as raw bytes; no transcoding happens here.
"""
from fastapi import APIRouter, Depends, File, Form, Request, Response, UploadFile
import logging

from gateway.api.deps import admit_request, get_gateway, rate_limit_headers
from gateway.config.constants import MAX_TRANSCRIBE_BYTES
from gateway.schemas.speech import SynthesizeRequest, TranscribeResponse
from gateway.services.container import Gateway
from gateway.services.core.exceptions import InvalidRequestError, ServiceUnavailableError
from gateway.services.core.types import Identity
from gateway.services.speech import SpeechService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/speech")


def _require_speech(gateway: Gateway) -> SpeechService:
    if gateway.speech is None:
        raise ServiceUnavailableError("Speech is not configured (SPEECH_BACKEND=none)")
    return gateway.speech


@router.post("/synthesize")
async def synthesize(
    payload: SynthesizeRequest,
    request: Request,
    identity: Identity = Depends(admit_request),
    gateway: Gateway = Depends(get_gateway),
):
    """Synthesize speech; returns WAV audio."""
    speech = _require_speech(gateway)
    audio = await speech.synthesize(payload.text, payload.language, payload.voice)
    logger.info(f"Synthesized {len(audio)} bytes ({payload.language}) for {identity.subject}")
    # A returned Response does not inherit headers set by dependencies
    return Response(
        content=audio,
        media_type="audio/wav",
        headers=rate_limit_headers(request.state.rate_limit),
    )


@router.post("/transcribe", response_model=TranscribeResponse)
async def transcribe(
    file: UploadFile = File(...),
    language: str = Form(...),
    identity: Identity = Depends(admit_request),
    gateway: Gateway = Depends(get_gateway),
):
    """Transcribe an uploaded PCM16 16kHz audio file."""
    speech = _require_speech(gateway)
    audio = await file.read()
    if not audio:
        raise InvalidRequestError("file", "audio file is empty")
    if len(audio) > MAX_TRANSCRIBE_BYTES:
        raise InvalidRequestError("file", f"audio file exceeds {MAX_TRANSCRIBE_BYTES} bytes")

    transcript = await speech.transcribe(audio, language)
    return TranscribeResponse(transcript=transcript, language=language)
