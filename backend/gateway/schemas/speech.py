from typing import Optional
from pydantic import BaseModel, Field

from gateway.config.constants import MAX_TEXT_LENGTH


class SynthesizeRequest(BaseModel):
    text: str = Field(..., min_length=1, max_length=MAX_TEXT_LENGTH)
    language: str = Field(..., min_length=1)  # BCP-47, e.g. "en-US"
    voice: Optional[str] = None


class TranscribeResponse(BaseModel):
    transcript: str
    language: str
