"""
Application-wide constants for the translation gateway.

This file centralizes operational parameters and static catalogs so that
tuning values stay consistent across the pipeline components.

Note: Environment-dependent settings (Redis, database, provider credentials,
cache/rate-limit sizing) belong in settings.py.
"""

# ==============================================================================
# REQUEST LIMITS
# ==============================================================================

# Maximum number of texts accepted in a single translate request
MAX_TEXTS_PER_REQUEST: int = 128

# Maximum characters per text in a translate request
MAX_TEXT_LENGTH: int = 10000

# Sentinel source language meaning "detect it"
AUTO_LANGUAGE: str = "auto"

# ==============================================================================
# TRANSLATION MEMORY
# ==============================================================================

# Prefix for translation memory keys (shared with the Redis backend)
CACHE_KEY_PREFIX: str = "tm:"

# Bump when the fingerprint layout changes; old entries become unreachable
CACHE_KEY_VERSION: int = 1

# ==============================================================================
# RATE LIMITING
# ==============================================================================

# Redis key prefix for fixed-window counters
RATE_LIMIT_KEY_PREFIX: str = "ratelimit:"

# Prune idle in-memory windows once this many identities are tracked
RATE_LIMIT_PRUNE_THRESHOLD: int = 10000

# ==============================================================================
# PROVIDER TRANSPORT LIMITS
# ==============================================================================

# Google Cloud Translation v3 accepts at most 1024 contents per request; keep
# well below to stay under the payload size limit
GCP_MAX_CONTENTS_PER_CALL: int = 128

# LibreTranslate handles list payloads, but large lists block its workers
SELF_HOSTED_MAX_TEXTS_PER_CALL: int = 32

# Local models run in a thread; small batches keep latency predictable
ON_DEVICE_MAX_TEXTS_PER_CALL: int = 8

# Retry jitter ratio (0 = no jitter, 1 = full jitter)
RETRY_JITTER_RATIO: float = 0.5

# ==============================================================================
# SPEECH
# ==============================================================================

# Sample rate for synthesized and transcribed audio (Hz)
AUDIO_SAMPLE_RATE: int = 16000

# Maximum accepted upload size for transcription (bytes, ~60s of PCM16)
MAX_TRANSCRIBE_BYTES: int = 2 * 1024 * 1024

# ==============================================================================
# LANGUAGE CATALOG
# ==============================================================================

# Display names for common language codes (primary subtag)
LANGUAGE_NAMES: dict[str, str] = {
    "af": "Afrikaans",
    "ar": "Arabic",
    "bg": "Bulgarian",
    "bn": "Bengali",
    "ca": "Catalan",
    "cs": "Czech",
    "da": "Danish",
    "de": "German",
    "el": "Greek",
    "en": "English",
    "es": "Spanish",
    "et": "Estonian",
    "fa": "Persian",
    "fi": "Finnish",
    "fr": "French",
    "ga": "Irish",
    "he": "Hebrew",
    "hi": "Hindi",
    "hr": "Croatian",
    "hu": "Hungarian",
    "id": "Indonesian",
    "it": "Italian",
    "ja": "Japanese",
    "ko": "Korean",
    "lt": "Lithuanian",
    "lv": "Latvian",
    "nl": "Dutch",
    "no": "Norwegian",
    "pl": "Polish",
    "ps": "Pashto",
    "pt": "Portuguese",
    "ro": "Romanian",
    "ru": "Russian",
    "sd": "Sindhi",
    "sk": "Slovak",
    "sl": "Slovenian",
    "sr": "Serbian",
    "sv": "Swedish",
    "ta": "Tamil",
    "th": "Thai",
    "tr": "Turkish",
    "ug": "Uyghur",
    "uk": "Ukrainian",
    "ur": "Urdu",
    "vi": "Vietnamese",
    "yi": "Yiddish",
    "zh": "Chinese",
}

# Languages written right-to-left (primary subtag)
RTL_LANGUAGES: frozenset[str] = frozenset({
    "ar", "dv", "fa", "he", "iw", "ps", "sd", "ug", "ur", "yi",
})

# Languages for which romanization/transliteration is offered
TRANSLITERATION_LANGUAGES: frozenset[str] = frozenset({
    "ar", "bn", "el", "fa", "he", "hi", "ja", "ko", "ru", "sr", "ta", "th", "uk", "zh",
})
