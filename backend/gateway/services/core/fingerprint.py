"""
Translation memory fingerprints.

A key covers every field that changes provider output. Fields are serialized
as a JSON array so that no separator inside a text can make two different
units collide, and ``None`` stays distinct from an empty string. Text is
hashed exactly as received: no trimming, no case folding.
"""
import hashlib
import json

from gateway.config.constants import CACHE_KEY_PREFIX, CACHE_KEY_VERSION
from gateway.services.core.types import TranslationOptions, TranslationUnit


def cache_key(unit: TranslationUnit, options: TranslationOptions) -> str:
    """
    Generate the translation memory key for a unit.

    Args:
        unit: Unit to fingerprint
        options: Batch options (glossary, formality, entity handling)

    Returns:
        ``tm:`` followed by a SHA-256 hex digest
    """
    canonical = json.dumps(
        [
            CACHE_KEY_VERSION,
            unit.text,
            unit.source_lang,
            unit.target_lang,
            unit.format,
            options.glossary_id,
            options.formality,
            options.preserve_entities,
        ],
        ensure_ascii=False,
        separators=(",", ":"),
    )
    digest = hashlib.sha256(canonical.encode("utf-8")).hexdigest()
    return f"{CACHE_KEY_PREFIX}{digest}"
