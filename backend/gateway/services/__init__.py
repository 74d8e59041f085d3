"""Request Pipeline Services.

This package contains the service modules that implement the translation
gateway's request pipeline.

Service Categories:
- Auth: Bearer authentication and credential stores
- Rate limit: Per-identity fixed-window admission
- Cache: Translation memory (in-process and Redis)
- Providers: Cloud, self-hosted and on-device translation adapters
- Translation: Retry/fallback dispatch, batch coordination, language catalog
- Speech: STT/TTS forwarding
- Core: Shared types, error taxonomy, cache fingerprints

The container module wires all of them into one Gateway object.
"""
