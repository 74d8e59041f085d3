"""
Provider Module

Translation provider adapters and the factory that builds the configured
fallback chain.

Providers:
- cloud: Google Cloud Translation v3
- self_hosted: LibreTranslate-compatible HTTP server
- on_device: local transformers models
"""
from typing import List

from gateway.config.settings import Settings
from .base import TranslationProvider, ProviderCall, split_calls
from .cloud import CloudProvider
from .self_hosted import SelfHostedProvider
from .on_device import OnDeviceProvider


def create_provider(provider_id: str, settings: Settings) -> TranslationProvider:
    """Create a provider adapter for a configured provider identifier."""
    timeout_s = settings.PROVIDER_TIMEOUT_MS / 1000.0

    if provider_id == "cloud":
        return CloudProvider(
            project_id=settings.GOOGLE_PROJECT_ID,
            location=settings.GOOGLE_LOCATION,
            credentials_path=settings.GOOGLE_APPLICATION_CREDENTIALS,
            timeout_s=timeout_s,
        )
    if provider_id == "self_hosted":
        return SelfHostedProvider(
            base_url=settings.SELF_HOSTED_URL,
            api_key=settings.SELF_HOSTED_API_KEY,
            timeout_s=timeout_s,
        )
    if provider_id == "on_device":
        return OnDeviceProvider(
            languages=settings.on_device_languages,
            model_template=settings.ON_DEVICE_MODEL_TEMPLATE,
            device=settings.ON_DEVICE_DEVICE,
        )
    raise ValueError(f"Unsupported translation provider `{provider_id}`.")


def build_providers(settings: Settings) -> List[TranslationProvider]:
    """Build the ordered provider chain from PROVIDERS (primary first)."""
    chain = settings.provider_chain
    if not chain:
        raise ValueError("PROVIDERS must name at least one provider")
    return [create_provider(provider_id, settings) for provider_id in chain]


__all__ = [
    "TranslationProvider",
    "ProviderCall",
    "split_calls",
    "CloudProvider",
    "SelfHostedProvider",
    "OnDeviceProvider",
    "create_provider",
    "build_providers",
]
