import pytest

from gateway.services.core.exceptions import InvalidRequestError, ProviderError
from gateway.services.core.types import DetectionResult
from gateway.services.translation import LanguageService, describe_language

from helpers import RecordingSleep, StubProvider, make_dispatcher


@pytest.mark.asyncio
async def test_backoff_between_transient_attempts():
    sleep = RecordingSleep()
    provider = StubProvider(failures=[ProviderError.transient("503"), ProviderError.transient("503")])
    dispatcher = make_dispatcher([provider], max_attempts=3, sleep=sleep)

    dispatched = await dispatcher.call("translate", lambda p: p.supported_languages())

    assert dispatched.attempts == 3
    assert dispatched.provider_id == "stub"
    assert len(sleep.delays) == 2
    # base 100ms, doubled and jittered down by at most half
    assert 0.05 <= sleep.delays[0] <= 0.1
    assert 0.1 <= sleep.delays[1] <= 0.2


@pytest.mark.asyncio
async def test_no_sleep_after_last_attempt():
    sleep = RecordingSleep()
    provider = StubProvider(failures=[ProviderError.transient("503")] * 3)
    dispatcher = make_dispatcher([provider], max_attempts=3, sleep=sleep)

    with pytest.raises(ProviderError) as exc_info:
        await dispatcher.call("languages", lambda p: p.supported_languages())

    assert exc_info.value.retryable
    assert exc_info.value.provider_id == "stub"
    assert len(sleep.delays) == 2


@pytest.mark.asyncio
async def test_permanent_error_skips_retries_but_not_fallback():
    sleep = RecordingSleep()
    primary = StubProvider("primary", failures=[ProviderError.permanent("quota exceeded")])
    secondary = StubProvider("secondary", failures=[ProviderError.permanent("bad pair")])
    dispatcher = make_dispatcher([primary, secondary], sleep=sleep)

    with pytest.raises(ProviderError) as exc_info:
        await dispatcher.call("languages", lambda p: p.supported_languages())

    # The last provider's error surfaces
    assert exc_info.value.message == "bad pair"
    assert exc_info.value.provider_id == "secondary"
    assert sleep.delays == []


@pytest.mark.asyncio
async def test_unexpected_adapter_exception_becomes_permanent_error():
    sleep = RecordingSleep()
    primary = StubProvider("primary", failures=[KeyError("translatedText")])
    secondary = StubProvider("secondary")
    dispatcher = make_dispatcher([primary, secondary], sleep=sleep)

    dispatched = await dispatcher.call("languages", lambda p: p.supported_languages())

    assert dispatched.provider_id == "secondary"
    assert dispatched.attempts == 2
    assert sleep.delays == []


@pytest.mark.asyncio
async def test_unexpected_adapter_exception_surfaces_as_provider_error():
    provider = StubProvider(failures=[IndexError("index out of range in self")])
    dispatcher = make_dispatcher([provider])

    with pytest.raises(ProviderError) as exc_info:
        await dispatcher.call("languages", lambda p: p.supported_languages())

    assert not exc_info.value.retryable
    assert exc_info.value.provider_id == "stub"
    assert "IndexError" in exc_info.value.message


def test_dispatcher_requires_a_provider():
    with pytest.raises(ValueError):
        make_dispatcher([])


@pytest.mark.asyncio
async def test_detect_clamps_confidence():
    provider = StubProvider(detection=DetectionResult(language="fr", confidence=1.7, provider_id="stub"))
    service = LanguageService(make_dispatcher([provider]))

    result = await service.detect("Bonjour tout le monde")
    assert result.language == "fr"
    assert result.confidence == 1.0


@pytest.mark.asyncio
async def test_detect_rejects_blank_text():
    service = LanguageService(make_dispatcher([StubProvider()]))
    with pytest.raises(InvalidRequestError):
        await service.detect("   ")


@pytest.mark.asyncio
async def test_list_languages_catalog():
    provider = StubProvider(languages=[("he", "Hebrew"), ("en", "English"), ("ja", "Japanese"), ("en", "English")])
    service = LanguageService(make_dispatcher([provider]))

    languages = await service.list_languages()

    assert [lang.code for lang in languages] == ["en", "he", "ja"]
    hebrew = languages[1]
    assert hebrew.direction == "rtl"
    assert hebrew.supports_transliteration
    assert languages[0].direction == "ltr"
    assert not languages[0].supports_transliteration


@pytest.mark.asyncio
async def test_list_languages_falls_back():
    broken = StubProvider("broken", failures=[ProviderError.permanent("not configured")])
    working = StubProvider("working", languages=[("de", "German")])
    service = LanguageService(make_dispatcher([broken, working]))

    languages = await service.list_languages()
    assert [lang.code for lang in languages] == ["de"]


def test_describe_language_uses_primary_subtag():
    info = describe_language("ar-EG")
    assert info.name == "Arabic"
    assert info.direction == "rtl"
    assert describe_language("pt-BR", "Portuguese (Brazil)").name == "Portuguese (Brazil)"
