import asyncio

import pytest

from gateway.services.core.exceptions import (
    InvalidRequestError,
    PartialFailureError,
    ProviderError,
    RequestTimeoutError,
    TotalFailureError,
)
from gateway.services.core.fingerprint import cache_key
from gateway.services.core.types import BatchRequest, ProviderResult, TranslationOptions, TranslationUnit
from gateway.services.providers.on_device import OnDeviceProvider

from helpers import BrokenCache, StubProvider, make_coordinator


@pytest.mark.asyncio
async def test_full_success_is_index_aligned(memory_cache):
    provider = StubProvider(translations={"one": "uno", "two": "dos", "three": "tres"})
    coordinator = make_coordinator([provider], memory_cache)

    result = await coordinator.translate(BatchRequest.from_texts(["one", "two", "three"], target="es", source="en"))

    assert len(result) == 3
    assert result.texts == ["uno", "dos", "tres"]
    assert [r.index for r in result.results] == [0, 1, 2]
    assert provider.calls == [["one", "two", "three"]]


@pytest.mark.asyncio
async def test_hello_scenario_then_cache_hit(memory_cache):
    provider = StubProvider(translations={"Hello": "¡Hola!"}, detected_source="en")
    coordinator = make_coordinator([provider], memory_cache)
    request = BatchRequest.from_texts(["Hello"], target="es", source="auto")

    first = await coordinator.translate(request)
    assert first.results[0].to_dict() == {"index": 0, "text": "¡Hola!", "detected_source": "en"}
    assert len(provider.calls) == 1

    second = await coordinator.translate(BatchRequest.from_texts(["Hello"], target="es", source="auto"))
    assert second.texts == ["¡Hola!"]
    assert second.results[0].detected_source == "en"
    assert second.cache_hits == 1
    assert second.provider_calls == 0
    assert len(provider.calls) == 1


@pytest.mark.asyncio
async def test_repeated_request_is_idempotent(memory_cache):
    provider = StubProvider()
    coordinator = make_coordinator([provider], memory_cache)
    texts = ["a", "b", "a", "c"]

    results = [
        (await coordinator.translate(BatchRequest.from_texts(texts, target="fr", source="en"))).texts
        for _ in range(3)
    ]
    assert results[0] == ["[fr] a", "[fr] b", "[fr] a", "[fr] c"]
    assert results[0] == results[1] == results[2]
    assert len(provider.calls) == 1


@pytest.mark.asyncio
async def test_glossary_separates_cache_entries(memory_cache):
    provider = StubProvider()
    coordinator = make_coordinator([provider], memory_cache)

    plain = BatchRequest.from_texts(["bank"], target="de", source="en")
    with_glossary = BatchRequest.from_texts(
        ["bank"], target="de", source="en", options=TranslationOptions(glossary_id="finance")
    )
    await coordinator.translate(plain)
    await coordinator.translate(with_glossary)

    assert len(provider.calls) == 2


@pytest.mark.asyncio
async def test_partial_failure_preserves_indices(memory_cache):
    provider = StubProvider(fail_texts={"c": ProviderError.permanent("unsupported language pair")})
    coordinator = make_coordinator([provider], memory_cache, max_units_per_call=2)

    with pytest.raises(PartialFailureError) as exc_info:
        await coordinator.translate(BatchRequest.from_texts(["a", "b", "c"], target="es", source="en"))

    error = exc_info.value
    assert [s.index for s in error.successes] == [0, 1]
    assert error.failed_indices == [2]
    assert error.failures[0].kind == "permanent"
    assert not error.failures[0].retryable

    body = error.to_dict()
    assert body["kind"] == "partial_failure"
    assert body["translations"] == [{"text": "[es] a"}, {"text": "[es] b"}, None]
    assert body["failures"] == [
        {"index": 2, "kind": "permanent", "retryable": False, "reason": "unsupported language pair"}
    ]
    # Permanent errors are not retried
    assert provider.calls == [["a", "b"], ["c"]]


@pytest.mark.asyncio
async def test_successful_groups_are_cached_after_partial_failure(memory_cache):
    provider = StubProvider(fail_texts={"c": ProviderError.permanent("bad pair")})
    coordinator = make_coordinator([provider], memory_cache, max_units_per_call=2)

    with pytest.raises(PartialFailureError):
        await coordinator.translate(BatchRequest.from_texts(["a", "b", "c"], target="es", source="en"))

    provider.fail_texts.clear()
    result = await coordinator.translate(BatchRequest.from_texts(["a", "b", "c"], target="es", source="en"))
    assert result.cache_hits == 2
    assert provider.calls[-1] == ["c"]


@pytest.mark.asyncio
async def test_total_failure(memory_cache):
    provider = StubProvider(fail_texts={
        "a": ProviderError.permanent("quota exceeded"),
        "b": ProviderError.permanent("quota exceeded"),
    })
    coordinator = make_coordinator([provider], memory_cache, max_units_per_call=1)

    with pytest.raises(TotalFailureError) as exc_info:
        await coordinator.translate(BatchRequest.from_texts(["a", "b"], target="es", source="en"))

    assert exc_info.value.failed_indices == [0, 1]
    assert exc_info.value.to_dict()["translations"] == [None, None]
    assert len(memory_cache) == 0


@pytest.mark.asyncio
async def test_transient_then_success(memory_cache):
    provider = StubProvider(
        translations={"Hello": "Hallo"},
        failures=[ProviderError.transient("503"), ProviderError.transient("503")],
    )
    coordinator = make_coordinator([provider], memory_cache, max_attempts=3)

    result = await coordinator.translate(BatchRequest.from_texts(["Hello"], target="de", source="en"))

    assert result.texts == ["Hallo"]
    assert result.provider_calls == 3
    assert len(provider.calls) == 3


@pytest.mark.asyncio
async def test_exhausted_transient_retries_are_retryable_failures(memory_cache):
    provider = StubProvider(failures=[ProviderError.transient("503")] * 5)
    coordinator = make_coordinator([provider], memory_cache, max_attempts=2)

    with pytest.raises(TotalFailureError) as exc_info:
        await coordinator.translate(BatchRequest.from_texts(["Hello"], target="de", source="en"))

    failure = exc_info.value.failures[0]
    assert failure.kind == "transient"
    assert failure.retryable
    assert len(provider.calls) == 2


@pytest.mark.asyncio
async def test_falls_back_to_next_provider(memory_cache):
    primary = StubProvider("primary", failures=[ProviderError.permanent("glossary not found")])
    secondary = StubProvider("secondary", translations={"Hello": "Bonjour"})
    coordinator = make_coordinator([primary, secondary], memory_cache)

    result = await coordinator.translate(BatchRequest.from_texts(["Hello"], target="fr", source="en"))

    assert result.texts == ["Bonjour"]
    assert result.results[0].provider_id == "secondary"
    assert len(primary.calls) == 1


@pytest.mark.asyncio
async def test_same_language_passes_through_without_provider_call(memory_cache):
    provider = StubProvider()
    coordinator = make_coordinator([provider], memory_cache)

    result = await coordinator.translate(BatchRequest.from_texts(["color"], target="en-US", source="en"))

    assert result.texts == ["color"]
    assert provider.calls == []


@pytest.mark.asyncio
async def test_blank_texts_pass_through_without_provider_call(memory_cache):
    provider = StubProvider()
    coordinator = make_coordinator([provider], memory_cache)

    result = await coordinator.translate(
        BatchRequest.from_texts(["Hello there my friend", "", "   "], target="es", source="auto")
    )

    assert result.texts == ["[es] Hello there my friend", "", "   "]
    assert provider.calls == [["Hello there my friend"]]


@pytest.mark.asyncio
async def test_unexpected_adapter_error_is_isolated_to_its_group(memory_cache):
    def loader(source, target):
        def run(texts):
            if any(len(text) > 20 for text in texts):
                raise IndexError("index out of range in self")
            return [f"{source}>{target}:{text}" for text in texts]
        return run

    provider = OnDeviceProvider(languages=["en", "de"], loader=loader)
    coordinator = make_coordinator([provider], memory_cache, max_units_per_call=1)

    with pytest.raises(PartialFailureError) as exc_info:
        await coordinator.translate(BatchRequest.from_texts(["short", "x" * 50], target="de", source="en"))

    error = exc_info.value
    assert [(s.index, s.text) for s in error.successes] == [(0, "en>de:short")]
    assert error.failed_indices == [1]
    assert error.failures[0].kind == "permanent"
    assert "index out of range" in error.failures[0].reason


@pytest.mark.asyncio
async def test_non_provider_exception_from_stub_is_a_unit_failure(memory_cache):
    provider = StubProvider(fail_texts={"b": ValueError("malformed response")})
    coordinator = make_coordinator([provider], memory_cache, max_units_per_call=1)

    with pytest.raises(PartialFailureError) as exc_info:
        await coordinator.translate(BatchRequest.from_texts(["a", "b", "c"], target="es", source="en"))

    assert exc_info.value.failed_indices == [1]
    assert [s.text for s in exc_info.value.successes] == ["[es] a", "[es] c"]


@pytest.mark.asyncio
async def test_detected_source_equal_to_target_echoes_input(memory_cache):
    provider = StubProvider(translations={"Guten Tag": "Guten Tag!"}, detected_source="de")
    coordinator = make_coordinator([provider], memory_cache)

    result = await coordinator.translate(BatchRequest.from_texts(["Guten Tag"], target="de"))

    assert result.texts == ["Guten Tag"]
    assert result.results[0].detected_source == "de"


@pytest.mark.asyncio
async def test_mixed_language_pairs_keep_order(memory_cache):
    provider = StubProvider()
    coordinator = make_coordinator([provider], memory_cache, max_units_per_call=2)
    units = (
        TranslationUnit("one", "en", "es"),
        TranslationUnit("two", "en", "fr"),
        TranslationUnit("three", "en", "es"),
        TranslationUnit("four", "en", "en"),
    )

    result = await coordinator.translate(BatchRequest(units=units))

    assert result.texts == ["[es] one", "[fr] two", "[es] three", "four"]


@pytest.mark.asyncio
async def test_cache_outage_degrades_to_misses():
    provider = StubProvider()
    coordinator = make_coordinator([provider], BrokenCache())

    for _ in range(2):
        result = await coordinator.translate(BatchRequest.from_texts(["Hello"], target="es", source="en"))
        assert result.texts == ["[es] Hello"]
    assert len(provider.calls) == 2


@pytest.mark.asyncio
async def test_request_timeout_caches_nothing(memory_cache):
    provider = StubProvider(delay=1.0)
    coordinator = make_coordinator([provider], memory_cache, request_timeout_ms=50)

    with pytest.raises(RequestTimeoutError) as exc_info:
        await coordinator.translate(BatchRequest.from_texts(["Hello"], target="es", source="en"))

    assert exc_info.value.status_code == 504
    assert len(memory_cache) == 0


@pytest.mark.asyncio
async def test_request_timeout_discards_finished_groups(memory_cache):
    fast_and_slow = StubProvider()
    original = fast_and_slow.translate_batch

    async def translate_batch(units, options):
        if units[0].text == "slow":
            await asyncio.sleep(1.0)
        return await original(units, options)

    fast_and_slow.translate_batch = translate_batch
    coordinator = make_coordinator([fast_and_slow], memory_cache, max_units_per_call=1, request_timeout_ms=100)

    with pytest.raises(RequestTimeoutError):
        await coordinator.translate(BatchRequest.from_texts(["fast", "slow"], target="es", source="en"))

    assert len(memory_cache) == 0


@pytest.mark.asyncio
async def test_provider_timeout_is_transient_and_falls_back(memory_cache):
    slow = StubProvider("slow", delay=1.0)
    fast = StubProvider("fast", translations={"Hello": "Hola"})
    coordinator = make_coordinator([slow, fast], memory_cache, max_attempts=2, provider_timeout_ms=20)

    result = await coordinator.translate(BatchRequest.from_texts(["Hello"], target="es", source="en"))

    assert result.texts == ["Hola"]
    assert len(slow.calls) == 2


@pytest.mark.asyncio
async def test_mismatched_result_count_is_retried(memory_cache):
    provider = StubProvider()
    original = provider.translate_batch
    short_once = [True]

    async def translate_batch(units, options):
        results = await original(units, options)
        if short_once[0]:
            short_once[0] = False
            return results[:-1]
        return results

    provider.translate_batch = translate_batch
    coordinator = make_coordinator([provider], memory_cache)

    result = await coordinator.translate(BatchRequest.from_texts(["a", "b"], target="es", source="en"))
    assert result.texts == ["[es] a", "[es] b"]
    assert len(provider.calls) == 2


@pytest.mark.asyncio
async def test_slow_older_attempt_does_not_overwrite_newer_result(memory_cache):
    provider = StubProvider()
    responses = iter([(0.2, "old"), (0.0, "new")])

    async def translate_batch(units, options):
        delay, text = next(responses)
        await asyncio.sleep(delay)
        return [ProviderResult(text=text, provider_id="stub", latency_ms=0.0) for _ in units]

    provider.translate_batch = translate_batch
    stamps = iter([100, 200])
    coordinator = make_coordinator([provider], memory_cache, sequence_clock=lambda: next(stamps))
    request = BatchRequest.from_texts(["Hello"], target="es", source="en")

    slow = asyncio.create_task(coordinator.translate(request))
    await asyncio.sleep(0.05)
    fast = await coordinator.translate(request)

    assert fast.texts == ["new"]
    assert (await slow).texts == ["old"]
    entry = await memory_cache.lookup(cache_key(request.units[0], request.options))
    assert entry.result_text == "new"
    assert entry.sequence == 200


@pytest.mark.asyncio
async def test_empty_batch_is_rejected(memory_cache):
    coordinator = make_coordinator([StubProvider()], memory_cache)
    with pytest.raises(InvalidRequestError) as exc_info:
        await coordinator.translate(BatchRequest(units=()))
    assert exc_info.value.field == "texts"
