#!/usr/bin/env python3
"""
Comprehensive tests for the translation orchestrator.
Tests automatic runs, retries, failed batches, progress reporting and the
interactive review loop.
"""

import asyncio

import httpx

from polyloc.config import TranslatorSettings
from polyloc.errors import TranslationServiceError
from polyloc.translator import ReviewDecision, TranslationOrchestrator
from polyloc.translator.base import BatchResult

from conftest import FakeTranslator, count_words, make_entity


def run(orchestrator, entities):
    return asyncio.run(orchestrator.run(entities))


def test_automatic_run_translates_everything():
    """Test 1: Every missing language is translated and marked translated."""
    service = FakeTranslator()
    entities = [make_entity("a", "One", ["de", "ja"]), make_entity("b", "Two", ["de"])]
    orchestrator = TranslationOrchestrator(service, service.settings, count_words, context="A todo app")

    report = run(orchestrator, entities)

    assert entities[0].target["ja"].value == "ja:One"
    assert entities[0].target["ja"].state == "translated"
    assert entities[1].target["de"].value == "de:Two"
    assert report.translated_count == 2
    assert report.untranslated_count == 0
    assert report.failed_batches == []
    assert report.usage.total_tokens == 30
    assert service.contexts == ["A todo app", "A todo app"]


def test_retry_exhaustion_drops_batch():
    """Test 2: A batch that always fails is tried max_retry times, then skipped."""
    settings = TranslatorSettings(max_retry=3)
    service = FakeTranslator(settings, fail_times=100, error=TranslationServiceError("boom"))
    entities = [make_entity("a", "One", ["de"])]

    report = run(TranslationOrchestrator(service, settings, count_words), entities)

    assert len(service.batches) == 3
    assert len(report.failed_batches) == 1
    assert report.untranslated_count == 1
    assert entities[0].target["de"].value is None
    assert entities[0].target["de"].state == "initial"


def test_zero_retries_still_tries_once():
    """Test 3: max_retry of 0 means a single attempt."""
    settings = TranslatorSettings(max_retry=0)
    service = FakeTranslator(settings, fail_times=100, error=httpx.ConnectError("down"))

    report = run(TranslationOrchestrator(service, settings, count_words), [make_entity("a", "One", ["de"])])

    assert len(service.batches) == 1
    assert len(report.failed_batches) == 1


def test_retry_recovers():
    """Test 4: A transient failure is retried and the batch succeeds."""
    settings = TranslatorSettings(max_retry=2)
    service = FakeTranslator(settings, fail_times=1, error=httpx.ReadTimeout("slow"))
    entities = [make_entity("a", "One", ["de"])]

    report = run(TranslationOrchestrator(service, settings, count_words), entities)

    assert len(service.batches) == 2
    assert report.failed_batches == []
    assert entities[0].target["de"].value == "de:One"


def test_failed_batch_does_not_stop_others():
    """Test 5: Later batches run after an earlier one is given up."""
    settings = TranslatorSettings(max_retry=1)
    service = FakeTranslator(settings, fail_times=1, error=TranslationServiceError("boom"))
    entities = [make_entity("a", "One", ["de"]), make_entity("b", "Two", ["ja"])]

    report = run(TranslationOrchestrator(service, settings, count_words), entities)

    assert len(report.failed_batches) == 1
    assert entities[0].target["de"].value is None
    assert entities[1].target["ja"].value == "ja:Two"
    assert report.untranslated_count == 1


def test_unrequested_keys_and_languages_ignored():
    """Test 6: Results for keys or languages outside the batch are dropped."""

    class NoisyTranslator(FakeTranslator):
        async def translate_batch(self, batch, context=None, on_snapshot=None):
            self.batches.append(batch)
            return BatchResult(translations={
                "a": {"de": "Eins", "fr": "Un"},
                "zzz": {"de": "Fremd"},
            })

    service = NoisyTranslator()
    entities = [make_entity("a", "One", ["de"])]

    run(TranslationOrchestrator(service, service.settings, count_words), entities)

    assert entities[0].target["de"].value == "Eins"
    assert "fr" not in entities[0].target


def test_progress_is_monotonic_and_complete():
    """Test 7: Progress never goes back and ends at 1.0."""
    service = FakeTranslator(TranslatorSettings(max_output_tokens=20, buffer=0.0))
    entities = [make_entity(f"k{i}", "Hello World", ["ja"]) for i in range(5)]
    seen = []

    run(
        TranslationOrchestrator(service, service.settings, count_words, on_progress=seen.append),
        entities,
    )

    assert len(service.batches) == 3
    assert seen == sorted(seen)
    assert len(set(seen)) == len(seen)
    assert seen[-1] == 1.0
    assert all(0 < p <= 1.0 for p in seen)


def test_review_approve_and_decline():
    """Test 8: Approved strings become final, declined ones reviewed/declined."""
    service = FakeTranslator()
    entities = [make_entity("a", "One", ["de"]), make_entity("b", "Two", ["de"])]
    decisions = {"a": ReviewDecision.approve(), "b": ReviewDecision.decline()}

    report = run(
        TranslationOrchestrator(service, service.settings, count_words, reviewer=lambda e: decisions[e.key]),
        entities,
    )

    assert entities[0].target["de"].state == "final"
    assert entities[1].target["de"].state == "reviewed"
    assert entities[1].target["de"].sub_state == "declined"
    assert entities[1].target["de"].value == "de:Two"
    assert report.approved == 1
    assert report.declined == 1
    assert len(service.batches) == 1


def test_review_refine_retranslates_with_note():
    """Test 9: Refined strings are sent again with the reviewer's note."""
    service = FakeTranslator()
    entity = make_entity("a", "One", ["de"], notes=["Counter label"])
    calls = []

    async def reviewer(e):
        calls.append(e.target["de"].value)
        if len(calls) == 1:
            return ReviewDecision.refine("Use the word 'Nummer'")
        return ReviewDecision.approve()

    report = run(
        TranslationOrchestrator(service, service.settings, count_words, reviewer=reviewer),
        [entity],
    )

    assert len(service.batches) == 2
    assert service.batches[1].contents[0].notes == ["Counter label", "Use the word 'Nummer'"]
    assert entity.target["de"].state == "final"
    assert entity.target["de"].sub_state is None
    assert report.refine_needed == 1
    assert report.approved == 1
    assert report.translated_count == 2


def test_nothing_to_translate():
    """Test 10: Fully translated input makes no requests."""
    service = FakeTranslator()
    entity = make_entity("a", "One", ["de"], state="final")

    report = run(TranslationOrchestrator(service, service.settings, count_words), [entity])

    assert service.batches == []
    assert report.translated_count == 0
    assert report.to_dict()["entities"] == 1


def test_review_skips_languages_left_untranslated():
    """Test 11: Approving a partly failed string keeps the failed language untranslated."""

    class JapaneseFails(FakeTranslator):
        async def translate_batch(self, batch, context=None, on_snapshot=None):
            if "ja" in batch.target_languages:
                self.batches.append(batch)
                raise TranslationServiceError("ja unavailable")
            return await super().translate_batch(batch, context, on_snapshot)

    # 7 tokens per language against a budget of 10: one request per language
    settings = TranslatorSettings(max_output_tokens=10, buffer=0.0, max_retry=1)
    service = JapaneseFails(settings)
    entity = make_entity("a", "One", ["de", "ja"])
    shown = []

    def reviewer(e):
        shown.append(e.reviewable_languages)
        return ReviewDecision.approve()

    report = run(TranslationOrchestrator(service, settings, count_words, reviewer=reviewer), [entity])

    assert [b.target_languages for b in service.batches] == [["de"], ["ja"]]
    assert shown == [["de"]]
    assert entity.target["de"].state == "final"
    assert entity.target["ja"].value is None
    assert entity.target["ja"].state == "initial"
    assert report.approved == 1
    assert report.untranslated_count == 1
    assert len(report.failed_batches) == 1


def test_interactive_progress_reaches_one_only_at_the_end():
    """Test 12: With a reviewer, 1.0 is reported once, after the last pass."""
    service = FakeTranslator()
    seen = []
    decisions = iter([ReviewDecision.refine("Shorter"), ReviewDecision.approve()])
    progress_at_review = []

    def reviewer(e):
        progress_at_review.append(seen[-1])
        return next(decisions)

    run(
        TranslationOrchestrator(service, service.settings, count_words, reviewer=reviewer, on_progress=seen.append),
        [make_entity("a", "One", ["de"])],
    )

    assert len(service.batches) == 2
    assert all(p < 1.0 for p in progress_at_review)
    assert progress_at_review == sorted(progress_at_review)
    assert seen == sorted(seen)
    assert seen.count(1.0) == 1
    assert seen[-1] == 1.0
