#!/usr/bin/env python3
"""
Drives entities through a translation service.

The orchestrator plans batches, sends them one at a time, retries failed
batches, applies results to the entities and reports progress. With a
reviewer it also runs the interactive approval loop: every newly translated
entity is approved, declined, or sent back for refinement with a note.
"""

import inspect
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional, Union

import httpx

from ..batcher import TokenBatcher, TokenCount, TranslationBatch, expected_text
from ..config import TranslatorSettings
from ..entity import (
    SUB_STATE_DECLINED,
    SUB_STATE_REFINE_NEEDED,
    LocalizationEntity,
    LocalizationTarget,
)
from ..errors import TranslationServiceError
from ..xliff.model import STATE_FINAL, STATE_REVIEWED, STATE_TRANSLATED
from .base import BatchResult, TokenUsage, Translator

logger = logging.getLogger(__name__)

# Share of a batch's progress that streaming alone may claim
STREAM_PROGRESS_CAP = 0.95

# Share of the remaining progress one pass claims when review may requeue strings
REVIEW_PASS_SHARE = 0.9

ACTION_APPROVE = "approve"
ACTION_DECLINE = "decline"
ACTION_REFINE = "refine"


@dataclass
class ReviewDecision:
    """Verdict of a reviewer on one entity."""
    action: str
    note: Optional[str] = None

    @classmethod
    def approve(cls) -> "ReviewDecision":
        return cls(ACTION_APPROVE)

    @classmethod
    def decline(cls) -> "ReviewDecision":
        return cls(ACTION_DECLINE)

    @classmethod
    def refine(cls, note: str) -> "ReviewDecision":
        return cls(ACTION_REFINE, note)


Reviewer = Callable[[LocalizationEntity], Union[ReviewDecision, Awaitable[ReviewDecision]]]
ProgressCallback = Callable[[float], None]


@dataclass
class TranslationReport:
    """
    Summary of an orchestrator run.

    Attributes:
        entities: Every entity the run was given, updated in place
        usage: Tokens spent on successful batches
        failed_batches: Batches abandoned after exhausting their retries
        untranslated_count: Entities still missing a translation
        translated_count: Entity translations applied, counting retranslations
        approved: Entities approved by the reviewer
        declined: Entities declined by the reviewer
        refine_needed: Refinement requests made by the reviewer
    """
    entities: list[LocalizationEntity] = field(default_factory=list)
    usage: TokenUsage = field(default_factory=TokenUsage)
    failed_batches: list[TranslationBatch] = field(default_factory=list)
    untranslated_count: int = 0
    translated_count: int = 0
    approved: int = 0
    declined: int = 0
    refine_needed: int = 0

    def to_dict(self) -> dict:
        return {
            "entities": len(self.entities),
            "translated": self.translated_count,
            "untranslated": self.untranslated_count,
            "failed_batches": len(self.failed_batches),
            "usage": self.usage.to_dict(),
            "review": {
                "approved": self.approved,
                "declined": self.declined,
                "refine_needed": self.refine_needed,
            },
        }


class TranslationOrchestrator:
    """
    Translates entities batch by batch.

    Batches run strictly one after another. A batch that keeps failing is
    given up after `max_retry` attempts; the run continues with the next one.
    """

    def __init__(
        self,
        service: Translator,
        settings: TranslatorSettings,
        count_tokens: TokenCount,
        context: Optional[str] = None,
        reviewer: Optional[Reviewer] = None,
        on_progress: Optional[ProgressCallback] = None,
    ):
        """
        Initialize orchestrator.

        Args:
            service: Translation service
            settings: Budget and retry settings of the service
            count_tokens: Token counter matching the service's tokenizer
            context: Project description sent with every batch
            reviewer: Interactive review function; None for automatic mode
            on_progress: Receives a non-decreasing fraction between 0 and 1
        """
        self.service = service
        self.settings = settings
        self.count_tokens = count_tokens
        self.context = context
        self.reviewer = reviewer
        self.on_progress = on_progress
        self.batcher = TokenBatcher(
            max_tokens=settings.max_output_tokens,
            buffer_ratio=settings.buffer,
            count_tokens=count_tokens,
        )
        self._progress = 0.0
        self._pass_start = 0.0
        self._pass_span = 1.0
        self._done_count = 0
        self._total_count = 0

    async def run(self, entities: list[LocalizationEntity]) -> TranslationReport:
        """
        Translate every entity that needs it.

        Args:
            entities: Entities to translate, updated in place

        Returns:
            TranslationReport

        Raises:
            ContentTooLongError: If a string cannot fit the token budget
        """
        report = TranslationReport(entities=list(entities))
        queue = list(entities)

        while queue:
            batches = self.batcher.create_batches(queue)
            self._start_pass(sum(b.string_count for b in batches))
            translated = await self._translate_batches(batches, queue, report)

            if self.reviewer is None:
                break
            queue = await self._review(translated, report)
            if queue:
                logger.info(f"Retranslating {len(queue)} strings after review")

        report.untranslated_count = sum(1 for e in report.entities if e.untranslated_languages)
        self._report_progress(1.0)
        logger.info(
            f"Translation finished: {report.translated_count} strings translated, "
            f"{len(report.failed_batches)} batches failed, {report.untranslated_count} untranslated"
        )
        return report

    async def _translate_batches(
        self,
        batches: list[TranslationBatch],
        queue: list[LocalizationEntity],
        report: TranslationReport,
    ) -> list[LocalizationEntity]:
        by_key = {entity.key: entity for entity in queue}
        translated: dict[str, LocalizationEntity] = {}

        for number, batch in enumerate(batches, start=1):
            logger.info(
                f"Batch {number}/{len(batches)}: {len(batch.contents)} strings -> "
                f"{', '.join(batch.target_languages)} (~{batch.expected_tokens} tokens)"
            )
            result = await self._translate_with_retry(batch)
            self._done_count += batch.string_count
            self._report_progress(self._fraction())

            if result is None:
                report.failed_batches.append(batch)
                continue

            report.usage = report.usage + result.usage
            for entity in self._apply(batch, result, by_key):
                translated[entity.key] = entity
                report.translated_count += 1

        return list(translated.values())

    async def _translate_with_retry(self, batch: TranslationBatch) -> Optional[BatchResult]:
        attempts = max(1, self.settings.max_retry)
        for attempt in range(1, attempts + 1):
            try:
                return await self.service.translate_batch(
                    batch,
                    context=self.context,
                    on_snapshot=lambda snapshot: self._on_snapshot(batch, snapshot),
                )
            except (httpx.HTTPError, TranslationServiceError) as e:
                logger.error(f"Batch attempt {attempt}/{attempts} failed: {e}")

        logger.error(
            f"Giving up on batch with keys {', '.join(c.key for c in batch.contents)}"
        )
        return None

    def _apply(
        self,
        batch: TranslationBatch,
        result: BatchResult,
        by_key: dict[str, LocalizationEntity],
    ) -> list[LocalizationEntity]:
        updated = []
        requested = {content.key for content in batch.contents}
        for key, by_language in result.translations.items():
            entity = by_key.get(key)
            if entity is None or key not in requested:
                logger.warning(f"Ignoring translation for unknown key {key!r}")
                continue
            for lang in batch.target_languages:
                text = by_language.get(lang)
                if text is None:
                    continue
                target = entity.target.setdefault(lang, LocalizationTarget())
                target.value = text
                target.state = STATE_TRANSLATED
                target.sub_state = None
            updated.append(entity)
        return updated

    async def _review(
        self,
        entities: list[LocalizationEntity],
        report: TranslationReport,
    ) -> list[LocalizationEntity]:
        requeue = []
        for entity in entities:
            if not entity.needs_review:
                continue
            decision = self.reviewer(entity)
            if inspect.isawaitable(decision):
                decision = await decision

            languages = entity.reviewable_languages
            if decision.action == ACTION_APPROVE:
                entity.update_state(STATE_FINAL, None, languages)
                report.approved += 1
            elif decision.action == ACTION_DECLINE:
                entity.update_state(STATE_REVIEWED, SUB_STATE_DECLINED, languages)
                report.declined += 1
            elif decision.action == ACTION_REFINE:
                entity.update_state(STATE_REVIEWED, SUB_STATE_REFINE_NEEDED, languages)
                if decision.note:
                    entity.add_note(decision.note, languages)
                report.refine_needed += 1
                requeue.append(entity)
            else:
                raise ValueError(f"Unknown review action: {decision.action}")
        return requeue

    def _start_pass(self, total: int) -> None:
        self._pass_start = self._progress
        remaining = 1.0 - self._progress
        self._pass_span = remaining * REVIEW_PASS_SHARE if self.reviewer else remaining
        self._done_count = 0
        self._total_count = total

    def _fraction(self) -> float:
        if not self._total_count:
            return self._pass_start + self._pass_span
        return self._pass_start + self._pass_span * self._done_count / self._total_count

    def _on_snapshot(self, batch: TranslationBatch, snapshot: dict[str, dict[str, str]]) -> None:
        if not self._total_count or not batch.expected_tokens:
            return
        received = sum(
            self.count_tokens(expected_text(key, text))
            for key, by_language in snapshot.items()
            for text in by_language.values()
        )
        share = self._pass_span * batch.string_count / self._total_count
        streamed = received / (batch.expected_tokens * (1 + self.settings.buffer))
        self._report_progress(self._fraction() + min(streamed * share, share * STREAM_PROGRESS_CAP))

    def _report_progress(self, fraction: float) -> None:
        fraction = min(1.0, fraction)
        if fraction <= self._progress:
            return
        self._progress = fraction
        if self.on_progress:
            self.on_progress(fraction)
