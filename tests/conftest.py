#!/usr/bin/env python3
"""
Shared fixtures for polyloc tests.

Tests count tokens with a word/punctuation regex instead of tiktoken so that
budgets are easy to compute by hand and no encoding has to be downloaded.
"""

import re
from typing import Optional

import pytest

from polyloc.batcher import TranslationBatch
from polyloc.config import TranslatorSettings
from polyloc.entity import LocalizationEntity, LocalizationSource, LocalizationTarget
from polyloc.translator.base import BatchResult, TokenUsage, Translator

_TOKEN_RE = re.compile(r"\w+|[^\w\s]")


def count_words(text: str) -> int:
    """One token per word and per punctuation character."""
    return len(_TOKEN_RE.findall(text))


def make_entity(
    key: str,
    source: str,
    languages: list[str],
    notes: Optional[list[str]] = None,
    state: str = "initial",
    source_language: str = "en",
) -> LocalizationEntity:
    """Entity with one identical slot per language."""
    return LocalizationEntity(
        key=key,
        key_paths=["file", key],
        source=LocalizationSource(code=source_language, value=source),
        target={
            lang: LocalizationTarget(state=state, notes=list(notes or []))
            for lang in languages
        },
    )


class FakeTranslator(Translator):
    """
    Scripted translator.

    Translates every content to "<lang>:<source>" unless `fail_times` says
    the next calls should raise.
    """

    def __init__(self, settings: Optional[TranslatorSettings] = None, fail_times: int = 0, error=None):
        self.settings = settings or TranslatorSettings()
        self.fail_times = fail_times
        self.error = error
        self.batches: list[TranslationBatch] = []
        self.contexts: list[Optional[str]] = []

    async def fetch_config(self) -> TranslatorSettings:
        return self.settings

    async def translate_batch(self, batch, context=None, on_snapshot=None) -> BatchResult:
        self.batches.append(batch)
        self.contexts.append(context)
        if self.fail_times:
            self.fail_times -= 1
            raise self.error
        translations = {
            content.key: {lang: f"{lang}:{content.source}" for lang in batch.target_languages}
            for content in batch.contents
        }
        if on_snapshot:
            on_snapshot(translations)
        return BatchResult(
            translations=translations,
            usage=TokenUsage(prompt_tokens=10, completion_tokens=5, total_tokens=15),
        )


@pytest.fixture
def counter():
    """Fixture providing the regex token counter."""
    return count_words
