#!/usr/bin/env python3
"""
Token-based batching for translation requests.

Uses tiktoken to size batches by the number of tokens the model has to
generate, so that no request exceeds the output budget of the translation
service while as many strings as possible share a request.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Optional

import tiktoken

from .entity import LocalizationEntity, notes_for
from .errors import ContentTooLongError

logger = logging.getLogger(__name__)

TokenCount = Callable[[str], int]

DEFAULT_ENCODING = "cl100k_base"


class TokenCounter:
    """
    Counts tokens with the tokenizer the translation service reports.

    The same counter sizes batches and estimates streaming progress.
    """

    def __init__(self, tokenizer: str = "openai", model: str = "gpt-4"):
        """
        Initialize token counter.

        Args:
            tokenizer: Tokenizer family (only "openai" is supported)
            model: Model name used to pick the tiktoken encoding

        Raises:
            ValueError: For an unsupported tokenizer family
        """
        if tokenizer != "openai":
            raise ValueError(f"Unsupported tokenizer: {tokenizer}. Available: openai")
        self.tokenizer = tokenizer
        self.model = model
        try:
            self.encoder = tiktoken.encoding_for_model(model)
        except KeyError:
            logger.warning(f"Unknown tokenizer model {model!r}, falling back to {DEFAULT_ENCODING}")
            self.encoder = tiktoken.get_encoding(DEFAULT_ENCODING)

    def count(self, text: str) -> int:
        """Return the number of tokens in text."""
        return len(self.encoder.encode(text, disallowed_special=()))

    __call__ = count


def expected_text(key: str, value: str) -> str:
    """The line the model generates for one key in one language."""
    return f'"{key}" = "{value}"\n'


def source_text(key: str, value: str, notes: list[str]) -> str:
    """The request payload of one key, notes first."""
    comment = "".join(f"// {note}\n" for note in notes)
    return f'{comment}"{key}" = "{value}"\n\n'


@dataclass
class BatchContent:
    """One string of a batch."""
    key: str
    source: str
    notes: list[str] = field(default_factory=list)


@dataclass
class TranslationBatch:
    """
    A group of strings translated in one request.

    Attributes:
        source_language: Language of every content
        target_languages: Sorted languages requested for every content
        contents: Strings to translate
        source_tokens: Token cost of the request payload
        expected_tokens: Estimated number of generated tokens
    """
    source_language: str
    target_languages: list[str]
    contents: list[BatchContent]
    source_tokens: int = 0
    expected_tokens: int = 0

    @property
    def string_count(self) -> int:
        """Number of (content, language) pairs in the batch."""
        return len(self.contents) * len(self.target_languages)

    def to_payload(self) -> dict[str, Any]:
        """Request body understood by the translation service."""
        return {
            "sourceLanguage": self.source_language,
            "targetLanguages": list(self.target_languages),
            "contents": [
                {"key": c.key, "source": c.source, "notes": list(c.notes)}
                for c in self.contents
            ],
        }


class TokenBatcher:
    """
    Creates batches under a generated-token budget.

    The usable budget is max_tokens derated by buffer_ratio. Strings that
    share a source language and the same set of missing languages are packed
    together greedily in encounter order. A string whose languages do not fit
    one request is split by language instead.
    """

    def __init__(
        self,
        max_tokens: int = 4096,
        buffer_ratio: float = 0.3,
        count_tokens: Optional[TokenCount] = None,
    ):
        """
        Initialize token batcher.

        Args:
            max_tokens: Maximum output tokens of one request (default: 4096)
            buffer_ratio: Share of max_tokens kept as safety margin (default: 0.3)
            count_tokens: Token counting function (default: TokenCounter())
        """
        self.max_tokens = max_tokens
        self.buffer_ratio = buffer_ratio
        self.count_tokens = count_tokens or TokenCounter()

    @property
    def max_safe_tokens(self) -> int:
        return math.floor(self.max_tokens * (1 - self.buffer_ratio))

    def estimate_tokens(self, entity: LocalizationEntity) -> int:
        """
        Tokens generated for one language of an entity.

        Args:
            entity: Entity to estimate

        Returns:
            Estimated token count
        """
        return self.count_tokens(expected_text(entity.key, entity.source.value))

    def create_batches(self, entities: Iterable[LocalizationEntity]) -> list[TranslationBatch]:
        """
        Group entities that need translation into batches.

        Args:
            entities: Entities in the order they should be translated

        Returns:
            List of TranslationBatch objects

        Raises:
            ContentTooLongError: If one entity cannot fit even a single language
        """
        max_safe = self.max_safe_tokens
        pending = []
        for entity in entities:
            if entity.untranslated_languages:
                pending.append(entity)
            else:
                logger.debug(f"Skipping {entity.key}: nothing to translate")

        batches: list[TranslationBatch] = []
        while pending:
            entity = pending.pop(0)
            languages = entity.untranslated_languages
            expected = self.estimate_tokens(entity)

            if expected > max_safe:
                raise ContentTooLongError(entity.key, expected, max_safe)

            if expected * len(languages) > max_safe:
                # Spread the languages over several requests
                per_batch = max_safe // expected
                for start in range(0, len(languages), per_batch):
                    chunk = languages[start:start + per_batch]
                    batches.append(self._make_batch(entity.source.code, chunk, [entity], expected * len(chunk)))
                continue

            members = [entity]
            total = expected
            remaining = []
            for index, candidate in enumerate(pending):
                if candidate.source.code != entity.source.code or candidate.untranslated_languages != languages:
                    remaining.append(candidate)
                    continue
                cost = self.estimate_tokens(candidate) * len(languages)
                if total + cost > max_safe:
                    remaining.extend(pending[index:])
                    break
                members.append(candidate)
                total += cost
            pending = remaining

            batches.append(self._make_batch(entity.source.code, languages, members, total))

        stats = self.get_stats(batches)
        logger.info(
            f"Planned {stats['total_batches']} batches for {stats['total_entries']} strings "
            f"(budget {max_safe} tokens, largest {stats['max_tokens']})"
        )
        return batches

    def _make_batch(
        self,
        source_language: str,
        languages: list[str],
        members: list[LocalizationEntity],
        expected_tokens: int,
    ) -> TranslationBatch:
        contents = [
            BatchContent(key=e.key, source=e.source.value, notes=notes_for(e, languages))
            for e in members
        ]
        source_tokens = sum(
            self.count_tokens(source_text(c.key, c.source, c.notes)) for c in contents
        )
        return TranslationBatch(
            source_language=source_language,
            target_languages=list(languages),
            contents=contents,
            source_tokens=source_tokens,
            expected_tokens=expected_tokens,
        )

    def get_stats(self, batches: list[TranslationBatch]) -> dict:
        """
        Get statistics about batches.

        Args:
            batches: List of TranslationBatch objects

        Returns:
            Dictionary with batch statistics
        """
        if not batches:
            return {
                'total_batches': 0,
                'total_entries': 0,
                'total_expected_tokens': 0,
                'avg_tokens_per_batch': 0,
                'min_tokens': 0,
                'max_tokens': 0,
            }

        tokens_list = [b.expected_tokens for b in batches]
        total_tokens = sum(tokens_list)

        return {
            'total_batches': len(batches),
            'total_entries': sum(len(b.contents) for b in batches),
            'total_expected_tokens': total_tokens,
            'avg_tokens_per_batch': total_tokens // len(batches),
            'min_tokens': min(tokens_list),
            'max_tokens': max(tokens_list),
        }
