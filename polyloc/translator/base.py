#!/usr/bin/env python3
"""
Base classes for translation services.

Translator is the abstract base class every translation backend implements.
The orchestrator only talks to this interface, which keeps it testable with
scripted fakes.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from ..batcher import TranslationBatch
from ..config import TranslatorSettings

# Called with every valid partial result while a batch streams in
SnapshotCallback = Callable[[dict[str, dict[str, str]]], None]


@dataclass
class TokenUsage:
    """Token accounting reported by the translation service."""
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    def __add__(self, other: "TokenUsage") -> "TokenUsage":
        return TokenUsage(
            prompt_tokens=self.prompt_tokens + other.prompt_tokens,
            completion_tokens=self.completion_tokens + other.completion_tokens,
            total_tokens=self.total_tokens + other.total_tokens,
        )

    @classmethod
    def from_dict(cls, data: Optional[dict[str, Any]]) -> "TokenUsage":
        data = data or {}
        return cls(
            prompt_tokens=int(data.get("promptTokens", 0) or 0),
            completion_tokens=int(data.get("completionTokens", 0) or 0),
            total_tokens=int(data.get("totalTokens", 0) or 0),
        )

    def to_dict(self) -> dict[str, int]:
        return {
            "promptTokens": self.prompt_tokens,
            "completionTokens": self.completion_tokens,
            "totalTokens": self.total_tokens,
        }


@dataclass
class BatchResult:
    """
    Outcome of one translated batch.

    Attributes:
        translations: key -> language -> translated text
        usage: Tokens spent on the request
    """
    translations: dict[str, dict[str, str]] = field(default_factory=dict)
    usage: TokenUsage = field(default_factory=TokenUsage)


class Translator(ABC):
    """Abstract translation service."""

    @abstractmethod
    async def fetch_config(self) -> TranslatorSettings:
        """Return the service's limits and tokenizer."""
        pass

    @abstractmethod
    async def translate_batch(
        self,
        batch: TranslationBatch,
        context: Optional[str] = None,
        on_snapshot: Optional[SnapshotCallback] = None,
    ) -> BatchResult:
        """
        Translate one batch.

        Args:
            batch: Strings and languages to translate
            context: Free-form description of the project
            on_snapshot: Receives partial results while they stream in

        Returns:
            BatchResult with the final translations

        Raises:
            TranslationServiceError: If the request failed
            httpx.HTTPError: On transport failures
        """
        pass
