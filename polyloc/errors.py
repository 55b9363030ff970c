#!/usr/bin/env python3
"""
Exception hierarchy for polyloc.

Fatal errors abort a whole run. TranslationServiceError is recoverable at the
batch level: the orchestrator retries the batch and gives up on it after the
configured number of attempts.
"""


class PolylocError(Exception):
    """Base class for every error raised by polyloc."""


class XliffParseError(PolylocError):
    """An interchange document could not be read."""


class KeyCollisionError(PolylocError):
    """Two different key paths produced the same short entity key."""

    def __init__(self, key: str, first_path: list[str], second_path: list[str]):
        self.key = key
        self.first_path = first_path
        self.second_path = second_path
        super().__init__(
            f"Entity key {key!r} is shared by {'/'.join(first_path)!r} "
            f"and {'/'.join(second_path)!r}"
        )


class ContentTooLongError(PolylocError, ValueError):
    """A single string does not fit the token budget, even for one language."""

    def __init__(self, key: str, expected_tokens: int, max_safe_tokens: int):
        self.key = key
        self.expected_tokens = expected_tokens
        self.max_safe_tokens = max_safe_tokens
        super().__init__(
            f"Content of {key!r} is too long to be translated: "
            f"{expected_tokens} tokens expected, limit is {max_safe_tokens}"
        )


class ConfigError(PolylocError):
    """The project configuration file is missing or malformed."""


class TranslatorConfigError(ConfigError):
    """The translation service returned unusable settings."""


class TranslationServiceError(PolylocError):
    """A translation request failed or produced no usable result."""
