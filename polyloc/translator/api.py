#!/usr/bin/env python3
"""
HTTP client for the polyloc translation service.

The service exposes two endpoints below its base URL:

- GET  /config    translator settings (token budget, retries, tokenizer)
- POST /localize  translation of one batch, streamed back as NDJSON

Every line of the /localize response is an envelope:

    {"type": "object", "object": {"<key>": {"<lang>": "<text>"}}}
    {"type": "finish", "usage": {"promptTokens": 1, "completionTokens": 2, "totalTokens": 3}}
    {"type": "error", "error": "..."}

"object" envelopes are progressively more complete snapshots of the result;
the last one that matches the batch's schema is the answer.
"""

import json
import logging
from typing import Any, Optional

import httpx
import jsonschema

from ..batcher import TranslationBatch
from ..config import TranslatorSettings
from ..errors import TranslationServiceError, TranslatorConfigError
from .base import BatchResult, SnapshotCallback, TokenUsage, Translator

logger = logging.getLogger(__name__)

# Streams can take minutes; only connecting is bounded
DEFAULT_TIMEOUT = httpx.Timeout(30.0, read=None)

USAGE_SCHEMA = {
    "type": "object",
    "properties": {
        name: {"type": "integer", "minimum": 0}
        for name in ("promptTokens", "completionTokens", "totalTokens")
    },
}


def build_response_schema(batch: TranslationBatch) -> dict[str, Any]:
    """
    JSON schema of a result snapshot for a batch.

    Every key maps to an object holding exactly the batch's target languages.
    """
    languages = list(batch.target_languages)
    return {
        "type": "object",
        "additionalProperties": {
            "type": "object",
            "properties": {lang: {"type": "string"} for lang in languages},
            "required": languages,
            "additionalProperties": False,
        },
    }


class ApiTranslator(Translator):
    """Translator backed by the HTTP translation service."""

    def __init__(
        self,
        base_url: str,
        client: Optional[httpx.AsyncClient] = None,
        provider: str = "openai",
        timeout: httpx.Timeout = DEFAULT_TIMEOUT,
    ):
        """
        Initialize API translator.

        Args:
            base_url: Service root, e.g. https://translate.example.com/api
            client: HTTP client to use (default: a new AsyncClient)
            provider: Model provider the service should use
            timeout: Timeout of the client created when none is given
        """
        self.base_url = base_url.rstrip("/")
        self.provider = provider
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=timeout)
        self._settings: Optional[TranslatorSettings] = None

    async def __aenter__(self) -> "ApiTranslator":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the HTTP client if this translator created it."""
        if self._owns_client:
            await self.client.aclose()

    async def fetch_config(self) -> TranslatorSettings:
        """
        Fetch and validate the translator settings (cached).

        Raises:
            TranslatorConfigError: If the request fails or the payload is invalid
        """
        if self._settings is not None:
            return self._settings

        try:
            response = await self.client.get(f"{self.base_url}/config")
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPError as e:
            raise TranslatorConfigError(f"Cannot fetch translator settings: {e}") from e
        except ValueError as e:
            raise TranslatorConfigError(f"Translator settings are not JSON: {e}") from e

        self._settings = TranslatorSettings.from_dict(payload)
        logger.info(f"Translator settings: {self._settings.to_dict()}")
        return self._settings

    async def translate_batch(
        self,
        batch: TranslationBatch,
        context: Optional[str] = None,
        on_snapshot: Optional[SnapshotCallback] = None,
    ) -> BatchResult:
        """
        Translate a batch, consuming the streamed response line by line.

        Args:
            batch: Strings and languages to translate
            context: Free-form description of the project
            on_snapshot: Receives every valid partial result

        Returns:
            BatchResult built from the last valid snapshot

        Raises:
            TranslationServiceError: On non-2xx status, error envelopes,
                malformed usage, or when no valid snapshot arrives
            httpx.HTTPError: On transport failures
        """
        body = batch.to_payload()
        body["provider"] = self.provider
        if context:
            body["context"] = context

        validator = jsonschema.Draft7Validator(build_response_schema(batch))
        usage_validator = jsonschema.Draft7Validator(USAGE_SCHEMA)
        latest: Optional[dict[str, dict[str, str]]] = None
        usage = TokenUsage()

        async with self.client.stream("POST", f"{self.base_url}/localize", json=body) as response:
            if response.is_error:
                await response.aread()
                raise TranslationServiceError(
                    f"Translation request failed with status {response.status_code}: {response.text}"
                )

            async for line in response.aiter_lines():
                envelope = self._parse_envelope(line)
                if envelope is None:
                    continue

                kind = envelope.get("type")
                if kind == "object":
                    snapshot = envelope.get("object")
                    if validator.is_valid(snapshot):
                        latest = snapshot
                        if on_snapshot:
                            on_snapshot(snapshot)
                    else:
                        logger.debug("Ignoring snapshot that does not match the batch schema")
                elif kind == "finish":
                    payload = envelope.get("usage")
                    if payload is not None and not usage_validator.is_valid(payload):
                        raise TranslationServiceError(f"Malformed usage in finish envelope: {payload!r}")
                    usage = usage + TokenUsage.from_dict(payload)
                elif kind == "error":
                    raise TranslationServiceError(f"Translation service error: {envelope.get('error')}")
                else:
                    logger.debug(f"Ignoring envelope of type {kind!r}")

        if latest is None:
            raise TranslationServiceError(
                f"No valid translation received for {len(batch.contents)} strings"
            )
        return BatchResult(translations=latest, usage=usage)

    @staticmethod
    def _parse_envelope(line: str) -> Optional[dict[str, Any]]:
        line = line.strip()
        if not line:
            return None
        try:
            envelope = json.loads(line)
        except json.JSONDecodeError:
            logger.debug(f"Skipping incomplete line: {line[:80]}")
            return None
        return envelope if isinstance(envelope, dict) else None
