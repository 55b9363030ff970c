#!/usr/bin/env python3
"""
Translation services and the orchestrator that drives them.

- base: Translator interface, TokenUsage, BatchResult
- api: ApiTranslator, the streaming HTTP client
- orchestrator: TranslationOrchestrator with retries and interactive review
"""

from .api import ApiTranslator, build_response_schema
from .base import BatchResult, TokenUsage, Translator
from .orchestrator import (
    ReviewDecision,
    TranslationOrchestrator,
    TranslationReport,
)

__all__ = [
    'ApiTranslator',
    'BatchResult',
    'ReviewDecision',
    'TokenUsage',
    'TranslationOrchestrator',
    'TranslationReport',
    'Translator',
    'build_response_schema',
]
