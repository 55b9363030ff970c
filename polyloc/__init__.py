"""
polyloc - LLM-powered localization pipeline

Exports the localized resources of a project into XLIFF bundles, translates
them through a streaming translation service under a token budget, and
imports the results back. Approved translations carry over between runs.

Quick start:
    polyloc export --config polyloc.yml
    polyloc translate --config polyloc.yml
    polyloc import --config polyloc.yml
"""

__version__ = "0.1.0"

from .batcher import TokenBatcher, TokenCounter, TranslationBatch
from .bundle import export_localizations, import_localizations, merge_bundles, translate_bundle
from .config import Config, TranslatorSettings, load_config
from .entity import LocalizationEntity, extract_entities, merge_prior_translations, write_back
from .errors import (
    ConfigError,
    ContentTooLongError,
    KeyCollisionError,
    PolylocError,
    TranslationServiceError,
    TranslatorConfigError,
    XliffParseError,
)
from .translator import ApiTranslator, ReviewDecision, TranslationOrchestrator, TranslationReport

__all__ = [
    "TokenBatcher",
    "TokenCounter",
    "TranslationBatch",
    "export_localizations",
    "import_localizations",
    "merge_bundles",
    "translate_bundle",
    "Config",
    "TranslatorSettings",
    "load_config",
    "LocalizationEntity",
    "extract_entities",
    "merge_prior_translations",
    "write_back",
    "ConfigError",
    "ContentTooLongError",
    "KeyCollisionError",
    "PolylocError",
    "TranslationServiceError",
    "TranslatorConfigError",
    "XliffParseError",
    "ApiTranslator",
    "ReviewDecision",
    "TranslationOrchestrator",
    "TranslationReport",
]
