#!/usr/bin/env python3
"""
Project and translator configuration.

The project configuration is a YAML file (polyloc.yml) listing the
localizations to keep translated:

    baseLanguage: en
    translator:
      agent: api
      baseUrl: https://translate.example.com/api
      mode: interactive
    globalContext: A budgeting app for families.
    localizations:
      - id: app-strings
        path: Resources/${LANGUAGE}.lproj/Localizable.strings
        format: strings
        languages: [de, ja, zh-Hans]

Translator settings (token budget, retries, tokenizer) are served by the
translation service itself; TranslatorSettings validates that payload.
Both are checked with jsonschema before use.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Union

import jsonschema
import yaml

from .errors import ConfigError, TranslatorConfigError

logger = logging.getLogger(__name__)

CONFIG_FILENAMES = ("polyloc.yml", "polyloc.yaml")
LANGUAGE_PLACEHOLDER = "${LANGUAGE}"
DEFAULT_EXPORT_FOLDER = ".polyloc"

MODE_AUTOMATIC = "automatic"
MODE_INTERACTIVE = "interactive"

LOCALIZATION_FORMATS = ["text", "strings", "json", "xliff", "xcstrings"]

CONFIG_SCHEMA = {
    "type": "object",
    "required": ["baseLanguage", "translator", "localizations"],
    "properties": {
        "baseLanguage": {"type": "string", "minLength": 1},
        "exportFolder": {"type": "string", "minLength": 1},
        "globalContext": {"type": "string"},
        "translator": {
            "type": "object",
            "required": ["agent", "baseUrl"],
            "properties": {
                "agent": {"enum": ["api"]},
                "baseUrl": {"type": "string", "minLength": 1},
                "mode": {"enum": [MODE_AUTOMATIC, MODE_INTERACTIVE]},
            },
        },
        "localizations": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["id", "path", "format", "languages"],
                "properties": {
                    "id": {"type": "string", "minLength": 1},
                    "path": {"type": "string", "minLength": 1},
                    "format": {"enum": LOCALIZATION_FORMATS},
                    "languages": {
                        "type": "array",
                        "items": {"type": "string", "minLength": 1},
                        "minItems": 1,
                    },
                },
            },
        },
    },
}

TRANSLATOR_SETTINGS_SCHEMA = {
    "type": "object",
    "properties": {
        "maxOutputTokens": {"type": "integer", "minimum": 1},
        "buffer": {"type": "number", "minimum": 0, "exclusiveMaximum": 1},
        "maxRetry": {"type": "integer", "minimum": 0},
        "tokenizer": {"enum": ["openai"]},
        "tokenizerModel": {"type": "string", "minLength": 1},
    },
}


@dataclass
class TranslatorSettings:
    """Limits and tokenizer of the translation service."""
    max_output_tokens: int = 4096
    buffer: float = 0.3
    max_retry: int = 1
    tokenizer: str = "openai"
    tokenizer_model: str = "gpt-4"

    @classmethod
    def from_dict(cls, data: Any) -> "TranslatorSettings":
        """
        Build settings from a service payload, applying defaults.

        Raises:
            TranslatorConfigError: If the payload does not match the schema
        """
        try:
            jsonschema.validate(instance=data, schema=TRANSLATOR_SETTINGS_SCHEMA)
        except jsonschema.ValidationError as e:
            raise TranslatorConfigError(f"Invalid translator settings: {e.message}") from e

        defaults = cls()
        return cls(
            max_output_tokens=data.get("maxOutputTokens", defaults.max_output_tokens),
            buffer=data.get("buffer", defaults.buffer),
            max_retry=data.get("maxRetry", defaults.max_retry),
            tokenizer=data.get("tokenizer", defaults.tokenizer),
            tokenizer_model=data.get("tokenizerModel", defaults.tokenizer_model),
        )

    def to_dict(self) -> dict:
        return {
            "maxOutputTokens": self.max_output_tokens,
            "buffer": self.buffer,
            "maxRetry": self.max_retry,
            "tokenizer": self.tokenizer,
            "tokenizerModel": self.tokenizer_model,
        }


@dataclass
class TranslatorConfig:
    """Where and how to translate."""
    base_url: str
    agent: str = "api"
    mode: str = MODE_AUTOMATIC

    @property
    def interactive(self) -> bool:
        return self.mode == MODE_INTERACTIVE


@dataclass
class LocalizationConfig:
    """One localized resource of the project."""
    id: str
    path: str
    format: str
    languages: list[str] = field(default_factory=list)

    def path_for(self, language: str) -> str:
        """Resource path for a language (${LANGUAGE} substituted)."""
        return self.path.replace(LANGUAGE_PLACEHOLDER, language)


@dataclass
class Config:
    """
    Project configuration.

    Attributes:
        path: Location of the configuration file
        base_language: Language the source strings are written in
        translator: Translation service settings
        localizations: Resources to keep translated
        export_folder: Bundle folder, relative to the configuration file
        global_context: Description of the project passed to the translator
    """
    path: Path
    base_language: str
    translator: TranslatorConfig
    localizations: list[LocalizationConfig] = field(default_factory=list)
    export_folder: str = DEFAULT_EXPORT_FOLDER
    global_context: Optional[str] = None

    @property
    def base_folder(self) -> Path:
        return self.path.parent

    @property
    def export_path(self) -> Path:
        export = Path(self.export_folder)
        return export if export.is_absolute() else self.base_folder / export


def find_config(directory: Union[str, Path] = ".") -> Path:
    """
    Locate polyloc.yml / polyloc.yaml in a directory.

    Raises:
        ConfigError: If neither file exists
    """
    directory = Path(directory)
    for name in CONFIG_FILENAMES:
        candidate = directory / name
        if candidate.is_file():
            return candidate
    raise ConfigError(f"No {' or '.join(CONFIG_FILENAMES)} found in {directory.resolve()}")


def parse_config(data: Any, path: Union[str, Path]) -> Config:
    """
    Validate raw configuration data.

    Args:
        data: Result of yaml.safe_load()
        path: File the data came from

    Returns:
        Config

    Raises:
        ConfigError: If the data is invalid
    """
    validator = jsonschema.Draft7Validator(CONFIG_SCHEMA)
    errors = sorted(validator.iter_errors(data), key=lambda e: [str(p) for p in e.path])
    if errors:
        details = "; ".join(
            f"{'/'.join(str(p) for p in e.path) or '<root>'}: {e.message}" for e in errors
        )
        raise ConfigError(f"Invalid configuration {path}: {details}")

    localizations = []
    seen = set()
    for item in data["localizations"]:
        if item["id"] in seen:
            raise ConfigError(f"Duplicate localization id: {item['id']}")
        seen.add(item["id"])
        localizations.append(LocalizationConfig(
            id=item["id"],
            path=item["path"],
            format=item["format"],
            languages=list(item["languages"]),
        ))

    translator = data["translator"]
    return Config(
        path=Path(path).resolve(),
        base_language=data["baseLanguage"],
        translator=TranslatorConfig(
            base_url=translator["baseUrl"],
            agent=translator["agent"],
            mode=translator.get("mode", MODE_AUTOMATIC),
        ),
        localizations=localizations,
        export_folder=data.get("exportFolder", DEFAULT_EXPORT_FOLDER),
        global_context=data.get("globalContext"),
    )


def load_config(path: Optional[Union[str, Path]] = None) -> Config:
    """
    Load the project configuration.

    Args:
        path: Configuration file; searched in the working directory if None

    Returns:
        Config

    Raises:
        ConfigError: If the file is missing, unreadable or invalid
    """
    config_path = Path(path) if path else find_config()
    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
    except FileNotFoundError as e:
        raise ConfigError(f"Configuration file not found: {config_path}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {config_path}: {e}") from e

    config = parse_config(data, config_path)
    logger.info(f"Loaded configuration from {config.path} ({len(config.localizations)} localizations)")
    return config
