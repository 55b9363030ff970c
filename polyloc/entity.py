#!/usr/bin/env python3
"""
Localization entities: the flattened view of interchange documents.

Every unit of every document maps to one entity, addressed by a short hash of
its id path (file id, group ids, unit id). Documents that hold the same
strings for different target languages contribute to the same entity, one
target slot per language.

Entities live for a single pass: extract_entities() builds them,
merge_prior_translations() carries approved work forward from an earlier
export, the translator updates them, and write_back() puts the results into
the documents again.
"""

import copy
import hashlib
import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional
from urllib.parse import quote

from .errors import KeyCollisionError
from .xliff.model import (
    STATE_FINAL,
    STATE_INITIAL,
    STATE_REVIEWED,
    STATE_TRANSLATED,
    Group,
    Note,
    Unit,
    XliffDocument,
)

logger = logging.getLogger(__name__)

SUB_STATE_DECLINED = "declined"
SUB_STATE_REFINE_NEEDED = "refine-needed"

KEY_LENGTH = 6

# Characters encodeURIComponent leaves alone, besides letters and digits
_URI_COMPONENT_SAFE = "-_.!~*'()"


def encode_key_component(component: str) -> str:
    """Percent-encode one id path component the way encodeURIComponent does."""
    return quote(component, safe=_URI_COMPONENT_SAFE)


def entity_key_hash(key_paths: Iterable[str]) -> str:
    """
    Compute the short, content-independent key of an id path.

    Args:
        key_paths: File id, group ids and unit id in order

    Returns:
        First six hex characters of the SHA-256 of the encoded path
    """
    joined = "&".join(encode_key_component(p) for p in key_paths)
    return hashlib.sha256(joined.encode("utf-8")).hexdigest()[:KEY_LENGTH]


@dataclass
class LocalizationSource:
    """Source language code and text of an entity."""
    code: str
    value: str


@dataclass
class LocalizationTarget:
    """Translation slot of an entity for one target language."""
    value: Optional[str] = None
    state: Optional[str] = None
    sub_state: Optional[str] = None
    notes: list[str] = field(default_factory=list)

    @property
    def needs_translation(self) -> bool:
        if self.state == STATE_REVIEWED and self.sub_state == SUB_STATE_REFINE_NEEDED:
            return True
        return self.state not in (STATE_TRANSLATED, STATE_REVIEWED, STATE_FINAL)


@dataclass(eq=False)
class LocalizationEntity:
    """
    One translatable string across all of its target languages.

    Attributes:
        key: Short hash of key_paths
        key_paths: Id path of the unit ([file_id, *group_ids, unit_id])
        source: Source language and text
        target: Translation slots by language code
    """
    key: str
    key_paths: list[str]
    source: LocalizationSource
    target: dict[str, LocalizationTarget] = field(default_factory=dict)

    @property
    def target_languages(self) -> list[str]:
        return sorted(self.target)

    @property
    def untranslated_languages(self) -> list[str]:
        """Sorted languages that still need a (new) translation."""
        return sorted(lang for lang, target in self.target.items() if target.needs_translation)

    @property
    def reviewable_languages(self) -> list[str]:
        """Sorted languages holding a translation that awaits review."""
        return sorted(
            lang for lang, target in self.target.items()
            if target.value is not None and target.state == STATE_TRANSLATED
        )

    @property
    def needs_review(self) -> bool:
        return bool(self.reviewable_languages)

    @property
    def all_notes(self) -> list[str]:
        """Notes of every language, de-duplicated in first-seen order."""
        return notes_for(self, self.target_languages)

    def update_state(
        self,
        state: str,
        sub_state: Optional[str] = None,
        languages: Optional[Iterable[str]] = None,
    ) -> None:
        """Set state and sub-state for the given languages (default: all)."""
        for lang in (self.target_languages if languages is None else languages):
            target = self.target.setdefault(lang, LocalizationTarget())
            target.state = state
            target.sub_state = sub_state

    def add_note(self, note: str, languages: Optional[Iterable[str]] = None) -> None:
        """Append a note to the given languages (default: all)."""
        for lang in (self.target_languages if languages is None else languages):
            self.target.setdefault(lang, LocalizationTarget()).notes.append(note)


def notes_for(entity: LocalizationEntity, languages: Iterable[str]) -> list[str]:
    """De-duplicated union of the notes of the given languages."""
    notes: list[str] = []
    for lang in languages:
        target = entity.target.get(lang)
        if target is None:
            continue
        for note in target.notes:
            if note not in notes:
                notes.append(note)
    return notes


def _walk_units(elements, prefix: tuple[str, ...]):
    for element in elements:
        if isinstance(element, Unit):
            yield prefix + (element.id,), element
        elif isinstance(element, Group):
            yield from _walk_units(element.elements, prefix + (element.id,))


def _iter_document_units(doc: XliffDocument):
    for xliff_file in doc.files:
        yield from _walk_units(xliff_file.elements, (xliff_file.id,))


def extract_entities(docs: Iterable[XliffDocument]) -> dict[str, LocalizationEntity]:
    """
    Flatten documents into entities keyed by entity_key_hash().

    Documents without a target language and units without a segment are
    skipped with a warning. When several documents contain the same unit,
    their target slots are merged; a later document wins for a language it
    shares with an earlier one.

    Args:
        docs: Documents to flatten

    Returns:
        Dict of key -> LocalizationEntity, in document order

    Raises:
        KeyCollisionError: If two different id paths share a key
    """
    entities: dict[str, LocalizationEntity] = {}

    for doc in docs:
        language = doc.target_language
        if not language:
            logger.warning(f"Skipping document without target language ({doc.source_language})")
            continue

        for path, unit in _iter_document_units(doc):
            segment = unit.segment
            if segment is None:
                logger.warning(f"Skipping unit without segment: {'/'.join(path)}")
                continue

            key = entity_key_hash(path)
            target = LocalizationTarget(
                value=segment.target,
                state=segment.effective_state,
                sub_state=segment.sub_state,
                notes=[note.text for note in unit.notes],
            )

            entity = entities.get(key)
            if entity is None:
                entities[key] = LocalizationEntity(
                    key=key,
                    key_paths=list(path),
                    source=LocalizationSource(code=doc.source_language, value=segment.source),
                    target={language: target},
                )
            elif entity.key_paths != list(path):
                raise KeyCollisionError(key, entity.key_paths, list(path))
            else:
                entity.target[language] = target

    return entities


def merge_prior_translations(
    fresh: dict[str, LocalizationEntity],
    prior: dict[str, LocalizationEntity],
) -> dict[str, LocalizationEntity]:
    """
    Carry translations forward from a previous extraction.

    A prior target replaces a fresh "initial" one only when the source
    (language and text) and the notes of that language are exactly equal and
    the prior target is past "initial".

    Args:
        fresh: Entities of the new extraction, updated in place
        prior: Entities of the previous extraction

    Returns:
        The fresh dict
    """
    carried = 0
    for key, entity in fresh.items():
        previous = prior.get(key)
        if previous is None or previous.source != entity.source:
            continue

        for lang, target in entity.target.items():
            if (target.state or STATE_INITIAL) != STATE_INITIAL:
                continue
            previous_target = previous.target.get(lang)
            if previous_target is None:
                continue
            if (previous_target.state or STATE_INITIAL) == STATE_INITIAL:
                continue
            if previous_target.notes != target.notes:
                continue
            entity.target[lang] = copy.deepcopy(previous_target)
            carried += 1

    logger.info(f"Carried forward {carried} prior translations")
    return fresh


def write_back(docs: Iterable[XliffDocument], entities: dict[str, LocalizationEntity]) -> int:
    """
    Write entity targets into the documents they were extracted from.

    Only slots with a value are written. Segment state, sub-state and notes
    are updated when they differ; everything else in the document stays as it
    was read, so unchanged entities serialize byte-identically.

    Args:
        docs: Documents to update in place
        entities: Entities by key

    Returns:
        Number of units written
    """
    written = 0
    for doc in docs:
        language = doc.target_language
        if not language:
            continue

        for path, unit in _iter_document_units(doc):
            segment = unit.segment
            entity = entities.get(entity_key_hash(path))
            if segment is None or entity is None:
                continue
            target = entity.target.get(language)
            if target is None or target.value is None:
                continue

            if segment.target != target.value:
                # translations mirror the markup of their source
                segment.target = target.value
                segment.target_markup = segment.source_markup
            if (target.state or STATE_INITIAL) != segment.effective_state:
                segment.state = target.state
            segment.sub_state = target.sub_state
            if [note.text for note in unit.notes] != target.notes:
                _replace_notes(unit, target.notes)
            written += 1

    return written


def _replace_notes(unit: Unit, texts: list[str]) -> None:
    notes = []
    for index, text in enumerate(texts):
        if index < len(unit.notes):
            previous = unit.notes[index]
            notes.append(Note(
                text=text,
                attributes=previous.attributes,
                markup=previous.markup and previous.text == text,
            ))
        else:
            notes.append(Note(text=text))
    unit.notes = notes
