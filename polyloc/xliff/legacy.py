#!/usr/bin/env python3
"""
Conversion between XLIFF 1.2 and XLIFF 2.0 documents.

Both directions recurse through groups of any depth. Nodes that have no
counterpart in the other dialect (binary units, ids missing, unknown
elements) are dropped with a warning instead of failing the conversion.
"""

import logging
from typing import Optional

from ..errors import XliffParseError
from .model import (
    STATE_INITIAL,
    Group,
    LegacyDocument,
    LegacyFile,
    LegacyGroup,
    LegacyNode,
    Node,
    Note,
    Segment,
    TransUnit,
    Unit,
    XliffDocument,
    XliffFile,
)

logger = logging.getLogger(__name__)


def to_current(
    legacy: LegacyDocument,
    source_language: Optional[str] = None,
    target_language: Optional[str] = None,
) -> XliffDocument:
    """
    Convert an XLIFF 1.2 document to XLIFF 2.0.

    Languages are taken from the first legacy <file>; the arguments are only
    used when the file does not declare them. Segments without a target start
    in state "initial", the others are left without a state.

    Args:
        legacy: Document to convert
        source_language: Fallback source language
        target_language: Fallback target language

    Returns:
        Equivalent XliffDocument

    Raises:
        XliffParseError: If no source language can be determined
    """
    first = legacy.files[0] if legacy.files else None
    src = (first.source_language if first else None) or source_language
    trg = (first.target_language if first else None) or target_language
    if not src:
        raise XliffParseError("Cannot determine the source language of the XLIFF 1.2 document")

    doc = XliffDocument(source_language=src, target_language=trg)
    for index, legacy_file in enumerate(legacy.files):
        file_id = _legacy_file_id(legacy_file, index)
        if not legacy_file.original:
            logger.warning(f"XLIFF 1.2 <file> has no original attribute, using id {file_id!r}")
        doc.files.append(XliffFile(
            id=file_id,
            original=legacy_file.original or file_id,
            elements=_convert_legacy_nodes(legacy_file.body, file_id),
        ))
    return doc


def _convert_legacy_nodes(nodes: list[LegacyNode], location: str) -> list[Node]:
    converted: list[Node] = []
    for node in nodes:
        if isinstance(node, LegacyGroup):
            if not node.id:
                logger.warning(f"Dropping <group> without id in {location}")
                continue
            converted.append(Group(
                id=node.id,
                elements=_convert_legacy_nodes(node.elements, f"{location}/{node.id}"),
            ))
        elif isinstance(node, TransUnit):
            if not node.id:
                logger.warning(f"Dropping <trans-unit> without id in {location}")
                continue
            converted.append(Unit(
                id=node.id,
                notes=_convert_notes(node.notes),
                segment=Segment(
                    source=node.source,
                    target=node.target,
                    state=STATE_INITIAL if node.target is None else None,
                    source_markup=node.source_markup,
                    target_markup=node.target_markup,
                ),
            ))
        else:
            logger.warning(f"Dropping unsupported <{node.tag}> in {location}")
    return converted


def _convert_notes(notes: list[Note]) -> list[Note]:
    # only priority exists in both dialects
    return [
        Note(
            text=note.text,
            attributes={k: v for k, v in note.attributes.items() if k == "priority"},
            markup=note.markup,
        )
        for note in notes
    ]


def _legacy_file_id(legacy_file: LegacyFile, index: int) -> str:
    return legacy_file.original or f"f{index + 1}"


def _walk_trans_units(nodes: list[LegacyNode], prefix: tuple[str, ...]):
    for node in nodes:
        if isinstance(node, TransUnit) and node.id:
            yield prefix + (node.id,), node
        elif isinstance(node, LegacyGroup) and node.id:
            yield from _walk_trans_units(node.elements, prefix + (node.id,))


def apply_to_legacy(legacy: LegacyDocument, doc: XliffDocument) -> int:
    """
    Write the translations of a document into the XLIFF 1.2 document it came from.

    Units are matched by the file, group and unit ids to_current() assigns.
    Only targets of translated units and the target language change; headers,
    attributes and elements without an XLIFF 2.0 counterpart stay as read.

    Args:
        legacy: Parsed XLIFF 1.2 document, updated in place
        doc: Translated document converted from it

    Returns:
        Number of trans-units updated
    """
    units = {}
    for xliff_file in doc.files:
        for group_ids, unit in xliff_file.iter_units():
            units[(xliff_file.id,) + group_ids + (unit.id,)] = unit

    updated = 0
    for index, legacy_file in enumerate(legacy.files):
        if doc.target_language:
            legacy_file.target_language = doc.target_language
        for path, trans_unit in _walk_trans_units(legacy_file.body, (_legacy_file_id(legacy_file, index),)):
            unit = units.get(path)
            segment = unit.segment if unit is not None else None
            if segment is None or segment.target is None or segment.effective_state == STATE_INITIAL:
                continue
            trans_unit.target = segment.target
            trans_unit.target_markup = segment.target_markup
            updated += 1
    return updated


def to_legacy(doc: XliffDocument) -> LegacyDocument:
    """
    Convert an XLIFF 2.0 document to XLIFF 1.2.

    Segment states have no XLIFF 1.2 equivalent and are dropped.

    Args:
        doc: Document to convert

    Returns:
        Equivalent LegacyDocument
    """
    legacy = LegacyDocument()
    for xliff_file in doc.files:
        legacy.files.append(LegacyFile(
            original=xliff_file.original or xliff_file.id,
            source_language=doc.source_language,
            target_language=doc.target_language,
            datatype="plaintext",
            body=_convert_nodes(xliff_file.elements, xliff_file.id),
        ))
    return legacy


def _convert_nodes(nodes: list[Node], location: str) -> list[LegacyNode]:
    converted: list[LegacyNode] = []
    for node in nodes:
        if isinstance(node, Group):
            converted.append(LegacyGroup(
                id=node.id,
                elements=_convert_nodes(node.elements, f"{location}/{node.id}"),
            ))
        elif isinstance(node, Unit):
            if node.segment is None:
                logger.warning(f"Dropping unit {node.id!r} without segment in {location}")
                continue
            converted.append(TransUnit(
                id=node.id,
                source=node.segment.source,
                target=node.segment.target,
                notes=_convert_notes(node.notes),
                source_markup=node.segment.source_markup,
                target_markup=node.segment.target_markup,
            ))
        else:
            logger.warning(f"Dropping unsupported <{node.tag}> in {location}")
    return converted
