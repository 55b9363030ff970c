#!/usr/bin/env python3
"""
Reading and writing XLIFF 1.2 / 2.0 documents.

Documents are parsed with ElementTree into the dataclasses of
polyloc.xliff.model and serialized back deterministically: structural
elements are indented with two spaces, payload elements and preserved raw
elements are written exactly as they were read.
"""

import logging
from pathlib import Path
from typing import Optional, Union
from xml.etree import ElementTree as ET

from ..errors import XliffParseError
from .inline import element_as_text, has_markup, text_as_inline
from .legacy import to_current, to_legacy
from .model import (
    XLIFF1_NAMESPACE,
    XLIFF2_NAMESPACE,
    STATE_TRANSLATED,
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

XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>\n'

# Elements whose whitespace is layout only; everything else is content
STRUCTURAL_TAGS = frozenset({
    "xliff", "file", "group", "unit", "segment", "ignorable", "notes",
    "header", "body", "trans-unit",
})

V1 = "1.2"
V2 = "2.0"


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

def parse_xliff_text(text: Union[str, bytes]) -> Union[XliffDocument, LegacyDocument]:
    """
    Parse XLIFF markup of either dialect.

    Args:
        text: XLIFF document as string or bytes

    Returns:
        XliffDocument for version 2.x, LegacyDocument for version 1.x

    Raises:
        XliffParseError: If the markup is invalid or the version unsupported
    """
    try:
        root = ET.fromstring(text)
    except ET.ParseError as e:
        raise XliffParseError(f"Invalid XLIFF markup: {e}") from e

    _strip_namespace(root)
    if root.tag != "xliff":
        raise XliffParseError(f"Root element must be <xliff>, got <{root.tag}>")

    version = root.get("version", "")
    if version.startswith("2."):
        return _read_document(root)
    if version.startswith("1."):
        return _read_legacy_document(root)
    raise XliffParseError(f"Unsupported XLIFF version: {version!r}")


def parse_xliff_path(path: Union[str, Path]) -> Union[XliffDocument, LegacyDocument]:
    """Parse an XLIFF file from disk."""
    data = Path(path).read_bytes()
    try:
        return parse_xliff_text(data)
    except XliffParseError as e:
        raise XliffParseError(f"{path}: {e}") from e


def load_document(
    path: Union[str, Path],
    source_language: Optional[str] = None,
    target_language: Optional[str] = None,
) -> XliffDocument:
    """
    Load an XLIFF file as an XLIFF 2.0 document.

    Legacy files are converted; segments that came with a target are marked
    translated, since XLIFF 1.2 carries no comparable state.

    Args:
        path: File to load
        source_language: Fallback source language for legacy files
        target_language: Fallback target language for legacy files

    Returns:
        XliffDocument
    """
    doc = parse_xliff_path(path)
    if isinstance(doc, XliffDocument):
        return doc

    current = to_current(doc, source_language, target_language)
    for xliff_file in current.files:
        for _, unit in xliff_file.iter_units():
            segment = unit.segment
            if segment is not None and segment.target is not None and segment.state is None:
                segment.state = STATE_TRANSLATED
    return current


def _strip_namespace(root: ET.Element) -> None:
    for element in root.iter():
        if isinstance(element.tag, str) and element.tag.startswith("{"):
            namespace, _, local = element.tag[1:].partition("}")
            if namespace in (XLIFF2_NAMESPACE, XLIFF1_NAMESPACE):
                element.tag = local


def _attributes_except(element: ET.Element, *names: str) -> dict[str, str]:
    return {k: v for k, v in element.attrib.items() if k not in names}


def _read_document(root: ET.Element) -> XliffDocument:
    source_language = root.get("srcLang")
    if not source_language:
        raise XliffParseError("XLIFF 2.0 document has no srcLang")

    doc = XliffDocument(
        source_language=source_language,
        target_language=root.get("trgLang"),
        attributes=_attributes_except(root, "version", "srcLang", "trgLang"),
    )
    for child in root:
        if child.tag != "file":
            logger.warning(f"Ignoring unexpected <{child.tag}> under <xliff>")
            continue
        file_id = child.get("id")
        if not file_id:
            raise XliffParseError("<file> without id")
        doc.files.append(XliffFile(
            id=file_id,
            original=child.get("original"),
            elements=_read_nodes(child),
            attributes=_attributes_except(child, "id", "original"),
        ))
    return doc


def _read_nodes(container: ET.Element) -> list[Node]:
    nodes: list[Node] = []
    for child in container:
        if child.tag == "group" and child.get("id"):
            nodes.append(Group(
                id=child.get("id"),
                elements=_read_nodes(child),
                attributes=_attributes_except(child, "id"),
            ))
        elif child.tag == "unit" and child.get("id"):
            nodes.append(_read_unit(child))
        else:
            if child.tag in ("group", "unit"):
                logger.warning(f"Keeping <{child.tag}> without id as opaque element")
            nodes.append(child)
    return nodes


def _read_unit(element: ET.Element) -> Unit:
    unit = Unit(id=element.get("id"), attributes=_attributes_except(element, "id"))
    for child in element:
        if child.tag == "notes" and not unit.notes:
            unit.notes = [
                Note(text=element_as_text(note), attributes=dict(note.attrib), markup=has_markup(note))
                for note in child if note.tag == "note"
            ]
        elif child.tag == "segment" and unit.segment is None:
            unit.segment = _read_segment(child)
            if unit.segment is None:
                logger.warning(f"Segment without <source> in unit {unit.id!r}")
                unit.trailing.append(child)
        elif unit.segment is None and not unit.trailing:
            unit.extras.append(child)
        else:
            unit.trailing.append(child)
    return unit


def _read_segment(element: ET.Element) -> Optional[Segment]:
    source = element.find("source")
    if source is None:
        return None
    target = element.find("target")
    return Segment(
        source=element_as_text(source),
        target=element_as_text(target) if target is not None else None,
        state=element.get("state"),
        sub_state=element.get("subState"),
        attributes=_attributes_except(element, "state", "subState"),
        source_attributes=dict(source.attrib),
        target_attributes=dict(target.attrib) if target is not None else {},
        source_markup=has_markup(source),
        target_markup=target is not None and has_markup(target),
    )


def _read_legacy_document(root: ET.Element) -> LegacyDocument:
    doc = LegacyDocument(
        version=root.get("version", V1),
        attributes=_attributes_except(root, "version"),
    )
    for child in root:
        if child.tag != "file":
            logger.warning(f"Ignoring unexpected <{child.tag}> under <xliff>")
            continue
        legacy_file = LegacyFile(
            original=child.get("original"),
            source_language=child.get("source-language"),
            target_language=child.get("target-language"),
            datatype=child.get("datatype", "plaintext"),
            header=child.find("header"),
            attributes=_attributes_except(child, "original", "source-language", "target-language", "datatype"),
        )
        body = child.find("body")
        if body is not None:
            legacy_file.body = _read_legacy_nodes(body)
        doc.files.append(legacy_file)
    return doc


def _read_legacy_nodes(container: ET.Element) -> list[LegacyNode]:
    nodes: list[LegacyNode] = []
    for child in container:
        if child.tag == "group":
            nodes.append(LegacyGroup(
                id=child.get("id"),
                elements=_read_legacy_nodes(child),
                attributes=_attributes_except(child, "id"),
            ))
        elif child.tag == "trans-unit" and child.find("source") is not None:
            nodes.append(_read_trans_unit(child))
        else:
            nodes.append(child)
    return nodes


def _read_trans_unit(element: ET.Element) -> TransUnit:
    unit = TransUnit(
        id=element.get("id", ""),
        source="",
        attributes=_attributes_except(element, "id"),
    )
    for child in element:
        if child.tag == "source":
            unit.source = element_as_text(child)
            unit.source_markup = has_markup(child)
        elif child.tag == "target":
            unit.target = element_as_text(child)
            unit.target_markup = has_markup(child)
        elif child.tag == "note":
            unit.notes.append(Note(
                text=element_as_text(child),
                attributes=dict(child.attrib),
                markup=has_markup(child),
            ))
        else:
            unit.extras.append(child)
    return unit


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------

def stringify_xliff2(doc: XliffDocument) -> str:
    """
    Serialize an XLIFF 2.0 document.

    Args:
        doc: Document to serialize

    Returns:
        XML text with declaration and trailing newline
    """
    root = ET.Element("xliff", {"xmlns": XLIFF2_NAMESPACE, "version": V2, "srcLang": doc.source_language})
    if doc.target_language:
        root.set("trgLang", doc.target_language)
    root.attrib.update(doc.attributes)

    for xliff_file in doc.files:
        element = ET.SubElement(root, "file", {"id": xliff_file.id})
        if xliff_file.original is not None:
            element.set("original", xliff_file.original)
        element.attrib.update(xliff_file.attributes)
        _build_nodes(element, xliff_file.elements)

    return _serialize(root)


def stringify_xliff1(doc: LegacyDocument) -> str:
    """Serialize an XLIFF 1.2 document."""
    root = ET.Element("xliff", {"xmlns": XLIFF1_NAMESPACE, "version": doc.version or V1})
    root.attrib.update(doc.attributes)

    for legacy_file in doc.files:
        element = ET.SubElement(root, "file")
        for name, value in (
            ("original", legacy_file.original),
            ("source-language", legacy_file.source_language),
            ("target-language", legacy_file.target_language),
            ("datatype", legacy_file.datatype),
        ):
            if value is not None:
                element.set(name, value)
        element.attrib.update(legacy_file.attributes)
        if legacy_file.header is not None:
            element.append(legacy_file.header)
        body = ET.SubElement(element, "body")
        _build_legacy_nodes(body, legacy_file.body)

    return _serialize(root)


def save_document(path: Union[str, Path], doc: XliffDocument, version: str = V2) -> None:
    """
    Write a document to disk in the requested dialect.

    Args:
        path: Destination file
        doc: Document to write
        version: "2.0" (default) or "1.2"
    """
    if version.startswith("1."):
        save_legacy_document(path, to_legacy(doc))
    else:
        _write(path, stringify_xliff2(doc))


def save_legacy_document(path: Union[str, Path], doc: LegacyDocument) -> None:
    """Write an XLIFF 1.2 document to disk."""
    _write(path, stringify_xliff1(doc))


def _write(path: Union[str, Path], text: str) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


def _serialize(root: ET.Element) -> str:
    _indent(root, 0)
    return XML_DECLARATION + ET.tostring(root, encoding="unicode") + "\n"


def _indent(element: ET.Element, level: int) -> None:
    if element.tag not in STRUCTURAL_TAGS or not len(element):
        return
    inner = "\n" + "  " * (level + 1)
    element.text = inner
    for child in element:
        child.tail = inner
        _indent(child, level + 1)
    element[-1].tail = "\n" + "  " * level


def _payload(
    parent: ET.Element,
    tag: str,
    text: str,
    attributes: dict[str, str],
    markup: bool,
) -> ET.Element:
    element = ET.SubElement(parent, tag, dict(attributes))
    text_as_inline(element, text, markup)
    return element


def _build_nodes(parent: ET.Element, nodes: list[Node]) -> None:
    for node in nodes:
        if isinstance(node, Group):
            element = ET.SubElement(parent, "group", {"id": node.id})
            element.attrib.update(node.attributes)
            _build_nodes(element, node.elements)
        elif isinstance(node, Unit):
            _build_unit(parent, node)
        else:
            parent.append(node)


def _build_unit(parent: ET.Element, unit: Unit) -> None:
    element = ET.SubElement(parent, "unit", {"id": unit.id})
    element.attrib.update(unit.attributes)
    if unit.notes:
        notes = ET.SubElement(element, "notes")
        for note in unit.notes:
            _payload(notes, "note", note.text, note.attributes, note.markup)
    element.extend(unit.extras)

    segment = unit.segment
    if segment is not None:
        segment_element = ET.SubElement(element, "segment", dict(segment.attributes))
        if segment.state is not None:
            segment_element.set("state", segment.state)
        if segment.sub_state is not None:
            segment_element.set("subState", segment.sub_state)
        _payload(segment_element, "source", segment.source, segment.source_attributes, segment.source_markup)
        if segment.target is not None:
            _payload(segment_element, "target", segment.target, segment.target_attributes, segment.target_markup)

    element.extend(unit.trailing)


def _build_legacy_nodes(parent: ET.Element, nodes: list[LegacyNode]) -> None:
    for node in nodes:
        if isinstance(node, LegacyGroup):
            element = ET.SubElement(parent, "group")
            if node.id is not None:
                element.set("id", node.id)
            element.attrib.update(node.attributes)
            _build_legacy_nodes(element, node.elements)
        elif isinstance(node, TransUnit):
            element = ET.SubElement(parent, "trans-unit", {"id": node.id})
            element.attrib.update(node.attributes)
            _payload(element, "source", node.source, {}, node.source_markup)
            if node.target is not None:
                _payload(element, "target", node.target, {}, node.target_markup)
            for note in node.notes:
                _payload(element, "note", note.text, note.attributes, note.markup)
            element.extend(node.extras)
        else:
            parent.append(node)
