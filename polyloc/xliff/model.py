#!/usr/bin/env python3
"""
In-memory model of XLIFF interchange documents.

XliffDocument and friends describe XLIFF 2.0, the dialect every stage of the
pipeline works on. LegacyDocument and friends describe XLIFF 1.2, which is only
read from and written to disk and converted with polyloc.xliff.legacy.

Child elements the model does not understand are kept as raw ElementTree
elements so that writing a document back never loses them.
"""

from dataclasses import dataclass, field
from typing import Optional, Union
from xml.etree import ElementTree as ET

XLIFF2_NAMESPACE = "urn:oasis:names:tc:xliff:document:2.0"
XLIFF1_NAMESPACE = "urn:oasis:names:tc:xliff:document:1.2"

# Segment states, in lifecycle order
STATE_INITIAL = "initial"
STATE_TRANSLATED = "translated"
STATE_REVIEWED = "reviewed"
STATE_FINAL = "final"

SEGMENT_STATES = (STATE_INITIAL, STATE_TRANSLATED, STATE_REVIEWED, STATE_FINAL)


@dataclass
class Note:
    """A developer note attached to a unit."""
    text: str
    attributes: dict[str, str] = field(default_factory=dict)
    markup: bool = False


@dataclass
class Segment:
    """
    Source/target pair of a unit.

    Attributes:
        source: Source payload, inline markup serialized as XML
        target: Target payload, None when no translation exists
        state: One of SEGMENT_STATES, None when the attribute is absent
        sub_state: Free-form qualifier such as "declined"
        attributes: Remaining segment attributes (id, canResegment, ...)
        source_attributes: Attributes of the <source> element
        target_attributes: Attributes of the <target> element
        source_markup: Whether source is inner XML rather than plain text
        target_markup: Whether target is inner XML rather than plain text
    """
    source: str
    target: Optional[str] = None
    state: Optional[str] = None
    sub_state: Optional[str] = None
    attributes: dict[str, str] = field(default_factory=dict)
    source_attributes: dict[str, str] = field(default_factory=dict)
    target_attributes: dict[str, str] = field(default_factory=dict)
    source_markup: bool = False
    target_markup: bool = False

    @property
    def effective_state(self) -> str:
        """State with the XLIFF default applied."""
        return self.state or STATE_INITIAL


@dataclass
class Unit:
    """
    A translatable unit.

    Only the first segment is modelled. Everything else the unit holds is kept
    verbatim: `extras` are raw children found before the segment (e.g.
    originalData), `trailing` are raw children found after it.
    """
    id: str
    segment: Optional[Segment] = None
    notes: list[Note] = field(default_factory=list)
    attributes: dict[str, str] = field(default_factory=dict)
    extras: list[ET.Element] = field(default_factory=list)
    trailing: list[ET.Element] = field(default_factory=list)


@dataclass
class Group:
    """A named container of units and nested groups."""
    id: str
    elements: list["Node"] = field(default_factory=list)
    attributes: dict[str, str] = field(default_factory=dict)


Node = Union[Group, Unit, ET.Element]


@dataclass
class XliffFile:
    """One <file> of an XLIFF 2.0 document."""
    id: str
    original: Optional[str] = None
    elements: list[Node] = field(default_factory=list)
    attributes: dict[str, str] = field(default_factory=dict)

    def iter_units(self):
        """Yield (group_ids, unit) for every unit, depth first."""
        yield from _iter_units(self.elements, ())


@dataclass
class XliffDocument:
    """A source-to-target language translation file (XLIFF 2.0)."""
    source_language: str
    target_language: Optional[str] = None
    files: list[XliffFile] = field(default_factory=list)
    attributes: dict[str, str] = field(default_factory=dict)


def _iter_units(elements: list[Node], group_ids: tuple[str, ...]):
    for element in elements:
        if isinstance(element, Unit):
            yield group_ids, element
        elif isinstance(element, Group):
            yield from _iter_units(element.elements, group_ids + (element.id,))


# ---------------------------------------------------------------------------
# XLIFF 1.2
# ---------------------------------------------------------------------------

@dataclass
class TransUnit:
    """A <trans-unit> of an XLIFF 1.2 document."""
    id: str
    source: str
    target: Optional[str] = None
    notes: list[Note] = field(default_factory=list)
    attributes: dict[str, str] = field(default_factory=dict)
    extras: list[ET.Element] = field(default_factory=list)
    source_markup: bool = False
    target_markup: bool = False


@dataclass
class LegacyGroup:
    """A <group> of an XLIFF 1.2 document."""
    id: Optional[str]
    elements: list["LegacyNode"] = field(default_factory=list)
    attributes: dict[str, str] = field(default_factory=dict)


LegacyNode = Union[LegacyGroup, TransUnit, ET.Element]


@dataclass
class LegacyFile:
    """A <file> of an XLIFF 1.2 document; `body` holds the <body> children."""
    original: Optional[str]
    source_language: Optional[str] = None
    target_language: Optional[str] = None
    datatype: str = "plaintext"
    header: Optional[ET.Element] = None
    body: list[LegacyNode] = field(default_factory=list)
    attributes: dict[str, str] = field(default_factory=dict)


@dataclass
class LegacyDocument:
    """An XLIFF 1.2 document."""
    files: list[LegacyFile] = field(default_factory=list)
    version: str = "1.2"
    attributes: dict[str, str] = field(default_factory=dict)
