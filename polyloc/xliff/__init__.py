#!/usr/bin/env python3
"""
XLIFF interchange documents.

- model: dataclasses for XLIFF 2.0 (current) and XLIFF 1.2 (legacy)
- parser: reading/writing either dialect with ElementTree
- legacy: conversion between the two dialects
- inline: payload elements <-> strings with inline markup kept intact
"""

from .legacy import apply_to_legacy, to_current, to_legacy
from .model import (
    SEGMENT_STATES,
    STATE_FINAL,
    STATE_INITIAL,
    STATE_REVIEWED,
    STATE_TRANSLATED,
    Group,
    LegacyDocument,
    LegacyFile,
    LegacyGroup,
    Note,
    Segment,
    TransUnit,
    Unit,
    XliffDocument,
    XliffFile,
)
from .parser import (
    V1,
    V2,
    load_document,
    parse_xliff_path,
    parse_xliff_text,
    save_document,
    save_legacy_document,
    stringify_xliff1,
    stringify_xliff2,
)

__all__ = [
    'apply_to_legacy',
    'SEGMENT_STATES',
    'STATE_FINAL',
    'STATE_INITIAL',
    'STATE_REVIEWED',
    'STATE_TRANSLATED',
    'Group',
    'LegacyDocument',
    'LegacyFile',
    'LegacyGroup',
    'Note',
    'Segment',
    'TransUnit',
    'Unit',
    'XliffDocument',
    'XliffFile',
    'V1',
    'V2',
    'load_document',
    'parse_xliff_path',
    'parse_xliff_text',
    'save_document',
    'save_legacy_document',
    'stringify_xliff1',
    'stringify_xliff2',
    'to_current',
    'to_legacy',
]
