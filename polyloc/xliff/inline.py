#!/usr/bin/env python3
"""
Conversion between XLIFF payload elements and plain strings.

Payloads without child elements map to their unescaped text. Payloads that
carry inline codes (<ph/>, <pc>...</pc>, ...) map to their inner XML so the
markup survives translation untouched. Which of the two a string is gets
recorded next to it in the model (the *_markup flags); the string alone is
ambiguous, since plain text may contain "<x/>" literally.
"""

import logging
from xml.etree import ElementTree as ET
from xml.sax.saxutils import escape

logger = logging.getLogger(__name__)


def has_markup(element: ET.Element) -> bool:
    """True when the payload element has child elements."""
    return len(element) > 0


def element_as_text(element: ET.Element) -> str:
    """
    Render a payload element (source, target, note) as a string.

    Args:
        element: Element whose content should be rendered

    Returns:
        Plain text, or inner XML when the element has child elements
    """
    if not has_markup(element):
        return element.text or ""
    parts = [escape(element.text or "")]
    for child in element:
        parts.append(ET.tostring(child, encoding="unicode"))
    return "".join(parts)


def text_as_inline(element: ET.Element, text: str, markup: bool = False) -> None:
    """
    Fill a payload element from a string produced by element_as_text.

    Args:
        element: Empty payload element to fill
        text: Payload string
        markup: Whether text is inner XML rather than plain text
    """
    if markup:
        try:
            wrapper = ET.fromstring(f"<payload>{text}</payload>")
        except ET.ParseError as e:
            logger.warning(f"Writing malformed inline markup as text: {e}")
        else:
            element.text = wrapper.text
            element.extend(list(wrapper))
            return
    element.text = text
