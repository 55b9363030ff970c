#!/usr/bin/env python3
"""
Comprehensive tests for entity extraction, prior-translation merging and
write-back.
"""

import hashlib

import pytest

import polyloc.entity as entity_module
from polyloc.entity import (
    SUB_STATE_REFINE_NEEDED,
    encode_key_component,
    entity_key_hash,
    extract_entities,
    merge_prior_translations,
    write_back,
)
from polyloc.errors import KeyCollisionError
from polyloc.xliff import parse_xliff_text, stringify_xliff2

from conftest import make_entity


def document(target_language="ja", state="initial", target=None, notes=("Greeting",), source="Hello"):
    notes_xml = "".join(f"<note>{n}</note>" for n in notes)
    target_xml = f"<target>{target}</target>" if target is not None else ""
    return parse_xliff_text(f"""<?xml version="1.0" encoding="UTF-8"?>
<xliff xmlns="urn:oasis:names:tc:xliff:document:2.0" version="2.0" srcLang="en" trgLang="{target_language}">
  <file id="f1" original="{target_language}.strings">
    <group id="home">
      <unit id="hello">
        <notes>{notes_xml}</notes>
        <segment state="{state}">
          <source>{source}</source>
          {target_xml}
        </segment>
      </unit>
    </group>
    <unit id="bye">
      <segment>
        <source>Bye</source>
      </segment>
    </unit>
  </file>
</xliff>
""")


def test_key_hash():
    """Test 1: The key is a 6 character SHA-256 prefix of the encoded path."""
    expected = hashlib.sha256("f1&home&hello".encode("utf-8")).hexdigest()[:6]
    assert entity_key_hash(["f1", "home", "hello"]) == expected
    assert len(entity_key_hash(["x"])) == 6


def test_key_components_are_percent_encoded():
    """Test 2: Components are encoded so separators cannot collide."""
    assert encode_key_component("a b&c/d") == "a%20b%26c%2Fd"
    assert encode_key_component("it's-ok_(1).~!*") == "it's-ok_(1).~!*"
    assert entity_key_hash(["a&b"]) != entity_key_hash(["a", "b"])


def test_extract_merges_languages():
    """Test 3: Documents for different languages contribute to the same entities."""
    entities = extract_entities([document("ja"), document("zh", state="translated", target="你好")])

    key = entity_key_hash(["f1", "home", "hello"])
    entity = entities[key]
    assert entity.key_paths == ["f1", "home", "hello"]
    assert entity.source.code == "en"
    assert entity.source.value == "Hello"
    assert entity.target_languages == ["ja", "zh"]
    assert entity.target["ja"].state == "initial"
    assert entity.target["zh"].value == "你好"
    assert entity.target["zh"].notes == ["Greeting"]
    assert entity.untranslated_languages == ["ja"]

    bye = entities[entity_key_hash(["f1", "bye"])]
    # No state attribute means initial
    assert bye.target["ja"].state == "initial"


def test_later_document_wins_per_language():
    """Test 4: A later document overwrites the slot of the same language."""
    entities = extract_entities([
        document("ja"),
        document("ja", state="translated", target="こんにちは"),
    ])
    entity = entities[entity_key_hash(["f1", "home", "hello"])]
    assert entity.target["ja"].value == "こんにちは"


def test_skips_documents_without_target_language():
    """Test 5: Documents without trgLang contribute nothing."""
    doc = document("ja")
    doc.target_language = None
    assert extract_entities([doc]) == {}


def test_skips_units_without_segment():
    """Test 6: Units without a segment are skipped."""
    doc = document("ja")
    doc.files[0].elements[1].segment = None
    entities = extract_entities([doc])
    assert list(entities) == [entity_key_hash(["f1", "home", "hello"])]


def test_key_collision_detected(monkeypatch):
    """Test 7: Two paths with the same short key raise instead of merging."""
    monkeypatch.setattr(entity_module, "entity_key_hash", lambda paths: "abc123")
    with pytest.raises(KeyCollisionError) as excinfo:
        extract_entities([document("ja")])
    assert excinfo.value.key == "abc123"


def test_merge_carries_forward_final():
    """Test 8: A final prior translation with unchanged source and notes is reused."""
    fresh = extract_entities([document("ja")])
    prior = extract_entities([document("ja", state="final", target="こんにちは")])

    merge_prior_translations(fresh, prior)

    target = fresh[entity_key_hash(["f1", "home", "hello"])].target["ja"]
    assert target.value == "こんにちは"
    assert target.state == "final"
    assert target is not prior[entity_key_hash(["f1", "home", "hello"])].target["ja"]


def test_merge_requires_same_source():
    """Test 9: A changed source forfeits the prior translation."""
    fresh = extract_entities([document("ja", source="Hello!")])
    prior = extract_entities([document("ja", state="final", target="こんにちは")])

    merge_prior_translations(fresh, prior)

    assert fresh[entity_key_hash(["f1", "home", "hello"])].target["ja"].state == "initial"


def test_merge_requires_same_notes_in_order():
    """Test 10: Changed or reordered notes forfeit the prior translation."""
    fresh = extract_entities([document("ja", notes=("A", "B"))])
    prior = extract_entities([document("ja", state="final", target="x", notes=("B", "A"))])

    merge_prior_translations(fresh, prior)

    assert fresh[entity_key_hash(["f1", "home", "hello"])].target["ja"].value is None


def test_merge_ignores_initial_prior_and_keeps_fresh_work():
    """Test 11: Only initial fresh slots are filled, only from non-initial prior slots."""
    fresh = extract_entities([document("ja", state="translated", target="new")])
    prior = extract_entities([document("ja", state="final", target="old")])
    merge_prior_translations(fresh, prior)
    assert fresh[entity_key_hash(["f1", "home", "hello"])].target["ja"].value == "new"

    fresh = extract_entities([document("ja")])
    prior = extract_entities([document("ja", state="initial", target="draft")])
    merge_prior_translations(fresh, prior)
    assert fresh[entity_key_hash(["f1", "home", "hello"])].target["ja"].value is None


def test_write_back_without_changes_is_identical():
    """Test 12: Extract + merge + write-back with nothing new keeps the bytes."""
    doc = document("ja", state="translated", target="こんにちは")
    before = stringify_xliff2(doc)

    entities = extract_entities([doc])
    merge_prior_translations(entities, extract_entities([document("ja")]))
    write_back([doc], entities)

    assert stringify_xliff2(doc) == before


def test_write_back_applies_translation():
    """Test 13: Translated slots land in the segment they came from."""
    doc = document("ja")
    entities = extract_entities([doc])
    entity = entities[entity_key_hash(["f1", "home", "hello"])]
    entity.target["ja"].value = "こんにちは"
    entity.update_state("reviewed", SUB_STATE_REFINE_NEEDED)
    entity.add_note("Use polite form")

    written = write_back([doc], entities)

    assert written == 1
    unit = doc.files[0].elements[0].elements[0]
    assert unit.segment.target == "こんにちは"
    assert unit.segment.state == "reviewed"
    assert unit.segment.sub_state == "refine-needed"
    assert [n.text for n in unit.notes] == ["Greeting", "Use polite form"]
    # Untouched unit keeps having no target
    assert doc.files[0].elements[1].segment.target is None


def test_entity_review_properties():
    """Test 14: Review helpers work across languages."""
    entity = make_entity("k", "Text", ["de", "ja"], notes=["n1"])
    # Nothing to review before a translation exists
    assert not entity.needs_review
    entity.target["de"].value = "Text-de"
    entity.update_state("translated")
    assert entity.reviewable_languages == ["de"]
    assert entity.needs_review
    entity.update_state("final")
    assert not entity.needs_review
    assert entity.untranslated_languages == []

    entity.update_state("reviewed", SUB_STATE_REFINE_NEEDED, ["ja"])
    assert entity.untranslated_languages == ["ja"]
    entity.add_note("n2", ["ja"])
    assert entity.all_notes == ["n1", "n2"]


def test_write_back_mirrors_source_markup():
    """Test 15: New translations are written as markup only when the source is."""
    doc = document("ja", source='Hi <ph id="1"/>')
    entities = extract_entities([doc])
    hello = entities[entity_key_hash(["f1", "home", "hello"])]
    hello.target["ja"].value = 'やあ <ph id="1" />'
    hello.update_state("translated")

    write_back([doc], entities)

    text = stringify_xliff2(doc)
    assert '<target>やあ <ph id="1" /></target>' in text

    plain = document("ja", source="a &lt; b")
    entities = extract_entities([plain])
    entity = entities[entity_key_hash(["f1", "home", "hello"])]
    assert entity.source.value == "a < b"
    entity.target["ja"].value = "<ph/> literally"
    entity.update_state("translated")

    write_back([plain], entities)

    assert "<target>&lt;ph/&gt; literally</target>" in stringify_xliff2(plain)
