#!/usr/bin/env python3
"""
Tests for the polyloc command line interface.
"""

import json
import logging

import pytest

from polyloc import cli
from polyloc.entity import LocalizationEntity, LocalizationSource, LocalizationTarget


@pytest.fixture(autouse=True)
def restore_logging():
    """Remove handlers configure_logging adds to the root logger."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    root.handlers = handlers
    root.setLevel(level)


def test_formats_command(capsys):
    """Test 1: formats prints the registered formats as JSON."""
    cli.main(["formats"])

    result = json.loads(capsys.readouterr().out)
    assert result["status"] == "ok"
    assert {f["name"] for f in result["formats"]} == {"text", "strings", "json", "xliff", "xcstrings"}
    assert "duration" in result


def test_export_command(tmp_path, capsys):
    """Test 2: export writes the bundle next to the config file."""
    (tmp_path / "polyloc.yml").write_text(
        "baseLanguage: en\n"
        "translator: {agent: api, baseUrl: 'http://localhost:3000/api'}\n"
        "localizations:\n"
        "  - {id: notes, path: '${LANGUAGE}/notes.txt', format: text, languages: [en, fr]}\n",
        encoding="utf-8",
    )
    (tmp_path / "en").mkdir()
    (tmp_path / "en" / "notes.txt").write_text("Hello", encoding="utf-8")

    cli.main(["export", "--config", str(tmp_path / "polyloc.yml")])

    result = json.loads(capsys.readouterr().out)
    assert result["localizations"] == ["notes"]
    assert list((tmp_path / ".polyloc").rglob("fr.xliff"))


def test_errors_exit_with_json(tmp_path, capsys):
    """Test 3: Failures are reported as JSON on stderr with exit code 1."""
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["export", "--config", str(tmp_path / "missing.yml")])

    assert excinfo.value.code == 1
    error = json.loads(capsys.readouterr().err.strip().splitlines()[-1])
    assert error["status"] == "error"
    assert error["error_type"] == "ConfigError"


def test_no_command_prints_help(capsys):
    """Test 4: Without a command the help is shown."""
    with pytest.raises(SystemExit):
        cli.main([])
    assert "polyloc" in capsys.readouterr().out


def test_terminal_reviewer(monkeypatch):
    """Test 5: Terminal answers map to review decisions."""
    entity = LocalizationEntity(
        key="abc123",
        key_paths=["f", "u"],
        source=LocalizationSource(code="en", value="Save"),
        target={"de": LocalizationTarget(value="Sichern", state="translated")},
    )
    answers = iter(["?", "r", "", "r", "Use Speichern"])
    monkeypatch.setattr("builtins.input", lambda prompt="": next(answers))

    decision = cli.terminal_reviewer(entity)

    assert decision.action == "refine"
    assert decision.note == "Use Speichern"

    monkeypatch.setattr("builtins.input", lambda prompt="": "a")
    assert cli.terminal_reviewer(entity).action == "approve"


def test_terminal_reviewer_hides_missing_translations(monkeypatch, capsys):
    """Test 6: Languages without a translation are not shown for review."""
    entity = LocalizationEntity(
        key="abc123",
        key_paths=["f", "u"],
        source=LocalizationSource(code="en", value="Save"),
        target={
            "de": LocalizationTarget(value="Sichern", state="translated"),
            "ja": LocalizationTarget(state="initial"),
        },
    )
    monkeypatch.setattr("builtins.input", lambda prompt="": "a")

    cli.terminal_reviewer(entity)

    shown = capsys.readouterr().err
    assert "de: Sichern" in shown
    assert "ja:" not in shown
    assert "None" not in shown
