#!/usr/bin/env python3
"""
polyloc - LLM-powered localization pipeline CLI

Keeps the localized resources of a project translated. Strings are exported
into an XLIFF bundle, translated by the polyloc translation service under a
token budget, and imported back into the project files. Translations that
were already approved survive every re-export.

Supported Formats:
    - text (plain text files)
    - strings (Apple .strings)
    - json (i18next, react-intl, vue-i18n)
    - xliff (XLIFF 1.2 / 2.0)

Commands:
    export    - Export localizations into the bundle
    translate - Translate the bundle
    import    - Write bundle translations into the project
    localize  - export + translate + import
    formats   - List supported formats

Example:
    polyloc localize --config polyloc.yml
"""

import argparse
import asyncio
import json
import logging
import sys
import time
from pathlib import Path
from typing import Callable, Optional

from tqdm import tqdm

from .bundle import export_localizations, import_localizations, translate_bundle
from .config import Config, load_config
from .entity import LocalizationEntity
from .format_handlers import FormatRegistry
from .translator.api import ApiTranslator
from .translator.orchestrator import ReviewDecision, TranslationReport

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

NOISY_LOGGERS = ("httpx", "httpcore")


def configure_logging(verbose: bool = False, log_file: Optional[str] = None) -> None:
    """
    Configure logging to stderr and optionally to a file.

    Args:
        verbose: Log DEBUG instead of WARNING on the console
        log_file: File receiving INFO and above
    """
    formatter = logging.Formatter(LOG_FORMAT)
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG if verbose else logging.INFO)

    # stdout is reserved for JSON results
    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(formatter)
    console.setLevel(logging.DEBUG if verbose else logging.WARNING)
    root_logger.addHandler(console)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(formatter)
        file_handler.setLevel(logging.INFO)
        root_logger.addHandler(file_handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def formatted_duration(seconds: float) -> str:
    if seconds < 1:
        return f"{seconds * 1000:.2f}ms"
    return f"{seconds:.2f}s"


def terminal_reviewer(entity: LocalizationEntity) -> ReviewDecision:
    """Ask the user on the terminal to approve, decline or refine a translation."""
    out = sys.stderr
    print(f"\n[{entity.key}] {entity.source.value}", file=out)
    for note in entity.all_notes:
        print(f"  // {note}", file=out)
    for lang in entity.reviewable_languages:
        print(f"  {lang}: {entity.target[lang].value}", file=out)

    while True:
        answer = input("[a]pprove / [d]ecline / [r]efine? ").strip().lower()
        if answer in ("a", "approve"):
            return ReviewDecision.approve()
        if answer in ("d", "decline"):
            return ReviewDecision.decline()
        if answer in ("r", "refine"):
            note = input("What should be improved? ").strip()
            if note:
                return ReviewDecision.refine(note)


def _load(args) -> Config:
    return load_config(args.config)


async def _translate(config: Config, bundle_path: Path, interactive: Optional[bool]) -> TranslationReport:
    if interactive is None:
        interactive = config.translator.interactive

    with tqdm(total=100, unit="%", desc="Translating", file=sys.stderr, leave=False) as bar:
        def on_progress(fraction: float) -> None:
            bar.update(int(fraction * 100) - bar.n)

        async with ApiTranslator(config.translator.base_url) as service:
            return await translate_bundle(
                bundle_path,
                service,
                context=config.global_context,
                reviewer=terminal_reviewer if interactive else None,
                on_progress=on_progress,
            )


def _translation_summary(report: TranslationReport) -> dict:
    summary = report.to_dict()
    if report.untranslated_count:
        summary["warning"] = (
            f"{report.untranslated_count} strings are still untranslated; "
            f"run translate again to retry them"
        )
    return summary


def _timed(step: Callable[[], dict]) -> dict:
    start = time.perf_counter()
    result = step()
    result["duration"] = formatted_duration(time.perf_counter() - start)
    return result


def cmd_export(args) -> dict:
    """Export localizations into the bundle."""
    config = _load(args)
    bundle_path = export_localizations(config)
    return {
        "status": "ok",
        "bundle": str(bundle_path),
        "localizations": [l.id for l in config.localizations],
        "summary": f"{len(config.localizations)} localization bundles exported to {bundle_path}",
    }


def cmd_translate(args) -> dict:
    """Translate the bundle."""
    config = _load(args)
    bundle_path = Path(args.bundle) if args.bundle else config.export_path
    report = asyncio.run(_translate(config, bundle_path, args.interactive))
    return {
        "status": "ok",
        "bundle": str(bundle_path),
        "translation": _translation_summary(report),
    }


def cmd_import(args) -> dict:
    """Write bundle translations into the project files."""
    config = _load(args)
    bundle_path = Path(args.bundle) if args.bundle else config.export_path
    import_localizations(config, bundle_path)
    return {
        "status": "ok",
        "bundle": str(bundle_path),
        "summary": f"Translations merged into {len(config.localizations)} localizations",
    }


def cmd_localize(args) -> dict:
    """Export, translate and import in one go."""
    config = _load(args)
    bundle_path = export_localizations(config)
    report = asyncio.run(_translate(config, bundle_path, args.interactive))
    import_localizations(config, bundle_path)
    return {
        "status": "ok",
        "bundle": str(bundle_path),
        "translation": _translation_summary(report),
    }


def cmd_formats(args) -> dict:
    """List supported formats."""
    formats = FormatRegistry.list_formats()
    return {
        "status": "ok",
        "formats": formats,
        "summary": f"{len(formats)} formats supported: {', '.join(f['name'] for f in formats)}",
    }


COMMANDS = {
    "export": cmd_export,
    "translate": cmd_translate,
    "import": cmd_import,
    "localize": cmd_localize,
    "formats": cmd_formats,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="polyloc",
        description="polyloc - LLM-powered localization pipeline",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Supported Formats:
  text     - Plain text, one string per file
  strings  - iOS/macOS .strings
  json     - i18next/react-intl/vue-i18n nested JSON
  xliff    - XLIFF 1.2 / 2.0

Examples:
  # Everything at once (searches polyloc.yml in the current folder)
  polyloc localize

  # Step by step
  polyloc export --config polyloc.yml
  polyloc translate --config polyloc.yml --interactive
  polyloc import --config polyloc.yml
        """,
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging on stderr")
    parser.add_argument("--log-file", help="Also write logs to this file")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    def add_config(sub):
        sub.add_argument("--config", "-c", help="Config file (default: polyloc.yml in the current folder)")

    def add_mode(sub):
        mode = sub.add_mutually_exclusive_group()
        mode.add_argument("--interactive", dest="interactive", action="store_true", default=None,
                          help="Review every translation")
        mode.add_argument("--automatic", dest="interactive", action="store_false",
                          help="Accept translations without review")

    export_parser = subparsers.add_parser("export", help="Export localizations into the bundle")
    add_config(export_parser)

    translate_parser = subparsers.add_parser("translate", help="Translate the bundle")
    add_config(translate_parser)
    translate_parser.add_argument("--bundle", "-b", help="Bundle folder (default: exportFolder)")
    add_mode(translate_parser)

    import_parser = subparsers.add_parser("import", help="Write translations into the project")
    add_config(import_parser)
    import_parser.add_argument("--bundle", "-b", help="Bundle folder (default: exportFolder)")

    localize_parser = subparsers.add_parser("localize", help="Export, translate and import")
    add_config(localize_parser)
    add_mode(localize_parser)

    subparsers.add_parser("formats", help="List supported formats")

    return parser


def main(argv: Optional[list[str]] = None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    configure_logging(args.verbose, args.log_file)

    try:
        result = _timed(lambda: COMMANDS[args.command](args))
        print(json.dumps(result, indent=2, ensure_ascii=False))
    except Exception as e:
        logger.debug("Command failed", exc_info=True)
        print(json.dumps({
            "status": "error",
            "error": str(e),
            "error_type": type(e).__name__,
        }), file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
