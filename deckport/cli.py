"""
Command line entry point.

    deckport import deck.pptx -o deck.json
    deckport export deck.json -o deck.pptx
"""

import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError

from deckport.config.logging_config import apply_logging_config, get_logger, setup_logging
from deckport.models.presentation import Document, ProgressEvent
from deckport.services.pptx.exporter import export_package_sync
from deckport.services.pptx.importer import import_package_sync

logger = get_logger(__name__)


def _report(event: ProgressEvent) -> None:
    logger.info(f"[{event.current:3d}%] {event.stage}: {event.message}")


def run_import(args) -> int:
    source = Path(args.input)
    result = import_package_sync(source.read_bytes(), _report, filename=source.name)
    for warning in result.warnings:
        logger.warning(warning)
    if not result.success:
        logger.error(result.error)
        return 1

    output = Path(args.output) if args.output else source.with_suffix('.json')
    output.write_text(json.dumps(result.document.to_wire(), indent=2), encoding='utf-8')
    print(f"Wrote {len(result.document.slides)} slides to {output}")
    return 0


def run_export(args) -> int:
    source = Path(args.input)
    try:
        document = Document.model_validate_json(source.read_text(encoding='utf-8'))
    except ValidationError as e:
        logger.error(f"Invalid document {source}: {e}")
        return 1

    result = export_package_sync(document, _report)
    for warning in result.warnings:
        logger.warning(warning)
    if not result.success:
        logger.error(result.error)
        return 1

    output = Path(args.output) if args.output else source.with_suffix('.pptx')
    output.write_bytes(result.data)
    print(f"Wrote {len(document.slides)} slides to {output}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="deckport", description="Convert between .pptx packages and document JSON")
    parser.add_argument("--log-level", help="Logging level (default: the ENV/DEBUG profile)")
    commands = parser.add_subparsers(dest="command", required=True)

    importing = commands.add_parser("import", help="Convert a .pptx/.pptm into document JSON")
    importing.add_argument("input", help="Path to the package")
    importing.add_argument("-o", "--output", help="Output JSON path (default: input with .json)")
    importing.set_defaults(handler=run_import)

    exporting = commands.add_parser("export", help="Convert document JSON into a .pptx")
    exporting.add_argument("input", help="Path to the document JSON")
    exporting.add_argument("-o", "--output", help="Output package path (default: input with .pptx)")
    exporting.set_defaults(handler=run_export)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    if args.log_level:
        setup_logging(args.log_level)
    else:
        apply_logging_config()
    try:
        return args.handler(args)
    except OSError as e:
        logger.error(f"{e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
