from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Sequence

import dotenv

import pdfharvest
from pdfharvest.extractors.data_types import DocumentResult
from pdfharvest.extractors.serialization import serialize_extraction
from pdfharvest.settings import HarvestSettings


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pdfharvest",
        description="Extract PDF text and emit it to stdout (or JSON with --json).",
    )
    parser.add_argument(
        "path",
        type=Path,
        help="Path to the PDF file to extract.",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Emit the structured extraction result as JSON.",
    )
    parser.add_argument(
        "--tables",
        action="store_true",
        help="Emit candidate table rows instead of the page text (JSON with --json).",
    )
    parser.add_argument(
        "--progress",
        action="store_true",
        help="Report extraction progress on stderr.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging on stderr.",
    )
    return parser


def _report_progress(percent: int) -> None:
    print(f"pdfharvest: {percent}%", file=sys.stderr)


def _serialize_tables(result: DocumentResult) -> list[dict]:
    return [
        serialize_extraction(candidate)
        for candidate in pdfharvest.harvest_tables(result.pages)
    ]


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    try:
        args, unknown = parser.parse_known_args(argv)
    except SystemExit as exc:
        code = exc.code if isinstance(exc.code, int) else 1
        return code

    if unknown:
        unknown_str = " ".join(unknown)
        print(
            f"pdfharvest: warning: unsupported arguments: {unknown_str}",
            file=sys.stderr,
        )
        return 1

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        settings = HarvestSettings.from_env(
            dotenv_path=dotenv.find_dotenv(usecwd=True) or None
        )
        result = pdfharvest.extract_file(
            args.path,
            on_progress=_report_progress if args.progress else None,
            settings=settings,
        )
        if args.json:
            payload = (
                _serialize_tables(result)
                if args.tables
                else serialize_extraction(result)
            )
            json.dump(payload, sys.stdout)
            sys.stdout.write("\n")
        elif args.tables:
            for candidate in pdfharvest.harvest_tables(result.pages):
                sys.stdout.write(f"{candidate.page}\t{candidate.content}\n")
        else:
            sys.stdout.write(result.get_full_text().rstrip())
            sys.stdout.write("\n")
        return 0
    except Exception as exc:
        print(f"pdfharvest: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
