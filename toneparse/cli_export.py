"""CLI entry point.

Usage: toneparse PRESET_FILE.[xml|patch|cst|plist] [-f md|json]

Neural DSP presets (.xml) and Logic Pro channel strips (.cst, .patch
bundles) are decoded and printed as markdown tables (default) or JSON.
Binary .plist files are always printed as JSON.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from toneparse.core.dispatch import PLIST_EXTENSIONS, make_parser, parse_plist_file
from toneparse.core.errors import ToneparseError
from toneparse.core.models import PresetKind
from toneparse.export.json_export import dumps_preset, to_jsonable
from toneparse.export.markdown_format import preset_to_markdown
from toneparse.utils.config import APP_NAME, APP_VERSION
from toneparse.utils.file_utils import read_preset_bytes
from toneparse.utils.logging_setup import configure_logging

logger = logging.getLogger(__name__)


def _format_arg(value: str) -> str:
    # Accept the "-f=json" spelling as well as "-f json"
    return value.lstrip("=").lower()


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=APP_NAME,
        description="Parse Neural DSP, Logic Pro preset, and binary plist files",
    )
    parser.add_argument("preset", type=Path, help="PRESET_FILE.[xml|patch|cst|plist]")
    parser.add_argument(
        "-f", "--format", type=_format_arg, choices=("md", "json"), default="md",
        help="output format: md=markdown (default) | json=JSON",
    )
    parser.add_argument(
        "--metadata", action="store_true",
        help="include chunk metadata and parameter block details in JSON output",
    )
    parser.add_argument(
        "--coverage", action="store_true",
        help="report the share of bytes explained by the decoder",
    )
    parser.add_argument("--plot", type=Path, help="write a PNG of recovered parameter blocks")
    parser.add_argument("--version", action="version", version=f"%(prog)s {APP_VERSION}")
    return parser


def _fail(message: str, as_json: bool) -> int:
    if as_json:
        print(json.dumps({"error": message}))
    else:
        print(f"Error: {message}", file=sys.stderr)
    return 1


def run(args: argparse.Namespace) -> int:
    path: Path = args.preset
    as_json = args.format == "json"

    if path.suffix.lower() in PLIST_EXTENSIONS:
        root = parse_plist_file(path)
        print(json.dumps(to_jsonable(root), indent=2, ensure_ascii=False))
        return 0

    parser = make_parser(path, read_preset_bytes(path))
    preset = parser.parse()

    if as_json:
        print(dumps_preset(preset, include_metadata=args.metadata))
    else:
        print(preset_to_markdown(preset))

    if args.coverage:
        print(f"Coverage: {parser.coverage():.2f}%", file=sys.stderr)

    if args.plot:
        if preset.kind is not PresetKind.LOGIC_PRO:
            logger.warning("--plot only applies to Logic Pro presets")
        else:
            from toneparse.analyzer.block_plot import plot_parameter_blocks

            plotted = plot_parameter_blocks(preset, args.plot)
            logger.info("Plotted %d parameter blocks to %s", plotted, args.plot)
    return 0


def main(argv: list[str] | None = None) -> int:
    configure_logging()
    args = build_arg_parser().parse_args(argv)
    try:
        return run(args)
    except (ToneparseError, OSError) as e:
        logger.debug("Failed to parse %s", args.preset, exc_info=True)
        return _fail(str(e), args.format == "json")


if __name__ == "__main__":
    sys.exit(main())
