"""CLI entrypoint for vipsgen."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from .config import CONFIG_FILENAME
from .debug import DEFAULT_DEBUG_PATH
from .errors import VipsgenError
from .logging import configure_logging
from .orchestrator import DEFAULT_EXTRACT_DIR, DEFAULT_OUTPUT_DIR, GenerateOptions, Orchestrator


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"expected an integer, got {value!r}") from exc
    if number < 1:
        raise argparse.ArgumentTypeError("must be at least 1")
    return number


def _positive_float(value: str) -> float:
    try:
        number = float(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"expected a number, got {value!r}") from exc
    if number <= 0:
        raise argparse.ArgumentTypeError("must be positive")
    return number


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="vipsgen",
        description="Generate layered libvips bindings from the live operation registry.",
    )
    parser.add_argument(
        "output",
        nargs="?",
        type=Path,
        help=f"Output directory (same as --out, defaults to ./{DEFAULT_OUTPUT_DIR}).",
    )
    parser.add_argument(
        "--out",
        type=Path,
        help=f"Output directory for generated files (defaults to ./{DEFAULT_OUTPUT_DIR}).",
    )
    parser.add_argument(
        "--templates",
        type=Path,
        help="Render templates from this directory instead of the embedded set.",
    )
    parser.add_argument(
        "--extract",
        action="store_true",
        help="Copy the templates to --extract-dir and exit without generating.",
    )
    parser.add_argument(
        "--extract-dir",
        type=Path,
        default=DEFAULT_EXTRACT_DIR,
        help=f"Destination for --extract (defaults to ./{DEFAULT_EXTRACT_DIR}).",
    )
    parser.add_argument(
        "--debug",
        nargs="?",
        type=Path,
        const=DEFAULT_DEBUG_PATH,
        default=None,
        metavar="PATH",
        help=f"Write introspected metadata to PATH (defaults to {DEFAULT_DEBUG_PATH}) and log debug output.",
    )
    parser.add_argument(
        "--include-test",
        action="store_true",
        default=None,
        help="Also render test-only templates.",
    )
    parser.add_argument(
        "--snapshot",
        type=Path,
        help="Read the registry from a recorded snapshot instead of libvips.",
    )
    parser.add_argument(
        "--workers",
        type=_positive_int,
        help="Number of templates rendered in parallel.",
    )
    parser.add_argument(
        "--deadline",
        type=_positive_float,
        metavar="SECONDS",
        help="Abort generation when the run takes longer than this.",
    )
    parser.add_argument(
        "--no-consistency-check",
        dest="check_consistency",
        action="store_false",
        default=None,
        help="Skip the cross-layer consistency check of rendered output.",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=Path(CONFIG_FILENAME),
        help=f"Configuration file (defaults to ./{CONFIG_FILENAME}).",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=False,
        help="Increase log verbosity for troubleshooting.",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        help="Also write log output to this file.",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for vipsgen."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.output is not None and args.out is not None and args.output != args.out:
        parser.error("the positional output directory and --out disagree")

    configure_logging(verbose=bool(args.verbose or args.debug), log_file=args.log_file)
    orchestrator = Orchestrator()

    if args.extract:
        try:
            written = orchestrator.run_extract(
                args.extract_dir, templates_dir=args.templates, config_path=args.config
            )
        except VipsgenError as exc:
            parser.exit(1, f"vipsgen {exc.stage or 'extract'} failed: {exc}\n")
        print(f"Extracted {len(written)} templates to {_relativize(args.extract_dir)}")
        return

    options = GenerateOptions(
        output_dir=args.out or args.output,
        templates_dir=args.templates,
        snapshot=args.snapshot,
        include_test=args.include_test,
        workers=args.workers,
        deadline=args.deadline,
        check_consistency=args.check_consistency,
        debug_path=args.debug,
    )
    try:
        outcome = orchestrator.run_generate(options, config_path=args.config)
    except VipsgenError as exc:
        parser.exit(
            1,
            f"vipsgen {exc.stage or 'generation'} failed: {exc}\nRun with --verbose for more details.\n",
        )
    print(
        f"Generated {len(outcome.files)} files for {outcome.operations} operations "
        f"(libvips {outcome.version}) in {_relativize(outcome.output_dir)}"
    )


def _relativize(path: Path) -> str:
    try:
        return str(Path(path).resolve().relative_to(Path.cwd()))
    except ValueError:
        return str(path)


if __name__ == "__main__":
    main(sys.argv[1:])
