"""Command-line interface for makewebbook."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from .version import __version__


def _get_usage() -> str:
    return (
        f"makewebbook {__version__}\n"
        "Usage:\n"
        "  makewebbook [--help] [--version|--ver]\n"
        "  makewebbook BOOK_DIR [options]\n\n"
        "Options:\n"
        "  --config PATH   Configuration file (default: BOOK_DIR/resources/configuration.json)\n"
        "  --seed N        Seed for identifiers generated for elements without id\n"
        "  --verbose       Verbose progress logs\n"
        "  --debug         Debug logs"
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(add_help=False)
    parser.add_argument("book_dir", nargs="?", help="Directory containing the book files")
    parser.add_argument("--help", action="store_true")
    parser.add_argument("--version", action="store_true")
    parser.add_argument("--ver", action="store_true")
    parser.add_argument("--config", help="Path of the JSON configuration file")
    parser.add_argument("--seed", type=int, default=None, help="Seed for generated element ids")
    parser.add_argument("--verbose", action="store_true", help="Verbose progress logs")
    parser.add_argument("--debug", action="store_true", help="Debug logs")
    return parser


def main(argv: list[str] | None = None) -> int:
    if argv is None:
        argv = sys.argv[1:]

    parser = _build_parser()
    args, unknown = parser.parse_known_args(argv)
    if unknown:
        print(_get_usage())
        return 1

    if not argv or args.help:
        print(_get_usage())
        return 0

    if args.version or args.ver:
        print(__version__)
        return 0

    try:
        from makewebbook import core
        from makewebbook.model import BookStructureError
    except Exception as exc:
        print(f"Unable to import makewebbook core: {exc}", file=sys.stderr)
        return 1

    if not args.book_dir:
        print(_get_usage())
        print("Argument BOOK_DIR is required", file=sys.stderr)
        return core.EXIT_INVALID_ARGS

    book_dir = Path(args.book_dir).expanduser().resolve()
    if not book_dir.exists() or not book_dir.is_dir():
        print(f"Book directory not found: {book_dir}", file=sys.stderr)
        return core.EXIT_INVALID_ARGS

    core.setup_logging(args.verbose, args.debug)
    core.LOG.info("Book directory that shall be processed: %s", book_dir)

    if args.config:
        config_path = Path(args.config).expanduser().resolve()
    else:
        config_path = book_dir / core.CONFIGURATION_FILE
    core.LOG.info("Configuration file: %s", config_path)
    if not config_path.is_file():
        print(f"Configuration file not found: {config_path}", file=sys.stderr)
        return core.EXIT_CONFIG
    try:
        config = core.load_configuration(config_path)
    except ValueError as exc:
        print(str(exc), file=sys.stderr)
        return core.EXIT_CONFIG

    try:
        result = core.run_pipeline(book_dir, config, seed=args.seed)
    except BookStructureError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return core.EXIT_STRUCTURE
    except (OSError, RuntimeError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return core.EXIT_IO

    if args.verbose:
        print(
            f"{len(result.rewritten)} section file(s) rewritten, table of contents written to {result.toc_path}, "
            f"backup in {result.backup_path}"
        )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
