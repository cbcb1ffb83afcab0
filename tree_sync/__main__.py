"""CLI entry point for Tree Sync.

Usage:
    python -m tree_sync SOURCE DEST                 Synchronize once
    python -m tree_sync SOURCE DEST --watch         Synchronize, then follow changes
    python -m tree_sync SOURCE DEST --dry-run       Show what would change

SOURCE and DEST may be omitted when both are stored in the config file.
Command-line options override the stored settings for this run only.
"""

import argparse
import sys
from pathlib import Path

from tree_sync import __app_name__, __version__
from tree_sync.config import ENGINES, Config
from tree_sync.service import run_foreground, run_once, setup_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tree-sync",
        description=f"{__app_name__}: keep a destination folder an exact copy of a source folder",
    )
    parser.add_argument("source", nargs="?", help="Source directory")
    parser.add_argument("dest", nargs="?", help="Destination directory")
    parser.add_argument(
        "--watch", action="store_true", help="Keep following the source after the first sync"
    )
    parser.add_argument(
        "--tolerance", type=int, metavar="MS",
        help="Modification-time differences up to MS milliseconds are not a change",
    )
    parser.add_argument("--engine", choices=ENGINES, help="One-shot sync engine")
    parser.add_argument(
        "--dry-run", action="store_true", help="Only list what would change"
    )
    parser.add_argument(
        "--polling", action="store_true",
        help="Poll for changes instead of using native notifications",
    )
    parser.add_argument("--config", metavar="PATH", help="Config file to use")
    parser.add_argument(
        "--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR"], type=str.upper,
        help="Logging verbosity",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def apply_arguments(config: Config, args: argparse.Namespace) -> None:
    """Copy explicitly given arguments over the loaded configuration."""
    if args.source:
        config.source_folder = str(Path(args.source))
    if args.dest:
        config.destination_folder = str(Path(args.dest))
    if args.tolerance is not None:
        config.mtime_tolerance_ms = args.tolerance
    if args.engine:
        config.engine = args.engine
    if args.watch:
        config.watch = True
    if args.polling:
        config.use_polling_observer = True
    if args.log_level:
        config.log_level = args.log_level


def main(argv: list[str] | None = None) -> int:
    """Parse arguments and run.  Returns the process exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.tolerance is not None and args.tolerance < 0:
        parser.error("--tolerance must be zero or more")
    if args.watch and args.dry_run:
        parser.error("--watch and --dry-run cannot be combined")

    config = Config(Path(args.config) if args.config else None)
    apply_arguments(config, args)
    if not config.is_configured():
        parser.error("SOURCE and DEST are required (or set them in the config file)")

    setup_logging(config)

    if config.watch and not args.dry_run:
        return run_foreground(config)
    return run_once(config, dry_run=args.dry_run)


if __name__ == "__main__":
    sys.exit(main())
