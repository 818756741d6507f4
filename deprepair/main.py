"""Main CLI entry point for deprepair.

Provides commands: repair, add, remove, restore
"""

import argparse
import logging
import sys
from typing import List, Optional

from rich.console import Console
from rich.logging import RichHandler

from deprepair import __version__
from deprepair.cli.repair import add_command, remove_command, repair_command
from deprepair.cli.restore import restore_command

logger = logging.getLogger("deprepair.cli")


def setup_logging(
    verbose: bool = False,
    console: Optional[Console] = None,
    log_file: Optional[str] = None,
) -> None:
    """Setup logging configuration with Rich integration.

    Args:
        verbose: Enable verbose logging.
        console: Rich Console instance for coordinated output (optional).
        log_file: Also write plain-text logs to this file (optional).
    """
    if verbose:
        level = logging.DEBUG
    else:
        level = logging.WARNING

    handler = RichHandler(
        console=console,
        show_time=True,
        show_path=False,
        markup=False,
        rich_tracebacks=True,
        tracebacks_show_locals=verbose,
        log_time_format="[%H:%M:%S]",
    )
    handlers: List[logging.Handler] = [handler]

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s [%(name)s] [%(levelname)s] %(message)s"
            )
        )
        handlers.append(file_handler)

    logging.basicConfig(
        level=level,
        format="[%(name)s] [%(levelname)s] %(message)s",
        handlers=handlers,
        force=True,
    )


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    """Options shared by every command that edits the manifest."""
    parser.add_argument(
        "project_dir",
        help="Project directory containing the manifest (pom.xml)",
    )
    parser.add_argument(
        "-c",
        "--config",
        help=(
            "Optional repair configuration. Can be a path to a TOML/JSON "
            "file or an inline TOML/JSON string. When omitted, built-in "
            "defaults are used. Command-line flags override it."
        ),
    )
    parser.add_argument(
        "--manifest-name",
        help="Manifest file name inside the project (default: pom.xml)",
    )
    parser.add_argument(
        "--command",
        help=(
            "Verification command run in the project directory "
            "(default: 'mvn -q clean install')"
        ),
    )
    parser.add_argument(
        "--indent",
        help="Indentation unit of the manifest (default: four spaces)",
    )
    parser.add_argument(
        "--dependency-managed",
        action="store_true",
        help="Versions are managed centrally; omit <version> from added entries",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        help="Seconds before a verification run is killed (default: no limit)",
    )
    parser.add_argument(
        "-o",
        "--output",
        help="Write the repair report to this JSON file",
    )
    parser.add_argument(
        "-n",
        "--dry-run",
        action="store_true",
        help="Show the planned edits without touching the manifest",
    )


def _add_removal_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--include",
        help="Comma-separated substrings; only matching coordinates are removed",
    )
    parser.add_argument(
        "--exclude",
        help="Comma-separated substrings; matching coordinates are never removed",
    )
    parser.add_argument(
        "--strategies",
        help="Comma-separated removal tiers (default: all-at-once,one-by-one)",
    )
    parser.add_argument(
        "--rollback-on-final-failure",
        action="store_true",
        help="Restore the original manifest when the final verification fails",
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for all commands."""
    parser = argparse.ArgumentParser(
        prog="deprepair",
        description=(
            "Deprepair - declare used dependencies and remove unused ones, "
            "keeping the build green"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    parser.add_argument(
        "--log-file",
        help="Output log to file (optional), in addition to console.",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command_name", help="Available commands")

    # Repair command
    repair_parser = subparsers.add_parser(
        "repair",
        help="Add used-undeclared and remove unused-declared dependencies",
    )
    _add_common_arguments(repair_parser)
    repair_parser.add_argument(
        "-i",
        "--input",
        help=(
            "TOML/JSON analysis result with 'used_undeclared' and "
            "'unused_declared' coordinate lists"
        ),
    )
    repair_parser.add_argument(
        "--add",
        action="append",
        metavar="G:A[:V[:SCOPE]]",
        help="Coordinate to declare (repeatable)",
    )
    repair_parser.add_argument(
        "--remove",
        action="append",
        metavar="G:A[:V[:SCOPE]]",
        help="Coordinate to remove (repeatable)",
    )
    _add_removal_arguments(repair_parser)
    repair_parser.add_argument(
        "--precheck",
        action="store_true",
        help="Verify the untouched project before making any change",
    )

    # Add command
    add_parser = subparsers.add_parser(
        "add",
        help="Only declare used-but-undeclared dependencies",
    )
    _add_common_arguments(add_parser)
    add_parser.add_argument(
        "add",
        nargs="*",
        metavar="G:A[:V[:SCOPE]]",
        help="Coordinates to declare",
    )
    add_parser.add_argument(
        "-i",
        "--input",
        help="TOML/JSON analysis result; only 'used_undeclared' is read",
    )
    add_parser.add_argument(
        "--no-verify",
        action="store_true",
        help="Skip the verification command after editing",
    )

    # Remove command
    remove_parser = subparsers.add_parser(
        "remove",
        help="Only remove declared-but-unused dependencies",
    )
    _add_common_arguments(remove_parser)
    remove_parser.add_argument(
        "remove",
        nargs="*",
        metavar="G:A[:V[:SCOPE]]",
        help="Coordinates to remove",
    )
    remove_parser.add_argument(
        "-i",
        "--input",
        help="TOML/JSON analysis result; only 'unused_declared' is read",
    )
    _add_removal_arguments(remove_parser)

    # Restore command
    restore_parser = subparsers.add_parser(
        "restore",
        help="Recover the manifest from a backup left by an interrupted run",
    )
    restore_parser.add_argument(
        "project_dir",
        help="Project directory containing the manifest (pom.xml)",
    )
    restore_parser.add_argument(
        "-c",
        "--config",
        help="Optional repair configuration (for manifest name and backup suffix)",
    )
    restore_parser.add_argument(
        "--manifest-name",
        help="Manifest file name inside the project (default: pom.xml)",
    )
    restore_parser.add_argument(
        "--discard",
        action="store_true",
        help="Delete the backup instead of restoring it",
    )

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point.

    Returns:
        int: Exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    # Setup logging
    setup_logging(args.verbose, log_file=args.log_file)

    # Dispatch to subcommand
    if args.command_name == "repair":
        return repair_command(args)
    elif args.command_name == "add":
        return add_command(args)
    elif args.command_name == "remove":
        return remove_command(args)
    elif args.command_name == "restore":
        return restore_command(args)
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
