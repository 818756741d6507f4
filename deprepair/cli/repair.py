"""Repair command implementations (repair, add, remove)."""

import logging
from pathlib import Path
from typing import Any, Dict, Optional, Set, Tuple

from rich.console import Console

from deprepair.config import RepairConfig
from deprepair.errors import RepairError
from deprepair.export.json import export_json
from deprepair.manifest.coordinate import Coordinate
from deprepair.manifest.editor import ManifestEditor
from deprepair.manifest.filter import CoordinateFilter
from deprepair.manifest.project import read_project_info
from deprepair.runtime.config_loader import (
    load_analysis_input,
    load_repair_config,
    parse_coordinates,
)
from deprepair.runtime.display import render_report
from deprepair.runtime.orchestrator import RepairOrchestrator
from deprepair.runtime.protocols import Verifier
from deprepair.runtime.verifier import CommandVerifier, NoopVerifier

logger = logging.getLogger("deprepair.cli.repair")

RECOVERABLE_REPAIR_ERRORS = (
    RepairError,
    OSError,
    ValueError,
)

# argparse destination -> RepairConfig field
_OVERRIDES = {
    "command": "command",
    "indent": "indent",
    "dependency_managed": "dependency_managed",
    "include": "include",
    "exclude": "exclude",
    "strategies": "strategies",
    "precheck": "precheck",
    "rollback_on_final_failure": "rollback_on_final_failure",
    "timeout": "verify_timeout",
    "manifest_name": "manifest_name",
}


def build_config(args) -> RepairConfig:
    """Load the configured RepairConfig and apply command-line overrides.

    Flags left at their "not given" value (None / False) keep the config's
    setting.
    """
    config = load_repair_config(getattr(args, "config", None))
    overrides: Dict[str, Any] = {}
    for dest, field_name in _OVERRIDES.items():
        value = getattr(args, dest, None)
        if value is None or value is False:
            continue
        overrides[field_name] = value
    if not overrides:
        return config
    data = config.model_dump()
    data.update(overrides)
    return RepairConfig.from_dict(data)


def collect_inputs(args) -> Tuple[Set[Coordinate], Set[Coordinate]]:
    """Gather (used_undeclared, unused_declared) from --input and flags."""
    used: Set[Coordinate] = set()
    unused: Set[Coordinate] = set()
    input_file = getattr(args, "input", None)
    if input_file:
        used, unused = load_analysis_input(input_file)
    used |= parse_coordinates(getattr(args, "add", None))
    unused |= parse_coordinates(getattr(args, "remove", None))
    return used, unused


def repair_command(args) -> int:
    """Execute repair command.

    Args:
        args: Parsed command-line arguments.

    Returns:
        int: Exit code.
    """
    try:
        used, unused = collect_inputs(args)
        return run_repair(args, used, unused)
    except RECOVERABLE_REPAIR_ERRORS as e:
        logger.error("Repair failed: %s", e)
        return 1


def add_command(args) -> int:
    """Execute add command: only add used-but-undeclared dependencies."""
    try:
        used, _unused = collect_inputs(args)
        verifier: Optional[Verifier] = NoopVerifier() if args.no_verify else None
        return run_repair(args, used, set(), verifier=verifier)
    except RECOVERABLE_REPAIR_ERRORS as e:
        logger.error("Add failed: %s", e)
        return 1


def remove_command(args) -> int:
    """Execute remove command: only remove declared-but-unused dependencies."""
    try:
        _used, unused = collect_inputs(args)
        return run_repair(args, set(), unused)
    except RECOVERABLE_REPAIR_ERRORS as e:
        logger.error("Remove failed: %s", e)
        return 1


def run_repair(
    args,
    used: Set[Coordinate],
    unused: Set[Coordinate],
    verifier: Optional[Verifier] = None,
    console: Optional[Console] = None,
) -> int:
    """Shared implementation behind the repair/add/remove commands.

    Raises:
        RepairError: On precondition failures (missing manifest, stale backup).
        ValueError: On invalid configuration.
    """
    console = console or Console()
    config = build_config(args)
    project_dir = Path(args.project_dir).resolve()
    manifest = project_dir / config.manifest_name
    logger.debug("Project dir: %s", project_dir)
    logger.debug("Manifest: %s", manifest)

    info = read_project_info(manifest)
    if info.is_aggregator:
        console.print(f"Skipping {manifest}: packaging is '{info.packaging}'.")
        return 0

    unused = CoordinateFilter(config.include, config.exclude).filter(unused)

    if getattr(args, "dry_run", False):
        return _dry_run(manifest, config, used, unused, console)

    if verifier is None:
        verifier = CommandVerifier(config.command, timeout=config.verify_timeout)

    orchestrator = RepairOrchestrator(
        project_dir, verifier, config=config, manifest=manifest
    )
    report = orchestrator.repair(used, unused)
    render_report(report, console)

    output = getattr(args, "output", None)
    if output:
        export_json(report, Path(output))

    return 0 if report.success else 1


def _dry_run(
    manifest: Path,
    config: RepairConfig,
    used: Set[Coordinate],
    unused: Set[Coordinate],
    console: Console,
) -> int:
    editor = ManifestEditor.open(
        manifest,
        indent=config.indent,
        dependency_managed=config.dependency_managed,
        properties=config.properties,
    )
    try:
        declared = {coordinate.key for coordinate in editor.declared()}
    finally:
        editor.close()

    for coordinate in sorted(used, key=lambda c: c.key):
        note = " (already declared)" if coordinate.key in declared else ""
        console.print(f"+ {coordinate}{note}")
    for coordinate in sorted(unused, key=lambda c: c.key):
        note = "" if coordinate.key in declared else " (not declared)"
        console.print(f"- {coordinate}{note}")
    if not used and not unused:
        console.print("Nothing to do.")
    return 0


__all__ = [
    "add_command",
    "build_config",
    "collect_inputs",
    "remove_command",
    "repair_command",
    "run_repair",
]
