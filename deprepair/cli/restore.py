"""Restore command: recover a manifest from a leftover backup."""

import logging
from pathlib import Path

from rich.console import Console

from deprepair.cli.repair import RECOVERABLE_REPAIR_ERRORS, build_config
from deprepair.manifest.backup import ManifestBackup

logger = logging.getLogger("deprepair.cli.restore")


def restore_command(args) -> int:
    """Execute restore command.

    A backup left behind by an interrupted repair is moved back over the
    manifest, or deleted when ``--discard`` is given.

    Args:
        args: Parsed command-line arguments.

    Returns:
        int: Exit code.
    """
    console = Console()
    try:
        config = build_config(args)
        manifest = Path(args.project_dir).resolve() / config.manifest_name
        stale = ManifestBackup.find_stale(manifest, config.backup_suffix)
        if stale is None:
            console.print(f"No backup found for {manifest}.")
            return 0

        backup = ManifestBackup.adopt(manifest, config.backup_suffix)
        if args.discard:
            backup.discard()
            console.print(f"Discarded {stale}.")
        else:
            backup.restore()
            console.print(f"Restored {manifest} from {stale}.")
        return 0
    except RECOVERABLE_REPAIR_ERRORS as e:
        logger.error("Restore failed: %s", e)
        return 1
