"""Manifest backups enabling byte-exact rollback of an editing session."""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import Optional

from deprepair.errors import InvalidState, IOFailure

logger = logging.getLogger("deprepair.manifest.backup")

DEFAULT_BACKUP_SUFFIX = ".backup"


def backup_path_for(manifest: Path, suffix: str = DEFAULT_BACKUP_SUFFIX) -> Path:
    """Return the sibling backup location for a manifest."""
    return manifest.with_name(manifest.name + suffix)


def write_atomic(target: Path, data: bytes) -> None:
    """Write bytes to ``target`` through a sibling temp file and rename.

    An existing target keeps its permission bits.

    Raises:
        OSError: If the temp file cannot be written or renamed.
    """
    fd, tmp_name = tempfile.mkstemp(prefix=f".{target.name}.", dir=str(target.parent))
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(data)
            handle.flush()
            os.fsync(handle.fileno())
        if target.exists():
            shutil.copymode(target, tmp_name)
        os.replace(tmp_name, target)
    except OSError:
        try:
            os.unlink(tmp_name)
        except OSError:
            pass
        raise


class ManifestBackup:
    """Handle binding a manifest to its saved copy.

    A handle is resolved exactly once, either by :meth:`restore` or by
    :meth:`discard`. Creating a second backup for the same manifest before
    resolving the first overwrites the saved copy.

    Example:
        backup = ManifestBackup.create(pom)
        try:
            edit(pom)
        except RepairError:
            backup.restore()
            raise
        else:
            backup.discard()
    """

    def __init__(self, manifest: Path, backup: Path) -> None:
        self.manifest = manifest
        self.backup = backup
        self._resolved = False

    @classmethod
    def create(
        cls, manifest: Path, suffix: str = DEFAULT_BACKUP_SUFFIX
    ) -> "ManifestBackup":
        """Copy ``manifest`` to its sibling backup location.

        The copy is written to a temporary sibling and renamed into place, so
        the backup path never holds a partial copy.

        Raises:
            IOFailure: If the manifest is unreadable or the copy cannot be
                written.
        """
        manifest = Path(manifest)
        backup = backup_path_for(manifest, suffix)
        tmp_name: Optional[str] = None
        try:
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{backup.name}.", dir=str(manifest.parent)
            )
            os.close(fd)
            shutil.copyfile(manifest, tmp_name)
            shutil.copymode(manifest, tmp_name)
            os.replace(tmp_name, backup)
        except OSError as exc:
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    pass
            raise IOFailure(f"Failed to back up {manifest}: {exc}") from exc

        logger.debug("Backed up %s to %s", manifest, backup)
        return cls(manifest, backup)

    @classmethod
    def find_stale(
        cls, manifest: Path, suffix: str = DEFAULT_BACKUP_SUFFIX
    ) -> Optional[Path]:
        """Return a backup left behind by an interrupted run, if any."""
        candidate = backup_path_for(Path(manifest), suffix)
        return candidate if candidate.exists() else None

    @classmethod
    def adopt(
        cls, manifest: Path, suffix: str = DEFAULT_BACKUP_SUFFIX
    ) -> "ManifestBackup":
        """Wrap an existing backup so it can be restored or discarded.

        Raises:
            IOFailure: If no backup exists for ``manifest``.
        """
        manifest = Path(manifest)
        backup = backup_path_for(manifest, suffix)
        if not backup.exists():
            raise IOFailure(f"No backup found at {backup}")
        return cls(manifest, backup)

    @property
    def resolved(self) -> bool:
        return self._resolved

    def restore(self) -> None:
        """Replace the manifest with the backup and remove the backup.

        Raises:
            IOFailure: If the backup no longer exists or cannot be moved.
            InvalidState: If the handle was already resolved.
        """
        self._ensure_live()
        if not self.backup.exists():
            raise IOFailure(f"Backup {self.backup} no longer exists")
        try:
            os.replace(self.backup, self.manifest)
        except OSError as exc:
            raise IOFailure(
                f"Failed to restore {self.manifest} from {self.backup}: {exc}"
            ) from exc
        self._resolved = True
        logger.debug("Restored %s from %s", self.manifest, self.backup)

    def discard(self) -> None:
        """Delete the backup, leaving the manifest untouched.

        Raises:
            IOFailure: If the backup cannot be deleted.
            InvalidState: If the handle was already resolved.
        """
        self._ensure_live()
        try:
            self.backup.unlink()
        except OSError as exc:
            raise IOFailure(f"Failed to delete backup {self.backup}: {exc}") from exc
        self._resolved = True
        logger.debug("Discarded backup %s", self.backup)

    def _ensure_live(self) -> None:
        if self._resolved:
            raise InvalidState(f"Backup {self.backup} was already resolved")


__all__ = [
    "DEFAULT_BACKUP_SUFFIX",
    "ManifestBackup",
    "backup_path_for",
    "write_atomic",
]
