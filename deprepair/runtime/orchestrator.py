"""
Repair orchestration: add used-undeclared and remove unused-declared deps.

Every manifest change runs as one editing session:

    backup -> open -> mutate -> commit -> verify -> discard
                         (any failure) -> restore -> raise

Phases run strictly in sequence (addition, then removal, then a final
re-verification), so at most one session touches the manifest at a time.
"""

import logging
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Sequence

from deprepair.config import RepairConfig
from deprepair.errors import AdditionFailed, IOFailure, RepairError
from deprepair.manifest.backup import ManifestBackup, write_atomic
from deprepair.manifest.coordinate import Coordinate
from deprepair.manifest.editor import ManifestEditor
from deprepair.runtime.protocols import Verifier
from deprepair.runtime.report import RemovalOutcome, RemovalStatus, RepairReport
from deprepair.runtime.strategy import TierOutcome, TwoTierStrategy

logger = logging.getLogger("deprepair.runtime.orchestrator")


def _ordered(coordinates: Iterable[Coordinate]) -> List[Coordinate]:
    return sorted(set(coordinates), key=lambda c: (c.key, c.version or ""))


class RepairOrchestrator:
    """
    Drives backups, editing sessions and verification through a repair.

    Example:
        orchestrator = RepairOrchestrator(
            project_dir=Path("/work/app"),
            verifier=CommandVerifier(["mvn", "-q", "test-compile"]),
        )
        report = orchestrator.repair(
            used_undeclared={Coordinate("org.slf4j", "slf4j-api", "2.0.9")},
            unused_declared={Coordinate("commons-io", "commons-io")},
        )
        print(report.success, report.removed)
    """

    def __init__(
        self,
        project_dir: Path,
        verifier: Verifier,
        config: Optional[RepairConfig] = None,
        manifest: Optional[Path] = None,
    ) -> None:
        """
        Initialize orchestrator.

        Args:
            project_dir: Working directory for verification
            verifier: Verifier confirming each change
            config: Repair configuration (defaults when omitted)
            manifest: Manifest path (defaults to project_dir / manifest_name)
        """
        self.config = config or RepairConfig.default()
        self.project_dir = Path(project_dir)
        self.manifest = (
            Path(manifest) if manifest else self.project_dir / self.config.manifest_name
        )
        self.verifier = verifier

    def repair(
        self,
        used_undeclared: Iterable[Coordinate],
        unused_declared: Iterable[Coordinate],
    ) -> RepairReport:
        """
        Run the full repair protocol.

        Args:
            used_undeclared: Coordinates to add
            unused_declared: Coordinates to remove

        Returns:
            RepairReport itemizing what was added, removed and what failed

        Raises:
            IOFailure: If the manifest is missing, a stale backup sits beside
                it, or the pre-repair snapshot cannot be read
        """
        additions = _ordered(used_undeclared)
        removals = _ordered(unused_declared)
        report = RepairReport(manifest=self.manifest, requested_additions=additions)

        logger.info("Fixing dependency declarations in %s.", self.manifest)
        if not additions and not removals:
            logger.info("Nothing to do.")
            return report

        self._check_manifest()
        snapshot = self._snapshot() if self.config.rollback_on_final_failure else None

        if self.config.precheck:
            logger.info("Verifying project before any change.")
            try:
                self._verify()
            except RepairError as exc:
                logger.error("Project does not verify before repair: %s", exc)
                report.precheck_error = exc.diagnostics
                return report

        if additions:
            try:
                self.add_dependencies(additions)
            except AdditionFailed as exc:
                report.addition_error = exc.diagnostics
                return report
            report.added = list(additions)

        if removals:
            outcome = self.remove_dependencies(removals)
            self._record_removals(report, removals, outcome)
            if outcome.final_ok is False and snapshot is not None:
                report.rolled_back = self._rollback(snapshot)

        return report

    def add_dependencies(self, coordinates: Iterable[Coordinate]) -> List[Coordinate]:
        """
        Add every coordinate in one verified session, all or nothing.

        Returns:
            The added coordinates in insertion order

        Raises:
            AdditionFailed: If any step failed; the manifest was restored
        """
        ordered = _ordered(coordinates)
        logger.info("Add %d used undeclared dependencies.", len(ordered))

        def mutate(editor: ManifestEditor) -> None:
            for coordinate in ordered:
                logger.info("+ %s", coordinate)
                editor.add_dependency(coordinate)

        try:
            self._session(mutate)
        except RepairError as exc:
            logger.info("Failed - %s.", exc)
            raise AdditionFailed(exc) from exc
        logger.info("Success.")
        return ordered

    def remove_dependencies(
        self, coordinates: Iterable[Coordinate]
    ) -> TierOutcome[Coordinate]:
        """
        Remove coordinates, in bulk first and one by one on failure.

        Returns:
            TierOutcome with the succeeded and failed coordinates
        """
        ordered = _ordered(coordinates)
        logger.info("Remove %d unused declared dependencies.", len(ordered))
        strategy: TwoTierStrategy[Coordinate] = TwoTierStrategy(
            apply_batch=self._remove_all,
            apply_item=self._remove_one,
            verify=self._verify,
            use_batch=self.config.use_bulk,
            use_items=self.config.use_per_item,
        )
        return strategy.run(ordered)

    def _remove_all(self, coordinates: Sequence[Coordinate]) -> None:
        def mutate(editor: ManifestEditor) -> None:
            for coordinate in coordinates:
                logger.info("- %s", coordinate)
                editor.remove_dependency(coordinate)

        self._session(mutate)

    def _remove_one(self, coordinate: Coordinate) -> None:
        logger.info("- %s", coordinate)
        self._session(lambda editor: editor.remove_dependency(coordinate))

    def _session(self, mutate: Callable[[ManifestEditor], object]) -> None:
        """Run one backup-protected, verified editing session."""
        backup = ManifestBackup.create(self.manifest, self.config.backup_suffix)
        try:
            with ManifestEditor.open(
                self.manifest,
                indent=self.config.indent,
                dependency_managed=self.config.dependency_managed,
                properties=self.config.properties,
            ) as editor:
                mutate(editor)
                editor.commit()
            self._verify()
        except BaseException:
            self._restore(backup)
            raise
        self._discard(backup)

    def _verify(self) -> object:
        return self.verifier.verify(self.project_dir)

    def _restore(self, backup: ManifestBackup) -> None:
        try:
            backup.restore()
        except IOFailure as exc:
            logger.error(
                "Failed to restore %s; original content remains in %s: %s",
                self.manifest,
                backup.backup,
                exc,
            )

    def _discard(self, backup: ManifestBackup) -> None:
        try:
            backup.discard()
        except IOFailure as exc:
            logger.warning("Leaving backup behind: %s", exc)

    def _check_manifest(self) -> None:
        if not self.manifest.is_file():
            raise IOFailure(f"Manifest not found: {self.manifest}")
        stale = ManifestBackup.find_stale(self.manifest, self.config.backup_suffix)
        if stale is not None:
            raise IOFailure(
                f"Stale backup {stale} found; {self.manifest} may be incomplete. "
                "Restore or discard the backup before repairing."
            )

    def _snapshot(self) -> bytes:
        try:
            return self.manifest.read_bytes()
        except OSError as exc:
            raise IOFailure(f"Failed to read {self.manifest}: {exc}") from exc

    def _rollback(self, snapshot: bytes) -> bool:
        logger.warning("Rolling %s back to its pre-repair content.", self.manifest)
        try:
            write_atomic(self.manifest, snapshot)
        except OSError as exc:
            logger.error("Failed to roll back %s: %s", self.manifest, exc)
            return False
        return True

    @staticmethod
    def _record_removals(
        report: RepairReport,
        removals: Sequence[Coordinate],
        outcome: TierOutcome[Coordinate],
    ) -> None:
        report.removal_tier = outcome.tier
        report.final_verification = outcome.final_ok
        report.final_diagnostic = outcome.final_diagnostic
        for coordinate in removals:
            if coordinate in outcome.failed:
                report.removals.append(
                    RemovalOutcome(
                        coordinate, RemovalStatus.FAILED, outcome.failed[coordinate]
                    )
                )
            else:
                report.removals.append(RemovalOutcome(coordinate, RemovalStatus.REMOVED))


__all__ = ["RepairOrchestrator"]
