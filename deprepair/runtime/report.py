"""Result containers for a repair run."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

from deprepair.manifest.coordinate import Coordinate
from deprepair.runtime.strategy import Tier


class RemovalStatus(Enum):
    """Outcome of removing one declared-but-unused dependency."""

    REMOVED = "removed"
    FAILED = "failed"


@dataclass(frozen=True)
class RemovalOutcome:
    """One line of the removal report."""

    coordinate: Coordinate
    status: RemovalStatus
    diagnostic: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "coordinate": str(self.coordinate),
            "status": self.status.value,
            "diagnostic": self.diagnostic,
        }


@dataclass
class RepairReport:
    """Itemized result of a repair run.

    Attributes:
        manifest: Manifest that was repaired.
        requested_additions: Coordinates asked to be added, sorted.
        added: Coordinates actually added (empty when addition failed).
        addition_error: Diagnostic of a failed, rolled-back addition.
        removals: Per-coordinate removal outcomes.
        removal_tier: Tier of the removal strategy that completed.
        final_verification: Result of the post-removal re-check.
        final_diagnostic: Diagnostic of a failed re-check.
        rolled_back: Whether the manifest was restored to its pre-repair
            bytes after a failed re-check.
        precheck_error: Diagnostic of a failed baseline verification.
    """

    manifest: Path
    requested_additions: List[Coordinate] = field(default_factory=list)
    added: List[Coordinate] = field(default_factory=list)
    addition_error: Optional[str] = None
    removals: List[RemovalOutcome] = field(default_factory=list)
    removal_tier: Tier = Tier.NONE
    final_verification: Optional[bool] = None
    final_diagnostic: Optional[str] = None
    rolled_back: bool = False
    precheck_error: Optional[str] = None

    @property
    def removed(self) -> List[Coordinate]:
        return [o.coordinate for o in self.removals if o.status is RemovalStatus.REMOVED]

    @property
    def failed_removals(self) -> List[RemovalOutcome]:
        return [o for o in self.removals if o.status is RemovalStatus.FAILED]

    @property
    def nothing_to_do(self) -> bool:
        return not self.requested_additions and not self.removals

    @property
    def success(self) -> bool:
        """True when every phase that ran reached a successful terminal state.

        Partial removal (some coordinates failed) still counts as success.
        """
        if self.precheck_error is not None or self.addition_error is not None:
            return False
        return self.final_verification is not False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "manifest": str(self.manifest),
            "success": self.success,
            "addition": {
                "requested": [str(c) for c in self.requested_additions],
                "added": [str(c) for c in self.added],
                "error": self.addition_error,
            },
            "removal": {
                "tier": self.removal_tier.value,
                "outcomes": [o.to_dict() for o in self.removals],
            },
            "final_verification": {
                "ok": self.final_verification,
                "diagnostic": self.final_diagnostic,
                "rolled_back": self.rolled_back,
            },
            "precheck_error": self.precheck_error,
        }


__all__ = ["RemovalOutcome", "RemovalStatus", "RepairReport"]
