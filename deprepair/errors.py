"""Exception hierarchy for manifest repair.

Every failure raised by the editing, backup and verification layers derives
from :class:`RepairError` so callers can catch the whole family at the
command boundary while the orchestrator reacts to individual kinds.
"""

from typing import Optional


# =============================================================================
# Custom Exception Hierarchy
# =============================================================================

class RepairError(Exception):
    """Base class for all repair failures."""

    @property
    def diagnostics(self) -> str:
        """Human-readable failure text used in reports."""
        return str(self)


class IOFailure(RepairError):
    """Backup, restore or manifest file I/O failed.

    Raised when the manifest or its backup cannot be read, written, moved or
    deleted (missing file, permission denied, disk full).
    """
    pass


class MalformedManifest(RepairError):
    """Manifest is not well-formed or has no dependency list."""
    pass


class NotFound(RepairError):
    """Removal target is absent from the dependency list."""
    pass


class InvalidState(RepairError):
    """API misuse, e.g. editing after commit or resolving a backup twice."""
    pass


class VerificationFailed(RepairError):
    """Verification command exited non-zero or could not be run.

    Attributes:
        exit_status: Process exit status, or None if the process never ran
            to completion (spawn failure, timeout).
        output: Captured output of the run.
    """

    def __init__(self, exit_status: Optional[int], output: str = "") -> None:
        self.exit_status = exit_status
        self.output = output
        if exit_status is None:
            message = "verification command did not complete"
        else:
            message = f"verification command exited with status {exit_status}"
        super().__init__(message)

    @property
    def diagnostics(self) -> str:
        if self.output:
            return f"{self}\n{self.output}"
        return str(self)


class AdditionFailed(RepairError):
    """Adding used-but-undeclared dependencies failed and was rolled back."""

    def __init__(self, cause: RepairError) -> None:
        self.cause = cause
        super().__init__(f"adding dependencies failed: {cause}")

    @property
    def diagnostics(self) -> str:
        return self.cause.diagnostics


__all__ = [
    "RepairError",
    "IOFailure",
    "MalformedManifest",
    "NotFound",
    "InvalidState",
    "VerificationFailed",
    "AdditionFailed",
]
