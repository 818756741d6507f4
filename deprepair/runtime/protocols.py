"""
Protocol definitions for runtime components.

Protocols provide abstract interfaces for dependency injection, so the
orchestrator can be driven by a real command verifier in production and by
scripted fakes in tests.
"""

from pathlib import Path
from typing import Any, Callable, Protocol

# (stream name, line) -> None; stream is "stdout" or "stderr".
OutputSink = Callable[[str, str], None]


class Verifier(Protocol):
    """
    Confirms that a project still builds after a manifest change.

    Implementations raise ``VerificationFailed`` when the project is broken
    and return a ``VerificationResult`` otherwise. Each call is independent;
    verifiers keep no state between calls.

    Example:
        verifier = CommandVerifier(["mvn", "-q", "test-compile"])
        verifier.verify(Path("/work/project"))
    """

    def verify(self, project_dir: Path) -> Any:
        """
        Run verification with ``project_dir`` as working directory.

        Args:
            project_dir: Directory holding the manifest.

        Returns:
            A VerificationResult (typed as Any to keep this module leaf-level)
        """
        ...
