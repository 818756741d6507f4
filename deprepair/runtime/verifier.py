"""External command verification.

Runs the configured build/test command in the project directory and decides
whether a manifest change is safe. Output of the command is forwarded line by
line to a sink (logging by default) while the command runs.
"""

# Both output pipes are drained on their own threads before the main thread
# waits on the process; a command filling one pipe must never block.

from __future__ import annotations

import logging
import os
import shlex
import signal
import subprocess
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import IO, List, Optional, Sequence, Tuple, Union

from deprepair.errors import VerificationFailed
from deprepair.runtime.protocols import OutputSink

logger = logging.getLogger("deprepair.verifier")

STDOUT = "stdout"
STDERR = "stderr"

# Lines of output kept in failure diagnostics.
DIAGNOSTIC_TAIL = 40

# Seconds to wait for the readers once a timed-out command was killed.
READER_GRACE = 5.0

CommandSource = Union[str, Sequence[str]]


def split_command(command: CommandSource) -> List[str]:
    """Turn a shell-like string or an argument vector into an argv list."""
    if isinstance(command, str):
        argv = shlex.split(command)
    else:
        argv = [str(part) for part in command]
    if not argv:
        raise ValueError("Verification command must not be empty")
    return argv


def log_line(stream: str, line: str) -> None:
    """Default sink: stdout at INFO, stderr at WARNING."""
    if stream == STDERR:
        logger.warning("%s", line)
    else:
        logger.info("%s", line)


@dataclass(frozen=True)
class VerificationResult:
    """Outcome of one verification run.

    Attributes:
        success: Whether the command exited with status 0.
        exit_status: Exit status, None when the process did not complete.
        lines: Captured ``(stream, line)`` pairs in arrival order.
    """

    success: bool
    exit_status: Optional[int]
    lines: Tuple[Tuple[str, str], ...] = ()

    @property
    def stdout(self) -> List[str]:
        return [line for stream, line in self.lines if stream == STDOUT]

    @property
    def stderr(self) -> List[str]:
        return [line for stream, line in self.lines if stream == STDERR]

    @property
    def diagnostics(self) -> str:
        """Last lines of interleaved output, stderr lines tagged."""
        tail = self.lines[-DIAGNOSTIC_TAIL:]
        return "\n".join(
            f"[stderr] {line}" if stream == STDERR else line for stream, line in tail
        )


def _kill_tree(process: subprocess.Popen) -> None:
    """Kill the command together with every process it started."""
    if os.name == "posix":
        try:
            os.killpg(process.pid, signal.SIGKILL)
        except ProcessLookupError:
            pass
    else:
        process.kill()
    process.wait()


class CommandVerifier:
    """Verify a project by running an external command.

    Args:
        command: Argument vector, or a string split with shlex.
        sink: Receives each output line as it arrives.
        timeout: Seconds before the process is killed; None waits forever.
    """

    def __init__(
        self,
        command: CommandSource,
        sink: Optional[OutputSink] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self.command = split_command(command)
        self.sink: OutputSink = sink or log_line
        self.timeout = timeout

    def verify(self, project_dir: Path) -> VerificationResult:
        """Run the command in ``project_dir``.

        Returns:
            VerificationResult: The successful run.

        Raises:
            VerificationFailed: On non-zero exit, spawn failure or timeout.
        """
        logger.info("Verifying.")
        logger.info("%s", " ".join(self.command))

        try:
            process = subprocess.Popen(
                self.command,
                cwd=str(project_dir),
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                errors="replace",
                start_new_session=(os.name == "posix"),
            )
        except OSError as exc:
            logger.info("Failure.")
            raise VerificationFailed(None, f"failed to start {self.command[0]}: {exc}") from exc

        lines: List[Tuple[str, str]] = []
        lock = threading.Lock()
        readers = [
            threading.Thread(
                target=self._drain,
                args=(process.stdout, STDOUT, lines, lock),
                name=f"verifier-{STDOUT}",
                daemon=True,
            ),
            threading.Thread(
                target=self._drain,
                args=(process.stderr, STDERR, lines, lock),
                name=f"verifier-{STDERR}",
                daemon=True,
            ),
        ]
        for reader in readers:
            reader.start()

        exit_status: Optional[int]
        grace: Optional[float] = None
        try:
            exit_status = process.wait(timeout=self.timeout)
        except subprocess.TimeoutExpired:
            logger.warning(
                "Verification timed out after %ss, killing %s", self.timeout, self.command[0]
            )
            _kill_tree(process)
            exit_status = None
            grace = READER_GRACE
        except BaseException:
            _kill_tree(process)
            grace = READER_GRACE
            raise
        finally:
            for reader in readers:
                reader.join(grace)
            if any(reader.is_alive() for reader in readers):
                logger.warning("Output of %s still open after kill; not waiting", self.command[0])

        with lock:
            captured = tuple(lines)

        if exit_status != 0:
            logger.info("Failure.")
            result = VerificationResult(False, exit_status, captured)
            raise VerificationFailed(exit_status, result.diagnostics)

        logger.info("Success.")
        return VerificationResult(True, exit_status, captured)

    def _drain(
        self,
        stream: Optional[IO[str]],
        name: str,
        lines: List[Tuple[str, str]],
        lock: threading.Lock,
    ) -> None:
        if stream is None:
            return
        sink_failed = False
        with stream:
            for raw in stream:
                line = raw.rstrip("\r\n")
                with lock:
                    lines.append((name, line))
                if sink_failed:
                    continue
                try:
                    self.sink(name, line)
                except Exception:  # noqa: BLE001
                    logger.exception("Output sink failed on %s; further lines only captured", name)
                    sink_failed = True


class NoopVerifier:
    """Verifier that accepts every change without running anything."""

    def verify(self, project_dir: Path) -> VerificationResult:
        logger.debug("Skipping verification of %s", project_dir)
        return VerificationResult(True, 0)


__all__ = [
    "CommandVerifier",
    "NoopVerifier",
    "VerificationResult",
    "log_line",
    "split_command",
]
