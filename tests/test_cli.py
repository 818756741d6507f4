"""Tests for deprepair CLI entrypoints."""

from __future__ import annotations

import json
from pathlib import Path
from typing import List

import pytest

import deprepair.main as main
from deprepair.cli import repair as repair_module
from deprepair.manifest.backup import backup_path_for
from deprepair.runtime.verifier import NoopVerifier, VerificationResult

POM = """<project>
    <groupId>com.example</groupId>
    <artifactId>demo</artifactId>
    <version>1.0.0</version>
    <packaging>{packaging}</packaging>
    <dependencies>
        <dependency>
            <groupId>junit</groupId>
            <artifactId>junit</artifactId>
            <version>4.13</version>
            <scope>test</scope>
        </dependency>
        <dependency>
            <groupId>commons-io</groupId>
            <artifactId>commons-io</artifactId>
            <version>2.11.0</version>
        </dependency>
    </dependencies>
</project>
"""


class _RecordingVerifier:
    instances: List["_RecordingVerifier"] = []

    def __init__(self, command, sink=None, timeout=None) -> None:
        self.command = command
        self.timeout = timeout
        self.calls = 0
        _RecordingVerifier.instances.append(self)

    def verify(self, project_dir: Path) -> VerificationResult:
        self.calls += 1
        return VerificationResult(True, 0)


@pytest.fixture(autouse=True)
def _quiet(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(main, "setup_logging", lambda *a, **k: None)
    _RecordingVerifier.instances = []
    monkeypatch.setattr(repair_module, "CommandVerifier", _RecordingVerifier)


def _project(tmp_path: Path, packaging: str = "jar") -> Path:
    pom = tmp_path / "pom.xml"
    pom.write_text(POM.format(packaging=packaging), encoding="utf-8")
    return pom


def test_main_requires_command(capsys: pytest.CaptureFixture[str]) -> None:
    """Missing subcommands make the CLI print help and fail."""
    assert main.main([]) == 1
    assert "Deprepair" in capsys.readouterr().out


def test_main_dispatches_repair(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    captured = {}

    def fake_repair_command(args) -> int:
        captured["args"] = args
        return 0

    monkeypatch.setattr(main, "repair_command", fake_repair_command)
    exit_code = main.main(
        ["repair", str(tmp_path), "--add", "g:a:1", "--add", "g:b", "--remove", "g:c"]
    )
    assert exit_code == 0
    args = captured["args"]
    assert args.project_dir == str(tmp_path)
    assert args.add == ["g:a:1", "g:b"]
    assert args.remove == ["g:c"]


def test_usage_error_exits_with_2() -> None:
    with pytest.raises(SystemExit) as excinfo:
        main.main(["repair"])
    assert excinfo.value.code == 2


def test_repair_end_to_end(tmp_path: Path) -> None:
    pom = _project(tmp_path)
    report_path = tmp_path / "out" / "report.json"
    exit_code = main.main(
        [
            "repair",
            str(tmp_path),
            "--add",
            "org.slf4j:slf4j-api:2.0.9",
            "--remove",
            "commons-io:commons-io",
            "--command",
            "mvn -q test-compile",
            "--timeout",
            "30",
            "-o",
            str(report_path),
        ]
    )

    assert exit_code == 0
    text = pom.read_text(encoding="utf-8")
    assert "<artifactId>slf4j-api</artifactId>" in text
    assert "commons-io" not in text
    assert not backup_path_for(pom).exists()

    verifier = _RecordingVerifier.instances[0]
    assert verifier.command == ["mvn", "-q", "test-compile"]
    assert verifier.timeout == 30
    # add, bulk remove, final check
    assert verifier.calls == 3

    report = json.loads(report_path.read_text(encoding="utf-8"))
    assert report["success"] is True
    assert report["addition"]["added"] == ["org.slf4j:slf4j-api:2.0.9"]
    assert report["removal"]["outcomes"][0]["status"] == "removed"


def test_repair_reads_input_file_and_applies_filter(tmp_path: Path) -> None:
    pom = _project(tmp_path)
    analysis = tmp_path / "analysis.json"
    analysis.write_text(
        json.dumps(
            {
                "used_undeclared": [],
                "unused_declared": ["junit:junit", "commons-io:commons-io"],
            }
        ),
        encoding="utf-8",
    )
    exit_code = main.main(
        ["repair", str(tmp_path), "--input", str(analysis), "--exclude", "junit"]
    )

    assert exit_code == 0
    text = pom.read_text(encoding="utf-8")
    assert "<artifactId>junit</artifactId>" in text
    assert "commons-io" not in text


def test_repair_skips_pom_packaging(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    pom = _project(tmp_path, packaging="pom")
    before = pom.read_text(encoding="utf-8")
    exit_code = main.main(["repair", str(tmp_path), "--remove", "commons-io:commons-io"])

    assert exit_code == 0
    assert pom.read_text(encoding="utf-8") == before
    assert "Skipping" in capsys.readouterr().out
    assert _RecordingVerifier.instances == []


def test_dry_run_touches_nothing(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    pom = _project(tmp_path)
    before = pom.read_text(encoding="utf-8")
    exit_code = main.main(
        ["repair", str(tmp_path), "--remove", "commons-io:commons-io", "--remove", "x:y", "-n"]
    )

    assert exit_code == 0
    assert pom.read_text(encoding="utf-8") == before
    out = capsys.readouterr().out
    assert "- commons-io:commons-io" in out
    assert "- x:y (not declared)" in out


def test_dry_run_matches_declared_by_identity(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    """A version other than the declared one still names a declared entry."""
    _project(tmp_path)
    exit_code = main.main(
        [
            "repair", str(tmp_path),
            "--add", "junit:junit:5.0",
            "--remove", "commons-io:commons-io:9.9",
            "-n",
        ]
    )

    assert exit_code == 0
    out = capsys.readouterr().out
    assert "- commons-io:commons-io:9.9\n" in out
    assert "(not declared)" not in out
    assert "junit:junit:5.0 (already declared)" in out


def test_missing_manifest_returns_1(tmp_path: Path) -> None:
    assert main.main(["repair", str(tmp_path), "--add", "g:a:1"]) == 1


def test_invalid_coordinate_returns_1(tmp_path: Path) -> None:
    _project(tmp_path)
    assert main.main(["repair", str(tmp_path), "--add", "nonsense"]) == 1


def test_invalid_strategy_returns_1(tmp_path: Path) -> None:
    _project(tmp_path)
    exit_code = main.main(
        ["remove", str(tmp_path), "commons-io:commons-io", "--strategies", "sometimes"]
    )
    assert exit_code == 1


def test_add_no_verify_uses_noop(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    pom = _project(tmp_path)
    used = []
    original = repair_module.run_repair

    def spy(args, used_coords, unused_coords, verifier=None, console=None):
        used.append(verifier)
        return original(args, used_coords, unused_coords, verifier=verifier, console=console)

    monkeypatch.setattr(repair_module, "run_repair", spy)
    exit_code = main.main(["add", str(tmp_path), "g:a:1", "--no-verify", "--indent", "  "])

    assert exit_code == 0
    assert isinstance(used[0], NoopVerifier)
    assert _RecordingVerifier.instances == []
    assert "<groupId>g</groupId>" in pom.read_text(encoding="utf-8")


def test_remove_command_one_by_one(tmp_path: Path) -> None:
    pom = _project(tmp_path)
    exit_code = main.main(
        ["remove", str(tmp_path), "junit:junit", "commons-io:commons-io", "--strategies", "one-by-one"]
    )
    assert exit_code == 0
    text = pom.read_text(encoding="utf-8")
    assert "junit" not in text and "commons-io" not in text
    # two per-item sessions plus the final check
    assert _RecordingVerifier.instances[0].calls == 3


def test_failed_verification_returns_1(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    from deprepair.errors import VerificationFailed

    class _Failing(_RecordingVerifier):
        def verify(self, project_dir: Path) -> VerificationResult:
            raise VerificationFailed(1, "BUILD FAILURE")

    monkeypatch.setattr(repair_module, "CommandVerifier", _Failing)
    pom = _project(tmp_path)
    before = pom.read_text(encoding="utf-8")

    assert main.main(["add", str(tmp_path), "g:a:1"]) == 1
    assert pom.read_text(encoding="utf-8") == before


def test_restore_command(tmp_path: Path) -> None:
    pom = _project(tmp_path)
    backup_path_for(pom).write_text("<project/>", encoding="utf-8")
    pom.write_text("broken", encoding="utf-8")

    assert main.main(["restore", str(tmp_path)]) == 0
    assert pom.read_text(encoding="utf-8") == "<project/>"
    assert not backup_path_for(pom).exists()


def test_restore_discard(tmp_path: Path) -> None:
    pom = _project(tmp_path)
    backup_path_for(pom).write_text("old", encoding="utf-8")

    assert main.main(["restore", str(tmp_path), "--discard"]) == 0
    assert "<project>" in pom.read_text(encoding="utf-8")
    assert not backup_path_for(pom).exists()


def test_restore_without_backup(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    _project(tmp_path)
    assert main.main(["restore", str(tmp_path)]) == 0
    assert "No backup found" in capsys.readouterr().out
