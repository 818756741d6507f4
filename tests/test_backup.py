"""Manifest backup tests."""

from __future__ import annotations

import os
import stat
from pathlib import Path

import pytest

from deprepair.errors import InvalidState, IOFailure
from deprepair.manifest.backup import ManifestBackup, backup_path_for, write_atomic


def _manifest(tmp_path: Path, content: bytes = b"<project>\r\n  <a/>\r\n</project>\r\n") -> Path:
    path = tmp_path / "pom.xml"
    path.write_bytes(content)
    return path


def test_backup_path_is_sibling(tmp_path: Path) -> None:
    assert backup_path_for(tmp_path / "pom.xml") == tmp_path / "pom.xml.backup"
    assert backup_path_for(tmp_path / "pom.xml", ".bak") == tmp_path / "pom.xml.bak"


def test_restore_is_byte_identical(tmp_path: Path) -> None:
    """After restore the manifest must match its content at create time."""
    original = b"\xef\xbb\xbf<project>\r\n  <a/>\r\n</project>"
    pom = _manifest(tmp_path, original)
    backup = ManifestBackup.create(pom)
    assert backup.backup.read_bytes() == original

    pom.write_bytes(b"garbage")
    backup.restore()

    assert pom.read_bytes() == original
    assert not backup.backup.exists()
    assert backup.resolved


def test_discard_keeps_manifest(tmp_path: Path) -> None:
    pom = _manifest(tmp_path)
    backup = ManifestBackup.create(pom)
    pom.write_bytes(b"edited")
    backup.discard()
    assert pom.read_bytes() == b"edited"
    assert not backup.backup.exists()


def test_no_temp_files_left_behind(tmp_path: Path) -> None:
    pom = _manifest(tmp_path)
    ManifestBackup.create(pom).discard()
    assert sorted(p.name for p in tmp_path.iterdir()) == ["pom.xml"]


def test_create_overwrites_previous_backup(tmp_path: Path) -> None:
    pom = _manifest(tmp_path, b"first")
    ManifestBackup.create(pom)
    pom.write_bytes(b"second")
    second = ManifestBackup.create(pom)
    pom.write_bytes(b"third")
    second.restore()
    assert pom.read_bytes() == b"second"


def test_create_missing_manifest_raises(tmp_path: Path) -> None:
    with pytest.raises(IOFailure):
        ManifestBackup.create(tmp_path / "pom.xml")
    assert list(tmp_path.iterdir()) == []


def test_restore_without_backup_raises(tmp_path: Path) -> None:
    pom = _manifest(tmp_path)
    backup = ManifestBackup.create(pom)
    backup.backup.unlink()
    with pytest.raises(IOFailure):
        backup.restore()


def test_handle_resolves_once(tmp_path: Path) -> None:
    pom = _manifest(tmp_path)
    backup = ManifestBackup.create(pom)
    backup.discard()
    with pytest.raises(InvalidState):
        backup.restore()
    with pytest.raises(InvalidState):
        backup.discard()


def test_find_stale_and_adopt(tmp_path: Path) -> None:
    """A leftover backup can be found and restored by a later process."""
    pom = _manifest(tmp_path, b"original")
    assert ManifestBackup.find_stale(pom) is None
    ManifestBackup.create(pom)
    pom.write_bytes(b"half-written")

    assert ManifestBackup.find_stale(pom) == tmp_path / "pom.xml.backup"
    ManifestBackup.adopt(pom).restore()
    assert pom.read_bytes() == b"original"


def test_adopt_missing_backup_raises(tmp_path: Path) -> None:
    pom = _manifest(tmp_path)
    with pytest.raises(IOFailure):
        ManifestBackup.adopt(pom)


def test_write_atomic_replaces_content(tmp_path: Path) -> None:
    target = tmp_path / "pom.xml"
    target.write_bytes(b"old")
    write_atomic(target, b"new")
    assert target.read_bytes() == b"new"
    assert [p.name for p in tmp_path.iterdir()] == ["pom.xml"]


@pytest.mark.skipif(os.name != "posix", reason="permission bits are POSIX only")
def test_write_atomic_keeps_file_mode(tmp_path: Path) -> None:
    target = tmp_path / "pom.xml"
    target.write_bytes(b"old")
    target.chmod(0o644)
    write_atomic(target, b"new")
    assert stat.S_IMODE(target.stat().st_mode) == 0o644


@pytest.mark.skipif(os.name != "posix", reason="permission bits are POSIX only")
def test_restore_keeps_file_mode(tmp_path: Path) -> None:
    pom = _manifest(tmp_path, b"original")
    pom.chmod(0o640)
    backup = ManifestBackup.create(pom)
    assert stat.S_IMODE(backup.backup.stat().st_mode) == 0o640

    write_atomic(pom, b"edited")
    backup.restore()
    assert pom.read_bytes() == b"original"
    assert stat.S_IMODE(pom.stat().st_mode) == 0o640
