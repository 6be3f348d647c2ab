import os
from datetime import datetime, timezone
from pathlib import Path

import pytest

from hostguard.core.models import ChangeDescriptor, ChangeKind
from hostguard.core.snapshot_store import CHANGES_MARKER, SnapshotStore, parse_lines, snapshot_name

T1 = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
T2 = datetime(2024, 1, 2, 9, 0, 0, tzinfo=timezone.utc)


def test_snapshot_name_is_utc_second_resolution():
    assert snapshot_name(T1) == "baseline_20240102_030405.txt"


def test_write_then_load_latest_round_trip(tmp_path: Path):
    store = SnapshotStore()
    fingerprint = {"b.dll": "bb", "a.exe": "aa", "sub/c.py": "cc"}

    snapshot_id = store.write_snapshot(tmp_path / "log", fingerprint, now=T1)
    latest = store.load_latest(tmp_path / "log")

    assert snapshot_id == "baseline_20240102_030405.txt"
    assert latest is not None
    assert dict(latest.fingerprint) == fingerprint
    assert latest.changes == ()
    assert latest.snapshot_id == snapshot_id


def test_paths_with_spaces_round_trip(tmp_path: Path):
    store = SnapshotStore()
    fingerprint = {"my file.py": "0" * 32, "common files/x.dll": "ab" * 16}

    store.write_snapshot(tmp_path, fingerprint, now=T1)

    assert dict(store.load_latest(tmp_path).fingerprint) == fingerprint


def test_parse_lines_splits_at_last_space():
    entries, _ = parse_lines(["Common Files/X.dll ABCDEF", "nodigest", " 1234"])

    assert entries == {"common files/x.dll": "abcdef"}


def test_file_layout_sorted_with_change_section(tmp_path: Path):
    store = SnapshotStore()
    changes = [ChangeDescriptor("x.dll", ChangeKind.MISSING), ChangeDescriptor("y.py", ChangeKind.NEW)]

    name = store.write_snapshot(tmp_path, {"b.py": "2", "a.py": "1"}, changes, now=T1)

    lines = (tmp_path / name).read_text(encoding="utf-8").splitlines()
    assert lines == ["a.py 1", "b.py 2", "", CHANGES_MARKER, "x.dll (missing)", "y.py (new)"]


def test_changes_are_read_back(tmp_path: Path):
    store = SnapshotStore()
    changes = [ChangeDescriptor("x.dll", ChangeKind.MODIFIED)]
    store.write_snapshot(tmp_path, {"x.dll": "ff"}, changes, now=T1)

    latest = store.load_latest(tmp_path)

    assert dict(latest.fingerprint) == {"x.dll": "ff"}
    assert latest.changes == (ChangeDescriptor("x.dll", ChangeKind.MODIFIED),)


def test_snapshot_fingerprint_is_read_only(tmp_path: Path):
    store = SnapshotStore()
    store.write_snapshot(tmp_path, {"a.py": "1"}, now=T1)

    latest = store.load_latest(tmp_path)

    with pytest.raises(TypeError):
        latest.fingerprint["a.py"] = "2"


def test_load_latest_empty_or_missing_dir(tmp_path: Path):
    store = SnapshotStore()

    assert store.load_latest(tmp_path / "absent") is None
    assert store.load_latest(tmp_path) is None


def test_load_latest_skips_unparseable(tmp_path: Path):
    store = SnapshotStore()
    store.write_snapshot(tmp_path, {"a.py": "1"}, now=T1)
    junk = tmp_path / "baseline_20990101_000000.txt"
    junk.write_text("garbage\n\n# comment only\n", encoding="utf-8")
    os.utime(junk, (2_000_000_000, 2_000_000_000))

    latest = store.load_latest(tmp_path)

    assert dict(latest.fingerprint) == {"a.py": "1"}


def test_latest_is_chosen_by_mtime_not_name(tmp_path: Path):
    store = SnapshotStore()
    older_name = store.write_snapshot(tmp_path, {"old.py": "1"}, now=T1)
    newer_name = store.write_snapshot(tmp_path, {"new.py": "2"}, now=T2)
    # Touch the older-named file so it is the most recently modified.
    os.utime(tmp_path / newer_name, (1_000_000, 1_000_000))
    os.utime(tmp_path / older_name, (2_000_000, 2_000_000))

    latest = store.load_latest(tmp_path)

    assert latest.snapshot_id == older_name
    assert dict(latest.fingerprint) == {"old.py": "1"}


def test_mtime_tie_broken_by_name(tmp_path: Path):
    store = SnapshotStore()
    first = store.write_snapshot(tmp_path, {"a.py": "1"}, now=T1)
    second = store.write_snapshot(tmp_path, {"b.py": "2"}, now=T2)
    for name in (first, second):
        os.utime(tmp_path / name, (1_500_000, 1_500_000))

    assert store.load_latest(tmp_path).snapshot_id == second
    assert store.list_snapshots(tmp_path) == [tmp_path / second, tmp_path / first]


def test_same_second_write_overwrites(tmp_path: Path):
    store = SnapshotStore()
    store.write_snapshot(tmp_path, {"a.py": "1"}, now=T1)
    store.write_snapshot(tmp_path, {"b.py": "2"}, now=T1)

    assert len(store.list_snapshots(tmp_path)) == 1
    assert dict(store.load_latest(tmp_path).fingerprint) == {"b.py": "2"}


def test_non_snapshot_files_ignored(tmp_path: Path):
    (tmp_path / "notes.txt").write_text("a.py 1\n")

    assert SnapshotStore().load_latest(tmp_path) is None


def test_load_baseline(tmp_path: Path):
    f = tmp_path / "file_hashes.txt"
    f.write_text("Bin\\Tool.exe ABCDEF\nmain.py 0123\n\nbroken-line\n", encoding="utf-8")

    assert SnapshotStore().load_baseline(f) == {"bin/tool.exe": "abcdef", "main.py": "0123"}


def test_load_baseline_missing_raises(tmp_path: Path):
    with pytest.raises(FileNotFoundError):
        SnapshotStore().load_baseline(tmp_path / "absent.txt")


def test_save_baseline_overwrites(tmp_path: Path):
    store = SnapshotStore()
    target = tmp_path / "nested" / "file_hashes.txt"
    store.save_baseline(target, {"a.py": "1"})
    store.save_baseline(target, {"b.py": "2"})

    assert store.load_baseline(target) == {"b.py": "2"}


def test_parse_lines_ignores_unknown_change_lines():
    entries, changes = parse_lines(["a.py 1", "", CHANGES_MARKER, "a.py (new)", "whatever"])

    assert entries == {"a.py": "1"}
    assert changes == [ChangeDescriptor("a.py", ChangeKind.NEW)]
