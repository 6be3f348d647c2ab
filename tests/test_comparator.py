from pathlib import Path

from hostguard.core.comparator import BaselineVerifier, diff, summarize
from hostguard.core.models import ChangeDescriptor, ChangeKind
from hostguard.core.scanner import TreeFingerprinter
from hostguard.core.snapshot_store import SnapshotStore


def _kinds(changes):
    return {c.path: c.kind for c in changes}


def test_diff_of_identical_maps_is_empty():
    fingerprint = {"a.py": "1", "b/c.dll": "2"}

    assert diff(fingerprint, fingerprint) == []
    assert diff({}, {}) == []


def test_diff_partitions_paths():
    previous = {"gone.py": "1", "same.py": "2", "changed.py": "3"}
    current = {"same.py": "2", "changed.py": "4", "added.py": "5"}

    changes = diff(previous, current)

    assert _kinds(changes) == {
        "gone.py": ChangeKind.MISSING,
        "changed.py": ChangeKind.MODIFIED,
        "added.py": ChangeKind.NEW,
    }
    assert len(changes) == len({c.path for c in changes})


def test_diff_order_missing_modified_pass_then_new():
    previous = {"z.py": "1", "a.py": "1"}
    current = {"a.py": "2", "m.py": "1", "b.py": "1"}

    assert diff(previous, current) == [
        ChangeDescriptor("a.py", ChangeKind.MODIFIED),
        ChangeDescriptor("z.py", ChangeKind.MISSING),
        ChangeDescriptor("b.py", ChangeKind.NEW),
        ChangeDescriptor("m.py", ChangeKind.NEW),
    ]


def test_digest_comparison_ignores_case():
    assert diff({"a.py": "ABCDEF"}, {"a.py": "abcdef"}) == []


def test_summarize_truncates():
    changes = [ChangeDescriptor(f"f{i}.py", ChangeKind.NEW) for i in range(25)]

    text = summarize(changes, limit=20)

    assert text.startswith("f0.py (new), f1.py (new)")
    assert text.endswith(" ...")
    assert text.count("(new)") == 20
    assert summarize(changes[:2]) == "f0.py (new), f1.py (new)"


def _baseline(root: Path, log_dir: Path) -> SnapshotStore:
    (root / "a.py").write_text("alpha")
    (root / "b.py").write_text("beta")
    store = SnapshotStore()
    store.write_snapshot(log_dir, TreeFingerprinter().fingerprint(root))
    return store


def test_modified_file_is_reported(tmp_path: Path):
    root, log_dir = tmp_path / "root", tmp_path / "log"
    root.mkdir()
    store = _baseline(root, log_dir)

    (root / "b.py").write_text("beta, changed")
    changes = diff(store.load_latest(log_dir).fingerprint, TreeFingerprinter().fingerprint(root))

    assert changes == [ChangeDescriptor("b.py", ChangeKind.MODIFIED)]


def test_added_file_is_reported_as_new(tmp_path: Path):
    root, log_dir = tmp_path / "root", tmp_path / "log"
    root.mkdir()
    store = _baseline(root, log_dir)

    (root / "c.py").write_text("gamma")
    changes = diff(store.load_latest(log_dir).fingerprint, TreeFingerprinter().fingerprint(root))

    assert changes == [ChangeDescriptor("c.py", ChangeKind.NEW)]


def test_verify_does_not_report_added_files(tmp_path: Path):
    root, log_dir = tmp_path / "root", tmp_path / "log"
    root.mkdir()
    store = _baseline(root, log_dir)
    (root / "c.py").write_text("gamma")

    changes = BaselineVerifier().verify_against_baseline(store.load_latest(log_dir).fingerprint, root)

    assert changes == []


def test_verify_reports_missing_and_modified(tmp_path: Path):
    root = tmp_path / "root"
    root.mkdir()
    (root / "keep.dll").write_bytes(b"1")
    (root / "edit.dll").write_bytes(b"2")
    (root / "drop.py").write_text("3")
    baseline = TreeFingerprinter().fingerprint(root)

    (root / "edit.dll").write_bytes(b"22")
    (root / "drop.py").unlink()
    (root / "extra.dll").write_bytes(b"4")

    changes = BaselineVerifier().verify_against_baseline(baseline, root)

    assert _kinds(changes) == {"drop.py": ChangeKind.MISSING, "edit.dll": ChangeKind.MODIFIED}


def test_verify_restricts_to_baseline_extensions(tmp_path: Path):
    root = tmp_path / "root"
    root.mkdir()
    (root / "notes.txt").write_text("n")
    baseline = TreeFingerprinter().fingerprint(root, ["*.txt"])

    (root / "notes.txt").write_text("changed")

    changes = BaselineVerifier().verify_against_baseline(baseline, root)

    assert changes == [ChangeDescriptor("notes.txt", ChangeKind.MODIFIED)]
