"""
HostGuard - Snapshot persistence.

A snapshot file holds one 'path digest' line per fingerprinted file, sorted
by path, optionally followed by a blank line, a comment marker and one
'path (new|missing|mismatch)' line per change against the previous snapshot.
Files are named baseline_YYYYMMDD_HHMMSS.txt (UTC). Two writes in the same
second share a name and the second replaces the first, so writers are
expected to run at intervals far longer than one second.
"""

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Optional, Union

from hostguard.core.models import ChangeDescriptor, Snapshot
from hostguard.core.scanner import normalize_key

logger = logging.getLogger(__name__)

SNAPSHOT_PREFIX = "baseline_"
SNAPSHOT_SUFFIX = ".txt"
SNAPSHOT_GLOB = f"{SNAPSHOT_PREFIX}*{SNAPSHOT_SUFFIX}"
TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"
CHANGES_MARKER = "# Changes since previous baseline:"


def snapshot_name(now: datetime) -> str:
    """File name for a snapshot captured at now (converted to UTC)."""
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return f"{SNAPSHOT_PREFIX}{now.astimezone(timezone.utc).strftime(TIMESTAMP_FORMAT)}{SNAPSHOT_SUFFIX}"


def parse_lines(lines: Iterable[str]) -> tuple[dict[str, str], list[ChangeDescriptor]]:
    """
    Parse snapshot/baseline lines.

    Entry lines are split at the last space, since paths may contain spaces
    and digests never do. Blank lines and lines without a path and a digest
    are ignored. Everything after the changes marker is read as change
    descriptors instead of entries.
    """
    entries: dict[str, str] = {}
    changes: list[ChangeDescriptor] = []
    in_changes = False
    for raw in lines:
        line = raw.strip()
        if not line:
            continue
        if line.startswith("#"):
            if line == CHANGES_MARKER:
                in_changes = True
            continue
        if in_changes:
            change = ChangeDescriptor.parse(line)
            if change is not None:
                changes.append(change)
            continue
        path, _, digest = line.rpartition(" ")
        path = path.strip()
        if not path or not digest:
            continue
        entries[normalize_key(path)] = digest.lower()
    return entries, changes


def _render(fingerprint: dict[str, str], changes: Iterable[ChangeDescriptor] = ()) -> str:
    lines = [f"{path} {digest}" for path, digest in sorted(fingerprint.items())]
    changes = list(changes)
    if changes:
        lines.append("")
        lines.append(CHANGES_MARKER)
        lines.extend(c.format() for c in changes)
    return "\n".join(lines) + "\n" if lines else ""


class SnapshotStore:
    """Writes and reads timestamped fingerprint snapshots in a log directory."""

    def write_snapshot(
        self,
        log_dir: Union[str, Path],
        fingerprint: dict[str, str],
        changes: Iterable[ChangeDescriptor] = (),
        now: Optional[datetime] = None,
    ) -> str:
        """
        Persist a fingerprint (and the changes computed against its
        predecessor) as a new snapshot.

        Returns:
            The snapshot id (its file name).

        Raises:
            OSError: log_dir cannot be created or the file cannot be written.
        """
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)
        name = snapshot_name(now or datetime.now(timezone.utc))
        out = log_path / name
        if out.exists():
            logger.warning("Snapshot %s already exists and will be replaced", out)
        out.write_text(_render(fingerprint, changes), encoding="utf-8")
        logger.debug("Snapshot written: %s (%d entries)", out, len(fingerprint))
        return name

    def list_snapshots(self, log_dir: Union[str, Path]) -> list[Path]:
        """
        Snapshot files in log_dir, most recent first.

        Ordered by filesystem modification time, ties broken by name (the
        greater name sorts first). The timestamp embedded in the name is not
        consulted, so a touched or copied older file can sort first.
        """
        log_path = Path(log_dir)
        if not log_path.is_dir():
            return []
        stamped: list[tuple[float, str, Path]] = []
        for path in log_path.glob(SNAPSHOT_GLOB):
            try:
                if not path.is_file():
                    continue
                stamped.append((path.stat().st_mtime, path.name, path))
            except OSError as e:
                logger.debug("Cannot stat %s: %s", path, e)
        stamped.sort(key=lambda t: (t[0], t[1]), reverse=True)
        return [p for _, _, p in stamped]

    def load_latest(self, log_dir: Union[str, Path]) -> Optional[Snapshot]:
        """
        Load the most recently modified snapshot in log_dir.

        Candidates that cannot be read or contain no entries are skipped.
        Returns None when nothing usable is found.
        """
        for path in self.list_snapshots(log_dir):
            try:
                text = path.read_text(encoding="utf-8")
                mtime = path.stat().st_mtime
            except (OSError, UnicodeDecodeError) as e:
                logger.warning("Skipping unreadable snapshot %s: %s", path, e)
                continue
            entries, changes = parse_lines(text.splitlines())
            if not entries:
                logger.debug("Skipping empty snapshot %s", path)
                continue
            return Snapshot(
                fingerprint=entries,
                captured_at=datetime.fromtimestamp(mtime, tz=timezone.utc),
                changes=tuple(changes),
                path=path,
            )
        return None

    def load_baseline(self, baseline_path: Union[str, Path]) -> dict[str, str]:
        """
        Parse an arbitrary baseline file with the snapshot line format.

        Raises:
            FileNotFoundError: baseline_path does not exist.
        """
        path = Path(baseline_path)
        if not path.is_file():
            raise FileNotFoundError(f"Baseline file not found: {path}")
        with open(path, encoding="utf-8") as f:
            entries, _ = parse_lines(f)
        return entries

    def save_baseline(self, baseline_path: Union[str, Path], fingerprint: dict[str, str]) -> None:
        """Overwrite baseline_path with fingerprint (no change section)."""
        path = Path(baseline_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(_render(fingerprint), encoding="utf-8")
