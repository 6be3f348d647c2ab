"""
HostGuard - Fingerprint comparison.

diff() classifies every path of two fingerprints as new, missing or
modified. BaselineVerifier re-fingerprints a tree against a baseline file and
only reports what the baseline expects: files added since the baseline are
not reported.
"""

import logging
from pathlib import Path
from typing import Mapping, Optional, Sequence, Union

from hostguard.core.models import ChangeDescriptor, ChangeKind
from hostguard.core.scanner import TreeFingerprinter, patterns_for

logger = logging.getLogger(__name__)

SUMMARY_LIMIT = 20


def _same_digest(a: str, b: str) -> bool:
    return a.lower() == b.lower()


def diff(previous: Mapping[str, str], current: Mapping[str, str]) -> list[ChangeDescriptor]:
    """
    Compare two fingerprints.

    - In previous but not current -> MISSING
    - In both with different digests -> MODIFIED
    - In current but not previous -> NEW

    Missing/modified entries come first, then new ones; each group is
    ordered by path.
    """
    changes: list[ChangeDescriptor] = []
    for path in sorted(previous):
        if path not in current:
            changes.append(ChangeDescriptor(path, ChangeKind.MISSING))
        elif not _same_digest(previous[path], current[path]):
            changes.append(ChangeDescriptor(path, ChangeKind.MODIFIED))
    for path in sorted(current):
        if path not in previous:
            changes.append(ChangeDescriptor(path, ChangeKind.NEW))
    return changes


def summarize(changes: Sequence[ChangeDescriptor], limit: int = SUMMARY_LIMIT) -> str:
    """Comma separated list of the first limit changes, ' ...' appended when truncated."""
    text = ", ".join(c.format() for c in changes[:limit])
    if len(changes) > limit:
        text += " ..."
    return text


class BaselineVerifier:
    """Checks a directory tree against a baseline fingerprint."""

    def __init__(self, fingerprinter: Optional[TreeFingerprinter] = None) -> None:
        self.fingerprinter = fingerprinter or TreeFingerprinter()

    def verify_against_baseline(
        self,
        baseline: Mapping[str, str],
        root: Union[str, Path],
    ) -> list[ChangeDescriptor]:
        """
        Report baseline entries that are missing or modified under root.

        Only the file extensions present in the baseline are fingerprinted,
        and files present on disk but absent from the baseline are never
        reported.
        """
        if not baseline:
            return []
        current = self.fingerprinter.fingerprint(root, patterns_for(baseline))
        return [c for c in diff(baseline, current) if c.kind != ChangeKind.NEW]
