"""
HostGuard - Self-check probes and the integrity baseline run.

IntegrityChecker runs a fixed sequence of independent probes (privileges,
external tool, disk space, expected artifact, dependent service, file
integrity) and gathers one CheckItem per probe into a CheckReport. A probe
never raises: failures become ERROR or WARNING items.
"""

import logging
import os
import shutil
from pathlib import Path
from typing import Callable, Optional, Sequence, Union

import psutil

from hostguard.core.comparator import BaselineVerifier, diff, summarize
from hostguard.core.log_sink import LoggingSink, LogSink
from hostguard.core.models import ChangeDescriptor, CheckItem, CheckReport, CheckStatus
from hostguard.core.scanner import TreeFingerprinter
from hostguard.core.snapshot_store import SnapshotStore

logger = logging.getLogger(__name__)

MIB = 1024 * 1024
DEFAULT_MIN_FREE_BYTES = 100 * MIB
DEFAULT_TOOL_NAME = "pnputil"
DEFAULT_SERVICE_NAME = "HostGuardService"
DEFAULT_ARTIFACT_NAME = "HostGuardDrv.inf"


def is_elevated() -> bool:
    """True when the process runs as root / Administrator."""
    if os.name == "nt":
        import ctypes

        return bool(ctypes.windll.shell32.IsUserAnAdmin())
    return os.geteuid() == 0


def default_tool_dirs() -> list[Path]:
    """System directories searched for the external tool before PATH."""
    if os.name == "nt":
        return [Path(os.environ.get("SystemRoot", r"C:\Windows")) / "System32"]
    return [Path("/usr/sbin"), Path("/sbin")]


def default_artifact_candidates(artifact_name: str = DEFAULT_ARTIFACT_NAME) -> list[Path]:
    stem = Path(artifact_name).stem
    return [
        Path(stem) / artifact_name,
        Path("..") / stem / artifact_name,
        Path("..") / ".." / stem / artifact_name,
    ]


class IntegrityChecker:
    """
    Application self-check.

    All locations are supplied at construction; nothing is looked up from
    process-wide state.
    """

    def __init__(
        self,
        root_dir: Union[str, Path],
        log_dir: Union[str, Path],
        *,
        patterns: Optional[Sequence[str]] = None,
        min_free_bytes: int = DEFAULT_MIN_FREE_BYTES,
        tool_name: str = DEFAULT_TOOL_NAME,
        tool_dirs: Optional[Sequence[Union[str, Path]]] = None,
        artifact_name: str = DEFAULT_ARTIFACT_NAME,
        artifact_candidates: Optional[Sequence[Union[str, Path]]] = None,
        service_name: str = DEFAULT_SERVICE_NAME,
        log: Optional[LogSink] = None,
        store: Optional[SnapshotStore] = None,
    ) -> None:
        self.root_dir = Path(root_dir)
        self.log_dir = Path(log_dir)
        self.patterns = list(patterns) if patterns else None
        self.min_free_bytes = min_free_bytes
        self.tool_name = tool_name
        self.tool_dirs = [Path(d) for d in tool_dirs] if tool_dirs is not None else default_tool_dirs()
        self.artifact_name = artifact_name
        if artifact_candidates is None:
            artifact_candidates = default_artifact_candidates(artifact_name)
        self.artifact_candidates = [Path(c) for c in artifact_candidates]
        self.service_name = service_name
        self.log = log or LoggingSink(logger)
        self.store = store or SnapshotStore()
        self.fingerprinter = TreeFingerprinter(exclude_dirs=[self.log_dir])
        self.verifier = BaselineVerifier(self.fingerprinter)

    @staticmethod
    def _guarded(name: str, probe: Callable[[], CheckItem]) -> CheckItem:
        try:
            return probe()
        except Exception as e:
            logger.exception("Probe %s failed", name)
            return CheckItem(name, CheckStatus.ERROR, f"Probe failed: {e}")

    def run_all_checks(self) -> CheckReport:
        """Run every probe in order and return the aggregate report."""
        report = CheckReport()
        probes: list[tuple[str, Callable[[], CheckItem]]] = [
            ("Administrator privileges", self.check_is_elevated),
            (self.tool_name, self.check_external_tool),
            ("Disk space", self.check_disk_space),
            (self.artifact_name, self.check_expected_file),
            (f"Service: {self.service_name}", self.check_service_exists),
            ("File hashes", self.save_baseline_with_changes),
        ]
        for name, probe in probes:
            report.add(self._guarded(name, probe))
        self.log.info(f"Self-check complete. Items: {len(report)}")
        return report

    def check_is_elevated(self) -> CheckItem:
        name = "Administrator privileges"
        try:
            elevated = is_elevated()
        except (OSError, AttributeError) as e:
            return CheckItem(name, CheckStatus.ERROR, f"Failed to determine elevation: {e}")
        if elevated:
            return CheckItem(name, CheckStatus.OK, "Running with elevated privileges.")
        return CheckItem(name, CheckStatus.WARNING, "Not running with elevated privileges. Some operations may fail.")

    def check_external_tool(self) -> CheckItem:
        name = self.tool_name
        for directory in self.tool_dirs:
            for candidate in (directory / self.tool_name, directory / f"{self.tool_name}.exe"):
                if candidate.is_file():
                    return CheckItem(name, CheckStatus.OK, f"Found in system folder: {candidate}")
        found = shutil.which(self.tool_name)
        if found:
            return CheckItem(name, CheckStatus.OK, f"Found in PATH: {found}")
        return CheckItem(name, CheckStatus.WARNING, f"{self.tool_name} not found. Driver install may fail.")

    def check_disk_space(self) -> CheckItem:
        name = "Disk space"
        try:
            free = psutil.disk_usage(str(self.root_dir)).free
        except OSError as e:
            return CheckItem(name, CheckStatus.ERROR, f"Failed to check disk space: {e}")
        status = CheckStatus.OK if free >= self.min_free_bytes else CheckStatus.ERROR
        return CheckItem(
            name,
            status,
            f"Available: {free // MIB} MB; Required: {self.min_free_bytes // MIB} MB",
        )

    def check_expected_file(self) -> CheckItem:
        name = self.artifact_name
        for candidate in self.artifact_candidates:
            path = candidate if candidate.is_absolute() else self.root_dir / candidate
            if path.is_file():
                return CheckItem(name, CheckStatus.OK, f"Found: {path.resolve()}")
        return CheckItem(name, CheckStatus.WARNING, f"{self.artifact_name} not found in expected locations.")

    def check_service_exists(self) -> CheckItem:
        if not self.service_name:
            return CheckItem("Service check", CheckStatus.WARNING, "No service name provided.")
        name = f"Service: {self.service_name}"
        service_iter = getattr(psutil, "win_service_iter", None)
        if service_iter is None:
            return CheckItem(name, CheckStatus.WARNING, "Service APIs not supported on this platform.")
        target = self.service_name.casefold()
        try:
            services = list(service_iter())
        except (psutil.Error, OSError) as e:
            return CheckItem(name, CheckStatus.WARNING, f"Cannot enumerate services: {e}")
        for service in services:
            try:
                if service.name().casefold() == target or service.display_name().casefold() == target:
                    return CheckItem(name, CheckStatus.OK, f"Service exists. Status: {service.status()}")
            except psutil.Error as e:
                logger.debug("Cannot query service %s: %s", service, e)
        return CheckItem(name, CheckStatus.WARNING, "Service not found.")

    def save_baseline_with_changes(
        self,
        on_changes: Optional[Callable[[list[ChangeDescriptor]], None]] = None,
    ) -> CheckItem:
        """
        Fingerprint root_dir, diff it against the latest snapshot in log_dir
        and write a new snapshot with the diff attached.

        on_changes, when given, receives the change list after the snapshot
        is written.
        """
        name = "File hashes"
        try:
            current = self.fingerprinter.fingerprint(self.root_dir, self.patterns)
            previous = self.store.load_latest(self.log_dir)
            changes = diff(previous.fingerprint, current) if previous is not None else []
            snapshot_id = self.store.write_snapshot(self.log_dir, current, changes)
        except OSError as e:
            return CheckItem(name, CheckStatus.ERROR, f"Failed to save baseline: {e}")
        msg = f"Wrote baseline {snapshot_id} with {len(current)} files"
        if changes:
            msg += "; changes: " + summarize(changes)
        if on_changes is not None:
            on_changes(changes)
        return CheckItem(name, CheckStatus.OK, msg)

    def check_file_hashes(self, output_file: Optional[Union[str, Path]] = None) -> CheckItem:
        """Fingerprint root_dir and, when output_file is given, overwrite it with the result."""
        name = "File hashes"
        try:
            current = self.fingerprinter.fingerprint(self.root_dir, self.patterns)
        except OSError as e:
            return CheckItem(name, CheckStatus.ERROR, f"Failed to compute file hashes: {e}")
        if not current:
            return CheckItem(name, CheckStatus.WARNING, "No files found to hash.")
        if output_file is None:
            return CheckItem(name, CheckStatus.OK, f"Computed {len(current)} hashes.")
        try:
            self.store.save_baseline(output_file, current)
        except OSError as e:
            return CheckItem(name, CheckStatus.WARNING, f"Computed hashes but failed to write baseline: {e}")
        return CheckItem(name, CheckStatus.OK, f"Computed {len(current)} hashes and saved to {output_file}")

    def verify_hashes_from_baseline(self, baseline_file: Union[str, Path]) -> CheckItem:
        """Compare root_dir against an ad-hoc baseline file; new files are not reported."""
        name = "Verify hashes"
        try:
            baseline = self.store.load_baseline(baseline_file)
        except FileNotFoundError:
            return CheckItem(name, CheckStatus.WARNING, f"Baseline file not found: {baseline_file}")
        except (OSError, UnicodeDecodeError) as e:
            return CheckItem(name, CheckStatus.ERROR, f"Failed to read baseline: {e}")
        try:
            changes = self.verifier.verify_against_baseline(baseline, self.root_dir)
        except OSError as e:
            return CheckItem(name, CheckStatus.ERROR, f"Failed to verify hashes: {e}")
        if not changes:
            return CheckItem(name, CheckStatus.OK, "All files match baseline.")
        return CheckItem(name, CheckStatus.ERROR, "Mismatches: " + summarize(changes))
