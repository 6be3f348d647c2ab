"""
HostGuard - Core Module.

Provides hashing, tree fingerprinting, snapshot persistence, diffing,
self-check probes and the periodic job host.
"""

from hostguard.core.comparator import BaselineVerifier, diff
from hostguard.core.hashing import HashEngine
from hostguard.core.host import JobHost
from hostguard.core.jobs import PeriodicJob, SelfCheckJob, UpdateCheckJob, UserDataBackupJob
from hostguard.core.log_sink import LoggingSink, LogSink
from hostguard.core.scanner import TreeFingerprinter
from hostguard.core.self_check import IntegrityChecker
from hostguard.core.snapshot_store import SnapshotStore

__all__ = [
    "BaselineVerifier",
    "HashEngine",
    "IntegrityChecker",
    "JobHost",
    "LogSink",
    "LoggingSink",
    "PeriodicJob",
    "SelfCheckJob",
    "SnapshotStore",
    "TreeFingerprinter",
    "UpdateCheckJob",
    "UserDataBackupJob",
    "diff",
]
