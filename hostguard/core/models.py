"""
HostGuard - Shared data models (changes, snapshots, check results, jobs).
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Iterator, Mapping, Optional


class ChangeKind(str, Enum):
    """How a path differs between two fingerprints. Values are the on-disk tokens."""

    NEW = "new"
    MISSING = "missing"
    MODIFIED = "mismatch"


@dataclass(frozen=True, order=True)
class ChangeDescriptor:
    """One changed path and how it changed."""

    path: str
    kind: ChangeKind

    def format(self) -> str:
        return f"{self.path} ({self.kind.value})"

    @classmethod
    def parse(cls, line: str) -> Optional["ChangeDescriptor"]:
        """Parse a 'path (token)' line; None if it is not one."""
        line = line.strip()
        if not line.endswith(")") or " (" not in line:
            return None
        path, _, token = line[:-1].rpartition(" (")
        try:
            kind = ChangeKind(token)
        except ValueError:
            return None
        if not path:
            return None
        return cls(path=path, kind=kind)


@dataclass(frozen=True)
class Snapshot:
    """A persisted fingerprint, the time it was captured and the diff written with it."""

    fingerprint: Mapping[str, str]
    captured_at: datetime
    changes: tuple[ChangeDescriptor, ...] = ()
    path: Optional[Path] = None

    def __post_init__(self) -> None:
        if not isinstance(self.fingerprint, MappingProxyType):
            object.__setattr__(self, "fingerprint", MappingProxyType(dict(self.fingerprint)))

    @property
    def snapshot_id(self) -> Optional[str]:
        return self.path.name if self.path is not None else None

    def __len__(self) -> int:
        return len(self.fingerprint)


class CheckStatus(str, Enum):
    """Outcome of a single self-check probe."""

    OK = "OK"
    WARNING = "WARNING"
    ERROR = "ERROR"


@dataclass(frozen=True)
class CheckItem:
    """Result of one probe."""

    name: str
    status: CheckStatus
    message: str = ""

    def format(self) -> str:
        return f"{self.name}: {self.status.value} - {self.message}"


@dataclass
class CheckReport:
    """Ordered collection of CheckItems from one self-check run."""

    items: list[CheckItem] = field(default_factory=list)

    @property
    def is_success(self) -> bool:
        return all(item.status != CheckStatus.ERROR for item in self.items)

    def add(self, item: CheckItem) -> None:
        self.items.append(item)

    def by_status(self, status: CheckStatus) -> list[CheckItem]:
        return [item for item in self.items if item.status == status]

    def __iter__(self) -> Iterator[CheckItem]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)


class JobState(str, Enum):
    """Lifecycle of a periodic job."""

    IDLE = "IDLE"
    RUNNING = "RUNNING"
    STOPPED = "STOPPED"


@dataclass
class JobDescriptor:
    """Name, interval (seconds) and current state of a periodic job."""

    name: str
    interval: float
    state: JobState = JobState.IDLE
