"""
HostGuard - Periodic maintenance jobs.

A PeriodicJob executes its body once per interval until the shared
cancellation event is set. A failing cycle is logged and the loop goes on;
the wait between cycles returns as soon as cancellation fires.
"""

import logging
import shutil
import threading
import urllib.error
import urllib.request
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Optional, Union

from hostguard.core.alerts import AlertManager
from hostguard.core.log_sink import LoggingSink, LogSink
from hostguard.core.models import JobDescriptor, JobState
from hostguard.core.self_check import IntegrityChecker

logger = logging.getLogger(__name__)


class PeriodicJob(ABC):
    """
    Base class for recurring background work.

    Subclasses implement execute(). run() is meant to be the target of one
    dedicated thread; a job never runs its body concurrently with itself.
    """

    def __init__(self, name: str, interval: float, log: Optional[LogSink] = None) -> None:
        if interval <= 0:
            raise ValueError(f"{name}: interval must be positive")
        self._descriptor = JobDescriptor(name=name, interval=float(interval))
        self.log = log or LoggingSink(logger, name)
        self.cycles = 0

    @property
    def name(self) -> str:
        return self._descriptor.name

    @property
    def interval(self) -> float:
        return self._descriptor.interval

    @property
    def state(self) -> JobState:
        return self._descriptor.state

    @property
    def descriptor(self) -> JobDescriptor:
        """A copy of the job's descriptor."""
        d = self._descriptor
        return JobDescriptor(name=d.name, interval=d.interval, state=d.state)

    @abstractmethod
    def execute(self) -> None:
        """Run one cycle of the job's work."""

    def run(self, cancel: threading.Event) -> None:
        """Loop until cancel is set: execute once, then wait for the interval."""
        try:
            while not cancel.is_set():
                self._descriptor.state = JobState.RUNNING
                try:
                    self.execute()
                except Exception as e:
                    logger.debug("Job %s cycle failed", self.name, exc_info=True)
                    self.log.error(str(e) or type(e).__name__)
                finally:
                    self.cycles += 1
                    self._descriptor.state = JobState.IDLE
                if cancel.wait(self.interval):
                    break
        finally:
            self._descriptor.state = JobState.STOPPED


class SelfCheckJob(PeriodicJob):
    """Writes a new integrity snapshot each cycle and logs what changed."""

    def __init__(
        self,
        checker: IntegrityChecker,
        interval: float,
        alert_manager: Optional[AlertManager] = None,
        log: Optional[LogSink] = None,
    ) -> None:
        super().__init__("SelfCheck", interval, log)
        self.checker = checker
        self.alert_manager = alert_manager

    def execute(self) -> None:
        on_changes = self.alert_manager.emit_changes if self.alert_manager is not None else None
        item = self.checker.save_baseline_with_changes(on_changes=on_changes)
        self.log.info(f"{item.status.value}: {item.message}")


class UserDataBackupJob(PeriodicJob):
    """Mirrors a source directory into a backup directory, overwriting existing copies."""

    def __init__(
        self,
        source_dir: Union[str, Path],
        backup_dir: Union[str, Path],
        interval: float,
        log: Optional[LogSink] = None,
    ) -> None:
        super().__init__("UserDataBackup", interval, log)
        self.source_dir = Path(source_dir)
        self.backup_dir = Path(backup_dir)

    def execute(self) -> None:
        if not self.source_dir.is_dir():
            self.log.info(f"Source directory not found: {self.source_dir}")
            return
        self.backup_dir.mkdir(parents=True, exist_ok=True)
        copied = 0
        for path in sorted(self.source_dir.rglob("*")):
            if not path.is_file():
                continue
            dest = self.backup_dir / path.relative_to(self.source_dir)
            dest.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(path, dest)
            copied += 1
        self.log.info(f"Backup completed to: {self.backup_dir} ({copied} files)")


class UpdateCheckJob(PeriodicJob):
    """Polls an update endpoint over HTTP and logs the response status."""

    def __init__(
        self,
        endpoint: str,
        interval: float,
        timeout: float = 30.0,
        log: Optional[LogSink] = None,
        opener: Optional[urllib.request.OpenerDirector] = None,
    ) -> None:
        super().__init__("UpdateCheck", interval, log)
        self.endpoint = (endpoint or "").strip()
        self.timeout = timeout
        self._opener = opener or urllib.request.build_opener()

    def execute(self) -> None:
        if not self.endpoint:
            self.log.info("No update endpoint configured.")
            return
        if not self.endpoint.lower().startswith(("http://", "https://")):
            raise ValueError(f"Unsupported update endpoint: {self.endpoint}")
        request = urllib.request.Request(self.endpoint, headers={"User-Agent": "hostguard"})
        try:
            with self._opener.open(request, timeout=self.timeout) as response:
                code = response.status
        except urllib.error.HTTPError as e:
            code = e.code
        self.log.info(f"HTTP {code} {self.endpoint}")


def build_checker(config: dict[str, Any], log: Optional[LogSink] = None) -> IntegrityChecker:
    """IntegrityChecker for the locations and thresholds of a loaded config dict."""
    return IntegrityChecker(
        config["root_dir"],
        config["log_dir"],
        patterns=config["patterns"],
        min_free_bytes=config["min_free_bytes"],
        tool_name=config["tool_name"],
        tool_dirs=config["tool_dirs"],
        artifact_name=config["artifact_name"],
        artifact_candidates=config["artifact_candidates"],
        service_name=config["service_name"],
        log=log,
    )


def build_jobs(config: dict[str, Any], log: Optional[LoggingSink] = None) -> list[PeriodicJob]:
    """Construct the configured jobs from a loaded config dict."""
    log = log or LoggingSink(logging.getLogger("hostguard.jobs"))
    checker = build_checker(config, log.child("SelfCheck"))
    alert_manager = None
    if config.get("alert_log_path"):
        alert_manager = AlertManager(config["alert_log_path"], console_alerts=config.get("console_alerts", False))
    jobs: list[PeriodicJob] = [
        SelfCheckJob(
            checker,
            config["self_check_interval"],
            alert_manager=alert_manager,
            log=log.child("SelfCheck"),
        )
    ]
    if config.get("update_enabled"):
        jobs.append(
            UpdateCheckJob(
                config["update_endpoint"],
                config["update_interval"],
                timeout=config["update_timeout"],
                log=log.child("UpdateCheck"),
            )
        )
    if config.get("backup_enabled"):
        jobs.append(
            UserDataBackupJob(
                config["backup_source_dir"],
                config["backup_dir"],
                config["backup_interval"],
                log=log.child("UserDataBackup"),
            )
        )
    return jobs
