"""
HostGuard - Job host.

Starts one daemon thread per periodic job, all sharing a single cancellation
event. stop() sets the event and waits up to a grace period for the threads
to finish. Cancellation is cooperative: a job stuck inside its body is
abandoned (left running as a daemon thread) rather than killed.
"""

import logging
import threading
import time
from typing import Optional, Sequence

from hostguard.core.jobs import PeriodicJob
from hostguard.core.log_sink import LoggingSink, LogSink

logger = logging.getLogger(__name__)

DEFAULT_GRACE_PERIOD = 10.0


class JobHost:
    """Owns the cancellation event and one execution thread per job."""

    def __init__(
        self,
        jobs: Sequence[PeriodicJob],
        grace_period: float = DEFAULT_GRACE_PERIOD,
        log: Optional[LogSink] = None,
    ) -> None:
        self.jobs = list(jobs)
        self.grace_period = max(0.0, grace_period)
        self.log = log or LoggingSink(logger, "Host")
        self._cancel: Optional[threading.Event] = None
        self._threads: list[threading.Thread] = []

    @property
    def running(self) -> bool:
        return self._cancel is not None

    def start(self) -> None:
        """Create the cancellation event and launch every job."""
        if self._cancel is not None:
            raise RuntimeError("JobHost already started")
        self._cancel = threading.Event()
        try:
            for job in self.jobs:
                thread = threading.Thread(
                    target=job.run,
                    args=(self._cancel,),
                    name=f"hostguard-{job.name}",
                    daemon=True,
                )
                thread.start()
                self._threads.append(thread)
        except Exception:
            # Jobs already launched see the event and exit after their current cycle.
            self._cancel.set()
            self._cancel = None
            self._threads = []
            raise
        self.log.info(f"Started {len(self._threads)} job(s): {', '.join(j.name for j in self.jobs)}")

    def stop(self) -> bool:
        """
        Signal cancellation and wait up to grace_period for all jobs.

        Returns:
            True if every job thread finished in time.
        """
        if self._cancel is None:
            return True
        finished = True
        try:
            self._cancel.set()
            deadline = time.monotonic() + self.grace_period
            for thread in self._threads:
                thread.join(timeout=max(0.0, deadline - time.monotonic()))
            stragglers = [t.name for t in self._threads if t.is_alive()]
            if stragglers:
                finished = False
                self.log.error(
                    f"Abandoning {len(stragglers)} job(s) still running after {self.grace_period:g}s: "
                    + ", ".join(stragglers)
                )
        except Exception:
            finished = False
            logger.debug("Error while waiting for jobs to stop", exc_info=True)
        finally:
            self._cancel = None
            self._threads = []
        if finished:
            self.log.info("All jobs stopped.")
        return finished
