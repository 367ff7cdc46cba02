from dataclasses import dataclass, field
from datetime import datetime
from logging import getLogger
from threading import Event, RLock, Thread
from time import monotonic
from typing import Callable, Optional

from .errors import DuplicateJob, JobAlreadyRunning, JobNotFound
from .utils import now_utc

LOG = getLogger(__name__)

SHUTDOWN_GRACE_SECONDS = 5.0


@dataclass(frozen=True)
class JobStatus:
    name: str
    interval_ms: int
    is_running: bool
    last_run: Optional[datetime]
    last_error: Optional[str]
    run_count: int


@dataclass
class _Job:
    name: str
    action: Callable[[], object]
    interval_ms: int
    cancelled: Event = field(default_factory=Event)
    # set once the current invocation finishes; None while idle
    in_flight: Optional[Event] = None
    last_run: Optional[datetime] = None
    last_error: Optional[Exception] = None
    run_count: int = 0


class JobScheduler:
    """Runs named actions at a fixed interval.

    Each job has its own timer thread. Ticks run the action on a worker
    thread, and a tick that fires while the previous invocation of the same
    job is still running is skipped rather than queued.
    """

    def __init__(self, grace_seconds: float = SHUTDOWN_GRACE_SECONDS):
        self.grace_seconds = grace_seconds
        self._jobs: dict[str, _Job] = {}
        # re-entrant so shutdown() can run from a signal handler
        self._lock = RLock()
        self._shutting_down = False

    def schedule(
        self,
        name: str,
        action: Callable[[], object],
        interval_ms: int,
        run_immediately: bool = False,
    ) -> JobStatus:
        with self._lock:
            if name in self._jobs:
                raise DuplicateJob(f'Job "{name}" is already scheduled')
            job = _Job(name=name, action=action, interval_ms=interval_ms)
            self._jobs[name] = job
        Thread(target=self._timer_loop, args=(job,), name=f"timer-{name}", daemon=True).start()
        LOG.info("Scheduled job %s to run every %ss", name, interval_ms / 1000)
        if run_immediately:
            self._dispatch(job)
        return _status(job)

    def cancel(self, name: str) -> None:
        with self._lock:
            job = self._jobs.pop(name, None)
        if job is None:
            return
        job.cancelled.set()
        LOG.info("Cancelled job %s", name)

    def run_now(self, name: str) -> None:
        with self._lock:
            job = self._jobs.get(name)
            if job is None:
                raise JobNotFound(f'Job "{name}" not found')
            if job.in_flight is not None:
                raise JobAlreadyRunning(f'Job "{name}" is already running')
            done = job.in_flight = Event()
        try:
            job.action()
        except Exception as error:
            self._record(job, error)
            raise
        else:
            self._record(job, None)
        finally:
            self._finish(job, done)

    def get_job_status(self, name: str) -> Optional[JobStatus]:
        with self._lock:
            job = self._jobs.get(name)
            return _status(job) if job is not None else None

    def get_all_job_statuses(self) -> list[JobStatus]:
        with self._lock:
            return [_status(job) for job in self._jobs.values()]

    def shutdown(self) -> None:
        with self._lock:
            self._shutting_down = True
            jobs = list(self._jobs.values())
            for job in jobs:
                job.cancelled.set()
            pending = [job.in_flight for job in jobs if job.in_flight is not None]
        if jobs:
            LOG.info("Shutting down scheduler")

        if pending:
            LOG.info("Waiting for %s running job(s) to complete", len(pending))
            deadline = monotonic() + self.grace_seconds
            for done in pending:
                remaining = deadline - monotonic()
                if remaining <= 0:
                    break
                done.wait(remaining)
            stragglers = sum(1 for done in pending if not done.is_set())
            if stragglers:
                LOG.warning(
                    "Proceeding with shutdown; %s job(s) still running after %ss",
                    stragglers,
                    self.grace_seconds,
                )

        with self._lock:
            self._jobs.clear()
        if jobs:
            LOG.info("Scheduler shut down")

    def _timer_loop(self, job: _Job) -> None:
        interval_seconds = job.interval_ms / 1000
        while not job.cancelled.wait(interval_seconds):
            self._dispatch(job)

    def _dispatch(self, job: _Job) -> None:
        Thread(target=self._tick, args=(job,), name=f"job-{job.name}", daemon=True).start()

    def _tick(self, job: _Job) -> None:
        with self._lock:
            if self._shutting_down or job.cancelled.is_set():
                return
            if job.in_flight is not None:
                LOG.debug("Skipping tick for %s; previous run still in progress", job.name)
                return
            done = job.in_flight = Event()
        try:
            job.action()
        except Exception as error:
            LOG.error("Scheduled job %s failed: %s", job.name, error)
            self._record(job, error)
        else:
            self._record(job, None)
        finally:
            self._finish(job, done)

    def _record(self, job: _Job, error: Optional[Exception]) -> None:
        with self._lock:
            if error is None:
                job.last_run = now_utc()
                job.last_error = None
                job.run_count += 1
            else:
                job.last_error = error

    def _finish(self, job: _Job, done: Event) -> None:
        with self._lock:
            job.in_flight = None
        done.set()


def _status(job: _Job) -> JobStatus:
    return JobStatus(
        name=job.name,
        interval_ms=job.interval_ms,
        is_running=job.in_flight is not None,
        last_run=job.last_run,
        last_error=str(job.last_error) if job.last_error is not None else None,
        run_count=job.run_count,
    )
