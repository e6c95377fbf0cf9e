"""
In-memory job queue with priorities and a concurrency cap.

Jobs are dispatched by a fixed pool of runner threads, each blocking on one
JobDispatcher.dispatch() call at a time, so at most `max_concurrent` worker
processes exist at once. Higher priority first, FIFO within a priority.
"""

import heapq
import itertools
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from ..config import IngestConfig
from ..errors import DuplicateJobError, JobFailedError
from ..schema.jobs import Job, JobCompleted, JobFailed, JobPriority, JobResult, JobStatus, JobType
from ..utils.logging import get_logger
from .dispatcher import JobDispatcher
from .executors import TaskExecutor

logger = get_logger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class JobRecord:
    """Queue-side view of a job."""

    job: Job
    priority: JobPriority = JobPriority.NORMAL
    status: JobStatus = JobStatus.PENDING
    progress: float = 0.0
    result: Optional[JobResult] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    _done: threading.Event = field(default_factory=threading.Event, repr=False)
    _cancel_requested: bool = field(default=False, repr=False)

    @property
    def id(self) -> str:
        return self.job.id

    @property
    def error(self) -> Optional[str]:
        return self.result.error if isinstance(self.result, JobFailed) else None

    def to_dict(self) -> dict:
        return {
            "job_id": self.job.id,
            "type": self.job.type.value,
            "status": self.status.value,
            "priority": self.priority.name.lower(),
            "progress": self.progress,
            "created_at": self.job.created_at.isoformat(),
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "error": self.error,
        }


JobEventCallback = Callable[[str, JobRecord], None]


class JobQueue:
    """
    Priority job queue in front of a JobDispatcher.

    Usage:
        queue = JobQueue(JobDispatcher(), max_concurrent=2)
        job_id = queue.submit(JobType.PDF_PROCESSING, {...})
        items = queue.result(job_id, timeout=900)
    """

    def __init__(
        self,
        dispatcher: JobDispatcher,
        max_concurrent: int = 2,
        retention_seconds: Optional[float] = 3600.0,
    ) -> None:
        """
        Initialize queue and start its runner threads.

        Args:
            dispatcher: Runs each job
            max_concurrent: Runner threads, i.e. jobs in flight at once
            retention_seconds: How long finished records are kept (None: forever)
        """
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")

        self.dispatcher = dispatcher
        self.max_concurrent = max_concurrent
        self.retention_seconds = retention_seconds

        self._cond = threading.Condition()
        self._heap: list[tuple[int, int, str]] = []
        self._seq = itertools.count()
        self._records: dict[str, JobRecord] = {}
        self._subscribers: list[JobEventCallback] = []
        self._shutdown = False

        self._runners = [
            threading.Thread(target=self._run_loop, name=f"job-runner-{i}", daemon=True)
            for i in range(max_concurrent)
        ]
        for runner in self._runners:
            runner.start()

    @classmethod
    def from_config(
        cls, config: IngestConfig, executor: Optional[TaskExecutor] = None
    ) -> "JobQueue":
        return cls(
            JobDispatcher.from_config(config, executor=executor),
            max_concurrent=config.worker.max_concurrent_jobs,
            retention_seconds=config.worker.job_retention_seconds,
        )

    # ── Submission and lookup ──────────────────────────────────────────────

    def submit(
        self,
        job_type: JobType,
        data: dict,
        priority: JobPriority = JobPriority.NORMAL,
        job_id: Optional[str] = None,
    ) -> str:
        """
        Queue a job.

        Returns:
            The job id
        """
        job = Job(type=job_type, data=data) if job_id is None else Job(id=job_id, type=job_type, data=data)
        record = JobRecord(job=job, priority=priority)

        with self._cond:
            if self._shutdown:
                raise RuntimeError("JobQueue is shut down")
            self._purge_locked()
            if job.id in self._records:
                raise ValueError(f"Job id already queued: {job.id}")
            self._records[job.id] = record

        # Runners only see the job once "created" has gone out
        self._emit("created", record)

        with self._cond:
            heapq.heappush(self._heap, (-int(priority), next(self._seq), job.id))
            self._cond.notify()
        return job.id

    def get(self, job_id: str) -> Optional[JobRecord]:
        with self._cond:
            return self._records.get(job_id)

    def status(self, job_id: str) -> Optional[JobStatus]:
        record = self.get(job_id)
        return record.status if record else None

    def wait(self, job_id: str, timeout: Optional[float] = None) -> Optional[JobResult]:
        """
        Block until the job finishes.

        Returns:
            The JobResult, or None if the timeout expired or the job was
            cancelled before it started

        Raises:
            KeyError: unknown job id
        """
        record = self.get(job_id)
        if record is None:
            raise KeyError(job_id)
        record._done.wait(timeout)
        return record.result

    def result(self, job_id: str, timeout: Optional[float] = None) -> Any:
        """
        Block until the job finishes and return its payload.

        Raises:
            KeyError: unknown job id
            TimeoutError: job still running after timeout
            JobFailedError: job failed or was cancelled
        """
        record = self.get(job_id)
        if record is None:
            raise KeyError(job_id)
        if not record._done.wait(timeout):
            raise TimeoutError(f"Job {job_id} still {record.status.value}")
        if isinstance(record.result, JobCompleted):
            return record.result.payload
        raise JobFailedError(job_id, record.error or f"Job {job_id} was cancelled")

    def cancel(self, job_id: str) -> bool:
        """
        Cancel a job.

        Pending jobs are dropped; running jobs have their worker terminated.
        A running job that produces its result before the worker stops still
        ends up completed.

        Returns:
            False if the job is unknown or already finished
        """
        with self._cond:
            record = self._records.get(job_id)
            if record is None:
                return False
            if record.status == JobStatus.PENDING:
                record.status = JobStatus.CANCELLED
                record.completed_at = _now()
                record._done.set()
            elif record.status == JobStatus.PROCESSING:
                # Reserved with the dispatcher while PROCESSING
                if not self.dispatcher.cancel(job_id):
                    return False
                record._cancel_requested = True
                return True
            else:
                return False

        self._emit("cancelled", record)
        return True

    def purge(self) -> int:
        """
        Drop finished records older than the retention period.

        Returns:
            Number of records dropped
        """
        with self._cond:
            return self._purge_locked()

    def _purge_locked(self) -> int:
        if self.retention_seconds is None:
            return 0
        cutoff = _now().timestamp() - self.retention_seconds
        expired = [
            job_id
            for job_id, record in self._records.items()
            if record._done.is_set()
            and record.completed_at is not None
            and record.completed_at.timestamp() <= cutoff
        ]
        for job_id in expired:
            del self._records[job_id]
        if expired:
            logger.debug("Purged %d finished jobs", len(expired))
        return len(expired)

    # ── Events ─────────────────────────────────────────────────────────────

    def subscribe(self, callback: JobEventCallback) -> None:
        """
        Register callback(event, record) for all job events.

        Events: created, started, progress, completed, failed, cancelled.
        """
        with self._cond:
            self._subscribers.append(callback)

    def unsubscribe(self, callback: JobEventCallback) -> None:
        with self._cond:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

    def _emit(self, event: str, record: JobRecord) -> None:
        with self._cond:
            subscribers = list(self._subscribers)
        for callback in subscribers:
            try:
                callback(event, record)
            except Exception:
                logger.exception("Job event subscriber failed on %s for %s", event, record.id)

    # ── Runners ────────────────────────────────────────────────────────────

    def shutdown(self, wait: bool = True, timeout: Optional[float] = None) -> None:
        """Stop accepting jobs and cancel pending ones; running jobs finish."""
        with self._cond:
            self._shutdown = True
            pending = [
                r for r in self._records.values() if r.status == JobStatus.PENDING
            ]
            for record in pending:
                record.status = JobStatus.CANCELLED
                record.completed_at = _now()
                record._done.set()
            self._cond.notify_all()

        for record in pending:
            self._emit("cancelled", record)

        if wait:
            for runner in self._runners:
                runner.join(timeout)

    def _next_record(self) -> tuple[Optional[JobRecord], Optional[JobFailed]]:
        """Pop the next pending job and reserve its id with the dispatcher."""
        with self._cond:
            while True:
                while self._heap:
                    _, _, job_id = heapq.heappop(self._heap)
                    record = self._records.get(job_id)
                    if record is None or record.status != JobStatus.PENDING:
                        continue
                    record.status = JobStatus.PROCESSING
                    record.started_at = _now()
                    try:
                        self.dispatcher.reserve(job_id)
                    except DuplicateJobError as e:
                        return record, JobFailed(job_id, e.message)
                    return record, None
                if self._shutdown:
                    return None, None
                self._cond.wait()

    def _on_progress(self, job_id: str, percent: float) -> None:
        record = self.get(job_id)
        if record is None:
            return
        record.progress = percent
        self._emit("progress", record)

    def _run_loop(self) -> None:
        while True:
            record, result = self._next_record()
            if record is None:
                return

            self._emit("started", record)
            if result is None:
                try:
                    result = self.dispatcher.dispatch(
                        record.job, on_progress=self._on_progress, reserved=True
                    )
                except Exception as e:
                    logger.exception("Dispatch of job %s raised", record.id)
                    result = JobFailed(record.id, str(e) or e.__class__.__name__)

            with self._cond:
                record.result = result
                record.completed_at = _now()
                if isinstance(result, JobCompleted):
                    record.status = JobStatus.COMPLETED
                    record.progress = 100.0
                    event = "completed"
                elif record._cancel_requested:
                    record.status = JobStatus.CANCELLED
                    event = "cancelled"
                else:
                    record.status = JobStatus.FAILED
                    event = "failed"
                record._done.set()

            self._emit(event, record)
