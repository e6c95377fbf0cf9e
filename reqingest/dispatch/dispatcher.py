"""
Job dispatcher.

Serialises a job to a temporary file, starts a worker on it, relays
progress and turns the worker's terminal message into a JobResult. The
temporary file is removed on every path. A worker that exits without a
terminal message, overruns the deadline or is cancelled yields JobFailed.
"""

import os
import queue
import tempfile
import threading
import time
from pathlib import Path
from typing import Any, Callable, Optional, Union

from ..config import IngestConfig
from ..errors import DispatcherIOError, DuplicateJobError, JobFailedError, JobTimeoutError
from ..schema.jobs import (
    CompletedMessage,
    Job,
    JobCompleted,
    JobFailed,
    JobResult,
    ProgressMessage,
)
from ..utils.logging import get_logger
from .executors import SubprocessExecutor, TaskExecutor, WorkerHandle

logger = get_logger(__name__)

JobProgressCallback = Callable[[str, float], None]


class JobDispatcher:
    """
    Run jobs through a TaskExecutor, one worker per job.

    A job id can only be in flight once at a time.
    """

    def __init__(
        self,
        executor: Optional[TaskExecutor] = None,
        timeout: Optional[float] = 600.0,
        temp_dir: Optional[Union[str, Path]] = None,
        poll_interval: float = 0.2,
        terminate_grace: float = 5.0,
    ) -> None:
        """
        Initialize dispatcher.

        Args:
            executor: Where workers run; defaults to SubprocessExecutor
            timeout: Seconds before a worker is terminated (None: no deadline)
            temp_dir: Directory for job files; defaults to the system temp dir
            poll_interval: Seconds between deadline checks
            terminate_grace: Seconds to wait for a worker to exit before killing it
        """
        self.executor = executor or SubprocessExecutor()
        self.timeout = timeout
        self.temp_dir = Path(temp_dir) if temp_dir else None
        self.poll_interval = poll_interval
        self.terminate_grace = terminate_grace

        self._lock = threading.Lock()
        self._handles: dict[str, Optional[WorkerHandle]] = {}
        self._cancelled: set[str] = set()

    @classmethod
    def from_config(
        cls, config: IngestConfig, executor: Optional[TaskExecutor] = None
    ) -> "JobDispatcher":
        worker = config.worker
        return cls(
            executor=executor or SubprocessExecutor.from_config(config),
            timeout=worker.timeout_seconds,
            poll_interval=worker.poll_interval,
            terminate_grace=worker.terminate_grace,
        )

    # ── Public API ──────────────────────────────────────────────────────────

    def reserve(self, job_id: str) -> None:
        """
        Claim a job id ahead of dispatch(job, reserved=True).

        A reserved job counts as in flight, so it can be cancelled before its
        worker is launched.

        Raises:
            DuplicateJobError: the id is already in flight
        """
        with self._lock:
            if job_id in self._handles:
                raise DuplicateJobError(job_id)
            self._handles[job_id] = None

    def dispatch(
        self,
        job: Job,
        on_progress: Optional[JobProgressCallback] = None,
        reserved: bool = False,
    ) -> JobResult:
        """
        Run a job to completion.

        Args:
            job: Job to run
            on_progress: Called with (job_id, percent) for each progress message
            reserved: The id was already claimed with reserve()

        Returns:
            JobCompleted or JobFailed

        Raises:
            DuplicateJobError: a job with this id is already in flight
        """
        if not reserved:
            self.reserve(job.id)

        try:
            return self._dispatch(job, on_progress)
        finally:
            with self._lock:
                self._handles.pop(job.id, None)
                self._cancelled.discard(job.id)

    def run(self, job: Job, on_progress: Optional[JobProgressCallback] = None) -> Any:
        """
        Run a job and return its payload.

        Raises:
            JobFailedError: the job failed
        """
        result = self.dispatch(job, on_progress)
        if isinstance(result, JobFailed):
            raise JobFailedError(result.job_id, result.error)
        return result.payload

    def cancel(self, job_id: str) -> bool:
        """
        Terminate a running job's worker. The job resolves as failed.

        Returns:
            True if the job was in flight
        """
        with self._lock:
            if job_id not in self._handles:
                return False
            self._cancelled.add(job_id)
            handle = self._handles[job_id]

        if handle is not None:
            logger.info("Cancelling job %s", job_id)
            handle.terminate()
        return True

    def running(self) -> list[str]:
        with self._lock:
            return list(self._handles)

    # ── Internals ──────────────────────────────────────────────────────────

    def _write_job_file(self, job: Job) -> Path:
        fd, name = tempfile.mkstemp(prefix="job-", suffix=".json", dir=self.temp_dir)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(job.to_json())
        return Path(name)

    def _dispatch(self, job: Job, on_progress: Optional[JobProgressCallback]) -> JobResult:
        if self._was_cancelled(job.id):
            logger.info("Job %s cancelled before launch", job.id)
            return JobFailed(job.id, f"Job {job.id} was cancelled")

        job_path: Optional[Path] = None
        try:
            try:
                job_path = self._write_job_file(job)
                handle = self.executor.launch(job, job_path)
            except (OSError, DispatcherIOError) as e:
                error = e if isinstance(e, DispatcherIOError) else DispatcherIOError(
                    f"Could not write job file for job {job.id}: {e}"
                )
                logger.error("Job %s not started: %s", job.id, error.message)
                return JobFailed(job.id, error.message)

            with self._lock:
                self._handles[job.id] = handle
                cancelled = job.id in self._cancelled
            if cancelled:
                handle.terminate()

            return self._supervise(job, handle, on_progress)
        finally:
            if job_path is not None:
                self._remove_job_file(job_path)

    def _supervise(
        self,
        job: Job,
        handle: WorkerHandle,
        on_progress: Optional[JobProgressCallback],
    ) -> JobResult:
        deadline = time.monotonic() + self.timeout if self.timeout is not None else None
        terminal = None

        while terminal is None:
            wait = self.poll_interval
            if deadline is not None:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    self._stop(handle)
                    error = JobTimeoutError(job.id, self.timeout)
                    logger.error(error.message)
                    return JobFailed(job.id, error.message)
                wait = min(wait, remaining)

            try:
                message = handle.next_message(timeout=wait)
            except queue.Empty:
                # Inline workers ignore terminate(), so stop listening instead
                if self._was_cancelled(job.id):
                    self._stop(handle)
                    return JobFailed(job.id, f"Job {job.id} was cancelled")
                continue

            if message is None:
                break
            if isinstance(message, ProgressMessage):
                self._report(job, message.progress, on_progress)
                continue
            terminal = message

        if terminal is None:
            code = handle.wait(self.terminate_grace)
            if code is None:
                self._stop(handle)
                code = handle.exit_code
            if self._was_cancelled(job.id):
                return JobFailed(job.id, f"Job {job.id} was cancelled")
            error = f"worker terminated unexpectedly (exit code {code})"
            logger.error("Job %s: %s", job.id, error)
            return JobFailed(job.id, error)

        if handle.wait(self.terminate_grace) is None:
            logger.warning("Worker for job %s did not exit after its result", job.id)
            self._stop(handle)

        if isinstance(terminal, CompletedMessage):
            logger.info("Job %s completed", job.id)
            return JobCompleted(job.id, terminal.result)

        logger.warning("Job %s failed: %s", job.id, terminal.error)
        return JobFailed(job.id, terminal.error)

    def _report(
        self, job: Job, percent: float, on_progress: Optional[JobProgressCallback]
    ) -> None:
        logger.debug("Job %s progress %.0f%%", job.id, percent)
        if on_progress is None:
            return
        try:
            on_progress(job.id, percent)
        except Exception:
            logger.exception("Progress callback failed for job %s", job.id)

    def _was_cancelled(self, job_id: str) -> bool:
        with self._lock:
            return job_id in self._cancelled

    def _stop(self, handle: WorkerHandle) -> None:
        handle.terminate()
        if handle.wait(self.terminate_grace) is None:
            handle.kill()
            handle.wait(self.terminate_grace)

    @staticmethod
    def _remove_job_file(job_path: Path) -> None:
        try:
            job_path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning("Could not remove job file %s: %s", job_path, e)
