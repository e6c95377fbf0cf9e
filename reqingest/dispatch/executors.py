"""
Task executors: where a dispatched job actually runs.

SubprocessExecutor starts one OS process per job (the default; crashes and
memory blow-ups stay out of the caller). InlineExecutor runs the same
worker core on a thread, for tests and small deployments. Both hand back a
WorkerHandle that yields parsed worker messages.
"""

import os
import queue
import subprocess
import sys
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Mapping, Optional, Sequence, Union

from ..config import IngestConfig
from ..errors import DispatcherIOError
from ..schema.jobs import (
    CompletedMessage,
    FailedMessage,
    Job,
    ProgressMessage,
    parse_message,
)
from ..utils.logging import get_logger
from ..worker.handlers import Handler
from ..worker.main import describe_error, load_job_file, run_job

logger = get_logger(__name__)

Message = Union[ProgressMessage, CompletedMessage, FailedMessage]

DEFAULT_WORKER_COMMAND = (sys.executable, "-m", "reqingest.worker")

# Directory containing the reqingest package, so workers can import it
_PACKAGE_ROOT = str(Path(__file__).resolve().parents[2])

_EOF = object()


class WorkerHandle(ABC):
    """A running job. Messages arrive on an internal queue."""

    def __init__(self) -> None:
        self._messages: queue.Queue = queue.Queue()

    def next_message(self, timeout: float) -> Optional[Message]:
        """
        Next message from the worker.

        Returns:
            The message, or None once the channel is closed

        Raises:
            queue.Empty: nothing arrived within timeout
        """
        item = self._messages.get(timeout=timeout)
        if item is _EOF:
            # Keep reporting EOF to later callers
            self._messages.put(_EOF)
            return None
        return item

    @abstractmethod
    def wait(self, timeout: Optional[float] = None) -> Optional[int]:
        """Wait for exit; return the exit code, or None if still running."""

    @abstractmethod
    def terminate(self) -> None:
        pass

    @abstractmethod
    def kill(self) -> None:
        pass

    @property
    @abstractmethod
    def exit_code(self) -> Optional[int]:
        pass


class TaskExecutor(ABC):
    """Starts workers for job files."""

    @abstractmethod
    def launch(self, job: Job, job_path: Path) -> WorkerHandle:
        """
        Start a worker for the job file.

        Raises:
            DispatcherIOError: the worker could not be started
        """


# ── Subprocess ─────────────────────────────────────────────────────────────


class SubprocessHandle(WorkerHandle):
    def __init__(self, process: subprocess.Popen) -> None:
        super().__init__()
        self._process = process
        self._reader = threading.Thread(
            target=self._pump, name=f"worker-{process.pid}-reader", daemon=True
        )
        self._reader.start()

    @property
    def pid(self) -> int:
        return self._process.pid

    def _pump(self) -> None:
        stream = self._process.stdout
        try:
            for line in stream:
                message = parse_message(line)
                if message is None:
                    if line.strip():
                        logger.debug("Ignoring worker output: %s", line.strip()[:200])
                    continue
                self._messages.put(message)
        finally:
            stream.close()
            self._messages.put(_EOF)

    def wait(self, timeout: Optional[float] = None) -> Optional[int]:
        try:
            return self._process.wait(timeout=timeout)
        except subprocess.TimeoutExpired:
            return None

    def terminate(self) -> None:
        if self._process.poll() is None:
            self._process.terminate()

    def kill(self) -> None:
        if self._process.poll() is None:
            self._process.kill()

    @property
    def exit_code(self) -> Optional[int]:
        return self._process.poll()


class SubprocessExecutor(TaskExecutor):
    """
    One OS process per job.

    The worker gets the job file path as its only argument. Limits and the
    config location travel in the spawn environment, never through this
    process's own environment.
    """

    def __init__(
        self,
        command: Optional[Sequence[str]] = None,
        env: Optional[Mapping[str, str]] = None,
        cwd: Optional[Union[str, Path]] = None,
    ) -> None:
        """
        Initialize executor.

        Args:
            command: Worker command; the job file path is appended
            env: Extra environment entries for the worker
            cwd: Working directory for the worker
        """
        self.command = list(command or DEFAULT_WORKER_COMMAND)
        self.env = dict(env or {})
        self.cwd = cwd

    @classmethod
    def from_config(cls, config: IngestConfig) -> "SubprocessExecutor":
        return cls(env=config.worker_env())

    def _build_env(self, job: Job) -> dict[str, str]:
        env = dict(os.environ)
        pythonpath = env.get("PYTHONPATH")
        env["PYTHONPATH"] = (
            f"{_PACKAGE_ROOT}{os.pathsep}{pythonpath}" if pythonpath else _PACKAGE_ROOT
        )
        env.update(self.env)
        env["REQINGEST_JOB_ID"] = job.id
        env["REQINGEST_JOB_TYPE"] = job.type.value
        return env

    def launch(self, job: Job, job_path: Path) -> WorkerHandle:
        try:
            process = subprocess.Popen(
                [*self.command, str(job_path)],
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                env=self._build_env(job),
                cwd=self.cwd,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
        except OSError as e:
            raise DispatcherIOError(f"Could not spawn worker for job {job.id}: {e}") from e

        logger.info("Spawned worker %d for job %s (%s)", process.pid, job.id, job.type.value)
        return SubprocessHandle(process)


# ── Inline ─────────────────────────────────────────────────────────────────


class InlineHandle(WorkerHandle):
    def __init__(
        self,
        job_path: Path,
        config: Optional[IngestConfig],
        handlers: Optional[Mapping[str, Handler]],
    ) -> None:
        super().__init__()
        self._exit_code: Optional[int] = None
        self._thread = threading.Thread(
            target=self._run,
            args=(job_path, config, handlers),
            name=f"inline-worker-{job_path.stem}",
            daemon=True,
        )
        self._thread.start()

    def _run(
        self,
        job_path: Path,
        config: Optional[IngestConfig],
        handlers: Optional[Mapping[str, Handler]],
    ) -> None:
        code = 1
        try:
            job = load_job_file(job_path)
            code = run_job(job, self._messages.put, config=config, handlers=handlers)
        except Exception as e:
            logger.error("Inline worker failed: %s", e)
            self._messages.put(FailedMessage(error=describe_error(e)))
        finally:
            self._exit_code = code
            self._messages.put(_EOF)

    def wait(self, timeout: Optional[float] = None) -> Optional[int]:
        self._thread.join(timeout)
        return None if self._thread.is_alive() else self._exit_code

    def terminate(self) -> None:
        # Threads cannot be stopped; the dispatcher stops listening instead
        logger.warning("Inline worker %s cannot be terminated", self._thread.name)

    def kill(self) -> None:
        self.terminate()

    @property
    def exit_code(self) -> Optional[int]:
        return self._exit_code


class InlineExecutor(TaskExecutor):
    """Run jobs on a thread in this process, through the same worker core."""

    def __init__(
        self,
        config: Optional[IngestConfig] = None,
        handlers: Optional[Mapping[str, Handler]] = None,
    ) -> None:
        self.config = config
        self.handlers = handlers

    def launch(self, job: Job, job_path: Path) -> WorkerHandle:
        return InlineHandle(job_path, self.config, self.handlers)
