"""
Worker process entry point.

    python -m reqingest.worker <job-file>

The worker:
1. Loads the job from the file written by the dispatcher
2. Looks up the handler for the job type
3. Reports progress while the handler runs
4. Sends exactly one terminal message ("completed" or "failed")
5. Exits 0 after "completed", 1 otherwise
"""

import json
import os
import sys
from pathlib import Path
from typing import Callable, Mapping, Optional, Union

from pydantic import BaseModel, ValidationError

from ..config import MEMORY_ENV_VAR, IngestConfig, load_config
from ..errors import IngestError, InputError, UnknownJobTypeError, WorkerCrashError
from ..schema.jobs import (
    CompletedMessage,
    FailedMessage,
    Job,
    JobType,
    ProgressMessage,
)
from ..utils.logging import get_logger, setup_logging
from .channel import MessageChannel
from .handlers import HANDLERS, Handler

logger = get_logger(__name__)

Send = Callable[[BaseModel], None]

EXIT_OK = 0
EXIT_FAILED = 1


def describe_error(error: BaseException) -> str:
    message = error.message if isinstance(error, IngestError) else str(error)
    message = message.strip()
    if not message:
        return f"{error.__class__.__name__} in job worker"
    return message


def load_job_file(path: Union[str, Path]) -> Job:
    """
    Read and validate a job file.

    Raises:
        InputError: missing file, invalid JSON or missing fields
        UnknownJobTypeError: type not in JobType
    """
    path = Path(path)
    if not path.is_file():
        raise InputError(f"Job data file not found: {path}")

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise InputError(f"Invalid job data in {path.name}: {e}") from e

    if not isinstance(raw, dict) or not raw.get("id") or not raw.get("type") or "data" not in raw:
        raise InputError("Invalid job data: id, type and data are required")

    if raw["type"] not in {t.value for t in JobType}:
        raise UnknownJobTypeError(str(raw["type"]))

    try:
        return Job.model_validate(raw)
    except ValidationError as e:
        raise InputError(f"Invalid job data: {e.error_count()} validation errors") from e


def run_job(
    job: Job,
    send: Send,
    config: Optional[IngestConfig] = None,
    handlers: Optional[Mapping[str, Handler]] = None,
) -> int:
    """
    Run one job and send its terminal message.

    Shared by the worker process and in-process executors.

    Returns:
        Exit code (0 completed, 1 failed)
    """
    handlers = HANDLERS if handlers is None else handlers
    config = config or IngestConfig()

    def progress(percent: float) -> None:
        send(ProgressMessage(progress=max(0.0, min(100.0, float(percent)))))

    try:
        handler = handlers.get(job.type.value)
        if handler is None:
            raise UnknownJobTypeError(job.type.value)

        result = handler(job.data, progress, config)
        message = CompletedMessage(result=result)
        message.model_dump_json()  # fail here, not mid-send, on unserialisable results
    except IngestError as e:
        logger.error("Job %s (%s) failed: %s", job.id, job.type.value, e)
        send(FailedMessage(error=describe_error(e)))
        return EXIT_FAILED
    except Exception as e:
        crash = WorkerCrashError(
            describe_error(e), {"job_id": job.id, "exception": e.__class__.__name__}
        )
        logger.error("Job %s (%s) crashed: %s", job.id, job.type.value, crash, exc_info=True)
        send(FailedMessage(error=crash.message))
        return EXIT_FAILED

    send(message)
    logger.info("Job %s (%s) completed", job.id, job.type.value)
    return EXIT_OK


def apply_memory_limit(limit_mb: Optional[str]) -> None:
    """Cap the worker's address space (POSIX only)."""
    if not limit_mb or sys.platform == "win32":
        return

    import resource

    try:
        limit = int(limit_mb) * 1024 * 1024
        _soft, hard = resource.getrlimit(resource.RLIMIT_AS)
        if hard != resource.RLIM_INFINITY:
            limit = min(limit, hard)
        resource.setrlimit(resource.RLIMIT_AS, (limit, hard))
    except (ValueError, OSError) as e:
        logger.warning("Could not apply memory limit of %s MB: %s", limit_mb, e)


def main(argv: Optional[list[str]] = None) -> int:
    args = sys.argv[1:] if argv is None else argv
    channel = MessageChannel.from_stdout()
    setup_logging(os.environ.get("REQINGEST_LOG_LEVEL", "INFO").upper())

    try:
        if len(args) != 1:
            raise InputError("usage: python -m reqingest.worker <job-file>")

        apply_memory_limit(os.environ.get(MEMORY_ENV_VAR))
        job = load_job_file(args[0])
        config = load_config()
    except Exception as e:
        logger.error("Worker could not start: %s", e)
        channel.failed(describe_error(e))
        return EXIT_FAILED

    logger.info("Worker %d started for job %s of type %s", os.getpid(), job.id, job.type.value)
    try:
        return run_job(job, channel.send, config=config)
    finally:
        channel.close()
