"""
Exceptions for the ingestion pipeline.

Chunk-level errors are absorbed by the pipeline; everything else ends a job
and reaches the caller as a failed JobResult.
"""

from typing import Any, Optional


class IngestError(Exception):
    """Base exception for all reqingest errors."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None) -> None:
        """
        Initialize the exception.

        Args:
            message: Error message
            details: Optional dictionary with additional error details
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigError(IngestError):
    """Configuration file could not be loaded or validated."""

    pass


# =============================================================================
# Input / pipeline
# =============================================================================


class InputError(IngestError):
    """Job input is unusable: missing file, empty or too-short text."""

    pass


class UnknownJobTypeError(InputError):
    """No handler is registered for the job type."""

    def __init__(self, job_type: str) -> None:
        super().__init__(f"No handler found for job type: {job_type}", {"job_type": job_type})


class ChunkExtractionError(IngestError):
    """Extraction call failed for a single chunk."""

    def __init__(self, chunk_index: int, message: str) -> None:
        super().__init__(message, {"chunk_index": chunk_index})
        self.chunk_index = chunk_index


class AggregationError(IngestError):
    """Per-chunk results could not be merged."""

    pass


# =============================================================================
# Worker / dispatch
# =============================================================================


class WorkerCrashError(IngestError):
    """An exception escaped a job handler inside the worker."""

    pass


class DispatcherIOError(IngestError):
    """The dispatcher could not write the job file or start the worker."""

    pass


class JobTimeoutError(IngestError):
    """The worker did not finish before the dispatcher's deadline."""

    def __init__(self, job_id: str, timeout: float) -> None:
        super().__init__(
            f"Job {job_id} timed out after {timeout:g}s",
            {"job_id": job_id, "timeout": timeout},
        )


class DuplicateJobError(IngestError):
    """A job with the same id is already being processed."""

    def __init__(self, job_id: str) -> None:
        super().__init__(f"Job {job_id} is already running", {"job_id": job_id})


class JobFailedError(IngestError):
    """Raised to callers that asked for a payload when the job failed."""

    def __init__(self, job_id: str, error: str) -> None:
        super().__init__(error, {"job_id": job_id})
        self.job_id = job_id
        self.error = error
