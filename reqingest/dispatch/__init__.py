"""
Job dispatch.

    caller → JobQueue (optional) → JobDispatcher → TaskExecutor → worker
"""

from .dispatcher import JobDispatcher, JobProgressCallback
from .executors import (
    InlineExecutor,
    SubprocessExecutor,
    TaskExecutor,
    WorkerHandle,
)
from .queue import JobQueue, JobRecord

__all__ = [
    "JobDispatcher",
    "JobProgressCallback",
    "InlineExecutor",
    "SubprocessExecutor",
    "TaskExecutor",
    "WorkerHandle",
    "JobQueue",
    "JobRecord",
]
