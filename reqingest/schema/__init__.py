"""
Shared types: jobs, worker messages and extracted items.
"""

from .items import AggregatedResult, Category, ExtractedItem, Priority
from .jobs import (
    CompletedMessage,
    FailedMessage,
    Job,
    JobCompleted,
    JobFailed,
    JobPriority,
    JobResult,
    JobStatus,
    JobType,
    ProgressMessage,
)

__all__ = [
    "AggregatedResult",
    "Category",
    "ExtractedItem",
    "Priority",
    "CompletedMessage",
    "FailedMessage",
    "Job",
    "JobCompleted",
    "JobFailed",
    "JobPriority",
    "JobResult",
    "JobStatus",
    "JobType",
    "ProgressMessage",
]
