"""
Job, job result and worker message definitions.

A Job is written to disk by the dispatcher and read back by the worker; the
worker answers with newline-delimited messages:

    {"type": "progress", "progress": 40}
    {"type": "completed", "result": {...}}
    {"type": "failed", "error": "File not found: ..."}
"""

import json
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum, IntEnum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from ..utils.ids import generate_job_id


class JobType(str, Enum):
    """Selects the worker handler."""

    LARGE_FILE_PROCESSING = "large_file_processing"  # payload carries decoded text
    PDF_PROCESSING = "pdf_processing"  # payload carries a file path


class JobStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class JobPriority(IntEnum):
    LOW = 0
    NORMAL = 1
    HIGH = 2
    CRITICAL = 3


class Job(BaseModel):
    """A unit of work. Immutable once created."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=generate_job_id, min_length=1)
    type: JobType
    data: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def to_json(self) -> str:
        return self.model_dump_json()

    @classmethod
    def from_json(cls, text: str) -> "Job":
        return cls.model_validate_json(text)


# ── Worker messages ────────────────────────────────────────────────────────


class ProgressMessage(BaseModel):
    type: Literal["progress"] = "progress"
    progress: float = Field(..., ge=0, le=100)


class CompletedMessage(BaseModel):
    type: Literal["completed"] = "completed"
    result: Any = None


class FailedMessage(BaseModel):
    type: Literal["failed"] = "failed"
    error: str = Field(..., min_length=1)


WorkerMessage = Annotated[
    Union[ProgressMessage, CompletedMessage, FailedMessage],
    Field(discriminator="type"),
]

_message_adapter: TypeAdapter = TypeAdapter(WorkerMessage)


def parse_message(line: str) -> Optional[Union[ProgressMessage, CompletedMessage, FailedMessage]]:
    """
    Parse one line from the worker channel.

    Returns None for blank lines, non-JSON output and unknown message shapes.
    """
    line = line.strip()
    if not line.startswith("{"):
        return None
    try:
        return _message_adapter.validate_python(json.loads(line))
    except ValueError:
        return None


def encode_message(message: BaseModel) -> str:
    return message.model_dump_json() + "\n"


# ── Terminal results ───────────────────────────────────────────────────────


@dataclass(frozen=True)
class JobCompleted:
    job_id: str
    payload: Any

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class JobFailed:
    job_id: str
    error: str

    @property
    def ok(self) -> bool:
        return False


JobResult = Union[JobCompleted, JobFailed]
