"""
Job handlers, keyed by job type.

Each handler takes the job payload, a progress callback and the ingestion
config, and returns a JSON-serialisable result.
"""

from typing import Any, Callable, Optional

from pydantic import BaseModel, Field, ValidationError

from ..config import IngestConfig
from ..errors import InputError
from ..parsing.reader import DocumentReader
from ..pipeline.pipeline import IngestPipeline, ProgressCallback
from ..schema.jobs import JobType
from ..utils.logging import get_logger

logger = get_logger(__name__)

Handler = Callable[[dict, ProgressCallback, IngestConfig], Any]


class _DocumentOptions(BaseModel):
    project_name: str = Field(..., min_length=1)
    file_name: str = Field(..., min_length=1)
    content_type: str = "general"
    min_items: Optional[int] = Field(None, ge=1)
    max_chunks: Optional[int] = Field(None, ge=1)


class LargeFilePayload(_DocumentOptions):
    """Already-decoded document text."""

    text: str


class FilePayload(_DocumentOptions):
    """A document on local disk; file_name defaults to the path's name."""

    file_path: str = Field(..., min_length=1)
    file_name: str = ""


def _validate(model: type[BaseModel], data: dict) -> Any:
    try:
        return model.model_validate(data)
    except ValidationError as e:
        fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
        raise InputError(f"Invalid job payload ({fields})") from e


def handle_large_file(data: dict, progress: ProgressCallback, config: IngestConfig) -> Any:
    payload: LargeFilePayload = _validate(LargeFilePayload, data)
    progress(0)

    result = IngestPipeline(config).run(
        payload.text,
        project_name=payload.project_name,
        file_name=payload.file_name,
        content_type=payload.content_type,
        min_total_items=payload.min_items,
        max_chunks=payload.max_chunks,
        progress=progress,
    )

    progress(100)
    return result.model_dump(mode="json")


def handle_file(data: dict, progress: ProgressCallback, config: IngestConfig) -> Any:
    payload: FilePayload = _validate(FilePayload, data)
    document = DocumentReader(max_bytes=config.chunking.max_read_bytes).read(payload.file_path)
    progress(0)

    result = IngestPipeline(config).run(
        document.text,
        project_name=payload.project_name,
        file_name=payload.file_name or document.name,
        content_type=payload.content_type,
        min_total_items=payload.min_items,
        max_chunks=payload.max_chunks,
        progress=progress,
    )

    progress(100)
    return result.model_dump(mode="json")


HANDLERS: dict[str, Handler] = {
    JobType.LARGE_FILE_PROCESSING.value: handle_large_file,
    JobType.PDF_PROCESSING.value: handle_file,
}
