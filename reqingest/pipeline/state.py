"""
Pipeline state management.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from ..utils.logging import get_logger

logger = get_logger(__name__)


class PipelineStage(Enum):
    """Pipeline execution stages."""

    INIT = "init"
    CHUNKING = "chunking"
    SAMPLING = "sampling"
    EXTRACTING = "extracting"
    AGGREGATING = "aggregating"
    COMPLETED = "completed"
    ERROR = "error"


@dataclass
class PipelineState:
    """
    Pipeline execution state.

    Tracks progress through the ingestion stages of one document.
    """

    stage: PipelineStage = PipelineStage.INIT
    document_name: Optional[str] = None

    text_length: int = 0
    chunks_total: int = 0
    chunks_sampled: int = 0
    chunks_done: int = 0
    chunks_failed: int = 0
    items_extracted: int = 0

    errors: list[str] = field(default_factory=list)

    def add_error(self, error: str) -> None:
        self.errors.append(error)
        logger.warning(error)

    def advance_to(self, stage: PipelineStage) -> None:
        logger.debug("Stage: %s → %s (%s)", self.stage.value, stage.value, self.document_name)
        self.stage = stage

    def summary(self) -> dict:
        """Return a summary of the pipeline state."""
        return {
            "stage": self.stage.value,
            "document": self.document_name,
            "text_length": self.text_length,
            "chunks_total": self.chunks_total,
            "chunks_sampled": self.chunks_sampled,
            "chunks_done": self.chunks_done,
            "chunks_failed": self.chunks_failed,
            "items_extracted": self.items_extracted,
            "errors": len(self.errors),
        }
