"""
Pipeline orchestration.

    Text → Split → Sample → Extract (concurrent) → Aggregate
"""

from .pipeline import IngestPipeline, ProgressCallback
from .state import PipelineStage, PipelineState

__all__ = [
    "IngestPipeline",
    "ProgressCallback",
    "PipelineStage",
    "PipelineState",
]
