"""
Document ingestion pipeline.

    text → split → sample → extract (concurrent, one call per chunk) → aggregate

Only chunk offsets are kept for the full document; chunk text is sliced
out for the sampled chunks alone.
"""

from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, Optional

from ..chunking.sampler import max_chunks_for_size, sample_chunks
from ..chunking.splitter import Chunk, ChunkSplitter
from ..config import IngestConfig
from ..errors import ChunkExtractionError, InputError
from ..extraction.aggregator import aggregate_results
from ..extraction.client import ExtractionClient, ExtractionContext, items_per_chunk
from ..schema.items import AggregatedResult, ExtractedItem
from ..utils.logging import get_logger
from .state import PipelineStage, PipelineState

logger = get_logger(__name__)

ProgressCallback = Callable[[float], None]

# Progress milestones (percent)
PROGRESS_SPLIT = 5
PROGRESS_SAMPLED = 10
PROGRESS_EXTRACTED = 95


class IngestPipeline:
    """
    Requirement extraction for one document.

    A failing chunk contributes zero items; only input errors and
    programming defects abort the run.
    """

    def __init__(
        self,
        config: Optional[IngestConfig] = None,
        client: Optional[ExtractionClient] = None,
    ) -> None:
        """
        Initialize pipeline.

        Args:
            config: Ingestion configuration
            client: Extraction client; built from config.extraction when omitted
        """
        self.config = config or IngestConfig()

        chunking = self.config.chunking
        self.splitter = ChunkSplitter(
            chunk_size=chunking.chunk_size,
            overlap=chunking.overlap,
            search_window=chunking.search_window,
        )

        extraction = self.config.extraction
        self.client = client or ExtractionClient(
            model=extraction.model,
            max_tokens=extraction.max_tokens,
            temperature=extraction.temperature,
        )

    def run(
        self,
        text: str,
        project_name: str,
        file_name: str,
        content_type: str = "general",
        min_total_items: Optional[int] = None,
        max_chunks: Optional[int] = None,
        progress: Optional[ProgressCallback] = None,
    ) -> AggregatedResult:
        """
        Run the pipeline on decoded document text.

        Args:
            text: Full document text
            project_name: Project the requirements belong to
            file_name: Source file name, used in prompts
            content_type: Content type tag, used in prompts
            min_total_items: Items to aim for across the document
            max_chunks: Chunk budget; defaults to config, then to a size tier
            progress: Called with 0..100 as work advances

        Returns:
            Deduplicated items with counters

        Raises:
            InputError: text is empty or too short
        """
        state = PipelineState(document_name=file_name, text_length=len(text))
        report = progress or (lambda _pct: None)
        extraction = self.config.extraction

        if len(text.strip()) < extraction.min_text_length:
            raise InputError(
                f"Extracted text is empty or too short ({len(text.strip())} chars) in {file_name}",
                {"file_name": file_name, "min_text_length": extraction.min_text_length},
            )

        try:
            state.advance_to(PipelineStage.CHUNKING)
            spans = [(c.start, c.end) for c in self.splitter.iter(text)]
            state.chunks_total = len(spans)
            report(PROGRESS_SPLIT)

            state.advance_to(PipelineStage.SAMPLING)
            budget = max_chunks or self.config.chunking.max_chunks or max_chunks_for_size(len(text))
            positions = sample_chunks(list(range(len(spans))), budget)
            chunks = [self._chunk_at(text, spans, i) for i in positions]
            state.chunks_sampled = len(chunks)
            report(PROGRESS_SAMPLED)
            logger.info(
                "%s: %d chars → %d chunks, processing %d",
                file_name,
                len(text),
                state.chunks_total,
                state.chunks_sampled,
            )

            state.advance_to(PipelineStage.EXTRACTING)
            target = items_per_chunk(
                min_total_items or extraction.min_total_items, len(chunks)
            )
            results = self._extract_all(
                chunks, state, project_name, file_name, content_type, target, report
            )

            state.advance_to(PipelineStage.AGGREGATING)
            aggregated = aggregate_results(
                results,
                chunks_total=state.chunks_total,
                chunks_failed=state.chunks_failed,
            )

            state.advance_to(PipelineStage.COMPLETED)
            logger.debug("Pipeline state: %s", state.summary())
            logger.info(
                "%s: %d items (%d before dedup), %d/%d chunks failed",
                file_name,
                len(aggregated.items),
                aggregated.items_before_dedup,
                state.chunks_failed,
                state.chunks_sampled,
            )
            return aggregated

        except Exception as e:
            state.add_error(str(e))
            state.advance_to(PipelineStage.ERROR)
            raise

    @staticmethod
    def _chunk_at(text: str, spans: list[tuple[int, int]], i: int) -> Chunk:
        start, end = spans[i]
        return Chunk(
            index=i,
            text=text[start:end],
            is_first=i == 0,
            is_last=i == len(spans) - 1,
            start=start,
            end=end,
        )

    def _extract_all(
        self,
        chunks: list[Chunk],
        state: PipelineState,
        project_name: str,
        file_name: str,
        content_type: str,
        target_items: int,
        report: ProgressCallback,
    ) -> dict[int, list[ExtractedItem]]:
        """Fire one extraction call per chunk and wait for all of them."""
        results: dict[int, list[ExtractedItem]] = {}
        total = len(chunks)
        workers = min(self.config.extraction.max_workers, total)

        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = {
                executor.submit(
                    self.client.extract,
                    chunk,
                    ExtractionContext(
                        project_name=project_name,
                        file_name=file_name,
                        content_type=content_type,
                        position=position,
                        total=total,
                        target_items=target_items,
                    ),
                ): chunk
                for position, chunk in enumerate(chunks, start=1)
            }

            for future in as_completed(futures):
                chunk = futures[future]
                try:
                    items = future.result()
                except ChunkExtractionError as e:
                    state.chunks_failed += 1
                    state.add_error(str(e))
                else:
                    results[chunk.index] = items
                    state.items_extracted += len(items)

                state.chunks_done += 1
                span = PROGRESS_EXTRACTED - PROGRESS_SAMPLED
                report(PROGRESS_SAMPLED + span * state.chunks_done / total)

        return results
