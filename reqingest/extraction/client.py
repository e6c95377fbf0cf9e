"""
Single-chunk requirement extraction through LiteLLM.

The service is treated as returning free text. Parsing is best-effort:
1. regex-match a JSON array anywhere in the response (models like to wrap
   JSON in prose or fences)
2. parse the whole response as JSON (array, or object holding a list)
If both fail the chunk yields no items; the failure is logged, not raised.
"""

import json
import math
import re
from dataclasses import dataclass
from typing import Any, Callable, Optional

import litellm
from pydantic import ValidationError

from ..chunking.splitter import Chunk
from ..config import DEFAULT_MODEL
from ..errors import ChunkExtractionError
from ..schema.items import ExtractedItem
from ..utils.logging import get_logger
from .prompts import SYSTEM_PROMPT, build_chunk_prompt

logger = get_logger(__name__)

_JSON_ARRAY = re.compile(r"\[[\s\S]*\]")

MIN_ITEMS_PER_CHUNK = 2


@dataclass
class ExtractionContext:
    """Document-level context for one extraction call."""

    project_name: str
    file_name: str
    content_type: str = "general"
    position: int = 1  # 1-based position among processed chunks
    total: int = 1
    target_items: int = MIN_ITEMS_PER_CHUNK


def items_per_chunk(min_total_items: int, chunks_processed: int) -> int:
    """Per-chunk target so the processed chunks together reach the minimum."""
    if chunks_processed <= 0:
        return MIN_ITEMS_PER_CHUNK
    return max(MIN_ITEMS_PER_CHUNK, math.ceil(min_total_items / chunks_processed))


def _clean_json_text(text: str) -> str:
    """Strip JS-style comments and trailing commas that models sometimes emit."""
    text = re.sub(r"(?m)^\s*//[^\n]*", "", text)
    text = re.sub(r",\s*([}\]])", r"\1", text)
    return text


def _loads(text: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return json.loads(_clean_json_text(text))


def _as_entries(data: Any) -> Optional[list]:
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        for key in ("requirements", "items"):
            if isinstance(data.get(key), list):
                return data[key]
    return None


def _try_entries(text: str) -> Optional[list]:
    # RecursionError: pathologically nested arrays
    try:
        return _as_entries(_loads(text))
    except (ValueError, RecursionError):
        return None


def parse_items(response_text: Optional[str], chunk_index: int = 0) -> list[ExtractedItem]:
    """
    Parse an extraction response into items.

    Args:
        response_text: Raw text returned by the service
        chunk_index: Index stamped on every item as source_chunk_index

    Returns:
        Parsed items; empty when the response cannot be parsed
    """
    text = (response_text or "").strip()
    entries: Optional[list] = None

    match = _JSON_ARRAY.search(text)
    if match:
        entries = _try_entries(match.group(0))
    if entries is None:
        entries = _try_entries(text)

    if entries is None:
        logger.warning(
            "Could not parse extraction response for chunk %d (%d chars)",
            chunk_index,
            len(text),
        )
        logger.debug("Raw response: %s", text[:2000])
        return []

    items: list[ExtractedItem] = []
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        try:
            item = ExtractedItem.model_validate({**entry, "source_chunk_index": chunk_index})
        except (ValidationError, TypeError, ValueError):
            continue  # Skip malformed entries
        if not item.is_empty:
            items.append(item)
    return items


class ExtractionClient:
    """
    Extract requirement items from one chunk.

    Uses LiteLLM, so any provider it supports can be configured by model
    name. `completion` can be swapped for a compatible callable.
    """

    def __init__(
        self,
        model: str = DEFAULT_MODEL,
        max_tokens: int = 4096,
        temperature: float = 0.2,
        completion: Optional[Callable[..., Any]] = None,
        **kwargs: Any,
    ) -> None:
        """
        Initialize client.

        Args:
            model: LiteLLM model identifier (e.g., "gemini/gemini-2.0-flash")
            max_tokens: Max tokens in response
            temperature: Sampling temperature
            completion: Replacement for litellm.completion
            **kwargs: Additional arguments for the completion call
        """
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.extra_params = kwargs
        self._completion = completion

    def complete(self, prompt: str) -> str:
        """Send one prompt and return the raw response text."""
        completion = self._completion or litellm.completion
        response = completion(
            model=self.model,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            max_tokens=self.max_tokens,
            temperature=self.temperature,
            **self.extra_params,
        )
        return response.choices[0].message.content or ""

    def extract(self, chunk: Chunk, context: ExtractionContext) -> list[ExtractedItem]:
        """
        Extract items from a chunk.

        Raises:
            ChunkExtractionError: the service call itself failed
        """
        prompt = build_chunk_prompt(
            text=chunk.text,
            project_name=context.project_name,
            file_name=context.file_name,
            content_type=context.content_type,
            position=context.position,
            total=context.total,
            target_items=context.target_items,
        )

        try:
            response_text = self.complete(prompt)
        except Exception as e:
            raise ChunkExtractionError(
                chunk.index, f"Extraction call failed for chunk {chunk.index}: {e}"
            ) from e

        items = parse_items(response_text, chunk.index)
        logger.info(
            "Chunk %d (%d/%d): %d items",
            chunk.index,
            context.position,
            context.total,
            len(items),
        )
        return items
