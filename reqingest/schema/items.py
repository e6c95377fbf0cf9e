"""
Extracted requirement items.

Categories (8): functional, non-functional, technical, business, ui, data,
security, performance. Priorities: high, medium, low.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator


class Category(str, Enum):
    FUNCTIONAL = "functional"
    NON_FUNCTIONAL = "non-functional"
    TECHNICAL = "technical"
    BUSINESS = "business"
    UI = "ui"
    DATA = "data"
    SECURITY = "security"
    PERFORMANCE = "performance"


class Priority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


def normalize_key(value: str) -> str:
    """Lower-cased, trimmed comparison key."""
    return value.strip().lower()


class ExtractedItem(BaseModel):
    """
    A requirement extracted from one chunk.

    Unknown categories and priorities are coerced to defaults instead of
    rejecting the item; the model picks its own vocabulary often enough.
    """

    title: str = ""
    description: str = ""
    category: Category = Category.FUNCTIONAL
    priority: Priority = Priority.MEDIUM
    source_chunk_index: int = Field(0, ge=0)

    @model_validator(mode="before")
    @classmethod
    def _convert_legacy(cls, data: Any) -> Any:
        # Older prompts answered with {"text": ...} instead of title/description
        if isinstance(data, dict) and data.get("text") and not data.get("description"):
            data = dict(data)
            data["description"] = data.pop("text")
            if not data.get("title"):
                data["title"] = str(data["description"])[:80]
        return data

    @field_validator("title", "description", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> str:
        if value is None:
            return ""
        return str(value).strip()

    @field_validator("category", mode="before")
    @classmethod
    def _coerce_category(cls, value: Any) -> Category:
        if isinstance(value, Category):
            return value
        try:
            return Category(normalize_key(str(value)).replace("_", "-"))
        except ValueError:
            return Category.FUNCTIONAL

    @field_validator("priority", mode="before")
    @classmethod
    def _coerce_priority(cls, value: Any) -> Priority:
        if isinstance(value, Priority):
            return value
        try:
            return Priority(normalize_key(str(value)))
        except ValueError:
            return Priority.MEDIUM

    @property
    def is_empty(self) -> bool:
        return not self.title and not self.description

    @property
    def dedup_key(self) -> str:
        return normalize_key(self.title or self.description)


class AggregatedResult(BaseModel):
    """Deduplicated items for a whole document, in chunk order."""

    items: list[ExtractedItem] = Field(default_factory=list)
    chunks_total: int = 0
    chunks_processed: int = 0
    chunks_failed: int = 0
    items_before_dedup: int = 0

    def summary(self) -> dict:
        return {
            "items": len(self.items),
            "items_before_dedup": self.items_before_dedup,
            "chunks_total": self.chunks_total,
            "chunks_processed": self.chunks_processed,
            "chunks_failed": self.chunks_failed,
        }
