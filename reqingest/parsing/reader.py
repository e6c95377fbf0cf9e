"""
Bounded document reading using PyMuPDF for PDFs.

Large uploads are never read whole: text files are read up to `max_bytes`
and PDFs are decoded page by page until that much text has been collected.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Union

import fitz  # PyMuPDF

from ..errors import InputError
from ..utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_MAX_BYTES = 20 * 1024 * 1024


@dataclass
class DocumentText:
    """Decoded text of a document."""

    name: str
    text: str
    size_bytes: int
    truncated: bool = False
    metadata: dict = field(default_factory=dict)


class DocumentReader:
    """
    Read PDF or text documents into plain text.

    Paragraph structure is kept (blank line between PDF blocks and pages)
    so the splitter can find paragraph breaks.
    """

    def __init__(self, max_bytes: int = DEFAULT_MAX_BYTES) -> None:
        self.max_bytes = max_bytes

    def read(self, path: Union[str, Path]) -> DocumentText:
        """
        Read a document.

        Args:
            path: Path to a PDF or text file

        Returns:
            DocumentText

        Raises:
            InputError: file missing or unreadable
        """
        path = Path(path)
        if not path.is_file():
            raise InputError(f"File not found: {path}", {"path": str(path)})

        size = path.stat().st_size
        try:
            if path.suffix.lower() == ".pdf":
                text, truncated, metadata = self._read_pdf(path)
            else:
                text, truncated = self._read_text(path)
                metadata = {}
        except (OSError, RuntimeError) as e:
            # PyMuPDF raises RuntimeError subclasses for corrupt files
            raise InputError(f"Could not read {path.name}: {e}", {"path": str(path)}) from e

        if truncated:
            logger.warning(
                "%s: read limit of %d bytes reached, remaining content ignored",
                path.name,
                self.max_bytes,
            )

        return DocumentText(
            name=path.name,
            text=text,
            size_bytes=size,
            truncated=truncated,
            metadata=metadata,
        )

    def _read_text(self, path: Path) -> tuple[str, bool]:
        with open(path, "rb") as f:
            raw = f.read(self.max_bytes + 1)
        truncated = len(raw) > self.max_bytes
        # errors="ignore" drops a multi-byte sequence cut by the read limit
        return raw[: self.max_bytes].decode("utf-8", errors="ignore" if truncated else "replace"), truncated

    def _read_pdf(self, path: Path) -> tuple[str, bool, dict]:
        parts: list[str] = []
        collected = 0
        truncated = False

        with fitz.open(path) as doc:
            metadata = dict(doc.metadata or {})
            metadata["page_count"] = len(doc)

            for page in doc:
                page_text = self._extract_page_text(page)
                if not page_text.strip():
                    continue
                parts.append(page_text)
                collected += len(page_text.encode("utf-8"))
                if collected >= self.max_bytes:
                    truncated = page.number < len(doc) - 1
                    break

        return "\n\n".join(parts), truncated, metadata

    def _extract_page_text(self, page: "fitz.Page") -> str:
        """Text of one page, one paragraph per text block."""
        blocks = page.get_text("dict", flags=fitz.TEXT_PRESERVE_WHITESPACE)["blocks"]

        paragraphs: list[str] = []
        for block in blocks:
            if block["type"] != 0:  # Skip non-text blocks
                continue

            lines: list[str] = []
            for line in block.get("lines", []):
                text = "".join(span.get("text", "") for span in line.get("spans", []))
                text = text.strip()
                if text:
                    lines.append(text)

            if lines:
                paragraphs.append(" ".join(lines))

        return "\n\n".join(paragraphs)


def read_document(path: Union[str, Path], max_bytes: int = DEFAULT_MAX_BYTES) -> DocumentText:
    """Read a document with a byte cap. See DocumentReader."""
    return DocumentReader(max_bytes=max_bytes).read(path)
