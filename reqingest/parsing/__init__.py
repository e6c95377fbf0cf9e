"""
Document reading module.

Converts PDF and text uploads to plain text under a byte cap.
"""

from .reader import DocumentReader, DocumentText, read_document

__all__ = ["DocumentReader", "DocumentText", "read_document"]
