"""
reqingest - large-document requirement extraction.

Core modules:
- parsing: bounded document reading (text, PDF)
- chunking: natural-boundary splitting and representative sampling
- extraction: LLM extraction client and result aggregation
- pipeline: split → sample → extract → aggregate orchestration
- worker: disposable worker process and its message protocol
- dispatch: job dispatcher, task executors and job queue
"""

__version__ = "0.1.0"
