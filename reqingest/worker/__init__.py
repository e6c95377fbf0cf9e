"""
Disposable worker process.

Runs one job per process and reports over a line-delimited JSON channel.
"""

from .channel import MessageChannel
from .handlers import HANDLERS
from .main import load_job_file, main, run_job

__all__ = ["HANDLERS", "MessageChannel", "load_job_file", "main", "run_job"]
