"""
Worker → parent message channel.

One JSON object per line. In a worker process the channel owns the original
stdout; fd 1 is then pointed at stderr so that stray prints from libraries
cannot corrupt the message stream.
"""

import os
import sys
import threading
from typing import Any, TextIO

from pydantic import BaseModel

from ..schema.jobs import CompletedMessage, FailedMessage, ProgressMessage, encode_message


class MessageChannel:
    """Thread-safe line writer for worker messages."""

    def __init__(self, stream: TextIO) -> None:
        self._stream = stream
        self._lock = threading.Lock()

    @classmethod
    def from_stdout(cls) -> "MessageChannel":
        """Take over the process's stdout for messages."""
        sys.stdout.flush()
        channel_fd = os.dup(sys.stdout.fileno())
        os.dup2(sys.stderr.fileno(), sys.stdout.fileno())
        return cls(os.fdopen(channel_fd, "w", encoding="utf-8", buffering=1))

    def send(self, message: BaseModel) -> None:
        line = encode_message(message)
        with self._lock:
            self._stream.write(line)
            self._stream.flush()

    def progress(self, percent: float) -> None:
        self.send(ProgressMessage(progress=max(0.0, min(100.0, float(percent)))))

    def completed(self, result: Any) -> None:
        self.send(CompletedMessage(result=result))

    def failed(self, error: str) -> None:
        self.send(FailedMessage(error=error or "Unknown error in job worker"))

    def close(self) -> None:
        with self._lock:
            self._stream.close()
