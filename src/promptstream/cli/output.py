"""
Console output for streamed model responses.

Model text goes to stdout, one atomic write per chunk; diagnostics go
through the stderr console or the logger, never through this sink.
"""

from __future__ import annotations

import threading

from rich.console import Console


class ConsoleSink:
    """
    Output sink writing chunks to the console as they arrive.

    Writes are serialized with a lock so concurrent producers cannot
    interleave inside a chunk. Chunks bypass rich rendering and go straight
    to the console's file, so tabs, carriage returns and markup-like text
    arrive exactly as the model produced them.
    """

    def __init__(self, console: Console | None = None):
        self.console = console or Console()
        self._lock = threading.Lock()
        self.chunks_written = 0

    def _write(self, text: str) -> None:
        stream = self.console.file
        stream.write(text)
        stream.flush()

    def __call__(self, text: str) -> None:
        with self._lock:
            self._write(text)
            self.chunks_written += 1

    def finish(self) -> None:
        """End the response with a single newline."""
        with self._lock:
            self._write("\n")
