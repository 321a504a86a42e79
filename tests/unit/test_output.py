"""
Unit tests for the console output sink.
"""

import threading
from io import StringIO

from rich.console import Console

from promptstream.cli.output import ConsoleSink

# =============================================================================
# ConsoleSink Tests
# =============================================================================


class TestConsoleSink:
    """Tests for ConsoleSink."""

    def make_sink(self):
        buffer = StringIO()
        return ConsoleSink(Console(file=buffer)), buffer

    def test_chunks_written_verbatim(self):
        """Test tabs and carriage returns pass through unchanged."""
        sink, buffer = self.make_sink()
        chunks = ["def f():\n\treturn 1", "\r\n", "ab\tc"]

        for chunk in chunks:
            sink(chunk)

        assert buffer.getvalue() == "".join(chunks)
        assert sink.chunks_written == 3

    def test_markup_is_not_interpreted(self):
        """Test bracketed text from the model is not treated as rich markup."""
        sink, buffer = self.make_sink()

        sink("items[bold]x[/bold] and [red]")

        assert buffer.getvalue() == "items[bold]x[/bold] and [red]"

    def test_finish_appends_one_newline(self):
        """Test finish ends the response with a single newline."""
        sink, buffer = self.make_sink()

        sink("answer")
        sink.finish()

        assert buffer.getvalue() == "answer\n"
        assert sink.chunks_written == 1

    def test_concurrent_chunks_are_not_interleaved(self):
        """Test each chunk is written as a unit when producers race."""
        sink, buffer = self.make_sink()
        chunks = [f"<{i:03d}{'x' * 50}>" for i in range(200)]

        threads = [threading.Thread(target=sink, args=(chunk,)) for chunk in chunks]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        output = buffer.getvalue()
        assert sink.chunks_written == 200
        assert sorted(part + ">" for part in output.split(">") if part) == sorted(chunks)
