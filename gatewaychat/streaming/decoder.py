"""
gatewaychat - Frame Decoder

Turns text chunks that arrive at arbitrary boundaries into complete
newline-terminated lines.

Charset decoding happens before this stage (httpx decodes incrementally
in Response.aiter_text), so a multi-byte character split across network
reads is already reassembled here.
"""

from typing import AsyncIterable, AsyncIterator, Iterable, List

from ..observability.logging import get_logger


logger = get_logger(__name__)


class FrameDecoder:
    """
    Incremental line splitter with a single residual buffer.

    For any partition of the same text into chunks, the concatenation of
    everything feed() returns is the same ordered list of lines.

    Usage:
        decoder = FrameDecoder()
        for chunk in chunks:
            for line in decoder.feed(chunk):
                handle(line)
        decoder.finish()
    """

    def __init__(self):
        self._buffer = ""
        self.lines_emitted = 0

    @property
    def residual(self) -> str:
        """Incomplete trailing fragment held back so far."""
        return self._buffer

    def feed(self, chunk: str) -> List[str]:
        """Append a chunk and return all lines it completed."""
        if not chunk:
            return []

        self._buffer += chunk
        lines = self._buffer.split("\n")
        self._buffer = lines.pop()
        self.lines_emitted += len(lines)
        return lines

    def finish(self) -> List[str]:
        """
        End of stream.

        An unterminated trailing fragment is never a complete frame, so it
        is dropped. Always returns an empty list.
        """
        if self._buffer:
            logger.debug(
                "Discarding unterminated trailing fragment",
                residual_length=len(self._buffer),
            )
        self._buffer = ""
        return []


def decode_lines(chunks: Iterable[str]) -> List[str]:
    """Run a fresh decoder over an iterable of chunks."""
    decoder = FrameDecoder()
    lines: List[str] = []
    for chunk in chunks:
        lines.extend(decoder.feed(chunk))
    lines.extend(decoder.finish())
    return lines


async def aiter_lines(chunks: AsyncIterable[str]) -> AsyncIterator[str]:
    """Async variant of decode_lines, yielding lines as they complete."""
    decoder = FrameDecoder()
    async for chunk in chunks:
        for line in decoder.feed(chunk):
            yield line
    for line in decoder.finish():
        yield line
