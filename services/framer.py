"""Delimiter framing for serial byte streams."""

from __future__ import annotations

import codecs
import logging
from typing import AsyncIterator, Awaitable, Callable

logger = logging.getLogger(__name__)

ChunkReader = Callable[[], Awaitable[bytes]]


class LineFramer:
    """Turn an awaitable chunk source into trimmed, delimiter-separated frames.

    Chunks may split a frame (or a multi-byte character) anywhere; partial
    data is buffered until the delimiter shows up. An empty chunk means the
    stream ended, at which point any remainder is emitted as a last frame.

    A partial frame longer than ``max_line_length`` is thrown away and the
    rest of it, up to the next delimiter, is skipped.

    The framer can be iterated once.
    """

    def __init__(
        self,
        read_chunk: ChunkReader,
        delimiter: str = "\n",
        encoding: str = "utf-8",
        max_line_length: int = 4096,
    ) -> None:
        if not delimiter:
            raise ValueError("Frame delimiter must not be empty.")
        if max_line_length <= 0:
            raise ValueError("max_line_length must be positive.")
        self._read_chunk = read_chunk
        self.delimiter = delimiter
        self.max_line_length = max_line_length
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._started = False

    def __aiter__(self) -> AsyncIterator[str]:
        if self._started:
            raise RuntimeError("LineFramer cannot be restarted.")
        self._started = True
        return self._frames()

    async def _frames(self) -> AsyncIterator[str]:
        buffer = ""
        discarding = False
        while True:
            chunk = await self._read_chunk()
            if not chunk:
                buffer += self._decoder.decode(b"", final=True)
                if not discarding:
                    tail = buffer.strip()
                    if tail:
                        yield tail
                return

            buffer += self._decoder.decode(chunk)
            while True:
                head, found, rest = buffer.partition(self.delimiter)
                if not found:
                    break
                buffer = rest
                if discarding:
                    discarding = False
                    continue
                frame = head.strip()
                if frame:
                    yield frame

            # Keep a possible delimiter prefix so multi-character delimiters
            # split across chunks still match.
            keep = len(self.delimiter) - 1
            if len(buffer) > self.max_line_length + keep:
                if not discarding:
                    logger.warning(
                        "Discarding oversized partial frame",
                        extra={"reason": f"exceeded {self.max_line_length} characters"},
                    )
                buffer = buffer[-keep:] if keep else ""
                discarding = True
