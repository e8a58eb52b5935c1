"""Bounded, tail-preserving output capture.

A runaway snippet can print without limit. Each stream keeps only its most
recent ``limit`` bytes; older chunks are discarded as new ones arrive.
"""

import asyncio
from collections import deque

# Bytes requested per read from a subprocess pipe
READ_CHUNK_SIZE = 64 * 1024


class BoundedOutput:
    """Accumulates the last ``limit`` bytes of a stream.

    Usage:
        buffer = BoundedOutput(limit=1024)
        buffer.feed(b"chunk")
        buffer.text(), buffer.truncated
    """

    def __init__(self, limit: int) -> None:
        if limit < 0:
            raise ValueError("limit must be non-negative")
        self.limit = limit
        self.truncated = False
        self._chunks: deque[bytes] = deque()
        self._total = 0

    def __len__(self) -> int:
        return self._total

    def feed(self, chunk: bytes) -> None:
        """Append a chunk, dropping the earliest bytes beyond the limit."""
        if not chunk:
            return
        self._chunks.append(chunk)
        self._total += len(chunk)
        if self._total <= self.limit:
            return

        self.truncated = True
        while self._chunks and self._total - len(self._chunks[0]) >= self.limit:
            self._total -= len(self._chunks.popleft())
        excess = self._total - self.limit
        if excess > 0:
            self._chunks[0] = self._chunks[0][excess:]
            self._total = self.limit

    def getvalue(self) -> bytes:
        return b"".join(self._chunks)

    def text(self) -> str:
        return self.getvalue().decode("utf-8", errors="replace")


async def drain(stream: asyncio.StreamReader | None, buffer: BoundedOutput) -> None:
    """Read ``stream`` to EOF into ``buffer``."""
    if stream is None:
        return
    while True:
        chunk = await stream.read(READ_CHUNK_SIZE)
        if not chunk:
            return
        buffer.feed(chunk)


__all__ = ["BoundedOutput", "drain"]
