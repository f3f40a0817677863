"""
Streaming literal search and replace over a chunked byte stream.

Matches are found left to right without overlap, exactly like ``bytes.replace``
on the concatenated input, no matter how the input is split into chunks. Only
the trailing bytes that could still begin a match are held back between
chunks, so at most ``len(search) - 1`` bytes of lookahead are retained.

Usage:
    stream = ReplaceStream("http://internal/", "https://public/")
    for chunk in chunks:
        yield stream.feed(chunk)
    yield stream.flush()

    # or over an async iterable
    async for chunk in replace_stream(source, search, replacement):
        yield chunk
"""

from typing import AsyncIterable, AsyncIterator, Union

from camouflage.errors import StreamError

Chunk = Union[bytes, bytearray, str]


def _to_bytes(value: Chunk) -> bytes:
    if isinstance(value, str):
        return value.encode("utf-8")
    return bytes(value)


class ReplaceStream:
    """Stateful transform replacing ``search`` with ``replacement`` chunk by chunk."""

    def __init__(self, search: Chunk, replacement: Chunk):
        self.search = _to_bytes(search)
        self.replacement = _to_bytes(replacement)
        if not self.search:
            raise ValueError("search must not be empty")
        self._pending = b""
        self._closed = False
        self.replacements = 0

    @property
    def pending(self) -> bytes:
        """Bytes held back because they might be the start of a match."""
        return self._pending

    def _held_back(self, buffer: bytes, start: int) -> int:
        """Length of the longest suffix of buffer[start:] that starts ``search``."""
        longest = min(len(self.search) - 1, len(buffer) - start)
        for length in range(longest, 0, -1):
            if buffer.endswith(self.search[:length]):
                return length
        return 0

    def feed(self, chunk: Chunk) -> bytes:
        if self._closed:
            raise StreamError("feed() called on a closed ReplaceStream")

        buffer = self._pending + _to_bytes(chunk)
        out = []
        position = 0
        while True:
            index = buffer.find(self.search, position)
            if index < 0:
                break
            out.append(buffer[position:index])
            out.append(self.replacement)
            self.replacements += 1
            position = index + len(self.search)

        keep = self._held_back(buffer, position)
        out.append(buffer[position : len(buffer) - keep])
        self._pending = buffer[len(buffer) - keep :] if keep else b""
        return b"".join(out)

    def flush(self) -> bytes:
        """End of input: emit the held back bytes, which cannot contain a match."""
        if self._closed:
            raise StreamError("flush() called on a closed ReplaceStream")
        tail = self._pending
        self._pending = b""
        self._closed = True
        return tail

    def close(self) -> None:
        """Abort: drop any held back bytes without emitting them."""
        self._pending = b""
        self._closed = True

    @property
    def closed(self) -> bool:
        return self._closed


async def replace_stream(
    chunks: AsyncIterable[Chunk], search: Chunk, replacement: Chunk
) -> AsyncIterator[bytes]:
    """
    Lazily apply a ReplaceStream to an async iterable of chunks.

    A chunk is pulled from the source only when the consumer asks for more
    output. Empty outputs are skipped.
    """
    stream = ReplaceStream(search, replacement)
    try:
        async for chunk in chunks:
            out = stream.feed(chunk)
            if out:
                yield out
        tail = stream.flush()
        if tail:
            yield tail
    finally:
        if not stream.closed:
            stream.close()
