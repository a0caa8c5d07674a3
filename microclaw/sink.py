"""Bounded output sink for fixed-capacity buffers."""

from __future__ import annotations


class BoundedWriter:
    """Write into a caller-owned buffer without ever crossing its capacity.

    The writer keeps two cursors: ``written`` counts bytes physically copied,
    ``logical_length`` counts bytes that would have been copied into an
    unbounded buffer. The last slot of the buffer is reserved for the NUL
    terminator written by :meth:`finish`.

    Once one chunk has been dropped, every later chunk is dropped too, so the
    buffer always holds a clean prefix of the logical output.
    """

    __slots__ = ("_buffer", "capacity", "_written", "_logical", "_truncated")

    def __init__(self, buffer: bytearray | memoryview, capacity: int):
        self._buffer = buffer
        self.capacity = max(0, min(int(capacity), len(buffer)))
        self._written = 0
        self._logical = 0
        self._truncated = False

    @property
    def written(self) -> int:
        return self._written

    @property
    def logical_length(self) -> int:
        return self._logical

    @property
    def truncated(self) -> bool:
        return self._truncated

    def emit(self, data: bytes) -> int:
        """Copy ``data`` whole, or not at all. Returns the logical size added."""
        size = len(data)
        if not self._truncated and self._logical + size < self.capacity:
            self._buffer[self._written:self._written + size] = data
            self._written += size
        elif size:
            self._truncated = True
        self._logical += size
        return size

    def fill(self, data: bytes) -> int:
        """Copy as much of ``data`` as fits. Returns the logical size added."""
        size = len(data)
        if not self._truncated:
            room = max(0, self.capacity - 1 - self._written)
            chunk = data[:room]
            self._buffer[self._written:self._written + len(chunk)] = chunk
            self._written += len(chunk)
            if len(chunk) < size:
                self._truncated = True
        self._logical += size
        return size

    def finish(self) -> int:
        """NUL-terminate after the last copied byte and return the logical length."""
        if self.capacity > 0:
            self._buffer[self._written] = 0
        return self._logical

    def getvalue(self) -> bytes:
        """Return the bytes physically written so far."""
        return bytes(self._buffer[:self._written])
