"""Byte streams the codec reads from and writes to.

Decoding needs two capabilities: reading an exact number of bytes and
seeking relative to the current position (with position and length
queries so callers can detect a seek past the end). Encoding only needs to
append bytes. ``Cursor`` and ``ByteWriter`` provide these over memory and
``StreamAdapter`` provides them over any binary file-like object.
"""

import io
from abc import ABC, abstractmethod
from typing import BinaryIO

from .errors import InvalidInput, StreamError, UnexpectedEof

I64_MIN = -(1 << 63)
I64_MAX = (1 << 63) - 1
U64_MAX = (1 << 64) - 1


class Reader(ABC):
    """Bounded read plus relative seek."""

    @abstractmethod
    def read(self, n: int) -> bytes:
        """Read exactly n bytes or raise UnexpectedEof."""

    @abstractmethod
    def seek_relative(self, offset: int) -> None:
        """Move the position by a signed offset."""

    @abstractmethod
    def stream_position(self) -> int:
        """Current offset from the start of the stream."""

    @abstractmethod
    def stream_len(self) -> int:
        """Total length of the stream in bytes."""

    def read_byte(self) -> int:
        """Read a single byte."""
        return self.read(1)[0]

    def remaining(self) -> int:
        """Return number of remaining bytes (zero once past the end)."""
        return max(0, self.stream_len() - self.stream_position())

    def eof(self) -> bool:
        """Check if at end of data."""
        return self.remaining() == 0

    def ensure_available(self, n: int) -> None:
        """Fail unless at least n more bytes can be read."""
        if n > self.remaining():
            raise UnexpectedEof(
                f"Unexpected end of data: wanted {n} bytes at position "
                f"{self.stream_position()}, {self.remaining()} left"
            )


class Writer(ABC):
    """Append-only byte sink."""

    @abstractmethod
    def write(self, data: bytes) -> None:
        """Write all of data."""


def _check_seek_offset(offset: int) -> None:
    if not I64_MIN <= offset <= I64_MAX:
        raise InvalidInput(f"Seek offset {offset} does not fit in 64 bits")


class Cursor(Reader):
    """A reader over an in-memory buffer with position tracking."""

    def __init__(self, data: bytes | bytearray | memoryview) -> None:
        self.data = bytes(data)
        self.position = 0

    def read(self, n: int) -> bytes:
        if n < 0:
            raise InvalidInput(f"Cannot read a negative number of bytes: {n}")
        if n > len(self.data) - self.position:
            raise UnexpectedEof(
                f"Unexpected end of data: wanted {n} bytes at position {self.position}"
            )
        result = self.data[self.position : self.position + n]
        self.position += n
        return result

    def read_byte(self) -> int:
        if self.position >= len(self.data):
            raise UnexpectedEof(f"Unexpected end of data at position {self.position}")
        byte = self.data[self.position]
        self.position += 1
        return byte

    def seek_relative(self, offset: int) -> None:
        # Seeking past the end is allowed; reads from there fail.
        _check_seek_offset(offset)
        target = self.position + offset
        if target < 0:
            raise InvalidInput(f"Seek to negative position {target}")
        if target > U64_MAX:
            raise InvalidInput(f"Seek position {target} overflows")
        self.position = target

    def stream_position(self) -> int:
        return self.position

    def stream_len(self) -> int:
        return len(self.data)


class ByteWriter(Writer):
    """A growable in-memory sink."""

    def __init__(self) -> None:
        self._buffer = bytearray()

    def write(self, data: bytes) -> None:
        self._buffer += data

    def getvalue(self) -> bytes:
        return bytes(self._buffer)

    def __len__(self) -> int:
        return len(self._buffer)


class StreamAdapter(Reader, Writer):
    """Reader and writer over a binary file-like object.

    Failures raised by the wrapped object are re-raised as StreamError with
    the original exception chained.
    """

    def __init__(self, stream: BinaryIO) -> None:
        self.stream = stream

    def read(self, n: int) -> bytes:
        if n < 0:
            raise InvalidInput(f"Cannot read a negative number of bytes: {n}")
        chunks = []
        wanted = n
        try:
            while wanted:
                chunk = self.stream.read(wanted)
                if not chunk:
                    break
                chunks.append(chunk)
                wanted -= len(chunk)
        except OSError as e:
            raise StreamError(f"Read failed: {e}") from e
        if wanted:
            raise UnexpectedEof(
                f"Unexpected end of stream: wanted {n} bytes, got {n - wanted}"
            )
        return b"".join(chunks)

    def write(self, data: bytes) -> None:
        try:
            view = memoryview(data)
            while view:
                written = self.stream.write(view)
                if written is None:
                    # Non-blocking raw streams report "would block" as None.
                    raise StreamError("Write would block")
                view = view[written:]
        except OSError as e:
            raise StreamError(f"Write failed: {e}") from e

    def seek_relative(self, offset: int) -> None:
        _check_seek_offset(offset)
        position = self.stream_position()
        target = position + offset
        if target < 0:
            raise InvalidInput(f"Seek to negative position {target}")
        if target > U64_MAX:
            raise InvalidInput(f"Seek position {target} overflows")
        try:
            self.stream.seek(offset, io.SEEK_CUR)
        except (OSError, OverflowError) as e:
            raise StreamError(f"Seek failed: {e}") from e

    def stream_position(self) -> int:
        try:
            return self.stream.tell()
        except OSError as e:
            raise StreamError(f"Tell failed: {e}") from e

    def stream_len(self) -> int:
        try:
            current = self.stream.tell()
            end = self.stream.seek(0, io.SEEK_END)
            self.stream.seek(current, io.SEEK_SET)
        except OSError as e:
            raise StreamError(f"Seek failed: {e}") from e
        return end
