"""Exception classes for the WebAssembly codec."""

from enum import Enum


class ErrorKind(Enum):
    """Broad category of a codec failure."""

    UNEXPECTED_EOF = "unexpected_eof"
    TRAILING_DATA = "trailing_data"
    INVALID_DATA = "invalid_data"
    INVALID_INPUT = "invalid_input"
    IO = "io"


class WasmError(Exception):
    """Base class for all WebAssembly codec errors."""

    kind: ErrorKind | None = None


class DecodeError(WasmError):
    """Error during binary format decoding."""

    pass


class UnexpectedEof(DecodeError):
    """The input ended in the middle of a field."""

    kind = ErrorKind.UNEXPECTED_EOF


class TrailingData(DecodeError):
    """Bytes were left over after a structurally complete parse."""

    kind = ErrorKind.TRAILING_DATA


class InvalidData(DecodeError):
    """The input is malformed."""

    kind = ErrorKind.INVALID_DATA


class InvalidVarint(InvalidData):
    """A LEB128 integer is too long or does not fit its type."""

    pass


class InvalidUtf8(InvalidData):
    """A name is not valid UTF-8."""

    pass


class OutOfBoundsIndex(InvalidData):
    """An index map entry refers past the end of its index space."""

    def __init__(self, index: int, bound: int) -> None:
        super().__init__(f"Index {index} out of bounds (must be < {bound})")
        self.index = index
        self.bound = bound


class DuplicateIndex(InvalidData):
    """The same index appears twice in one index map."""

    def __init__(self, index: int) -> None:
        super().__init__(f"Duplicate index map entry: {index}")
        self.index = index


class DuplicatedNameSubsection(InvalidData):
    """A name subsection kind appears more than once."""

    def __init__(self, tag: int) -> None:
        super().__init__(f"Duplicated name subsection: {tag}")
        self.tag = tag


class InvalidSection(InvalidData):
    """A section header or section body is malformed."""

    pass


class InvalidInput(DecodeError):
    """A stream operation was given an argument it cannot honour."""

    kind = ErrorKind.INVALID_INPUT


class StreamError(WasmError):
    """The underlying file-like object failed."""

    kind = ErrorKind.IO


class ValidationError(WasmError):
    """The in-memory module cannot be encoded as it stands."""

    pass
