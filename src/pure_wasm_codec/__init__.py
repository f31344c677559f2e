"""Pure Python WebAssembly binary codec.

Decodes WebAssembly modules into sections, validates the "name" custom
section against the rest of the module, and encodes modules back to bytes.
"""

from .decoder import decode_module, deserialize_file
from .encoder import encode_module, serialize_to_file
from .errors import (
    ErrorKind,
    WasmError,
    DecodeError,
    UnexpectedEof,
    TrailingData,
    InvalidData,
    InvalidVarint,
    InvalidUtf8,
    OutOfBoundsIndex,
    DuplicateIndex,
    DuplicatedNameSubsection,
    InvalidSection,
    InvalidInput,
    StreamError,
    ValidationError,
)
from .index_map import IndexMap, NameMap
from .leb128 import (
    decode_unsigned_leb128,
    decode_signed_leb128,
    encode_unsigned_leb128,
    encode_signed_leb128,
    VarUint7,
    VarUint32,
    VarUint64,
    VarInt7,
    VarInt32,
    VarInt64,
)
from .names import (
    NameSection,
    ModuleNameSubsection,
    FunctionNameSubsection,
    LocalNameSubsection,
)
from .stream import Cursor, ByteWriter, StreamAdapter, Reader, Writer
from .types import Module, FuncType, FuncBody, Local, Import

__version__ = "0.1.0"

__all__ = [
    # Main API
    "decode_module",
    "encode_module",
    "deserialize_file",
    "serialize_to_file",
    # Streams
    "Cursor",
    "ByteWriter",
    "StreamAdapter",
    "Reader",
    "Writer",
    # Varints
    "decode_unsigned_leb128",
    "decode_signed_leb128",
    "encode_unsigned_leb128",
    "encode_signed_leb128",
    "VarUint7",
    "VarUint32",
    "VarUint64",
    "VarInt7",
    "VarInt32",
    "VarInt64",
    # Names
    "IndexMap",
    "NameMap",
    "NameSection",
    "ModuleNameSubsection",
    "FunctionNameSubsection",
    "LocalNameSubsection",
    # Types
    "Module",
    "FuncType",
    "FuncBody",
    "Local",
    "Import",
    # Errors
    "ErrorKind",
    "WasmError",
    "DecodeError",
    "UnexpectedEof",
    "TrailingData",
    "InvalidData",
    "InvalidVarint",
    "InvalidUtf8",
    "OutOfBoundsIndex",
    "DuplicateIndex",
    "DuplicatedNameSubsection",
    "InvalidSection",
    "InvalidInput",
    "StreamError",
    "ValidationError",
]
