"""WebAssembly binary format decoder."""

import logging
from pathlib import Path
from typing import BinaryIO

from .errors import InvalidData, InvalidSection, TrailingData
from .leb128 import decode_name, decode_unsigned_leb128
from .stream import Cursor, Reader, StreamAdapter
from .types import (
    Module,
    FuncType,
    FuncBody,
    Import,
    Local,
    Limits,
    MemoryType,
    TableType,
    GlobalType,
    TypeSection,
    ImportSection,
    FunctionSection,
    CodeSection,
    CustomSection,
    RawSection,
    Section,
    FUNC_TYPE_MARKER,
    SECTION_CUSTOM,
    SECTION_TYPE,
    SECTION_IMPORT,
    SECTION_FUNCTION,
    SECTION_CODE,
    SECTION_TAG,
    VALTYPE_ENCODING,
    EXTERNAL_KIND_ENCODING,
    EXTERNAL_FUNC,
    EXTERNAL_TABLE,
    EXTERNAL_MEMORY,
    EXTERNAL_GLOBAL,
)

logger = logging.getLogger(__name__)

# WASM magic number and version
WASM_MAGIC = b"\x00asm"
WASM_VERSION = 1

MAX_LOCALS = 0xFFFFFFFF


def decode_vector_count(reader: Reader) -> int:
    """Decode a vector length; every element takes at least one byte."""
    count = decode_unsigned_leb128(reader)
    reader.ensure_available(count)
    return count


def decode_valtype(reader: Reader) -> str:
    """Decode a value type."""
    byte = reader.read_byte()
    if byte not in VALTYPE_ENCODING:
        raise InvalidData(f"Unknown value type: 0x{byte:02x}")
    return VALTYPE_ENCODING[byte]


def decode_limits(reader: Reader) -> Limits:
    """Decode limits (min, optional max, shared flag)."""
    flags = reader.read_byte()
    if flags not in (0x00, 0x01, 0x03):
        raise InvalidData(f"Invalid limits flags: 0x{flags:02x}")
    min_val = decode_unsigned_leb128(reader)
    max_val = None
    if flags & 0x01:
        max_val = decode_unsigned_leb128(reader)
    return Limits(min=min_val, max=max_val, shared=bool(flags & 0x02))


def decode_func_type(reader: Reader) -> FuncType:
    """Decode a function type."""
    marker = reader.read_byte()
    if marker != FUNC_TYPE_MARKER:
        raise InvalidData(f"Expected function type marker 0x60, got 0x{marker:02x}")

    # Parameters
    param_count = decode_vector_count(reader)
    params = tuple(decode_valtype(reader) for _ in range(param_count))

    # Results
    result_count = decode_vector_count(reader)
    results = tuple(decode_valtype(reader) for _ in range(result_count))

    return FuncType(params, results)


def decode_type_section(reader: Reader) -> TypeSection:
    """Decode the type section."""
    count = decode_vector_count(reader)
    return TypeSection([decode_func_type(reader) for _ in range(count)])


def decode_import_section(reader: Reader) -> ImportSection:
    """Decode the import section."""
    section = ImportSection()
    count = decode_vector_count(reader)
    for _ in range(count):
        mod_name = decode_name(reader)
        name = decode_name(reader)
        kind_byte = reader.read_byte()
        if kind_byte not in EXTERNAL_KIND_ENCODING:
            raise InvalidData(f"Unknown import kind: {kind_byte}")
        kind = EXTERNAL_KIND_ENCODING[kind_byte]

        if kind == EXTERNAL_FUNC:
            desc = decode_unsigned_leb128(reader)
        elif kind == EXTERNAL_TABLE:
            elem_type = decode_valtype(reader)
            desc = TableType(elem_type, decode_limits(reader))
        elif kind == EXTERNAL_MEMORY:
            desc = MemoryType(decode_limits(reader))
        else:
            valtype = decode_valtype(reader)
            mutable = reader.read_byte()
            if mutable not in (0, 1):
                raise InvalidData(f"Invalid global mutability: {mutable}")
            desc = GlobalType(valtype, mutable == 1)

        section.entries.append(Import(mod_name, name, kind, desc))
    return section


def decode_function_section(reader: Reader) -> FunctionSection:
    """Decode the function section (just type indices)."""
    count = decode_vector_count(reader)
    return FunctionSection([decode_unsigned_leb128(reader) for _ in range(count)])


def decode_func_body(reader: Reader) -> FuncBody:
    """Decode one code section entry, keeping the instructions undecoded."""
    body_size = decode_unsigned_leb128(reader)
    reader.ensure_available(body_size)
    body = Cursor(reader.read(body_size))

    # Local declarations
    local_count = decode_vector_count(body)
    locals_list = []
    total = 0
    for _ in range(local_count):
        n = decode_unsigned_leb128(body)
        total += n
        if total > MAX_LOCALS:
            raise InvalidData(f"Too many locals: {total}")
        locals_list.append(Local(n, decode_valtype(body)))

    return FuncBody(locals=locals_list, code=body.read(body.remaining()))


def decode_code_section(reader: Reader) -> CodeSection:
    """Decode the code section."""
    count = decode_vector_count(reader)
    return CodeSection([decode_func_body(reader) for _ in range(count)])


def decode_custom_section(reader: Reader) -> CustomSection:
    """Decode a custom section's name; the rest is kept as raw payload."""
    name = decode_name(reader)
    return CustomSection(name, reader.read(reader.remaining()))


SECTION_DECODERS = {
    SECTION_CUSTOM: decode_custom_section,
    SECTION_TYPE: decode_type_section,
    SECTION_IMPORT: decode_import_section,
    SECTION_FUNCTION: decode_function_section,
    SECTION_CODE: decode_code_section,
}


def decode_section(reader: Reader) -> Section:
    """Decode a single section."""
    section_id = reader.read_byte()
    section_size = decode_unsigned_leb128(reader)
    if section_id > SECTION_TAG:
        raise InvalidSection(f"Unknown section id: {section_id}")

    # Create a sub-reader for the section content
    reader.ensure_available(section_size)
    section_reader = Cursor(reader.read(section_size))
    logger.debug("Section %d: %d bytes", section_id, section_size)

    decode = SECTION_DECODERS.get(section_id)
    if decode is None:
        return RawSection(section_id, section_reader.data)

    section = decode(section_reader)
    if not section_reader.eof():
        raise TrailingData(
            f"Section {section_id} has {section_reader.remaining()} bytes "
            f"left over of {section_size}"
        )
    return section


def deserialize(reader: Reader) -> Module:
    """Decode a module from any reader positioned at its magic number."""
    # Check magic number
    magic = reader.read(4)
    if magic != WASM_MAGIC:
        raise InvalidData(
            f"Invalid WASM magic number: expected {WASM_MAGIC!r}, got {magic!r}"
        )

    # Check version
    version_bytes = reader.read(4)
    version = int.from_bytes(version_bytes, "little")
    if version != WASM_VERSION:
        raise InvalidData(f"Unsupported WASM version: {version}")

    module = Module()
    while not reader.eof():
        module.sections.append(decode_section(reader))
    return module


def decode_module(source: bytes | BinaryIO | Path, parse_names: bool = False) -> Module:
    """Decode a WebAssembly module from binary format.

    Args:
        source: WASM bytes, file-like object, or path to .wasm file
        parse_names: Also decode the "name" custom section. A broken name
            section is left undecoded and logged rather than raised.

    Returns:
        Decoded Module object

    Raises:
        DecodeError: If the binary format is invalid
    """
    if isinstance(source, Path):
        with source.open("rb") as f:
            module = deserialize(StreamAdapter(f))
    elif isinstance(source, (bytes, bytearray, memoryview)):
        module = deserialize(Cursor(source))
    else:
        # Assume file-like object
        module = deserialize(StreamAdapter(source))

    if parse_names:
        module.parse_names()
    return module


def deserialize_file(path: str | Path) -> Module:
    """Decode the module stored at path."""
    return decode_module(Path(path))
