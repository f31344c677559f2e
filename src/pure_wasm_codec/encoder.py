"""WebAssembly binary format encoder.

The inverse of the decoder: every section is rebuilt from its in-memory
form, so a module decoded from canonically encoded bytes encodes back to the
same bytes.
"""

import logging
from pathlib import Path
from typing import BinaryIO

from .errors import ValidationError
from .leb128 import encode_length, encode_name, encode_unsigned_leb128
from .names import NAME_SECTION_NAME, NameSection
from .stream import ByteWriter, StreamAdapter, Writer
from .types import (
    Module,
    FuncType,
    FuncBody,
    Import,
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
    VALTYPE_TO_BYTE,
    EXTERNAL_KIND_TO_BYTE,
    section_id,
)
from .decoder import WASM_MAGIC, WASM_VERSION

logger = logging.getLogger(__name__)


def encode_valtype(valtype: str) -> bytes:
    if valtype not in VALTYPE_TO_BYTE:
        raise ValidationError(f"Unknown value type: {valtype!r}")
    return bytes([VALTYPE_TO_BYTE[valtype]])


def encode_vector(items: list[bytes]) -> bytes:
    return encode_length(len(items)) + b"".join(items)


def encode_limits(limits: Limits) -> bytes:
    flags = 0x00
    if limits.max is not None:
        flags |= 0x01
    if limits.shared:
        if limits.max is None:
            raise ValidationError("Shared limits require a maximum")
        flags |= 0x02
    out = bytes([flags]) + encode_unsigned_leb128(limits.min)
    if limits.max is not None:
        out += encode_unsigned_leb128(limits.max)
    return out


def encode_func_type(func_type: FuncType) -> bytes:
    return (
        bytes([FUNC_TYPE_MARKER])
        + encode_vector([encode_valtype(v) for v in func_type.params])
        + encode_vector([encode_valtype(v) for v in func_type.results])
    )


def encode_import(entry: Import) -> bytes:
    if entry.kind not in EXTERNAL_KIND_TO_BYTE:
        raise ValidationError(f"Unknown import kind: {entry.kind!r}")
    out = encode_name(entry.module) + encode_name(entry.name)
    out += bytes([EXTERNAL_KIND_TO_BYTE[entry.kind]])

    desc = entry.desc
    if isinstance(desc, TableType):
        out += encode_valtype(desc.element_type) + encode_limits(desc.limits)
    elif isinstance(desc, MemoryType):
        out += encode_limits(desc.limits)
    elif isinstance(desc, GlobalType):
        out += encode_valtype(desc.valtype) + bytes([1 if desc.mutable else 0])
    else:
        out += encode_unsigned_leb128(desc)
    return out


def encode_func_body(body: FuncBody) -> bytes:
    payload = encode_vector(
        [
            encode_unsigned_leb128(local.count) + encode_valtype(local.valtype)
            for local in body.locals
        ]
    )
    payload += body.code
    return encode_length(len(payload)) + payload


def encode_section_payload(section: Section) -> bytes:
    """Encode the body of a section, without its id and size."""
    if isinstance(section, TypeSection):
        return encode_vector([encode_func_type(t) for t in section.types])
    if isinstance(section, ImportSection):
        return encode_vector([encode_import(e) for e in section.entries])
    if isinstance(section, FunctionSection):
        return encode_vector([encode_unsigned_leb128(i) for i in section.type_indices])
    if isinstance(section, CodeSection):
        return encode_vector([encode_func_body(b) for b in section.bodies])
    if isinstance(section, CustomSection):
        return encode_name(section.name) + section.payload
    if isinstance(section, NameSection):
        return encode_name(NAME_SECTION_NAME) + section.to_bytes()
    if isinstance(section, RawSection):
        return section.payload
    raise TypeError(f"Not a section: {type(section).__name__}")


def serialize(module: Module, writer: Writer) -> None:
    """Write module to writer."""
    writer.write(WASM_MAGIC)
    writer.write(WASM_VERSION.to_bytes(4, "little"))
    for section in module.sections:
        payload = encode_section_payload(section)
        writer.write(bytes([section_id(section)]))
        writer.write(encode_length(len(payload)))
        writer.write(payload)
        logger.debug("Wrote section %d: %d bytes", section_id(section), len(payload))


def encode_module(module: Module) -> bytes:
    """Encode module to WebAssembly binary format."""
    writer = ByteWriter()
    serialize(module, writer)
    return writer.getvalue()


def serialize_to_file(path: str | Path | BinaryIO, module: Module) -> None:
    """Write module to a path or a binary file-like object."""
    if isinstance(path, (str, Path)):
        with Path(path).open("wb") as f:
            serialize(module, StreamAdapter(f))
    else:
        serialize(module, StreamAdapter(path))
