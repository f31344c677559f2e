"""The "name" custom section.

The section is a sequence of subsections, each framed as a tag byte, a
varuint32 payload size and the payload::

    0  module name     name
    1  function names  vec((funcidx, name))
    2  local names     vec((funcidx, vec((localidx, name))))

Indices are checked against the module the section belongs to, so a
section can only be decoded once the rest of the module is available.
Subsections with any other tag are skipped.
"""

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, TypeVar

from .errors import DuplicatedNameSubsection, TrailingData, UnexpectedEof
from .index_map import IndexMap, NameMap
from .leb128 import decode_name, decode_unsigned_leb128, encode_length, encode_name
from .stream import ByteWriter, Cursor, Reader, Writer

if TYPE_CHECKING:
    from .types import Module

logger = logging.getLogger(__name__)

T = TypeVar("T")

NAME_SECTION_NAME = "name"

NAME_TYPE_MODULE = 0
NAME_TYPE_FUNCTION = 1
NAME_TYPE_LOCAL = 2


@dataclass
class ModuleNameSubsection:
    """The name of the module."""

    name: str

    @classmethod
    def deserialize(cls, reader: Reader) -> "ModuleNameSubsection":
        return cls(decode_name(reader))

    def serialize(self, writer: Writer) -> None:
        writer.write(encode_name(self.name))


@dataclass
class FunctionNameSubsection:
    """Names of functions, keyed by function index."""

    names: NameMap = field(default_factory=IndexMap)

    @classmethod
    def deserialize(cls, module: "Module", reader: Reader) -> "FunctionNameSubsection":
        """Decode names, making sure every index is a function of module."""
        return cls(IndexMap.deserialize(module.functions_space(), reader))

    def serialize(self, writer: Writer) -> None:
        self.names.serialize(writer)


def max_local_space(module: "Module") -> int:
    """Upper bound for local indices in any function of module.

    This is the largest parameter count of any signature plus the largest
    declared local count of any body. The two maxima may come from
    different functions, so the bound is loose for most functions.
    """
    max_params = 0
    type_section = module.type_section()
    if type_section is not None:
        max_params = max((len(t.params) for t in type_section.types), default=0)

    max_locals = 0
    code_section = module.code_section()
    if code_section is not None:
        max_locals = max((b.local_count() for b in code_section.bodies), default=0)

    return max_params + max_locals


@dataclass
class LocalNameSubsection:
    """Names of locals, keyed by function index then local index."""

    local_names: IndexMap[NameMap] = field(default_factory=IndexMap)

    @classmethod
    def deserialize(cls, module: "Module", reader: Reader) -> "LocalNameSubsection":
        """Decode names, making sure every index is a local of some function."""
        max_space = max_local_space(module)

        def deserialize_locals(_func_index: int, r: Reader) -> NameMap:
            return IndexMap.deserialize(max_space, r)

        local_names = IndexMap.deserialize_with(
            module.functions_space(), deserialize_locals, reader
        )
        return cls(local_names)

    def serialize(self, writer: Writer) -> None:
        self.local_names.serialize(writer)


@dataclass
class NameSection:
    """Debug names for a module."""

    module: ModuleNameSubsection | None = None
    functions: FunctionNameSubsection | None = None
    locals: LocalNameSubsection | None = None

    @classmethod
    def deserialize(cls, module: "Module", reader: Reader) -> "NameSection":
        """Decode a name section payload, validating indices against module.

        Reading stops cleanly when no further subsection tag is available.
        """
        section = cls()

        while not reader.eof():
            tag = reader.read_byte()
            size = decode_unsigned_leb128(reader)

            if tag == NAME_TYPE_MODULE:
                if section.module is not None:
                    raise DuplicatedNameSubsection(tag)
                section.module = _read_subsection(
                    reader, size, ModuleNameSubsection.deserialize
                )
            elif tag == NAME_TYPE_FUNCTION:
                if section.functions is not None:
                    raise DuplicatedNameSubsection(tag)
                section.functions = _read_subsection(
                    reader,
                    size,
                    lambda r: FunctionNameSubsection.deserialize(module, r),
                )
            elif tag == NAME_TYPE_LOCAL:
                if section.locals is not None:
                    raise DuplicatedNameSubsection(tag)
                section.locals = _read_subsection(
                    reader,
                    size,
                    lambda r: LocalNameSubsection.deserialize(module, r),
                )
            else:
                logger.debug("Skipping name subsection %d (%d bytes)", tag, size)
                reader.seek_relative(size)
                # Seeking past the end succeeds, so check explicitly.
                if reader.stream_position() > reader.stream_len():
                    raise UnexpectedEof(
                        f"Name subsection {tag} declares {size} bytes past the "
                        "end of the section"
                    )

        return section

    def serialize(self, writer: Writer) -> None:
        """Write the present subsections in tag order."""
        subsections = (
            (NAME_TYPE_MODULE, self.module),
            (NAME_TYPE_FUNCTION, self.functions),
            (NAME_TYPE_LOCAL, self.locals),
        )
        for tag, subsection in subsections:
            if subsection is None:
                continue
            payload = ByteWriter()
            subsection.serialize(payload)
            writer.write(bytes([tag]))
            writer.write(encode_length(len(payload)))
            writer.write(payload.getvalue())

    def to_bytes(self) -> bytes:
        writer = ByteWriter()
        self.serialize(writer)
        return writer.getvalue()


def _read_subsection(
    reader: Reader, size: int, deserialize: Callable[[Reader], T]
) -> T:
    """Decode exactly size bytes of reader with deserialize."""
    reader.ensure_available(size)
    body = Cursor(reader.read(size))
    result = deserialize(body)
    if not body.eof():
        raise TrailingData(
            f"{body.remaining()} bytes left over in name subsection of {size} bytes"
        )
    return result
