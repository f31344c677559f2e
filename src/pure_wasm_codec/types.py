"""WebAssembly module and section definitions."""

import logging
from dataclasses import dataclass, field
from typing import Any, Union

from .errors import DecodeError
from .names import NAME_SECTION_NAME, NameSection
from .stream import Cursor

logger = logging.getLogger(__name__)

# Section IDs
SECTION_CUSTOM = 0
SECTION_TYPE = 1
SECTION_IMPORT = 2
SECTION_FUNCTION = 3
SECTION_TABLE = 4
SECTION_MEMORY = 5
SECTION_GLOBAL = 6
SECTION_EXPORT = 7
SECTION_START = 8
SECTION_ELEMENT = 9
SECTION_CODE = 10
SECTION_DATA = 11
SECTION_DATA_COUNT = 12
SECTION_TAG = 13  # Exception handling proposal

SECTION_NAMES = {
    SECTION_CUSTOM: "custom",
    SECTION_TYPE: "type",
    SECTION_IMPORT: "import",
    SECTION_FUNCTION: "function",
    SECTION_TABLE: "table",
    SECTION_MEMORY: "memory",
    SECTION_GLOBAL: "global",
    SECTION_EXPORT: "export",
    SECTION_START: "start",
    SECTION_ELEMENT: "element",
    SECTION_CODE: "code",
    SECTION_DATA: "data",
    SECTION_DATA_COUNT: "datacount",
    SECTION_TAG: "tag",
}

# Value type constants
VALTYPE_I32 = "i32"
VALTYPE_I64 = "i64"
VALTYPE_F32 = "f32"
VALTYPE_F64 = "f64"
VALTYPE_V128 = "v128"
VALTYPE_FUNCREF = "funcref"
VALTYPE_EXTERNREF = "externref"

# Binary encoding of value types
VALTYPE_ENCODING = {
    0x7F: VALTYPE_I32,
    0x7E: VALTYPE_I64,
    0x7D: VALTYPE_F32,
    0x7C: VALTYPE_F64,
    0x7B: VALTYPE_V128,
    0x70: VALTYPE_FUNCREF,
    0x6F: VALTYPE_EXTERNREF,
}

# Reverse mapping
VALTYPE_TO_BYTE = {v: k for k, v in VALTYPE_ENCODING.items()}

ValType = str  # One of the VALTYPE_* constants

FUNC_TYPE_MARKER = 0x60

# Import kinds
EXTERNAL_FUNC = "func"
EXTERNAL_TABLE = "table"
EXTERNAL_MEMORY = "memory"
EXTERNAL_GLOBAL = "global"

EXTERNAL_KIND_ENCODING = {
    0x00: EXTERNAL_FUNC,
    0x01: EXTERNAL_TABLE,
    0x02: EXTERNAL_MEMORY,
    0x03: EXTERNAL_GLOBAL,
}

EXTERNAL_KIND_TO_BYTE = {v: k for k, v in EXTERNAL_KIND_ENCODING.items()}


@dataclass(frozen=True)
class FuncType:
    """WebAssembly function type (signature)."""

    params: tuple[ValType, ...]
    results: tuple[ValType, ...]

    def __repr__(self) -> str:
        params = ", ".join(self.params)
        results = ", ".join(self.results)
        return f"({params}) -> ({results})"


@dataclass(frozen=True)
class Limits:
    """Memory or table limits."""

    min: int
    max: int | None = None
    shared: bool = False


@dataclass(frozen=True)
class MemoryType:
    """Memory type with limits."""

    limits: Limits


@dataclass(frozen=True)
class TableType:
    """Table type with element type and limits."""

    element_type: ValType
    limits: Limits


@dataclass(frozen=True)
class GlobalType:
    """Global type with value type and mutability."""

    valtype: ValType
    mutable: bool


@dataclass
class Import:
    """An import entry."""

    module: str
    name: str
    kind: str  # One of EXTERNAL_* constants
    desc: Any  # Type index for func, TableType, MemoryType or GlobalType


@dataclass(frozen=True)
class Local:
    """A run of locals of one type in a function body."""

    count: int
    valtype: ValType


@dataclass
class FuncBody:
    """A function body from the code section.

    Instructions are kept as the raw bytes following the local
    declarations, ending with the final ``end`` opcode.
    """

    locals: list[Local]
    code: bytes

    def local_count(self) -> int:
        """Number of declared locals, not counting parameters."""
        return sum(local.count for local in self.locals)


@dataclass
class TypeSection:
    types: list[FuncType] = field(default_factory=list)

    id = SECTION_TYPE


@dataclass
class ImportSection:
    entries: list[Import] = field(default_factory=list)

    id = SECTION_IMPORT

    def count(self, kind: str) -> int:
        return sum(1 for entry in self.entries if entry.kind == kind)


@dataclass
class FunctionSection:
    """Type indices of the locally defined functions."""

    type_indices: list[int] = field(default_factory=list)

    id = SECTION_FUNCTION


@dataclass
class CodeSection:
    bodies: list[FuncBody] = field(default_factory=list)

    id = SECTION_CODE


@dataclass
class CustomSection:
    """A custom section kept as its name and undecoded payload."""

    name: str
    payload: bytes

    id = SECTION_CUSTOM


@dataclass
class RawSection:
    """A section this codec does not model, kept byte for byte."""

    id: int
    payload: bytes

    @property
    def kind(self) -> str:
        return SECTION_NAMES.get(self.id, "unknown")


Section = Union[
    TypeSection,
    ImportSection,
    FunctionSection,
    CodeSection,
    CustomSection,
    NameSection,
    RawSection,
]


def section_id(section: Section) -> int:
    """Binary section id of section."""
    if isinstance(section, NameSection):
        return SECTION_CUSTOM
    return section.id


@dataclass
class Module:
    """A decoded WebAssembly module: its sections in file order."""

    sections: list[Section] = field(default_factory=list)

    def _find(self, section_type: type) -> Any:
        for section in self.sections:
            if isinstance(section, section_type):
                return section
        return None

    def type_section(self) -> TypeSection | None:
        return self._find(TypeSection)

    def import_section(self) -> ImportSection | None:
        return self._find(ImportSection)

    def function_section(self) -> FunctionSection | None:
        return self._find(FunctionSection)

    def code_section(self) -> CodeSection | None:
        return self._find(CodeSection)

    def names_section(self) -> NameSection | None:
        return self._find(NameSection)

    def has_names_section(self) -> bool:
        return self.names_section() is not None

    def custom_sections(self) -> list[CustomSection]:
        return [s for s in self.sections if isinstance(s, CustomSection)]

    def import_count(self, kind: str) -> int:
        """Number of imports of the given EXTERNAL_* kind."""
        import_section = self.import_section()
        if import_section is None:
            return 0
        return import_section.count(kind)

    def functions_space(self) -> int:
        """Number of functions, imported and defined, in index order."""
        defined = 0
        function_section = self.function_section()
        if function_section is not None:
            defined = len(function_section.type_indices)
        return self.import_count(EXTERNAL_FUNC) + defined

    def parse_names(self) -> list[tuple[int, DecodeError]]:
        """Replace "name" custom sections with decoded NameSections.

        A section that fails to decode is left as a CustomSection. Returns
        the failures as (section position, error) pairs.
        """
        errors = []
        for position, section in enumerate(self.sections):
            if not isinstance(section, CustomSection):
                continue
            if section.name != NAME_SECTION_NAME:
                continue
            try:
                self.sections[position] = NameSection.deserialize(
                    self, Cursor(section.payload)
                )
            except DecodeError as e:
                logger.warning("Name section at position %d is broken: %s", position, e)
                errors.append((position, e))
        return errors

    def clear_names(self) -> int:
        """Drop all name sections, decoded or not. Returns how many."""
        kept = [
            s
            for s in self.sections
            if not isinstance(s, NameSection)
            and not (isinstance(s, CustomSection) and s.name == NAME_SECTION_NAME)
        ]
        removed = len(self.sections) - len(kept)
        self.sections = kept
        return removed
