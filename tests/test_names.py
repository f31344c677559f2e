"""Tests for the "name" custom section."""

import io

import pytest
from pure_wasm_codec.errors import (
    DuplicatedNameSubsection,
    ErrorKind,
    OutOfBoundsIndex,
    TrailingData,
    UnexpectedEof,
)
from pure_wasm_codec.index_map import IndexMap
from pure_wasm_codec.leb128 import encode_name
from pure_wasm_codec.names import (
    FunctionNameSubsection,
    LocalNameSubsection,
    ModuleNameSubsection,
    NameSection,
    max_local_space,
)
from pure_wasm_codec.stream import Cursor, StreamAdapter
from pure_wasm_codec.types import (
    CodeSection,
    FuncBody,
    FuncType,
    FunctionSection,
    Import,
    ImportSection,
    Local,
    Module,
    TypeSection,
)


def make_module(
    defined: int = 0, imported: int = 0, params: int = 0, locals: int = 0
) -> Module:
    """Build a module with the given function space and local shape."""
    sections = []
    sections.append(TypeSection([FuncType(("i32",) * params, ())]))
    if imported:
        sections.append(
            ImportSection(
                [Import("env", f"f{i}", "func", 0) for i in range(imported)]
            )
        )
    sections.append(FunctionSection([0] * defined))
    bodies = [
        FuncBody([Local(locals, "i32")] if locals else [], bytes([0x0B]))
        for _ in range(defined)
    ]
    sections.append(CodeSection(bodies))
    return Module(sections)


def roundtrip(section: NameSection, module: Module) -> NameSection:
    return NameSection.deserialize(module, Cursor(section.to_bytes()))


def function_names(entries: dict[int, str]) -> FunctionNameSubsection:
    subsection = FunctionNameSubsection()
    for index, name in entries.items():
        subsection.names.insert(index, name)
    return subsection


class TestNameSectionSerialize:
    """Test the subsection framing on write."""

    def test_empty(self):
        assert NameSection().to_bytes() == b""

    def test_module_name(self):
        section = NameSection(module=ModuleNameSubsection("my_mod"))
        assert section.to_bytes() == bytes([0x00, 0x07, 0x06]) + b"my_mod"

    def test_function_names(self):
        section = NameSection(functions=function_names({0: "hello_world"}))
        payload = bytes([0x01, 0x00, 0x0B]) + b"hello_world"
        assert section.to_bytes() == bytes([0x01, len(payload)]) + payload

    def test_local_names(self):
        locals_map = IndexMap([(0, "msg")])
        section = NameSection(locals=LocalNameSubsection(IndexMap([(0, locals_map)])))
        payload = bytes([0x01, 0x00, 0x01, 0x00, 0x03]) + b"msg"
        assert section.to_bytes() == bytes([0x02, len(payload)]) + payload

    def test_fixed_subsection_order(self):
        section = NameSection(
            locals=LocalNameSubsection(IndexMap([(0, IndexMap([(0, "a")]))])),
            functions=function_names({0: "f"}),
            module=ModuleNameSubsection("m"),
        )
        data = section.to_bytes()
        tags = []
        reader = Cursor(data)
        while not reader.eof():
            tags.append(reader.read_byte())
            size = reader.read_byte()
            reader.seek_relative(size)
        assert tags == [0, 1, 2]

    def test_large_subsection_size(self):
        name = "x" * 200
        data = NameSection(module=ModuleNameSubsection(name)).to_bytes()
        # 200 + 2 byte length prefix = 202, encoded in two LEB128 bytes
        assert data[:3] == bytes([0x00, 0xCA, 0x01])
        assert len(data) == 3 + 202


class TestNameSectionRoundtrip:
    """Test decoding what was encoded."""

    def test_module_name_alone(self):
        section = NameSection(module=ModuleNameSubsection("my_mod"))
        decoded = roundtrip(section, make_module())
        assert decoded.module.name == "my_mod"
        assert decoded.functions is None
        assert decoded.locals is None
        assert decoded == section

    def test_function_names(self):
        section = NameSection(functions=function_names({0: "foo", 1: "bar"}))
        decoded = roundtrip(section, make_module(defined=2))
        assert list(decoded.functions.names) == [(0, "foo"), (1, "bar")]
        assert decoded.module is None
        assert decoded == section

    def test_function_names_outside_function_space(self):
        section = NameSection(functions=function_names({0: "foo", 1: "bar"}))
        with pytest.raises(OutOfBoundsIndex) as excinfo:
            roundtrip(section, make_module(defined=1))
        assert excinfo.value.index == 1
        assert excinfo.value.bound == 1

    def test_function_space_counts_imports(self):
        section = NameSection(functions=function_names({0: "imported", 2: "mine"}))
        decoded = roundtrip(section, make_module(defined=1, imported=2))
        assert decoded == section

    def test_local_names(self):
        local_names = IndexMap()
        local_names.insert(0, IndexMap([(0, "msg1"), (1, "msg2")]))
        local_names.insert(1, IndexMap([(2, "tmp")]))
        section = NameSection(locals=LocalNameSubsection(local_names))
        decoded = roundtrip(section, make_module(defined=2, params=1, locals=2))
        assert decoded == section

    def test_local_index_past_global_maximum(self):
        local_names = IndexMap([(0, IndexMap([(3, "oops")]))])
        section = NameSection(locals=LocalNameSubsection(local_names))
        with pytest.raises(OutOfBoundsIndex) as excinfo:
            roundtrip(section, make_module(defined=1, params=1, locals=2))
        assert excinfo.value.bound == 3

    def test_local_function_index_outside_function_space(self):
        local_names = IndexMap([(5, IndexMap([(0, "a")]))])
        section = NameSection(locals=LocalNameSubsection(local_names))
        with pytest.raises(OutOfBoundsIndex):
            roundtrip(section, make_module(defined=1, params=1))

    def test_local_bound_uses_global_maximum(self):
        # Function 0 has 1 param and no locals, function 1 has 4 locals.
        # Local index 3 is accepted for function 0 because the bound is
        # shared across all functions.
        module = Module(
            [
                TypeSection([FuncType(("i32",), ()), FuncType((), ())]),
                FunctionSection([0, 1]),
                CodeSection(
                    [
                        FuncBody([], bytes([0x0B])),
                        FuncBody([Local(4, "i64")], bytes([0x0B])),
                    ]
                ),
            ]
        )
        assert max_local_space(module) == 5
        local_names = IndexMap([(0, IndexMap([(3, "shared_bound")]))])
        section = NameSection(locals=LocalNameSubsection(local_names))
        assert roundtrip(section, module) == section

    def test_all_subsections(self):
        local_names = IndexMap([(0, IndexMap([(0, "msg1"), (1, "msg2")]))])
        section = NameSection(
            module=ModuleNameSubsection("ModuleNameSubsection"),
            functions=function_names({0: "foo", 1: "bar"}),
            locals=LocalNameSubsection(local_names),
        )
        decoded = roundtrip(section, make_module(defined=2, params=2))
        assert decoded == section
        assert decoded.to_bytes() == section.to_bytes()

    def test_over_external_stream(self):
        section = NameSection(
            module=ModuleNameSubsection("streamed"),
            functions=function_names({0: "main"}),
        )
        stream = StreamAdapter(io.BytesIO(section.to_bytes()))
        decoded = NameSection.deserialize(make_module(defined=1), stream)
        assert decoded == section


class TestNameSectionDeserialize:
    """Test rejection of malformed name sections."""

    def test_empty_payload(self):
        decoded = NameSection.deserialize(make_module(), Cursor(b""))
        assert decoded == NameSection()

    def test_unknown_subsection_is_skipped(self):
        data = (
            bytes([0x07, 0x03, 0xAA, 0xBB, 0xCC])
            + bytes([0x00, 0x04, 0x03])
            + b"mod"
        )
        decoded = NameSection.deserialize(make_module(), Cursor(data))
        assert decoded.module.name == "mod"

    def test_unknown_subsection_at_end(self):
        data = bytes([0x00, 0x02, 0x01]) + b"m" + bytes([0x09, 0x01, 0x00])
        decoded = NameSection.deserialize(make_module(), Cursor(data))
        assert decoded.module.name == "m"

    def test_unknown_subsection_size_past_end(self):
        data = bytes([0x05, 0x80, 0x08]) + bytes(10)  # declares 1024 bytes
        with pytest.raises(UnexpectedEof) as excinfo:
            NameSection.deserialize(make_module(), Cursor(data))
        assert excinfo.value.kind is ErrorKind.UNEXPECTED_EOF

    def test_invalid_name_section(self):
        # Tag 0xFF is unknown and its size vastly exceeds the payload
        invalid = bytes([0xFF]) + bytes([0xFF, 0xFF, 0xFF, 0xFF, 0x0F]) + bytes(1024)
        with pytest.raises(UnexpectedEof):
            NameSection.deserialize(Module(), Cursor(invalid))

    def test_invalid_name_section_over_stream(self):
        invalid = bytes([0xFF]) + bytes([0xFF, 0xFF, 0xFF, 0xFF, 0x0F]) + bytes(1024)
        with pytest.raises(UnexpectedEof):
            NameSection.deserialize(Module(), StreamAdapter(io.BytesIO(invalid)))

    @pytest.mark.parametrize("tag", [0, 1, 2])
    def test_duplicated_subsection(self, tag):
        if tag == 0:
            one = NameSection(module=ModuleNameSubsection("m")).to_bytes()
        elif tag == 1:
            one = NameSection(functions=function_names({0: "f"})).to_bytes()
        else:
            one = NameSection(
                locals=LocalNameSubsection(IndexMap([(0, IndexMap([(0, "l")]))]))
            ).to_bytes()
        with pytest.raises(DuplicatedNameSubsection) as excinfo:
            NameSection.deserialize(make_module(defined=1, params=1), Cursor(one + one))
        assert excinfo.value.tag == tag

    def test_known_subsection_size_past_end(self):
        data = bytes([0x00, 0x10, 0x03]) + b"mod"
        with pytest.raises(UnexpectedEof):
            NameSection.deserialize(make_module(), Cursor(data))

    def test_known_subsection_with_trailing_bytes(self):
        data = bytes([0x00, 0x05, 0x03]) + b"mod" + bytes([0x00])
        with pytest.raises(TrailingData) as excinfo:
            NameSection.deserialize(make_module(), Cursor(data))
        assert excinfo.value.kind is ErrorKind.TRAILING_DATA

    def test_known_subsection_shorter_than_its_body(self):
        # The declared size cuts the module name in half
        data = bytes([0x00, 0x02, 0x03]) + b"mod"
        with pytest.raises(UnexpectedEof):
            NameSection.deserialize(make_module(), Cursor(data))

    def test_truncated_header(self):
        with pytest.raises(UnexpectedEof):
            NameSection.deserialize(make_module(), Cursor(bytes([0x01, 0x80])))

    def test_names_are_detached_from_buffer(self):
        buffer = bytearray(NameSection(module=ModuleNameSubsection("keep")).to_bytes())
        decoded = NameSection.deserialize(make_module(), Cursor(buffer))
        buffer[3:7] = b"XXXX"
        assert decoded.module.name == "keep"


class TestMaxLocalSpace:
    def test_empty_module(self):
        assert max_local_space(Module()) == 0

    def test_sums_separate_maxima(self):
        module = make_module(defined=3, params=2, locals=3)
        assert max_local_space(module) == 5

    def test_multiple_local_runs(self):
        module = Module(
            [
                CodeSection(
                    [FuncBody([Local(2, "i32"), Local(3, "f64")], bytes([0x0B]))]
                )
            ]
        )
        assert max_local_space(module) == 5
