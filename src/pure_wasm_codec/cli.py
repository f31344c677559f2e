"""Command-line tools for inspecting and rewriting WebAssembly modules.

Usage:
    pure-wasm-codec names FILE
    pure-wasm-codec sections FILE
    pure-wasm-codec roundtrip FILE
    pure-wasm-codec strip-names FILE -o OUT
"""

import argparse
import logging
import sys
from pathlib import Path

from . import __version__
from .decoder import decode_module
from .encoder import encode_module, serialize_to_file
from .errors import WasmError
from .names import NameSection
from .types import CustomSection, RawSection, SECTION_NAMES, section_id

logger = logging.getLogger(__name__)


def print_names(names: NameSection) -> None:
    if names.module is not None:
        print(f"module: {names.module.name}")
    if names.functions is not None:
        for index, name in names.functions.names:
            print(f"func[{index}]: {name}")
    if names.locals is not None:
        for func_index, local_names in names.locals.local_names:
            for local_index, name in local_names:
                print(f"func[{func_index}] local[{local_index}]: {name}")


def cmd_names(args: argparse.Namespace) -> int:
    module = decode_module(Path(args.file))
    errors = module.parse_names()
    if errors:
        _, error = errors[0]
        print(f"Error: broken name section: {error}", file=sys.stderr)
        return 1
    names = module.names_section()
    if names is None:
        print("no name section", file=sys.stderr)
        return 0
    print_names(names)
    return 0


def cmd_sections(args: argparse.Namespace) -> int:
    module = decode_module(Path(args.file))
    for position, section in enumerate(module.sections):
        sid = section_id(section)
        kind = SECTION_NAMES.get(sid, "unknown")
        if isinstance(section, CustomSection):
            detail = f"{kind} {section.name!r} ({len(section.payload)} bytes)"
        elif isinstance(section, RawSection):
            detail = f"{kind} ({len(section.payload)} bytes)"
        else:
            detail = kind
        print(f"{position:3}: id={sid:<2} {detail}")
    return 0


def cmd_roundtrip(args: argparse.Namespace) -> int:
    original = Path(args.file).read_bytes()
    module = decode_module(original, parse_names=args.names)
    encoded = encode_module(module)
    if encoded == original:
        print(f"ok: {len(original)} bytes")
        return 0
    print(
        f"mismatch: {len(original)} bytes in, {len(encoded)} bytes out",
        file=sys.stderr,
    )
    return 1


def cmd_strip_names(args: argparse.Namespace) -> int:
    module = decode_module(Path(args.file))
    removed = module.clear_names()
    logger.info("Removed %d name section(s)", removed)
    serialize_to_file(args.output, module)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pure-wasm-codec",
        description="Inspect and rewrite WebAssembly binaries",
    )
    parser.add_argument("--version", action="version", version=__version__)
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Log debug output"
    )
    sub = parser.add_subparsers(dest="command", required=True)

    names = sub.add_parser("names", help="Print the module's debug names")
    names.add_argument("file")
    names.set_defaults(func=cmd_names)

    sections = sub.add_parser("sections", help="List the module's sections")
    sections.add_argument("file")
    sections.set_defaults(func=cmd_sections)

    roundtrip = sub.add_parser(
        "roundtrip", help="Check that decoding and re-encoding is lossless"
    )
    roundtrip.add_argument("file")
    roundtrip.add_argument(
        "--names", action="store_true", help="Decode the name section too"
    )
    roundtrip.set_defaults(func=cmd_roundtrip)

    strip = sub.add_parser("strip-names", help="Write the module without names")
    strip.add_argument("file")
    strip.add_argument("-o", "--output", required=True)
    strip.set_defaults(func=cmd_strip_names)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        format="%(levelname)-5s: %(message)s",
        level=logging.DEBUG if args.verbose else logging.WARNING,
    )

    try:
        return args.func(args)
    except WasmError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
