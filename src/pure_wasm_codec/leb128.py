"""LEB128 variable-length integers and length-prefixed names."""

from dataclasses import dataclass
from typing import ClassVar

from .errors import InvalidUtf8, InvalidVarint, ValidationError
from .stream import Reader, Writer


def max_leb128_bytes(bits: int) -> int:
    """Longest legal encoding of a bits-wide integer."""
    return (bits + 6) // 7


def decode_unsigned_leb128(reader: Reader, max_bits: int = 32) -> int:
    """Decode an unsigned LEB128 integer."""
    result = 0
    shift = 0
    for _ in range(max_leb128_bytes(max_bits)):
        byte = reader.read_byte()
        result |= (byte & 0x7F) << shift
        shift += 7
        if (byte & 0x80) == 0:
            if result >> max_bits:
                raise InvalidVarint(
                    f"LEB128 integer does not fit in {max_bits} bits"
                )
            return result
    raise InvalidVarint(f"LEB128 integer too long for {max_bits} bits")


def decode_signed_leb128(reader: Reader, max_bits: int = 32) -> int:
    """Decode a signed LEB128 integer."""
    result = 0
    shift = 0
    for _ in range(max_leb128_bytes(max_bits)):
        byte = reader.read_byte()
        result |= (byte & 0x7F) << shift
        shift += 7
        if (byte & 0x80) == 0:
            # Sign extend if the sign bit (bit 6 of the last byte) is set
            if byte & 0x40:
                result -= 1 << shift
            limit = 1 << (max_bits - 1)
            if not -limit <= result < limit:
                raise InvalidVarint(
                    f"Signed LEB128 integer does not fit in {max_bits} bits"
                )
            return result
    raise InvalidVarint(f"Signed LEB128 integer too long for {max_bits} bits")


def encode_unsigned_leb128(value: int) -> bytes:
    """Encode a non-negative integer as unsigned LEB128."""
    if value < 0:
        raise ValueError(f"Cannot encode negative value {value} as unsigned LEB128")
    out = bytearray()
    while True:
        byte = value & 0x7F
        value >>= 7
        if value:
            out.append(byte | 0x80)
        else:
            out.append(byte)
            return bytes(out)


def encode_signed_leb128(value: int) -> bytes:
    """Encode an integer as signed LEB128."""
    out = bytearray()
    while True:
        byte = value & 0x7F
        value >>= 7
        done = (value == 0 and not byte & 0x40) or (value == -1 and byte & 0x40)
        if done:
            out.append(byte)
            return bytes(out)
        out.append(byte | 0x80)


@dataclass(frozen=True)
class VarInteger:
    """A fixed-width integer with a LEB128 wire form."""

    value: int

    BITS: ClassVar[int] = 32
    SIGNED: ClassVar[bool] = False

    def __post_init__(self) -> None:
        if self.SIGNED:
            low, high = -(1 << (self.BITS - 1)), (1 << (self.BITS - 1)) - 1
        else:
            low, high = 0, (1 << self.BITS) - 1
        if not low <= self.value <= high:
            raise ValueError(
                f"{self.value} out of range for {type(self).__name__} [{low}, {high}]"
            )

    def __int__(self) -> int:
        return self.value

    def __index__(self) -> int:
        return self.value

    @classmethod
    def deserialize(cls, reader: Reader) -> "VarInteger":
        if cls.SIGNED:
            return cls(decode_signed_leb128(reader, cls.BITS))
        return cls(decode_unsigned_leb128(reader, cls.BITS))

    def to_bytes(self) -> bytes:
        if self.SIGNED:
            return encode_signed_leb128(self.value)
        return encode_unsigned_leb128(self.value)

    def serialize(self, writer: Writer) -> None:
        writer.write(self.to_bytes())


class VarUint32(VarInteger):
    BITS = 32


class VarUint64(VarInteger):
    BITS = 64


class VarInt32(VarInteger):
    BITS = 32
    SIGNED = True


class VarInt64(VarInteger):
    BITS = 64
    SIGNED = True


class VarUint7(VarInteger):
    """Small unsigned integer stored in one byte with no continuation."""

    BITS = 7

    @classmethod
    def deserialize(cls, reader: Reader) -> "VarUint7":
        byte = reader.read_byte()
        if byte & 0x80:
            raise InvalidVarint(f"Continuation bit set in varuint7 byte 0x{byte:02x}")
        return cls(byte)

    def to_bytes(self) -> bytes:
        return bytes([self.value])


class VarInt7(VarInteger):
    """Small signed integer stored in one byte with no continuation."""

    BITS = 7
    SIGNED = True

    @classmethod
    def deserialize(cls, reader: Reader) -> "VarInt7":
        byte = reader.read_byte()
        if byte & 0x80:
            raise InvalidVarint(f"Continuation bit set in varint7 byte 0x{byte:02x}")
        if byte & 0x40:
            return cls(byte - 0x80)
        return cls(byte)

    def to_bytes(self) -> bytes:
        return bytes([self.value & 0x7F])


def decode_name(reader: Reader) -> str:
    """Decode a UTF-8 name (length-prefixed byte vector)."""
    length = decode_unsigned_leb128(reader)
    reader.ensure_available(length)
    data = reader.read(length)
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise InvalidUtf8(f"Invalid UTF-8 in name: {e}") from e


def encode_name(name: str) -> bytes:
    """Encode a name as a length-prefixed UTF-8 byte vector."""
    data = name.encode("utf-8")
    return encode_length(len(data)) + data


def encode_length(length: int) -> bytes:
    """Encode a vector length or payload size as varuint32."""
    if length > 0xFFFFFFFF:
        raise ValidationError(f"Length {length} does not fit in a varuint32")
    return encode_unsigned_leb128(length)
