"""Sparse maps from 32-bit indices to values."""

from typing import Callable, Generic, Iterable, Iterator, TypeVar

from .errors import DuplicateIndex, OutOfBoundsIndex
from .leb128 import decode_name, decode_unsigned_leb128, encode_length, encode_name
from .stream import Reader, Writer

V = TypeVar("V")

MAX_INDEX = 0xFFFFFFFF


class IndexMap(Generic[V]):
    """An ordered map keyed by non-negative 32-bit indices.

    Iteration yields ``(index, value)`` pairs in ascending index order
    regardless of insertion order. Indices need not be contiguous.
    """

    def __init__(self, items: Iterable[tuple[int, V]] = ()) -> None:
        self._entries: dict[int, V] = {}
        for index, value in items:
            self.insert(index, value)

    def insert(self, index: int, value: V) -> V | None:
        """Set the value at index, returning the value it replaced."""
        if not 0 <= index <= MAX_INDEX:
            raise ValueError(f"Index {index} is not a 32-bit unsigned integer")
        previous = self._entries.get(index)
        self._entries[index] = value
        return previous

    def get(self, index: int, default: V | None = None) -> V | None:
        return self._entries.get(index, default)

    def remove(self, index: int) -> V | None:
        """Remove index, returning its value or None if absent."""
        return self._entries.pop(index, None)

    def contains(self, index: int) -> bool:
        return index in self._entries

    def clear(self) -> None:
        self._entries.clear()

    def keys(self) -> list[int]:
        return sorted(self._entries)

    def values(self) -> list[V]:
        return [self._entries[index] for index in self.keys()]

    def items(self) -> list[tuple[int, V]]:
        return [(index, self._entries[index]) for index in self.keys()]

    def __iter__(self) -> Iterator[tuple[int, V]]:
        return iter(self.items())

    def __contains__(self, index: object) -> bool:
        return index in self._entries

    def __getitem__(self, index: int) -> V:
        return self._entries[index]

    def __setitem__(self, index: int, value: V) -> None:
        self.insert(index, value)

    def __len__(self) -> int:
        return len(self._entries)

    def __bool__(self) -> bool:
        return bool(self._entries)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, IndexMap):
            return NotImplemented
        return self._entries == other._entries

    def __repr__(self) -> str:
        inner = ", ".join(f"{index}: {value!r}" for index, value in self.items())
        return f"IndexMap({{{inner}}})"

    @classmethod
    def deserialize_with(
        cls,
        max_entry_space: int,
        deserialize_value: Callable[[int, Reader], V],
        reader: Reader,
    ) -> "IndexMap[V]":
        """Decode a map whose values are read by deserialize_value.

        deserialize_value is called with the index of the entry being read,
        so the value decoder can depend on which entry it belongs to. Every
        index must be below max_entry_space and appear at most once; entries
        may come in any order.
        """
        count = decode_unsigned_leb128(reader)
        # Every entry takes at least one byte.
        reader.ensure_available(count)

        result: IndexMap[V] = cls()
        for _ in range(count):
            index = decode_unsigned_leb128(reader)
            if index >= max_entry_space:
                raise OutOfBoundsIndex(index, max_entry_space)
            if index in result._entries:
                raise DuplicateIndex(index)
            result._entries[index] = deserialize_value(index, reader)
        return result

    @classmethod
    def deserialize(cls, max_entry_space: int, reader: Reader) -> "IndexMap[str]":
        """Decode a ``NameMap`` bounded by max_entry_space.

        Values are always read as names, whatever the map's value type.
        Use deserialize_with for any other kind of value.
        """
        return cls.deserialize_with(
            max_entry_space, lambda _index, r: decode_name(r), reader
        )

    def serialize(self, writer: Writer) -> None:
        writer.write(encode_length(len(self._entries)))
        for index, value in self.items():
            writer.write(encode_length(index))
            if isinstance(value, str):
                writer.write(encode_name(value))
            elif hasattr(value, "serialize"):
                value.serialize(writer)
            else:
                raise TypeError(
                    f"Cannot serialize index map value of type {type(value).__name__}"
                )


NameMap = IndexMap[str]
