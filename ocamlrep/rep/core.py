"""Core value representation: immediates, blocks and the heap that owns them."""

from __future__ import annotations

from typing import Iterable, Iterator, Optional

from ..constants import (
    DOUBLE_ARRAY_TAG,
    DOUBLE_TAG,
    HEAP_BASE,
    MAX_INT,
    MAX_TAG,
    MIN_INT,
    NO_SCAN_TAG,
    RAW_TAGS,
    STRING_TAG,
    WORD_BITS,
    WORD_MASK,
    WORD_SIZE,
)


def _encode_immediate(n: int) -> int:
    return ((n << 1) | 1) & WORD_MASK


def _decode_immediate(bits: int) -> int:
    if bits >> (WORD_BITS - 1):
        bits -= 1 << WORD_BITS
    return bits >> 1


def _string_words(length: int) -> int:
    """Number of words OCaml uses for a string of *length* bytes."""

    return length // WORD_SIZE + 1


class Block:
    """Read-only view of a heap block."""

    __slots__ = ("_address", "_tag", "_fields", "_payload", "_size")

    def __init__(self, address: int, tag: int, fields=(), payload=None, size=None):
        if not 0 <= tag <= MAX_TAG:
            raise ValueError(f"Block tag out of range: {tag}")
        self._address = address
        self._tag = tag
        self._fields = tuple(fields)
        self._payload = payload
        self._size = len(self._fields) if size is None else size

    @property
    def address(self) -> int:
        return self._address

    @property
    def tag(self) -> int:
        return self._tag

    @property
    def size(self) -> int:
        return self._size

    def is_raw(self) -> bool:
        return self.tag >= NO_SCAN_TAG

    def __len__(self) -> int:
        return self._size

    def __getitem__(self, index: int) -> "Value":
        if self.is_raw():
            raise TypeError(f"Block with tag {self.tag} holds raw data, not fields")
        if not isinstance(index, int) or not 0 <= index < self._size:
            raise IndexError(f"Field index {index} out of range for block of size {self._size}")
        return self._fields[index]

    def __iter__(self) -> Iterator["Value"]:
        if self.is_raw():
            raise TypeError(f"Block with tag {self.tag} holds raw data, not fields")
        return iter(self._fields)

    def as_bytes(self) -> Optional[bytes]:
        if self.tag != STRING_TAG:
            return None
        return self._payload

    def as_float(self) -> Optional[float]:
        if self.tag != DOUBLE_TAG:
            return None
        return self._payload

    def as_float_array(self) -> Optional[tuple[float, ...]]:
        if self.tag != DOUBLE_ARRAY_TAG:
            return None
        return self._payload

    def kind(self) -> str:
        return RAW_TAGS.get(self.tag, "block")

    def __repr__(self) -> str:  # pragma: no cover - representation helper
        return f"Block(tag={self.tag}, size={self._size}, @{self.address:#x})"


class Value:
    """Opaque reference to a value: either an immediate or a block."""

    __slots__ = ("_bits", "_block")

    def __init__(self, bits: int, block: Optional[Block] = None):
        bits &= WORD_MASK
        if bits & 1:
            if block is not None:
                raise ValueError("Immediate values cannot reference a block")
        elif block is None or block.address != bits:
            raise ValueError(f"No block at address {bits:#x}")
        self._bits = bits
        self._block = block

    @classmethod
    def from_int(cls, n: int) -> "Value":
        if not MIN_INT <= n <= MAX_INT:
            raise OverflowError(f"{n} does not fit in an immediate")
        return cls(_encode_immediate(n))

    def is_immediate(self) -> bool:
        return bool(self._bits & 1)

    def is_block(self) -> bool:
        return not self._bits & 1

    def as_int(self) -> Optional[int]:
        if self._bits & 1:
            return _decode_immediate(self._bits)
        return None

    def as_block(self) -> Optional[Block]:
        return self._block

    def to_bits(self) -> int:
        return self._bits

    def __eq__(self, other) -> bool:
        if not isinstance(other, Value):
            return NotImplemented
        return self._bits == other._bits and self._block is other._block

    def __hash__(self) -> int:
        return hash(self._bits)

    def __repr__(self) -> str:  # pragma: no cover - representation helper
        if self._bits & 1:
            return f"Value(int={self.as_int()})"
        return f"Value({self._block!r})"


def _as_value(item) -> Value:
    if isinstance(item, Value):
        return item
    if isinstance(item, int):
        return Value.from_int(int(item))
    raise TypeError(f"Block fields must be Values or ints, got {type(item)!r}")


class Heap:
    """Allocates blocks at word-aligned addresses and resolves raw bits."""

    def __init__(self, base: int = HEAP_BASE):
        if base % WORD_SIZE:
            raise ValueError("Heap base must be word aligned")
        self._next = base
        self._blocks: dict[int, Block] = {}

    def _place(self, tag: int, size: int, fields=(), payload=None) -> Value:
        # One header word precedes the fields; the address points past it.
        address = self._next + WORD_SIZE
        block = Block(address, tag, fields, payload, size)
        self._blocks[address] = block
        self._next = address + max(size, 1) * WORD_SIZE
        return Value(address, block)

    def alloc_block(self, tag: int, fields: Iterable = ()) -> Value:
        if tag >= NO_SCAN_TAG:
            raise ValueError(f"Tag {tag} is reserved for raw blocks")
        values = [_as_value(f) for f in fields]
        return self._place(tag, len(values), values)

    def alloc_string(self, data) -> Value:
        if isinstance(data, str):
            data = data.encode("utf-8")
        data = bytes(data)
        return self._place(STRING_TAG, _string_words(len(data)), payload=data)

    def alloc_double(self, x: float) -> Value:
        return self._place(DOUBLE_TAG, 1, payload=float(x))

    def alloc_double_array(self, xs: Iterable[float]) -> Value:
        items = tuple(float(x) for x in xs)
        return self._place(DOUBLE_ARRAY_TAG, len(items), payload=items)

    def tuple(self, *fields) -> Value:
        return self.alloc_block(0, fields)

    def some(self, item) -> Value:
        return self.alloc_block(0, [item])

    def list(self, items: Iterable) -> Value:
        """Build an OCaml list from *items* as a chain of cons cells."""

        result = Value.from_int(0)
        for item in reversed(list(items)):
            result = self.alloc_block(0, [item, result])
        return result

    def value_at(self, bits: int) -> Value:
        bits &= WORD_MASK
        if bits & 1:
            return Value(bits)
        block = self._blocks.get(bits)
        if block is None:
            raise KeyError(f"No block at address {bits:#x}")
        return Value(bits, block)

    def __len__(self) -> int:
        return len(self._blocks)

    def __iter__(self) -> Iterator[Block]:
        return iter(self._blocks.values())


__all__ = [
    "Block",
    "Heap",
    "Value",
]
