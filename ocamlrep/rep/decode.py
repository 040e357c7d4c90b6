"""Decode protocol, built-in decoders and derivation for user types."""

from __future__ import annotations

from dataclasses import dataclass
import dataclasses
import enum
import types
from typing import Any, Callable, Generic, Optional, Protocol, TypeVar, Union
from typing import get_args, get_origin, get_type_hints, runtime_checkable

from ..constants import DOUBLE_ARRAY_TAG, DOUBLE_TAG, STRING_TAG
from .core import Block, Value
from .errors import (
    BadUtf8,
    CharOutOfRange,
    ErrorInField,
    ExpectedBlock,
    ExpectedBool,
    ExpectedImmediate,
    ExpectedUnit,
    FromError,
)
from .from_rep import (
    expect_block,
    expect_block_size,
    expect_block_tag,
    expect_block_tag_in_range,
    expect_int,
    expect_nullary_variant,
    expect_tuple,
    field,
    field_in,
)

T = TypeVar("T")
E = TypeVar("E")


@runtime_checkable
class FromOcamlRep(Protocol):
    """Anything that decodes a value with ``from_ocamlrep(value)``.

    Types made by :func:`ocaml_record`, :func:`ocaml_enum` and
    :func:`ocaml_variant` satisfy it with a classmethod, so the class object
    itself is the decoder. :class:`Decoder` instances satisfy it directly.
    """

    def from_ocamlrep(self, value: Value) -> Any: ...


@runtime_checkable
class FromOcamlRepIn(Protocol):
    """Anything that decodes a value with ``from_ocamlrep_in(value, arena)``.

    As with :class:`FromOcamlRep`, derived classes provide it as a classmethod.
    """

    def from_ocamlrep_in(self, value: Value, arena) -> Any: ...


class Decoder:
    """Adapts a ``decode(value, arena)`` function to both decode protocols.

    *arena* is ``None`` when decoding through :meth:`from_ocamlrep`.
    """

    def __init__(self, name: str, decode: Callable[[Value, Any], Any]):
        self.name = name
        self._decode = decode

    def from_ocamlrep(self, value: Value) -> Any:
        return self._decode(value, None)

    def from_ocamlrep_in(self, value: Value, arena) -> Any:
        if arena is None:
            raise TypeError("from_ocamlrep_in requires an arena")
        return self._decode(value, arena)

    def __repr__(self) -> str:  # pragma: no cover - representation helper
        return f"Decoder({self.name})"


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True)
class Err(Generic[E]):
    error: E


def _place(arena, obj):
    if arena is None:
        return obj
    return arena.alloc(obj)


def _field(block: Block, index: int, decoder, arena):
    if arena is None:
        return field(block, index, decoder)
    return field_in(block, index, arena, decoder)


def _fields(block: Block, decoders, arena) -> list:
    return [_field(block, i, d, arena) for i, d in enumerate(decoders)]


def _decode_int(value, arena):
    return expect_int(value)


def _decode_bool(value, arena):
    n = expect_int(value)
    if n not in (0, 1):
        raise ExpectedBool(n)
    return bool(n)


def _decode_unit(value, arena):
    n = expect_int(value)
    if n != 0:
        raise ExpectedUnit(n)
    return None


def _decode_char(value, arena):
    n = expect_int(value)
    if not 0 <= n <= 255:
        raise CharOutOfRange(n)
    return chr(n)


def _decode_float(value, arena):
    block = expect_block(value)
    expect_block_tag(block, DOUBLE_TAG)
    return block.as_float()


def _decode_bytes(value, arena):
    block = expect_block(value)
    expect_block_tag(block, STRING_TAG)
    return _place(arena, block.as_bytes())


def _decode_string(value, arena):
    block = expect_block(value)
    expect_block_tag(block, STRING_TAG)
    try:
        text = block.as_bytes().decode("utf-8")
    except UnicodeDecodeError as exc:
        raise BadUtf8(str(exc)) from exc
    if arena is None:
        return text
    return arena.alloc_str(text)


INT = Decoder("int", _decode_int)
BOOL = Decoder("bool", _decode_bool)
UNIT = Decoder("unit", _decode_unit)
CHAR = Decoder("char", _decode_char)
FLOAT = Decoder("float", _decode_float)
STRING = Decoder("string", _decode_string)
BYTES = Decoder("bytes", _decode_bytes)


def list_of(item) -> Decoder:
    """Decode an OCaml list: ``0`` for ``[]``, a tuple of 2 for each cons cell.

    Cells are walked in a loop. A failure at element *k* is reported as *k*
    nested ``ErrorInField(1, ...)`` around the failing cell's error.
    """

    item = decoder_for(item)

    def decode(value, arena):
        items = []
        depth = 0
        current = value
        try:
            while current.is_block():
                cell = expect_tuple(current, 2)
                items.append(_field(cell, 0, item, arena))
                current = cell[1]
                depth += 1
            expect_nullary_variant(current, 0)
        except FromError as exc:
            err = exc
            for _ in range(depth):
                err = ErrorInField(1, err)
            if err is exc:
                raise
            raise err from exc
        if arena is None:
            return items
        return arena.alloc_slice(items)

    return Decoder(f"{item.name} list", decode)


def option_of(item) -> Decoder:
    item = decoder_for(item)

    def decode(value, arena):
        if value.is_immediate():
            expect_nullary_variant(value, 0)
            return None
        block = expect_tuple(value, 1)
        return _field(block, 0, item, arena)

    return Decoder(f"{item.name} option", decode)


def array_of(item) -> Decoder:
    item = decoder_for(item)

    def decode(value, arena):
        block = expect_block(value)
        if item is FLOAT and block.tag == DOUBLE_ARRAY_TAG:
            items = list(block.as_float_array())
        else:
            block = expect_tuple(value, block.size)
            items = [_field(block, i, item, arena) for i in range(block.size)]
        if arena is None:
            return items
        return arena.alloc_slice(items)

    return Decoder(f"{item.name} array", decode)


def tuple_of(*items) -> Decoder:
    decoders = [decoder_for(i) for i in items]
    if len(decoders) < 2:
        raise ValueError("Tuples have at least two components")

    def decode(value, arena):
        block = expect_tuple(value, len(decoders))
        return _place(arena, tuple(_fields(block, decoders, arena)))

    return Decoder(" * ".join(d.name for d in decoders), decode)


def ref_of(item) -> Decoder:
    item = decoder_for(item)

    def decode(value, arena):
        block = expect_tuple(value, 1)
        return _field(block, 0, item, arena)

    return Decoder(f"{item.name} ref", decode)


def result_of(ok, err) -> Decoder:
    ok = decoder_for(ok)
    err = decoder_for(err)

    def decode(value, arena):
        block = expect_block(value)
        expect_block_size(block, 1)
        tag = expect_block_tag_in_range(block, 1)
        if tag == 0:
            return _place(arena, Ok(_field(block, 0, ok, arena)))
        return _place(arena, Err(_field(block, 0, err, arena)))

    return Decoder(f"({ok.name}, {err.name}) result", decode)


_BUILTIN_DECODERS = {
    int: INT,
    bool: BOOL,
    float: FLOAT,
    str: STRING,
    bytes: BYTES,
    type(None): UNIT,
}


def _wrap_type(target) -> Decoder:
    def decode(value, arena):
        if arena is None:
            return target.from_ocamlrep(value)
        decode_in = getattr(target, "from_ocamlrep_in", None)
        if decode_in is None:
            return arena.alloc(target.from_ocamlrep(value))
        return decode_in(value, arena)

    return Decoder(getattr(target, "__name__", repr(target)), decode)


def decoder_for(target) -> Decoder:
    """Resolve *target* (a decoder, a decodable type or an annotation)."""

    if isinstance(target, Decoder):
        return target
    if target is None:
        return UNIT
    if hasattr(target, "from_ocamlrep"):
        return _wrap_type(target)
    if isinstance(target, type) and target in _BUILTIN_DECODERS:
        return _BUILTIN_DECODERS[target]

    origin = get_origin(target)
    args = get_args(target)
    if origin is list and len(args) == 1:
        return list_of(args[0])
    if origin is tuple and len(args) >= 2 and Ellipsis not in args:
        return tuple_of(*args)
    if origin is Union or origin is types.UnionType:
        others = [a for a in args if a is not type(None)]
        if len(others) == 1 and len(args) == 2:
            return option_of(others[0])
    raise TypeError(f"Don't know how to decode values of type {target!r}")


def _attach(cls, decode) -> None:
    def from_ocamlrep(klass, value):
        return decode(value, None)

    def from_ocamlrep_in(klass, value, arena):
        if arena is None:
            raise TypeError("from_ocamlrep_in requires an arena")
        return decode(value, arena)

    cls.from_ocamlrep = classmethod(from_ocamlrep)
    cls.from_ocamlrep_in = classmethod(from_ocamlrep_in)


class _FieldDecoders:
    """Resolves a dataclass's field decoders on first use.

    Resolution is deferred so records may refer to themselves or to types
    declared after them.
    """

    def __init__(self, cls):
        self.cls = cls
        self.names = [f.name for f in dataclasses.fields(cls) if f.init]
        self._decoders: Optional[list[Decoder]] = None

    def __len__(self) -> int:
        return len(self.names)

    def get(self) -> list[Decoder]:
        if self._decoders is None:
            hints = get_type_hints(self.cls)
            self._decoders = [decoder_for(hints[name]) for name in self.names]
        return self._decoders


def ocaml_record(cls):
    """Class decorator deriving decoders for a dataclass mirroring an OCaml record."""

    if not dataclasses.is_dataclass(cls):
        raise TypeError(f"{cls.__name__} must be a dataclass")
    decoders = _FieldDecoders(cls)

    def decode(value, arena):
        block = expect_tuple(value, len(decoders))
        return _place(arena, cls(*_fields(block, decoders.get(), arena)))

    _attach(cls, decode)
    return cls


def ocaml_enum(cls):
    """Class decorator for an :class:`enum.Enum` of constant constructors."""

    if not issubclass(cls, enum.Enum):
        raise TypeError(f"{cls.__name__} must be an Enum")
    members = list(cls)
    if not members:
        raise ValueError(f"{cls.__name__} has no members")

    def decode(value, arena):
        return members[expect_nullary_variant(value, len(members) - 1)]

    _attach(cls, decode)
    return cls


def ocaml_variant(*constructors, base=None) -> Decoder:
    """Build a decoder for a sum type from its constructors, in declaration order.

    Constructors are dataclasses. Those without fields are constant
    constructors, represented by their ordinal among constant constructors.
    The others are blocks tagged with their ordinal among non-constant
    constructors. When *base* is given it gains ``from_ocamlrep`` so that
    fields annotated with it decode through this variant.
    """

    if not constructors:
        raise ValueError("A variant needs at least one constructor")
    constant = []
    non_constant = []
    for ctor in constructors:
        if not dataclasses.is_dataclass(ctor):
            raise TypeError(f"{ctor.__name__} must be a dataclass")
        decoders = _FieldDecoders(ctor)
        if len(decoders):
            non_constant.append((ctor, decoders))
        else:
            constant.append(ctor)

    def decode(value, arena):
        if value.is_immediate():
            if not constant:
                raise ExpectedBlock(value.as_int())
            n = expect_nullary_variant(value, len(constant) - 1)
            return _place(arena, constant[n]())
        if not non_constant:
            raise ExpectedImmediate(value.to_bits())
        block = expect_block(value)
        tag = expect_block_tag_in_range(block, len(non_constant) - 1)
        ctor, decoders = non_constant[tag]
        expect_block_size(block, len(decoders))
        return _place(arena, ctor(*_fields(block, decoders.get(), arena)))

    name = base.__name__ if base is not None else " | ".join(c.__name__ for c in constructors)
    if base is not None:
        _attach(base, decode)
    return Decoder(name, decode)


def from_ocamlrep(value: Value, target):
    """Decode *value* as *target*."""

    return decoder_for(target).from_ocamlrep(value)


def from_ocamlrep_in(value: Value, arena, target):
    """Decode *value* as *target*, placing the result into *arena*."""

    return decoder_for(target).from_ocamlrep_in(value, arena)


__all__ = [
    "BOOL",
    "BYTES",
    "CHAR",
    "Decoder",
    "Err",
    "FLOAT",
    "FromOcamlRep",
    "FromOcamlRepIn",
    "INT",
    "Ok",
    "STRING",
    "UNIT",
    "array_of",
    "decoder_for",
    "from_ocamlrep",
    "from_ocamlrep_in",
    "list_of",
    "ocaml_enum",
    "ocaml_record",
    "ocaml_variant",
    "option_of",
    "ref_of",
    "result_of",
    "tuple_of",
]
