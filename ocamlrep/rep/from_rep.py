"""Helpers for writing ``from_ocamlrep`` / ``from_ocamlrep_in`` decoders.

Every helper either returns the requested piece of the value or raises a
:class:`~ocamlrep.rep.errors.FromError` describing the first check that
failed. Sizes are always checked before tags, and both before any field is
read, so decoding never indexes past the end of a block.
"""

from __future__ import annotations

from .core import Block, Value
from .errors import (
    BlockTagOutOfRange,
    ErrorInField,
    ExpectedBlock,
    ExpectedBlockTag,
    ExpectedImmediate,
    ExpectedZeroTag,
    FromError,
    NullaryVariantTagOutOfRange,
    WrongBlockSize,
)


def expect_int(value: Value) -> int:
    n = value.as_int()
    if n is None:
        raise ExpectedImmediate(value.to_bits())
    return n


def expect_nullary_variant(value: Value, max: int) -> int:
    """Return the ordinal of a constant constructor, checking ``0 <= n <= max``."""

    if max < 0:
        raise ValueError(f"Nullary variant bound must be non-negative, got {max}")
    n = expect_int(value)
    if not 0 <= n <= max:
        raise NullaryVariantTagOutOfRange(max=max, actual=n)
    return n


def expect_block(value: Value) -> Block:
    block = value.as_block()
    if block is None:
        raise ExpectedBlock(value.as_int())
    return block


def expect_block_size(block: Block, size: int) -> None:
    if block.size != size:
        raise WrongBlockSize(expected=size, actual=block.size)


def expect_block_tag(block: Block, tag: int) -> None:
    if block.tag != tag:
        raise ExpectedBlockTag(expected=tag, actual=block.tag)


def expect_block_tag_in_range(block: Block, max: int) -> int:
    if block.tag > max:
        raise BlockTagOutOfRange(max=max, actual=block.tag)
    return block.tag


def expect_block_with_size_and_tag(value: Value, size: int, tag: int) -> Block:
    block = expect_block(value)
    expect_block_size(block, size)
    expect_block_tag(block, tag)
    return block


def expect_tuple(value: Value, size: int) -> Block:
    block = expect_block(value)
    expect_block_size(block, size)
    if block.tag != 0:
        raise ExpectedZeroTag(block.tag)
    return block


def _entry_point(target, name: str):
    method = getattr(target, name, None)
    if method is not None:
        return method
    from .decode import decoder_for

    return getattr(decoder_for(target), name)


def field(block: Block, index: int, target):
    """Decode field *index* of *block* as *target*.

    Failures are re-raised as :class:`ErrorInField` so the index of every
    enclosing field is kept on the way out.
    """

    decode = _entry_point(target, "from_ocamlrep")
    try:
        return decode(block[index])
    except FromError as exc:
        raise ErrorInField(index, exc) from exc


def field_in(block: Block, index: int, arena, target):
    """Like :func:`field`, passing *arena* through to ``from_ocamlrep_in``."""

    decode = _entry_point(target, "from_ocamlrep_in")
    try:
        return decode(block[index], arena)
    except FromError as exc:
        raise ErrorInField(index, exc) from exc


__all__ = [
    "expect_block",
    "expect_block_size",
    "expect_block_tag",
    "expect_block_tag_in_range",
    "expect_block_with_size_and_tag",
    "expect_int",
    "expect_nullary_variant",
    "expect_tuple",
    "field",
    "field_in",
]
