"""Structured decode errors."""

from __future__ import annotations

from dataclasses import dataclass


class FromError(ValueError):
    """Base class for every failure to decode a value."""


@dataclass(frozen=True)
class ExpectedImmediate(FromError):
    bits: int

    def __str__(self) -> str:
        return f"expected an immediate, got a block at {self.bits:#x}"


@dataclass(frozen=True)
class NullaryVariantTagOutOfRange(FromError):
    max: int
    actual: int

    def __str__(self) -> str:
        return f"expected a nullary variant tag in 0..={self.max}, got {self.actual}"


@dataclass(frozen=True)
class BlockTagOutOfRange(FromError):
    max: int
    actual: int

    def __str__(self) -> str:
        return f"expected a block tag in 0..={self.max}, got {self.actual}"


@dataclass(frozen=True)
class ExpectedBlock(FromError):
    value: int

    def __str__(self) -> str:
        return f"expected a block, got immediate {self.value}"


@dataclass(frozen=True)
class WrongBlockSize(FromError):
    expected: int
    actual: int

    def __str__(self) -> str:
        return f"expected a block of size {self.expected}, got size {self.actual}"


@dataclass(frozen=True)
class ExpectedBlockTag(FromError):
    expected: int
    actual: int

    def __str__(self) -> str:
        return f"expected block tag {self.expected}, got {self.actual}"


@dataclass(frozen=True)
class ExpectedZeroTag(FromError):
    actual: int

    def __str__(self) -> str:
        return f"expected a tuple (tag 0), got tag {self.actual}"


@dataclass(frozen=True)
class ExpectedUnit(FromError):
    actual: int

    def __str__(self) -> str:
        return f"expected unit (0), got {self.actual}"


@dataclass(frozen=True)
class ExpectedBool(FromError):
    actual: int

    def __str__(self) -> str:
        return f"expected a bool (0 or 1), got {self.actual}"


@dataclass(frozen=True)
class CharOutOfRange(FromError):
    actual: int

    def __str__(self) -> str:
        return f"expected a char in 0..=255, got {self.actual}"


@dataclass(frozen=True)
class BadUtf8(FromError):
    reason: str

    def __str__(self) -> str:
        return f"string is not valid UTF-8: {self.reason}"


@dataclass(frozen=True)
class ErrorInField(FromError):
    index: int
    cause: FromError

    def __str__(self) -> str:
        return f"in field {self.index}: {self.cause}"

    @property
    def path(self) -> tuple[int, ...]:
        """Field indices from the outermost block down to the failing leaf."""

        indices = []
        err: FromError = self
        while isinstance(err, ErrorInField):
            indices.append(err.index)
            err = err.cause
        return tuple(indices)

    @property
    def root_cause(self) -> FromError:
        err: FromError = self
        while isinstance(err, ErrorInField):
            err = err.cause
        return err


__all__ = [
    "BadUtf8",
    "BlockTagOutOfRange",
    "CharOutOfRange",
    "ErrorInField",
    "ExpectedBlock",
    "ExpectedBlockTag",
    "ExpectedBool",
    "ExpectedImmediate",
    "ExpectedUnit",
    "ExpectedZeroTag",
    "FromError",
    "NullaryVariantTagOutOfRange",
    "WrongBlockSize",
]
