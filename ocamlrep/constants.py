"""Shared constant values for the OCaml value representation."""

WORD_SIZE = 8
WORD_BITS = WORD_SIZE * 8
WORD_MASK = (1 << WORD_BITS) - 1

# OCaml ints are 63 bits wide; the low bit of the word marks an immediate.
MIN_INT = -(1 << (WORD_BITS - 2))
MAX_INT = (1 << (WORD_BITS - 2)) - 1

# Address of the first block handed out by a Heap. Must stay word aligned.
HEAP_BASE = 0x10000

MAX_TAG = 255
NO_SCAN_TAG = 251
STRING_TAG = 252
DOUBLE_TAG = 253
DOUBLE_ARRAY_TAG = 254

RAW_TAGS = {
    STRING_TAG: "string",
    DOUBLE_TAG: "double",
    DOUBLE_ARRAY_TAG: "double_array",
}

DOCUMENT_VERSION = "0.1"

TAG_COLORS = {
    "immediate": "#B0BEC5",
    "block": "#90CAF9",
    "string": "#C5E1A5",
    "double": "#FFE082",
    "double_array": "#FFAB91",
}

__all__ = [
    "WORD_SIZE",
    "WORD_BITS",
    "WORD_MASK",
    "MIN_INT",
    "MAX_INT",
    "HEAP_BASE",
    "MAX_TAG",
    "NO_SCAN_TAG",
    "STRING_TAG",
    "DOUBLE_TAG",
    "DOUBLE_ARRAY_TAG",
    "RAW_TAGS",
    "DOCUMENT_VERSION",
    "TAG_COLORS",
]
