"""Arena that holds values decoded through ``from_ocamlrep_in``."""

from __future__ import annotations

import sys
from typing import Any, Iterable, Iterator


class Arena:
    """Append-only region owning decoded values until :meth:`reset`.

    Decoders that take an arena place the structures they build into it
    instead of handing ownership straight to the caller. An arena is not
    synchronized; give each concurrent decode its own.
    """

    def __init__(self):
        self._items: list[Any] = []
        self._bytes = 0

    def alloc(self, obj: Any) -> Any:
        self._items.append(obj)
        self._bytes += sys.getsizeof(obj)
        return obj

    def alloc_str(self, text: str) -> str:
        return self.alloc(str(text))

    def alloc_slice(self, items: Iterable[Any]) -> tuple:
        return self.alloc(tuple(items))

    @property
    def allocated_bytes(self) -> int:
        return self._bytes

    def reset(self) -> None:
        self._items.clear()
        self._bytes = 0

    def __contains__(self, obj: Any) -> bool:
        return any(item is obj for item in self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Any]:
        return iter(self._items)


__all__ = ["Arena"]
