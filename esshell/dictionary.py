"""Open-addressed hash table dictionaries keyed by strings."""

from __future__ import annotations

from typing import Any, Iterator, Optional

_INIT_SIZE = 2
_MASK64 = (1 << 64) - 1
_DEAD = object()


def _remain(size: int) -> int:
    return (size * 2) // 3


def strhash(first: str, second: Optional[str] = None) -> int:
    """Hash a string, or the catenation of two strings, to 64 bits."""
    data = first.encode("utf-8")
    if second is not None:
        data += second.encode("utf-8")
    n = 0
    for i, c in enumerate(data):
        step = i % 4
        if step == 0:
            n += (c << 17) ^ (c << 11) ^ (c << 5) ^ (c >> 1)
        elif step == 1:
            n ^= (c << 14) + (c << 7) + (c << 4) + c
        elif step == 2:
            n ^= (~c << 11) | ((c << 3) ^ (c >> 1))
        else:
            n -= (c << 16) | (c << 9) | (c << 2) | (c & 3)
        n &= _MASK64
    return n


class Dict:
    """A string-keyed table with linear probing and tombstones.

    Storing None under a name removes it.  Iteration follows table order.
    """

    def __init__(self) -> None:
        self._table: list = [None] * _INIT_SIZE
        self._remain = _remain(_INIT_SIZE)

    def _probe(self, key: str, hashed: int) -> Optional[int]:
        mask = len(self._table) - 1
        n = hashed
        while (slot := self._table[n & mask]) is not None:
            if slot is not _DEAD and slot[0] == key:
                return n & mask
            n += 1
        return None

    def _insert(self, name: str, value: Any) -> None:
        if self._remain <= 1:
            old = list(self.items())
            size = len(self._table) * 2
            self._table = [None] * size
            self._remain = _remain(size)
            for old_name, old_value in old:
                self._insert(old_name, old_value)
        mask = len(self._table) - 1
        n = strhash(name)
        while True:
            index = n & mask
            slot = self._table[index]
            if slot is _DEAD:
                break
            if slot is None:
                self._remain -= 1
                break
            n += 1
        self._table[index] = (name, value)

    def _remove(self, index: int) -> None:
        table = self._table
        mask = len(table) - 1
        table[index] = _DEAD
        n = index + 1
        while table[n & mask] is _DEAD:
            n += 1
        if table[n & mask] is not None:
            return
        n -= 1
        while table[n & mask] is _DEAD:
            table[n & mask] = None
            self._remain += 1
            n -= 1

    def get(self, name: str) -> Any:
        """Return the value stored under ``name``, or None."""
        index = self._probe(name, strhash(name))
        return None if index is None else self._table[index][1]

    def put(self, name: str, value: Any) -> None:
        """Store ``value`` under ``name``; a value of None removes the name."""
        index = self._probe(name, strhash(name))
        if value is not None:
            if index is None:
                self._insert(name, value)
            else:
                self._table[index] = (name, value)
        elif index is not None:
            self._remove(index)

    def get2(self, name1: str, name2: str) -> Any:
        """Return the value stored under the catenation of two names."""
        index = self._probe(name1 + name2, strhash(name1, name2))
        return None if index is None else self._table[index][1]

    def items(self) -> Iterator[tuple]:
        """Yield (name, value) pairs in table order."""
        for slot in self._table:
            if slot is not None and slot is not _DEAD:
                yield slot

    def __len__(self) -> int:
        return sum(1 for _ in self.items())

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self._probe(name, strhash(name)) is not None