"""A small least-recently-used list over register indices."""

_MAX_SIZE = 255


class Lru:
    """Least-recently-used ordering of ``size`` items, kept as a circular
    doubly-linked list.

    ``head`` is the newest item; the item just before it is the oldest.
    """

    def __init__(self, size: int) -> None:
        if not 0 <= size <= _MAX_SIZE:
            raise ValueError(f"LRU size must be between 0 and {_MAX_SIZE}")
        count = max(size, 1)
        if size:
            self._next = [(i + 1) % size for i in range(size)]
            self._prev = [(i - 1) % size for i in range(size)]
        else:
            self._next = [0] * count
            self._prev = [0] * count
        self._head = 0

    def _remove(self, i: int) -> None:
        prev, nxt = self._prev[i], self._next[i]
        self._next[prev] = nxt
        self._prev[nxt] = prev

    def _insert_before(self, i: int, nxt: int) -> None:
        prev = self._prev[nxt]
        self._next[prev] = i
        self._prev[nxt] = i
        self._next[i] = nxt
        self._prev[i] = prev

    def poke(self, i: int) -> None:
        """Mark item ``i`` as the newest."""
        if self._head == i:
            return
        if self._prev[self._head] != i:
            # Not the oldest: unlink it and put it right before the head.
            self._remove(i)
            self._insert_before(i, self._head)
        self._head = i

    def pop(self) -> int:
        """Return the oldest item, marking it as the newest."""
        oldest = self._prev[self._head]
        self._head = oldest
        return oldest