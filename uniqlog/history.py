"""Fixed-capacity ring of the most recently read lines."""


class HistoryRing:
    """Circular buffer of raw lines with an advancing write cursor.

    ``recent(0)`` is the last line pushed, ``recent(1)`` the one before it,
    and so on. Once ``capacity`` lines have been pushed, every push
    overwrites the oldest slot; callers must flush that slot first if it
    still holds an unaccounted line.
    """

    def __init__(self, capacity: int = 50):
        if capacity < 1:
            raise ValueError(f"capacity must be at least 1, got {capacity}")
        self.capacity = capacity
        self._lines = [""] * capacity
        self._cursor = 0
        self._pushed = 0

    def __len__(self) -> int:
        return min(self._pushed, self.capacity)

    def push(self, line: str):
        self._lines[self._cursor] = line
        self._cursor = (self._cursor + 1) % self.capacity
        self._pushed += 1

    def recent(self, offset: int) -> str:
        """Return the line pushed ``offset`` pushes ago (0 = most recent)."""
        if not 0 <= offset < len(self):
            raise IndexError(f"history offset {offset} out of range (size {len(self)})")
        return self._lines[(self._cursor - 1 - offset) % self.capacity]

    def tail(self, count: int) -> list[str]:
        """Return the ``count`` most recent lines in the order they were pushed."""
        return [self.recent(offset) for offset in range(count - 1, -1, -1)]

    def next_to_overwrite(self) -> str:
        """Return the line in the slot the next push will overwrite."""
        return self._lines[self._cursor]
