from __future__ import annotations

from typing import Iterable, List, Optional, Union

from .counter import ZERO, Counter

CellValue = Union[int, Counter]


def _as_counter(value: CellValue) -> Counter:
    if isinstance(value, Counter):
        return value
    return Counter(int(value))


def parse_cells(data: str) -> List[int]:
    """Parse ``"3,0,1"`` style initial tape contents."""
    if not data.strip():
        return []
    cells = [int(part) for part in data.split(",")]
    if any(value < 0 for value in cells):
        raise ValueError("tape cells must be non-negative")
    return cells


class Tape:
    """Right-growing memory of Counter cells with a saturating pointer.

    Reading or writing past the end extends the tape with zero cells up to
    and including the accessed index. The pointer never goes below zero, so
    the tape never grows to the left.
    """

    def __init__(self, cells: Iterable[CellValue] = (), pointer: CellValue = 0) -> None:
        self._cells: List[Counter] = [_as_counter(value) for value in cells]
        self._pointer: Counter = _as_counter(pointer)

    @property
    def pointer(self) -> int:
        return self._pointer.value

    def __len__(self) -> int:
        return len(self._cells)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Tape):
            return NotImplemented
        return self._pointer == other._pointer and self._cells == other._cells

    def __repr__(self) -> str:
        return f"Tape(cells={self.values()!r}, pointer={self.pointer})"

    def _grow_to(self, index: int) -> None:
        if index < 0:
            raise IndexError(f"Tape index must be non-negative, got {index}")
        missing = index + 1 - len(self._cells)
        if missing > 0:
            self._cells.extend([ZERO] * missing)

    def read_at(self, index: int) -> Counter:
        self._grow_to(index)
        return self._cells[index]

    def write_at(self, index: int, value: CellValue) -> None:
        self._grow_to(index)
        self._cells[index] = _as_counter(value)

    def increment_at(self, index: int) -> None:
        self.write_at(index, self.read_at(index).increment())

    def decrement_at(self, index: int) -> None:
        self.write_at(index, self.read_at(index).decrement())

    def move_right(self) -> None:
        self._pointer = self._pointer.increment()

    def move_left(self) -> None:
        self._pointer = self._pointer.decrement()

    def current(self) -> Counter:
        return self.read_at(self.pointer)

    def values(self) -> List[int]:
        return [cell.value for cell in self._cells]

    def window(self, start: int, end: Optional[int] = None) -> List[int]:
        # Trace views must not grow the tape, cells past the end read as zero.
        if end is None:
            end = len(self._cells)
        start = max(0, start)
        view = [cell.value for cell in self._cells[start:end]]
        view.extend([0] * max(0, end - max(start, len(self._cells))))
        return view

    def copy(self) -> Tape:
        return Tape(self._cells, self._pointer)


__all__ = ["CellValue", "Tape", "parse_cells"]
