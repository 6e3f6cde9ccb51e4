from __future__ import annotations

from typing import Iterable, Iterator, List

from .counter import Counter


class OutputBuffer:
    """Append-only record of the values emitted by Print, in execution order."""

    def __init__(self, values: Iterable[Counter] = ()) -> None:
        self._values: List[Counter] = list(values)

    def append(self, value: Counter) -> None:
        self._values.append(value)

    def values(self) -> List[int]:
        return [counter.value for counter in self._values]

    def copy(self) -> OutputBuffer:
        return OutputBuffer(self._values)

    def __iter__(self) -> Iterator[Counter]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __getitem__(self, index: int) -> Counter:
        return self._values[index]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, OutputBuffer):
            return NotImplemented
        return self._values == other._values

    def __repr__(self) -> str:
        return f"OutputBuffer({self.values()!r})"


__all__ = ["OutputBuffer"]
