from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Counter:
    """Unbounded non-negative integer with saturating decrement."""

    value: int = 0

    def __post_init__(self) -> None:
        if self.value < 0:
            raise ValueError(f"Counter value must be non-negative, got {self.value}")

    def increment(self) -> Counter:
        return Counter(self.value + 1)

    def decrement(self) -> Counter:
        if self.value == 0:
            return self
        return Counter(self.value - 1)

    def is_zero(self) -> bool:
        return self.value == 0

    def __int__(self) -> int:
        return self.value

    def __index__(self) -> int:
        return self.value


ZERO = Counter()


__all__ = ["Counter", "ZERO"]
