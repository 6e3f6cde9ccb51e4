from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Dict, Iterable, Iterator, List, Mapping, Tuple


class ParseError(Exception):
    def __init__(self, message: str, position: int) -> None:
        super().__init__(message)
        self.position = position


class Opcode(str, Enum):
    INCR_CELL = "+"
    DECR_CELL = "-"
    MOVE_RIGHT = ">"
    MOVE_LEFT = "<"
    PRINT = "."
    LOOP_START = "["
    LOOP_END = "]"


_SYMBOLS: Dict[str, Opcode] = {opcode.value: opcode for opcode in Opcode}


@dataclass(frozen=True)
class Program:
    """Bracket-matched opcode sequence with loop targets resolved up front.

    ``jump_map`` pairs every LOOP_START index with its LOOP_END index and
    the other way round.
    """

    opcodes: Tuple[Opcode, ...]
    jump_map: Mapping[int, int] = field(repr=False)

    @classmethod
    def from_opcodes(cls, opcodes: Iterable[Opcode]) -> Program:
        sequence = tuple(Opcode(op) for op in opcodes)
        jump_map = _build_jump_map(sequence, list(range(len(sequence))))
        return cls(sequence, MappingProxyType(jump_map))

    def __len__(self) -> int:
        return len(self.opcodes)

    def __getitem__(self, index: int) -> Opcode:
        return self.opcodes[index]

    def __iter__(self) -> Iterator[Opcode]:
        return iter(self.opcodes)

    def __str__(self) -> str:
        return "".join(opcode.value for opcode in self.opcodes)


def _build_jump_map(opcodes: Tuple[Opcode, ...], positions: List[int]) -> Dict[int, int]:
    jump_map: Dict[int, int] = {}
    stack: List[int] = []
    for index, opcode in enumerate(opcodes):
        if opcode is Opcode.LOOP_START:
            stack.append(index)
        elif opcode is Opcode.LOOP_END:
            if not stack:
                raise ParseError(
                    "Unmatched ']' at position {}".format(positions[index]),
                    positions[index],
                )
            start = stack.pop()
            jump_map[start] = index
            jump_map[index] = start
    if stack:
        start = stack.pop()
        raise ParseError("Unmatched '[' at position {}".format(positions[start]), positions[start])
    return jump_map


def parse(source: str) -> Program:
    """Translate Brainfuck source into a Program.

    Characters outside ``><+-.[]`` are comments. Error positions refer to
    offsets in ``source``.
    """
    opcodes: List[Opcode] = []
    positions: List[int] = []
    for offset, char in enumerate(source):
        opcode = _SYMBOLS.get(char)
        if opcode is None:
            continue
        opcodes.append(opcode)
        positions.append(offset)
    sequence = tuple(opcodes)
    jump_map = _build_jump_map(sequence, positions)
    return Program(sequence, MappingProxyType(jump_map))


__all__ = ["Opcode", "ParseError", "Program", "parse"]
