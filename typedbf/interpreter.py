from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Tuple, Union

from .decoder import decode
from .output import OutputBuffer
from .program import Opcode, Program, parse
from .tape import Tape

logger = logging.getLogger(__name__)

ProgramLike = Union[Program, str]


class StepLimitExceeded(RuntimeError):
    """Raised when execution exceeds the step budget imposed by the caller."""


@dataclass
class ExecutionState:
    step: int
    pc: int
    command: Optional[str]
    pointer: int
    tape_start: int
    tape: List[int]
    output: List[int]
    code_length: int


def as_program(program: ProgramLike) -> Program:
    if isinstance(program, Program):
        return program
    return parse(program)


@dataclass
class Interpreter:
    debug: bool = False

    tape: Tape = field(init=False, repr=False)
    output: OutputBuffer = field(init=False, repr=False)
    pc: int = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.reset()

    def reset(self, initial_tape: Optional[Tape] = None) -> None:
        self.tape = initial_tape.copy() if initial_tape is not None else Tape()
        self.output = OutputBuffer()
        self.pc = 0

    def execute(
        self,
        program: ProgramLike,
        initial_tape: Optional[Tape] = None,
        max_steps: Optional[int] = None,
    ) -> Tuple[Tape, OutputBuffer]:
        program = as_program(program)
        self.reset(initial_tape)
        steps = 0
        code_length = len(program)
        while self.pc < code_length:
            if max_steps is not None and steps >= max_steps:
                raise StepLimitExceeded("Brainfuck program exceeded allowed step count")
            self.pc = self._execute_instruction(program, self.pc)
            steps += 1
        return self.tape, self.output

    def run(
        self,
        program: ProgramLike,
        initial_tape: Optional[Tape] = None,
        max_steps: Optional[int] = None,
        encoding: str = "utf-8",
    ) -> str:
        _, output = self.execute(program, initial_tape, max_steps=max_steps)
        return decode(output, encoding)

    def step(
        self,
        program: ProgramLike,
        initial_tape: Optional[Tape] = None,
        max_steps: Optional[int] = None,
        tape_window: int = 10,
    ) -> Iterator[ExecutionState]:
        program = as_program(program)
        self.reset(initial_tape)
        steps = 0
        code_length = len(program)

        while self.pc < code_length:
            if max_steps is not None and steps >= max_steps:
                raise StepLimitExceeded("Brainfuck program exceeded allowed step count")

            command = program[self.pc]
            self.pc = self._execute_instruction(program, self.pc)
            steps += 1
            yield self.snapshot(steps, command.value, code_length, tape_window)

        # Emit final snapshot indicating completion
        yield self.snapshot(steps, None, code_length, tape_window)

    def _execute_instruction(self, program: Program, pc: int) -> int:
        opcode = program[pc]
        tape = self.tape
        new_pc = pc + 1
        if opcode is Opcode.INCR_CELL:
            tape.increment_at(tape.pointer)
        elif opcode is Opcode.DECR_CELL:
            tape.decrement_at(tape.pointer)
        elif opcode is Opcode.MOVE_RIGHT:
            tape.move_right()
        elif opcode is Opcode.MOVE_LEFT:
            tape.move_left()
        elif opcode is Opcode.PRINT:
            self.output.append(tape.read_at(tape.pointer))
        elif opcode is Opcode.LOOP_START:
            # The condition is tested at the matching LOOP_END, before the
            # first pass through the body as well as before every later one.
            new_pc = program.jump_map[pc]
        elif opcode is Opcode.LOOP_END:
            if not tape.read_at(tape.pointer).is_zero():
                new_pc = program.jump_map[pc] + 1
        if self.debug:
            logger.debug(
                "pc=%d op=%s pointer=%d cell=%d next=%d",
                pc,
                opcode.value,
                tape.pointer,
                tape.window(tape.pointer, tape.pointer + 1)[0],
                new_pc,
            )
        return new_pc

    def snapshot(
        self,
        step: int,
        command: Optional[str],
        code_length: int,
        tape_window: int,
    ) -> ExecutionState:
        pointer = self.tape.pointer
        start = max(0, pointer - tape_window)
        end = pointer + tape_window + 1
        return ExecutionState(
            step=step,
            pc=self.pc,
            command=command,
            pointer=pointer,
            tape_start=start,
            tape=self.tape.window(start, end),
            output=self.output.values(),
            code_length=code_length,
        )


def execute(program: ProgramLike, initial_tape: Optional[Tape] = None) -> Tuple[Tape, OutputBuffer]:
    """Run ``program`` to completion on a copy of ``initial_tape``."""
    return Interpreter().execute(program, initial_tape)


__all__ = [
    "ExecutionState",
    "Interpreter",
    "ProgramLike",
    "StepLimitExceeded",
    "as_program",
    "execute",
]
