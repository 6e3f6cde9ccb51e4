from .counter import ZERO, Counter
from .decoder import EncodingError, decode
from .interpreter import ExecutionState, Interpreter, StepLimitExceeded, execute
from .output import OutputBuffer
from .program import Opcode, ParseError, Program, parse
from .tape import Tape
from .visualizer import VisualizerSession

__all__ = [
    "Counter",
    "ZERO",
    "EncodingError",
    "decode",
    "ExecutionState",
    "Interpreter",
    "StepLimitExceeded",
    "execute",
    "OutputBuffer",
    "Opcode",
    "ParseError",
    "Program",
    "parse",
    "Tape",
    "VisualizerSession",
]
