from __future__ import annotations

import argparse
import shlex
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence

from .decoder import EncodingError, decode, try_decode
from .interpreter import ExecutionState, Interpreter, ProgramLike, StepLimitExceeded, as_program
from .program import ParseError, Program
from .tape import Tape, parse_cells


@dataclass
class VisualizerSession:
    program: ProgramLike
    initial_tape: Optional[Tape] = None
    tape_window: int = 10
    max_steps: Optional[int] = None
    history_limit: int = 200

    breakpoints: set[int] = field(init=False, default_factory=set)

    def __post_init__(self) -> None:
        self.program = as_program(self.program)
        self.history: List[ExecutionState] = []
        self.hit_breakpoint: Optional[int] = None
        self._init_interpreter()

    @property
    def code(self) -> str:
        return str(self.program)

    def _init_interpreter(self) -> None:
        self.interpreter = Interpreter()
        self.interpreter.reset(self.initial_tape)
        self.step_iter = self.interpreter.step(
            self.program,
            initial_tape=self.initial_tape,
            max_steps=self.max_steps,
            tape_window=self.tape_window,
        )
        self.finished = False
        self.last_state: ExecutionState = self.interpreter.snapshot(
            0, None, len(self.program), self.tape_window
        )
        self._record_state(self.last_state)

    def restart(self) -> None:
        self.history.clear()
        self.hit_breakpoint = None
        self._init_interpreter()

    def _record_state(self, state: ExecutionState) -> None:
        self.history.append(state)
        if len(self.history) > self.history_limit:
            self.history.pop(0)
        self.last_state = state

    def step_forward(self, count: int = 1) -> Sequence[ExecutionState]:
        states: List[ExecutionState] = []
        if count <= 0:
            return states
        self.hit_breakpoint = None
        for _ in range(count):
            if self.finished:
                break
            try:
                state = next(self.step_iter)
            except StopIteration:
                self.finished = True
                break
            except StepLimitExceeded:
                self.finished = True
                raise
            self._record_state(state)
            states.append(state)
            if state.command is None and state.pc >= len(self.program):
                self.finished = True
                break
            if state.pc in self.breakpoints:
                self.hit_breakpoint = state.pc
                break
        return states

    def run_until_break(self, limit: Optional[int] = None) -> Sequence[ExecutionState]:
        states: List[ExecutionState] = []
        executed = 0
        while limit is None or executed < limit:
            step_states = self.step_forward(1)
            if not step_states:
                break
            states.extend(step_states)
            executed += 1
            if self.hit_breakpoint is not None:
                break
        return states

    def current_state(self) -> ExecutionState:
        return self.last_state

    def add_breakpoint(self, pc: int) -> None:
        self.breakpoints.add(pc)

    def remove_breakpoint(self, pc: int) -> bool:
        if pc in self.breakpoints:
            self.breakpoints.remove(pc)
            return True
        return False

    def clear_breakpoints(self) -> None:
        self.breakpoints.clear()

    def list_breakpoints(self) -> List[int]:
        return sorted(self.breakpoints)

    def is_finished(self) -> bool:
        return self.finished


def format_state(state: ExecutionState, code: str) -> str:
    lines: List[str] = []
    cmd_display = state.command if state.command is not None else "(init)"
    lines.append(
        f"step={state.step} pc={state.pc}/{state.code_length} command={cmd_display!r} pointer={state.pointer}"
    )
    if state.output:
        text = try_decode(state.output)
        if text is not None:
            lines.append(f"output={text!r}")
        else:
            lines.append(f"output={state.output!r} (not decodable)")
    tape_parts: List[str] = []
    for idx, value in enumerate(state.tape):
        absolute = state.tape_start + idx
        cell_repr = f"{absolute}:{value:03}"
        if absolute == state.pointer:
            tape_parts.append(f"[{cell_repr}]")
        else:
            tape_parts.append(f" {cell_repr} ")
    lines.append("tape=" + " ".join(tape_parts))
    code_window = _format_code_window(code, state.pc)
    lines.append(f"code={code_window}")
    return "\n".join(lines)


def _format_code_window(code: str, pc: int, window: int = 16) -> str:
    if not code:
        return "(empty)"
    start = max(0, pc - window)
    end = min(len(code), pc + window + 1)
    pieces: List[str] = []
    for index in range(start, end):
        ch = code[index]
        if index == pc:
            pieces.append(f"[{ch}]")
        else:
            pieces.append(ch)
    if pc >= len(code):
        pieces.append("[END]")
    return "".join(pieces)


def run_repl(session: VisualizerSession) -> None:
    print("typedbf Visualizer (type 'help' for commands)")
    _print_state(session.current_state(), session)
    while True:
        try:
            line = input("(viz) ").strip()
        except EOFError:
            print()
            break
        if not line:
            continue
        parts = shlex.split(line)
        command = parts[0].lower()
        args = parts[1:]
        try:
            if command in {"n", "next"}:
                count = max(1, int(args[0])) if args else 1
                states = session.step_forward(count)
                if states:
                    _print_state(states[-1], session)
                elif session.is_finished():
                    print("プログラムは終了しています。")
            elif command in {"r", "run"}:
                limit = int(args[0]) if args else None
                try:
                    states = session.run_until_break(limit)
                except StepLimitExceeded:
                    print("ステップ上限に達しました。", file=sys.stderr)
                    continue
                if states:
                    _print_state(states[-1], session)
                    if session.hit_breakpoint is not None:
                        print(f"ブレークポイント {session.hit_breakpoint} に到達しました。")
                        session.hit_breakpoint = None
                elif session.is_finished():
                    print("プログラムは終了しました。")
            elif command == "state":
                _print_state(session.current_state(), session)
            elif command == "tape":
                tape = session.interpreter.tape
                print(f"pointer={tape.pointer} len={len(tape)} cells={tape.values()}")
            elif command == "output":
                values = session.interpreter.output.values()
                try:
                    print(repr(decode(values)))
                except EncodingError as exc:
                    print(f"出力をデコードできません: {exc}")
                    print(values)
            elif command == "history":
                count = int(args[0]) if args else 10
                for state in session.history[-count:]:
                    _print_state(state, session)
            elif command == "break":
                if not args:
                    print("ブレークポイントを指定してください。")
                    continue
                pc = int(args[0])
                session.add_breakpoint(pc)
                print(f"ブレークポイント {pc} を設定しました。")
            elif command == "breaks":
                points = session.list_breakpoints()
                if not points:
                    print("ブレークポイントはありません。")
                else:
                    print("ブレークポイント:", ", ".join(map(str, points)))
            elif command == "clear":
                if not args:
                    session.clear_breakpoints()
                    print("ブレークポイントを全て削除しました。")
                else:
                    pc = int(args[0])
                    if session.remove_breakpoint(pc):
                        print(f"ブレークポイント {pc} を削除しました。")
                    else:
                        print(f"ブレークポイント {pc} は存在しません。")
            elif command == "restart":
                session.restart()
                print("セッションを再開しました。")
                _print_state(session.current_state(), session)
            elif command in {"quit", "exit"}:
                break
            elif command == "help":
                _print_help()
            else:
                print("不明なコマンドです。'help' を参照してください。")
        except ValueError:
            print("数値が正しくありません。", file=sys.stderr)


def _print_state(state: ExecutionState, session: VisualizerSession) -> None:
    print("-" * 40)
    print(format_state(state, session.code))


def _print_help() -> None:
    print(
        "利用可能なコマンド:\n"
        "  next [N]    : N ステップ進める (省略時 1)\n"
        "  run [N]     : ブレークポイントまたは N ステップ到達まで実行\n"
        "  state       : 現在の状態を表示\n"
        "  tape        : テープ全体とポインタを表示\n"
        "  output      : 出力をテキストとして表示\n"
        "  history [N] : 直近 N ステップの履歴を表示\n"
        "  break PC    : 指定 PC にブレークポイントを設定\n"
        "  breaks      : ブレークポイント一覧\n"
        "  clear [PC]  : ブレークポイントを削除 (PC 省略で全削除)\n"
        "  restart     : セッションをリセット\n"
        "  quit/exit   : 終了\n"
    )


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="typedbf visualizer")
    parser.add_argument("source", help="Path to Brainfuck source file")
    parser.add_argument(
        "--tape",
        default="",
        help="初期テープの値 (カンマ区切り, 例: 3,0,1)",
    )
    parser.add_argument(
        "--max-steps",
        type=int,
        default=5_000_000,
        help="ステップ上限 (デフォルト: 5,000,000)",
    )
    parser.add_argument(
        "--tape-window",
        type=int,
        default=10,
        help="テープ表示の幅",
    )
    parser.add_argument(
        "--history-limit",
        type=int,
        default=200,
        help="履歴に保持するステップ数",
    )
    args = parser.parse_args(argv)

    try:
        source_text = Path(args.source).read_text(encoding="utf-8")
    except OSError as exc:
        print(f"ファイルを開けません: {exc}", file=sys.stderr)
        return 1

    try:
        cells = parse_cells(args.tape)
    except ValueError as exc:
        print(f"テープの指定が正しくありません: {exc}", file=sys.stderr)
        return 1

    try:
        program: Program = as_program(source_text)
    except ParseError as exc:
        print(f"構文解析に失敗しました: {exc}", file=sys.stderr)
        return 1

    session = VisualizerSession(
        program,
        initial_tape=Tape(cells),
        tape_window=args.tape_window,
        max_steps=args.max_steps,
        history_limit=args.history_limit,
    )

    try:
        run_repl(session)
    except StepLimitExceeded:
        print("ステップ上限に達しました。", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
