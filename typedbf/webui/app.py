from __future__ import annotations

from typing import List, Optional

from fastapi import FastAPI, HTTPException, Response, status
from pydantic import BaseModel, Field, validator

from typedbf.decoder import EncodingError, decode
from typedbf.interpreter import ExecutionState, Interpreter, StepLimitExceeded
from typedbf.program import ParseError, Program, parse
from typedbf.tape import Tape

from .session import SessionRecord, SessionStore

DEFAULT_EXECUTE_MAX_STEPS = 1_000_000


def _state_to_dict(state: ExecutionState) -> dict:
    return {
        "step": state.step,
        "pc": state.pc,
        "command": state.command,
        "pointer": state.pointer,
        "tape_start": state.tape_start,
        "tape": list(state.tape),
        "output": list(state.output),
        "code_length": state.code_length,
    }


def _calculate_total_steps(program: Program, initial_tape: Tape, cap: int = 10000) -> tuple[int, bool]:
    interpreter = Interpreter()
    total = 0
    try:
        for state in interpreter.step(program, initial_tape=initial_tape, max_steps=cap):
            if state.step > total:
                total = state.step
    except StepLimitExceeded:
        return cap, True
    return total, False


def _parse_or_422(code: str) -> Program:
    try:
        return parse(code)
    except ParseError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(exc),
        ) from exc


def _check_cells(value: List[int]) -> List[int]:
    if any(cell < 0 for cell in value):
        raise ValueError("tape cells must be non-negative")
    return value


class ExecuteRequest(BaseModel):
    code: str = ""
    tape: List[int] = Field(default_factory=list)
    pointer: int = Field(default=0, ge=0)
    max_steps: int = Field(default=DEFAULT_EXECUTE_MAX_STEPS, ge=1)
    encoding: str = "utf-8"

    @validator("tape")
    def validate_tape(cls, value: List[int]) -> List[int]:
        return _check_cells(value)

    @validator("encoding")
    def validate_encoding(cls, value: str) -> str:
        try:
            b"".decode(value)
        except LookupError as exc:
            raise ValueError(f"unknown text encoding: {value}") from exc
        return value


class ExecuteResponse(BaseModel):
    tape: List[int]
    pointer: int
    output: List[int]
    text: Optional[str]
    decode_error: Optional[str]


class SessionConfiguration(BaseModel):
    code: str = ""
    tape: List[int] = Field(default_factory=list)
    pointer: int = Field(default=0, ge=0)
    tape_window: int = Field(default=10, ge=0)
    max_steps: Optional[int] = Field(default=None, ge=1)
    history_limit: int = Field(default=200, ge=1)

    @validator("tape")
    def validate_tape(cls, value: List[int]) -> List[int]:
        return _check_cells(value)


class SessionState(BaseModel):
    step: int
    pc: int
    command: Optional[str]
    pointer: int
    tape_start: int
    tape: List[int]
    output: List[int]
    code_length: int


class SessionPayload(BaseModel):
    session_id: str
    code: str
    state: SessionState
    history: List[SessionState]
    finished: bool
    history_size: int
    breakpoints: List[int]
    hit_breakpoint: Optional[int]
    total_steps: int
    total_steps_capped: bool


class StepRequest(BaseModel):
    count: int = Field(default=1, ge=1)


class StepResponse(SessionPayload):
    states: List[SessionState]


class RunRequest(BaseModel):
    limit: Optional[int] = Field(default=None, ge=1)
    ignore_breakpoints: bool = False


class BreakpointRequest(BaseModel):
    pc: int = Field(ge=0)


def create_app(store: Optional[SessionStore] = None) -> FastAPI:
    session_store = store or SessionStore()
    app = FastAPI(title="typedbf API", version="0.1.0")

    def _serialize_states(states: List[ExecutionState]) -> List[SessionState]:
        return [SessionState(**_state_to_dict(state)) for state in states]

    def _payload_fields(record: SessionRecord) -> dict:
        session = record.session
        return {
            "session_id": record.session_id,
            "code": session.code,
            "state": SessionState(**_state_to_dict(session.current_state())),
            "history": _serialize_states(session.history),
            "finished": session.is_finished(),
            "history_size": len(session.history),
            "breakpoints": session.list_breakpoints(),
            "hit_breakpoint": session.hit_breakpoint,
            "total_steps": record.total_steps,
            "total_steps_capped": record.total_steps_capped,
        }

    def _get_record(session_id: str) -> SessionRecord:
        try:
            return session_store.get(session_id)
        except KeyError as exc:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc

    @app.post("/api/execute", response_model=ExecuteResponse)
    def execute_program(payload: ExecuteRequest) -> ExecuteResponse:
        program = _parse_or_422(payload.code)
        initial_tape = Tape(payload.tape, pointer=payload.pointer)
        try:
            final_tape, output = Interpreter().execute(
                program,
                initial_tape,
                max_steps=payload.max_steps,
            )
        except StepLimitExceeded as exc:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc

        text: Optional[str] = None
        decode_error: Optional[str] = None
        try:
            text = decode(output, payload.encoding)
        except EncodingError as exc:
            decode_error = str(exc)
        return ExecuteResponse(
            tape=final_tape.values(),
            pointer=final_tape.pointer,
            output=output.values(),
            text=text,
            decode_error=decode_error,
        )

    @app.post("/api/session", response_model=SessionPayload, status_code=status.HTTP_201_CREATED)
    def create_session(payload: SessionConfiguration) -> SessionPayload:
        program = _parse_or_422(payload.code)
        initial_tape = Tape(payload.tape, pointer=payload.pointer)
        total_steps, total_steps_capped = _calculate_total_steps(program, initial_tape)

        record = session_store.create_session(
            program=program,
            initial_tape=initial_tape,
            tape_window=payload.tape_window,
            max_steps=payload.max_steps,
            history_limit=payload.history_limit,
            total_steps=total_steps,
            total_steps_capped=total_steps_capped,
        )
        return SessionPayload(**_payload_fields(record))

    @app.get("/api/session/{session_id}", response_model=SessionPayload)
    def get_session(session_id: str) -> SessionPayload:
        return SessionPayload(**_payload_fields(_get_record(session_id)))

    @app.post("/api/session/{session_id}/reset", response_model=SessionPayload)
    def reset_session(session_id: str) -> SessionPayload:
        try:
            record = session_store.reset(session_id)
        except KeyError as exc:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
        return SessionPayload(**_payload_fields(record))

    @app.post("/api/session/{session_id}/step", response_model=StepResponse)
    def step_session(session_id: str, payload: StepRequest) -> StepResponse:
        record = _get_record(session_id)
        try:
            states = record.session.step_forward(payload.count)
        except StepLimitExceeded as exc:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
        return StepResponse(states=_serialize_states(list(states)), **_payload_fields(record))

    @app.post("/api/session/{session_id}/run", response_model=StepResponse)
    def run_session(session_id: str, payload: RunRequest) -> StepResponse:
        record = _get_record(session_id)
        session = record.session
        original_breakpoints: Optional[set[int]] = None
        if payload.ignore_breakpoints:
            original_breakpoints = set(session.breakpoints)
            session.clear_breakpoints()
            session.hit_breakpoint = None

        try:
            states = list(session.run_until_break(payload.limit))
        except StepLimitExceeded as exc:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
        finally:
            if original_breakpoints is not None:
                session.breakpoints = original_breakpoints
                session.hit_breakpoint = None

        return StepResponse(states=_serialize_states(states), **_payload_fields(record))

    @app.post("/api/session/{session_id}/breakpoints", response_model=SessionPayload)
    def add_breakpoint(session_id: str, payload: BreakpointRequest) -> SessionPayload:
        record = _get_record(session_id)
        record.session.add_breakpoint(payload.pc)
        return SessionPayload(**_payload_fields(record))

    @app.delete("/api/session/{session_id}/breakpoints/{pc}", response_model=SessionPayload)
    def remove_breakpoint(session_id: str, pc: int) -> SessionPayload:
        record = _get_record(session_id)
        if not record.session.remove_breakpoint(pc):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Breakpoint not found at pc={pc}",
            )
        return SessionPayload(**_payload_fields(record))

    @app.delete("/api/session/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
    def delete_session(session_id: str) -> Response:
        if not session_store.remove(session_id):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Unknown session id: {session_id}",
            )
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    return app


__all__ = ["create_app"]
