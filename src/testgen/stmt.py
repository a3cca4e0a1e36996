"""
Statements and variables of a generated program.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from rty.types import Ty


@dataclass(frozen=True, order=True)
class Var:
    id: int
    is_input: bool = False

    def __str__(self) -> str:
        return f"v{self.id}"


# Placeholder provider meaning "construct a fresh literal input"
DUMMY_INPUT_VAR = Var(0, True)


class VarState(Enum):
    LIVE = "live"
    BORROWED = "borrowed"
    BORROWED_MUT = "borrowed_mut"
    MOVED = "moved"
    DROPPED = "dropped"

    @staticmethod
    def borrowed(mutable: bool) -> "VarState":
        return VarState.BORROWED_MUT if mutable else VarState.BORROWED

    @property
    def is_dead(self) -> bool:
        return self in (VarState.MOVED, VarState.DROPPED)

    @property
    def is_borrowed(self) -> bool:
        return self in (VarState.BORROWED, VarState.BORROWED_MUT)


class UseKind(Enum):
    DEBUG = "debug"


class StmtKind(Enum):
    INPUT = "input"
    CALL = "call"
    SPECIAL_CALL = "special_call"  # String::from, Vec::from, Option::unwrap, ...
    REF = "ref"
    DEREF = "deref"
    BOX = "box"
    DROP = "drop"
    USE = "use"


@dataclass(frozen=True)
class ApiCall:
    fn: str
    args: Tuple[Var, ...] = ()
    generic_args: Tuple[Ty, ...] = ()


@dataclass(frozen=True)
class Stmt:
    kind: StmtKind
    place: Var
    call: Optional[ApiCall] = None  # CALL
    operand: Optional[Var] = None  # every other kind except INPUT
    special: Optional[str] = None  # SPECIAL_CALL callee
    mutable: bool = False  # REF / DEREF
    use_kind: UseKind = UseKind.DEBUG

    @staticmethod
    def input(place: Var) -> "Stmt":
        return Stmt(StmtKind.INPUT, place)

    @staticmethod
    def of_call(call: ApiCall, place: Var) -> "Stmt":
        return Stmt(StmtKind.CALL, place, call=call)

    @staticmethod
    def special_call(callee: str, operand: Var, place: Var) -> "Stmt":
        return Stmt(StmtKind.SPECIAL_CALL, place, operand=operand, special=callee)

    @staticmethod
    def ref(operand: Var, mutable: bool, place: Var) -> "Stmt":
        return Stmt(StmtKind.REF, place, operand=operand, mutable=mutable)

    @staticmethod
    def deref(operand: Var, mutable: bool, place: Var) -> "Stmt":
        return Stmt(StmtKind.DEREF, place, operand=operand, mutable=mutable)

    @staticmethod
    def box(operand: Var, place: Var) -> "Stmt":
        return Stmt(StmtKind.BOX, place, operand=operand)

    @staticmethod
    def drop(operand: Var, place: Var) -> "Stmt":
        return Stmt(StmtKind.DROP, place, operand=operand)

    @staticmethod
    def use(operand: Var, place: Var, kind: UseKind = UseKind.DEBUG) -> "Stmt":
        return Stmt(StmtKind.USE, place, operand=operand, use_kind=kind)

    @property
    def operands(self) -> Tuple[Var, ...]:
        if self.kind == StmtKind.CALL:
            return self.call.args
        if self.operand is not None:
            return (self.operand,)
        return ()

    def __str__(self) -> str:
        if self.kind == StmtKind.INPUT:
            return f"{self.place} = input"
        if self.kind == StmtKind.CALL:
            args = ", ".join(str(a) for a in self.call.args)
            return f"{self.place} = {self.call.fn}({args})"
        if self.kind == StmtKind.SPECIAL_CALL:
            return f"{self.place} = {self.special}({self.operand})"
        if self.kind in (StmtKind.REF, StmtKind.DEREF):
            prefix = "&mut " if self.mutable else "&"
            star = "*" if self.kind == StmtKind.DEREF else ""
            return f"{self.place} = {prefix}{star}{self.operand}"
        return f"{self.kind.value}({self.operand})"
