from testgen.stmt import DUMMY_INPUT_VAR, ApiCall, Stmt, StmtKind, UseKind, Var, VarState
from testgen.context import Context, VarStateError
from testgen.ltcontext import LtContext
from testgen.generator import LtGen

__all__ = [
    "DUMMY_INPUT_VAR",
    "ApiCall",
    "Stmt",
    "StmtKind",
    "UseKind",
    "Var",
    "VarState",
    "Context",
    "VarStateError",
    "LtContext",
    "LtGen",
]
