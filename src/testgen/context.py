"""
Generation context: the ordered statement log plus per-variable tables.

Variables are plain integer handles; their type, mutability and liveness
live in flat tables keyed by Var. A fresh context is created for every
generated case.
"""

from typing import Dict, List, Optional

from apidep.graph import TyCache
from catalog.model import Catalog
from core.utils import trace
from rty.types import Ty, is_unit
from rty.utils import is_copy_ty, is_debug_ty, is_ty_eq
from testgen.stmt import DUMMY_INPUT_VAR, Stmt, StmtKind, Var, VarState


class VarStateError(RuntimeError):
    """Illegal liveness transition; always a generator bug."""

    pass


class Context:
    def __init__(self, catalog: Catalog, cache: Optional[TyCache] = None):
        self.catalog = catalog
        self.cache = cache or TyCache(catalog)
        self.stmts: List[Stmt] = []
        self.var_ty: Dict[Var, Ty] = {}
        self.var_mut: Dict[Var, bool] = {}
        self.var_state: Dict[Var, VarState] = {}
        self._next_var_id = 1  # 0 is DUMMY_INPUT_VAR

    # -------------------------------------------------------------------------
    # Variables
    # -------------------------------------------------------------------------

    def mk_var(self, ty: Ty, is_input: bool = False) -> Var:
        var = Var(self._next_var_id, is_input)
        self._next_var_id += 1
        self.var_ty[var] = ty
        self.var_mut[var] = False
        # A unit value is never a useful provider
        self.var_state[var] = VarState.MOVED if is_unit(ty) else VarState.LIVE
        trace(f"mk_var {var}: {ty} ({self.var_state[var].value})")
        return var

    def type_of(self, var: Var) -> Ty:
        return self.var_ty[var]

    def var_mutability(self, var: Var) -> bool:
        return self.var_mut[var]

    def lift_mutability(self, var: Var) -> None:
        self.var_mut[var] = True

    def state_of(self, var: Var) -> VarState:
        return self.var_state[var]

    def is_dead(self, var: Var) -> bool:
        return self.var_state[var].is_dead

    def is_copy(self, var: Var) -> bool:
        return is_copy_ty(self.type_of(var), self.catalog)

    def is_debug(self, var: Var) -> bool:
        return is_debug_ty(self.type_of(var), self.catalog)

    def set_var_state(self, var: Var, state: VarState) -> None:
        """Move a var to Live/Moved/Dropped. Borrowing goes through set_var_borrowed."""
        if state.is_borrowed:
            raise VarStateError(f"{var}: use set_var_borrowed to borrow")
        old = self.var_state[var]
        if old.is_dead:
            raise VarStateError(f"{var}: cannot change state of a {old.value} var to {state.value}")
        self.var_state[var] = state

    def set_var_borrowed(self, var: Var, mutable: bool) -> None:
        old = self.var_state[var]
        if old.is_dead:
            raise VarStateError(f"{var}: cannot borrow a {old.value} var")
        if mutable:
            self.lift_mutability(var)
            self.var_state[var] = VarState.BORROWED_MUT
        elif old != VarState.BORROWED_MUT:
            self.var_state[var] = VarState.BORROWED

    def available_vars(self) -> List[Var]:
        """Vars that can still be used, in creation order."""
        return [v for v, s in self.var_state.items() if not s.is_dead]

    def all_possible_providers(self, ty: Ty) -> List[Var]:
        providers = []
        if self.cache.is_fuzzable(ty):
            providers.append(DUMMY_INPUT_VAR)
        for var in self.available_vars():
            if is_ty_eq(self.type_of(var), ty):
                providers.append(var)
        return providers

    # -------------------------------------------------------------------------
    # Statements
    # -------------------------------------------------------------------------

    def add_stmt(self, stmt: Stmt) -> None:
        trace(f"stmt: {stmt}")
        self.stmts.append(stmt)

    def num_stmt(self) -> int:
        return len(self.stmts)

    def num_apicall(self) -> int:
        return sum(1 for s in self.stmts if s.kind == StmtKind.CALL)

    def last_call_stmt(self) -> Optional[Stmt]:
        for stmt in reversed(self.stmts):
            if stmt.kind == StmtKind.CALL:
                return stmt
        return None
