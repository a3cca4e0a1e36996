"""
Lifetime-aware generation context.

Extends the plain context with a region graph: every new variable gets its
own region plus one region per reference-shaped position of its type, and
statements add the outlives edges they imply. Borrowing, moving and
dropping use the graph to invalidate every variable that still points into
the affected storage.
"""

from collections import deque
from typing import List, Optional, Set

from alias.facts import AliasMap
from apidep.graph import TyCache
from catalog.model import Catalog
from core.utils import debug, trace
from lifetime.pattern import PatternProvider
from lifetime.region import RegionGraph, Rid
from rty.types import (
    UNIT,
    Array,
    Ref,
    Region,
    Slice,
    Str,
    Ty,
    is_std_adt,
    is_string,
    is_vec,
    mk_box,
    mk_static_str_ref,
)
from testgen.context import Context
from testgen.safety import try_inject_drop
from testgen.stmt import DUMMY_INPUT_VAR, ApiCall, Stmt, UseKind, Var, VarState

INPUT_ARRAY_LEN = 3


class LtContext(Context):
    def __init__(
        self,
        catalog: Catalog,
        alias_map: Optional[AliasMap] = None,
        cache: Optional[TyCache] = None,
        patterns: Optional[PatternProvider] = None,
    ):
        super().__init__(catalog, cache)
        self.alias_map = alias_map or AliasMap()
        self.patterns = patterns or PatternProvider()
        self.region_graph = RegionGraph()
        self.covered_api: Set[str] = set()
        self.lack_of_alias: List[str] = []
        self.dropped_count = 0

    def mk_var(self, ty: Ty, is_input: bool = False) -> Var:
        ty = self.region_graph.register_ty(ty)
        var = super().mk_var(ty, is_input)
        rid = self.region_graph.register_var(var)
        self.region_graph.add_structural_edges(ty, rid)
        return var

    def region_of(self, var: Var) -> Rid:
        return self.region_graph.region_of(var)

    # -------------------------------------------------------------------------
    # Inputs
    # -------------------------------------------------------------------------

    def _add_literal_input(self, ty: Ty) -> Var:
        var = self.mk_var(ty, True)
        self.add_stmt(Stmt.input(var))
        return var

    def add_input_stmt(self, ty: Ty) -> Var:
        """
        Produce a var of type `ty` from literals.

        Owned strings and vectors are converted from literal `&'static str`
        and arrays; references to anything else are taken on a boxed literal.
        """
        if is_string(ty):
            literal = self._add_literal_input(mk_static_str_ref())
            return self.add_special_call_stmt("String::from", literal, ty)
        if is_vec(ty):
            literal = self._add_literal_input(Array(ty.type_args[0], INPUT_ARRAY_LEN))
            return self.add_special_call_stmt("Vec::from", literal, ty)
        if isinstance(ty, Ref):
            inner = ty.inner
            if isinstance(inner, Str) and not ty.mutable:
                return self._add_literal_input(mk_static_str_ref())
            if isinstance(inner, Slice):
                value = self._add_literal_input(Array(inner.inner, INPUT_ARRAY_LEN))
            else:
                value = self.add_input_stmt(inner)
            boxed = self.add_box_stmt(value)
            return self.add_deref_stmt(boxed, ty.mutable, inner)
        return self._add_literal_input(ty)

    def add_special_call_stmt(self, callee: str, operand: Var, ty: Ty) -> Var:
        if not self.is_copy(operand):
            self.move_var(operand)
        var = self.mk_var(ty, False)
        self.add_stmt(Stmt.special_call(callee, operand, var))
        return var

    # -------------------------------------------------------------------------
    # Calls
    # -------------------------------------------------------------------------

    def add_call_stmt(self, call: ApiCall) -> Var:
        """
        Append `call`. Dummy arguments become fresh inputs (consumed by the
        call); non-Copy arguments are moved.
        """
        api = self.catalog.api(call.fn)
        inputs, output = api.instantiate(call.generic_args)
        args = []
        for i, arg in enumerate(call.args):
            if arg == DUMMY_INPUT_VAR:
                arg = self.add_input_stmt(inputs[i])
                self.set_var_state(arg, VarState.MOVED)
            elif not self.is_copy(arg):
                self.move_var(arg)
            args.append(arg)

        ret = self.mk_var(output, False)
        real_call = ApiCall(call.fn, tuple(args), call.generic_args)
        self.add_stmt(Stmt.of_call(real_call, ret))
        self.covered_api.add(call.fn)

        added = self.patterns.apply(
            api, call.generic_args, [self.type_of(a) for a in args], self.type_of(ret), self.region_graph
        )
        if added:
            trace(f"{call.fn}: {added} signature region edge(s)")
        return ret

    # -------------------------------------------------------------------------
    # Transforms
    # -------------------------------------------------------------------------

    def add_ref_stmt(self, var: Var, mutable: bool) -> Var:
        self.borrow_var(var, mutable)
        ty = Ref(Region.var(self.region_of(var)), self.type_of(var), mutable)
        place = self.mk_var(ty, False)
        self.add_stmt(Stmt.ref(var, mutable, place))
        return place

    def add_deref_stmt(self, var: Var, mutable: bool, target: Ty) -> Var:
        """`&*var` / `&mut *var` for a box (or reference) `var`, typed as `&target`."""
        self.borrow_var(var, mutable)
        ty = Ref(Region.var(self.region_of(var)), target, mutable)
        place = self.mk_var(ty, False)
        self.add_stmt(Stmt.deref(var, mutable, place))
        return place

    def add_box_stmt(self, var: Var) -> Var:
        if not self.is_copy(var):
            self.move_var(var)
        place = self.mk_var(mk_box(self.type_of(var)), False)
        self.add_stmt(Stmt.box(var, place))
        return place

    def add_unwrap_stmt(self, var: Var) -> Var:
        ty = self.type_of(var)
        callee = "Option::unwrap" if is_std_adt(ty, "Option") else "Result::unwrap"
        return self.add_special_call_stmt(callee, var, ty.type_args[0])

    # -------------------------------------------------------------------------
    # Liveness
    # -------------------------------------------------------------------------

    def borrow_var(self, var: Var, mutable: bool) -> None:
        # A new mutable borrow (or any borrow of a mutably borrowed var)
        # ends every earlier borrow
        if mutable or self.state_of(var) == VarState.BORROWED_MUT:
            self.set_implicit_drop_state_from(var)
        self.set_var_borrowed(var, mutable)

    def move_var(self, var: Var) -> None:
        self.set_implicit_drop_state_from(var)
        self.set_var_state(var, VarState.MOVED)

    def set_implicit_drop_state_from(self, var: Var) -> None:
        """Mark Dropped every live var whose regions reach `var`'s region (`var` excluded)."""
        start = self.region_of(var)
        visited = {start}
        queue = deque([start])
        while queue:
            rid = queue.popleft()
            owner = self.region_graph.var_of(rid)
            if owner is not None and owner != var and not self.is_dead(owner):
                trace(f"{owner} implicitly dropped by use of {var}")
                self.set_var_state(owner, VarState.DROPPED)
            for prev in sorted(self.region_graph.pred[rid]):
                if prev not in visited:
                    visited.add(prev)
                    queue.append(prev)

    def add_drop_stmt(self, var: Var) -> None:
        if self.state_of(var) == VarState.DROPPED:
            return
        place = self.mk_var(UNIT, False)
        self.add_stmt(Stmt.drop(var, place))
        self.dropped_count += 1
        self.set_implicit_drop_state_from(var)
        self.set_var_state(var, VarState.DROPPED)

    def add_use_stmt(self, var: Var, kind: UseKind = UseKind.DEBUG) -> None:
        # Formatting takes a shared borrow
        if self.state_of(var) == VarState.BORROWED_MUT:
            self.set_implicit_drop_state_from(var)
        place = self.mk_var(UNIT, False)
        self.add_stmt(Stmt.use(var, place, kind))

    def try_use_all_available_vars(self) -> int:
        used = 0
        for var in self.available_vars():
            if not self.is_dead(var) and self.is_debug(var):
                self.add_use_stmt(var)
                used += 1
        debug(f"added {used} use statement(s)")
        return used

    # -------------------------------------------------------------------------
    # Unsoundness injection
    # -------------------------------------------------------------------------

    def try_inject_drop(self) -> int:
        return try_inject_drop(self)

    def num_covered_api(self) -> int:
        return len(self.covered_api)
