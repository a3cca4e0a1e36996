"""
Render a generation context into a Rust program.

Every statement becomes one line in `main`:
    let [mut ]vN: Ty = <expr>;
or just `<expr>;` when the statement produces a unit value.
"""

from typing import List

from catalog.model import Catalog
from rty.types import is_unit, ty_to_string
from syn.input import InputGen, SillyInputGen
from templates import render
from testgen.context import Context
from testgen.stmt import Stmt, StmtKind


class FuzzDriverSynImpl:
    def __init__(self, catalog: Catalog, input_gen: InputGen = None):
        self.catalog = catalog
        self.input_gen = input_gen or SillyInputGen(catalog)

    def expr_str(self, cx: Context, stmt: Stmt) -> str:
        kind = stmt.kind
        if kind == StmtKind.INPUT:
            return self.input_gen.gen(cx.type_of(stmt.place))
        if kind == StmtKind.CALL:
            call = stmt.call
            callee = call.fn
            if call.generic_args:
                callee += "::<" + ", ".join(ty_to_string(a, erase_regions=True) for a in call.generic_args) + ">"
            return f"{callee}(" + ", ".join(str(a) for a in call.args) + ")"
        if kind == StmtKind.SPECIAL_CALL:
            return f"{stmt.special}({stmt.operand})"
        if kind == StmtKind.REF:
            return ("&mut " if stmt.mutable else "&") + str(stmt.operand)
        if kind == StmtKind.DEREF:
            return ("&mut *" if stmt.mutable else "&*") + str(stmt.operand)
        if kind == StmtKind.BOX:
            return f"Box::new({stmt.operand})"
        if kind == StmtKind.DROP:
            return f"drop({stmt.operand})"
        if kind == StmtKind.USE:
            return f'println!("{{:?}}", {stmt.operand})'
        raise ValueError(f"unknown statement kind {kind}")

    def stmt_str(self, cx: Context, stmt: Stmt) -> str:
        expr = self.expr_str(cx, stmt)
        place = stmt.place
        ty = cx.type_of(place)
        if is_unit(ty) and not place.is_input:
            return f"{expr};"
        mutability = "mut " if cx.var_mutability(place) else ""
        return f"let {mutability}{place}: {ty_to_string(ty, erase_regions=True)} = {expr};"

    def program_lines(self, cx: Context) -> List[str]:
        return [self.stmt_str(cx, stmt) for stmt in cx.stmts]

    def syn_program(self, cx: Context, crate_name: str = None) -> str:
        return render("main.rs.j2", crate_name=crate_name or self.catalog.crate_name, lines=self.program_lines(cx))
