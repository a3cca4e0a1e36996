"""
Unsoundness injection.

After a call, each alias fact of the callee says two slots may share
storage. If the region graph has no record that the left value depends on
the right value's regions, the type system will let the right value die
while the left one is still around. Dropping the owned sources of those
regions right away manufactures a dangling access for the checker to find.
"""

from typing import TYPE_CHECKING, List

from alias.facts import RETURN_SLOT, AliasMap, RetAlias
from catalog.model import Catalog
from core.utils import debug, info, trace
from rty.types import RawPtr, Ref, Ty
from rty.utils import ProjectionError, contains_raw_ptr, erase_regions, is_owned_ty, ty_project_to, walk_ty
from testgen.stmt import Stmt, Var

if TYPE_CHECKING:
    from testgen.ltcontext import LtContext


def check_possibility(lhs: Ty, rhs: Ty) -> bool:
    """Whether `lhs` holds a reference or pointer to something `rhs` contains."""
    rhs_tys = {erase_regions(t) for t in walk_ty(rhs)}
    for ty in walk_ty(lhs):
        if isinstance(ty, (Ref, RawPtr)) and erase_regions(ty.inner) in rhs_tys:
            return True
    return False


def slot_var(stmt: Stmt, index: int) -> Var:
    if index == RETURN_SLOT:
        return stmt.place
    return stmt.call.args[index - 1]


def _implicated_rids(cx: "LtContext", alias: RetAlias, lhs_var: Var, rhs_var: Var) -> List[int]:
    lhs_ty = ty_project_to(cx.type_of(lhs_var), list(alias.left_field_seq), cx.catalog)
    rhs_ty = ty_project_to(cx.type_of(rhs_var), list(alias.right_field_seq), cx.catalog)
    rids = cx.region_graph.extract_rids(rhs_ty)
    # No region on the right side: assume the whole right value is pointed to
    if not rids and check_possibility(lhs_ty, rhs_ty):
        rids = [cx.region_of(rhs_var)]
    return rids


def try_inject_drop(cx: "LtContext") -> int:
    """Drop owned sources of aliased regions the left side does not provably depend on."""
    stmt = cx.last_call_stmt()
    if stmt is None:
        return 0
    fn = stmt.call.fn
    entry = cx.alias_map.get(fn)
    if entry is None:
        if fn not in cx.lack_of_alias:
            cx.lack_of_alias.append(fn)
        debug(f"no alias facts for {fn}, skipping injection")
        return 0

    to_drop: List[Var] = []
    for alias in entry.aliases:
        lhs_var = slot_var(stmt, alias.left_index)
        rhs_var = slot_var(stmt, alias.right_index)
        if lhs_var == rhs_var:
            continue
        try:
            rids = _implicated_rids(cx, alias, lhs_var, rhs_var)
        except ProjectionError as e:
            debug(f"{fn}: skipping alias {alias}: {e}")
            continue

        lhs_rid = cx.region_of(lhs_var)
        for rid in rids:
            if cx.region_graph.prove(lhs_rid, rid):
                continue
            trace(f"{fn}: {lhs_var} may point into '?{rid} without a region edge")
            for src in cx.region_graph.sources(rid):
                var = cx.region_graph.var_of(src)
                if var is None or var in to_drop:
                    continue
                if cx.is_dead(var) or not is_owned_ty(cx.type_of(var)):
                    continue
                to_drop.append(var)

    dropped = 0
    for var in to_drop:
        # An earlier drop may have invalidated it already
        if cx.is_dead(var):
            continue
        cx.add_drop_stmt(var)
        dropped += 1
    if dropped:
        debug(f"{fn}: injected {dropped} drop(s)")
    return dropped


def is_api_vulnerable(fn: str, catalog: Catalog, alias_map: AliasMap) -> bool:
    """An alias of `fn` relates a slot that holds a raw pointer."""
    entry = alias_map.get(fn)
    if entry is None or not catalog.has_api(fn):
        return False
    api = catalog.api(fn)

    def slot_ty(index: int) -> Ty:
        return api.output if index == RETURN_SLOT else api.inputs[index - 1]

    for alias in entry.aliases:
        try:
            lhs = ty_project_to(slot_ty(alias.left_index), list(alias.left_field_seq), catalog)
            rhs = ty_project_to(slot_ty(alias.right_index), list(alias.right_field_seq), catalog)
        except ProjectionError:
            continue
        if contains_raw_ptr(lhs) or contains_raw_ptr(rhs):
            info(f"{fn} is vulnerable: {alias}")
            return True
    return False
