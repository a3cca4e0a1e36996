"""
Region (lifetime) constraint graph.

Every region is a node in a flat arena addressed by its Rid. Node 0 is
'static; the other nodes are either bound to a variable (the variable's own
storage region) or to one reference-shaped position inside a variable's
type. An edge `from -> to` records that `from` must live at least as long
as `to`. Proofs are path-existence queries.
"""

from collections import deque
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Callable, Dict, List, Optional, Set, Union

from core.utils import trace
from rty.types import Adt, Array, RawPtr, Ref, Region, Slice, TupleTy, Ty
from rty.utils import fold_ty, walk_regions
from templates import render

if TYPE_CHECKING:
    from testgen.stmt import Var

Rid = int

RID_STATIC: Rid = 0

REGION_STATIC = "static"
REGION_VAR = "var"
REGION_TY = "ty"


@dataclass
class RegionNode:
    kind: str
    var: Optional["Var"] = None


class RegionGraph:
    def __init__(self):
        self.nodes: List[RegionNode] = [RegionNode(REGION_STATIC)]
        self.succ: Dict[Rid, Set[Rid]] = {RID_STATIC: set()}
        self.pred: Dict[Rid, Set[Rid]] = {RID_STATIC: set()}
        self.var_regions: Dict["Var", Rid] = {}

    def _new_node(self, kind: str, var: Optional["Var"] = None) -> Rid:
        rid = len(self.nodes)
        self.nodes.append(RegionNode(kind, var))
        self.succ[rid] = set()
        self.pred[rid] = set()
        return rid

    # -------------------------------------------------------------------------
    # Registration
    # -------------------------------------------------------------------------

    def register_ty(self, ty: Ty) -> Ty:
        """Copy of `ty` where every non-static, unregistered region is a fresh Rid."""

        def on_region(region: Region) -> Region:
            if region.is_static or region.is_var:
                return region
            return Region.var(self._new_node(REGION_TY))

        return fold_ty(ty, on_region=on_region)

    def register_var(self, var: "Var") -> Rid:
        rid = self._new_node(REGION_VAR, var)
        self.var_regions[var] = rid
        return rid

    def region_of(self, var: "Var") -> Rid:
        return self.var_regions[var]

    def var_of(self, rid: Rid) -> Optional["Var"]:
        node = self.nodes[rid]
        return node.var if node.kind == REGION_VAR else None

    def is_static(self, rid: Rid) -> bool:
        return rid == RID_STATIC

    @staticmethod
    def rid_of(region: Region) -> Rid:
        if region.is_static:
            return RID_STATIC
        if region.is_var:
            return region.rid
        raise ValueError(f"region {region} is not registered")

    # -------------------------------------------------------------------------
    # Edges and proofs
    # -------------------------------------------------------------------------

    def add_edge_by_region(self, from_: Union[Region, Rid], to: Union[Region, Rid]) -> bool:
        """Record `from_` outlives `to`. Returns False if already known."""
        src = from_ if isinstance(from_, int) else self.rid_of(from_)
        dst = to if isinstance(to, int) else self.rid_of(to)
        if src == dst or dst in self.succ[src]:
            return False
        self.succ[src].add(dst)
        self.pred[dst].add(src)
        trace(f"region edge {src} -> {dst}")
        return True

    def prove(self, a: Rid, b: Rid) -> bool:
        """Whether there is a directed path a -> b (reflexive)."""
        if a == b:
            return True
        visited = {a}
        queue = deque([a])
        while queue:
            current = queue.popleft()
            for nxt in self.succ[current]:
                if nxt == b:
                    return True
                if nxt not in visited:
                    visited.add(nxt)
                    queue.append(nxt)
        return False

    def for_each_source(self, rid: Rid, f: Callable[[Rid], None]) -> None:
        """Call `f` on every non-static region with a path into `rid`, `rid` included."""
        visited = {rid}
        queue = deque([rid])
        while queue:
            current = queue.popleft()
            if not self.is_static(current):
                f(current)
            for prev in sorted(self.pred[current]):
                if prev not in visited:
                    visited.add(prev)
                    queue.append(prev)

    def sources(self, rid: Rid) -> List[Rid]:
        found: List[Rid] = []
        self.for_each_source(rid, found.append)
        return found

    # -------------------------------------------------------------------------
    # Structure
    # -------------------------------------------------------------------------

    def visit_structure_region_with(self, ty: Ty, parent: Optional[Rid], f: Callable[[Rid, Rid], None]) -> None:
        """Call `f(parent, region)` for each region nested directly under `parent`."""
        if isinstance(ty, Ref):
            rid = self.rid_of(ty.region)
            if parent is not None:
                f(parent, rid)
            self.visit_structure_region_with(ty.inner, rid, f)
        elif isinstance(ty, Adt):
            for arg in ty.args:
                if isinstance(arg, Region):
                    rid = self.rid_of(arg)
                    if parent is not None:
                        f(parent, rid)
                elif isinstance(arg, Ty):
                    self.visit_structure_region_with(arg, parent, f)
        elif isinstance(ty, (RawPtr, Array, Slice)):
            self.visit_structure_region_with(ty.inner, parent, f)
        elif isinstance(ty, TupleTy):
            for elem in ty.elems:
                self.visit_structure_region_with(elem, parent, f)

    def add_structural_edges(self, ty: Ty, var_rid: Rid) -> None:
        self.visit_structure_region_with(ty, var_rid, self.add_edge_by_region)

    def extract_rids(self, ty: Ty) -> List[Rid]:
        """Registered (non-static) regions of `ty`, in positional order."""
        return [r.rid for r in walk_regions(ty) if r.is_var]

    # -------------------------------------------------------------------------
    # Dump
    # -------------------------------------------------------------------------

    def to_dot(self) -> str:
        nodes = []
        for rid, node in enumerate(self.nodes):
            if node.kind == REGION_STATIC:
                label, color = "'static", "black"
            elif node.kind == REGION_VAR:
                label, color = f"{node.var} ('?{rid})", "blue"
            else:
                label, color = f"'?{rid}", "grey"
            nodes.append({"id": rid, "label": label, "color": color, "shape": "box"})
        edges = [
            {"src": src, "dst": dst, "label": "", "color": "black"}
            for src in range(len(self.nodes))
            for dst in sorted(self.succ[src])
        ]
        return render("graph.dot.j2", name="region_graph", nodes=nodes, edges=edges)

    def dump_to_dot(self, path: Union[str, Path]) -> None:
        Path(path).write_text(self.to_dot(), encoding="utf-8")
