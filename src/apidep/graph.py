"""
API dependency graph.

Nodes are APIs (with a concrete generic instantiation), types and generic
parameters. Edges:
- Arg(i):     Ty -> Api, the type feeds argument i
- Ret:        Api -> Ty, the API produces the type
- Generic:    Api -> GenericParam, unresolved type parameter
- Transform:  Ty -> Ty, reachable by referencing or unwrapping

Nodes live in a flat arena addressed by index and are interned through
`node_indices`, so re-adding an API is a no-op. Transform edges are derived
lazily by a bounded search from every type node.
"""

import json
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set, Tuple, Union

from apidep.resolve import resolve_generic_apis
from catalog.model import ApiSig, Catalog
from core.config import ApiGraphConfig
from core.utils import debug, trace
from rty.types import RE_ERASED, Ref, Ty, is_std_adt, is_unit, ty_to_string
from rty.utils import erase_regions, has_params, is_fuzzable_ty
from templates import render

MAX_TRANSFORM_DEPTH = 3


class TransformKind(Enum):
    IMMUTABLE_REF = "&"
    MUTABLE_REF = "&mut"
    UNWRAP = "unwrap"

    def apply(self, ty: Ty) -> Optional[Ty]:
        """Type obtained by applying this transform to `ty`, if it applies."""
        if self is TransformKind.IMMUTABLE_REF:
            return Ref(RE_ERASED, ty, False)
        if self is TransformKind.MUTABLE_REF:
            return Ref(RE_ERASED, ty, True)
        if (is_std_adt(ty, "Option") or is_std_adt(ty, "Result")) and ty.type_args:
            return ty.type_args[0]
        return None

    @property
    def is_ref(self) -> bool:
        return self is not TransformKind.UNWRAP

    @property
    def mutable(self) -> bool:
        return self is TransformKind.MUTABLE_REF


# =============================================================================
# Nodes and edges
# =============================================================================

NODE_API = "api"
NODE_TY = "ty"
NODE_GENERIC = "generic"


@dataclass(frozen=True)
class DepNode:
    kind: str
    api: Optional[str] = None
    generic_args: Tuple[Ty, ...] = ()
    ty: Optional[Ty] = None
    param: Optional[str] = None

    @staticmethod
    def api_node(path: str, generic_args: Tuple[Ty, ...] = ()) -> "DepNode":
        return DepNode(NODE_API, api=path, generic_args=tuple(erase_regions(a) for a in generic_args))

    @staticmethod
    def ty_node(ty: Ty) -> "DepNode":
        return DepNode(NODE_TY, ty=erase_regions(ty))

    @staticmethod
    def generic_node(api: str, param: str) -> "DepNode":
        return DepNode(NODE_GENERIC, api=api, param=param)

    @property
    def is_api(self) -> bool:
        return self.kind == NODE_API

    @property
    def is_ty(self) -> bool:
        return self.kind == NODE_TY

    def __str__(self) -> str:
        if self.kind == NODE_API:
            if self.generic_args:
                return f"{self.api}::<{', '.join(ty_to_string(a, True) for a in self.generic_args)}>"
            return self.api
        if self.kind == NODE_TY:
            return ty_to_string(self.ty, True)
        return f"{self.param} of {self.api}"


EDGE_ARG = "arg"
EDGE_RET = "ret"
EDGE_GENERIC = "generic"
EDGE_TRANSFORM = "transform"


@dataclass(frozen=True)
class DepEdge:
    kind: str
    index: int = 0
    transform: Optional[TransformKind] = None

    @staticmethod
    def arg(index: int) -> "DepEdge":
        return DepEdge(EDGE_ARG, index=index)

    @staticmethod
    def ret() -> "DepEdge":
        return DepEdge(EDGE_RET)

    @staticmethod
    def generic() -> "DepEdge":
        return DepEdge(EDGE_GENERIC)

    @staticmethod
    def of_transform(kind: TransformKind) -> "DepEdge":
        return DepEdge(EDGE_TRANSFORM, transform=kind)

    def __str__(self) -> str:
        if self.kind == EDGE_ARG:
            return f"Arg({self.index})"
        if self.kind == EDGE_RET:
            return "Ret"
        if self.kind == EDGE_GENERIC:
            return "Generic"
        return self.transform.value


_NODE_COLORS = {NODE_API: "blue", NODE_TY: "red", NODE_GENERIC: "green"}
_EDGE_COLORS = {EDGE_ARG: "black", EDGE_RET: "black", EDGE_GENERIC: "grey", EDGE_TRANSFORM: "darkorange"}


class TyCache:
    """Memoized per-type metadata, owned by one graph."""

    def __init__(self, catalog: Optional[Catalog]):
        self.catalog = catalog
        self._fuzzable: Dict[Ty, bool] = {}

    def is_fuzzable(self, ty: Ty) -> bool:
        key = erase_regions(ty)
        if key not in self._fuzzable:
            self._fuzzable[key] = is_fuzzable_ty(key, self.catalog)
        return self._fuzzable[key]


# =============================================================================
# Graph
# =============================================================================


class ApiDepGraph:
    def __init__(self, catalog: Catalog, config: Optional[ApiGraphConfig] = None):
        self.catalog = catalog
        self.config = config or ApiGraphConfig()
        self.cache = TyCache(catalog)
        self.nodes: List[DepNode] = []
        self.node_indices: Dict[DepNode, int] = {}
        self.edges: List[Tuple[int, int, DepEdge]] = []
        self._edge_set: Set[Tuple[int, int, DepEdge]] = set()
        self._out: Dict[int, List[int]] = {}  # node -> outgoing edge ids
        self._in: Dict[int, List[int]] = {}  # node -> incoming edge ids
        self._transforms_dirty = False

    # -------------------------------------------------------------------------
    # Construction
    # -------------------------------------------------------------------------

    def get_node(self, node: DepNode) -> int:
        """Index of `node`, inserting it if needed."""
        index = self.node_indices.get(node)
        if index is None:
            index = len(self.nodes)
            self.nodes.append(node)
            self.node_indices[node] = index
            self._out[index] = []
            self._in[index] = []
            if node.is_ty:
                self._transforms_dirty = True
        return index

    def get_ty_node(self, ty: Ty) -> int:
        return self.get_node(DepNode.ty_node(ty))

    def find_ty_node(self, ty: Ty) -> Optional[int]:
        return self.node_indices.get(DepNode.ty_node(ty))

    def add_edge(self, src: int, dst: int, edge: DepEdge) -> bool:
        key = (src, dst, edge)
        if key in self._edge_set:
            return False
        self._edge_set.add(key)
        self.edges.append(key)
        edge_id = len(self.edges) - 1
        self._out[src].append(edge_id)
        self._in[dst].append(edge_id)
        return True

    def contains_edge(self, src: int, dst: int) -> bool:
        return any(self.edges[e][1] == dst for e in self._out[src])

    def add_edge_once(self, src: int, dst: int, edge: DepEdge) -> bool:
        """Add `edge` unless some edge src -> dst already exists."""
        if self.contains_edge(src, dst):
            return False
        return self.add_edge(src, dst, edge)

    def has_api(self, path: str, generic_args: Tuple[Ty, ...] = ()) -> bool:
        return DepNode.api_node(path, generic_args) in self.node_indices

    def add_api(self, path: str, generic_args: Tuple[Ty, ...] = ()) -> bool:
        """
        Insert the API instance and wire its Arg/Ret/Generic edges.

        Returns True if new type nodes appeared, i.e. transform edges need to
        be recomputed.
        """
        node = DepNode.api_node(path, generic_args)
        if node in self.node_indices:
            return False
        api = self.catalog.api(path)
        num_nodes = len(self.nodes)
        api_index = self.get_node(node)
        inputs, output = api.instantiate(tuple(generic_args))

        for i, input_ty in enumerate(inputs):
            self.add_edge(self.get_ty_node(input_ty), api_index, DepEdge.arg(i))
        if not is_unit(output):
            self.add_edge(api_index, self.get_ty_node(output), DepEdge.ret())

        # Instances that still mention their own parameters
        if any(has_params(a) for a in generic_args) or (api.type_params and not generic_args):
            for param in api.type_params:
                self.add_edge(api_index, self.get_node(DepNode.generic_node(path, param.name)), DepEdge.generic())

        trace(f"add_api {node}")
        return any(self.nodes[i].is_ty for i in range(num_nodes, len(self.nodes)))

    def is_api_included(self, api: ApiSig) -> bool:
        if self.config.pub_only and not api.is_pub:
            return False
        if api.is_unsafe and not self.config.include_unsafe:
            return False
        if api.is_drop and not self.config.include_drop:
            return False
        if api.has_const_generic and self.config.ignore_const_generic:
            return False
        return True

    def build(self) -> "ApiDepGraph":
        """Add every included catalog API, resolving generics if configured."""
        for api in self.catalog.apis:
            if not self.is_api_included(api):
                debug(f"Skipping API {api.path}")
                continue
            if not api.requires_monomorphization:
                self.add_api(api.path)

        if self.config.resolve_generic:
            resolve_generic_apis(self)

        for api in self.included_apis():
            if api.requires_monomorphization and not self._has_instance(api.path):
                self.add_api(api.path, api.identity_args())

        self.update_transform_edges()
        return self

    def included_apis(self) -> List[ApiSig]:
        return [api for api in self.catalog.apis if self.is_api_included(api)]

    def _has_instance(self, path: str) -> bool:
        return any(n.is_api and n.api == path for n in self.nodes)

    # -------------------------------------------------------------------------
    # Transform edges
    # -------------------------------------------------------------------------

    def update_transform_edges(self) -> None:
        """Materialize transform edges; a no-op unless new type nodes appeared."""
        if not self._transforms_dirty:
            return
        self._transforms_dirty = False
        for index in [i for i, n in enumerate(self.nodes) if n.is_ty]:
            self._add_possible_transform(self.nodes[index].ty, 0, set())
        # Intermediate nodes created above are already expanded
        self._transforms_dirty = False

    def _add_possible_transform(self, current: Ty, depth: int, visited: Set[Ty]) -> Optional[int]:
        if depth > 0:
            existing = self.find_ty_node(current)
            if existing is not None:
                return existing
        if depth >= MAX_TRANSFORM_DEPTH or current in visited:
            return None
        visited.add(current)

        result = None
        for kind in TransformKind:
            next_ty = kind.apply(current)
            if next_ty is None:
                continue
            next_index = self._add_possible_transform(next_ty, depth + 1, visited)
            if next_index is not None:
                current_index = self.get_ty_node(current)
                if current_index != next_index:
                    self.add_edge_once(current_index, next_index, DepEdge.of_transform(kind))
                    result = current_index
        return result

    def _transforms(self, edge_ids: Iterable[int], endpoint: int) -> List[Tuple[Ty, TransformKind]]:
        found = []
        for edge_id in edge_ids:
            src, dst, edge = self.edges[edge_id]
            if edge.kind == EDGE_TRANSFORM:
                other = dst if endpoint == 1 else src
                found.append((self.nodes[other].ty, edge.transform))
        return found

    def eligible_transforms_to(self, ty: Ty) -> List[Tuple[Ty, TransformKind]]:
        """(source type, kind) for every transform edge ending at `ty`."""
        index = self.find_ty_node(ty)
        if index is None:
            return []
        return self._transforms(self._in[index], 0)

    def eligible_transforms_from(self, ty: Ty) -> List[Tuple[Ty, TransformKind]]:
        """(target type, kind) for every transform edge starting at `ty`."""
        index = self.find_ty_node(ty)
        if index is None:
            return []
        return self._transforms(self._out[index], 1)

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def api_nodes(self) -> List[int]:
        return [i for i, n in enumerate(self.nodes) if n.is_api]

    def arg_types(self, api_index: int) -> List[Ty]:
        args = []
        for edge_id in self._in[api_index]:
            src, _, edge = self.edges[edge_id]
            if edge.kind == EDGE_ARG:
                args.append((edge.index, self.nodes[src].ty))
        return [ty for _, ty in sorted(args, key=lambda a: a[0])]

    def eligible_nodes_with(self, available: Iterable[Ty]) -> List[int]:
        """
        API nodes whose every argument type is fuzzable or available, plus
        type nodes one hop away from an available type.
        """
        avail = {erase_regions(t) for t in available}
        result = []
        for index in self.api_nodes():
            if all(self.cache.is_fuzzable(t) or t in avail for t in self.arg_types(index)):
                result.append(index)
        seen: Set[int] = set()
        for ty in avail:
            src = self.find_ty_node(ty)
            if src is None:
                continue
            for edge_id in self._out[src]:
                dst = self.edges[edge_id][1]
                if self.nodes[dst].is_ty and dst not in seen:
                    seen.add(dst)
                    result.append(dst)
        return result

    def statistics(self) -> Dict[str, int]:
        stats = {"api": 0, "ty": 0, "generic": 0}
        for node in self.nodes:
            stats[node.kind] += 1
        stats["edges"] = len(self.edges)
        stats["transform_edges"] = sum(1 for _, _, e in self.edges if e.kind == EDGE_TRANSFORM)
        return stats

    def statistics_str(self) -> str:
        s = self.statistics()
        return (
            f"API: {s['api']}, Ty: {s['ty']}, Generic: {s['generic']}, "
            f"Edges: {s['edges']} (transform: {s['transform_edges']})"
        )

    # -------------------------------------------------------------------------
    # Dumps
    # -------------------------------------------------------------------------

    def to_dot(self) -> str:
        nodes = [
            {"id": i, "label": str(n), "color": _NODE_COLORS[n.kind], "shape": "box"} for i, n in enumerate(self.nodes)
        ]
        edges = [
            {"src": src, "dst": dst, "label": str(edge), "color": _EDGE_COLORS[edge.kind]}
            for src, dst, edge in self.edges
        ]
        return render("graph.dot.j2", name="api_graph", nodes=nodes, edges=edges)

    def dump_to_dot(self, path: Union[str, Path]) -> None:
        Path(path).write_text(self.to_dot(), encoding="utf-8")

    def to_json(self) -> Dict[str, list]:
        return {
            "nodes": [{"id": i, "kind": n.kind, "label": str(n)} for i, n in enumerate(self.nodes)],
            "edges": [{"from": src, "to": dst, "kind": str(edge)} for src, dst, edge in self.edges],
        }

    def dump_to_json(self, path: Union[str, Path]) -> None:
        with open(path, "w", encoding="utf-8") as f:
            json.dump(self.to_json(), f, indent=2)
