"""
Region edges implied by an API signature.

The formal signature's regions are flattened positionally (inputs first,
then the output). When a call is appended, the same flattening of the
actual argument and return variable types yields the concrete Rids, and
each pattern becomes an edge between them.

Edges point from the dependent region to the region it borrows from:
- an output position sharing a lifetime with input positions depends on them
- input positions sharing a lifetime depend on each other
- `where 'a: 'b` makes every 'b position depend on every 'a position
"""

from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple

from catalog.model import ApiSig
from core.utils import debug
from lifetime.region import RegionGraph
from rty.types import NAMED, Region, Ty
from rty.utils import walk_regions


@dataclass(frozen=True)
class EdgePattern:
    from_pos: int
    to_pos: int


@dataclass
class FnPatterns:
    num_regions: int
    patterns: List[EdgePattern]


def _flatten(inputs: Sequence[Ty], output: Ty) -> Tuple[List[Region], int]:
    """All regions of the signature and the index where the output starts."""
    regions: List[Region] = []
    for ty in inputs:
        regions.extend(walk_regions(ty))
    output_start = len(regions)
    regions.extend(walk_regions(output))
    return regions, output_start


def extract_patterns(api: ApiSig, generic_args: Tuple[Ty, ...] = ()) -> FnPatterns:
    inputs, output = api.instantiate(generic_args)
    regions, output_start = _flatten(inputs, output)

    positions: Dict[str, List[int]] = {}
    for pos, region in enumerate(regions):
        if region.kind == NAMED:
            positions.setdefault(region.name, []).append(pos)

    patterns: List[EdgePattern] = []

    def push(src: int, dst: int) -> None:
        pattern = EdgePattern(src, dst)
        if src != dst and pattern not in patterns:
            patterns.append(pattern)

    for group in positions.values():
        ins = [p for p in group if p < output_start]
        outs = [p for p in group if p >= output_start]
        for q in outs:
            for p in ins:
                push(q, p)
        for p1 in ins:
            for p2 in ins:
                push(p1, p2)

    for longer, shorter in api.outlives:
        for pb in positions.get(shorter, []):
            for pa in positions.get(longer, []):
                push(pb, pa)

    return FnPatterns(len(regions), patterns)


class PatternProvider:
    """Caches signature patterns per API instance."""

    def __init__(self):
        self._cache: Dict[Tuple[str, Tuple[Ty, ...]], FnPatterns] = {}

    def get_patterns(self, api: ApiSig, generic_args: Tuple[Ty, ...] = ()) -> FnPatterns:
        key = (api.path, tuple(generic_args))
        if key not in self._cache:
            self._cache[key] = extract_patterns(api, generic_args)
        return self._cache[key]

    def apply(
        self,
        api: ApiSig,
        generic_args: Tuple[Ty, ...],
        arg_tys: Sequence[Ty],
        ret_ty: Ty,
        graph: RegionGraph,
    ) -> int:
        """Add the signature's edges between the actual regions; returns edges added."""
        fn_patterns = self.get_patterns(api, generic_args)
        if not fn_patterns.patterns:
            return 0
        real, _ = _flatten(arg_tys, ret_ty)
        if len(real) != fn_patterns.num_regions:
            debug(f"region shape mismatch for {api.path}: {fn_patterns.num_regions} formal vs {len(real)} actual")
            return 0
        added = 0
        for pattern in fn_patterns.patterns:
            src, dst = real[pattern.from_pos], real[pattern.to_pos]
            if src.is_static or not (src.is_var and (dst.is_var or dst.is_static)):
                continue
            if graph.add_edge_by_region(src, dst):
                added += 1
        return added
