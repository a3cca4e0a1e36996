"""
Build-time resolution of generic APIs.

Starting from the prelude types and the outputs of non-generic APIs,
generic inputs are unified against everything reachable so far (plus
references to it). Each new instantiation can produce new reachable
output types, so the search repeats until nothing changes.
"""

from typing import TYPE_CHECKING, List, Set

from core.utils import debug, trace
from rty.mono import resolve_mono
from rty.types import RE_ERASED, Ref, Ty, is_unit
from rty.utils import PRELUDE_TYS, erase_regions, ty_depth

if TYPE_CHECKING:
    from apidep.graph import ApiDepGraph

MAX_ROUNDS = 10
MAX_CANDIDATE_DEPTH = 4


def _candidates(reachable: Set[Ty]) -> List[Ty]:
    result = set(reachable)
    for ty in reachable:
        result.add(Ref(RE_ERASED, ty, False))
        result.add(Ref(RE_ERASED, ty, True))
    return sorted((t for t in result if ty_depth(t) <= MAX_CANDIDATE_DEPTH), key=str)


def resolve_generic_apis(graph: "ApiDepGraph", free_resolution: bool = False) -> int:
    """Add resolved instances of generic APIs to `graph`. Returns the number added."""
    catalog = graph.catalog
    reachable: Set[Ty] = {erase_regions(t) for t in PRELUDE_TYS}
    for api in graph.included_apis():
        if not api.requires_monomorphization and not is_unit(api.output):
            reachable.add(erase_regions(api.output))

    generic_apis = [api for api in graph.included_apis() if api.type_params]
    added = 0
    for round_no in range(MAX_ROUNDS):
        candidates = _candidates(reachable)
        new_reachable: Set[Ty] = set()
        for api in generic_apis:
            for mono in resolve_mono(api, candidates, catalog, free_resolution):
                if graph.has_api(api.path, mono.values):
                    continue
                graph.add_api(api.path, mono.values)
                added += 1
                trace(f"resolved {api.path} with {mono}")
                _, output = api.instantiate(mono.values)
                output = erase_regions(output)
                if not is_unit(output) and output not in reachable:
                    new_reachable.add(output)
        if not new_reachable:
            break
        debug(f"generic resolution round {round_no}: {len(new_reachable)} new types")
        reachable |= new_reachable

    debug(f"Resolved {added} generic API instance(s)")
    return added
