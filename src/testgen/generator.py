"""
Lifetime-guided test generator.

Each step either appends an API call whose inputs can all be provided, or
a transform (reference / unwrap) of an available var. After every call the
unsoundness injector may add drops. Generation stops at the statement
ceiling or when no step is possible.
"""

from dataclasses import dataclass
from typing import List, Optional, Set, Tuple

from alias.facts import AliasMap
from apidep.graph import ApiDepGraph, TransformKind
from catalog.model import ApiSig, Catalog
from core.config import LtGenConfig
from core.rng import RandomSource, SeededRandom
from core.utils import debug, trace
from lifetime.pattern import PatternProvider
from rty.mono import resolve_mono
from rty.types import Ref, Ty
from rty.utils import erase_regions, is_ty_eq
from testgen.ltcontext import LtContext
from testgen.safety import is_api_vulnerable
from testgen.stmt import DUMMY_INPUT_VAR, ApiCall, Var

MAX_PICK_ATTEMPTS = 5


@dataclass(frozen=True)
class Provider:
    """A var for one input position, optionally borrowed first."""

    var: Var
    borrow: Optional[TransformKind] = None


@dataclass
class CallCandidate:
    fn: str
    generic_args: Tuple[Ty, ...]
    providers: List[Provider]


class LtGen:
    def __init__(
        self,
        catalog: Catalog,
        api_graph: ApiDepGraph,
        alias_map: AliasMap,
        config: Optional[LtGenConfig] = None,
        rng: Optional[RandomSource] = None,
    ):
        self.catalog = catalog
        self.api_graph = api_graph
        self.alias_map = alias_map
        self.config = config or LtGenConfig()
        self.rng = rng or SeededRandom(self.config.seed)
        self.patterns = PatternProvider()
        # Across all generated cases
        self.covered_api: Set[str] = set()
        self.lack_of_alias: Set[str] = set()
        self.dropped_count = 0
        self.num_cases = 0
        self.vulnerable_apis = [
            api.path for api in api_graph.included_apis() if is_api_vulnerable(api.path, catalog, alias_map)
        ]

    def new_context(self) -> LtContext:
        return LtContext(self.catalog, self.alias_map, self.api_graph.cache, self.patterns)

    def gen(self) -> LtContext:
        cx = self.new_context()
        iteration = 0
        while cx.num_stmt() < self.config.max_complexity and iteration < self.config.max_iteration:
            iteration += 1
            steps = [self.try_call_step, self.try_transform_step]
            # Calls first two times out of three
            if not self.rng.ratio(2, 3):
                steps.reverse()
            if not any(step(cx) for step in steps):
                debug("no eligible API or transform, stopping")
                break
        cx.try_use_all_available_vars()
        self._record(cx)
        return cx

    # -------------------------------------------------------------------------
    # Calls
    # -------------------------------------------------------------------------

    def try_call_step(self, cx: LtContext) -> bool:
        candidate = self.choose_eligible_api(cx)
        if candidate is None:
            return False
        self.apply_call(cx, candidate)
        cx.try_inject_drop()
        return True

    def available_types(self, cx: LtContext) -> List[Ty]:
        tys: List[Ty] = []
        for var in cx.available_vars():
            ty = erase_regions(cx.type_of(var))
            if ty not in tys:
                tys.append(ty)
        return tys

    def instantiations(self, cx: LtContext, api: ApiSig) -> List[Tuple[Ty, ...]]:
        if not api.requires_monomorphization:
            return [()]
        if api.has_const_generic:
            return []
        monos = resolve_mono(api, self.available_types(cx), self.catalog, self.config.resolve_free_generics)
        if monos.is_empty():
            trace(f"{api.path}: unresolvable generics, skipped")
        return [m.values for m in monos]

    def choose_eligible_api(self, cx: LtContext) -> Optional[CallCandidate]:
        candidates = []
        for api in self.api_graph.included_apis():
            for generic_args in self.instantiations(cx, api):
                if generic_args and self.api_graph.add_api(api.path, generic_args):
                    self.api_graph.update_transform_edges()
                candidate = self.get_eligible_call(cx, api, generic_args)
                if candidate is not None:
                    candidates.append(candidate)
        if not candidates:
            return None
        trace(f"{len(candidates)} eligible call(s)")
        return self.rng.choice(candidates)

    def providers_for(self, cx: LtContext, ty: Ty) -> List[Provider]:
        providers = [Provider(v) for v in cx.all_possible_providers(ty)]
        if isinstance(ty, Ref):
            # Borrow our way to the reference
            for src_ty, kind in self.api_graph.eligible_transforms_to(ty):
                if not kind.is_ref:
                    continue
                for var in cx.available_vars():
                    if is_ty_eq(cx.type_of(var), src_ty):
                        providers.append(Provider(var, kind))
        return providers

    def get_eligible_call(self, cx: LtContext, api: ApiSig, generic_args: Tuple[Ty, ...]) -> Optional[CallCandidate]:
        inputs, _ = api.instantiate(generic_args)
        per_position = []
        for ty in inputs:
            providers = self.providers_for(cx, ty)
            if not providers:
                return None
            per_position.append(providers)
        for _ in range(MAX_PICK_ATTEMPTS):
            picked = [self.rng.choice(p) for p in per_position]
            if self._is_conflict_free(cx, picked):
                return CallCandidate(api.path, generic_args, picked)
        trace(f"{api.path}: conflicting providers")
        return None

    def _is_conflict_free(self, cx: LtContext, picked: List[Provider]) -> bool:
        """No var is consumed twice, or consumed/mutably borrowed while also used elsewhere."""
        moved: Set[Var] = set()
        shared: Set[Var] = set()
        exclusive: Set[Var] = set()
        for provider in picked:
            var = provider.var
            if var == DUMMY_INPUT_VAR:
                continue
            if provider.borrow is None and not cx.is_copy(var):
                if var in moved or var in shared or var in exclusive:
                    return False
                moved.add(var)
            elif provider.borrow is not None and provider.borrow.mutable:
                if var in moved or var in shared or var in exclusive:
                    return False
                exclusive.add(var)
            else:
                if var in moved or var in exclusive:
                    return False
                shared.add(var)
        # Consuming or mutably borrowing a var invalidates vars that depend on it
        for killer in moved | exclusive:
            for provider in picked:
                other = provider.var
                if other == DUMMY_INPUT_VAR or other == killer:
                    continue
                if cx.region_graph.prove(cx.region_of(other), cx.region_of(killer)):
                    return False
        return True

    def apply_call(self, cx: LtContext, candidate: CallCandidate) -> Var:
        args = []
        for provider in candidate.providers:
            if provider.borrow is not None:
                args.append(cx.add_ref_stmt(provider.var, provider.borrow.mutable))
            else:
                args.append(provider.var)
        return cx.add_call_stmt(ApiCall(candidate.fn, tuple(args), candidate.generic_args))

    # -------------------------------------------------------------------------
    # Transforms
    # -------------------------------------------------------------------------

    def try_transform_step(self, cx: LtContext) -> bool:
        options = []
        for var in cx.available_vars():
            for _, kind in self.api_graph.eligible_transforms_from(cx.type_of(var)):
                options.append((var, kind))
        if not options:
            return False
        var, kind = self.rng.choice(options)
        if kind.is_ref:
            cx.add_ref_stmt(var, kind.mutable)
        else:
            cx.add_unwrap_stmt(var)
        return True

    # -------------------------------------------------------------------------
    # Statistics
    # -------------------------------------------------------------------------

    def _record(self, cx: LtContext) -> None:
        self.num_cases += 1
        self.covered_api |= cx.covered_api
        self.lack_of_alias.update(cx.lack_of_alias)
        self.dropped_count += cx.dropped_count

    def statistic_str(self) -> str:
        total = len(self.api_graph.included_apis())
        covered = len(self.covered_api)
        ratio = 100.0 * covered / total if total else 0.0
        lines = [
            f"cases: {self.num_cases}",
            f"covered APIs: {covered}/{total} ({ratio:.2f}%)",
            f"injected drops: {self.dropped_count}",
            f"APIs lacking alias facts: {len(self.lack_of_alias)}",
        ]
        lines.extend(f"    {fn}" for fn in sorted(self.lack_of_alias))
        if self.vulnerable_apis:
            lines.append(f"vulnerable APIs: {', '.join(self.vulnerable_apis)}")
        return "\n".join(lines)
