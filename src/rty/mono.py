"""
Generic resolution by unification.

A `Mono` is one (possibly partial) instantiation of an API's type
parameters; a `MonoSet` is the set of candidate instantiations. Resolution
unifies every generic input position against the available types and merges
the per-position candidates, so the whole search is plain set algebra.
"""

from dataclasses import dataclass
from itertools import product
from typing import TYPE_CHECKING, Iterable, Iterator, List, Optional, Tuple

from core.utils import get_simple_name, names_match, trace
from rty.types import Adt, Array, Infer, Param, Prim, RawPtr, Ref, Slice, TupleTy, Ty
from rty.utils import CANDIDATE_TYS, erase_regions, fold_ty, has_infer, implements_trait

if TYPE_CHECKING:
    from catalog.model import ApiSig, Catalog

MAX_MONOS = 256


@dataclass(frozen=True)
class Mono:
    values: Tuple[Optional[Ty], ...]

    @property
    def has_unbound(self) -> bool:
        return any(v is None for v in self.values)

    def merge(self, other: "Mono") -> Optional["Mono"]:
        """Combine two partial solutions; None if they bind a parameter differently."""
        merged = []
        for lhs, rhs in zip(self.values, other.values):
            if lhs is not None and rhs is not None and lhs != rhs:
                return None
            merged.append(lhs if lhs is not None else rhs)
        return Mono(tuple(merged))

    def __str__(self) -> str:
        return "(" + ", ".join(str(v) if v is not None else "_" for v in self.values) + ")"


class MonoSet:
    def __init__(self, monos: Iterable[Mono] = ()):
        self.monos: List[Mono] = []
        for mono in monos:
            self.insert(mono)

    @classmethod
    def unconstrained(cls, n: int) -> "MonoSet":
        """Single solution with every parameter unbound."""
        return cls([Mono((None,) * n)])

    def insert(self, mono: Mono) -> None:
        if mono not in self.monos:
            self.monos.append(mono)

    def is_empty(self) -> bool:
        return not self.monos

    def __len__(self) -> int:
        return len(self.monos)

    def __iter__(self) -> Iterator[Mono]:
        return iter(self.monos)

    def merge(self, other: "MonoSet") -> "MonoSet":
        """Pairwise merge; incompatible pairs are discarded."""
        result = MonoSet()
        for lhs in self.monos:
            for rhs in other.monos:
                merged = lhs.merge(rhs)
                if merged is not None:
                    result.insert(merged)
                    if len(result) >= MAX_MONOS:
                        return result
        return result

    def filter_unbound(self) -> "MonoSet":
        return MonoSet(m for m in self.monos if not m.has_unbound)

    def instantiate_unbound(self, candidates: List[Ty]) -> "MonoSet":
        """Fill every unbound parameter with each of `candidates`."""
        result = MonoSet()
        for mono in self.monos:
            choices = [[v] if v is not None else candidates for v in mono.values]
            for values in product(*choices):
                result.insert(Mono(tuple(values)))
                if len(result) >= MAX_MONOS:
                    return result
        return result

    def filter_by_trait_bound(self, api: "ApiSig", catalog: Optional["Catalog"]) -> "MonoSet":
        params = api.type_params

        def satisfied(mono: Mono) -> bool:
            for param, value in zip(params, mono.values):
                if value is None:
                    continue
                for bound in param.bounds:
                    if not implements_trait(get_simple_name(bound), value, catalog):
                        return False
            return True

        return MonoSet(m for m in self.monos if satisfied(m))

    def __str__(self) -> str:
        return "{" + ", ".join(str(m) for m in self.monos) + "}"


# =============================================================================
# Unification
# =============================================================================


def unify(formal: Ty, actual: Ty, values: List[Optional[Ty]]) -> bool:
    """
    Unify `formal` (containing Infer vars) with the concrete `actual`,
    recording bindings in `values`. Regions are ignored.
    """
    if isinstance(formal, Infer):
        actual = erase_regions(actual)
        bound = values[formal.index]
        if bound is None:
            values[formal.index] = actual
            return True
        return bound == actual
    if type(formal) is not type(actual):
        return False
    if isinstance(formal, (Ref, RawPtr)):
        return formal.mutable == actual.mutable and unify(formal.inner, actual.inner, values)
    if isinstance(formal, Adt):
        if not names_match(formal.path, actual.path):
            return False
        if len(formal.type_args) != len(actual.type_args):
            return False
        return all(unify(f, a, values) for f, a in zip(formal.type_args, actual.type_args))
    if isinstance(formal, TupleTy):
        if len(formal.elems) != len(actual.elems):
            return False
        return all(unify(f, a, values) for f, a in zip(formal.elems, actual.elems))
    if isinstance(formal, Array):
        return formal.length == actual.length and unify(formal.inner, actual.inner, values)
    if isinstance(formal, Slice):
        return unify(formal.inner, actual.inner, values)
    if isinstance(formal, (Prim, Param)):
        return formal == actual
    # str, !
    return True


def params_to_infer(ty: Ty, param_names: List[str]) -> Ty:
    index = {name: i for i, name in enumerate(param_names)}

    def on_ty(t: Ty) -> Optional[Ty]:
        if isinstance(t, Param) and t.name in index:
            return Infer(index[t.name])
        return None

    return fold_ty(ty, on_ty=on_ty)


def resolve_mono(
    api: "ApiSig",
    available: Iterable[Ty],
    catalog: Optional["Catalog"] = None,
    free_resolution: bool = False,
) -> MonoSet:
    """
    Candidate instantiations of `api`'s type parameters given the `available`
    types. Parameters no input constrains are filled from CANDIDATE_TYS only
    with `free_resolution`; otherwise such solutions are dropped.
    """
    names = [g.name for g in api.type_params]
    available = list(available)
    result = MonoSet.unconstrained(len(names))
    for input_ty in api.inputs:
        formal = params_to_infer(input_ty, names)
        if not has_infer(formal):
            continue
        per_input = MonoSet()
        for actual in available:
            values: List[Optional[Ty]] = [None] * len(names)
            if unify(formal, actual, values):
                per_input.insert(Mono(tuple(values)))
        result = result.merge(per_input)
        if result.is_empty():
            trace(f"no instantiation of {api.path} for input {input_ty}")
            return result

    if free_resolution:
        result = result.instantiate_unbound(CANDIDATE_TYS)
    result = result.filter_unbound()
    return result.filter_by_trait_bound(api, catalog)
