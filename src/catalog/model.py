"""
API catalog of the library under test.

The catalog is produced by an external collaborator and lists, in a fixed
order, every public API with its signature and generics, plus the ADT
definitions needed to classify and project types.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Tuple

from core.utils import get_simple_name, names_match
from rty.types import Adt, Param, Region, Ty, UNIT
from rty.utils import erase_regions, substitute_params, substitute_regions

GENERIC_TYPE = "type"
GENERIC_LIFETIME = "lifetime"
GENERIC_CONST = "const"


@dataclass(frozen=True)
class GenericParamDef:
    name: str
    kind: str = GENERIC_TYPE
    bounds: Tuple[str, ...] = ()


@dataclass
class FieldDef:
    name: str
    ty: Ty
    is_pub: bool = True


@dataclass
class VariantDef:
    name: str
    fields: List[FieldDef] = field(default_factory=list)

    @property
    def is_tuple_like(self) -> bool:
        return bool(self.fields) and all(f.name.isdigit() for f in self.fields)


@dataclass
class AdtDef:
    path: str
    kind: str = "struct"  # struct | enum | union
    generics: List[GenericParamDef] = field(default_factory=list)
    fields: List[FieldDef] = field(default_factory=list)
    variants: List[VariantDef] = field(default_factory=list)
    traits: Set[str] = field(default_factory=set)

    @property
    def name(self) -> str:
        return get_simple_name(self.path)

    @property
    def is_struct(self) -> bool:
        return self.kind == "struct"

    @property
    def is_enum(self) -> bool:
        return self.kind == "enum"

    def field_ty(self, index: int, instance: Adt) -> Ty:
        """Type of field `index` with the instance's generic arguments substituted."""
        fdef = self.fields[index]
        type_names = [g.name for g in self.generics if g.kind == GENERIC_TYPE]
        lifetime_names = [g.name for g in self.generics if g.kind == GENERIC_LIFETIME]
        ty = substitute_params(fdef.ty, dict(zip(type_names, instance.type_args)))
        regions: Dict[str, Region] = dict(zip(lifetime_names, instance.region_args))
        return substitute_regions(ty, regions)


@dataclass
class ApiSig:
    """One callable API: path, parsed signature and generics."""

    path: str
    inputs: Tuple[Ty, ...] = ()
    output: Ty = UNIT
    generics: List[GenericParamDef] = field(default_factory=list)
    # where-clause region bounds: ('a, 'b) means 'a: 'b
    outlives: List[Tuple[str, str]] = field(default_factory=list)
    is_pub: bool = True
    is_unsafe: bool = False
    is_drop: bool = False

    @property
    def name(self) -> str:
        return get_simple_name(self.path)

    @property
    def arity(self) -> int:
        return len(self.inputs)

    @property
    def type_params(self) -> List[GenericParamDef]:
        return [g for g in self.generics if g.kind == GENERIC_TYPE]

    @property
    def has_const_generic(self) -> bool:
        return any(g.kind == GENERIC_CONST for g in self.generics)

    @property
    def requires_monomorphization(self) -> bool:
        return any(g.kind in (GENERIC_TYPE, GENERIC_CONST) for g in self.generics)

    def identity_args(self) -> Tuple[Ty, ...]:
        """Generic args that instantiate the API with its own parameters."""
        return tuple(Param(g.name) for g in self.type_params)

    def instantiate(self, generic_args: Tuple[Ty, ...]) -> Tuple[Tuple[Ty, ...], Ty]:
        """Signature with type parameters replaced by `generic_args`."""
        if not generic_args:
            return self.inputs, self.output
        mapping = dict(zip((g.name for g in self.type_params), generic_args))
        inputs = tuple(substitute_params(t, mapping) for t in self.inputs)
        return inputs, substitute_params(self.output, mapping)


@dataclass
class Catalog:
    crate_name: str
    crate_path: str = "."
    apis: List[ApiSig] = field(default_factory=list)
    adts: Dict[str, AdtDef] = field(default_factory=dict)
    # (trait simple name, region-erased type)
    trait_impls: Set[Tuple[str, Ty]] = field(default_factory=set)
    _by_path: Dict[str, ApiSig] = field(default_factory=dict, repr=False)

    def __post_init__(self):
        for api in self.apis:
            self._by_path.setdefault(api.path, api)

    def add_api(self, api: ApiSig) -> None:
        self.apis.append(api)
        self._by_path.setdefault(api.path, api)

    def api(self, path: str) -> ApiSig:
        return self._by_path[path]

    def has_api(self, path: str) -> bool:
        return path in self._by_path

    def adt_def(self, path: str) -> Optional[AdtDef]:
        found = self.adts.get(path)
        if found is not None:
            return found
        for candidate_path, adt in self.adts.items():
            if names_match(candidate_path, path):
                return adt
        return None

    def has_impl(self, trait: str, ty: Ty) -> bool:
        """Explicitly listed (trait, type) implementation."""
        return (trait, erase_regions(ty)) in self.trait_impls
