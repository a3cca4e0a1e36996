"""
Type predicates and transformations: region erasure, substitution,
fuzzability, trait knowledge and field projection.
"""

from typing import TYPE_CHECKING, Callable, Dict, Iterator, List, Optional, Set

from rty.types import (
    STR,
    Adt,
    Array,
    GenericArg,
    Infer,
    Never,
    Param,
    Prim,
    RE_ERASED,
    RawPtr,
    Ref,
    Region,
    Slice,
    Str,
    TupleTy,
    Ty,
    is_std_adt,
    is_string,
    is_unit,
    is_vec,
)

if TYPE_CHECKING:
    from catalog.model import Catalog

# Types always available to generic resolution and as literal inputs
PRELUDE_TYS: List[Ty] = [
    Prim("bool"),
    Prim("char"),
    Prim("u8"),
    Prim("i8"),
    Prim("i32"),
    Prim("u32"),
    Prim("i64"),
    Prim("u64"),
    Prim("f32"),
    Prim("f64"),
    STR,
    Adt("String"),
]

# Fallback instantiations for generic parameters nothing else constrains
CANDIDATE_TYS: List[Ty] = [
    Prim("bool"),
    Prim("char"),
    Prim("u8"),
    Prim("i8"),
    Prim("i32"),
    Prim("u32"),
    Prim("i64"),
    Prim("u64"),
    Prim("f32"),
    Prim("f64"),
]


class ProjectionError(ValueError):
    """Field path does not lead through struct fields."""

    pass


# =============================================================================
# Folding
# =============================================================================


def fold_ty(
    ty: Ty,
    on_ty: Optional[Callable[[Ty], Optional[Ty]]] = None,
    on_region: Optional[Callable[[Region], Region]] = None,
) -> Ty:
    """
    Rebuild `ty` bottom-up. `on_ty` may return a replacement for a node (its
    children are then not visited); `on_region` maps every region.
    """
    if on_ty is not None:
        replaced = on_ty(ty)
        if replaced is not None:
            return replaced

    def rec(t: Ty) -> Ty:
        return fold_ty(t, on_ty, on_region)

    def arg(a: GenericArg) -> GenericArg:
        if isinstance(a, Region):
            return on_region(a) if on_region else a
        if isinstance(a, Ty):
            return rec(a)
        return a

    if isinstance(ty, Ref):
        region = on_region(ty.region) if on_region else ty.region
        return Ref(region, rec(ty.inner), ty.mutable)
    if isinstance(ty, RawPtr):
        return RawPtr(rec(ty.inner), ty.mutable)
    if isinstance(ty, Adt):
        if not ty.args:
            return ty
        return Adt(ty.path, tuple(arg(a) for a in ty.args))
    if isinstance(ty, TupleTy):
        return TupleTy(tuple(rec(e) for e in ty.elems))
    if isinstance(ty, Array):
        return Array(rec(ty.inner), ty.length)
    if isinstance(ty, Slice):
        return Slice(rec(ty.inner))
    return ty


def erase_regions(ty: Ty) -> Ty:
    return fold_ty(ty, on_region=lambda _r: RE_ERASED)


def is_ty_eq(lhs: Ty, rhs: Ty) -> bool:
    """Type equality modulo regions."""
    return erase_regions(lhs) == erase_regions(rhs)


def substitute_params(ty: Ty, mapping: Dict[str, Ty]) -> Ty:
    if not mapping:
        return ty
    return fold_ty(ty, on_ty=lambda t: mapping.get(t.name) if isinstance(t, Param) else None)


def substitute_regions(ty: Ty, mapping: Dict[str, Region]) -> Ty:
    if not mapping:
        return ty
    return fold_ty(ty, on_region=lambda r: mapping.get(r.name, r) if r.name else r)


def substitute_infer(ty: Ty, values: List[Optional[Ty]]) -> Ty:
    def on_ty(t: Ty) -> Optional[Ty]:
        if isinstance(t, Infer) and values[t.index] is not None:
            return values[t.index]
        return None

    return fold_ty(ty, on_ty=on_ty)


# =============================================================================
# Walking
# =============================================================================


def walk_ty(ty: Ty) -> Iterator[Ty]:
    """Pre-order walk over `ty` and every type nested in it."""
    yield ty
    if isinstance(ty, (Ref, RawPtr, Array, Slice)):
        yield from walk_ty(ty.inner)
    elif isinstance(ty, Adt):
        for a in ty.type_args:
            yield from walk_ty(a)
    elif isinstance(ty, TupleTy):
        for e in ty.elems:
            yield from walk_ty(e)


def walk_regions(ty: Ty) -> Iterator[Region]:
    """Every region of `ty` in positional (pre-order, left to right) order."""
    if isinstance(ty, Ref):
        yield ty.region
        yield from walk_regions(ty.inner)
    elif isinstance(ty, (RawPtr, Array, Slice)):
        yield from walk_regions(ty.inner)
    elif isinstance(ty, Adt):
        for a in ty.args:
            if isinstance(a, Region):
                yield a
            elif isinstance(a, Ty):
                yield from walk_regions(a)
    elif isinstance(ty, TupleTy):
        for e in ty.elems:
            yield from walk_regions(e)


def peel_refs(ty: Ty) -> Ty:
    while isinstance(ty, Ref):
        ty = ty.inner
    return ty


def ty_depth(ty: Ty) -> int:
    if isinstance(ty, (Ref, RawPtr, Array, Slice)):
        return 1 + ty_depth(ty.inner)
    if isinstance(ty, Adt):
        return 1 + max((ty_depth(a) for a in ty.type_args), default=0)
    if isinstance(ty, TupleTy):
        return 1 + max((ty_depth(e) for e in ty.elems), default=0)
    return 1


def ty_complexity(ty: Ty) -> int:
    """Number of type nodes in `ty`."""
    return sum(1 for _ in walk_ty(ty))


def contains_raw_ptr(ty: Ty) -> bool:
    return any(isinstance(t, RawPtr) for t in walk_ty(ty))


def has_params(ty: Ty) -> bool:
    return any(isinstance(t, Param) for t in walk_ty(ty))


def has_infer(ty: Ty) -> bool:
    return any(isinstance(t, Infer) for t in walk_ty(ty))


def is_owned_ty(ty: Ty) -> bool:
    """Value that owns its storage (not a reference, pointer or unit)."""
    return not isinstance(ty, (Ref, RawPtr)) and not is_unit(ty)


# =============================================================================
# Trait knowledge
# =============================================================================

_STRUCTURAL_TRAITS = {"Copy", "Clone", "Debug", "Default", "PartialEq", "Eq", "PartialOrd", "Ord", "Hash", "Send", "Sync"}
_PRIM_TRAITS = _STRUCTURAL_TRAITS | {"Display", "Sized"}
_STR_TRAITS = {"Debug", "Display", "PartialEq", "Eq", "PartialOrd", "Ord", "Hash", "Send", "Sync"}
_RAW_PTR_TRAITS = {"Copy", "Clone", "Debug", "PartialEq", "Eq", "PartialOrd", "Ord", "Hash", "Sized"}
_STRING_TRAITS = {"Clone", "Debug", "Display", "Default", "PartialEq", "Eq", "PartialOrd", "Ord", "Hash", "Send", "Sync", "Sized"}
# Containers forwarding a trait to their type arguments
_FORWARDING_ADTS = {
    "Vec": _STRUCTURAL_TRAITS - {"Copy"} | {"Sized"},
    "Box": _STRUCTURAL_TRAITS - {"Copy"} | {"Sized", "Display"},
    "Option": _STRUCTURAL_TRAITS | {"Sized"},
    "Result": _STRUCTURAL_TRAITS - {"Default"} | {"Sized"},
}


def implements_trait(trait: str, ty: Ty, catalog: Optional["Catalog"] = None) -> bool:
    """Best-effort check that `ty: trait` holds."""
    if isinstance(ty, Prim):
        return trait in _PRIM_TRAITS
    if isinstance(ty, Str):
        return trait in _STR_TRAITS
    if isinstance(ty, Never):
        return True
    if isinstance(ty, Ref):
        if trait == "Sized":
            return True
        if trait in ("Copy", "Clone"):
            return not ty.mutable
        return implements_trait(trait, ty.inner, catalog)
    if isinstance(ty, RawPtr):
        return trait in _RAW_PTR_TRAITS
    if isinstance(ty, (TupleTy, Array)):
        if trait == "Sized":
            return True
        if trait == "Default" and isinstance(ty, Array) and ty.length > 32:
            return False
        elems = ty.elems if isinstance(ty, TupleTy) else (ty.inner,)
        return trait in _STRUCTURAL_TRAITS and all(implements_trait(trait, e, catalog) for e in elems)
    if isinstance(ty, Slice):
        return trait in _STRUCTURAL_TRAITS - {"Copy", "Clone", "Default"} and implements_trait(trait, ty.inner, catalog)
    if isinstance(ty, Adt):
        if is_string(ty):
            return trait in _STRING_TRAITS
        for name, traits in _FORWARDING_ADTS.items():
            if is_std_adt(ty, name):
                if trait not in traits:
                    return False
                return all(implements_trait(trait, a, catalog) for a in ty.type_args)
        if catalog is None:
            return False
        if catalog.has_impl(trait, ty):
            return True
        adt = catalog.adt_def(ty.path)
        if adt is None:
            return False
        if trait == "Sized":
            return True
        if trait in adt.traits:
            if trait in _STRUCTURAL_TRAITS:
                # derive(...) bounds each type parameter by the same trait
                return all(implements_trait(trait, a, catalog) for a in ty.type_args)
            return True
        return False
    return False


def is_copy_ty(ty: Ty, catalog: Optional["Catalog"] = None) -> bool:
    return implements_trait("Copy", ty, catalog)


def is_debug_ty(ty: Ty, catalog: Optional["Catalog"] = None) -> bool:
    return implements_trait("Debug", ty, catalog)


# =============================================================================
# Fuzzability
# =============================================================================


def is_fuzzable_ty(ty: Ty, catalog: Optional["Catalog"] = None, _seen: Optional[Set[Ty]] = None) -> bool:
    """Whether a value of `ty` can be written down as a literal."""
    if isinstance(ty, (Prim, Str)):
        return True
    if isinstance(ty, Ref):
        if ty.mutable and isinstance(ty.inner, Str):
            return False
        return is_fuzzable_ty(ty.inner, catalog, _seen)
    if isinstance(ty, (Array, Slice)):
        return is_fuzzable_ty(ty.inner, catalog, _seen)
    if isinstance(ty, TupleTy):
        return all(is_fuzzable_ty(e, catalog, _seen) for e in ty.elems)
    if not isinstance(ty, Adt):
        return False
    if is_string(ty):
        return True
    if is_vec(ty):
        return bool(ty.type_args) and is_fuzzable_ty(ty.type_args[0], catalog, _seen)
    if catalog is None:
        return False
    adt = catalog.adt_def(ty.path)
    if adt is None:
        return False

    seen = _seen if _seen is not None else set()
    key = erase_regions(ty)
    if key in seen:
        # recursive ADT
        return False
    seen.add(key)
    try:
        if adt.is_struct:
            return all(f.is_pub for f in adt.fields) and all(
                is_fuzzable_ty(adt.field_ty(i, ty), catalog, seen) for i in range(len(adt.fields))
            )
        if adt.is_enum:
            return fuzzable_variant(ty, catalog, seen) is not None
        return False
    finally:
        seen.discard(key)


def fuzzable_variant(ty: Adt, catalog: "Catalog", _seen: Optional[Set[Ty]] = None) -> Optional[int]:
    """Index of the first enum variant whose fields are all fuzzable."""
    adt = catalog.adt_def(ty.path)
    if adt is None:
        return None
    seen = _seen if _seen is not None else set()
    for index, variant in enumerate(adt.variants):
        if all(is_fuzzable_ty(variant_field_ty(adt, f.ty, ty), catalog, seen) for f in variant.fields):
            return index
    return None


def variant_field_ty(adt, field_ty: Ty, instance: Adt) -> Ty:
    """Type of an enum variant field for a concrete instance of the enum."""
    type_names = [g.name for g in adt.generics if g.kind == "type"]
    return substitute_params(field_ty, dict(zip(type_names, instance.type_args)))


# =============================================================================
# Projection
# =============================================================================


def ty_project_to(ty: Ty, field_path: List[int], catalog: "Catalog") -> Ty:
    """Follow `field_path` through struct fields, peeling references before each step."""
    for index in field_path:
        ty = peel_refs(ty)
        if not isinstance(ty, Adt):
            raise ProjectionError(f"cannot project field {index} out of non-struct type {ty}")
        adt = catalog.adt_def(ty.path)
        if adt is None or not adt.is_struct:
            raise ProjectionError(f"{ty} is not a known struct")
        if index >= len(adt.fields):
            raise ProjectionError(f"{ty} has no field {index}")
        ty = adt.field_ty(index, ty)
    return ty

