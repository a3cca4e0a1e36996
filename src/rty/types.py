"""
Rust type model.

Types are immutable, hashable values so they can be used directly as
dictionary keys for interning. Regions live inside types: a `Region` is
either erased, 'static, a named signature lifetime ('a), or a region
variable (Rid) allocated by the region graph.
"""

from dataclasses import dataclass
from typing import Optional, Tuple, Union

from core.utils import get_simple_name

# =============================================================================
# Regions
# =============================================================================

ERASED = "erased"
STATIC = "static"
NAMED = "named"
VAR = "var"


@dataclass(frozen=True)
class Region:
    kind: str
    name: Optional[str] = None  # NAMED only, e.g. "'a"
    rid: Optional[int] = None  # VAR only

    @staticmethod
    def named(name: str) -> "Region":
        return Region(NAMED, name=name)

    @staticmethod
    def var(rid: int) -> "Region":
        return Region(VAR, rid=rid)

    @property
    def is_erased(self) -> bool:
        return self.kind == ERASED

    @property
    def is_static(self) -> bool:
        return self.kind == STATIC

    @property
    def is_var(self) -> bool:
        return self.kind == VAR

    def __str__(self) -> str:
        if self.kind == STATIC:
            return "'static"
        if self.kind == NAMED:
            return self.name or "'_"
        if self.kind == VAR:
            return f"'?{self.rid}"
        return "'_"


RE_ERASED = Region(ERASED)
RE_STATIC = Region(STATIC)


@dataclass(frozen=True)
class ConstArg:
    """Const generic argument, kept as its source text."""

    value: str

    def __str__(self) -> str:
        return self.value


# =============================================================================
# Types
# =============================================================================


class Ty:
    """Base class of all type values."""

    def __str__(self) -> str:
        return ty_to_string(self)


INT_TYPES = frozenset(["i8", "i16", "i32", "i64", "i128", "isize", "u8", "u16", "u32", "u64", "u128", "usize"])
FLOAT_TYPES = frozenset(["f32", "f64"])
PRIM_NAMES = INT_TYPES | FLOAT_TYPES | {"bool", "char"}


@dataclass(frozen=True)
class Prim(Ty):
    name: str

    @property
    def is_int(self) -> bool:
        return self.name in INT_TYPES

    @property
    def is_float(self) -> bool:
        return self.name in FLOAT_TYPES


@dataclass(frozen=True)
class Str(Ty):
    pass


@dataclass(frozen=True)
class Never(Ty):
    pass


@dataclass(frozen=True)
class Ref(Ty):
    region: Region
    inner: Ty
    mutable: bool = False


@dataclass(frozen=True)
class RawPtr(Ty):
    inner: Ty
    mutable: bool = False


@dataclass(frozen=True)
class Adt(Ty):
    path: str
    args: Tuple["GenericArg", ...] = ()

    @property
    def name(self) -> str:
        return get_simple_name(self.path)

    @property
    def type_args(self) -> Tuple[Ty, ...]:
        return tuple(a for a in self.args if isinstance(a, Ty))

    @property
    def region_args(self) -> Tuple[Region, ...]:
        return tuple(a for a in self.args if isinstance(a, Region))


@dataclass(frozen=True)
class TupleTy(Ty):
    elems: Tuple[Ty, ...] = ()

    @property
    def is_unit(self) -> bool:
        return not self.elems


@dataclass(frozen=True)
class Array(Ty):
    inner: Ty
    length: int


@dataclass(frozen=True)
class Slice(Ty):
    inner: Ty


@dataclass(frozen=True)
class Param(Ty):
    """Generic type parameter of an API or ADT (`T`)."""

    name: str


@dataclass(frozen=True)
class Infer(Ty):
    """Unification variable; `index` is the generic parameter position."""

    index: int


GenericArg = Union[Ty, Region, ConstArg]

UNIT = TupleTy(())
STR = Str()


def prim(name: str) -> Prim:
    return Prim(name)


def mk_ref(inner: Ty, mutable: bool = False, region: Region = RE_ERASED) -> Ref:
    return Ref(region, inner, mutable)


def mk_static_str_ref() -> Ref:
    return Ref(RE_STATIC, STR, False)


def is_unit(ty: Ty) -> bool:
    return isinstance(ty, TupleTy) and ty.is_unit


def is_std_adt(ty: Ty, name: str) -> bool:
    """Match std/alloc/core ADTs by simple name (`String`, `Vec`, `Option`, ...)."""
    if not isinstance(ty, Adt):
        return False
    if ty.name != name:
        return False
    if "::" not in ty.path:
        return True
    return ty.path.split("::")[0] in ("std", "alloc", "core")


def is_string(ty: Ty) -> bool:
    return is_std_adt(ty, "String")


def is_vec(ty: Ty) -> bool:
    return is_std_adt(ty, "Vec")


def is_box(ty: Ty) -> bool:
    return is_std_adt(ty, "Box")


def mk_box(inner: Ty) -> Adt:
    return Adt("Box", (inner,))


def mk_vec(inner: Ty) -> Adt:
    return Adt("Vec", (inner,))


# =============================================================================
# Printing
# =============================================================================


def _arg_to_string(arg: GenericArg, erase_regions: bool) -> Optional[str]:
    if isinstance(arg, Region):
        if erase_regions or arg.is_erased:
            return None
        return str(arg)
    if isinstance(arg, Ty):
        return ty_to_string(arg, erase_regions)
    return str(arg)


def ty_to_string(ty: Ty, erase_regions: bool = False) -> str:
    """
    Render a type in Rust syntax.

    With `erase_regions`, lifetimes are omitted (`&'?3 mut u8` -> `&mut u8`),
    which is the form used in synthesized programs.
    """
    if isinstance(ty, Prim):
        return ty.name
    if isinstance(ty, Str):
        return "str"
    if isinstance(ty, Never):
        return "!"
    if isinstance(ty, Ref):
        region = ""
        if not erase_regions and not ty.region.is_erased:
            region = f"{ty.region} "
        mutability = "mut " if ty.mutable else ""
        return f"&{region}{mutability}{ty_to_string(ty.inner, erase_regions)}"
    if isinstance(ty, RawPtr):
        mutability = "mut" if ty.mutable else "const"
        return f"*{mutability} {ty_to_string(ty.inner, erase_regions)}"
    if isinstance(ty, Adt):
        args = [s for s in (_arg_to_string(a, erase_regions) for a in ty.args) if s is not None]
        if not args:
            return ty.path
        return f"{ty.path}<{', '.join(args)}>"
    if isinstance(ty, TupleTy):
        if len(ty.elems) == 1:
            return f"({ty_to_string(ty.elems[0], erase_regions)},)"
        return "(" + ", ".join(ty_to_string(e, erase_regions) for e in ty.elems) + ")"
    if isinstance(ty, Array):
        return f"[{ty_to_string(ty.inner, erase_regions)}; {ty.length}]"
    if isinstance(ty, Slice):
        return f"[{ty_to_string(ty.inner, erase_regions)}]"
    if isinstance(ty, Param):
        return ty.name
    if isinstance(ty, Infer):
        return f"?{ty.index}"
    raise TypeError(f"not a type: {ty!r}")
