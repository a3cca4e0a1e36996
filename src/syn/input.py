"""
Literal values for Input statements.
"""

from abc import ABC, abstractmethod
from typing import Optional

from catalog.model import Catalog
from core.rng import RandomSource
from rty.types import Adt, Array, Prim, Ref, Slice, Str, TupleTy, Ty, is_string, is_vec
from rty.utils import fuzzable_variant, is_copy_ty, variant_field_ty

VEC_LEN = 3


class InputGenError(ValueError):
    """Asked for a literal of a type that has none."""

    pass


def _rust_str(text: str) -> str:
    escaped = text.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


class InputGen(ABC):
    def __init__(self, catalog: Optional[Catalog] = None):
        self.catalog = catalog

    @abstractmethod
    def gen_bool(self) -> str:
        pass

    @abstractmethod
    def gen_int(self, name: str) -> str:
        pass

    @abstractmethod
    def gen_float(self, name: str) -> str:
        pass

    @abstractmethod
    def gen_char(self) -> str:
        pass

    @abstractmethod
    def gen_str(self) -> str:
        """String literal including quotes."""
        pass

    def gen(self, ty: Ty) -> str:
        """Rust expression producing a value of `ty`."""
        if isinstance(ty, Prim):
            if ty.name == "bool":
                return self.gen_bool()
            if ty.name == "char":
                return self.gen_char()
            if ty.is_float:
                return self.gen_float(ty.name)
            return self.gen_int(ty.name)
        if isinstance(ty, Ref) and isinstance(ty.inner, Str):
            return self.gen_str()
        if isinstance(ty, Ref):
            prefix = "&mut " if ty.mutable else "&"
            if isinstance(ty.inner, Slice):
                return prefix + self.gen(Array(ty.inner.inner, VEC_LEN))
            return prefix + self.gen(ty.inner)
        if isinstance(ty, Array):
            if is_copy_ty(ty.inner, self.catalog):
                return f"[{self.gen(ty.inner)}; {ty.length}]"
            return "[" + ", ".join(self.gen(ty.inner) for _ in range(ty.length)) + "]"
        if isinstance(ty, TupleTy):
            if len(ty.elems) == 1:
                return f"({self.gen(ty.elems[0])},)"
            return "(" + ", ".join(self.gen(e) for e in ty.elems) + ")"
        if isinstance(ty, Adt):
            return self.gen_adt(ty)
        raise InputGenError(f"no literal for type {ty}")

    def gen_adt(self, ty: Adt) -> str:
        if is_string(ty):
            return f"String::from({self.gen_str()})"
        if is_vec(ty):
            return "vec![" + ", ".join(self.gen(ty.type_args[0]) for _ in range(VEC_LEN)) + "]"
        adt = self.catalog.adt_def(ty.path) if self.catalog else None
        if adt is None:
            raise InputGenError(f"unknown ADT {ty}")
        if adt.is_struct:
            values = [(f.name, self.gen(adt.field_ty(i, ty))) for i, f in enumerate(adt.fields)]
            return self._fields_literal(ty.path, values, is_variant=False)
        index = fuzzable_variant(ty, self.catalog)
        if index is None:
            raise InputGenError(f"no constructible variant in {ty}")
        variant = adt.variants[index]
        values = [(f.name, self.gen(variant_field_ty(adt, f.ty, ty))) for f in variant.fields]
        return self._fields_literal(f"{ty.path}::{variant.name}", values, is_variant=True)

    @staticmethod
    def _fields_literal(path: str, values, is_variant: bool) -> str:
        if not values:
            return path if is_variant else f"{path} {{}}"
        if all(name.isdigit() for name, _ in values):
            return f"{path}(" + ", ".join(v for _, v in values) + ")"
        return f"{path} {{ " + ", ".join(f"{name}: {v}" for name, v in values) + " }"


class SillyInputGen(InputGen):
    """Fixed, recognizable values."""

    def gen_bool(self) -> str:
        return "false"

    def gen_int(self, name: str) -> str:
        return "42"

    def gen_float(self, name: str) -> str:
        return "42.0"

    def gen_char(self) -> str:
        return "'a'"

    def gen_str(self) -> str:
        return _rust_str("don't panic")


_INT_BITS = {"8": 8, "16": 16, "32": 32, "64": 64, "128": 64, "size": 64}
_ALPHABET = "abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789 "


class RandomInputGen(InputGen):
    """Values drawn from the injected random source."""

    def __init__(self, catalog: Optional[Catalog], rng: RandomSource, max_str_len: int = 16):
        super().__init__(catalog)
        self.rng = rng
        self.max_str_len = max_str_len

    def gen_bool(self) -> str:
        return "true" if self.rng.ratio(1, 2) else "false"

    def gen_int(self, name: str) -> str:
        bits = _INT_BITS[name[1:]]
        if name.startswith("u"):
            return str(self.rng.int_in(0, 2**bits - 1))
        return str(self.rng.int_in(-(2 ** (bits - 1)), 2 ** (bits - 1) - 1))

    def gen_float(self, name: str) -> str:
        return f"{self.rng.int_in(-100000, 100000) / 100:.2f}"

    def gen_char(self) -> str:
        return f"'{self.rng.choice(_ALPHABET[:-1])}'"

    def gen_str(self) -> str:
        length = self.rng.int_in(0, self.max_str_len)
        return _rust_str("".join(self.rng.choice(_ALPHABET) for _ in range(length)))


def make_input_gen(kind: str, catalog: Optional[Catalog], rng: RandomSource) -> InputGen:
    if kind == "random":
        return RandomInputGen(catalog, rng)
    return SillyInputGen(catalog)
