"""Tests for the Rust type model, the type-string parser and type predicates."""

import pytest

from rty.parse import TypeParseError, parse_fn_sig, parse_ty
from rty.types import (
    RE_ERASED,
    RE_STATIC,
    STR,
    UNIT,
    Adt,
    Array,
    ConstArg,
    Never,
    Param,
    Prim,
    RawPtr,
    Ref,
    Region,
    Slice,
    TupleTy,
    is_string,
    is_vec,
    ty_to_string,
)
from rty.utils import (
    ProjectionError,
    contains_raw_ptr,
    erase_regions,
    implements_trait,
    is_copy_ty,
    is_debug_ty,
    is_fuzzable_ty,
    is_owned_ty,
    is_ty_eq,
    substitute_params,
    ty_depth,
    ty_project_to,
    walk_regions,
)
from test_utils import make_catalog


U8 = Prim("u8")
U32 = Prim("u32")


class TestParseTy:
    """Test parse_ty on the supported subset of Rust type syntax."""

    def test_primitives(self):
        assert parse_ty("u32") == U32
        assert parse_ty("bool") == Prim("bool")
        assert parse_ty("str") == STR

    def test_unit_and_never(self):
        assert parse_ty("()") == UNIT
        assert parse_ty("!") == Never()

    def test_named_reference(self):
        """&'a mut Vec<u8> keeps its lifetime and mutability"""
        ty = parse_ty("&'a mut Vec<u8>")
        assert ty == Ref(Region.named("'a"), Adt("Vec", (U8,)), True)

    def test_static_reference(self):
        assert parse_ty("&'static str") == Ref(RE_STATIC, STR, False)

    def test_elided_lifetimes_are_distinct(self):
        ty = parse_ty("(&u8, &u8)")
        assert isinstance(ty, TupleTy)
        first, second = ty.elems
        assert first.region != second.region

    def test_raw_pointers(self):
        assert parse_ty("*const u8") == RawPtr(U8, False)
        assert parse_ty("*mut T", ["T"]) == RawPtr(Param("T"), True)

    def test_array_and_slice(self):
        assert parse_ty("[u8; 3]") == Array(U8, 3)
        ty = parse_ty("&[u8]")
        assert isinstance(ty, Ref)
        assert ty.inner == Slice(U8)

    def test_tuple_forms(self):
        assert parse_ty("(u8)") == U8
        assert parse_ty("(u8,)") == TupleTy((U8,))
        assert parse_ty("(u8, u32)") == TupleTy((U8, U32))

    def test_nested_generics(self):
        """Vec<Vec<u8>> closes two generic lists with adjacent '>'"""
        assert parse_ty("Vec<Vec<u8>>") == Adt("Vec", (Adt("Vec", (U8,)),))

    def test_path_with_lifetime_and_const_args(self):
        ty = parse_ty("mylib::Buf<'a, u8, 4>")
        assert ty == Adt("mylib::Buf", (Region.named("'a"), U8, ConstArg("4")))
        assert ty.type_args == (U8,)
        assert ty.region_args == (Region.named("'a"),)

    def test_generic_param_only_when_in_scope(self):
        assert parse_ty("T", ["T"]) == Param("T")
        assert parse_ty("T") == Adt("T")

    def test_non_literal_array_length_rejected(self):
        with pytest.raises(TypeParseError):
            parse_ty("[u8; N]")

    def test_unsupported_types_rejected(self):
        with pytest.raises(TypeParseError):
            parse_ty("dyn Fn()")
        with pytest.raises(TypeParseError):
            parse_ty("u8 u8")
        with pytest.raises(TypeParseError):
            parse_ty("Vec<u8")


class TestParseFnSig:
    """Test parse_fn_sig shares elided-lifetime numbering across positions."""

    def test_missing_output_is_unit(self):
        inputs, output = parse_fn_sig(["u32"], None)
        assert inputs == (U32,)
        assert output == UNIT

    def test_elided_regions_differ_between_positions(self):
        inputs, output = parse_fn_sig(["&mut Container"], "&Item")
        assert inputs[0].region != output.region

    def test_named_lifetime_shared(self):
        inputs, output = parse_fn_sig(["&'a Container"], "&'a Item")
        assert inputs[0].region == output.region


class TestTyToString:
    """Test rendering types back to Rust syntax."""

    def test_regions_kept_by_default(self):
        ty = Ref(Region.named("'a"), U8, True)
        assert ty_to_string(ty) == "&'a mut u8"
        assert str(ty) == "&'a mut u8"

    def test_regions_erased(self):
        ty = Ref(Region.var(3), Adt("mylib::Buf", (Region.var(4), U8)), False)
        assert ty_to_string(ty, erase_regions=True) == "&mylib::Buf<u8>"
        assert ty_to_string(ty) == "&'?3 mylib::Buf<'?4, u8>"

    def test_compound_types(self):
        assert str(TupleTy((U8,))) == "(u8,)"
        assert str(UNIT) == "()"
        assert str(Array(U8, 3)) == "[u8; 3]"
        assert str(RawPtr(U8, False)) == "*const u8"
        assert str(Ref(RE_ERASED, Slice(U8))) == "&[u8]"


class TestTyUtils:
    """Test folding, equality and shape helpers."""

    def test_erase_regions(self):
        ty = Ref(Region.named("'a"), Adt("Foo", (Region.var(2), U8)))
        assert erase_regions(ty) == Ref(RE_ERASED, Adt("Foo", (RE_ERASED, U8)))

    def test_is_ty_eq_ignores_regions(self):
        assert is_ty_eq(Ref(Region.var(1), U8), Ref(Region.named("'a"), U8))
        assert not is_ty_eq(Ref(Region.var(1), U8), Ref(Region.var(1), U8, True))

    def test_substitute_params(self):
        ty = parse_ty("Vec<&T>", ["T"])
        out = substitute_params(ty, {"T": U32})
        assert is_ty_eq(out, parse_ty("Vec<&u32>"))

    def test_walk_regions_positional(self):
        ty = parse_ty("(&'a u8, Foo<'b, &'c u8>)")
        assert [r.name for r in walk_regions(ty)] == ["'a", "'b", "'c"]

    def test_depth_and_raw_ptr(self):
        assert ty_depth(U8) == 1
        assert ty_depth(parse_ty("&Vec<u8>")) == 3
        assert contains_raw_ptr(parse_ty("(u8, *const u8)"))
        assert not contains_raw_ptr(parse_ty("&u8"))

    def test_is_owned(self):
        assert is_owned_ty(U32)
        assert is_owned_ty(Adt("String"))
        assert not is_owned_ty(parse_ty("&u8"))
        assert not is_owned_ty(RawPtr(U8))
        assert not is_owned_ty(UNIT)

    def test_std_adt_helpers(self):
        assert is_string(Adt("String"))
        assert is_string(Adt("alloc::string::String"))
        assert not is_string(Adt("mylib::String"))
        assert is_vec(Adt("std::vec::Vec", (U8,)))


class TestTraits:
    """Test built-in trait knowledge and catalog-provided impls."""

    def test_primitives_are_copy_and_debug(self):
        assert is_copy_ty(U32)
        assert is_debug_ty(Prim("f64"))

    def test_references(self):
        assert is_copy_ty(parse_ty("&u8"))
        assert not is_copy_ty(parse_ty("&mut u8"))
        assert is_debug_ty(parse_ty("&str"))

    def test_containers_forward(self):
        assert not is_copy_ty(Adt("String"))
        assert not is_copy_ty(Adt("Vec", (U8,)))
        assert is_copy_ty(Adt("Option", (U8,)))
        assert not is_copy_ty(Adt("Option", (Adt("String"),)))

    def test_catalog_traits(self):
        catalog = make_catalog(
            apis=[],
            adts=[
                {"path": "mylib::Plain", "fields": [], "traits": ["Debug", "Clone"]},
                {"path": "mylib::Wrap", "generics": ["T"], "fields": [{"name": "0", "ty": "T"}], "traits": ["Debug"]},
                {"path": "mylib::Opaque", "fields": []},
            ],
            trait_impls=[["Copy", "mylib::Opaque"]],
        )
        assert is_debug_ty(Adt("mylib::Plain"), catalog)
        assert not is_copy_ty(Adt("mylib::Plain"), catalog)
        assert is_copy_ty(Adt("mylib::Opaque"), catalog)
        assert is_debug_ty(Adt("mylib::Wrap", (U8,)), catalog)
        assert not is_debug_ty(Adt("mylib::Wrap", (Adt("mylib::Opaque"),)), catalog)

    def test_unknown_adt_without_catalog(self):
        assert not implements_trait("Debug", Adt("mylib::Widget"))


class TestFuzzable:
    """Test which types can be written down as literals."""

    def test_builtin(self):
        assert is_fuzzable_ty(U8)
        assert is_fuzzable_ty(parse_ty("&str"))
        assert is_fuzzable_ty(parse_ty("&[u8]"))
        assert is_fuzzable_ty(Adt("String"))
        assert is_fuzzable_ty(Adt("Vec", (U8,)))
        assert not is_fuzzable_ty(parse_ty("&mut str"))
        assert not is_fuzzable_ty(RawPtr(U8))

    def test_structs(self):
        catalog = make_catalog(
            apis=[],
            adts=[
                {"path": "mylib::Point", "fields": [{"name": "x", "ty": "i32"}, {"name": "y", "ty": "i32"}]},
                {"path": "mylib::Secret", "fields": [{"name": "x", "ty": "i32", "pub": False}]},
                {"path": "mylib::Node", "fields": [{"name": "next", "ty": "Vec<mylib::Node>"}]},
            ],
        )
        assert is_fuzzable_ty(Adt("mylib::Point"), catalog)
        assert not is_fuzzable_ty(Adt("mylib::Secret"), catalog)
        # Recursive definitions never terminate as literals
        assert not is_fuzzable_ty(Adt("mylib::Node"), catalog)

    def test_enum_needs_one_constructible_variant(self):
        catalog = make_catalog(
            apis=[],
            adts=[
                {
                    "path": "mylib::Shape",
                    "kind": "enum",
                    "variants": [
                        {"name": "Raw", "fields": [{"name": "0", "ty": "*const u8"}]},
                        {"name": "Circle", "fields": [{"name": "0", "ty": "u32"}]},
                    ],
                },
                {"path": "mylib::Never", "kind": "enum", "variants": [{"name": "P", "fields": [{"name": "0", "ty": "*mut u8"}]}]},
            ],
        )
        assert is_fuzzable_ty(Adt("mylib::Shape"), catalog)
        assert not is_fuzzable_ty(Adt("mylib::Never"), catalog)


class TestProjection:
    """Test ty_project_to through struct fields."""

    def _catalog(self):
        return make_catalog(
            apis=[],
            adts=[
                {"path": "mylib::Outer", "fields": [{"name": "inner", "ty": "mylib::Inner"}, {"name": "n", "ty": "u8"}]},
                {"path": "mylib::Inner", "fields": [{"name": "ptr", "ty": "*const u8"}]},
                {
                    "path": "mylib::Holder",
                    "generics": ["'a", "T"],
                    "fields": [{"name": "r", "ty": "&'a T"}],
                },
            ],
        )

    def test_empty_path_is_identity(self):
        assert ty_project_to(U8, [], self._catalog()) == U8

    def test_nested_fields_through_references(self):
        catalog = self._catalog()
        assert ty_project_to(parse_ty("&mylib::Outer"), [0, 0], catalog) == RawPtr(U8, False)
        assert ty_project_to(Adt("mylib::Outer"), [1], catalog) == U8

    def test_generic_fields_substituted(self):
        holder = Adt("mylib::Holder", (Region.var(7), U32))
        assert ty_project_to(holder, [0], self._catalog()) == Ref(Region.var(7), U32)

    def test_invalid_paths(self):
        catalog = self._catalog()
        with pytest.raises(ProjectionError):
            ty_project_to(U8, [0], catalog)
        with pytest.raises(ProjectionError):
            ty_project_to(Adt("mylib::Outer"), [5], catalog)
