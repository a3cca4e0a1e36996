"""Tests for alias-guided drop injection."""

from rty.parse import parse_ty
from testgen.ltcontext import LtContext
from testgen.safety import check_possibility, is_api_vulnerable, try_inject_drop
from testgen.stmt import DUMMY_INPUT_VAR, ApiCall, StmtKind, VarState
from test_utils import container_catalog, make_alias_map, make_catalog


BORROW_ALIAS = {"mylib::borrow": [{"left": [0, []], "right": [1, []]}]}


def _borrowed_item(alias_doc):
    """new(42) -> container; &mut container; borrow(&mut container) -> item."""
    catalog = container_catalog()
    cx = LtContext(catalog, make_alias_map(alias_doc, catalog))
    container = cx.add_call_stmt(ApiCall("mylib::new", (DUMMY_INPUT_VAR,)))
    cx.try_inject_drop()
    ref = cx.add_ref_stmt(container, True)
    item = cx.add_call_stmt(ApiCall("mylib::borrow", (ref,)))
    return cx, container, item


class TestCheckPossibility:
    """Test the structural fallback for region-free alias sides."""

    def test_reference_to_contained_type(self):
        assert check_possibility(parse_ty("&u8"), parse_ty("Vec<u8>"))
        assert check_possibility(parse_ty("*const u8"), parse_ty("u8"))

    def test_unrelated(self):
        assert not check_possibility(parse_ty("&u32"), parse_ty("Vec<u8>"))
        assert not check_possibility(parse_ty("u8"), parse_ty("u8"))


class TestInjectDrop:
    """Test try_inject_drop after a call."""

    def test_borrow_alias_drops_container(self):
        """borrow(&mut Container) -> &Item aliasing arg0 with the return value drops the Container"""
        cx, container, item = _borrowed_item(BORROW_ALIAS)
        assert try_inject_drop(cx) == 1
        last = cx.stmts[-1]
        assert last.kind == StmtKind.DROP
        assert last.operand == container
        assert cx.state_of(container) == VarState.DROPPED
        # The returned reference outlives its container
        assert cx.state_of(item) == VarState.LIVE
        assert cx.dropped_count == 1

    def test_dangling_item_is_printed(self):
        cx, container, item = _borrowed_item(BORROW_ALIAS)
        cx.try_inject_drop()
        cx.try_use_all_available_vars()
        assert cx.stmts[-1].kind == StmtKind.USE
        assert cx.stmts[-1].operand == item

    def test_no_alias_facts(self):
        cx, container, item = _borrowed_item({})
        assert try_inject_drop(cx) == 0
        assert cx.state_of(container) == VarState.BORROWED_MUT
        assert cx.lack_of_alias == ["mylib::new", "mylib::borrow"]

    def test_declared_without_aliases(self):
        cx, container, item = _borrowed_item({"mylib::borrow": []})
        assert try_inject_drop(cx) == 0
        assert "mylib::borrow" not in cx.lack_of_alias

    def test_known_dependency_is_not_injected(self):
        catalog = make_catalog(
            apis=[
                {"path": "mylib::new", "inputs": ["u32"], "output": "mylib::Container"},
                {
                    "path": "mylib::get",
                    "inputs": ["&'a mylib::Container"],
                    "output": "&'a u32",
                    "generics": ["'a"],
                },
            ],
            adts=[{"path": "mylib::Container", "fields": [{"name": "n", "ty": "u32", "pub": False}]}],
        )
        alias_map = make_alias_map({"mylib::get": [{"left": [0, []], "right": [1, []]}]}, catalog)
        cx = LtContext(catalog, alias_map)
        container = cx.add_call_stmt(ApiCall("mylib::new", (DUMMY_INPUT_VAR,)))
        ref = cx.add_ref_stmt(container, False)
        cx.add_call_stmt(ApiCall("mylib::get", (ref,)))
        assert try_inject_drop(cx) == 0
        assert cx.state_of(container) == VarState.BORROWED

    def test_bad_projection_skipped(self):
        cx, container, item = _borrowed_item({"mylib::borrow": [{"left": [0, [3]], "right": [1, []]}]})
        assert try_inject_drop(cx) == 0

    def test_no_call_yet(self):
        cx = LtContext(container_catalog())
        assert try_inject_drop(cx) == 0


class TestVulnerableApis:
    """Test is_api_vulnerable."""

    def test_raw_pointer_alias(self):
        catalog = make_catalog(apis=[{"path": "mylib::as_ptr", "inputs": ["&Vec<u8>"], "output": "*const u8"}])
        alias_map = make_alias_map({"mylib::as_ptr": [{"left": 0, "right": 1}]}, catalog)
        assert is_api_vulnerable("mylib::as_ptr", catalog, alias_map)

    def test_reference_alias(self):
        catalog = container_catalog()
        alias_map = make_alias_map(BORROW_ALIAS, catalog)
        assert not is_api_vulnerable("mylib::borrow", catalog, alias_map)
        assert not is_api_vulnerable("mylib::new", catalog, alias_map)
