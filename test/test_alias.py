"""Tests for the alias-fact store."""

import json

import pytest

from alias.facts import RETURN_SLOT, AliasFactError, AliasMap, RetAlias, dump_alias_map, load_alias_map
from test_utils import container_catalog, make_alias_map


class TestAliasMap:
    """Test AliasMap storage."""

    def test_facts_are_symmetric(self):
        alias_map = AliasMap()
        alias_map.add("mylib::borrow", 1, RetAlias(0, (), 1, ()))
        entry = alias_map.get("mylib::borrow")
        assert RetAlias(0, (), 1, ()) in entry.aliases
        assert RetAlias(1, (), 0, ()) in entry.aliases
        assert len(entry.aliases) == 2

    def test_duplicate_fact_ignored(self):
        alias_map = AliasMap()
        alias_map.add("f", 1, RetAlias(0, (), 1, ()))
        alias_map.add("f", 1, RetAlias(1, (), 0, ()))
        assert len(alias_map.get("f").aliases) == 2

    def test_slot_out_of_range(self):
        alias_map = AliasMap()
        with pytest.raises(AliasFactError):
            alias_map.add("f", 1, RetAlias(0, (), 2, ()))

    def test_declare_without_aliases(self):
        alias_map = AliasMap()
        alias_map.declare("f", 2)
        assert "f" in alias_map
        assert alias_map.get("f").aliases == []
        assert alias_map.get("g") is None

    def test_str(self):
        assert str(RetAlias(RETURN_SLOT, (0, 1), 2, ())) == "ret.0.1 ~ arg1"


class TestAliasLoading:
    """Test alias_map_from_dict / load_alias_map / dump_alias_map."""

    def test_from_dict_with_catalog(self):
        catalog = container_catalog()
        alias_map = make_alias_map(
            {"mylib::borrow": [{"left": [0, []], "right": [1, []]}], "mylib::unknown": []}, catalog
        )
        assert alias_map.get("mylib::borrow").arg_size == 1
        assert "mylib::unknown" not in alias_map

    def test_bare_slot_numbers(self):
        alias_map = make_alias_map({"f": [{"left": 0, "right": [2, [1]]}]})
        entry = alias_map.get("f")
        assert entry.arg_size == 2
        assert RetAlias(0, (), 2, (1,)) in entry.aliases

    def test_malformed_fact(self):
        with pytest.raises(AliasFactError):
            make_alias_map({"f": [{"left": [0, []]}]})

    def test_document_must_be_an_object(self):
        with pytest.raises(AliasFactError, match="object keyed by API path"):
            make_alias_map([{"left": 0, "right": 1}])

    def test_facts_must_be_a_list(self):
        with pytest.raises(AliasFactError):
            make_alias_map({"f": {"left": 0, "right": 1}})

    def test_bad_side_shape(self):
        with pytest.raises(AliasFactError):
            make_alias_map({"f": [{"left": "ret", "right": [1, []]}]})
        with pytest.raises(AliasFactError):
            make_alias_map({"f": ["ret ~ arg0"]})

    def test_load_list_document(self, tmp_path):
        src = tmp_path / "alias.json"
        src.write_text(json.dumps([{"left": 0, "right": 1}]))
        with pytest.raises(AliasFactError):
            load_alias_map(src, container_catalog())

    def test_load_and_dump(self, tmp_path):
        src = tmp_path / "alias.json"
        src.write_text(json.dumps({"mylib::borrow": [{"left": [0, []], "right": [1, []]}]}))
        alias_map = load_alias_map(src, container_catalog())

        out = tmp_path / "alias_file.txt"
        dump_alias_map(alias_map, out)
        text = out.read_text()
        assert "mylib::borrow (args: 1)" in text
        assert "ret ~ arg0" in text
        assert "arg0 ~ ret" in text

    def test_load_invalid_json(self, tmp_path):
        src = tmp_path / "alias.json"
        src.write_text("[")
        with pytest.raises(AliasFactError):
            load_alias_map(src)
