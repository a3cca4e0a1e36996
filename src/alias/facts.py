"""
Per-API alias facts.

Each fact says that two slots of a call may refer to overlapping storage.
Slot 0 is the return value, slot i (i >= 1) is argument i - 1; each side can
project through a path of struct field indices.

JSON form:
    {"mylib::Container::borrow": [{"left": [0, []], "right": [1, []]}]}
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from catalog.model import Catalog
from core.utils import debug, warn

RETURN_SLOT = 0


class AliasFactError(Exception):
    """Alias document is malformed or refers to slots the API does not have."""

    pass


@dataclass(frozen=True)
class RetAlias:
    left_index: int
    left_field_seq: Tuple[int, ...] = ()
    right_index: int = 0
    right_field_seq: Tuple[int, ...] = ()

    def mirrored(self) -> "RetAlias":
        return RetAlias(self.right_index, self.right_field_seq, self.left_index, self.left_field_seq)

    @staticmethod
    def _slot_str(index: int, fields: Tuple[int, ...]) -> str:
        base = "ret" if index == RETURN_SLOT else f"arg{index - 1}"
        return base + "".join(f".{f}" for f in fields)

    def __str__(self) -> str:
        return f"{self._slot_str(self.left_index, self.left_field_seq)} ~ {self._slot_str(self.right_index, self.right_field_seq)}"


@dataclass
class FnRetAlias:
    arg_size: int
    aliases: List[RetAlias] = field(default_factory=list)

    def add(self, alias: RetAlias) -> None:
        if alias not in self.aliases:
            self.aliases.append(alias)


class AliasMap:
    """Alias facts indexed by API path. Facts are kept symmetric."""

    def __init__(self):
        self._facts: Dict[str, FnRetAlias] = {}

    def add(self, api_path: str, arg_size: int, alias: RetAlias) -> None:
        for index in (alias.left_index, alias.right_index):
            if index < 0 or index > arg_size:
                raise AliasFactError(f"{api_path}: slot {index} out of range (arity {arg_size})")
        entry = self._facts.setdefault(api_path, FnRetAlias(arg_size))
        entry.add(alias)
        entry.add(alias.mirrored())

    def declare(self, api_path: str, arg_size: int) -> None:
        """Record that an API was analyzed and has no aliasing."""
        self._facts.setdefault(api_path, FnRetAlias(arg_size))

    def get(self, api_path: str) -> Optional[FnRetAlias]:
        return self._facts.get(api_path)

    def __contains__(self, api_path: str) -> bool:
        return api_path in self._facts

    def __len__(self) -> int:
        return len(self._facts)

    def items(self):
        return self._facts.items()


def _parse_side(raw: Any) -> Tuple[int, Tuple[int, ...]]:
    if isinstance(raw, int):
        return raw, ()
    index, fields = raw
    return int(index), tuple(int(f) for f in fields)


def alias_map_from_dict(doc: Dict[str, List[Dict[str, Any]]], catalog: Optional[Catalog] = None) -> AliasMap:
    if not isinstance(doc, dict):
        raise AliasFactError(f"alias document must be an object keyed by API path, got {type(doc).__name__}")
    alias_map = AliasMap()
    for api_path, raw_facts in doc.items():
        if catalog is not None and not catalog.has_api(api_path):
            warn(f"Alias facts for unknown API {api_path}, ignored")
            continue
        if not isinstance(raw_facts, list):
            raise AliasFactError(f"{api_path}: alias facts must be a list")
        try:
            arg_size = catalog.api(api_path).arity if catalog is not None else _max_slot(raw_facts)
            alias_map.declare(api_path, arg_size)
            for raw in raw_facts:
                left_index, left_fields = _parse_side(raw["left"])
                right_index, right_fields = _parse_side(raw["right"])
                alias_map.add(api_path, arg_size, RetAlias(left_index, left_fields, right_index, right_fields))
        except (KeyError, TypeError, ValueError) as e:
            raise AliasFactError(f"{api_path}: malformed alias fact: {e!r}") from e
    debug(f"Loaded alias facts for {len(alias_map)} APIs")
    return alias_map


def _max_slot(raw_facts: List[Dict[str, Any]]) -> int:
    slots = [0]
    for raw in raw_facts:
        for side in ("left", "right"):
            if side in raw:
                slots.append(_parse_side(raw[side])[0])
    return max(slots)


def load_alias_map(path: Union[str, Path], catalog: Optional[Catalog] = None) -> AliasMap:
    try:
        with open(path, "r", encoding="utf-8") as f:
            doc = json.load(f)
    except OSError as e:
        raise AliasFactError(f"cannot read alias facts {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise AliasFactError(f"invalid JSON in alias facts {path}: {e}") from e
    return alias_map_from_dict(doc, catalog)


def dump_alias_map(alias_map: AliasMap, path: Union[str, Path]) -> None:
    """Human-readable dump, one API per block."""
    lines = []
    for api_path, entry in sorted(alias_map.items()):
        lines.append(f"{api_path} (args: {entry.arg_size})")
        if not entry.aliases:
            lines.append("    <no alias>")
        for alias in entry.aliases:
            lines.append(f"    {alias}")
    Path(path).write_text("\n".join(lines) + "\n", encoding="utf-8")
