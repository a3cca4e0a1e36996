"""
Load the API catalog from its JSON form.

{
  "crate": {"name": "mylib", "path": "/path/to/mylib"},
  "adts": [{"path": "mylib::Widget", "kind": "struct", "generics": ["T"],
            "fields": [{"name": "id", "ty": "u32", "pub": false}], "traits": ["Debug"]}],
  "apis": [{"path": "mylib::make", "inputs": ["u32"], "output": "Widget",
            "generics": [{"name": "T", "kind": "type", "bounds": ["Debug"]}],
            "where": [["'a", "'b"]], "pub": true, "unsafe": false}],
  "trait_impls": [["Clone", "mylib::Widget"]]
}

Signatures are taken literally. A lifetime the compiler would infer by
elision (the single input lifetime, or the one of `&self`, flowing to the
output) has to be written out, e.g. `"inputs": ["&'a Foo"], "output": "&'a u8"`;
left elided, input and output get unrelated regions.
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Tuple, Union

from catalog.model import (
    GENERIC_CONST,
    GENERIC_LIFETIME,
    GENERIC_TYPE,
    AdtDef,
    ApiSig,
    Catalog,
    FieldDef,
    GenericParamDef,
    VariantDef,
)
from core.utils import debug, get_simple_name, warn
from rty.parse import TypeParseError, parse_fn_sig, parse_ty
from rty.utils import erase_regions


class CatalogError(Exception):
    """Raised when the catalog document cannot be used."""

    pass


def _parse_generic(raw: Union[str, Dict[str, Any]]) -> GenericParamDef:
    if isinstance(raw, str):
        kind = GENERIC_LIFETIME if raw.startswith("'") else GENERIC_TYPE
        return GenericParamDef(raw, kind)
    name = raw["name"]
    kind = raw.get("kind") or (GENERIC_LIFETIME if name.startswith("'") else GENERIC_TYPE)
    if kind not in (GENERIC_TYPE, GENERIC_LIFETIME, GENERIC_CONST):
        raise CatalogError(f"unknown generic kind '{kind}' for {name}")
    return GenericParamDef(name, kind, tuple(raw.get("bounds", ())))


def _type_param_names(generics: List[GenericParamDef]) -> List[str]:
    return [g.name for g in generics if g.kind != GENERIC_LIFETIME]


def _parse_fields(raw_fields: List[Dict[str, Any]], generic_names: List[str]) -> List[FieldDef]:
    fields = []
    for i, raw in enumerate(raw_fields):
        name = str(raw.get("name", i))
        fields.append(FieldDef(name, parse_ty(raw["ty"], generic_names), bool(raw.get("pub", True))))
    return fields


def _parse_adt(raw: Dict[str, Any]) -> AdtDef:
    generics = [_parse_generic(g) for g in raw.get("generics", [])]
    names = _type_param_names(generics)
    variants = [
        VariantDef(v["name"], _parse_fields(v.get("fields", []), names)) for v in raw.get("variants", [])
    ]
    return AdtDef(
        path=raw["path"],
        kind=raw.get("kind", "struct"),
        generics=generics,
        fields=_parse_fields(raw.get("fields", []), names),
        variants=variants,
        traits={get_simple_name(t) for t in raw.get("traits", [])},
    )


def _parse_outlives(raw_where: List[Any]) -> List[Tuple[str, str]]:
    outlives = []
    for pair in raw_where:
        if not isinstance(pair, list) or len(pair) != 2 or not all(isinstance(p, str) for p in pair):
            raise ValueError(f"'where' entries must be [longer, shorter] lifetime pairs, got {pair!r}")
        outlives.append((pair[0], pair[1]))
    return outlives


def _parse_api(raw: Dict[str, Any]) -> ApiSig:
    generics = [_parse_generic(g) for g in raw.get("generics", [])]
    inputs, output = parse_fn_sig(raw.get("inputs", []), raw.get("output"), _type_param_names(generics))
    outlives = _parse_outlives(raw.get("where", []))
    return ApiSig(
        path=raw["path"],
        inputs=inputs,
        output=output,
        generics=generics,
        outlives=outlives,
        is_pub=bool(raw.get("pub", True)),
        is_unsafe=bool(raw.get("unsafe", False)),
        is_drop=bool(raw.get("drop", False)),
    )


def _entries(doc: Dict[str, Any], key: str) -> List[Any]:
    entries = doc.get(key, [])
    if not isinstance(entries, list):
        raise CatalogError(f"catalog '{key}' must be a list")
    return entries


def catalog_from_dict(doc: Dict[str, Any]) -> Catalog:
    if not isinstance(doc, dict):
        raise CatalogError(f"catalog must be a JSON object, got {type(doc).__name__}")
    crate = doc.get("crate")
    if not isinstance(crate, dict) or "name" not in crate:
        raise CatalogError("catalog has no crate name")
    catalog = Catalog(crate_name=crate["name"], crate_path=crate.get("path", "."))

    for raw in _entries(doc, "adts"):
        if not isinstance(raw, dict):
            raise CatalogError(f"ADT entry must be an object: {raw!r}")
        try:
            adt = _parse_adt(raw)
        except (KeyError, TypeParseError) as e:
            warn(f"Skipping ADT {raw.get('path', '?')}: {e}")
            continue
        except (TypeError, ValueError, AttributeError) as e:
            raise CatalogError(f"malformed ADT {raw.get('path', '?')}: {e}") from e
        catalog.adts[adt.path] = adt

    for raw in _entries(doc, "apis"):
        if not isinstance(raw, dict):
            raise CatalogError(f"API entry must be an object: {raw!r}")
        path = raw.get("path")
        if not path:
            raise CatalogError(f"API entry without path: {raw}")
        if catalog.has_api(path):
            warn(f"Duplicate API {path}, keeping the first entry")
            continue
        try:
            api = _parse_api(raw)
        except TypeParseError as e:
            warn(f"Skipping API {path}: {e}")
            continue
        except (KeyError, IndexError, TypeError, ValueError, AttributeError) as e:
            raise CatalogError(f"malformed API {path}: {e!r}") from e
        catalog.add_api(api)

    for pair in _entries(doc, "trait_impls"):
        try:
            trait, ty_text = pair
            catalog.trait_impls.add((get_simple_name(trait), erase_regions(parse_ty(ty_text))))
        except TypeParseError as e:
            warn(f"Skipping impl {pair}: {e}")
        except (TypeError, ValueError, AttributeError) as e:
            raise CatalogError(f"malformed trait impl {pair!r}: {e}") from e

    debug(f"Catalog {catalog.crate_name}: {len(catalog.apis)} APIs, {len(catalog.adts)} ADTs")
    return catalog


def load_catalog(path: Union[str, Path]) -> Catalog:
    try:
        with open(path, "r", encoding="utf-8") as f:
            doc = json.load(f)
    except OSError as e:
        raise CatalogError(f"cannot read catalog {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise CatalogError(f"invalid JSON in catalog {path}: {e}") from e
    return catalog_from_dict(doc)
