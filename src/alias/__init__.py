from alias.facts import (
    RETURN_SLOT,
    AliasFactError,
    AliasMap,
    FnRetAlias,
    RetAlias,
    alias_map_from_dict,
    dump_alias_map,
    load_alias_map,
)

__all__ = [
    "RETURN_SLOT",
    "AliasFactError",
    "AliasMap",
    "FnRetAlias",
    "RetAlias",
    "alias_map_from_dict",
    "dump_alias_map",
    "load_alias_map",
]
