from rty.types import Ty, Region, ty_to_string
from rty.parse import parse_ty, parse_fn_sig, TypeParseError
from rty.utils import is_ty_eq, erase_regions, is_fuzzable_ty

__all__ = [
    "Ty",
    "Region",
    "ty_to_string",
    "parse_ty",
    "parse_fn_sig",
    "TypeParseError",
    "is_ty_eq",
    "erase_regions",
    "is_fuzzable_ty",
]
