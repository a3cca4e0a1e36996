import os
import sys

_TRACE_ENABLED = bool(os.getenv("LTGEN_TRACE"))
_DEBUG_ENABLED = _TRACE_ENABLED or bool(os.getenv("LTGEN_DEBUG"))
_COLORS_ENABLED = not os.getenv("LTGEN_NO_COLORS")


def _prefix(label: str, style: str) -> str:
    if not _COLORS_ENABLED:
        return f"[{label}]"
    return f"\033[{style}m[{label}]\033[0m"


def trace(*args, **kwargs):
    if _TRACE_ENABLED:
        print(_prefix("TRACE", "2"), *args, file=sys.stderr, **kwargs)


def debug(*args, **kwargs):
    if _DEBUG_ENABLED:
        print(_prefix("DEBUG", "1"), *args, file=sys.stderr, **kwargs)


def info(*args, **kwargs):
    print(_prefix("INFO", "1;34"), *args, file=sys.stderr, **kwargs)


def warn(*args, **kwargs):
    print(_prefix("WARNING", "1;33"), *args, file=sys.stderr, **kwargs)


def error(*args, **kwargs):
    print(_prefix("ERROR", "1;31"), *args, file=sys.stderr, **kwargs)


# Item paths (krate::module::Item)


def get_simple_name(path: str) -> str:
    """krate::module::Item -> Item"""
    return path.rsplit("::", 1)[-1]


def names_match(lhs: str, rhs: str) -> bool:
    """Compare two item paths, allowing one side to be unqualified."""
    if lhs == rhs:
        return True
    if "::" in lhs and "::" in rhs:
        return False
    return get_simple_name(lhs) == get_simple_name(rhs)
