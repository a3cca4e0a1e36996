"""
CLI helper functions: environment validation, input path resolution.
"""

import shutil
import sys
from pathlib import Path
from typing import List, Optional

from core.utils import debug, error

DEFAULT_ALIAS_FILE = "alias.json"


def validate_environment(checkers: List[str]) -> None:
    """
    Validate that the tools the checkers drive are installed.
    Exits with error if validation fails.
    """
    errors = []

    if not checkers:
        return

    if shutil.which("cargo") is None:
        errors.append("cargo not found on PATH. Install a Rust toolchain:\n  https://rustup.rs")
    else:
        if "miri" in checkers and shutil.which("cargo-miri") is None:
            errors.append("cargo-miri not found. Install it with:\n  rustup +nightly component add miri")
        if "asan" in checkers and shutil.which("rustup") is None:
            errors.append("rustup not found; the asan checker needs a nightly toolchain")

    if errors:
        error("Environment validation failed:\n")
        for i, err in enumerate(errors, 1):
            error(f"\n{i}. {err}\n")
        sys.exit(1)


def resolve_crate_path(crate_path: str, catalog_path: Path) -> Path:
    """Relative crate paths in a catalog are relative to the catalog file."""
    path = Path(crate_path)
    if not path.is_absolute():
        path = catalog_path.resolve().parent / path
    return path.resolve()


def find_alias_file(catalog_path: Path, alias_path: Optional[str]) -> Optional[Path]:
    """Explicit alias file, or `alias.json` next to the catalog if present."""
    if alias_path:
        return Path(alias_path)
    candidate = catalog_path.resolve().parent / DEFAULT_ALIAS_FILE
    if candidate.is_file():
        debug(f"Using alias facts from {candidate}")
        return candidate
    return None
