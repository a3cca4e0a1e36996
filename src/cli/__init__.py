"""
CLI utilities: environment validation, input resolution, debug artifacts.
"""

from cli.helpers import (
    validate_environment,
    resolve_crate_path,
    find_alias_file,
)
from cli.debug import (
    dump_run_artifacts,
    dump_region_graph,
    check_program_syntax,
)

__all__ = [
    "validate_environment",
    "resolve_crate_path",
    "find_alias_file",
    "dump_run_artifacts",
    "dump_region_graph",
    "check_program_syntax",
]
