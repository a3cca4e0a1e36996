"""
Debug artifacts written next to the generated cases.
"""

from pathlib import Path
from typing import List

from alias.facts import AliasMap, dump_alias_map
from apidep.graph import ApiDepGraph
from core.utils import debug, warn
from syn.reparse import ParsedStmt, ReparseError, context_statements, reparse_program
from testgen.ltcontext import LtContext

API_GRAPH_DOT = "api_graph.dot"
API_GRAPH_JSON = "api_graph.json"
ALIAS_FILE = "alias_file.txt"
REGION_GRAPH_DOT = "region_graph.dot"


def dump_run_artifacts(workspace: Path, graph: ApiDepGraph, alias_map: AliasMap) -> None:
    graph.dump_to_dot(workspace / API_GRAPH_DOT)
    graph.dump_to_json(workspace / API_GRAPH_JSON)
    dump_alias_map(alias_map, workspace / ALIAS_FILE)
    debug(f"Dumped API graph and alias facts to {workspace}")


def dump_region_graph(cx: LtContext, project_path: Path) -> None:
    cx.region_graph.dump_to_dot(project_path / REGION_GRAPH_DOT)


def _mismatches(expected: List[ParsedStmt], actual: List[ParsedStmt]) -> List[str]:
    diffs = []
    if len(expected) != len(actual):
        diffs.append(f"{len(actual)} statements parsed, {len(expected)} generated")
    for i, (want, got) in enumerate(zip(expected, actual)):
        if want != got:
            diffs.append(f"stmt {i}: expected {want}, parsed {got}")
    return diffs


def check_program_syntax(cx: LtContext, code: str) -> bool:
    """Re-parse a rendered program and compare it with the statements it came from."""
    try:
        parsed = reparse_program(code)
    except ReparseError as e:
        warn(f"Rendered program does not re-parse: {e}")
        return False
    diffs = _mismatches(context_statements(cx), parsed)
    for diff in diffs:
        warn(f"Re-parse mismatch: {diff}")
    return not diffs
