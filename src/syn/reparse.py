"""
Re-parse synthesized programs with tree-sitter-rust.

Recovers, for each statement of `main`, its kind, the bound variable and the
variables it uses. Used to sanity-check rendered programs before handing
them to the checker.
"""

from dataclasses import dataclass
from typing import List, Optional, Tuple

import tree_sitter_rust
from tree_sitter import Language, Node, Parser

from rty.types import is_unit
from testgen.context import Context
from testgen.stmt import StmtKind

RUST_LANGUAGE = Language(tree_sitter_rust.language())

SPECIAL_CALLEES = {"String::from", "Vec::from", "Option::unwrap", "Result::unwrap"}


class ReparseError(ValueError):
    """Program text is not a well-formed synthesized driver."""

    pass


@dataclass(frozen=True)
class ParsedStmt:
    kind: StmtKind
    place: Optional[str]
    operands: Tuple[str, ...] = ()


def _text(node: Node) -> str:
    return node.text.decode("utf-8")


def _identifiers(node: Node) -> Tuple[str, ...]:
    found = []

    def visit(n: Node) -> None:
        if n.type == "identifier":
            found.append(_text(n))
        for child in n.children:
            visit(child)

    visit(node)
    return tuple(found)


def _callee(call: Node) -> str:
    function = call.child_by_field_name("function")
    if function.type == "generic_function":
        function = function.child_by_field_name("function")
    return _text(function)


def _parse_call(call: Node, place: Optional[str]) -> ParsedStmt:
    callee = _callee(call)
    arg_nodes = call.child_by_field_name("arguments").named_children
    # Generated calls only ever pass variables; anything else is a tuple
    # struct or tuple variant literal
    if any(n.type != "identifier" for n in arg_nodes):
        return ParsedStmt(StmtKind.INPUT, place)
    args = tuple(_text(n) for n in arg_nodes)
    if callee == "Box::new":
        return ParsedStmt(StmtKind.BOX, place, args)
    if callee == "drop":
        return ParsedStmt(StmtKind.DROP, place, args)
    if callee in SPECIAL_CALLEES:
        return ParsedStmt(StmtKind.SPECIAL_CALL, place, args)
    return ParsedStmt(StmtKind.CALL, place, args)


def _parse_value(value: Node, place: Optional[str]) -> ParsedStmt:
    if value.type == "call_expression":
        return _parse_call(value, place)
    if value.type == "reference_expression":
        inner = value.child_by_field_name("value")
        if inner.type == "unary_expression":
            return ParsedStmt(StmtKind.DEREF, place, _identifiers(inner))
        return ParsedStmt(StmtKind.REF, place, _identifiers(inner))
    if value.type == "macro_invocation":
        token_trees = [c for c in value.children if c.type == "token_tree"]
        return ParsedStmt(StmtKind.USE, place, _identifiers(token_trees[0]) if token_trees else ())
    return ParsedStmt(StmtKind.INPUT, place)


def _main_body(root: Node) -> Node:
    for child in root.named_children:
        if child.type == "function_item" and _text(child.child_by_field_name("name")) == "main":
            return child.child_by_field_name("body")
    raise ReparseError("no main function")


def reparse_program(code: str) -> List[ParsedStmt]:
    parser = Parser(RUST_LANGUAGE)
    tree = parser.parse(code.encode("utf-8"))
    if tree.root_node.has_error:
        raise ReparseError("program does not parse")

    stmts = []
    for node in _main_body(tree.root_node).named_children:
        if node.type == "let_declaration":
            place = _identifiers(node.child_by_field_name("pattern"))[-1]
            stmts.append(_parse_value(node.child_by_field_name("value"), place))
        elif node.type == "expression_statement":
            stmts.append(_parse_value(node.named_children[0], None))
        elif node.type == "macro_invocation":
            stmts.append(_parse_value(node, None))
        elif node.type not in ("line_comment", "block_comment"):
            raise ReparseError(f"unexpected statement {node.type}")
    return stmts


def context_statements(cx: Context) -> List[ParsedStmt]:
    """The records reparse_program should recover for `cx` once rendered."""
    records = []
    for stmt in cx.stmts:
        place = stmt.place
        name = None if is_unit(cx.type_of(place)) and not place.is_input else str(place)
        records.append(ParsedStmt(stmt.kind, name, tuple(str(v) for v in stmt.operands)))
    return records
