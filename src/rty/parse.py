"""
Parser for Rust type strings as they appear in the API catalog.

Examples:
    "&'a mut Vec<u8>"   -> Ref('a, Adt(Vec, (u8,)), mutable)
    "*const T"          -> RawPtr(Param(T))
    "[u8; 3]"           -> Array(u8, 3)
    "&[T]"              -> Ref('_0, Slice(Param(T)))
    "(u32, String)"     -> TupleTy((u32, String))

Elided reference lifetimes get distinct fresh names ('_0, '_1, ...) so two
positions of one signature are never accidentally related. Rust's elision
rules are not applied: `fn f(&self) -> &T` is read as two unrelated lifetimes.
"""

import re
from typing import Iterable, List, Optional, Sequence, Tuple

from rty.types import (
    STR,
    UNIT,
    Adt,
    Array,
    ConstArg,
    GenericArg,
    Never,
    PRIM_NAMES,
    Param,
    Prim,
    RE_STATIC,
    RawPtr,
    Ref,
    Region,
    Slice,
    Ty,
    TupleTy,
)


class TypeParseError(ValueError):
    """Raised for type strings outside the supported subset."""

    pass


_TOKEN_RE = re.compile(r"\s*('[A-Za-z_][A-Za-z0-9_]*|::|[A-Za-z_][A-Za-z0-9_]*|\d+|[&*()\[\];,<>!=])")


def _tokenize(text: str) -> List[str]:
    tokens = []
    pos = 0
    text = text.rstrip()
    while pos < len(text):
        m = _TOKEN_RE.match(text, pos)
        if not m:
            raise TypeParseError(f"unexpected character {text[pos:pos + 1]!r} in type {text!r}")
        tokens.append(m.group(1))
        pos = m.end()
    return tokens


class LifetimeNamer:
    """Hands out fresh names for elided lifetimes within one signature."""

    def __init__(self):
        self._next = 0

    def fresh(self) -> Region:
        region = Region.named(f"'_{self._next}")
        self._next += 1
        return region


class _Parser:
    def __init__(self, text: str, generics: Iterable[str], namer: LifetimeNamer):
        self.text = text
        self.tokens = _tokenize(text)
        self.pos = 0
        self.generics = set(generics)
        self.namer = namer

    def peek(self) -> Optional[str]:
        return self.tokens[self.pos] if self.pos < len(self.tokens) else None

    def next(self) -> str:
        tok = self.peek()
        if tok is None:
            raise TypeParseError(f"unexpected end of type {self.text!r}")
        self.pos += 1
        return tok

    def accept(self, tok: str) -> bool:
        if self.peek() == tok:
            self.pos += 1
            return True
        return False

    def expect(self, tok: str) -> None:
        got = self.next()
        if got != tok:
            raise TypeParseError(f"expected {tok!r}, found {got!r} in type {self.text!r}")

    def lifetime(self, tok: str) -> Region:
        if tok == "'static":
            return RE_STATIC
        if tok == "'_":
            return self.namer.fresh()
        return Region.named(tok)

    def parse_ty(self) -> Ty:
        tok = self.next()
        if tok == "&":
            nxt = self.peek()
            if nxt is not None and nxt.startswith("'"):
                region = self.lifetime(self.next())
            else:
                region = self.namer.fresh()
            mutable = self.accept("mut")
            return Ref(region, self.parse_ty(), mutable)
        if tok == "*":
            kind = self.next()
            if kind not in ("const", "mut"):
                raise TypeParseError(f"raw pointer needs const/mut in {self.text!r}")
            return RawPtr(self.parse_ty(), kind == "mut")
        if tok == "(":
            elems: List[Ty] = []
            trailing_comma = False
            while not self.accept(")"):
                elems.append(self.parse_ty())
                trailing_comma = self.accept(",")
                if not trailing_comma and self.peek() != ")":
                    raise TypeParseError(f"expected ',' or ')' in {self.text!r}")
            if not elems:
                return UNIT
            if len(elems) == 1 and not trailing_comma:
                return elems[0]
            return TupleTy(tuple(elems))
        if tok == "[":
            inner = self.parse_ty()
            if self.accept(";"):
                length = self.next()
                if not length.isdigit():
                    raise TypeParseError(f"non-literal array length {length!r} in {self.text!r}")
                self.expect("]")
                return Array(inner, int(length))
            self.expect("]")
            return Slice(inner)
        if tok == "!":
            return Never()
        if tok in ("dyn", "impl", "fn", "for"):
            raise TypeParseError(f"unsupported type {self.text!r}")
        if tok[0].isalpha() or tok[0] == "_":
            return self.parse_path(tok)
        raise TypeParseError(f"unexpected token {tok!r} in type {self.text!r}")

    def parse_path(self, first: str) -> Ty:
        segments = [first]
        while self.accept("::"):
            segments.append(self.next())
        path = "::".join(segments)
        args: Tuple[GenericArg, ...] = ()
        if self.accept("<"):
            args = tuple(self.parse_generic_args())
        if len(segments) == 1 and not args:
            if first in PRIM_NAMES:
                return Prim(first)
            if first == "str":
                return STR
            if first in self.generics:
                return Param(first)
        return Adt(path, args)

    def parse_generic_args(self) -> List[GenericArg]:
        args: List[GenericArg] = []
        while not self.accept(">"):
            tok = self.peek()
            if tok is None:
                raise TypeParseError(f"unclosed generic arguments in {self.text!r}")
            if tok.startswith("'"):
                args.append(self.lifetime(self.next()))
            elif tok.isdigit():
                args.append(ConstArg(self.next()))
            else:
                args.append(self.parse_ty())
            if not self.accept(","):
                self.expect(">")
                break
        return args


def parse_ty(text: str, generics: Iterable[str] = (), namer: Optional[LifetimeNamer] = None) -> Ty:
    """Parse a single type string. `generics` are the in-scope type parameter names."""
    parser = _Parser(text, generics, namer or LifetimeNamer())
    ty = parser.parse_ty()
    if parser.peek() is not None:
        raise TypeParseError(f"trailing input {parser.peek()!r} in type {text!r}")
    return ty


def parse_fn_sig(inputs: Sequence[str], output: Optional[str], generics: Iterable[str] = ()) -> Tuple[Tuple[Ty, ...], Ty]:
    """Parse a signature; elided lifetimes are numbered across all positions."""
    namer = LifetimeNamer()
    names = list(generics)
    parsed_inputs = tuple(parse_ty(t, names, namer) for t in inputs)
    parsed_output = parse_ty(output, names, namer) if output else UNIT
    return parsed_inputs, parsed_output
