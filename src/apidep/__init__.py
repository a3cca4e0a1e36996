from apidep.graph import ApiDepGraph, DepEdge, DepNode, TransformKind
from apidep.resolve import resolve_generic_apis

__all__ = ["ApiDepGraph", "DepEdge", "DepNode", "TransformKind", "resolve_generic_apis"]
