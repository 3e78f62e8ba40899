"""
Graph building - Convert parsed declarations into a node/edge graph.

build_graph() is pure: the same ParsedSchema always yields equal graphs.
"""

import logging

from .models import FieldEdge, GraphModel, TypeKind, TypeNode, UnresolvedReference
from .parser import ParsedSchema, TypeDeclaration

logger = logging.getLogger(__name__)


BUILTIN_SCALARS = frozenset({"String", "Int", "Float", "Boolean", "ID"})
RESERVED_PREFIX = "__"


def base_type_name(type_string: str) -> str:
    """Strip list and non-null markers from an SDL type string."""
    return type_string.replace("[", "").replace("]", "").replace("!", "").strip()


def is_builtin_type(name: str, injected_scalars: frozenset[str] | set[str] = frozenset()) -> bool:
    """Check if a type name is provided by GraphQL or the database itself."""
    return name in BUILTIN_SCALARS or name in injected_scalars or name.startswith(RESERVED_PREFIX)


def _retained(declaration: TypeDeclaration, parsed: ParsedSchema, include_scalars: bool) -> bool:
    if is_builtin_type(declaration.name, parsed.injected_scalars):
        return False
    if declaration.kind == TypeKind.SCALAR and not include_scalars:
        return False
    return True


def _to_node(declaration: TypeDeclaration) -> TypeNode:
    return TypeNode(
        id=declaration.name,
        name=declaration.name,
        kind=declaration.kind,
        fields=[f.model_copy() for f in declaration.fields],
        directives=list(declaration.directives),
        possible_types=list(declaration.possible_types) if declaration.possible_types is not None else None,
        enum_values=list(declaration.enum_values) if declaration.enum_values is not None else None,
        interfaces=list(declaration.interfaces),
        description=declaration.description,
    )


def build_graph(parsed: ParsedSchema, include_scalars: bool = True) -> GraphModel:
    """
    Build the schema graph from parsed declarations.

    Skips reserved `__` names, built-in and vendor scalars, and (when
    include_scalars is False) every custom scalar. Each field whose base
    type is a retained node becomes one FieldEdge. Fields pointing at
    undeclared types produce no edge; they are collected in
    `GraphModel.unresolved`.

    Args:
        parsed: Output of parse_schema()
        include_scalars: Keep custom Scalar declarations as nodes

    Returns:
        A new GraphModel
    """
    nodes: dict[str, TypeNode] = {}
    for declaration in parsed.types.values():
        if _retained(declaration, parsed, include_scalars):
            nodes[declaration.name] = _to_node(declaration)

    edges: list[FieldEdge] = []
    unresolved: list[UnresolvedReference] = []

    for node in nodes.values():
        for field in node.fields:
            target = base_type_name(field.type_string)
            if target in nodes:
                edges.append(FieldEdge(source=node.id, target=target, label=field.name))
            elif target in parsed.types or is_builtin_type(target, parsed.injected_scalars):
                # Declared but filtered out by policy, or built-in
                continue
            else:
                unresolved.append(UnresolvedReference(type_name=node.id, field=field.name, target=target))
                logger.debug("Dropping edge %s.%s -> %s: type is not declared", node.id, field.name, target)

    return GraphModel(nodes=nodes, edges=edges, unresolved=unresolved)
