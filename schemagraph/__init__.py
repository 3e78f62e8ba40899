"""
Schema Graph Core - Parsing, graph building, focus filtering and layout.

This package turns GraphQL SDL text into a positioned node-link graph and
is shared by the explorer backend and any other renderer.
"""

from .models import (
    # Enums
    TypeKind,
    # Core models
    FieldDef,
    TypeNode,
    FieldEdge,
    UnresolvedReference,
    GraphModel,
    FocusState,
    ViewportContext,
    LayoutParams,
)

from .parser import ParseError, ParsedSchema, TypeDeclaration, parse_schema, extract_directives
from .builder import build_graph, BUILTIN_SCALARS
from .distance import compute_distances, filter_by_depth, INFINITE_DISTANCE
from .layout import LayoutEngine, SpringForce, RepulsionForce, CenteringForce, CollisionConstraint
from .validation import validate_graph, validation_summary, ValidationIssue, IssueSeverity
from .analysis import summarize_graph, find_connected_components, search_types

__all__ = [
    # Enums
    "TypeKind",
    # Models
    "FieldDef",
    "TypeNode",
    "FieldEdge",
    "UnresolvedReference",
    "GraphModel",
    "FocusState",
    "ViewportContext",
    "LayoutParams",
    # Parsing
    "ParseError",
    "ParsedSchema",
    "TypeDeclaration",
    "parse_schema",
    "extract_directives",
    # Building
    "build_graph",
    "BUILTIN_SCALARS",
    # Focus filtering
    "compute_distances",
    "filter_by_depth",
    "INFINITE_DISTANCE",
    # Layout
    "LayoutEngine",
    "SpringForce",
    "RepulsionForce",
    "CenteringForce",
    "CollisionConstraint",
    # Validation
    "validate_graph",
    "validation_summary",
    "ValidationIssue",
    "IssueSeverity",
    # Analysis
    "summarize_graph",
    "find_connected_components",
    "search_types",
]
