"""
Core data models for schema relationship graphs.

These models define the canonical shape of a schema diagram:
- Type nodes with kind, fields, directives and a 2D position
- Field edges connecting a type to the type a field refers to
- Focus and viewport state for a single diagram instance
- Tunable parameters for the force-directed layout

Field Naming Convention:
- Edges use `source` and `target` (same convention as D3, Cytoscape, etc.)
- A node's `id` is the type name, so ids are unique per schema
"""

import math
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, model_validator


class TypeKind(str, Enum):
    """Declaration kinds that can appear as nodes."""
    OBJECT = "Object"
    INTERFACE = "Interface"
    ENUM = "Enum"
    INPUT = "Input"
    UNION = "Union"
    SCALAR = "Scalar"


class FieldDef(BaseModel):
    """A single field of an object, interface or input type."""
    name: str
    type_string: str  # SDL rendering, e.g. "[Post!]!"
    description: str = ""


class TypeNode(BaseModel):
    """A declared schema type placed on the canvas."""
    id: str
    name: str
    kind: TypeKind = TypeKind.OBJECT
    fields: list[FieldDef] = Field(default_factory=list)
    directives: list[str] = Field(default_factory=list)
    possible_types: Optional[list[str]] = None  # Union members
    enum_values: Optional[list[str]] = None
    interfaces: list[str] = Field(default_factory=list)
    description: str = ""
    x: float = 0.0
    y: float = 0.0
    pinned: bool = False

    @model_validator(mode='before')
    @classmethod
    def default_id_from_name(cls, data):
        """Use the type name as id when no id is given."""
        if isinstance(data, dict) and 'id' not in data and 'name' in data:
            data['id'] = data['name']
        return data

    def bounding_radius(self) -> float:
        """
        Approximate radius of the rendered node.

        Grows with the label length and the number of listed fields
        (capped, renderers collapse long field lists).
        """
        entries = len(self.fields) or len(self.enum_values or []) or len(self.possible_types or [])
        width = max(120.0, len(self.name) * 8.0 + 32.0)
        height = 36.0 + 18.0 * min(entries, 10)
        return math.hypot(width, height) / 2


class FieldEdge(BaseModel):
    """A reference from a type's field to another declared type."""
    source: str
    target: str
    label: str  # Field name

    @property
    def id(self) -> str:
        return f"{self.source}.{self.label}->{self.target}"

    def to_json_dict(self) -> dict:
        """Convert to JSON-serializable dict."""
        return {
            "id": self.id,
            "source": self.source,
            "target": self.target,
            "label": self.label,
        }


class UnresolvedReference(BaseModel):
    """A field whose type is not declared anywhere in the schema."""
    type_name: str
    field: str
    target: str


class GraphModel(BaseModel):
    """
    The complete schema graph.

    Nodes are keyed by id for O(1) lookup. Every edge must reference
    nodes present in `nodes`; edges to undeclared types are never created
    and are listed in `unresolved` instead.
    """
    nodes: dict[str, TypeNode] = Field(default_factory=dict)
    edges: list[FieldEdge] = Field(default_factory=list)
    unresolved: list[UnresolvedReference] = Field(default_factory=list)

    @model_validator(mode='after')
    def check_edge_endpoints(self) -> "GraphModel":
        for edge in self.edges:
            if edge.source not in self.nodes:
                raise ValueError(f"Edge references non-existent source node: {edge.source}")
            if edge.target not in self.nodes:
                raise ValueError(f"Edge references non-existent target node: {edge.target}")
        return self

    @property
    def node_count(self) -> int:
        return len(self.nodes)

    @property
    def edge_count(self) -> int:
        return len(self.edges)

    def get_node(self, node_id: str) -> Optional[TypeNode]:
        """Get a node by ID (O(1) lookup)."""
        return self.nodes.get(node_id)

    def union_links(self) -> list[tuple[str, str]]:
        """(union, member) pairs where both ends are in the graph."""
        links = []
        for node in self.nodes.values():
            if node.kind != TypeKind.UNION or not node.possible_types:
                continue
            for member in node.possible_types:
                if member in self.nodes:
                    links.append((node.id, member))
        return links

    def links(self) -> list[tuple[str, str]]:
        """All node pairs that should be drawn together by the layout."""
        return [(e.source, e.target) for e in self.edges] + self.union_links()

    def subgraph(self, node_ids: set[str]) -> "GraphModel":
        """
        Restrict the graph to the given node ids.

        Edges survive only when both endpoints survive. Node order follows
        the original graph so downstream layout stays deterministic.
        """
        nodes = {nid: node for nid, node in self.nodes.items() if nid in node_ids}
        edges = [e for e in self.edges if e.source in nodes and e.target in nodes]
        return GraphModel(nodes=nodes, edges=edges)

    def to_json_dict(self) -> dict:
        """Convert to JSON-serializable dict with proper field names."""
        return {
            "nodes": [n.model_dump(mode="json") for n in self.nodes.values()],
            "edges": [e.to_json_dict() for e in self.edges],
            "union_links": [
                {"source": source, "target": target}
                for source, target in self.union_links()
            ],
        }


class FocusState(BaseModel):
    """Focus mode state. `depth` only matters while a node is focused."""
    focused_id: Optional[str] = None
    depth: int = Field(default=1, ge=1)

    @property
    def is_focused(self) -> bool:
        return self.focused_id is not None


class ViewportContext(BaseModel):
    """Canvas and view transform of one diagram instance."""
    width: float = 1200.0
    height: float = 800.0
    zoom: float = 1.0
    pan_x: float = 0.0
    pan_y: float = 0.0


class LayoutParams(BaseModel):
    """Tunable parameters of the force simulation."""
    width: float = 1200.0
    height: float = 800.0
    link_distance: float = 180.0     # Spring rest length
    attraction: float = 0.08         # Spring strength
    repulsion: float = 120000.0      # Inverse-square repulsion constant
    min_distance: float = 30.0       # Clamp for repulsion distance
    center_strength: float = 0.02
    collision_padding: float = 12.0
    collision_iterations: int = 2
    damping: float = 0.4             # Velocity decay per tick
    alpha_start: float = 1.0
    alpha_min: float = 0.001
    alpha_decay: float = 0.0228      # ~300 ticks from alpha_start to alpha_min
    reheat_alpha: float = 0.3        # Alpha used when a drag wakes a cooled layout
    improve_repulsion_factor: float = 1.5
    improve_distance_factor: float = 1.25
    seed: int = 42

    @property
    def center(self) -> tuple[float, float]:
        return (self.width / 2, self.height / 2)
