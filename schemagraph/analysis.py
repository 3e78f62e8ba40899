"""
Schema graph analysis - Summaries, components and type search.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .distance import build_adjacency

if TYPE_CHECKING:
    from .models import GraphModel


@dataclass
class ConnectedComponent:
    """A connected component in the schema graph."""
    node_ids: list[str] = field(default_factory=list)

    @property
    def size(self) -> int:
        return len(self.node_ids)


@dataclass
class TypeConnectionInfo:
    """Connection information for a single type."""
    type_name: str
    incoming: int = 0   # Fields of other types pointing here
    outgoing: int = 0   # Fields of this type pointing elsewhere

    @property
    def total(self) -> int:
        return self.incoming + self.outgoing


@dataclass
class SchemaSummary:
    """Structural summary of a schema graph."""
    total_types: int
    total_edges: int
    types_by_kind: dict[str, int]
    connected_components: int
    most_connected_types: list[TypeConnectionInfo]
    orphan_count: int
    unresolved_count: int

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "total_types": self.total_types,
            "total_edges": self.total_edges,
            "types_by_kind": self.types_by_kind,
            "connected_components": self.connected_components,
            "most_connected_types": [
                {
                    "name": t.type_name,
                    "connections": t.total,
                    "incoming": t.incoming,
                    "outgoing": t.outgoing
                }
                for t in self.most_connected_types
            ],
            "orphan_count": self.orphan_count,
            "unresolved_count": self.unresolved_count
        }


def find_connected_components(graph: "GraphModel") -> list[ConnectedComponent]:
    """
    Find all connected components over field edges and union membership.

    Args:
        graph: The graph to analyze

    Returns:
        List of ConnectedComponent objects in node order
    """
    adjacency = build_adjacency(graph)
    visited: set[str] = set()
    components: list[ConnectedComponent] = []

    for start in graph.nodes:
        if start in visited:
            continue

        component = ConnectedComponent()
        stack = [start]
        visited.add(start)
        while stack:
            current = stack.pop()
            component.node_ids.append(current)
            for neighbor in sorted(adjacency[current]):
                if neighbor not in visited:
                    visited.add(neighbor)
                    stack.append(neighbor)

        components.append(component)

    return components


def calculate_type_connections(graph: "GraphModel") -> dict[str, TypeConnectionInfo]:
    """Count incoming and outgoing field edges for every type."""
    connections = {nid: TypeConnectionInfo(type_name=nid) for nid in graph.nodes}
    for edge in graph.edges:
        connections[edge.source].outgoing += 1
        connections[edge.target].incoming += 1
    return connections


def summarize_graph(graph: "GraphModel", top_n: int = 5) -> SchemaSummary:
    """
    Generate a structural summary of a schema graph.

    Args:
        graph: The graph to summarize
        top_n: Number of top connected types to include

    Returns:
        SchemaSummary with all analysis results
    """
    kind_counts: dict[str, int] = defaultdict(int)
    for node in graph.nodes.values():
        kind_counts[node.kind.value] += 1

    connections = calculate_type_connections(graph)
    sorted_by_connections = sorted(
        connections.values(),
        key=lambda x: x.total,
        reverse=True
    )
    most_connected = [t for t in sorted_by_connections[:top_n] if t.total > 0]

    linked = {nid for pair in graph.links() for nid in pair}

    return SchemaSummary(
        total_types=graph.node_count,
        total_edges=graph.edge_count,
        types_by_kind=dict(kind_counts),
        connected_components=len(find_connected_components(graph)),
        most_connected_types=most_connected,
        orphan_count=sum(1 for nid in graph.nodes if nid not in linked),
        unresolved_count=len(graph.unresolved)
    )


def search_types(graph: "GraphModel", query: str) -> list[str]:
    """
    Find types whose name or field names contain the query.

    Matching is case-insensitive. An empty query matches every type.
    """
    needle = query.strip().lower()
    if not needle:
        return list(graph.nodes)

    results = []
    for node in graph.nodes.values():
        if needle in node.name.lower():
            results.append(node.id)
        elif any(needle in f.name.lower() for f in node.fields):
            results.append(node.id)
    return results
