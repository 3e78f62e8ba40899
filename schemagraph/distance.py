"""
Hop distances from a focal type, used to build focus-mode subgraphs.

Edges are treated as undirected: a field A.b -> B links A and B both ways.
A union is one hop from each of its members.
"""

import sys
from collections import deque

from .models import GraphModel

# Distance of nodes that cannot be reached from the focal node
INFINITE_DISTANCE = sys.maxsize


def build_adjacency(graph: GraphModel) -> dict[str, set[str]]:
    """Undirected adjacency sets over field edges and union membership."""
    adjacency: dict[str, set[str]] = {nid: set() for nid in graph.nodes}
    for source, target in graph.links():
        adjacency[source].add(target)
        adjacency[target].add(source)
    return adjacency


def compute_distances(graph: GraphModel, focal_id: str) -> dict[str, int]:
    """
    Breadth-first shortest-hop distance from focal_id to every node.

    Args:
        graph: The graph to search
        focal_id: Starting node ID

    Returns:
        Dictionary mapping every node id to its distance; unreachable nodes
        (and every node, if focal_id is not in the graph) map to
        INFINITE_DISTANCE
    """
    distances = {nid: INFINITE_DISTANCE for nid in graph.nodes}
    if focal_id not in graph.nodes:
        return distances

    adjacency = build_adjacency(graph)
    distances[focal_id] = 0
    queue = deque([focal_id])

    while queue:
        current = queue.popleft()
        for neighbor in sorted(adjacency[current]):
            if distances[neighbor] == INFINITE_DISTANCE:
                distances[neighbor] = distances[current] + 1
                queue.append(neighbor)

    return distances


def filter_by_depth(graph: GraphModel, distances: dict[str, int], max_depth: int) -> GraphModel:
    """
    Keep nodes within max_depth hops, plus the edges between them.

    The focal node (distance 0) is always kept, even when it has no edges.
    """
    keep = {
        nid for nid in graph.nodes
        if distances.get(nid, INFINITE_DISTANCE) <= max_depth
        or distances.get(nid) == 0
    }
    return graph.subgraph(keep)
