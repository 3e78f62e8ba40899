#!/usr/bin/env python3
"""Unit tests for hop distances and focus-depth filtering."""

import pytest

from schemagraph import INFINITE_DISTANCE, build_graph, compute_distances, filter_by_depth, parse_schema


@pytest.fixture
def chain_graph(chain_schema):
    return build_graph(parse_schema(chain_schema))


@pytest.mark.unit
class TestComputeDistances:
    """Tests for breadth-first distances."""

    def test_chain_distances(self, chain_graph):
        """Test distances along A -> B -> C -> D with E unconnected."""
        distances = compute_distances(chain_graph, "A")

        assert distances == {"A": 0, "B": 1, "C": 2, "D": 3, "E": INFINITE_DISTANCE}

    def test_edges_are_undirected(self, chain_graph):
        """Test that distances follow edges against their direction."""
        distances = compute_distances(chain_graph, "D")

        assert distances["A"] == 3
        assert distances["C"] == 1

    def test_unknown_focal_node(self, chain_graph):
        """Test that an unknown start leaves every node unreachable."""
        distances = compute_distances(chain_graph, "Missing")

        assert set(distances.values()) == {INFINITE_DISTANCE}

    def test_every_node_has_a_distance(self, chain_graph):
        """Test that the result covers exactly the graph's nodes."""
        assert set(compute_distances(chain_graph, "B")) == set(chain_graph.nodes)


@pytest.mark.unit
class TestFilterByDepth:
    """Tests for focus neighbourhood subgraphs."""

    def test_depth_one(self, chain_graph):
        """Test that depth 1 keeps the focal node and its neighbours."""
        sub = filter_by_depth(chain_graph, compute_distances(chain_graph, "A"), 1)

        assert set(sub.nodes) == {"A", "B"}
        assert [e.id for e in sub.edges] == ["A.b->B"]

    def test_depth_grows_neighbourhood(self, chain_graph):
        """Test that each extra hop adds the next node of the chain."""
        distances = compute_distances(chain_graph, "A")

        assert set(filter_by_depth(chain_graph, distances, 2).nodes) == {"A", "B", "C"}
        assert set(filter_by_depth(chain_graph, distances, 3).nodes) == {"A", "B", "C", "D"}

    def test_middle_node_reaches_both_ways(self, chain_graph):
        """Test that depth 1 around B includes A and C."""
        sub = filter_by_depth(chain_graph, compute_distances(chain_graph, "B"), 1)

        assert set(sub.nodes) == {"A", "B", "C"}
        assert sub.edge_count == 2

    def test_isolated_focal_node_is_kept(self, chain_graph):
        """Test that a node without edges still shows alone in focus."""
        sub = filter_by_depth(chain_graph, compute_distances(chain_graph, "E"), 1)

        assert set(sub.nodes) == {"E"}
        assert sub.edge_count == 0

    def test_mutual_reference_depth_one(self, mutual_schema):
        """Test that both edges of a mutual pair survive focus."""
        graph = build_graph(parse_schema(mutual_schema))
        sub = filter_by_depth(graph, compute_distances(graph, "A"), 1)

        assert sub.node_count == 2
        assert sub.edge_count == 2

    def test_union_focus_keeps_members(self):
        """Test that a union's members are one hop from the union."""
        graph = build_graph(parse_schema("type A { x: Int }\ntype B { y: Int }\nunion U = A | B"))
        sub = filter_by_depth(graph, compute_distances(graph, "U"), 1)

        assert set(sub.nodes) == {"U", "A", "B"}
        assert sub.union_links() == [("U", "A"), ("U", "B")]

    def test_member_focus_reaches_union(self, blog_schema):
        """Test that focusing a member also shows the unions it belongs to."""
        graph = build_graph(parse_schema(blog_schema))
        distances = compute_distances(graph, "User")

        assert distances["SearchResult"] == 1
        assert "SearchResult" in filter_by_depth(graph, distances, 1).nodes

    def test_filter_keeps_node_order(self, chain_graph):
        """Test that the subgraph lists nodes in the original order."""
        sub = filter_by_depth(chain_graph, compute_distances(chain_graph, "C"), 1)

        assert list(sub.nodes) == ["B", "C", "D"]
