from __future__ import annotations

import pytest

from domain.models import GraphEdge, GraphNode, NotationNode, PedigreeGraph, RawEdge
from domain.services.sanitize_graph import build_graph, edge_id, sanitize_graph


def test_dangling_and_duplicate_edges_are_dropped() -> None:
    nodes = [NotationNode("a", "Anna"), NotationNode("b"), NotationNode("a", "Other")]
    raw_edges = [
        RawEdge("a", "b"),
        RawEdge("a", "ghost"),
        RawEdge("a", "b", label="again"),
        RawEdge("b", "a"),
    ]

    graph_nodes, graph_edges = sanitize_graph(nodes, raw_edges)

    assert [(node.id, node.label) for node in graph_nodes] == [("a", "Anna"), ("b", "b")]
    assert [edge.id for edge in graph_edges] == ["a-b-0", "b-a-3"]


def test_edge_ids_are_unique_and_stable() -> None:
    nodes = [NotationNode("a"), NotationNode("b"), NotationNode("c")]
    raw_edges = [RawEdge("a", "b"), RawEdge("a", "c"), RawEdge("b", "c")]

    first = build_graph(nodes, raw_edges)
    second = build_graph(nodes, raw_edges)

    assert [edge.id for edge in first.edges] == [edge.id for edge in second.edges]
    assert len({edge.id for edge in first.edges}) == 3
    assert edge_id("a", "b", 7) == "a-b-7"


def test_edge_labels_are_carried() -> None:
    graph = build_graph([NotationNode("a"), NotationNode("b")], [RawEdge("a", "b", "father of")])
    assert graph.edges[0].label == "father of"


def test_graph_rejects_dangling_edges() -> None:
    with pytest.raises(ValueError, match="unknown node"):
        PedigreeGraph(
            nodes=[GraphNode(id="a")],
            edges=[GraphEdge(id="a-b", source="a", target="b")],
        )


def test_graph_rejects_duplicate_node_ids() -> None:
    with pytest.raises(ValueError, match="Duplicate node id"):
        PedigreeGraph(nodes=[GraphNode(id="a"), GraphNode(id="a")])


def test_export_uses_camel_case_sides_and_hides_role() -> None:
    node = GraphNode(id="a", entry_side="top", exit_side="bottom", role="descent")
    exported = PedigreeGraph(nodes=[node]).to_export()

    assert exported["nodes"] == [
        {
            "id": "a",
            "label": "a",
            "position": {"x": 0.0, "y": 0.0},
            "entrySide": "top",
            "exitSide": "bottom",
        }
    ]
    assert exported["edges"] == []
