from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import List, Set, Tuple

from domain.models import GraphEdge, GraphNode, NotationNode, PedigreeGraph, RawEdge


def edge_id(source: str, target: str, ordinal: int | str) -> str:
    return f"{source}-{target}-{ordinal}"


def sanitize_graph(
    nodes: Iterable[NotationNode | GraphNode],
    raw_edges: Sequence[RawEdge],
) -> Tuple[List[GraphNode], List[GraphEdge]]:
    graph_nodes: List[GraphNode] = []
    valid_ids: Set[str] = set()
    for node in nodes:
        if node.id in valid_ids:
            continue
        valid_ids.add(node.id)
        if isinstance(node, GraphNode):
            graph_nodes.append(node)
        else:
            graph_nodes.append(GraphNode(id=node.id, label=node.display_label))

    seen_pairs: Set[Tuple[str, str]] = set()
    graph_edges: List[GraphEdge] = []
    for ordinal, raw in enumerate(raw_edges):
        if raw.source not in valid_ids or raw.target not in valid_ids:
            continue
        pair = (raw.source, raw.target)
        if pair in seen_pairs:
            continue
        seen_pairs.add(pair)
        graph_edges.append(
            GraphEdge(
                id=edge_id(raw.source, raw.target, ordinal),
                source=raw.source,
                target=raw.target,
                label=raw.label,
            )
        )
    return graph_nodes, graph_edges


def build_graph(nodes: Iterable[NotationNode], raw_edges: Sequence[RawEdge]) -> PedigreeGraph:
    graph_nodes, graph_edges = sanitize_graph(nodes, raw_edges)
    return PedigreeGraph(nodes=graph_nodes, edges=graph_edges)
