from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass, field, replace

from domain.models import GraphEdge, GraphNode, NodePosition, PedigreeGraph

DUPLICATE_OFFSET = 50.0
CHILD_OFFSET = 150.0
NEW_CHILD_LABEL = "New Child"

Clock = Callable[[], int]


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


@dataclass(frozen=True)
class EditorState:
    graph: PedigreeGraph = field(default_factory=PedigreeGraph)
    selected_node_id: str | None = None

    @property
    def selected_node(self) -> GraphNode | None:
        if self.selected_node_id is None:
            return None
        return self.graph.find_node(self.selected_node_id)


def _require_node(state: EditorState, node_id: str) -> GraphNode:
    node = state.graph.find_node(node_id)
    if node is None:
        msg = f"Unknown node: {node_id}"
        raise KeyError(msg)
    return node


def _with_graph(
    state: EditorState,
    nodes: list[GraphNode] | None = None,
    edges: list[GraphEdge] | None = None,
    **changes: object,
) -> EditorState:
    graph = PedigreeGraph(
        nodes=list(state.graph.nodes) if nodes is None else nodes,
        edges=list(state.graph.edges) if edges is None else edges,
    )
    return replace(state, graph=graph, **changes)


def replace_graph(state: EditorState, graph: PedigreeGraph) -> EditorState:
    return EditorState(graph=graph, selected_node_id=None)


def select_node(state: EditorState, node_id: str | None) -> EditorState:
    if node_id is not None:
        _require_node(state, node_id)
    return replace(state, selected_node_id=node_id)


def rename_node(state: EditorState, node_id: str, label: str) -> EditorState:
    _require_node(state, node_id)
    cleaned = label.strip()
    if not cleaned:
        return state
    nodes = [
        node.model_copy(update={"label": cleaned}) if node.id == node_id else node
        for node in state.graph.nodes
    ]
    return _with_graph(state, nodes=nodes)


def move_node(state: EditorState, node_id: str, x: float, y: float) -> EditorState:
    _require_node(state, node_id)
    nodes = [
        node.model_copy(update={"position": NodePosition(x=x, y=y)}) if node.id == node_id else node
        for node in state.graph.nodes
    ]
    return _with_graph(state, nodes=nodes)


def add_node(state: EditorState, node: GraphNode) -> EditorState:
    return _with_graph(state, nodes=[*state.graph.nodes, node])


def remove_node(state: EditorState, node_id: str) -> EditorState:
    nodes = [node for node in state.graph.nodes if node.id != node_id]
    edges = [
        edge for edge in state.graph.edges if edge.source != node_id and edge.target != node_id
    ]
    selected = None if state.selected_node_id == node_id else state.selected_node_id
    return _with_graph(state, nodes=nodes, edges=edges, selected_node_id=selected)


def duplicate_node(state: EditorState, node_id: str, clock: Clock = _now_ms) -> EditorState:
    source = _require_node(state, node_id)
    copy = GraphNode(
        id=f"{source.id}-copy-{clock()}",
        label=f"{source.label} (Copy)",
        position=NodePosition(
            x=source.position.x + DUPLICATE_OFFSET,
            y=source.position.y + DUPLICATE_OFFSET,
        ),
    )
    return add_node(state, copy)


def add_child(state: EditorState, parent_id: str, clock: Clock = _now_ms) -> EditorState:
    parent = _require_node(state, parent_id)
    child = GraphNode(
        id=f"child-{clock()}",
        label=NEW_CHILD_LABEL,
        position=NodePosition(x=parent.position.x, y=parent.position.y + CHILD_OFFSET),
    )
    edge = GraphEdge(id=f"{parent.id}-{child.id}", source=parent.id, target=child.id)
    return _with_graph(
        state,
        nodes=[*state.graph.nodes, child],
        edges=[*state.graph.edges, edge],
        selected_node_id=child.id,
    )


def connect_nodes(state: EditorState, source_id: str, target_id: str) -> EditorState:
    _require_node(state, source_id)
    _require_node(state, target_id)
    if any(
        edge.source == source_id and edge.target == target_id for edge in state.graph.edges
    ):
        return state
    edge = GraphEdge(id=f"{source_id}-{target_id}", source=source_id, target=target_id)
    return _with_graph(state, edges=[*state.graph.edges, edge])


def remove_edge(state: EditorState, edge_id: str) -> EditorState:
    edges = [edge for edge in state.graph.edges if edge.id != edge_id]
    return _with_graph(state, edges=edges)
