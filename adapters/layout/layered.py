from __future__ import annotations

from collections.abc import Sequence
from typing import Dict, List

import networkx as nx

from adapters.layout.grid import GridLayoutEngine, LayoutConfig, connector_sides
from domain.models import GraphEdge, GraphNode, LayoutPlan, NodePlacement, Orientation, Point


class LayeredLayoutEngine(GridLayoutEngine):
    def __init__(self, config: LayoutConfig | None = None) -> None:
        super().__init__(config or LayoutConfig())

    def build_plan(
        self,
        nodes: Sequence[GraphNode],
        edges: Sequence[GraphEdge],
        orientation: Orientation = "TB",
    ) -> LayoutPlan:
        if not nodes:
            return LayoutPlan(placements=[], orientation=orientation)
        try:
            placements = self._place(nodes, edges, orientation)
        except Exception as exc:  # noqa: BLE001
            return self._fallback_plan(nodes, orientation, None, exc)
        return LayoutPlan(placements=placements, orientation=orientation)

    def _place(
        self,
        nodes: Sequence[GraphNode],
        edges: Sequence[GraphEdge],
        orientation: Orientation,
    ) -> List[NodePlacement]:
        order_index = {node.id: idx for idx, node in enumerate(nodes)}
        graph = nx.DiGraph()
        graph.add_nodes_from(order_index)
        graph.add_edges_from(
            (edge.source, edge.target)
            for edge in edges
            if edge.source != edge.target
            and edge.source in order_index
            and edge.target in order_index
        )
        layers = [
            sorted(layer, key=lambda node_id: order_index[node_id])
            for layer in nx.topological_generations(graph)
        ]

        # Reorder each layer by the mean slot of its already placed successors (bottom-up pass).
        slots: Dict[str, int] = {}
        for layer in reversed(layers):

            def anchor(node_id: str) -> float:
                placed = [slots[child] for child in graph.successors(node_id) if child in slots]
                if placed:
                    return sum(placed) / len(placed)
                return float("inf")

            layer.sort(key=lambda node_id: (anchor(node_id), order_index[node_id]))
            for slot, node_id in enumerate(layer):
                slots[node_id] = slot

        size = self.config.node_size
        breadth_step = self.config.breadth(orientation) + self.config.layered_node_spacing
        depth_step = self.config.depth(orientation) + self.config.layered_rank_spacing
        widest = max(len(layer) for layer in layers)
        entry, exit_ = connector_sides("descent", orientation)
        positions: Dict[str, Point] = {}
        for rank, layer in enumerate(layers):
            offset = (widest - len(layer)) * breadth_step / 2
            for node_id in layer:
                along = self.config.padding + offset + slots[node_id] * breadth_step
                across = self.config.padding + rank * depth_step
                if orientation == "TB":
                    positions[node_id] = Point(along, across)
                else:
                    positions[node_id] = Point(across, along)

        return [
            NodePlacement(
                node_id=node.id,
                position=positions[node.id],
                size=size,
                role="descent",
                entry_side=entry,
                exit_side=exit_,
            )
            for node in nodes
        ]
