from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Dict, List, Tuple

from domain.models import (
    ConnectorSide,
    GraphEdge,
    GraphNode,
    LayoutPlan,
    LayoutRole,
    NodePlacement,
    Orientation,
    Point,
    Size,
)
from domain.ports.layout import LayoutEngine

logger = logging.getLogger(__name__)

_ROLE_SIDES: Dict[LayoutRole, Tuple[ConnectorSide, ConnectorSide]] = {
    "descent": ("top", "bottom"),
    "spouse": ("left", "right"),
    "sibling": ("right", "left"),
}
_LEFT_TO_RIGHT_SIDES: Dict[ConnectorSide, ConnectorSide] = {
    "top": "left",
    "bottom": "right",
    "left": "top",
    "right": "bottom",
}


@dataclass(frozen=True)
class LayoutConfig:
    node_size: Size = Size(150, 36)
    padding: float = 50.0
    sibling_spacing: float = 40.0
    generation_spacing: float = 80.0
    next_spacing: float = 20.0
    component_gap: float = 80.0
    flexible_spacing: bool = True
    grid_columns: int = 5
    grid_gap_x: float = 50.0
    grid_gap_y: float = 64.0
    layered_node_spacing: float = 50.0
    layered_rank_spacing: float = 100.0

    def breadth(self, orientation: Orientation) -> float:
        return self.node_size.width if orientation == "TB" else self.node_size.height

    def depth(self, orientation: Orientation) -> float:
        return self.node_size.height if orientation == "TB" else self.node_size.width


def connector_sides(
    role: LayoutRole, orientation: Orientation
) -> Tuple[ConnectorSide, ConnectorSide]:
    entry, exit_ = _ROLE_SIDES[role]
    if orientation == "LR":
        return _LEFT_TO_RIGHT_SIDES[entry], _LEFT_TO_RIGHT_SIDES[exit_]
    return entry, exit_


class GridLayoutEngine(LayoutEngine):
    def __init__(self, config: LayoutConfig | None = None) -> None:
        self.config = config or LayoutConfig()

    def build_plan(
        self,
        nodes: Sequence[GraphNode],
        edges: Sequence[GraphEdge],
        orientation: Orientation = "TB",
    ) -> LayoutPlan:
        return self._grid_plan(nodes, orientation)

    def _grid_plan(
        self,
        nodes: Sequence[GraphNode],
        orientation: Orientation,
        root_id: str | None = None,
        degraded: bool = False,
    ) -> LayoutPlan:
        size = self.config.node_size
        columns = max(1, self.config.grid_columns)
        entry, exit_ = connector_sides("descent", orientation)
        placements: List[NodePlacement] = []
        for idx, node in enumerate(nodes):
            row, col = divmod(idx, columns)
            x = self.config.padding + col * (size.width + self.config.grid_gap_x)
            y = self.config.padding + row * (size.height + self.config.grid_gap_y)
            placements.append(
                NodePlacement(
                    node_id=node.id,
                    position=Point(x, y),
                    size=size,
                    role="descent",
                    entry_side=entry,
                    exit_side=exit_,
                )
            )
        return LayoutPlan(
            placements=placements,
            orientation=orientation,
            root_id=root_id,
            degraded=degraded,
        )

    def _fallback_plan(
        self,
        nodes: Sequence[GraphNode],
        orientation: Orientation,
        root_id: str | None,
        exc: Exception,
    ) -> LayoutPlan:
        logger.warning(
            "%s failed for %d nodes, using grid placement",
            type(self).__name__,
            len(nodes),
            exc_info=exc,
        )
        return self._grid_plan(nodes, orientation, root_id=root_id, degraded=True)
