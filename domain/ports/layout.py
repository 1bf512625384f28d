from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from domain.models import GraphEdge, GraphNode, LayoutPlan, Orientation


class LayoutEngine(Protocol):
    def build_plan(
        self,
        nodes: Sequence[GraphNode],
        edges: Sequence[GraphEdge],
        orientation: Orientation = "TB",
    ) -> LayoutPlan:
        ...
