from __future__ import annotations

from adapters.layout.grid import LayoutConfig
from adapters.layout.hierarchical import HierarchicalLayoutEngine
from adapters.layout.layered import LayeredLayoutEngine
from domain.models import LayoutStrategy
from domain.ports.layout import LayoutEngine


def build_layout_engine(
    strategy: LayoutStrategy = "hierarchical",
    config: LayoutConfig | None = None,
) -> LayoutEngine:
    if strategy == "hierarchical":
        return HierarchicalLayoutEngine(config)
    if strategy == "layered":
        return LayeredLayoutEngine(config)
    msg = f"Unknown layout strategy: {strategy}"
    raise ValueError(msg)
