from __future__ import annotations

import logging
from dataclasses import dataclass

from domain.models import (
    DEFAULT_ORIENTATION,
    GraphNode,
    LayoutPlan,
    NodePosition,
    Orientation,
    PedigreeGraph,
)
from domain.ports.layout import LayoutEngine
from domain.ports.notation import NotationGenerator
from domain.services.input_validation import MAX_INPUT_LENGTH, preprocess_input, validate_input
from domain.services.parse_notation import parse_notation
from domain.services.sanitize_graph import build_graph

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LayoutResult:
    graph: PedigreeGraph
    orientation: Orientation
    degraded: bool


@dataclass(frozen=True)
class ConversionResult:
    notation: str
    graph: PedigreeGraph
    orientation: Orientation
    degraded: bool


def apply_layout_plan(graph: PedigreeGraph, plan: LayoutPlan) -> PedigreeGraph:
    placements = {placement.node_id: placement for placement in plan.placements}
    nodes: list[GraphNode] = []
    for node in graph.nodes:
        placement = placements.get(node.id)
        if placement is None:
            nodes.append(node)
            continue
        nodes.append(
            node.model_copy(
                update={
                    "position": NodePosition(x=placement.position.x, y=placement.position.y),
                    "entry_side": placement.entry_side,
                    "exit_side": placement.exit_side,
                    "role": placement.role,
                }
            )
        )
    return PedigreeGraph(nodes=nodes, edges=list(graph.edges))


def relayout(
    graph: PedigreeGraph,
    engine: LayoutEngine,
    orientation: Orientation = DEFAULT_ORIENTATION,
) -> LayoutResult:
    plan = engine.build_plan(graph.nodes, graph.edges, orientation)
    if plan.degraded:
        logger.warning("Layout degraded for graph with %d nodes", len(graph.nodes))
    return LayoutResult(
        graph=apply_layout_plan(graph, plan),
        orientation=orientation,
        degraded=plan.degraded,
    )


class NotationToGraphConverter:
    def __init__(self, layout: LayoutEngine) -> None:
        self.layout = layout

    def convert(self, notation: str, orientation: Orientation | None = None) -> LayoutResult:
        parsed = parse_notation(notation)
        graph = build_graph(parsed.nodes, parsed.edges)
        resolved = orientation or parsed.direction or DEFAULT_ORIENTATION
        return relayout(graph, self.layout, resolved)


class TextToPedigreeService:
    def __init__(
        self,
        generator: NotationGenerator,
        converter: NotationToGraphConverter,
        max_input_length: int = MAX_INPUT_LENGTH,
    ) -> None:
        self.generator = generator
        self.converter = converter
        self.max_input_length = max_input_length

    async def generate_notation(self, text: str) -> str:
        validate_input(text, self.max_input_length)
        return await self.generator.generate(preprocess_input(text))

    async def convert(self, text: str, orientation: Orientation | None = None) -> ConversionResult:
        notation = await self.generate_notation(text)
        result = self.converter.convert(notation, orientation)
        return ConversionResult(
            notation=notation,
            graph=result.graph,
            orientation=result.orientation,
            degraded=result.degraded,
        )
