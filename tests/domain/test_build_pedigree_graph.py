from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any

import pytest

from adapters.layout.grid import GridLayoutEngine
from adapters.layout.hierarchical import HierarchicalLayoutEngine
from domain.errors import EmptyInputError, NoNodesFoundError, UpstreamFailureError
from domain.services.build_pedigree_graph import (
    NotationToGraphConverter,
    TextToPedigreeService,
    relayout,
)
from tests.helpers.notation_fixtures import load_notation_fixture


def test_converter_uses_header_orientation_by_default() -> None:
    converter = NotationToGraphConverter(HierarchicalLayoutEngine())
    result = converter.convert(load_notation_fixture("with_marriage_nodes.mmd"))

    assert result.orientation == "LR"
    assert not result.degraded
    assert "M1" not in result.graph.node_ids()
    assert all(
        edge.source in result.graph.node_ids() and edge.target in result.graph.node_ids()
        for edge in result.graph.edges
    )


def test_converter_orientation_argument_wins() -> None:
    converter = NotationToGraphConverter(HierarchicalLayoutEngine())
    result = converter.convert(load_notation_fixture("with_marriage_nodes.mmd"), "TB")
    assert result.orientation == "TB"
    assert {node.entry_side for node in result.graph.nodes} <= {"top", "left", "right"}


def test_converter_defaults_to_top_bottom_without_header() -> None:
    result = NotationToGraphConverter(HierarchicalLayoutEngine()).convert("a --> b")
    assert result.orientation == "TB"


def test_every_node_gets_a_position_and_sides() -> None:
    converter = NotationToGraphConverter(HierarchicalLayoutEngine())
    result = converter.convert(load_notation_fixture("three_generations.mmd"))

    for node in result.graph.nodes:
        assert node.entry_side is not None
        assert node.exit_side is not None
        assert node.role is not None
    positions = {(node.position.x, node.position.y) for node in result.graph.nodes}
    assert len(positions) == len(result.graph.nodes)


def test_relayout_switches_orientation() -> None:
    converter = NotationToGraphConverter(HierarchicalLayoutEngine())
    graph = converter.convert("graph TD\na --> b").graph

    result = relayout(graph, HierarchicalLayoutEngine(), "LR")

    sides = {node.id: (node.entry_side, node.exit_side) for node in result.graph.nodes}
    assert sides["b"] == ("left", "right")
    nodes = {node.id: node for node in result.graph.nodes}
    assert nodes["b"].position.x > nodes["a"].position.x


def test_relayout_with_grid_engine_keeps_edges() -> None:
    graph = NotationToGraphConverter(GridLayoutEngine()).convert("a --> b --> c").graph
    result = relayout(graph, GridLayoutEngine())
    assert result.graph.edges == graph.edges


def test_service_generates_and_converts(
    fake_generator_factory: Callable[..., Any],
) -> None:
    generator = fake_generator_factory(load_notation_fixture("nuclear_family.mmd"))
    service = TextToPedigreeService(
        generator, NotationToGraphConverter(HierarchicalLayoutEngine())
    )

    result = asyncio.run(service.convert("  John and   Mary have\nSarah and Tom "))

    assert generator.calls == ["John and Mary have Sarah and Tom"]
    assert result.notation.startswith("flowchart TD")
    assert result.graph.node_ids() == ["john", "sarah", "mary", "tom"]
    roles = {node.id: node.role for node in result.graph.nodes}
    assert roles == {"john": "descent", "mary": "spouse", "sarah": "descent", "tom": "descent"}


def test_service_rejects_empty_input_before_generation(
    fake_generator_factory: Callable[..., Any],
) -> None:
    generator = fake_generator_factory("a --> b")
    service = TextToPedigreeService(
        generator, NotationToGraphConverter(HierarchicalLayoutEngine())
    )
    with pytest.raises(EmptyInputError):
        asyncio.run(service.convert("   "))
    assert generator.calls == []


def test_service_respects_input_limit(fake_generator_factory: Callable[..., Any]) -> None:
    service = TextToPedigreeService(
        fake_generator_factory("a --> b"),
        NotationToGraphConverter(HierarchicalLayoutEngine()),
        max_input_length=5,
    )
    with pytest.raises(EmptyInputError, match="too long"):
        asyncio.run(service.generate_notation("abcdef"))


def test_service_propagates_upstream_failures(
    fake_generator_factory: Callable[..., Any],
) -> None:
    service = TextToPedigreeService(
        fake_generator_factory(error="quota exceeded"),
        NotationToGraphConverter(HierarchicalLayoutEngine()),
    )
    with pytest.raises(UpstreamFailureError, match="quota exceeded"):
        asyncio.run(service.convert("John has a son"))


def test_service_raises_when_notation_has_no_people(
    fake_generator_factory: Callable[..., Any],
) -> None:
    service = TextToPedigreeService(
        fake_generator_factory("graph TD\nM1[Marriage]"),
        NotationToGraphConverter(HierarchicalLayoutEngine()),
    )
    with pytest.raises(NoNodesFoundError):
        asyncio.run(service.convert("John married Mary"))
