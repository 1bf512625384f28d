from __future__ import annotations

import math

import pytest

from adapters.layout.grid import LayoutConfig
from adapters.layout.hierarchical import HierarchicalLayoutEngine
from domain.models import LayoutPlan, NodePlacement, Point
from tests.helpers.notation_fixtures import make_graph

FAMILY = (
    ["john", "mary", "sarah", "tom"],
    [("john", "sarah"), ("mary", "sarah"), ("john", "tom"), ("mary", "tom")],
)


def _by_id(plan: LayoutPlan) -> dict[str, NodePlacement]:
    return {placement.node_id: placement for placement in plan.placements}


def _overlaps(first: NodePlacement, second: NodePlacement) -> bool:
    return (
        first.position.x < second.position.x + second.size.width
        and second.position.x < first.position.x + first.size.width
        and first.position.y < second.position.y + second.size.height
        and second.position.y < first.position.y + first.size.height
    )


def test_family_positions_top_to_bottom() -> None:
    nodes, edges = make_graph(*FAMILY)
    plan = HierarchicalLayoutEngine().build_plan(nodes, edges, "TB")
    placements = _by_id(plan)

    assert plan.root_id == "john"
    assert not plan.degraded
    assert placements["john"].position == Point(60, 50)
    assert placements["mary"].position == Point(230, 50)
    assert placements["sarah"].position == Point(50, 166)
    assert placements["tom"].position == Point(240, 166)


def test_family_roles_and_connector_sides() -> None:
    nodes, edges = make_graph(*FAMILY)
    placements = _by_id(HierarchicalLayoutEngine().build_plan(nodes, edges, "TB"))

    assert placements["john"].role == "descent"
    assert placements["mary"].role == "spouse"
    assert (placements["mary"].entry_side, placements["mary"].exit_side) == ("left", "right")
    assert (placements["sarah"].entry_side, placements["sarah"].exit_side) == ("top", "bottom")


def test_family_positions_left_to_right() -> None:
    nodes, edges = make_graph(*FAMILY)
    placements = _by_id(HierarchicalLayoutEngine().build_plan(nodes, edges, "LR"))

    assert placements["john"].position == Point(50, 60)
    assert placements["sarah"].position == Point(280, 50)
    assert (placements["sarah"].entry_side, placements["sarah"].exit_side) == ("left", "right")
    assert (placements["mary"].entry_side, placements["mary"].exit_side) == ("top", "bottom")


def test_rigid_spacing_spreads_siblings_further() -> None:
    nodes, edges = make_graph(*FAMILY)
    flexible = _by_id(HierarchicalLayoutEngine().build_plan(nodes, edges))
    rigid = _by_id(
        HierarchicalLayoutEngine(LayoutConfig(flexible_spacing=False)).build_plan(nodes, edges)
    )

    flexible_gap = flexible["tom"].position.x - flexible["sarah"].position.x
    rigid_gap = rigid["tom"].position.x - rigid["sarah"].position.x
    assert flexible_gap == pytest.approx(190)
    assert rigid_gap == pytest.approx(360)


def test_spouse_ancestor_is_placed_in_sibling_lane_above() -> None:
    nodes, edges = make_graph(
        ["john", "mary", "sarah", "grandpa"],
        [("john", "sarah"), ("mary", "sarah"), ("grandpa", "mary")],
    )
    placements = _by_id(HierarchicalLayoutEngine().build_plan(nodes, edges))

    assert placements["grandpa"].role == "sibling"
    assert (placements["grandpa"].entry_side, placements["grandpa"].exit_side) == (
        "right",
        "left",
    )
    assert placements["grandpa"].position.y < placements["john"].position.y
    assert min(placement.position.y for placement in placements.values()) == 50


def test_disconnected_components_are_laid_out_side_by_side() -> None:
    nodes, edges = make_graph(["a", "b", "c", "d"], [("a", "b"), ("c", "d")])
    placements = _by_id(HierarchicalLayoutEngine().build_plan(nodes, edges))

    assert placements["c"].position.x - (placements["a"].position.x + 150) == pytest.approx(80)
    assert placements["c"].position.y == placements["a"].position.y


@pytest.mark.parametrize("orientation", ["TB", "LR"])
def test_cycle_places_every_node(orientation: str) -> None:
    nodes, edges = make_graph(["a", "b", "c"], [("a", "b"), ("b", "a"), ("b", "c"), ("c", "c")])
    plan = HierarchicalLayoutEngine().build_plan(nodes, edges, orientation)  # type: ignore[arg-type]

    assert not plan.degraded
    assert [placement.node_id for placement in plan.placements] == ["a", "b", "c"]
    for placement in plan.placements:
        assert math.isfinite(placement.position.x)
        assert math.isfinite(placement.position.y)


def test_no_two_nodes_overlap_in_larger_tree() -> None:
    nodes, edges = make_graph(
        ["g1", "g2", "p1", "p2", "p3", "s1", "c1", "c2", "c3", "c4", "loner"],
        [
            ("g1", "p1"),
            ("g2", "p1"),
            ("g1", "p2"),
            ("g1", "p3"),
            ("p1", "c1"),
            ("s1", "c1"),
            ("p1", "c2"),
            ("p3", "c3"),
            ("p3", "c4"),
        ],
    )
    plan = HierarchicalLayoutEngine().build_plan(nodes, edges)
    placements = plan.placements

    assert len(placements) == len(nodes)
    for idx, first in enumerate(placements):
        for second in placements[idx + 1 :]:
            assert not _overlaps(first, second), (first.node_id, second.node_id)


def test_empty_graph_yields_empty_plan() -> None:
    plan = HierarchicalLayoutEngine().build_plan([], [], "LR")
    assert plan.placements == []
    assert plan.orientation == "LR"
    assert plan.root_id is None


def test_internal_failure_falls_back_to_grid(caplog: pytest.LogCaptureFixture) -> None:
    class BrokenEngine(HierarchicalLayoutEngine):
        def _place(self, *args: object, **kwargs: object) -> list[NodePlacement]:
            raise RuntimeError("boom")

    nodes, edges = make_graph(*FAMILY)
    with caplog.at_level("WARNING"):
        plan = BrokenEngine().build_plan(nodes, edges)

    assert plan.degraded
    assert plan.root_id == "john"
    assert [placement.node_id for placement in plan.placements] == FAMILY[0]
    assert "using grid placement" in caplog.text
