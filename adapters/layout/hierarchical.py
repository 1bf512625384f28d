from __future__ import annotations

from collections import deque
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from typing import Dict, List, Set

from adapters.layout.grid import GridLayoutEngine, LayoutConfig, connector_sides
from domain.models import (
    GraphEdge,
    GraphNode,
    LayoutPlan,
    LayoutRole,
    NodePlacement,
    Orientation,
    Point,
)
from domain.services.relationship_index import (
    ParentChildIndex,
    build_parent_child_index,
    select_root,
)


@dataclass
class _FamilyUnit:
    node_id: str
    spouses: List[str] = field(default_factory=list)
    children: List[_FamilyUnit] = field(default_factory=list)
    breadth: float = 0.0
    span: float = 0.0

    @property
    def members(self) -> List[str]:
        return [self.node_id, *self.spouses]


@dataclass
class _ComponentState:
    start: float
    depths: Dict[str, int] = field(default_factory=dict)
    centers: Dict[str, float] = field(default_factory=dict)
    row_ends: Dict[int, float] = field(default_factory=dict)

    def place(self, node_id: str, depth: int, center: float, half_breadth: float) -> None:
        self.depths[node_id] = depth
        self.centers[node_id] = center
        self.row_ends[depth] = max(self.row_ends.get(depth, self.start), center + half_breadth)

    @property
    def end(self) -> float:
        return max(self.row_ends.values(), default=self.start)


class HierarchicalLayoutEngine(GridLayoutEngine):
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

        index = build_parent_child_index(nodes, edges)
        root_id = select_root(index.node_ids, index)
        try:
            placements = self._place(index, root_id, orientation)
        except Exception as exc:  # noqa: BLE001
            return self._fallback_plan(nodes, orientation, root_id, exc)
        return LayoutPlan(placements=placements, orientation=orientation, root_id=root_id)

    def _place(
        self,
        index: ParentChildIndex,
        root_id: str | None,
        orientation: Orientation,
    ) -> List[NodePlacement]:
        roles: Dict[str, LayoutRole] = {}
        depths: Dict[str, int] = {}
        centers: Dict[str, float] = {}
        visited: Set[str] = set()
        cursor = 0.0

        component_root = root_id
        while component_root is not None:
            component = self._collect_component(component_root, index, visited)
            state = _ComponentState(start=cursor)
            self._place_component(component, index, roles, state, orientation)
            depths.update(state.depths)
            centers.update(state.centers)
            cursor = state.end + self.config.component_gap
            remaining = [node_id for node_id in index.node_ids if node_id not in visited]
            component_root = select_root(remaining, index)

        return self._to_placements(index.node_ids, roles, depths, centers, orientation)

    def _collect_component(
        self,
        root_id: str,
        index: ParentChildIndex,
        visited: Set[str],
    ) -> List[str]:
        visited.add(root_id)
        order = [root_id]
        queue = deque([root_id])
        while queue:
            current = queue.popleft()
            for relative in index.relatives(current):
                if relative in visited:
                    continue
                visited.add(relative)
                order.append(relative)
                queue.append(relative)
        return order

    def _place_component(
        self,
        component: List[str],
        index: ParentChildIndex,
        roles: Dict[str, LayoutRole],
        state: _ComponentState,
        orientation: Orientation,
    ) -> None:
        members = set(component)
        root_id = component[0]
        roles[root_id] = "descent"
        tree = self._build_unit(root_id, index, roles, members)

        units = list(_iter_units(tree))
        breadth = self.config.breadth(orientation)
        for unit in units:
            count = len(unit.members)
            unit.breadth = count * breadth + (count - 1) * self.config.next_spacing
        if not self.config.flexible_spacing:
            uniform = max(unit.breadth for unit in units)
            for unit in units:
                unit.breadth = uniform
        self._measure(tree)
        self._position(tree, state.start, 0, state, breadth)

        # Relatives reached only through ancestors of spouses or through cycles.
        for node_id in component:
            if node_id in roles:
                continue
            roles[node_id] = "sibling"
            depth = self._lane_depth(node_id, index, state)
            row_end = state.row_ends.get(depth)
            if row_end is None:
                center = state.start + breadth / 2
            else:
                center = row_end + self.config.next_spacing + breadth / 2
            state.place(node_id, depth, center, breadth / 2)

    def _build_unit(
        self,
        node_id: str,
        index: ParentChildIndex,
        roles: Dict[str, LayoutRole],
        members: Set[str],
    ) -> _FamilyUnit:
        unit = _FamilyUnit(node_id=node_id)
        for partner in index.co_parents(node_id):
            if partner in members and partner not in roles:
                roles[partner] = "spouse"
                unit.spouses.append(partner)

        child_ids: List[str] = []
        for member in unit.members:
            for child in index.children_of(member):
                if child in members and child not in roles:
                    roles[child] = "descent"
                    child_ids.append(child)
        unit.children = [self._build_unit(child, index, roles, members) for child in child_ids]
        return unit

    def _measure(self, unit: _FamilyUnit) -> float:
        children_span = sum(self._measure(child) for child in unit.children)
        if unit.children:
            children_span += self.config.sibling_spacing * (len(unit.children) - 1)
        unit.span = max(unit.breadth, children_span)
        return unit.span

    def _position(
        self,
        unit: _FamilyUnit,
        start: float,
        depth: int,
        state: _ComponentState,
        breadth: float,
    ) -> None:
        children_span = sum(child.span for child in unit.children)
        if unit.children:
            children_span += self.config.sibling_spacing * (len(unit.children) - 1)
        child_start = start + (unit.span - children_span) / 2
        for child in unit.children:
            self._position(child, child_start, depth + 1, state, breadth)
            child_start += child.span + self.config.sibling_spacing

        count = len(unit.members)
        step = breadth + self.config.next_spacing
        natural = count * breadth + (count - 1) * self.config.next_spacing
        unit_start = start + (unit.span - natural) / 2
        for offset, member in enumerate(unit.members):
            center = unit_start + offset * step + breadth / 2
            state.place(member, depth, center, breadth / 2)

    def _lane_depth(self, node_id: str, index: ParentChildIndex, state: _ComponentState) -> int:
        for child in index.children_of(node_id):
            if child in state.depths:
                return state.depths[child] - 1
        for parent in index.parents_of(node_id):
            if parent in state.depths:
                return state.depths[parent] + 1
        return 0

    def _to_placements(
        self,
        node_ids: Sequence[str],
        roles: Dict[str, LayoutRole],
        depths: Dict[str, int],
        centers: Dict[str, float],
        orientation: Orientation,
    ) -> List[NodePlacement]:
        size = self.config.node_size
        depth_step = self.config.depth(orientation) + self.config.generation_spacing
        depth_extent = self.config.depth(orientation)
        top_depth = min(depths.values(), default=0)
        placements: List[NodePlacement] = []
        for node_id in node_ids:
            role = roles[node_id]
            breadth_center = centers[node_id]
            depth_center = (depths[node_id] - top_depth) * depth_step + depth_extent / 2
            if orientation == "TB":
                center_x, center_y = breadth_center, depth_center
            else:
                center_x, center_y = depth_center, breadth_center
            entry, exit_ = connector_sides(role, orientation)
            placements.append(
                NodePlacement(
                    node_id=node_id,
                    position=Point(
                        self.config.padding + center_x - size.width / 2,
                        self.config.padding + center_y - size.height / 2,
                    ),
                    size=size,
                    role=role,
                    entry_side=entry,
                    exit_side=exit_,
                )
            )
        return placements


def _iter_units(unit: _FamilyUnit) -> Iterator[_FamilyUnit]:
    yield unit
    for child in unit.children:
        yield from _iter_units(child)
