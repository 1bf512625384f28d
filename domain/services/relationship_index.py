from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Dict, Tuple

from domain.models import GraphEdge, GraphNode


@dataclass(frozen=True)
class ParentChildIndex:
    node_ids: Tuple[str, ...]
    parents: Dict[str, Tuple[str, ...]]
    children: Dict[str, Tuple[str, ...]]

    def parents_of(self, node_id: str) -> Tuple[str, ...]:
        return self.parents.get(node_id, ())

    def children_of(self, node_id: str) -> Tuple[str, ...]:
        return self.children.get(node_id, ())

    def co_parents(self, node_id: str) -> Tuple[str, ...]:
        partners: Dict[str, None] = {}
        for child in self.children_of(node_id):
            for parent in self.parents_of(child):
                if parent != node_id:
                    partners.setdefault(parent, None)
        return tuple(partners)

    def relatives(self, node_id: str) -> Tuple[str, ...]:
        return tuple(dict.fromkeys((*self.parents_of(node_id), *self.children_of(node_id))))


def build_parent_child_index(
    nodes: Sequence[GraphNode],
    edges: Iterable[GraphEdge],
) -> ParentChildIndex:
    node_ids = tuple(node.id for node in nodes)
    # Insertion-ordered dicts act as ordered sets.
    parents: Dict[str, Dict[str, None]] = {node_id: {} for node_id in node_ids}
    children: Dict[str, Dict[str, None]] = {node_id: {} for node_id in node_ids}
    for edge in edges:
        if edge.source not in children or edge.target not in parents:
            continue
        children[edge.source].setdefault(edge.target, None)
        parents[edge.target].setdefault(edge.source, None)
    return ParentChildIndex(
        node_ids=node_ids,
        parents={node_id: tuple(values) for node_id, values in parents.items()},
        children={node_id: tuple(values) for node_id, values in children.items()},
    )


def select_root(node_ids: Sequence[str], index: ParentChildIndex) -> str | None:
    for node_id in node_ids:
        if not index.parents_of(node_id):
            return node_id
    return node_ids[0] if node_ids else None
