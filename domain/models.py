from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Literal, Optional, Set

from pydantic import BaseModel, ConfigDict, Field, model_validator

Orientation = Literal["TB", "LR"]
LayoutStrategy = Literal["hierarchical", "layered"]
LayoutRole = Literal["descent", "spouse", "sibling"]
ConnectorSide = Literal["top", "bottom", "left", "right"]

DEFAULT_ORIENTATION: Orientation = "TB"


@dataclass(frozen=True)
class Point:
    x: float
    y: float


@dataclass(frozen=True)
class Size:
    width: float
    height: float


@dataclass(frozen=True)
class NotationNode:
    id: str
    label: str | None = None

    @property
    def display_label(self) -> str:
        return self.label or self.id


@dataclass(frozen=True)
class RawEdge:
    source: str
    target: str
    label: str | None = None


@dataclass(frozen=True)
class ParsedNotation:
    nodes: List[NotationNode]
    edges: List[RawEdge]
    direction: Orientation | None = None


class NodePosition(BaseModel):
    model_config = ConfigDict(frozen=True)

    x: float = 0.0
    y: float = 0.0


class GraphNode(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(..., min_length=1)
    label: str = ""
    position: NodePosition = Field(default_factory=NodePosition)
    entry_side: Optional[ConnectorSide] = Field(default=None, alias="entrySide")
    exit_side: Optional[ConnectorSide] = Field(default=None, alias="exitSide")
    role: Optional[LayoutRole] = Field(default=None, exclude=True)

    @model_validator(mode="before")
    @classmethod
    def default_label_to_id(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("label"):
            return {**data, "label": data.get("id", "")}
        return data


class GraphEdge(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    source: str = Field(..., min_length=1)
    target: str = Field(..., min_length=1)
    label: Optional[str] = None


class PedigreeGraph(BaseModel):
    model_config = ConfigDict(frozen=True)

    nodes: List[GraphNode] = Field(default_factory=list)
    edges: List[GraphEdge] = Field(default_factory=list)

    @model_validator(mode="after")
    def ensure_integrity(self) -> PedigreeGraph:
        seen: Set[str] = set()
        for node in self.nodes:
            if node.id in seen:
                msg = f"Duplicate node id found: {node.id}"
                raise ValueError(msg)
            seen.add(node.id)
        for edge in self.edges:
            if edge.source not in seen or edge.target not in seen:
                msg = f"Edge {edge.id} references an unknown node"
                raise ValueError(msg)
        return self

    def node_ids(self) -> List[str]:
        return [node.id for node in self.nodes]

    def find_node(self, node_id: str) -> GraphNode | None:
        return next((node for node in self.nodes if node.id == node_id), None)

    def to_export(self) -> dict[str, Any]:
        return {
            "nodes": [node.model_dump(by_alias=True) for node in self.nodes],
            "edges": [edge.model_dump(exclude_none=True) for edge in self.edges],
        }


@dataclass(frozen=True)
class NodePlacement:
    node_id: str
    position: Point  # top-left corner
    size: Size
    role: LayoutRole
    entry_side: ConnectorSide
    exit_side: ConnectorSide


@dataclass(frozen=True)
class LayoutPlan:
    placements: List[NodePlacement]
    orientation: Orientation
    root_id: str | None = None
    degraded: bool = False

    def placement_for(self, node_id: str) -> NodePlacement | None:
        return next(
            (placement for placement in self.placements if placement.node_id == node_id), None
        )
