from __future__ import annotations

from pathlib import Path
from typing import Any

import orjson

from domain.models import PedigreeGraph
from domain.ports.repositories import GraphRepository


def dump_graph_bytes(graph: PedigreeGraph) -> bytes:
    return orjson.dumps(graph.to_export(), option=orjson.OPT_INDENT_2)


def load_graph_payload(payload: Any) -> PedigreeGraph:
    if not isinstance(payload, dict):
        msg = "Graph export must be a JSON object with nodes and edges"
        raise ValueError(msg)
    return PedigreeGraph.model_validate(
        {"nodes": payload.get("nodes", []), "edges": payload.get("edges", [])}
    )


class FileSystemGraphRepository(GraphRepository):
    def load(self, path: Path) -> PedigreeGraph:
        return load_graph_payload(orjson.loads(path.read_bytes()))

    def save(self, graph: PedigreeGraph, path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_suffix(f"{path.suffix}.tmp")
        tmp_path.write_bytes(dump_graph_bytes(graph))
        tmp_path.replace(path)
