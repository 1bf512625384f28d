from __future__ import annotations

from pathlib import Path
from typing import Protocol

from domain.models import PedigreeGraph


class GraphRepository(Protocol):
    def load(self, path: Path) -> PedigreeGraph: ...

    def save(self, graph: PedigreeGraph, path: Path) -> None: ...
