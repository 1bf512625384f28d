from __future__ import annotations

from typing import Protocol


class NotationGenerator(Protocol):
    async def generate(self, text: str) -> str: ...
