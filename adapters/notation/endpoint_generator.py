from __future__ import annotations

import httpx

from adapters.notation.openai_generator import error_message_from_response
from domain.errors import UpstreamFailureError
from domain.ports.notation import NotationGenerator


class ConvertEndpointGenerator(NotationGenerator):
    def __init__(
        self,
        url: str,
        *,
        timeout_seconds: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.url = url
        self.timeout_seconds = timeout_seconds
        self._transport = transport

    async def generate(self, text: str) -> str:
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout_seconds, transport=self._transport
            ) as client:
                resp = await client.post(self.url, json={"text": text})
        except httpx.HTTPError as exc:
            raise UpstreamFailureError(f"Conversion request failed: {exc}") from exc

        if resp.is_error:
            raise UpstreamFailureError(
                error_message_from_response(resp), status_code=resp.status_code
            )
        try:
            payload = resp.json()
        except ValueError as exc:
            raise UpstreamFailureError("Conversion endpoint returned invalid JSON") from exc
        notation = payload.get("mermaid") if isinstance(payload, dict) else None
        if not isinstance(notation, str) or not notation.strip():
            raise UpstreamFailureError("Conversion endpoint returned no notation")
        return notation
