from __future__ import annotations

import logging
import re
from typing import Any

import httpx

from adapters.notation.prompts import PEDIGREE_PROMPT, SYSTEM_PROMPT
from domain.errors import UpstreamFailureError
from domain.ports.notation import NotationGenerator

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.openai.com/v1"
DEFAULT_MODEL = "gpt-4o-mini"

_CODE_BLOCK = re.compile(r"```(?:mermaid)?\s*([\s\S]*?)```")


def extract_code_block(content: str) -> str:
    match = _CODE_BLOCK.search(content)
    return match.group(1).strip() if match else content.strip()


class OpenAINotationGenerator(NotationGenerator):
    def __init__(
        self,
        api_key: str | None,
        *,
        base_url: str = DEFAULT_BASE_URL,
        model: str = DEFAULT_MODEL,
        temperature: float = 0.3,
        timeout_seconds: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.temperature = temperature
        self.timeout_seconds = timeout_seconds
        self._transport = transport

    def build_payload(self, text: str) -> dict[str, Any]:
        return {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": f"{PEDIGREE_PROMPT}\n\n{text}"},
            ],
            "temperature": self.temperature,
        }

    async def generate(self, text: str) -> str:
        if not self.api_key:
            raise UpstreamFailureError(
                "OpenAI API key is not configured. Set PEDIGREE_LLM__API_KEY or OPENAI_API_KEY."
            )
        headers = {"Authorization": f"Bearer {self.api_key}"}
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout_seconds, transport=self._transport
            ) as client:
                resp = await client.post(
                    f"{self.base_url}/chat/completions",
                    json=self.build_payload(text),
                    headers=headers,
                )
        except httpx.HTTPError as exc:
            logger.exception("Notation generation request failed.")
            raise UpstreamFailureError(f"Model request failed: {exc}") from exc

        if resp.is_error:
            raise UpstreamFailureError(
                error_message_from_response(resp), status_code=resp.status_code
            )

        content = _message_content(resp)
        if not content:
            raise UpstreamFailureError("No Mermaid code returned from API")
        return extract_code_block(content)


def error_message_from_response(resp: httpx.Response) -> str:
    try:
        payload = resp.json()
    except ValueError:
        payload = None
    if isinstance(payload, dict):
        error = payload.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str) and error:
            return error
    return f"API request failed: {resp.status_code} {resp.reason_phrase}"


def _message_content(resp: httpx.Response) -> str:
    try:
        payload = resp.json()
    except ValueError:
        return ""
    choices = payload.get("choices") if isinstance(payload, dict) else None
    if not choices:
        return ""
    message = choices[0].get("message") or {}
    return str(message.get("content") or "").strip()
