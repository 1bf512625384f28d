from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from adapters.notation.endpoint_generator import ConvertEndpointGenerator
from adapters.notation.openai_generator import OpenAINotationGenerator, extract_code_block
from domain.errors import UpstreamFailureError


def _chat_response(content: str) -> dict[str, object]:
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


def test_extract_code_block_prefers_fenced_content() -> None:
    assert extract_code_block("Here:\n```mermaid\ngraph TD\nA --> B\n```\nDone") == (
        "graph TD\nA --> B"
    )
    assert extract_code_block("  graph TD\nA --> B  ") == "graph TD\nA --> B"


def test_openai_generator_posts_chat_completion() -> None:
    seen: dict[str, object] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=_chat_response("```mermaid\ngraph TD\nA --> B\n```"))

    generator = OpenAINotationGenerator(
        "secret",
        base_url="http://llm.test/v1/",
        model="test-model",
        transport=httpx.MockTransport(handler),
    )

    assert asyncio.run(generator.generate("Anna has a son Ben")) == "graph TD\nA --> B"
    assert seen["url"] == "http://llm.test/v1/chat/completions"
    assert seen["auth"] == "Bearer secret"
    body = seen["body"]
    assert isinstance(body, dict)
    assert body["model"] == "test-model"
    assert body["messages"][0]["role"] == "system"
    assert body["messages"][1]["content"].endswith("Anna has a son Ben")


def test_openai_generator_requires_key() -> None:
    generator = OpenAINotationGenerator(None)
    with pytest.raises(UpstreamFailureError, match="API key is not configured"):
        asyncio.run(generator.generate("text"))


def test_openai_generator_surfaces_provider_error_message() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(429, json={"error": {"message": "Rate limit reached"}})

    generator = OpenAINotationGenerator("secret", transport=httpx.MockTransport(handler))
    with pytest.raises(UpstreamFailureError, match="Rate limit reached") as exc_info:
        asyncio.run(generator.generate("text"))
    assert exc_info.value.status_code == 429


def test_openai_generator_rejects_empty_content() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"choices": []})

    generator = OpenAINotationGenerator("secret", transport=httpx.MockTransport(handler))
    with pytest.raises(UpstreamFailureError, match="No Mermaid code"):
        asyncio.run(generator.generate("text"))


def test_openai_generator_wraps_transport_errors() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    generator = OpenAINotationGenerator("secret", transport=httpx.MockTransport(handler))
    with pytest.raises(UpstreamFailureError, match="Model request failed"):
        asyncio.run(generator.generate("text"))


def test_endpoint_generator_reads_mermaid_field() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert json.loads(request.content) == {"text": "Anna has a son"}
        return httpx.Response(200, json={"mermaid": "graph TD\nanna --> ben"})

    generator = ConvertEndpointGenerator(
        "http://convert.test/api/convert", transport=httpx.MockTransport(handler)
    )
    assert asyncio.run(generator.generate("Anna has a son")) == "graph TD\nanna --> ben"


def test_endpoint_generator_surfaces_error_body() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, json={"error": "Input text cannot be empty"})

    generator = ConvertEndpointGenerator(
        "http://convert.test/api/convert", transport=httpx.MockTransport(handler)
    )
    with pytest.raises(UpstreamFailureError, match="cannot be empty"):
        asyncio.run(generator.generate(" "))


def test_endpoint_generator_requires_notation() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"mermaid": "   "})

    generator = ConvertEndpointGenerator(
        "http://convert.test/api/convert", transport=httpx.MockTransport(handler)
    )
    with pytest.raises(UpstreamFailureError, match="no notation"):
        asyncio.run(generator.generate("text"))
