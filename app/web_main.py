from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, cast

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse, Response
from pydantic import BaseModel, Field, ValidationError

from adapters.filesystem.graph_repository import dump_graph_bytes
from adapters.layout.strategies import build_layout_engine
from adapters.notation.openai_generator import OpenAINotationGenerator
from app.config import AppSettings, load_settings
from domain.errors import EmptyInputError, NoNodesFoundError, UpstreamFailureError
from domain.models import GraphEdge, GraphNode, LayoutStrategy, Orientation, PedigreeGraph
from domain.ports.notation import NotationGenerator
from domain.services.build_pedigree_graph import (
    LayoutResult,
    NotationToGraphConverter,
    TextToPedigreeService,
    relayout,
)

logger = logging.getLogger(__name__)

PARSE_FAILURE_PREFIX = "Failed to parse generated notation"


class ConvertRequest(BaseModel):
    text: str = ""


class GraphRequest(ConvertRequest):
    orientation: Orientation | None = None
    strategy: LayoutStrategy | None = None


class ParseRequest(BaseModel):
    mermaid: str = ""
    orientation: Orientation | None = None
    strategy: LayoutStrategy | None = None


class GraphPayload(BaseModel):
    nodes: list[dict[str, Any]] = Field(default_factory=list)
    edges: list[dict[str, Any]] = Field(default_factory=list)


class LayoutRequest(GraphPayload):
    orientation: Orientation | None = None
    strategy: LayoutStrategy | None = None


@dataclass(frozen=True)
class PedigreeContext:
    settings: AppSettings
    generator: NotationGenerator

    def converter(self, strategy: LayoutStrategy | None = None) -> NotationToGraphConverter:
        engine = build_layout_engine(
            strategy or self.settings.layout.strategy,
            self.settings.layout.to_layout_config(),
        )
        return NotationToGraphConverter(engine)

    def service(self, strategy: LayoutStrategy | None = None) -> TextToPedigreeService:
        return TextToPedigreeService(
            self.generator,
            self.converter(strategy),
            max_input_length=self.settings.service.max_input_length,
        )


def build_generator(settings: AppSettings) -> NotationGenerator:
    return OpenAINotationGenerator(
        settings.llm.api_key,
        base_url=settings.llm.base_url,
        model=settings.llm.model,
        temperature=settings.llm.temperature,
        timeout_seconds=settings.llm.timeout_seconds,
    )


def create_app(settings: AppSettings, generator: NotationGenerator | None = None) -> FastAPI:
    app = FastAPI(title=settings.service.title)
    if settings.service.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.service.cors_origins,
            allow_methods=["*"],
            allow_headers=["*"],
        )
    app.state.context = PedigreeContext(
        settings=settings,
        generator=generator or build_generator(settings),
    )

    @app.get("/health")
    def health() -> ORJSONResponse:
        return ORJSONResponse({"status": "ok"})

    @app.post("/api/convert")
    async def convert_text(
        payload: ConvertRequest,
        context: PedigreeContext = Depends(get_context),
    ) -> ORJSONResponse:
        try:
            notation = await context.service().generate_notation(payload.text)
        except EmptyInputError as exc:
            return error_response(400, str(exc))
        except UpstreamFailureError as exc:
            logger.warning("Notation generation failed: %s", exc)
            return error_response(502, str(exc))
        return ORJSONResponse({"mermaid": notation})

    @app.post("/api/graph")
    async def convert_text_to_graph(
        payload: GraphRequest,
        context: PedigreeContext = Depends(get_context),
    ) -> ORJSONResponse:
        orientation = payload.orientation or context.settings.layout.orientation
        try:
            result = await context.service(payload.strategy).convert(payload.text, orientation)
        except EmptyInputError as exc:
            return error_response(400, str(exc))
        except UpstreamFailureError as exc:
            logger.warning("Notation generation failed: %s", exc)
            return error_response(502, str(exc))
        except NoNodesFoundError as exc:
            return error_response(422, f"{PARSE_FAILURE_PREFIX}: {exc}")
        return ORJSONResponse(
            {
                "mermaid": result.notation,
                **graph_response(result.graph, result.orientation, result.degraded),
            }
        )

    @app.post("/api/parse")
    def parse_notation_text(
        payload: ParseRequest,
        context: PedigreeContext = Depends(get_context),
    ) -> ORJSONResponse:
        if not payload.mermaid.strip():
            return error_response(400, "Notation cannot be empty")
        try:
            result = context.converter(payload.strategy).convert(
                payload.mermaid, payload.orientation
            )
        except NoNodesFoundError as exc:
            return error_response(422, f"{PARSE_FAILURE_PREFIX}: {exc}")
        return ORJSONResponse(graph_response(result.graph, result.orientation, result.degraded))

    @app.post("/api/layout")
    def layout_graph(
        payload: LayoutRequest,
        context: PedigreeContext = Depends(get_context),
    ) -> ORJSONResponse:
        try:
            graph = build_graph_from_payload(payload)
        except ValidationError as exc:
            return error_response(400, f"Invalid graph: {exc.error_count()} validation errors")
        engine = build_layout_engine(
            payload.strategy or context.settings.layout.strategy,
            context.settings.layout.to_layout_config(),
        )
        orientation = payload.orientation or context.settings.layout.orientation
        result: LayoutResult = relayout(graph, engine, orientation)
        return ORJSONResponse(graph_response(result.graph, result.orientation, result.degraded))

    @app.post("/api/export")
    def export_graph(payload: GraphPayload) -> Response:
        try:
            graph = build_graph_from_payload(payload)
        except ValidationError as exc:
            return error_response(400, f"Invalid graph: {exc.error_count()} validation errors")
        filename = f"family-tree-{time.time_ns() // 1_000_000}.json"
        return Response(
            content=dump_graph_bytes(graph),
            media_type="application/json",
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )

    return app


def build_graph_from_payload(payload: GraphPayload) -> PedigreeGraph:
    return PedigreeGraph(
        nodes=[GraphNode.model_validate(node) for node in payload.nodes],
        edges=[GraphEdge.model_validate(edge) for edge in payload.edges],
    )


def graph_response(
    graph: PedigreeGraph,
    orientation: Orientation,
    degraded: bool,
) -> dict[str, Any]:
    return {**graph.to_export(), "orientation": orientation, "degraded": degraded}


def error_response(status_code: int, message: str) -> ORJSONResponse:
    return ORJSONResponse({"error": message}, status_code=status_code)


def get_context(request: Request) -> PedigreeContext:
    return cast(PedigreeContext, request.app.state.context)


app = create_app(load_settings())
