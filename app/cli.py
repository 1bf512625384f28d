from __future__ import annotations

import asyncio
import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler

from adapters.filesystem.graph_repository import FileSystemGraphRepository
from adapters.layout.strategies import build_layout_engine
from adapters.notation.endpoint_generator import ConvertEndpointGenerator
from app.config import AppSettings, load_settings
from app.web_main import build_generator
from domain.errors import PedigreeError
from domain.models import LayoutStrategy, Orientation, PedigreeGraph
from domain.ports.notation import NotationGenerator
from domain.services.build_pedigree_graph import (
    NotationToGraphConverter,
    TextToPedigreeService,
    relayout,
)

app = typer.Typer(no_args_is_help=True)
console = Console()


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _settings(config: Path | None) -> AppSettings:
    return load_settings(config)


def _engine_options(
    settings: AppSettings,
    strategy: str | None,
    orientation: str | None,
) -> tuple[LayoutStrategy, Orientation | None]:
    resolved_strategy = strategy or settings.layout.strategy
    if resolved_strategy not in ("hierarchical", "layered"):
        console.print(f"[red]Unknown layout strategy:[/] {resolved_strategy}")
        raise typer.Exit(code=2)
    resolved_orientation = orientation.upper() if orientation else None
    if resolved_orientation is not None and resolved_orientation not in ("TB", "LR"):
        console.print(f"[red]Unknown orientation:[/] {orientation}")
        raise typer.Exit(code=2)
    return resolved_strategy, resolved_orientation  # type: ignore[return-value]


def _write_graph(graph: PedigreeGraph, output_path: Path | None) -> None:
    repo = FileSystemGraphRepository()
    if output_path is None:
        console.print_json(data=graph.to_export())
        return
    repo.save(graph, output_path)
    console.print(f"[green]Wrote[/] {output_path}")


@app.command("parse")
def parse(
    input_path: Path = typer.Argument(..., help="File with flowchart notation."),
    output_path: Path | None = typer.Option(None, "--output", "-o", help="Graph JSON to write."),
    orientation: str | None = typer.Option(None, help="TB or LR; defaults to the header."),
    strategy: str | None = typer.Option(None, help="hierarchical or layered."),
    config: Path | None = typer.Option(None, help="YAML config file."),
) -> None:
    if not input_path.exists():
        console.print(f"[red]File not found:[/] {input_path}")
        raise typer.Exit(code=1)
    settings = _settings(config)
    resolved_strategy, resolved_orientation = _engine_options(settings, strategy, orientation)
    converter = NotationToGraphConverter(
        build_layout_engine(resolved_strategy, settings.layout.to_layout_config())
    )
    try:
        result = converter.convert(input_path.read_text(encoding="utf-8"), resolved_orientation)
    except PedigreeError as exc:
        console.print(f"[red]Failed to parse:[/] {exc}")
        raise typer.Exit(code=1) from exc
    if result.degraded:
        console.print("[yellow]Layout degraded to grid placement[/]")
    _write_graph(result.graph, output_path)


@app.command("convert")
def convert(
    text: str = typer.Argument(..., help="Family description in plain language."),
    output_path: Path | None = typer.Option(None, "--output", "-o", help="Graph JSON to write."),
    endpoint: str | None = typer.Option(None, help="Remote convert endpoint URL."),
    orientation: str | None = typer.Option(None, help="TB or LR."),
    strategy: str | None = typer.Option(None, help="hierarchical or layered."),
    config: Path | None = typer.Option(None, help="YAML config file."),
) -> None:
    settings = _settings(config)
    resolved_strategy, resolved_orientation = _engine_options(settings, strategy, orientation)
    generator: NotationGenerator
    if endpoint:
        generator = ConvertEndpointGenerator(
            endpoint, timeout_seconds=settings.llm.timeout_seconds
        )
    else:
        generator = build_generator(settings)
    service = TextToPedigreeService(
        generator,
        NotationToGraphConverter(
            build_layout_engine(resolved_strategy, settings.layout.to_layout_config())
        ),
        max_input_length=settings.service.max_input_length,
    )
    try:
        result = asyncio.run(
            service.convert(text, resolved_orientation or settings.layout.orientation)
        )
    except PedigreeError as exc:
        console.print(f"[red]Conversion failed:[/] {exc}")
        raise typer.Exit(code=1) from exc
    console.print(result.notation, markup=False, highlight=False)
    _write_graph(result.graph, output_path)


@app.command("layout")
def layout(
    input_path: Path = typer.Argument(..., help="Graph JSON export to re-layout."),
    output_path: Path | None = typer.Option(None, "--output", "-o", help="Graph JSON to write."),
    orientation: str | None = typer.Option(None, help="TB or LR."),
    strategy: str | None = typer.Option(None, help="hierarchical or layered."),
    config: Path | None = typer.Option(None, help="YAML config file."),
) -> None:
    if not input_path.exists():
        console.print(f"[red]File not found:[/] {input_path}")
        raise typer.Exit(code=1)
    settings = _settings(config)
    resolved_strategy, resolved_orientation = _engine_options(settings, strategy, orientation)
    try:
        graph = FileSystemGraphRepository().load(input_path)
    except ValueError as exc:
        console.print(f"[red]Invalid graph file:[/] {exc}")
        raise typer.Exit(code=1) from exc
    result = relayout(
        graph,
        build_layout_engine(resolved_strategy, settings.layout.to_layout_config()),
        resolved_orientation or settings.layout.orientation,
    )
    _write_graph(result.graph, output_path)


@app.command("serve")
def serve(
    host: str = typer.Option("127.0.0.1", help="Bind address."),
    port: int = typer.Option(8000, help="Bind port."),
    config: Path | None = typer.Option(None, help="YAML config file."),
) -> None:
    import uvicorn

    from app.web_main import create_app

    uvicorn.run(create_app(_settings(config)), host=host, port=port)


if __name__ == "__main__":
    app()
