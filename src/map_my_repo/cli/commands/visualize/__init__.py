"""Visualize command: serve an interactive graph of a codebase."""

import asyncio
from pathlib import Path

import typer
from loguru import logger

from ....config.settings import VisualizerSettings
from ....core.exceptions import ConfigError, IngestionError
from ....core.ingestion import load_tree
from ....core.models import TreeNode
from ....visualization.engine import GraphEngine
from ..common import console, create_llm_client, load_env_files
from .server import find_free_port, start_visualization_server


def visualize_command(
    source: str = typer.Argument(..., help="Local directory or GitHub repository URL"),
    port: int | None = typer.Option(
        None, "--port", help="Port to serve on (default: first free port from 8080)"
    ),
    config: Path | None = typer.Option(
        None,
        "--config",
        "-c",
        help="YAML file with visualizer settings",
        exists=True,
        dir_okay=False,
    ),
    model: str | None = typer.Option(None, "--model", "-m", help="LLM model override"),
    open_browser: bool = typer.Option(
        False, "--open", help="Open the API docs in a browser"
    ),
) -> None:
    """🗺️  Serve an interactive, AI-enriched graph of a codebase.

    Folders expand on click; files are analyzed on first click and reveal
    their functions, classes and components.

    [bold cyan]Examples:[/bold cyan]

    [green]Local checkout:[/green]
        $ map-my-repo visualize .

    [green]GitHub repository on a fixed port:[/green]
        $ map-my-repo visualize https://github.com/owner/repo --port 8090

    [dim]💡 Tip: without OPENAI_API_KEY or OPENROUTER_API_KEY only folders expand[/dim]
    """
    load_env_files(Path.cwd())

    try:
        settings = VisualizerSettings.load(config) if config else VisualizerSettings()
    except ConfigError as e:
        console.print(f"[red]✗ {e}[/red]")
        raise typer.Exit(1)

    try:
        root, fetcher = asyncio.run(
            load_tree(source, max_content_bytes=settings.enrichment.max_content_bytes)
        )
    except IngestionError as e:
        logger.error(f"Loading {source} failed: {e}")
        console.print(f"[red]✗ {e}[/red]")
        raise typer.Exit(1)

    client = create_llm_client(
        model,
        required=False,
        content_limit=settings.enrichment.analysis_content_limit,
    )
    engine = GraphEngine(
        root,
        analyzer=client,
        content_fetcher=fetcher,
        settings=settings,
        on_node_selected=_log_selection,
    )

    try:
        port = port or find_free_port()
    except OSError as e:
        console.print(f"[red]✗ {e}[/red]")
        raise typer.Exit(1)

    start_visualization_server(engine, port, source, auto_open=open_browser)


def _log_selection(node: TreeNode) -> None:
    logger.debug(f"Selected {node.kind} {node.id}")


__all__ = ["visualize_command"]
