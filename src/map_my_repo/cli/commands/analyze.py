"""Analyze and ask commands: one-shot LLM calls from the terminal."""

import asyncio
from pathlib import Path

import typer
from loguru import logger
from rich.markdown import Markdown
from rich.panel import Panel
from rich.table import Table

from ...core.exceptions import (
    AnalysisError,
    ContentUnavailableError,
    IngestionError,
    TreeNodeNotFoundError,
)
from ...core.ingestion import load_tree
from ...core.llm_client import LLMClient
from ...core.models import AnalysisResult, NodeKind
from ...core.tree import TreeModel
from .common import console, create_llm_client, load_env_files


def print_analysis(name: str, result: AnalysisResult) -> None:
    console.print(Panel(result.summary or "[dim]No summary[/dim]", title=name))
    if not result.items:
        console.print("[dim]No functions, classes or components found[/dim]")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("Kind")
    table.add_column("Name", style="cyan")
    table.add_column("Description")
    for item in result.items:
        table.add_row(item.node_kind().value, item.name, item.description)
    console.print(table)


def analyze_command(
    file: Path = typer.Argument(
        ...,
        help="Source file to analyze",
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
    ),
    model: str | None = typer.Option(None, "--model", "-m", help="LLM model override"),
) -> None:
    """🔍 Summarize one file and list its functions, classes and components.

    [dim]💡 Tip: requires OPENAI_API_KEY or OPENROUTER_API_KEY[/dim]
    """
    load_env_files(Path.cwd())
    client = create_llm_client(model)
    if client is None:
        raise typer.Exit(1)

    try:
        content = file.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        console.print(f"[red]✗ Could not read {file}: {e}[/red]")
        raise typer.Exit(1)

    try:
        result = asyncio.run(client.analyze(file.name, content))
    except AnalysisError as e:
        logger.error(f"Analysis of {file} failed: {e}")
        console.print(f"[red]✗ Analysis failed: {e}[/red]")
        raise typer.Exit(1)

    if result is None:
        console.print("[yellow]The model returned no analysis.[/yellow]")
        raise typer.Exit(1)
    print_analysis(file.name, result)


async def run_question(
    source: str, node_id: str, question: str, client: LLMClient
) -> str:
    """Load ``source``, resolve ``node_id`` and ask ``question`` about it.

    File content that was not loaded eagerly is fetched first.
    """
    root, fetcher = await load_tree(source)
    tree = TreeModel(root)
    node = tree.get(node_id)

    if node.kind == NodeKind.FILE and node.content is None and fetcher.can_fetch(node):
        try:
            node.content = await fetcher.fetch_content(node)
        except ContentUnavailableError as e:
            logger.warning(f"Answering about {node_id} without its content: {e}")

    return await client.ask_question(node, question)


def ask_command(
    source: str = typer.Argument(..., help="Local directory or GitHub repository URL"),
    node_id: str = typer.Argument(
        ..., help="Node id, e.g. root/src/main.py (root = repository root)"
    ),
    question: str = typer.Argument(..., help="Question about the file or folder"),
    model: str | None = typer.Option(None, "--model", "-m", help="LLM model override"),
) -> None:
    """💬 Ask a question about a file or folder of a codebase.

    [bold cyan]Example:[/bold cyan]
        $ map-my-repo ask . root/src "What does this folder do?"
    """
    load_env_files(Path.cwd())
    client = create_llm_client(model)
    if client is None:
        raise typer.Exit(1)

    try:
        answer = asyncio.run(run_question(source, node_id, question, client))
    except TreeNodeNotFoundError:
        console.print(f"[red]✗ No node '{node_id}' in {source}[/red]")
        raise typer.Exit(1)
    except (IngestionError, AnalysisError) as e:
        logger.error(f"Question about {node_id} failed: {e}")
        console.print(f"[red]✗ {e}[/red]")
        raise typer.Exit(1)

    console.print(Markdown(answer))
