"""Tree command: print the ingested codebase tree."""

import asyncio
from pathlib import Path

import typer
from loguru import logger
from rich.tree import Tree

from ...core.exceptions import IngestionError
from ...core.ingestion import load_tree
from ...core.models import NodeKind, TreeNode
from .common import console, load_env_files

KIND_STYLE = {
    NodeKind.FOLDER: "bold blue",
    NodeKind.FILE: "white",
    NodeKind.FUNCTION: "green",
    NodeKind.CLASS: "magenta",
    NodeKind.COMPONENT: "cyan",
}


def build_rich_tree(
    node: TreeNode, max_depth: int | None = None, show_sizes: bool = False
) -> Tree:
    """Render a tree node and its descendants as a ``rich`` tree."""

    def label(n: TreeNode) -> str:
        text = f"[{KIND_STYLE[n.kind]}]{n.name}[/]"
        if show_sizes:
            text += f" [dim]({n.size})[/dim]"
        return text

    def add(branch: Tree, n: TreeNode, depth: int) -> None:
        if max_depth is not None and depth >= max_depth:
            if n.children:
                branch.add("[dim]…[/dim]")
            return
        for child in n.children or []:
            add(branch.add(label(child)), child, depth + 1)

    rich_tree = Tree(label(node))
    add(rich_tree, node, 0)
    return rich_tree


def tree_command(
    source: str = typer.Argument(..., help="Local directory or GitHub repository URL"),
    depth: int | None = typer.Option(
        None, "--depth", "-d", help="Maximum depth to print", min=1
    ),
    sizes: bool = typer.Option(False, "--sizes", help="Show file and folder sizes"),
) -> None:
    """🌳 Print the folder/file tree of a codebase.

    [bold cyan]Examples:[/bold cyan]

    [green]Local checkout:[/green]
        $ map-my-repo tree .

    [green]GitHub repository, two levels:[/green]
        $ map-my-repo tree https://github.com/owner/repo --depth 2
    """
    load_env_files(Path.cwd())
    try:
        root, _ = asyncio.run(load_tree(source))
    except IngestionError as e:
        logger.error(f"Loading {source} failed: {e}")
        console.print(f"[red]✗ {e}[/red]")
        raise typer.Exit(1)

    console.print(build_rich_tree(root, max_depth=depth, show_sizes=sizes))
    file_count = sum(1 for n in root.walk() if n.kind == NodeKind.FILE)
    console.print(f"\n[dim]{file_count} files[/dim]")
