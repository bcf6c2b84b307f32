"""Repos command: list a GitHub user's repositories by language."""

import asyncio
from pathlib import Path

import typer
from loguru import logger
from rich.markup import escape
from rich.tree import Tree

from ...core.exceptions import IngestionError
from ...core.ingestion import GitHubTreeLoader, group_by_language
from ...core.models import GitHubRepo
from .common import console, load_env_files


def build_repo_tree(username: str, repos: list[GitHubRepo]) -> Tree:
    """Languages (largest group first) with their repositories underneath."""
    groups = group_by_language(repos)
    tree = Tree(f"[bold]{username}[/bold] [dim]({len(repos)} repositories)[/dim]")
    for language, members in sorted(groups.items(), key=lambda g: (-len(g[1]), g[0])):
        branch = tree.add(f"[bold blue]{language}[/bold blue] [dim]({len(members)})[/dim]")
        for repo in members:
            label = f"[cyan]{escape(repo.name)}[/cyan]"
            label += f" [yellow]★ {repo.stargazers_count}[/yellow]"
            if repo.fork:
                label += " [dim](fork)[/dim]"
            if repo.description:
                label += f"\n[dim]{escape(repo.description)}[/dim]"
            branch.add(label)
    return tree


def repos_command(
    username: str = typer.Argument(..., help="GitHub user or organization"),
    forks: bool = typer.Option(True, "--forks/--no-forks", help="Include forked repositories"),
) -> None:
    """🌌 List a GitHub user's public repositories, grouped by language.

    Pass a listed repository's URL to [green]tree[/green] or [green]visualize[/green]
    to explore it.

    [bold cyan]Examples:[/bold cyan]

    [green]All repositories:[/green]
        $ map-my-repo repos octocat

    [green]Without forks:[/green]
        $ map-my-repo repos octocat --no-forks
    """
    load_env_files(Path.cwd())
    try:
        repos = asyncio.run(GitHubTreeLoader().list_repos(username))
    except IngestionError as e:
        logger.error(f"Listing repositories of {username} failed: {e}")
        console.print(f"[red]✗ {e}[/red]")
        raise typer.Exit(1)

    if not forks:
        repos = [repo for repo in repos if not repo.fork]
    if not repos:
        console.print(f"[yellow]No public repositories for {username}[/yellow]")
        return
    console.print(build_repo_tree(username, repos))
