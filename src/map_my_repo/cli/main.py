"""map-my-repo command line entry point."""

import sys

import typer
from loguru import logger

from .. import __version__
from .commands.analyze import analyze_command, ask_command
from .commands.repos import repos_command
from .commands.tree import tree_command
from .commands.visualize import visualize_command

app = typer.Typer(
    name="map-my-repo",
    help="🗺️  Explore a codebase as an interactive, AI-enriched graph",
    rich_markup_mode="rich",
    no_args_is_help=True,
)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"map-my-repo {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Show debug logging on stderr"
    ),
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
) -> None:
    """🗺️  Explore a codebase as an interactive, AI-enriched graph."""
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "WARNING")


app.command("tree")(tree_command)
app.command("analyze")(analyze_command)
app.command("ask")(ask_command)
app.command("visualize")(visualize_command)
app.command("repos")(repos_command)


if __name__ == "__main__":
    app()
