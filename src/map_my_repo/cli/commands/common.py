"""Helpers shared by the CLI commands."""

from pathlib import Path

from dotenv import load_dotenv
from loguru import logger
from rich.console import Console

from ...config.defaults import ANALYSIS_CONTENT_LIMIT
from ...core.llm_client import LLMClient

console = Console()


def load_env_files(project_root: Path) -> None:
    """Load environment variables from .env and .env.local files.

    Priority (later files override earlier):
    1. .env (base config)
    2. .env.local (local overrides, gitignored)

    Args:
        project_root: Directory to search for env files
    """
    env_files = [
        project_root / ".env",
        project_root / ".env.local",
    ]

    for env_file in env_files:
        if env_file.exists():
            load_dotenv(env_file, override=True)
            logger.debug(f"Loaded environment from {env_file}")


def create_llm_client(
    model: str | None = None,
    required: bool = True,
    content_limit: int = ANALYSIS_CONTENT_LIMIT,
) -> LLMClient | None:
    """Build the LLM client, explaining how to configure one if that fails.

    Args:
        model: Model override
        required: Print an error (instead of a warning) when no key is set
        content_limit: Characters of file content sent for analysis

    Returns:
        The client, or None when no provider is configured
    """
    try:
        client = LLMClient(model=model, content_limit=content_limit)
    except ValueError:
        style = "red" if required else "yellow"
        console.print(
            f"[{style}]No LLM provider configured.[/{style}]\n"
            "\n"
            "[bold]To enable file analysis, set one of:[/bold]\n"
            "\n"
            "  [cyan]OpenAI:[/cyan]\n"
            "    export OPENAI_API_KEY=your-key\n"
            "\n"
            "  [cyan]OpenRouter:[/cyan]\n"
            "    export OPENROUTER_API_KEY=your-key\n"
        )
        return None

    console.print(
        f"[dim]Using {client.provider.capitalize()} ({client.model}) for analysis[/dim]"
    )
    return client
