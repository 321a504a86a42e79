"""
Main promptstream CLI application.

Provides the entry point for the promptstream command-line interface.
"""

from __future__ import annotations

import sys
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from promptstream.cli.commands import chat

# =============================================================================
# CLI Application Setup
# =============================================================================

app = typer.Typer(
    name="promptstream",
    help="promptstream - stream LLM answers for a prompt file and a content file",
    add_completion=False,
    rich_markup_mode="rich",
    pretty_exceptions_enable=True,
    pretty_exceptions_show_locals=False,
)

console = Console()
error_console = Console(stderr=True)

app.add_typer(chat.app, name="chat")


# =============================================================================
# Version and Logging
# =============================================================================


def _get_version() -> str:
    """Get package version."""
    from promptstream import __version__

    return __version__


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold blue]promptstream[/bold blue] version [green]{_get_version()}[/green]")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        Optional[bool],
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
    log_level: Annotated[
        Optional[str],
        typer.Option("--log-level", help="DEBUG, INFO, WARNING or ERROR (default: LOG_LEVEL or INFO)"),
    ] = None,
    json_logs: Annotated[
        Optional[bool],
        typer.Option("--json-logs/--no-json-logs", help="Emit JSON log lines on stderr"),
    ] = None,
) -> None:
    """
    promptstream - stream LLM answers for source analysis.

    Providers:
      - bedrock: AWS Bedrock ConverseStream (region + model id, ambient AWS credentials)
      - http_sse: HTTP endpoint answering with Server-Sent Events (API key from API_KEY)
      - azure_openai: Azure OpenAI chat completions (API key from AZURE_OPENAI_API_KEY)

    Examples:
        promptstream chat --prompt review.txt --code App.java
        promptstream providers
    """
    from promptstream.core.config import LoggingConfig
    from promptstream.utils.logging import setup_logging

    logging_config = LoggingConfig.from_env()
    setup_logging(
        level=log_level or logging_config.level,
        json_format=logging_config.json_format if json_logs is None else json_logs,
        log_file=logging_config.log_file,
    )


# =============================================================================
# Additional Commands
# =============================================================================


@app.command()
def providers() -> None:
    """List available LLM providers and their defaults."""
    from promptstream.core.config import PROVIDER_DEFAULTS
    from promptstream.providers.factory import get_provider_class, list_providers

    table = Table(title="Available Providers", show_header=True, header_style="bold cyan")
    table.add_column("Provider", style="cyan")
    table.add_column("Default Model", style="green")
    table.add_column("Region / Endpoint")
    table.add_column("Credential")
    table.add_column("Tuning")

    for name in list_providers():
        provider_class = get_provider_class(name)
        defaults = PROVIDER_DEFAULTS[provider_class.kind]
        tuning = ", ".join(sorted(provider_class.SUPPORTED_TUNING)) or "[dim]none[/dim]"
        table.add_row(
            name,
            defaults["model_id"] or "-",
            defaults["region_or_endpoint"] or "[dim](derived)[/dim]",
            defaults["credential_reference"] or "[dim]ambient[/dim]",
            tuning,
        )

    console.print()
    console.print(table)
    console.print()
    console.print("[dim]Use --provider/-p with chat to select a provider.[/dim]")


@app.command()
def models() -> None:
    """List Bedrock model presets accepted by --model."""
    from promptstream.core.config import BEDROCK_MODELS

    table = Table(title="Bedrock Model Presets", show_header=True, header_style="bold cyan")
    table.add_column("Preset", style="cyan")
    table.add_column("Model ID", style="green")
    for preset, model_id in BEDROCK_MODELS.items():
        table.add_row(preset, model_id)

    console.print()
    console.print(table)
    console.print()


@app.command()
def config() -> None:
    """Display the model configuration resolved from the environment."""
    from promptstream.core.config import ModelConfig
    from promptstream.utils.errors import PromptStreamError

    try:
        model_config = ModelConfig.from_env()
    except (ValueError, PromptStreamError) as e:
        error_console.print(f"[red]Error loading configuration:[/red] {escape(str(e))}")
        raise typer.Exit(code=1)

    table = Table(title="promptstream Configuration", show_header=True, header_style="bold cyan")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    for key, value in model_config.to_dict().items():
        table.add_row(key, str(value) if value not in (None, {}) else "[dim]default[/dim]")

    console.print()
    console.print(table)
    console.print()


# =============================================================================
# Entry Point
# =============================================================================


def cli() -> None:
    """Entry point for the CLI."""
    try:
        app()
    except KeyboardInterrupt:
        error_console.print("\n[yellow]Interrupted by user[/yellow]")
        sys.exit(130)
    except Exception as e:
        error_console.print(f"[red]Unexpected error:[/red] {escape(str(e))}")
        sys.exit(1)


if __name__ == "__main__":
    cli()


__all__ = ["app", "cli", "main"]
