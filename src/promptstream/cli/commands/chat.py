"""
Chat command for promptstream CLI.

Loads the prompt and content files, streams the model's answer to stdout
and reports approximate token counts on stderr.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Optional

import typer
from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError
from rich.console import Console
from rich.markup import escape

from promptstream.cli.output import ConsoleSink
from promptstream.core.config import (
    BEDROCK_MODELS,
    ModelConfig,
    TuningParameters,
    load_tuning_file,
)
from promptstream.core.gateway import ChatGateway
from promptstream.core.loader import load_prompt
from promptstream.core.types import ProviderKind
from promptstream.utils.errors import InvalidDocumentError, PromptStreamError

app = typer.Typer(help="Stream a model's answer for a prompt file and a content file")
console = Console()
error_console = Console(stderr=True)


class CLIChatArgs(BaseModel):
    """CLI chat command arguments."""

    prompt: Path = Field(..., description="Base prompt file")
    code: Path = Field(..., description="Code or content file to analyze")
    prop: Optional[Path] = Field(default=None, description="Tuning properties file")
    provider: ProviderKind = Field(default=ProviderKind.BEDROCK, description="Backend")
    model: Optional[str] = Field(default=None, description="Model id, deployment or preset")
    region_or_endpoint: Optional[str] = Field(default=None, description="AWS region or endpoint URL")
    credential: Optional[str] = Field(default=None, description="AWS profile or API key env var")
    max_tokens: Optional[int] = Field(default=None, gt=0)
    temperature: Optional[float] = Field(default=None, ge=0.0, le=2.0)
    top_p: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    timeout: float = Field(default=120.0, gt=0)
    verbose: bool = Field(default=False, description="Verbose output")

    def resolved_model(self) -> Optional[str]:
        """Expand Bedrock preset names (e.g. claude-3-5-sonnet) to model ids."""
        if self.model and self.provider is ProviderKind.BEDROCK:
            return BEDROCK_MODELS.get(self.model, self.model)
        return self.model

    def flag_tuning(self) -> TuningParameters:
        return TuningParameters(
            max_tokens=self.max_tokens,
            temperature=self.temperature,
            top_p=self.top_p,
        )

    def to_model_config(self) -> ModelConfig:
        """Build the ModelConfig; flags override values from the tuning file."""
        tuning = load_tuning_file(self.prop) if self.prop else TuningParameters()
        return ModelConfig.for_provider(
            self.provider,
            model_id=self.resolved_model(),
            region_or_endpoint=self.region_or_endpoint,
            credential_reference=self.credential,
            tuning=tuning.merged(self.flag_tuning()),
            timeout=self.timeout,
        )


def run_chat(args: CLIChatArgs, gateway: ChatGateway | None = None) -> int:
    """
    Execute one chat request.

    Returns:
        Process exit code
    """
    try:
        prompt_text = load_prompt(args.prompt, args.code)
    except InvalidDocumentError as e:
        error_console.print(f"[red]Error:[/red] Failed to read input file: {escape(e.message)}")
        return 1

    config = args.to_model_config()
    if args.verbose:
        error_console.print(f"[dim]Provider:[/dim] {config.provider_kind.value}")
        error_console.print(f"[dim]Model:[/dim] {config.model_id}")
        error_console.print(f"[dim]Target:[/dim] {config.region_or_endpoint}")

    sink = ConsoleSink(console)
    gateway = gateway or ChatGateway()
    try:
        outcome = gateway.send_and_stream(config, prompt_text, sink)
    except PromptStreamError as e:
        if sink.chunks_written:
            sink.finish()
        error_console.print(f"[red]Error:[/red] {escape(str(e))}")
        return 1

    if outcome is None:
        error_console.print("[yellow]Prompt is empty. Nothing to send.[/yellow]")
        return 0

    sink.finish()
    error_console.print(
        f"[dim]Approximate input tokens:[/dim] {outcome.approximate_input_tokens:,}  "
        f"[dim]Approximate output tokens:[/dim] {outcome.approximate_output_tokens:,}"
    )
    return 0


@app.callback(invoke_without_command=True)
def chat(
    prompt: Annotated[
        Path,
        typer.Option("--prompt", help="Base prompt file"),
    ],
    code: Annotated[
        Path,
        typer.Option("--code", help="Code or content file to analyze"),
    ],
    prop: Annotated[
        Optional[Path],
        typer.Option("--prop", help="Properties file with maxTokens / temperature / topP"),
    ] = None,
    provider: Annotated[
        ProviderKind,
        typer.Option("--provider", "-p", help="LLM backend"),
    ] = ProviderKind.BEDROCK,
    model: Annotated[
        Optional[str],
        typer.Option("--model", "-m", help="Model id, Azure deployment or Bedrock preset"),
    ] = None,
    region_or_endpoint: Annotated[
        Optional[str],
        typer.Option("--region", "--endpoint", help="AWS region or endpoint URL"),
    ] = None,
    credential: Annotated[
        Optional[str],
        typer.Option("--credential", help="AWS profile, or env var holding the API key"),
    ] = None,
    max_tokens: Annotated[
        Optional[int],
        typer.Option("--max-tokens", help="Maximum tokens to generate"),
    ] = None,
    temperature: Annotated[
        Optional[float],
        typer.Option("--temperature", help="Sampling temperature (0-2)"),
    ] = None,
    top_p: Annotated[
        Optional[float],
        typer.Option("--top-p", help="Nucleus sampling (0-1)"),
    ] = None,
    timeout: Annotated[
        float,
        typer.Option("--timeout", help="Transport timeout in seconds"),
    ] = 120.0,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Verbose output"),
    ] = False,
) -> None:
    """
    Send a prompt file plus a content file and stream the answer.

    Examples:
        promptstream chat --prompt review.txt --code App.java
        promptstream chat --prompt review.txt --code App.java --prop llm.properties
        promptstream chat -p http_sse --prompt review.txt --code App.java
    """
    try:
        args = CLIChatArgs(
            prompt=prompt,
            code=code,
            prop=prop,
            provider=provider,
            model=model,
            region_or_endpoint=region_or_endpoint,
            credential=credential,
            max_tokens=max_tokens,
            temperature=temperature,
            top_p=top_p,
            timeout=timeout,
            verbose=verbose,
        )
    except PydanticValidationError as e:
        for err in e.errors():
            field = ".".join(str(loc) for loc in err["loc"])
            error_console.print(f"[red]Invalid option[/red] {escape(field)}: {escape(err['msg'])}")
        raise typer.Exit(code=2)

    exit_code = run_chat(args)
    if exit_code:
        raise typer.Exit(code=exit_code)


__all__ = ["app", "chat", "CLIChatArgs", "run_chat"]
