"""CLI entry point for chunknote.

Commands:
- generate: Write a commit message for a unified diff (file or stdin)
- estimate: Show the diff's token estimate and whether it must be split
"""

import asyncio
import sys
from pathlib import Path
from typing import Optional

import typer

from chunknote.changes import changes_to_diff, parse_unified_diff
from chunknote.config import CommitFormat, LLMProvider, load_config
from chunknote.exceptions import ConfigError
from chunknote.handler import LargeDiffHandler
from chunknote.llm import LLMError, MissingAPIKeyError, get_generator
from chunknote.log import configure_logging
from chunknote.model_selector import ModelSelector
from chunknote.splitter import DiffSplitter
from chunknote.tokens import TokenEstimator

app = typer.Typer(
    name="chunknote",
    help="chunknote: commit messages for staged changes of any size",
    add_completion=False,
)


def _read_diff(diff_file: Optional[Path]) -> str:
    """Read diff text from a file, or from stdin when no file is given."""
    if diff_file is not None:
        try:
            return diff_file.read_text(encoding="utf-8")
        except OSError as e:
            typer.echo(f"Cannot read {diff_file}: {e}", err=True)
            raise typer.Exit(1)

    if sys.stdin.isatty():
        typer.echo("No diff given. Pass a file or pipe `git diff --cached` into chunknote.", err=True)
        raise typer.Exit(1)
    return sys.stdin.read()


def _print_progress(done: int, total: int) -> None:
    typer.echo(f"Summarized {done}/{total} chunks", err=True)


@app.command("generate")
def generate_command(
    diff_file: Optional[Path] = typer.Argument(
        None,
        help="File containing a unified diff (reads stdin when omitted)",
    ),
    provider: Optional[LLMProvider] = typer.Option(
        None,
        "--provider",
        "-p",
        help="Text-generation provider",
    ),
    model: Optional[str] = typer.Option(
        None,
        "--model",
        "-m",
        help="Primary model (used for merging and small diffs)",
    ),
    chunk_model: Optional[str] = typer.Option(
        None,
        "--chunk-model",
        help="Model for per-chunk summaries (overrides automatic selection)",
    ),
    language: Optional[str] = typer.Option(
        None,
        "--language",
        "-l",
        help="Output language code, e.g. en-US or zh-CN",
    ),
    commit_format: Optional[CommitFormat] = typer.Option(
        None,
        "--format",
        "-f",
        help="Commit message format",
    ),
    concurrency: Optional[int] = typer.Option(
        None,
        "--concurrency",
        "-c",
        min=1,
        help="Maximum simultaneous model calls",
    ),
    no_filter: bool = typer.Option(
        False,
        "--no-filter",
        help="Skip the smart file filter",
    ),
    no_map_reduce: bool = typer.Option(
        False,
        "--no-map-reduce",
        help="Truncate oversized diffs instead of splitting them",
    ),
    debug: bool = typer.Option(
        False,
        "--debug",
        "-d",
        help="Show debug logging",
    ),
) -> None:
    """Generate a commit message for a unified diff."""
    configure_logging(debug)

    try:
        config = load_config(
            provider=provider,
            model_name=model,
            chunk_model=chunk_model,
            language=language,
            commit_format=commit_format,
            concurrency_limit=concurrency,
            enable_smart_filter=False if no_filter else None,
            enable_map_reduce=False if no_map_reduce else None,
        )
    except ConfigError as e:
        typer.echo(f"Configuration error: {e}", err=True)
        raise typer.Exit(1)

    changes = parse_unified_diff(_read_diff(diff_file))
    if not changes:
        typer.echo("No changes found in the diff.", err=True)
        raise typer.Exit(1)

    handler = LargeDiffHandler(get_generator(config), config, on_progress=_print_progress)

    try:
        message = asyncio.run(handler.handle(changes))
    except MissingAPIKeyError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)
    except LLMError as e:
        typer.echo(f"LLM error: {e}", err=True)
        raise typer.Exit(1)

    typer.echo(message)


@app.command("estimate")
def estimate_command(
    diff_file: Optional[Path] = typer.Argument(
        None,
        help="File containing a unified diff (reads stdin when omitted)",
    ),
    model: Optional[str] = typer.Option(
        None,
        "--model",
        "-m",
        help="Model whose context window to check against",
    ),
) -> None:
    """Show the token estimate for a diff without calling any model."""
    try:
        config = load_config(model_name=model)
    except ConfigError as e:
        typer.echo(f"Configuration error: {e}", err=True)
        raise typer.Exit(1)

    changes = parse_unified_diff(_read_diff(diff_file))
    diff = changes_to_diff(changes)

    estimator = TokenEstimator(
        config.model_name,
        safety_margin_percent=config.safety_margin_percent,
        custom_token_limit=config.custom_token_limit,
    )
    info = estimator.config_info()
    tokens = estimator.estimate(diff)
    needs_split = estimator.needs_split(diff)

    typer.echo(f"Files:            {len(changes)}")
    typer.echo(f"Estimated tokens: {tokens}")
    typer.echo(f"Model:            {info['model']} (limit {info['model_limit']})")
    typer.echo(f"Effective limit:  {info['effective_limit']} ({info['safety_margin_percent']}%)")
    typer.echo(f"Needs splitting:  {'yes' if needs_split else 'no'}")

    if needs_split:
        chunks = DiffSplitter(estimator).split(diff, info["effective_limit"])
        map_model = ModelSelector().select_and_validate_map_model(config)
        typer.echo(f"Chunks:           {len(chunks)}")
        typer.echo(f"Chunk model:      {map_model}")
