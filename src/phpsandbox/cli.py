"""CLI interface for running PHP snippets in the sandbox."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Optional

import typer

from phpsandbox.api import run_snippet
from phpsandbox.errors import ConfigurationError
from phpsandbox.settings import SandboxSettings, dump_settings, load_settings

app = typer.Typer(help="Run untrusted PHP snippets in resource-limited Docker containers")


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _load(config_path: Optional[str]) -> SandboxSettings:
    try:
        return load_settings(config_path)
    except (FileNotFoundError, ConfigurationError) as e:
        typer.secho(f"❌ {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(2)


@app.command()
def run(
    source: str = typer.Argument(..., help="PHP file to execute, or '-' for stdin"),
    config_path: Optional[str] = typer.Option(None, "--config", "-c", help="Path to sandbox YAML config"),
    timeout: Optional[float] = typer.Option(None, "--timeout", help="Soft timeout in seconds"),
    as_json: bool = typer.Option(False, "--json", help="Print the full result as JSON"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable info logging"),
) -> None:
    """Execute a PHP snippet and mirror its output and exit status."""
    _configure_logging(verbose)
    settings = _load(config_path)

    if source == "-":
        code = sys.stdin.read()
    else:
        path = Path(source)
        if not path.is_file():
            typer.secho(f"❌ File not found: {source}", fg=typer.colors.RED, err=True)
            raise typer.Exit(2)
        code = path.read_text(encoding="utf-8")

    if timeout is not None and timeout <= 0:
        typer.secho("❌ --timeout must be positive", fg=typer.colors.RED, err=True)
        raise typer.Exit(2)

    result = run_snippet(code, timeout=timeout, settings=settings)

    if as_json:
        typer.echo(json.dumps({
            "exit_code": result.exit_code,
            "stdout": result.stdout,
            "stderr": result.stderr,
            "duration_ms": result.duration_ms,
            "failure": result.failure.value if result.failure else None,
            "truncated": result.truncated,
        }, indent=2))
    else:
        if result.stdout:
            typer.echo(result.stdout)
        if result.stderr:
            typer.echo(result.stderr, err=True)

    exit_code = result.exit_code if 0 <= result.exit_code <= 255 else 1
    raise typer.Exit(exit_code)


@app.command("show-config")
def show_config(
    config_path: Optional[str] = typer.Option(None, "--config", "-c", help="Path to sandbox YAML config"),
) -> None:
    """Print the effective sandbox settings as YAML."""
    settings = _load(config_path)
    try:
        settings.to_policy()
    except ConfigurationError as e:
        typer.secho(f"❌ {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(2)
    typer.echo(dump_settings(settings), nl=False)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
