from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Optional

import typer

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import render_analysis


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Utilities for querying the moisture analytics service.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise typer.Exit(code=1)
    return state


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Analytics API base URL (defaults to API_BASE_URL env or http://localhost:8000).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Seconds to wait for the analytics response.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url, timeout=timeout)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("analyze")
def analyze_command(
    ctx: typer.Context,
    job_id: str = typer.Argument(..., help="Job identifier (letters, digits, hyphens)."),
    start: str = typer.Option(..., "--start", "-s", help="ISO-8601 start of the window."),
    end: str = typer.Option(..., "--end", "-e", help="ISO-8601 end of the window."),
    location: Optional[str] = typer.Option(
        None,
        "--location",
        "-l",
        help="Restrict the analysis to a single location.",
    ),
    as_json: bool = typer.Option(
        False,
        "--json",
        help="Print the raw JSON response instead of a summary.",
    ),
) -> None:
    """Run trend, hotspot, and statistics analysis for a job."""
    state = _get_state(ctx)
    payload = state.client.analyze(job_id, start, end, location=location)
    if as_json:
        typer.echo(json.dumps(payload, indent=2, sort_keys=True))
        return
    render_analysis(payload)
