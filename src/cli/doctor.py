"""Doctor command for environment diagnostics."""

from __future__ import annotations

import os
from pathlib import Path

import httpx
import typer
from rich.console import Console
from rich.table import Table

from adapters.gemini_solver import GeminiCaptchaSolver
from adapters.http_client import build_http_client
from core.config import AppSettings, write_user_env_vars

app = typer.Typer(no_args_is_help=True, help="Environment diagnostics and configuration checks.")

_console = Console()


def _check_http(url: str, settings: AppSettings, *, headers: dict[str, str] | None = None) -> tuple[bool, str]:
    try:
        with build_http_client(settings, timeout_seconds=10.0) as client:
            response = client.get(url, headers=headers)
    except httpx.HTTPError as exc:
        return False, str(exc) or type(exc).__name__
    return response.status_code < 400, f"HTTP {response.status_code}"


def _check_writable(path: Path) -> tuple[bool, str]:
    """The history file (or its nearest existing parent) must be writable."""

    target = path.resolve()
    existing = target if target.exists() else target.parent
    while not existing.exists() and existing != existing.parent:
        existing = existing.parent
    if not existing.exists():
        return False, f"{existing} does not exist"
    if os.access(existing, os.W_OK):
        return True, str(target)
    return False, f"{existing} is not writable"


@app.command()
def run() -> None:
    """Run baseline diagnostics and show recommended fixes."""

    settings = AppSettings()

    table = Table(title="BTK Sorgu Doctor")
    table.add_column("Check", style="bright_green", no_wrap=True)
    table.add_column("Status", style="white")
    table.add_column("Details", style="dim")

    # Config
    if settings.has_api_key:
        table.add_row("Gemini key", "OK", "GEMINI_API_KEY configured")
    else:
        table.add_row("Gemini key", "FAIL", "Not set -> run `btk-sorgu doctor setup-ai`")
    table.add_row("Gemini model", "OK", settings.gemini_model)

    # Connectivity (best-effort)
    ok_registry, detail_registry = _check_http(f"{settings.registry_base_url.rstrip('/')}/", settings)
    table.add_row("Registry reachable", "OK" if ok_registry else "FAIL", detail_registry)

    if settings.has_api_key:
        solver = GeminiCaptchaSolver(settings)
        model_url = solver.endpoint.rsplit(":", 1)[0]
        ok_gemini, detail_gemini = _check_http(
            model_url,
            settings,
            headers={"x-goog-api-key": settings.gemini_api_key or ""},
        )
        table.add_row("Gemini reachable", "OK" if ok_gemini else "FAIL", detail_gemini)
    else:
        table.add_row("Gemini reachable", "SKIPPED", "No API key")

    ok_history, detail_history = _check_writable(settings.history_path)
    table.add_row("History writable", "OK" if ok_history else "FAIL", detail_history)

    _console.print(table)

    if not ok_registry:
        _console.print(
            "\n[yellow]Note:[/yellow] The registry is often unreachable from outside Turkey; "
            "queries will fail with a network error."
        )


@app.command(name="setup-ai")
def setup_ai() -> None:
    """Interactive Gemini setup (stores config in the user config .env).

    Designed for non-Python users: no manual .env editing.
    """

    settings = AppSettings()
    model = typer.prompt("Gemini model", default=settings.gemini_model, show_default=True).strip()
    api_key = typer.prompt("Gemini API key", hide_input=True, confirmation_prompt=False).strip()

    if not model or not api_key:
        raise typer.BadParameter("model and API key are required")

    env_path = write_user_env_vars(
        {
            "GEMINI_MODEL": model,
            "GEMINI_API_KEY": api_key,
        }
    )

    _console.print(f"[green]Saved Gemini config to:[/green] {env_path}")
