"""CLI principal (Typer).

Comandos:
- `query`: consulta uno o varios dominios (argumentos y/o `--list`).
- `tui`: interfaz interactiva (Textual).
- `history`: muestra o limpia el historial persistido.
- `doctor`: diagnóstico del entorno y configuración de la API key.

stdout queda reservado para resultados; logs y avisos van a stderr.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console

from adapters.history_store import append_history, load_history, save_history
from adapters.json_exporter import dump_result_json, export_results_json, result_payload
from cli import doctor
from cli.ui_components import build_history_table, build_result_panel, build_summary_table, print_banner
from core.config import AppSettings
from core.domain.models import QueryResult
from core.logging_config import configure_logging
from core.services.batch_runner import BatchHooks, run_batch, split_domains
from core.services.query_pipeline import PipelineHooks, PipelineStage, QueryCoordinator

APP_NAME = "btk-sorgu"
APP_VERSION = "3.0.0"

app = typer.Typer(
    no_args_is_help=True,
    help="Query the BTK blocked-site registry (CAPTCHA solved with Gemini).",
)
app.add_typer(doctor.app, name="doctor")

_console = Console()
_err_console = Console(stderr=True)

_STAGE_LABELS: dict[PipelineStage, str] = {
    PipelineStage.SESSION_INIT: "opening session",
    PipelineStage.CAPTCHA_FETCH: "downloading CAPTCHA",
    PipelineStage.CAPTCHA_SOLVE: "solving CAPTCHA",
    PipelineStage.SUBMIT: "submitting query",
    PipelineStage.CLASSIFY: "reading response",
}


def _load_settings() -> AppSettings:
    return AppSettings()


def _build_coordinator(settings: AppSettings, hooks: PipelineHooks) -> QueryCoordinator:
    return QueryCoordinator.from_settings(settings, hooks=hooks)


def read_domain_list(path: Path) -> list[str]:
    """Un dominio por línea; ignora líneas vacías y comentarios `#`."""

    domains: list[str] = []
    for raw_line in path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        domains.append(line)
    return domains


def _setup_logging(ctx: typer.Context, settings: AppSettings, *, json_output: bool = False) -> None:
    verbose = bool((ctx.obj or {}).get("verbose"))
    configure_logging("DEBUG" if verbose else settings.log_level, json_output=json_output)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"{APP_NAME} {APP_VERSION}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logs on stderr."),
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show the version and exit.",
    ),
) -> None:
    ctx.obj = {"verbose": verbose}


@app.command()
def query(
    ctx: typer.Context,
    domains: Optional[List[str]] = typer.Argument(None, help="Domains to query."),
    list_file: Optional[Path] = typer.Option(None, "--list", "-l", help="File with one domain per line."),
    json_output: bool = typer.Option(False, "--json", help="Print one JSON document per result."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write all results as a JSON array."),
    no_history: bool = typer.Option(False, "--no-history", help="Do not append results to the history file."),
) -> None:
    """Query one or more domains against the registry."""

    settings = _load_settings()
    _setup_logging(ctx, settings, json_output=json_output)

    requested = list(domains or [])
    if list_file is not None:
        try:
            requested.extend(read_domain_list(list_file))
        except (OSError, UnicodeDecodeError) as exc:
            _err_console.print(f"[red]Could not read domain list {list_file}:[/red] {exc}")
            raise typer.Exit(code=1)

    if not settings.has_api_key:
        _err_console.print(
            "[red]GEMINI_API_KEY is not set.[/red] Export it, add it to .env, "
            f"or run `{APP_NAME} doctor setup-ai`."
        )
        raise typer.Exit(code=1)

    valid, invalid = split_domains(requested)
    if not valid:
        for domain in invalid:
            _err_console.print(f"[yellow]Invalid domain skipped:[/yellow] {domain}")
        _err_console.print("[red]No valid domain to query.[/red]")
        raise typer.Exit(code=1)

    if not json_output:
        print_banner(_console)

    def on_invalid(domain: str) -> None:
        _err_console.print(f"[yellow]Invalid domain skipped:[/yellow] {domain}")

    def on_result(result: QueryResult) -> None:
        if json_output:
            typer.echo(dump_result_json(result))
        else:
            _console.print(build_result_panel(result))

    if json_output:
        coordinator = _build_coordinator(settings, PipelineHooks())
        report = run_batch(
            requested,
            coordinator,
            delay_seconds=settings.batch_delay_seconds,
            hooks=BatchHooks(invalid_domain=on_invalid, result=on_result),
        )
    else:
        with _console.status("Starting...", spinner="dots") as status:

            def on_stage(domain: str, stage: PipelineStage) -> None:
                label = _STAGE_LABELS.get(stage)
                if label:
                    status.update(f"[cyan]{domain}[/cyan]: {label}...")

            def on_retry(domain: str, attempt: int, max_retries: int) -> None:
                _console.print(
                    f"[yellow]CAPTCHA rejected for {domain}, retrying ({attempt}/{max_retries})...[/yellow]"
                )

            coordinator = _build_coordinator(settings, PipelineHooks(stage=on_stage, retry=on_retry))
            report = run_batch(
                requested,
                coordinator,
                delay_seconds=settings.batch_delay_seconds,
                hooks=BatchHooks(invalid_domain=on_invalid, result=on_result),
            )

        if len(report.results) > 1:
            _console.print(build_summary_table(report))

    if output is not None:
        path = export_results_json(results=report.results, output_path=output)
        _err_console.print(f"[green]Results written to:[/green] {path}")

    if not no_history:
        append_history(report.results, settings.history_path)


@app.command()
def history(
    ctx: typer.Context,
    clear: bool = typer.Option(False, "--clear", help="Delete all stored queries."),
    json_output: bool = typer.Option(False, "--json", help="Print the history as a JSON array."),
) -> None:
    """Show or clear the query history."""

    settings = _load_settings()
    _setup_logging(ctx, settings, json_output=json_output)

    if clear:
        save_history([], settings.history_path)
        _console.print("[green]History cleared.[/green]")
        return

    results = load_history(settings.history_path)
    if json_output:
        typer.echo(json.dumps([result_payload(r) for r in results], ensure_ascii=False, indent=2))
        return
    if not results:
        _console.print("[dim]No queries in history yet.[/dim]")
        return
    _console.print(build_history_table(results))


@app.command()
def tui(ctx: typer.Context) -> None:
    """Open the interactive terminal UI."""

    settings = _load_settings()
    _setup_logging(ctx, settings)
    if not settings.has_api_key:
        _err_console.print(
            "[red]GEMINI_API_KEY is not set.[/red] "
            f"Run `{APP_NAME} doctor setup-ai` first."
        )
        raise typer.Exit(code=1)

    # Import local: Textual solo se carga para este comando.
    from cli.tui import run_tui

    run_tui(settings)


def run() -> None:
    app()


if __name__ == "__main__":
    run()
