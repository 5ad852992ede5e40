"""Interfaz de terminal interactiva (Textual).

- Input para un dominio + panel de resultado + tabla con el historial.
- Enter en el input consulta; Enter sobre una fila vuelve a consultar ese
  dominio y reemplaza la fila.
- La consulta corre en un worker (hilo) para no bloquear la UI; el historial se
  guarda después de cada resultado.
"""

from __future__ import annotations

from typing import Callable

from rich.text import Text
from textual import work
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Vertical
from textual.widgets import DataTable, Footer, Header, Input, Static

from adapters.history_store import load_history, save_history
from cli.ui_components import build_result_panel, format_duration, status_label
from core.config import AppSettings
from core.domain.errors import ErrorKind
from core.domain.hostname import is_valid_domain, normalize_domain
from core.domain.models import RESULT_DOMAIN_MAX_LENGTH, QueryResult
from core.logging_config import get_logger
from core.services.query_pipeline import PipelineHooks, PipelineStage, execute_query

HISTORY_COLUMNS = ("Domain", "Durum", "Süre", "Mahkeme")

_log = get_logger("tui")

QueryFn = Callable[[str, PipelineHooks], QueryResult]


def build_history_row(result: QueryResult) -> tuple[str, str, str, str]:
    return (
        result.domain,
        status_label(result),
        format_duration(result.query_duration_ms),
        result.court or "-",
    )


def run_query_guarded(query_fn: QueryFn, domain: str, hooks: PipelineHooks) -> QueryResult:
    """Ejecuta `query_fn`; si lanza, devuelve un resultado fallido en su lugar."""

    try:
        return query_fn(domain, hooks)
    except Exception as exc:  # noqa: BLE001
        _log.error("tui_query_crashed", domain=domain[:RESULT_DOMAIN_MAX_LENGTH], error=str(exc), exc_info=True)
        return QueryResult.failure(
            domain=domain[:RESULT_DOMAIN_MAX_LENGTH],
            error=f"unexpected error: {exc}",
            kind=ErrorKind.UNEXPECTED_ERROR,
        )


def apply_result(history: list[QueryResult], result: QueryResult, replace_index: int | None = None) -> list[QueryResult]:
    """Devuelve el historial con `result` añadido o reemplazando la fila indicada."""

    updated = list(history)
    if replace_index is not None and 0 <= replace_index < len(updated):
        updated[replace_index] = result
    else:
        updated.append(result)
    return updated


class BtkSorguApp(App):
    """Terminal UI for single-domain lookups with a persistent history."""

    TITLE = "BTK Sorgu"

    CSS = """
    #main {
        height: 100%;
    }

    #domain_input {
        margin: 1 1 0 1;
    }

    #message {
        margin: 0 2;
        height: auto;
    }

    #result {
        margin: 0 1;
        height: auto;
    }

    #history {
        margin: 0 1;
        height: 1fr;
    }
    """

    BINDINGS = [
        Binding("ctrl+d", "clear_history", "Clear history"),
        Binding("escape", "focus_input", "Input"),
    ]

    def __init__(self, settings: AppSettings | None = None, *, query_fn: QueryFn | None = None, **kwargs):
        super().__init__(**kwargs)
        self._settings = settings or AppSettings()
        self._query_fn = query_fn or self._default_query
        self._history: list[QueryResult] = load_history(self._settings.history_path)
        self._busy = False

    @property
    def history(self) -> list[QueryResult]:
        return list(self._history)

    def compose(self) -> ComposeResult:
        yield Header()
        with Vertical(id="main"):
            yield Input(placeholder="Domain (e.g. example.com)", id="domain_input")
            yield Static("", id="message")
            yield Static("", id="result")
            yield DataTable(id="history", cursor_type="row", zebra_stripes=True)
        yield Footer()

    def on_mount(self) -> None:
        table = self.query_one("#history", DataTable)
        table.add_columns(*HISTORY_COLUMNS)
        self._refresh_table()
        self.query_one("#domain_input", Input).focus()

    def _default_query(self, domain: str, hooks: PipelineHooks) -> QueryResult:
        return execute_query(domain, settings=self._settings, hooks=hooks)

    def _show_message(self, message: str, style: str = "dim") -> None:
        self.query_one("#message", Static).update(Text(message, style=style))

    def _refresh_table(self) -> None:
        table = self.query_one("#history", DataTable)
        table.clear()
        # Más reciente arriba; la clave de fila es el índice en `_history`.
        for index in range(len(self._history) - 1, -1, -1):
            table.add_row(*build_history_row(self._history[index]), key=str(index))

    def on_input_submitted(self, event: Input.Submitted) -> None:
        domain = normalize_domain(event.value)
        if not domain:
            return
        if not is_valid_domain(domain):
            self._show_message(f"Invalid domain: {domain}", style="red")
            return
        event.input.value = ""
        self._start_query(domain)

    def on_data_table_row_selected(self, event: DataTable.RowSelected) -> None:
        index = int(event.row_key.value)
        if 0 <= index < len(self._history):
            self._start_query(self._history[index].domain, replace_index=index)

    def _start_query(self, domain: str, *, replace_index: int | None = None) -> None:
        if self._busy:
            self._show_message("A query is already running.", style="yellow")
            return
        self._busy = True
        self._show_message(f"Querying {domain}...", style="cyan")
        self._run_query(domain, replace_index)

    @work(thread=True, exclusive=True)
    def _run_query(self, domain: str, replace_index: int | None) -> None:
        def on_stage(name: str, stage: PipelineStage) -> None:
            self.call_from_thread(self._show_message, f"{name}: {stage.value}", "cyan")

        def on_retry(name: str, attempt: int, max_retries: int) -> None:
            self.call_from_thread(
                self._show_message,
                f"{name}: CAPTCHA rejected, retrying ({attempt}/{max_retries})",
                "yellow",
            )

        try:
            result = run_query_guarded(self._query_fn, domain, PipelineHooks(stage=on_stage, retry=on_retry))
            self.call_from_thread(self._finish_query, result, replace_index)
        finally:
            # Un fallo del worker no debe dejar la entrada bloqueada.
            self._busy = False

    def _finish_query(self, result: QueryResult, replace_index: int | None) -> None:
        self._busy = False
        self._history = apply_result(self._history, result, replace_index)
        save_history(self._history, self._settings.history_path)
        self._refresh_table()
        self.query_one("#result", Static).update(build_result_panel(result))
        if result.status:
            self._show_message(f"{result.domain}: {status_label(result)}", style="green")
        else:
            self._show_message(f"{result.domain}: {result.error}", style="red")

    def action_clear_history(self) -> None:
        self._history = []
        save_history(self._history, self._settings.history_path)
        self._refresh_table()
        self.query_one("#result", Static).update("")
        self._show_message("History cleared.")

    def action_focus_input(self) -> None:
        self.query_one("#domain_input", Input).focus()


def run_tui(settings: AppSettings | None = None) -> None:
    """Run the TUI application."""
    app = BtkSorguApp(settings)
    app.run()
