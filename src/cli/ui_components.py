"""Componentes de UI para CLI (Rich).

Por qué separar componentes:
- Evita mezclar lógica de comandos con detalles visuales.
- Permite reutilizar tablas/paneles entre `query`, `history` y la TUI.
"""

from __future__ import annotations

from typing import Iterable

from rich.align import Align
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from core.domain.models import QueryResult
from core.services.batch_runner import BatchReport


def format_duration(ms: int) -> str:
    """Duración legible: `850ms`, `1.50s`, `2m 5.0s`."""

    if ms < 1000:
        return f"{ms}ms"
    if ms < 60_000:
        return f"{ms / 1000:.2f}s"
    minutes, rest = divmod(ms, 60_000)
    return f"{minutes}m {rest / 1000:.1f}s"


def status_label(result: QueryResult) -> str:
    if not result.status:
        return "HATA"
    return "ENGELLİ" if result.blocked else "ERİŞİLEBİLİR"


def status_style(result: QueryResult) -> str:
    if not result.status:
        return "yellow"
    return "bold red" if result.blocked else "bold green"


def print_banner(console: Console) -> None:
    """Imprime el banner de bienvenida.

    Por qué aquí:
    - Evita dependencias circulares (main <-> doctor).
    - Permite desactivar banner en modos no interactivos (JSON/pipelines).
    """

    title = Text("BTK SORGU", style="bold cyan")
    subtitle = Text("Engelli site sorgulama • CAPTCHA çözümü Gemini ile", style="dim")
    body = Align.center(Text.assemble(title, "\n", subtitle), vertical="middle")
    console.print(Panel(body, border_style="cyan", padding=(1, 4)))


def build_result_panel(result: QueryResult) -> Panel:
    """Panel con el veredicto, la duración y los metadatos de la decisión."""

    body = Text()
    body.append("Durum: ", style="bold")
    body.append(status_label(result) + "\n", style=status_style(result))
    body.append("Süre: ", style="bold")
    body.append(format_duration(result.query_duration_ms) + "\n")

    if not result.status:
        body.append("Hata: ", style="bold")
        body.append(result.error or "-", style="red")
        return Panel(body, title=Text(result.domain, style="bold"), border_style="yellow")

    details = (
        ("Karar tarihi", result.decision_date),
        ("Karar no", result.case_number),
        ("Dosya no", result.file_number),
        ("Dosya türü", result.file_type),
        ("Mahkeme", result.court),
    )
    for label, value in details:
        if value:
            body.append(f"{label}: ", style="bold")
            body.append(value + "\n")

    if result.description_local:
        body.append("\n" + result.description_local + "\n")
    if result.description_foreign:
        body.append(result.description_foreign + "\n", style="dim")

    return Panel(body, title=Text(result.domain, style="bold"), border_style="red" if result.blocked else "green")


def build_summary_table(report: BatchReport) -> Table:
    """Resumen de un lote; los conteos salen de `BatchReport`."""

    table = Table(title="Özet")
    table.add_column("Engelli", style="red", justify="right")
    table.add_column("Erişilebilir", style="green", justify="right")
    table.add_column("Hata", style="yellow", justify="right")
    table.add_column("Toplam", style="bold", justify="right")
    table.add_row(str(report.blocked), str(report.accessible), str(report.failed), str(len(report.results)))
    return table


def build_history_table(results: Iterable[QueryResult]) -> Table:
    table = Table(title="Sorgu Geçmişi")
    table.add_column("Domain", style="cyan", no_wrap=True)
    table.add_column("Durum", style="white")
    table.add_column("Süre", style="white", justify="right")
    table.add_column("Mahkeme", style="magenta")
    table.add_column("Zaman", style="dim")
    for result in results:
        table.add_row(
            result.domain,
            Text(status_label(result), style=status_style(result)),
            format_duration(result.query_duration_ms),
            result.court or "-",
            result.timestamp,
        )
    return table
