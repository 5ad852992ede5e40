"""Configuración de logging (structlog).

Los logs van siempre a stderr: stdout queda reservado para resultados (tablas
Rich o documentos JSON que otras herramientas consumen por pipe).
"""

from __future__ import annotations

import logging
import sys

import structlog


def configure_logging(level: str = "WARNING", *, json_output: bool = False) -> None:
    """Configura structlog para la CLI/TUI.

    - `json_output`: render JSON (modo `--json`, logs parseables).
    - En otro caso, render de consola legible.
    """

    numeric_level = logging.getLevelName((level or "WARNING").upper())
    if not isinstance(numeric_level, int):
        numeric_level = logging.WARNING

    renderer: structlog.typing.Processor
    if json_output:
        renderer = structlog.processors.JSONRenderer(ensure_ascii=False)
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )


def get_logger(component: str) -> structlog.typing.FilteringBoundLogger:
    return structlog.get_logger(component=component)
