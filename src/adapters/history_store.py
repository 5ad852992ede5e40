"""Persistencia del historial de consultas (`history.json`).

Formato: `{"queries": [QueryResult, ...]}` con claves camelCase, el mismo
documento que produce la salida `--json`.

Por qué tolerante al leer:
- Un historial corrupto o ausente nunca debe impedir una consulta nueva.
- El fallo se registra en el log y se arranca con una lista vacía.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Iterable

from pydantic import ValidationError

from core.domain.models import QueryHistory, QueryResult
from core.logging_config import get_logger

_log = get_logger("history_store")


def load_history(path: Path) -> list[QueryResult]:
    if not path.exists():
        return []
    try:
        document = QueryHistory.model_validate_json(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, ValidationError) as exc:
        _log.warning("history_unreadable", path=str(path), error=str(exc))
        return []
    return list(document.queries)


def save_history(results: Iterable[QueryResult], path: Path) -> Path:
    """Escribe el historial completo (UTF-8, indentado, directorios creados)."""

    path.parent.mkdir(parents=True, exist_ok=True)
    document = QueryHistory(queries=list(results))
    payload = document.model_dump(mode="json", by_alias=True)
    path.write_text(json.dumps(payload, ensure_ascii=False, indent=2) + "\n", encoding="utf-8")
    _log.debug("history_saved", path=str(path), count=len(document.queries))
    return path


def append_history(results: Iterable[QueryResult], path: Path) -> list[QueryResult]:
    history = load_history(path)
    history.extend(results)
    save_history(history, path)
    return history
