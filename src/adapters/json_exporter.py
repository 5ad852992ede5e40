"""Exportación JSON de resultados.

Por qué JSON:
- Interoperabilidad con otras herramientas y pipelines (`jq`, scripts).
- Mismo contrato (camelCase, ISO-8601) que el historial persistido.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Iterable

from core.domain.models import QueryResult


def result_payload(result: QueryResult) -> dict[str, Any]:
    return result.model_dump(mode="json", by_alias=True)


def dump_result_json(result: QueryResult) -> str:
    """Un documento JSON por resultado (fallos incluidos)."""

    return json.dumps(result_payload(result), ensure_ascii=False, indent=2)


def export_results_json(*, results: Iterable[QueryResult], output_path: Path) -> Path:
    """Exporta los resultados como un array JSON UTF-8."""

    output_path.parent.mkdir(parents=True, exist_ok=True)
    payload = [result_payload(r) for r in results]
    output_path.write_text(
        json.dumps(payload, ensure_ascii=False, indent=2) + "\n",
        encoding="utf-8",
    )
    return output_path
