"""Ejecución secuencial de una lista de dominios.

Los dominios se procesan estrictamente en orden, uno a la vez, con una pausa
fija entre consultas consecutivas (ni antes de la primera ni después de la
última). Un fallo de un dominio nunca aborta el lote.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Callable, Iterable

from core.domain.hostname import is_valid_domain, normalize_domain
from core.domain.models import QueryResult
from core.logging_config import get_logger
from core.services.query_pipeline import QueryCoordinator

_log = get_logger("batch_runner")


@dataclass
class BatchHooks:
    """Callbacks opcionales para la capa de presentación."""

    invalid_domain: Callable[[str], None] | None = None
    result: Callable[[QueryResult], None] | None = None


@dataclass
class BatchReport:
    """Salida de una ejecución por lotes."""

    results: list[QueryResult] = field(default_factory=list)
    invalid_domains: list[str] = field(default_factory=list)

    @property
    def blocked(self) -> int:
        return sum(1 for r in self.results if r.status and r.blocked)

    @property
    def accessible(self) -> int:
        return sum(1 for r in self.results if r.accessible)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if not r.status)


def split_domains(domains: Iterable[str]) -> tuple[list[str], list[str]]:
    """Separa (válidos, inválidos) conservando el orden de entrada."""

    valid: list[str] = []
    invalid: list[str] = []
    for raw in domains:
        domain = normalize_domain(raw)
        if not domain:
            continue
        if is_valid_domain(domain):
            valid.append(domain)
        else:
            invalid.append(domain)
    return valid, invalid


def run_batch(
    domains: Iterable[str],
    coordinator: QueryCoordinator,
    *,
    delay_seconds: float = 0.5,
    sleep: Callable[[float], None] = time.sleep,
    hooks: BatchHooks | None = None,
) -> BatchReport:
    hooks = hooks or BatchHooks()
    valid, invalid = split_domains(domains)

    report = BatchReport(invalid_domains=invalid)
    for domain in invalid:
        _log.warning("invalid_domain_skipped", domain=domain)
        if hooks.invalid_domain:
            hooks.invalid_domain(domain)

    for index, domain in enumerate(valid):
        if index > 0 and delay_seconds > 0:
            sleep(delay_seconds)
        result = coordinator.execute(domain)
        report.results.append(result)
        if hooks.result:
            hooks.result(result)

    _log.info(
        "batch_done",
        total=len(valid),
        blocked=report.blocked,
        accessible=report.accessible,
        failed=report.failed,
        invalid=len(invalid),
    )
    return report
