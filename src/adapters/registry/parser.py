"""Clasificación y parseo de la respuesta HTML del registro.

Responsabilidad:
- Detectar el rechazo del CAPTCHA (solo se informa; reintentar lo decide el coordinador).
- Extraer descripciones en turco/inglés y decidir si hay bloqueo.
- Extraer metadatos de la decisión (fecha, número, expediente, tribunal).

Los metadatos parciales son aceptables: si el patrón de decisión no encaja, el
veredicto "bloqueado" se mantiene con los campos vacíos.
"""

from __future__ import annotations

from bs4 import BeautifulSoup

from adapters.registry.patterns import RegistryPatterns, default_patterns
from core.domain.models import DecisionRecord, ResponseClassification
from core.logging_config import get_logger

_log = get_logger("registry_parser")


def clean_text(value: str) -> str:
    """Colapsa espacios (incluye NBSP decodificado) y recorta."""

    return " ".join(value.split())


def _fragment_text(soup: BeautifulSoup, selector: str) -> str | None:
    tag = soup.select_one(selector)
    if tag is None:
        return None
    text = clean_text(tag.get_text())
    return text or None


def is_captcha_rejection(html: str, patterns: RegistryPatterns | None = None) -> bool:
    patterns = patterns or default_patterns()
    return any(phrase in html for phrase in patterns.captcha_rejection_phrases)


def has_no_decision_marker(html: str, patterns: RegistryPatterns | None = None) -> bool:
    patterns = patterns or default_patterns()
    lowered = html.lower()
    return any(phrase.lower() in lowered for phrase in patterns.no_decision_phrases)


def extract_decision(text: str, patterns: RegistryPatterns | None = None) -> DecisionRecord | None:
    """Extrae fecha, número de decisión, expediente, tipo y tribunal."""

    patterns = patterns or default_patterns()
    match = patterns.decision_regex.search(text or "")
    if match is None:
        return None
    return DecisionRecord(
        decision_date=match.group(1),
        case_number=match.group(2).strip(),
        file_number=match.group(3),
        file_type=match.group(4).strip(),
        court=match.group(5).strip(),
    )


def classify_response(html: str, patterns: RegistryPatterns | None = None) -> ResponseClassification:
    patterns = patterns or default_patterns()

    if is_captcha_rejection(html, patterns):
        return ResponseClassification(captcha_rejected=True)

    soup = BeautifulSoup(html, "html.parser")
    local = _fragment_text(soup, patterns.local_description_selector)
    foreign = _fragment_text(soup, patterns.foreign_description_selector)

    blocked = bool(local and patterns.blocked_marker in local)
    decision: DecisionRecord | None = None
    if blocked:
        decision = extract_decision(local or "", patterns)
        if decision is None:
            _log.warning("decision_pattern_not_matched", patterns_version=patterns.version)

    # La marca "sin decisión" tiene precedencia sobre la marca de bloqueo.
    no_decision = has_no_decision_marker(html, patterns)
    if no_decision:
        if blocked:
            _log.warning("no_decision_overrides_block_marker", patterns_version=patterns.version)
        blocked = False
        decision = None
        local = patterns.no_decision_description

    if not blocked and not no_decision and local is None:
        _log.info("response_without_known_markers", patterns_version=patterns.version)

    return ResponseClassification(
        captcha_rejected=False,
        blocked=blocked,
        no_decision_marker=no_decision,
        description_local=local,
        description_foreign=foreign,
        decision=decision,
    )
