"""Validación de nombres de dominio.

Se valida antes de entrar al pipeline: un dominio inválido nunca se envía al registro.
"""

from __future__ import annotations

import re

_DOMAIN_RE = re.compile(r"^(?:[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?\.)+[a-zA-Z]{2,}$")

# Límite DNS para un nombre completo (sin el punto final).
MAX_DOMAIN_LENGTH = 253


def normalize_domain(value: str) -> str:
    return (value or "").strip()


def is_valid_domain(domain: str) -> bool:
    """True si `domain` es un hostname con al menos un punto y TLD alfabético."""

    if not domain or len(domain) > MAX_DOMAIN_LENGTH:
        return False
    return _DOMAIN_RE.fullmatch(domain) is not None
