"""Contratos del pipeline de consulta.

Por qué Protocol:
- Define un contrato estructural (duck typing) sin herencia rígida.
- El coordinador de reintentos no sabe nada de httpx, BeautifulSoup ni Gemini;
  solo de estas operaciones.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from core.domain.models import ResponseClassification


@runtime_checkable
class SessionContext(Protocol):
    """Sesión HTTP (cookies + cliente) de un único intento."""

    def close(self) -> None:
        ...


@runtime_checkable
class RegistryGateway(Protocol):
    """Operaciones contra el registro de bloqueos.

    Reglas de diseño:
    - Todas las operaciones son bloqueantes (una consulta = un hilo de control).
    - Cada fallo se expresa como `QueryError` tipado.
    - `open_session` devuelve una sesión nueva y ya inicializada (cookies).
    """

    def open_session(self) -> SessionContext:
        ...

    def fetch_captcha(self, session: SessionContext) -> bytes:
        ...

    def submit(self, session: SessionContext, domain: str, code: str) -> str:
        ...

    def classify(self, html: str) -> ResponseClassification:
        ...


@runtime_checkable
class CaptchaSolver(Protocol):
    """Reconoce el texto de una imagen CAPTCHA mediante un servicio externo."""

    def solve(self, image_bytes: bytes, api_key: str) -> str:
        """Devuelve un código alfanumérico de 5-6 caracteres o lanza `QueryError`."""

        ...
