"""Wrapper de httpx.

Por qué un wrapper:
- Estandariza timeouts, headers, redirecciones y el mapeo de errores de red a
  `QueryError` tipados.
- Facilita testeo: se puede inyectar un `httpx.MockTransport`.
"""

from __future__ import annotations

from types import TracebackType
from typing import Mapping

import httpx

from core.config import AppSettings
from core.domain.errors import ErrorKind, QueryError
from core.logging_config import get_logger

_log = get_logger("http_client")

BROWSER_HEADERS: dict[str, str] = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,*/*;q=0.8",
    "Accept-Language": "tr-TR,tr;q=0.9,en-US;q=0.8,en;q=0.7",
    "Accept-Encoding": "gzip, deflate",
}


def build_http_client(
    settings: AppSettings | None = None,
    *,
    timeout_seconds: float | None = None,
    extra_headers: dict[str, str] | None = None,
    transport: httpx.BaseTransport | None = None,
) -> httpx.Client:
    """Crea un `httpx.Client` con defaults seguros.

    Por qué un builder:
    - Centraliza timeouts/headers/redirecciones para registro y solver.
    - Cada llamada crea un cliente nuevo con su propio cookie jar (nada global).
    """

    settings = settings or AppSettings()
    headers: dict[str, str] = {"User-Agent": settings.user_agent}
    if extra_headers:
        headers.update(extra_headers)
    return httpx.Client(
        timeout=httpx.Timeout(timeout_seconds or settings.http_timeout_seconds),
        follow_redirects=True,
        max_redirects=settings.max_redirects,
        headers=headers,
        cookies=httpx.Cookies(),
        transport=transport,
    )


class RegistrySession:
    """Contexto HTTP de un intento: cookie jar + cliente configurado.

    Se crea al comenzar cada intento y se descarta al terminarlo; nunca se
    reutiliza ni se "repara" una sesión fallida.
    """

    def __init__(self, client: httpx.Client) -> None:
        self._client = client
        self._closed = False

    @property
    def cookies(self) -> httpx.Cookies:
        return self._client.cookies

    @property
    def closed(self) -> bool:
        return self._closed

    def get(self, url: str, *, headers: Mapping[str, str] | None = None) -> httpx.Response:
        return self._send("GET", url, headers=headers)

    def post_form(
        self,
        url: str,
        fields: Mapping[str, str],
        *,
        headers: Mapping[str, str] | None = None,
    ) -> httpx.Response:
        form_headers = {"Content-Type": "application/x-www-form-urlencoded"}
        if headers:
            form_headers.update(headers)
        return self._send("POST", url, headers=form_headers, data=dict(fields))

    def _send(
        self,
        method: str,
        url: str,
        *,
        headers: Mapping[str, str] | None = None,
        data: dict[str, str] | None = None,
    ) -> httpx.Response:
        try:
            return self._client.request(method, url, headers=headers, data=data)
        except httpx.TooManyRedirects as exc:
            raise QueryError(
                ErrorKind.TOO_MANY_REDIRECTS,
                f"too many redirects (max {self._client.max_redirects}): {url}",
            ) from exc
        except httpx.HTTPError as exc:
            _log.debug("http_request_failed", method=method, url=url, error=str(exc))
            raise QueryError(
                ErrorKind.NETWORK_ERROR,
                f"request failed: {method} {url}: {exc}",
            ) from exc

    def close(self) -> None:
        if not self._closed:
            self._client.close()
            self._closed = True

    def __enter__(self) -> "RegistrySession":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()


def build_registry_session(
    settings: AppSettings | None = None,
    *,
    transport: httpx.BaseTransport | None = None,
) -> RegistrySession:
    """Crea una sesión nueva para un intento (headers de navegador, jar vacío)."""

    try:
        client = build_http_client(settings, extra_headers=BROWSER_HEADERS, transport=transport)
    except (TypeError, ValueError) as exc:
        raise QueryError(ErrorKind.SESSION_ERROR, f"could not build HTTP session: {exc}") from exc
    return RegistrySession(client)
