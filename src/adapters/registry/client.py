"""Adaptador HTTP del registro de bloqueos (BTK site sorgu).

Flujo por intento (misma sesión / mismo cookie jar):
1) GET <base>/              -> cookies de sesión
2) GET captcha.php?t=...    -> imagen CAPTCHA (cache-buster nuevo en cada llamada)
3) POST <base>/             -> HTML con el resultado

Estos métodos son I/O puro: no deciden reintentos ni interpretan el HTML (eso es
del parser y del coordinador).
"""

from __future__ import annotations

import gzip
import time
import zlib
from typing import Callable
from urllib.parse import urlencode, urlsplit

import httpx

from adapters.http_client import RegistrySession, build_registry_session
from adapters.registry.parser import classify_response
from adapters.registry.patterns import RegistryPatterns, default_patterns
from core.config import AppSettings
from core.domain.errors import ErrorKind, QueryError
from core.domain.models import ResponseClassification
from core.logging_config import get_logger

_log = get_logger("registry_client")

_GZIP_MAGIC = b"\x1f\x8b"


def make_cache_buster(now_ns: int) -> str:
    """Timestamp estilo PHP `microtime()`: "0.<8 dígitos> <unix>"."""

    return f"0.{now_ns % 100_000_000:08d} {now_ns // 1_000_000_000}"


def maybe_gunzip(body: bytes) -> bytes:
    """Descomprime si el cuerpo sigue en gzip (servidor sin Content-Encoding)."""

    if not body.startswith(_GZIP_MAGIC):
        return body
    try:
        return gzip.decompress(body)
    except (OSError, EOFError, zlib.error) as exc:
        raise QueryError(ErrorKind.NETWORK_ERROR, f"could not decompress CAPTCHA image: {exc}") from exc


class RegistryClient:
    """Implementación de `RegistryGateway` contra el formulario web del registro."""

    def __init__(
        self,
        settings: AppSettings | None = None,
        *,
        patterns: RegistryPatterns | None = None,
        transport: httpx.BaseTransport | None = None,
        clock_ns: Callable[[], int] = time.time_ns,
    ) -> None:
        self._settings = settings or AppSettings()
        self._patterns = patterns or default_patterns()
        self._transport = transport
        self._clock_ns = clock_ns
        self._base_url = self._settings.registry_base_url.rstrip("/")
        parts = urlsplit(self._base_url)
        self._origin = f"{parts.scheme}://{parts.netloc}"

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def form_url(self) -> str:
        return f"{self._base_url}/"

    def captcha_url(self) -> str:
        query = urlencode({"_CAPTCHA": "", "t": make_cache_buster(self._clock_ns())})
        return f"{self._base_url}{self._settings.captcha_path}?{query}"

    def open_session(self) -> RegistrySession:
        """Crea una sesión nueva y obtiene las cookies iniciales (200 obligatorio)."""

        session = build_registry_session(self._settings, transport=self._transport)
        try:
            response = session.get(self.form_url)
            if response.status_code != 200:
                raise QueryError(
                    ErrorKind.HTTP_STATUS_ERROR,
                    f"could not start session: HTTP {response.status_code}",
                    status_code=response.status_code,
                )
        except QueryError:
            session.close()
            raise
        _log.debug("session_started", cookies=len(session.cookies))
        return session

    def fetch_captcha(self, session: RegistrySession) -> bytes:
        headers = {
            "Accept": "image/avif,image/webp,image/apng,image/svg+xml,image/*,*/*;q=0.8",
            "Referer": self.form_url,
        }
        response = session.get(self.captcha_url(), headers=headers)
        if response.status_code != 200:
            raise QueryError(
                ErrorKind.HTTP_STATUS_ERROR,
                f"could not download CAPTCHA: HTTP {response.status_code}",
                status_code=response.status_code,
            )

        image = maybe_gunzip(response.content)
        if not image:
            raise QueryError(ErrorKind.CAPTCHA_DOWNLOAD_EMPTY, "CAPTCHA image was empty")

        _log.debug("captcha_fetched", size=len(image))
        return image

    def submit(self, session: RegistrySession, domain: str, code: str) -> str:
        fields = {
            "deger": domain,
            "ipw": "",
            "kat": "",
            "tr": "",
            "eg": "",
            "ayrintili": "0",
            "submit": "Sorgula",
            "security_code": code,
        }
        headers = {"Origin": self._origin, "Referer": self.form_url}
        response = session.post_form(self.form_url, fields, headers=headers)
        if response.status_code != 200:
            raise QueryError(
                ErrorKind.HTTP_STATUS_ERROR,
                f"lookup failed: HTTP {response.status_code}",
                status_code=response.status_code,
            )
        return response.text

    def classify(self, html: str) -> ResponseClassification:
        return classify_response(html, self._patterns)
