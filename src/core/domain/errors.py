"""Taxonomía de errores del pipeline.

Por qué un enum de tipos:
- La política de reintentos decide por `ErrorKind`, nunca por el texto del mensaje.
- El mensaje queda libre para ser legible (CLI/TUI/JSON) sin romper el control de flujo.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    """Tipos de fallo que puede producir una consulta."""

    SESSION_ERROR = "session_error"
    NETWORK_ERROR = "network_error"
    TOO_MANY_REDIRECTS = "too_many_redirects"
    HTTP_STATUS_ERROR = "http_status_error"
    CAPTCHA_DOWNLOAD_EMPTY = "captcha_download_empty"
    SOLVER_QUOTA_EXCEEDED = "solver_quota_exceeded"
    SOLVER_AUTH_FAILURE = "solver_auth_failure"
    SOLVER_SAFETY_BLOCKED = "solver_safety_blocked"
    SOLVER_EMPTY_RESPONSE = "solver_empty_response"
    SOLVER_INCOMPLETE = "solver_incomplete"
    INVALID_CAPTCHA_FORMAT = "invalid_captcha_format"
    CAPTCHA_REJECTED_BY_SERVER = "captcha_rejected_by_server"
    DOMAIN_INVALID = "domain_invalid"
    UNEXPECTED_ERROR = "unexpected_error"

    @property
    def retryable(self) -> bool:
        """Solo un CAPTCHA rechazado por el registro se resuelve con otra sesión."""

        return self is ErrorKind.CAPTCHA_REJECTED_BY_SERVER


class QueryError(Exception):
    """Fallo tipado de una etapa del pipeline."""

    def __init__(self, kind: ErrorKind, message: str, **details: Any) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.details = details

    @property
    def retryable(self) -> bool:
        return self.kind.retryable

    def __repr__(self) -> str:
        return f"{type(self).__name__}(kind={self.kind.value!r}, message={self.message!r})"


class InvalidCaptchaFormat(QueryError):
    """El solver devolvió algo que no es un código de 5-6 caracteres."""

    def __init__(self, raw_text: str, filtered_text: str) -> None:
        super().__init__(
            ErrorKind.INVALID_CAPTCHA_FORMAT,
            f'invalid CAPTCHA output: "{raw_text}" -> "{filtered_text}" ({len(filtered_text)} chars)',
            raw_text=raw_text,
            filtered_text=filtered_text,
        )
        self.raw_text = raw_text
        self.filtered_text = filtered_text


def captcha_rejected() -> QueryError:
    return QueryError(ErrorKind.CAPTCHA_REJECTED_BY_SERVER, "CAPTCHA code rejected by the registry")
