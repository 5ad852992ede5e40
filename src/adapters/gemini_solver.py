"""Adaptador del solver de CAPTCHA (Google Gemini `generateContent`).

Responsabilidad:
- Enviar la imagen (base64) + una instrucción fija al modelo multimodal.
- Mapear fallos de la API a `ErrorKind` distintos (cuota, auth, filtro, vacío, incompleto).
- Filtrar la respuesta libre a un código alfanumérico de 5-6 caracteres.

El control de longitud es una post-condición dura: es la única defensa frente a
un modelo que "alucina" texto.
"""

from __future__ import annotations

import base64
import re
from typing import Any

import httpx

from adapters.http_client import build_http_client
from core.config import AppSettings
from core.domain.errors import ErrorKind, InvalidCaptchaFormat, QueryError
from core.logging_config import get_logger

_log = get_logger("gemini_solver")

_NON_ALNUM_RE = re.compile(r"[^A-Za-z0-9]")

CAPTCHA_MIN_LENGTH = 5
CAPTCHA_MAX_LENGTH = 6


def _is_code_length(code: str) -> bool:
    return CAPTCHA_MIN_LENGTH <= len(code) <= CAPTCHA_MAX_LENGTH


def filter_captcha_code(raw_text: str) -> str:
    """Deja solo [A-Za-z0-9] y exige longitud 5 o 6.

    Si el modelo envuelve el código en una frase ("The code is: AB12C!"), se
    acepta la única palabra que por sí sola cumple la longitud. Con cero o
    varias candidatas la salida es inválida.
    """

    raw_text = raw_text or ""
    code = _NON_ALNUM_RE.sub("", raw_text)
    if _is_code_length(code):
        return code

    candidates = [c for c in (_NON_ALNUM_RE.sub("", token) for token in raw_text.split()) if _is_code_length(c)]
    if len(candidates) == 1:
        return candidates[0]
    raise InvalidCaptchaFormat(raw_text, code)


def build_generate_content_payload(*, prompt: str, image_bytes: bytes) -> dict[str, Any]:
    return {
        "contents": [
            {
                "parts": [
                    {"text": prompt},
                    {
                        "inline_data": {
                            "mime_type": "image/png",
                            "data": base64.b64encode(image_bytes).decode("ascii"),
                        }
                    },
                ]
            }
        ],
        "generationConfig": {
            "temperature": 0,
            "maxOutputTokens": 256,
        },
    }


def extract_reply_text(payload: Any) -> str:
    """Obtiene `candidates[0].content.parts[0].text` validando la respuesta."""

    if not isinstance(payload, dict):
        raise QueryError(ErrorKind.SOLVER_EMPTY_RESPONSE, "Gemini API returned an unexpected payload")

    feedback = payload.get("promptFeedback")
    if isinstance(feedback, dict) and feedback.get("blockReason"):
        raise QueryError(
            ErrorKind.SOLVER_SAFETY_BLOCKED,
            f"Gemini safety filter: {feedback['blockReason']}",
            block_reason=feedback["blockReason"],
        )

    candidates = payload.get("candidates")
    if not isinstance(candidates, list) or not candidates:
        raise QueryError(ErrorKind.SOLVER_EMPTY_RESPONSE, "Gemini API returned no candidates")

    candidate = candidates[0] if isinstance(candidates[0], dict) else {}
    finish_reason = candidate.get("finishReason")
    if finish_reason and finish_reason != "STOP":
        raise QueryError(
            ErrorKind.SOLVER_INCOMPLETE,
            f"Gemini response incomplete: {finish_reason}",
            finish_reason=finish_reason,
        )

    content = candidate.get("content")
    parts = content.get("parts") if isinstance(content, dict) else None
    if not isinstance(parts, list) or not parts or not isinstance(parts[0], dict):
        raise QueryError(ErrorKind.SOLVER_EMPTY_RESPONSE, "Gemini API returned no text")

    text = parts[0].get("text")
    if not isinstance(text, str) or not text.strip():
        raise QueryError(ErrorKind.SOLVER_EMPTY_RESPONSE, "Gemini API returned no text")
    return text


class GeminiCaptchaSolver:
    """Implementación de `CaptchaSolver` sobre la API REST de Gemini."""

    def __init__(
        self,
        settings: AppSettings | None = None,
        *,
        model: str | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._settings = settings or AppSettings()
        self._model = (model or self._settings.gemini_model).strip()
        self._transport = transport

    @property
    def model(self) -> str:
        return self._model

    @property
    def endpoint(self) -> str:
        base = self._settings.gemini_api_base.rstrip("/")
        return f"{base}/models/{self._model}:generateContent"

    def solve(self, image_bytes: bytes, api_key: str) -> str:
        api_key = (api_key or "").strip()
        if not api_key:
            raise QueryError(ErrorKind.SOLVER_AUTH_FAILURE, "GEMINI_API_KEY is not set")

        payload = build_generate_content_payload(prompt=self._settings.gemini_prompt, image_bytes=image_bytes)
        headers = {"Content-Type": "application/json", "x-goog-api-key": api_key}

        try:
            with build_http_client(
                self._settings,
                timeout_seconds=self._settings.solver_timeout_seconds,
                transport=self._transport,
            ) as client:
                response = client.post(self.endpoint, json=payload, headers=headers)
        except httpx.HTTPError as exc:
            raise QueryError(ErrorKind.NETWORK_ERROR, f"Gemini API request failed: {exc}") from exc

        status = response.status_code
        if status == 429:
            raise QueryError(ErrorKind.SOLVER_QUOTA_EXCEEDED, "Gemini API quota exceeded", status_code=status)
        if status in (401, 403):
            raise QueryError(ErrorKind.SOLVER_AUTH_FAILURE, "Gemini API authorization failed", status_code=status)
        if status != 200:
            raise QueryError(ErrorKind.HTTP_STATUS_ERROR, f"Gemini API error: HTTP {status}", status_code=status)

        try:
            data = response.json()
        except ValueError as exc:
            # JSONDecodeError y UnicodeDecodeError (cuerpo que no es UTF-8).
            raise QueryError(ErrorKind.SOLVER_EMPTY_RESPONSE, "Gemini API returned invalid JSON") from exc

        raw_text = extract_reply_text(data)
        code = filter_captcha_code(raw_text)
        _log.debug("captcha_solved", model=self._model, length=len(code))
        return code
