"""Modelos del dominio (Pydantic v2).

Por qué Pydantic en el dominio:
- Nos da validación estricta y documentación autocontenida (Field) sin acoplar
  el Core a librerías de I/O.
- La misma estructura sirve para la salida JSON y para el historial persistido.

Nota:
- Estos modelos describen *qué* es la información, no *cómo* se obtiene.
"""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, Field, model_validator
from pydantic.alias_generators import to_camel
from pydantic.config import ConfigDict

from core.domain.errors import ErrorKind

# Tope del campo `domain`; la entrada inválida más larga se recorta al registrarla.
RESULT_DOMAIN_MAX_LENGTH = 256

_DECISION_FIELDS = ("decision_date", "case_number", "file_number", "file_type", "court")


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


class DecisionRecord(BaseModel):
    """Metadatos de una decisión de bloqueo extraídos del texto en turco."""

    model_config = ConfigDict(frozen=True)

    decision_date: str | None = Field(default=None, description="Fecha de la decisión (DD/MM/YYYY).")
    case_number: str | None = Field(default=None, description="Número de decisión completo (p.ej. '2024/1234 D. İş').")
    file_number: str | None = Field(default=None, description="Número de expediente (p.ej. '2024/1234').")
    file_type: str | None = Field(default=None, description="Tipo de expediente (p.ej. 'D. İş').")
    court: str | None = Field(default=None, description="Tribunal o autoridad que dictó la decisión.")


class ResponseClassification(BaseModel):
    """Fragmento de resultado producido por el parser de la respuesta HTML.

    El parser solo *informa* un rechazo de CAPTCHA; la política (reintentar o no)
    es del coordinador.
    """

    model_config = ConfigDict(frozen=True)

    captcha_rejected: bool = False
    blocked: bool = False
    no_decision_marker: bool = False
    description_local: str | None = None
    description_foreign: str | None = None
    decision: DecisionRecord | None = None


class QueryResult(BaseModel):
    """Resultado de la consulta de un dominio (unidad de salida y de historial).

    Invariantes:
    - `blocked` es False siempre que `status` sea False.
    - Los metadatos de decisión solo existen si `blocked` es True.
    - `error` solo existe si `status` es False.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        alias_generator=to_camel,
        populate_by_name=True,
    )

    domain: str = Field(
        ...,
        max_length=RESULT_DOMAIN_MAX_LENGTH,
        description="Dominio consultado.",
    )
    timestamp: str = Field(
        default_factory=utc_now_iso,
        description="Instante de finalización (ISO-8601, UTC).",
    )
    status: bool = Field(
        default=False,
        description="True si el pipeline terminó sin error fatal.",
    )
    query_duration_ms: int = Field(
        default=0,
        ge=0,
        description="Duración total de la consulta (todos los intentos), en ms.",
    )
    blocked: bool = Field(
        default=False,
        description="Hay una decisión de bloqueo vigente (solo si status=True).",
    )
    decision_date: str | None = None
    case_number: str | None = None
    file_number: str | None = None
    file_type: str | None = None
    court: str | None = None
    description_local: str | None = Field(
        default=None,
        description="Descripción en turco devuelta por el registro.",
    )
    description_foreign: str | None = Field(
        default=None,
        description="Descripción en inglés devuelta por el registro.",
    )
    error: str | None = Field(
        default=None,
        description="Mensaje del error terminal (solo si status=False).",
    )
    error_kind: ErrorKind | None = Field(
        default=None,
        description="Tipo del error terminal (solo si status=False).",
    )

    @model_validator(mode="after")
    def _check_invariants(self) -> "QueryResult":
        if not self.status and self.blocked:
            raise ValueError("a failed query cannot be marked as blocked")
        if not self.blocked:
            filled = [name for name in _DECISION_FIELDS if getattr(self, name)]
            if filled:
                raise ValueError(f"decision metadata without a block decision: {', '.join(filled)}")
        if self.status and (self.error or self.error_kind):
            raise ValueError("a successful query cannot carry an error")
        return self

    @classmethod
    def success(
        cls,
        *,
        domain: str,
        classification: ResponseClassification,
        duration_ms: int,
    ) -> "QueryResult":
        decision = classification.decision if classification.blocked else None
        metadata = decision.model_dump() if decision else {}
        return cls(
            domain=domain,
            status=True,
            query_duration_ms=max(0, duration_ms),
            blocked=classification.blocked,
            description_local=classification.description_local,
            description_foreign=classification.description_foreign,
            **metadata,
        )

    @classmethod
    def failure(
        cls,
        *,
        domain: str,
        error: str,
        kind: ErrorKind,
        duration_ms: int = 0,
    ) -> "QueryResult":
        return cls(
            domain=domain,
            status=False,
            query_duration_ms=max(0, duration_ms),
            error=error,
            error_kind=kind,
        )

    @property
    def accessible(self) -> bool:
        return self.status and not self.blocked


class QueryHistory(BaseModel):
    """Documento persistido con el historial de consultas (`history.json`)."""

    queries: list[QueryResult] = Field(
        default_factory=list,
        description="Consultas en orden de ejecución.",
    )
