"""Orquestación de una consulta (coordinador de reintentos).

Máquina de estados por dominio:

    INIT -> SESSION_INIT -> CAPTCHA_FETCH -> CAPTCHA_SOLVE -> SUBMIT -> CLASSIFY
         -> DONE | RETRYABLE | FATAL

Política:
- Cualquier error de una etapa es FATAL (red, cuota, auth, salida inválida del solver...).
- La decisión se toma por `ErrorKind.retryable`: solo un CAPTCHA rechazado por el
  registro es RETRYABLE. Se espera un intervalo fijo, se descarta la sesión y se
  vuelve a SESSION_INIT con una sesión nueva.
- Ninguna excepción cruza este borde: el llamador siempre recibe un `QueryResult`.
  Un hook de UI que falla se registra y se ignora.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from core.config import AppSettings
from core.domain.errors import ErrorKind, QueryError, captcha_rejected
from core.domain.hostname import is_valid_domain, normalize_domain
from core.domain.models import RESULT_DOMAIN_MAX_LENGTH, QueryResult, ResponseClassification
from core.interfaces.registry import CaptchaSolver, RegistryGateway
from core.logging_config import get_logger

_log = get_logger("query_pipeline")


class PipelineStage(str, Enum):
    INIT = "init"
    SESSION_INIT = "session_init"
    CAPTCHA_FETCH = "captcha_fetch"
    CAPTCHA_SOLVE = "captcha_solve"
    SUBMIT = "submit"
    CLASSIFY = "classify"
    DONE = "done"
    RETRYABLE = "retryable"
    FATAL = "fatal"


@dataclass
class PipelineHooks:
    """Callbacks opcionales para capas de UI (spinner, mensajes de progreso)."""

    stage: Callable[[str, PipelineStage], None] | None = None
    retry: Callable[[str, int, int], None] | None = None


class QueryCoordinator:
    """Ejecuta el pipeline completo para un dominio y devuelve un `QueryResult` congelado."""

    def __init__(
        self,
        *,
        registry: RegistryGateway,
        solver: CaptchaSolver,
        api_key: str,
        max_retries: int = 3,
        retry_delay_seconds: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
        hooks: PipelineHooks | None = None,
    ) -> None:
        self._registry = registry
        self._solver = solver
        self._api_key = api_key
        self._max_retries = max(1, max_retries)
        self._retry_delay = max(0.0, retry_delay_seconds)
        self._sleep = sleep
        self._clock = clock
        self._hooks = hooks or PipelineHooks()

    @classmethod
    def from_settings(
        cls,
        settings: AppSettings | None = None,
        *,
        registry: RegistryGateway | None = None,
        solver: CaptchaSolver | None = None,
        hooks: PipelineHooks | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> "QueryCoordinator":
        # Import local: el Core solo conoce los adaptadores concretos en este punto de ensamblado.
        from adapters.gemini_solver import GeminiCaptchaSolver
        from adapters.registry.client import RegistryClient

        settings = settings or AppSettings()
        return cls(
            registry=registry or RegistryClient(settings),
            solver=solver or GeminiCaptchaSolver(settings),
            api_key=settings.gemini_api_key or "",
            max_retries=settings.max_retries,
            retry_delay_seconds=settings.retry_delay_seconds,
            sleep=sleep,
            hooks=hooks,
        )

    @property
    def max_retries(self) -> int:
        return self._max_retries

    def _notify(self, hook: Callable[..., None] | None, *args: object) -> None:
        """Invoca un hook de UI; un hook que falla se registra y se ignora."""

        if hook is None:
            return
        try:
            hook(*args)
        except Exception as exc:  # noqa: BLE001
            _log.warning("pipeline_hook_failed", hook=getattr(hook, "__name__", repr(hook)), error=str(exc))

    def _enter(self, domain: str, stage: PipelineStage) -> None:
        self._notify(self._hooks.stage, domain, stage)

    def _elapsed_ms(self, started: float) -> int:
        return max(0, int(round((self._clock() - started) * 1000)))

    def _attempt(self, domain: str) -> ResponseClassification:
        """Un intento completo con una sesión nueva; la sesión se cierra siempre."""

        self._enter(domain, PipelineStage.SESSION_INIT)
        session = self._registry.open_session()
        try:
            self._enter(domain, PipelineStage.CAPTCHA_FETCH)
            image = self._registry.fetch_captcha(session)

            self._enter(domain, PipelineStage.CAPTCHA_SOLVE)
            code = self._solver.solve(image, self._api_key)

            self._enter(domain, PipelineStage.SUBMIT)
            html = self._registry.submit(session, domain, code)

            self._enter(domain, PipelineStage.CLASSIFY)
            return self._registry.classify(html)
        finally:
            session.close()

    def execute(self, domain: str) -> QueryResult:
        domain = normalize_domain(domain)
        started = self._clock()
        log = _log.bind(domain=domain[:RESULT_DOMAIN_MAX_LENGTH])
        self._enter(domain, PipelineStage.INIT)

        if not is_valid_domain(domain):
            self._enter(domain, PipelineStage.FATAL)
            shown = domain[:RESULT_DOMAIN_MAX_LENGTH]
            return QueryResult.failure(
                domain=shown,
                error=f"invalid domain: {shown!r}",
                kind=ErrorKind.DOMAIN_INVALID,
            )

        last_error: QueryError | None = None
        for attempt in range(self._max_retries):
            if attempt > 0:
                log.info("query_retry", attempt=attempt + 1, max_retries=self._max_retries)
                self._notify(self._hooks.retry, domain, attempt + 1, self._max_retries)
                self._sleep(self._retry_delay)

            try:
                classification = self._attempt(domain)
                if classification.captcha_rejected:
                    raise captcha_rejected()
            except QueryError as exc:
                last_error = exc
            except Exception as exc:  # noqa: BLE001
                log.error("query_crashed", attempt=attempt + 1, error=str(exc), exc_info=True)
                last_error = QueryError(ErrorKind.UNEXPECTED_ERROR, f"unexpected error: {exc}")
            else:
                self._enter(domain, PipelineStage.DONE)
                result = QueryResult.success(
                    domain=domain,
                    classification=classification,
                    duration_ms=self._elapsed_ms(started),
                )
                log.info("query_done", blocked=result.blocked, duration_ms=result.query_duration_ms)
                return result

            if last_error.retryable:
                self._enter(domain, PipelineStage.RETRYABLE)
                log.info("attempt_retryable", attempt=attempt + 1, kind=last_error.kind.value)
                if attempt + 1 < self._max_retries:
                    continue
            else:
                log.warning("query_failed", attempt=attempt + 1, kind=last_error.kind.value, error=last_error.message)
            break

        self._enter(domain, PipelineStage.FATAL)
        error = last_error or QueryError(ErrorKind.UNEXPECTED_ERROR, "query finished without a result")
        return QueryResult.failure(
            domain=domain,
            error=error.message,
            kind=error.kind,
            duration_ms=self._elapsed_ms(started),
        )


def execute_query(
    domain: str,
    *,
    settings: AppSettings | None = None,
    registry: RegistryGateway | None = None,
    solver: CaptchaSolver | None = None,
    hooks: PipelineHooks | None = None,
) -> QueryResult:
    """Punto de entrada de una consulta: una llamada bloqueante -> un `QueryResult`."""

    coordinator = QueryCoordinator.from_settings(settings, registry=registry, solver=solver, hooks=hooks)
    return coordinator.execute(domain)
