"""Configuración del Core.

Por qué aquí:
- Centraliza variables de entorno (pydantic-settings) sin contaminar la CLI.
- Permite que adaptadores (registro BTK / Gemini) lean config de forma consistente.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
DEFAULT_GEMINI_PROMPT = "Read the CAPTCHA text. Reply with ONLY the characters, nothing else."


def get_user_config_dir() -> Path:
    """Directorio de configuración por usuario (cross-platform, sin dependencias).

    Objetivo: permitir guardar la API key una vez (`doctor setup-ai`) sin editar
    un `.env` dentro del directorio de trabajo.
    """

    if sys.platform.startswith("win"):
        base = Path(os.environ.get("APPDATA", str(Path.home())))
        return base / "btk-sorgu"
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "btk-sorgu"

    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / "btk-sorgu"
    return Path.home() / ".config" / "btk-sorgu"


def get_user_env_file() -> Path:
    return get_user_config_dir() / ".env"


def _parse_env_lines(text: str) -> dict[str, str]:
    data: dict[str, str] = {}
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        if key:
            data[key] = value
    return data


def write_user_env_vars(values: dict[str, str], *, env_path: Path | None = None) -> Path:
    """Escribe/actualiza variables en el .env global del usuario."""

    env_path = env_path or get_user_env_file()
    env_path.parent.mkdir(parents=True, exist_ok=True)

    existing: dict[str, str] = {}
    if env_path.exists():
        existing = _parse_env_lines(env_path.read_text(encoding="utf-8"))

    existing.update({k: v for k, v in values.items() if v is not None})

    lines = ["# btk-sorgu user config (.env)"]
    for key in sorted(existing.keys()):
        lines.append(f"{key}={existing[key]}")
    env_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return env_path


class AppSettings(BaseSettings):
    """Configuración central de la aplicación.

    Por qué pydantic-settings:
    - Tipado + validación en el borde (env vars) sin ensuciar el Core con lógica.
    - Un único contrato de configuración para CLI/TUI/adapters.

    `GEMINI_API_KEY`, `GEMINI_MODEL` y `USER_AGENT` se aceptan también sin prefijo
    (así aparecen en el `.env` de la herramienta).
    """

    model_config = SettingsConfigDict(
        env_prefix="BTK_SORGU_",
        extra="ignore",
        case_sensitive=False,
        populate_by_name=True,
        # Orden: proyecto primero (dev), luego config global de usuario.
        env_file=(".env", str(get_user_env_file())),
        env_file_encoding="utf-8",
    )

    # Registro BTK
    registry_base_url: str = Field(
        default="https://internet.btk.gov.tr/sitesorgu",
        min_length=8,
        description="URL base del formulario de consulta del registro.",
    )
    captcha_path: str = Field(
        default="/secureimage/captcha.php",
        min_length=1,
        description="Ruta (relativa a la base) de la imagen CAPTCHA.",
    )
    user_agent: str = Field(
        default=DEFAULT_USER_AGENT,
        min_length=1,
        validation_alias=AliasChoices("BTK_SORGU_USER_AGENT", "USER_AGENT", "user_agent"),
        description="User-Agent de navegador para las peticiones al registro.",
    )
    http_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Timeout por request (segundos).",
    )
    max_redirects: int = Field(
        default=5,
        ge=0,
        le=20,
        description="Máximo de redirecciones por request.",
    )

    # Gemini (solver de CAPTCHA)
    gemini_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("BTK_SORGU_GEMINI_API_KEY", "GEMINI_API_KEY", "gemini_api_key"),
        description="API key de Google Gemini (obligatoria para consultar).",
    )
    gemini_model: str = Field(
        default="gemini-2.5-flash",
        min_length=1,
        validation_alias=AliasChoices("BTK_SORGU_GEMINI_MODEL", "GEMINI_MODEL", "gemini_model"),
        description="Modelo Gemini usado para leer el CAPTCHA.",
    )
    gemini_api_base: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta",
        min_length=8,
        description="Base URL de la API generativa (v1beta).",
    )
    gemini_prompt: str = Field(
        default=DEFAULT_GEMINI_PROMPT,
        min_length=1,
        description="Instrucción fija enviada junto a la imagen.",
    )
    solver_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Timeout para la llamada al solver (segundos).",
    )

    # Política de reintentos / ritmo
    max_retries: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Intentos máximos por dominio (solo se reintenta un CAPTCHA rechazado).",
    )
    retry_delay_seconds: float = Field(
        default=1.0,
        ge=0,
        description="Espera fija antes de reintentar con una sesión nueva.",
    )
    batch_delay_seconds: float = Field(
        default=0.5,
        ge=0,
        description="Pausa entre dominios consecutivos en modo lista.",
    )

    history_path: Path = Field(
        default=Path("history.json"),
        description="Archivo JSON con el historial de consultas (CLI/TUI).",
    )
    log_level: str = Field(
        default="WARNING",
        description="Nivel de log (stderr).",
    )

    @property
    def has_api_key(self) -> bool:
        return bool((self.gemini_api_key or "").strip())
