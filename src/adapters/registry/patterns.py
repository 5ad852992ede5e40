"""Patrones de extracción del registro (data-driven).

Idea:
- El scraping por regex/selectores es frágil ante cambios de markup; por eso los
  patrones viven en `patterns.json` (versionado) y no incrustados en la lógica.
- Los tests con fixtures HTML fijan el comportamiento de una versión concreta.
"""

from __future__ import annotations

import json
import re
from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, Field, field_validator

DEFAULT_PATTERNS_PATH = Path(__file__).with_name("patterns.json")


class RegistryPatterns(BaseModel):
    version: str = Field(..., min_length=1)
    local_description_selector: str = Field(..., min_length=1)
    foreign_description_selector: str = Field(..., min_length=1)
    captcha_rejection_phrases: list[str] = Field(default_factory=list)
    blocked_marker: str = Field(..., min_length=1)
    no_decision_phrases: list[str] = Field(default_factory=list)
    no_decision_description: str = Field(..., min_length=1)
    decision_pattern: str = Field(..., min_length=1)

    @field_validator("decision_pattern")
    @classmethod
    def _compiles(cls, value: str) -> str:
        try:
            compiled = re.compile(value)
        except re.error as exc:
            raise ValueError(f"invalid decision_pattern: {exc}") from exc
        if compiled.groups < 5:
            raise ValueError("decision_pattern needs 5 groups: date, case, file number, file type, court")
        return value

    @property
    def decision_regex(self) -> re.Pattern[str]:
        return _compile(self.decision_pattern)


@lru_cache(maxsize=8)
def _compile(pattern: str) -> re.Pattern[str]:
    return re.compile(pattern)


def load_registry_patterns(path: Path | None = None) -> RegistryPatterns:
    raw = (path or DEFAULT_PATTERNS_PATH).read_text(encoding="utf-8")
    data = json.loads(raw)
    return RegistryPatterns.model_validate(data)


@lru_cache(maxsize=1)
def default_patterns() -> RegistryPatterns:
    return load_registry_patterns()
