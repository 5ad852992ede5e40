"""Adaptador del registro de bloqueos de dominios (BTK).

Por qué un paquete:
- Separa I/O HTTP (`client`), parseo HTML (`parser`) y patrones versionados
  (`patterns` + `patterns.json`).
"""

from adapters.registry.client import RegistryClient
from adapters.registry.parser import classify_response, extract_decision
from adapters.registry.patterns import RegistryPatterns, load_registry_patterns

__all__ = [
    "RegistryClient",
    "RegistryPatterns",
    "classify_response",
    "extract_decision",
    "load_registry_patterns",
]
