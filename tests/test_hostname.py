"""Tests de validación de dominios."""

import pytest

from core.domain.hostname import MAX_DOMAIN_LENGTH, is_valid_domain, normalize_domain

# 4 etiquetas de 63 + ".com": 259 caracteres, cada etiqueta válida por separado.
TOO_LONG_DOMAIN = ".".join(["a" * 63] * 4) + ".com"


class TestIsValidDomain:
    """Reglas de forma de un nombre de dominio."""

    @pytest.mark.parametrize(
        "domain",
        ["example.com", "discord.com", "sub.example.co.uk", "a-b.example.org", "x1.io"],
    )
    def test_accepts_regular_domains(self, domain):
        """Acepta dominios con TLD alfabético de 2+ letras."""
        assert is_valid_domain(domain)

    @pytest.mark.parametrize(
        "domain",
        [
            "",
            "example",
            "-example.com",
            "example-.com",
            "exa mple.com",
            "example.c",
            "example.123",
            "http://example.com",
            "example.com/path",
            "a" * 64 + ".com",
        ],
    )
    def test_rejects_malformed_domains(self, domain):
        """Rechaza etiquetas vacías, guiones en los bordes, esquemas y rutas."""
        assert not is_valid_domain(domain)

    def test_label_of_63_characters_is_allowed(self):
        """El límite por etiqueta es 63 caracteres."""
        assert is_valid_domain("a" * 63 + ".com")

    def test_full_name_longer_than_253_is_rejected(self):
        """Etiquetas válidas no bastan: el nombre completo tiene un tope DNS."""
        assert len(TOO_LONG_DOMAIN) > MAX_DOMAIN_LENGTH
        assert not is_valid_domain(TOO_LONG_DOMAIN)

    def test_full_name_of_253_characters_is_allowed(self):
        domain = ".".join(["a" * 63] * 3) + "." + "b" * 57 + ".com"
        assert len(domain) == MAX_DOMAIN_LENGTH
        assert is_valid_domain(domain)


class TestNormalizeDomain:
    """Limpieza de la entrada del usuario."""

    def test_strips_whitespace(self):
        """Quita espacios y saltos de línea alrededor."""
        assert normalize_domain("  example.com\n") == "example.com"
