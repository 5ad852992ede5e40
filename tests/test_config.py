"""Tests de configuración (pydantic-settings)."""

from core.config import AppSettings, write_user_env_vars


class TestAppSettings:
    """Valores por defecto y variables de entorno."""

    def test_defaults(self, monkeypatch):
        for name in ("GEMINI_API_KEY", "GEMINI_MODEL", "BTK_SORGU_GEMINI_API_KEY", "BTK_SORGU_GEMINI_MODEL"):
            monkeypatch.delenv(name, raising=False)

        settings = AppSettings(_env_file=None)

        assert settings.gemini_model == "gemini-2.5-flash"
        assert settings.max_retries == 3
        assert settings.retry_delay_seconds == 1.0
        assert settings.batch_delay_seconds == 0.5
        assert settings.http_timeout_seconds == 30.0
        assert settings.max_redirects == 5
        assert settings.registry_base_url == "https://internet.btk.gov.tr/sitesorgu"
        assert "Chrome/120" in settings.user_agent
        assert not settings.has_api_key

    def test_unprefixed_gemini_variables(self, monkeypatch):
        """`GEMINI_API_KEY` y `GEMINI_MODEL` se leen sin prefijo."""
        monkeypatch.setenv("GEMINI_API_KEY", "from-env")
        monkeypatch.setenv("GEMINI_MODEL", "gemini-2.0-flash")

        settings = AppSettings(_env_file=None)

        assert settings.gemini_api_key == "from-env"
        assert settings.gemini_model == "gemini-2.0-flash"
        assert settings.has_api_key

    def test_unprefixed_user_agent(self, monkeypatch):
        """`USER_AGENT` también se acepta sin prefijo, como en el `.env` de la herramienta."""
        monkeypatch.delenv("BTK_SORGU_USER_AGENT", raising=False)
        monkeypatch.setenv("USER_AGENT", "btk-test/1.0")

        settings = AppSettings(_env_file=None)

        assert settings.user_agent == "btk-test/1.0"

    def test_prefixed_variables(self, monkeypatch):
        monkeypatch.setenv("BTK_SORGU_MAX_RETRIES", "5")
        monkeypatch.setenv("BTK_SORGU_HISTORY_PATH", "/tmp/btk/history.json")

        settings = AppSettings(_env_file=None)

        assert settings.max_retries == 5
        assert str(settings.history_path) == "/tmp/btk/history.json"

    def test_env_file(self, tmp_path, monkeypatch):
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        monkeypatch.delenv("BTK_SORGU_GEMINI_API_KEY", raising=False)
        env_file = tmp_path / ".env"
        env_file.write_text("GEMINI_API_KEY=from-file\n", encoding="utf-8")

        settings = AppSettings(_env_file=env_file)

        assert settings.gemini_api_key == "from-file"


class TestWriteUserEnvVars:
    def test_updates_and_keeps_existing_keys(self, tmp_path):
        env_path = tmp_path / "cfg" / ".env"
        env_path.parent.mkdir()
        env_path.write_text("# comment\nOTHER=1\nGEMINI_MODEL=old\n", encoding="utf-8")

        write_user_env_vars({"GEMINI_MODEL": "gemini-2.5-flash", "GEMINI_API_KEY": "k"}, env_path=env_path)

        lines = env_path.read_text(encoding="utf-8").splitlines()
        assert "OTHER=1" in lines
        assert "GEMINI_MODEL=gemini-2.5-flash" in lines
        assert "GEMINI_API_KEY=k" in lines
        assert "GEMINI_MODEL=old" not in lines
