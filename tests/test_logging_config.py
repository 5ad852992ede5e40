"""Tests de la configuración de logs (structlog a stderr)."""

import json

from core.logging_config import configure_logging, get_logger


class TestConfigureLogging:
    def test_json_logs_go_to_stderr(self, capsys):
        """stdout queda libre para los resultados."""
        configure_logging("INFO", json_output=True)

        get_logger("test").info("captcha_fetched", domain="example.com", size=123)

        captured = capsys.readouterr()
        assert captured.out == ""
        event = json.loads(captured.err.strip().splitlines()[-1])
        assert event["event"] == "captcha_fetched"
        assert event["component"] == "test"
        assert event["domain"] == "example.com"
        assert event["level"] == "info"

    def test_level_filters_lower_events(self, capsys):
        configure_logging("WARNING", json_output=True)

        get_logger("test").info("hidden")
        get_logger("test").warning("shown")

        err = capsys.readouterr().err
        assert "hidden" not in err
        assert "shown" in err

    def test_unknown_level_falls_back_to_warning(self, capsys):
        configure_logging("LOUD", json_output=True)
        get_logger("test").info("hidden")
        assert "hidden" not in capsys.readouterr().err
