"""Tests de persistencia del historial."""

import json

from adapters.history_store import append_history, load_history, save_history
from core.domain.errors import ErrorKind
from core.domain.models import QueryResult, ResponseClassification


def _accessible(domain):
    return QueryResult.success(
        domain=domain,
        classification=ResponseClassification(description_local="ok"),
        duration_ms=900,
    )


class TestHistoryStore:
    """Lectura tolerante y escritura estable."""

    def test_missing_file_is_empty(self, history_path):
        assert load_history(history_path) == []

    def test_corrupt_file_is_empty(self, history_path):
        """Un JSON roto no impide seguir trabajando."""
        history_path.parent.mkdir(parents=True)
        history_path.write_text("{not json", encoding="utf-8")
        assert load_history(history_path) == []

    def test_save_creates_parent_and_uses_queries_key(self, history_path):
        failed = QueryResult.failure(domain="b.com", error="boom", kind=ErrorKind.NETWORK_ERROR)
        save_history([_accessible("a.com"), failed], history_path)

        document = json.loads(history_path.read_text(encoding="utf-8"))
        assert [q["domain"] for q in document["queries"]] == ["a.com", "b.com"]
        assert document["queries"][0]["queryDurationMs"] == 900
        assert document["queries"][1]["error"] == "boom"

    def test_round_trip_keeps_turkish_text(self, history_path):
        result = QueryResult.success(
            domain="a.com",
            classification=ResponseClassification(description_local="Bu site hakkında karar bulunmamaktadır."),
            duration_ms=1,
        )
        save_history([result], history_path)
        assert "hakkında" in history_path.read_text(encoding="utf-8")
        assert [r.model_dump() for r in load_history(history_path)] == [result.model_dump()]

    def test_append_keeps_previous_entries(self, history_path):
        save_history([_accessible("a.com")], history_path)
        history = append_history([_accessible("b.com")], history_path)

        assert [r.domain for r in history] == ["a.com", "b.com"]
        assert [r.domain for r in load_history(history_path)] == ["a.com", "b.com"]
