"""Tests de los invariantes de `QueryResult`."""

import pytest
from pydantic import ValidationError

from core.domain.errors import ErrorKind
from core.domain.models import DecisionRecord, QueryResult, ResponseClassification


class TestQueryResultInvariants:
    """Combinaciones imposibles se rechazan al construir."""

    def test_failed_query_cannot_be_blocked(self):
        with pytest.raises(ValidationError):
            QueryResult(domain="example.com", status=False, blocked=True)

    def test_decision_metadata_requires_block(self):
        with pytest.raises(ValidationError):
            QueryResult(domain="example.com", status=True, blocked=False, court="Ankara")

    def test_success_cannot_carry_error(self):
        with pytest.raises(ValidationError):
            QueryResult(domain="example.com", status=True, error="boom")

    def test_negative_duration_rejected(self):
        with pytest.raises(ValidationError):
            QueryResult(domain="example.com", query_duration_ms=-1)

    def test_result_is_frozen(self):
        result = QueryResult.failure(domain="example.com", error="boom", kind=ErrorKind.NETWORK_ERROR)
        with pytest.raises(ValidationError):
            result.status = True


class TestFactories:
    def test_success_copies_decision_only_when_blocked(self):
        decision = DecisionRecord(decision_date="12/03/2024", court="Ankara 1. Sulh Ceza Hakimliği")
        classification = ResponseClassification(blocked=True, description_local="engellenmiştir", decision=decision)

        result = QueryResult.success(domain="example.com", classification=classification, duration_ms=1200)

        assert result.status is True
        assert result.blocked is True
        assert result.decision_date == "12/03/2024"
        assert result.court == "Ankara 1. Sulh Ceza Hakimliği"
        assert result.query_duration_ms == 1200
        assert not result.accessible

    def test_success_not_blocked_drops_decision(self):
        decision = DecisionRecord(court="Ankara")
        classification = ResponseClassification(blocked=False, decision=decision)
        result = QueryResult.success(domain="example.com", classification=classification, duration_ms=5)
        assert result.court is None
        assert result.accessible

    def test_failure(self):
        result = QueryResult.failure(domain="example.com", error="boom", kind=ErrorKind.NETWORK_ERROR, duration_ms=7)
        assert result.status is False
        assert result.blocked is False
        assert result.error_kind is ErrorKind.NETWORK_ERROR

    def test_timestamp_is_utc_iso(self):
        result = QueryResult.failure(domain="example.com", error="boom", kind=ErrorKind.NETWORK_ERROR)
        assert result.timestamp.endswith("Z")
        assert "T" in result.timestamp


class TestSerialization:
    def test_camel_case_aliases(self):
        """La salida JSON usa las claves camelCase del historial."""
        result = QueryResult.failure(domain="example.com", error="boom", kind=ErrorKind.NETWORK_ERROR, duration_ms=7)
        payload = result.model_dump(mode="json", by_alias=True)
        assert payload["queryDurationMs"] == 7
        assert payload["errorKind"] == "network_error"
        assert payload["status"] is False
        assert "descriptionLocal" in payload

    def test_reads_camel_case(self):
        result = QueryResult.model_validate(
            {"domain": "example.com", "status": True, "queryDurationMs": 42, "blocked": False}
        )
        assert result.query_duration_ms == 42

    def test_only_retryable_kind(self):
        assert [k for k in ErrorKind if k.retryable] == [ErrorKind.CAPTCHA_REJECTED_BY_SERVER]
