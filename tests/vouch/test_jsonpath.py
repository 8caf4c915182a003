"""
Tests for path extraction over verified JSON bodies.
"""
from __future__ import annotations

import pytest

from vouch.jsonpath import Index, JsonKind, Key, Match, extract, extract_from_verification, kind_of, parse_path
from vouch.models import VerificationResult

EMAIL = {
    "id": "18c0",
    "payload": {
        "headers": [
            {"name": "From", "value": "alice@example.com"},
            {"name": "Subject", "value": "Quarterly report"},
        ],
    },
}

PORTFOLIO = {"totalBalanceIn": {"data": [{"currency": "USD", "total": 1234.5}]}}


class TestKindOf:
    """Tests for JSON kind classification."""

    @pytest.mark.parametrize("value,kind", [
        ({}, JsonKind.OBJECT),
        ([], JsonKind.ARRAY),
        ("x", JsonKind.STRING),
        (1, JsonKind.NUMBER),
        (1.5, JsonKind.NUMBER),
        (True, JsonKind.BOOL),
        (None, JsonKind.NULL),
    ])
    def test_kinds(self, value, kind) -> None:
        assert kind_of(value) is kind

    def test_not_json(self) -> None:
        """Non-JSON Python values are a TypeError."""
        with pytest.raises(TypeError):
            kind_of(object())


class TestParsePath:
    """Tests for path expression parsing."""

    def test_mixed_steps(self) -> None:
        assert parse_path('payload.headers[name=Subject].value') == [
            Key("payload"), Key("headers"), Match("name", "Subject"), Key("value"),
        ]

    def test_index_and_quoted_key(self) -> None:
        assert parse_path('["a.b"][-1]') == [Key("a.b"), Index(-1)]

    @pytest.mark.parametrize("expr", ["", "a..b", ".a", "a.", "a[0", "a]", "a[]", "a[0]b"])
    def test_malformed(self, expr: str) -> None:
        with pytest.raises(ValueError):
            parse_path(expr)


class TestExtract:
    """Tests for evaluating paths."""

    def test_filter_selector(self) -> None:
        """[field=value] picks the first matching object."""
        assert extract(EMAIL, "payload.headers[name=Subject].value") == "Quarterly report"
        assert extract(EMAIL, 'payload.headers[name="From"].value') == "alice@example.com"

    def test_index(self) -> None:
        assert extract(PORTFOLIO, "totalBalanceIn.data[0].total") == 1234.5
        assert extract(PORTFOLIO, "totalBalanceIn.data[-1].currency") == "USD"

    @pytest.mark.parametrize("expr", [
        "missing",
        "payload.headers[name=Cc].value",
        "payload.headers[5]",
        "payload.headers.name",
        "id[0]",
        "id.child",
    ])
    def test_missing_returns_none(self, expr: str) -> None:
        """Unresolvable paths give None instead of raising."""
        assert extract(EMAIL, expr) is None

    def test_scalar_root(self) -> None:
        assert extract("plain text", "a") is None
        assert extract(None, "a") is None

    def test_falsy_values_returned(self) -> None:
        """0 and False are real values, not misses."""
        data = {"a": {"zero": 0, "no": False, "nil": None}}
        assert extract(data, "a.zero") == 0
        assert extract(data, "a.no") is False
        assert extract(data, "a.nil") is None

    def test_match_on_non_string(self) -> None:
        data = {"items": [{"id": 1, "v": "one"}, {"id": 2, "v": "two"}, {"ok": True, "v": "t"}]}
        assert extract(data, "items[id=2].v") == "two"
        assert extract(data, "items[ok=true].v") == "t"


class TestExtractFromVerification:
    """Tests for extraction from a verification result."""

    def test_reads_response_body(self, verification_data) -> None:
        result = VerificationResult.model_validate(verification_data)
        assert extract_from_verification(result, "login") == "octocat"

    def test_no_body(self) -> None:
        assert extract_from_verification(VerificationResult(success=True), "login") is None
