"""
Tests for header sanitizing, building and redaction tracking.
"""
from __future__ import annotations

import pytest

from vouch.headers import (
    build_headers,
    build_headers_with_redaction,
    headers_object_to_array,
    sanitize_header,
)
from vouch.models import WebProofRequest


class TestSanitizeHeader:
    """Tests for single-line header normalization."""

    def test_normalizes_spacing(self) -> None:
        """Whitespace around name and value is trimmed."""
        assert sanitize_header("  X-Trace :   abc  ") == "X-Trace: abc"

    def test_splits_on_first_colon_only(self) -> None:
        """Colons inside the value survive."""
        assert sanitize_header("Referer: https://example.com:8443/x") == "Referer: https://example.com:8443/x"

    @pytest.mark.parametrize("raw", ["", "   ", "no colon here", "X-Trace abc"])
    def test_rejects_empty_or_colonless(self, raw: str) -> None:
        assert sanitize_header(raw) is None

    @pytest.mark.parametrize("raw", [": value", "Name:", "Name:   ", "  : "])
    def test_rejects_empty_name_or_value(self, raw: str) -> None:
        assert sanitize_header(raw) is None

    @pytest.mark.parametrize("raw", [":authority: example.com", ":path: /", ":method: GET"])
    def test_rejects_pseudo_headers(self, raw: str) -> None:
        """HTTP/2 pseudo-headers cannot be replayed."""
        assert sanitize_header(raw) is None

    @pytest.mark.parametrize("name", ["accept-encoding", "Accept-Encoding", "ACCEPT-ENCODING", "aCcEpT-eNcOdInG"])
    def test_rejects_accept_encoding_any_case(self, name: str) -> None:
        """Compressed responses break capture, whatever the casing."""
        assert sanitize_header(f"{name}: gzip") is None

    def test_accept_is_not_accept_encoding(self) -> None:
        assert sanitize_header("Accept: */*") == "Accept: */*"


class TestBuildHeaders:
    """Tests for the plain header builder."""

    def test_empty_yields_default_accept(self) -> None:
        """No inputs = just the JSON Accept header."""
        assert build_headers() == ["Accept: application/json"]

    def test_custom_accept(self) -> None:
        assert build_headers(accept="text/plain") == ["Accept: text/plain"]

    def test_bearer_prefix_added(self) -> None:
        assert build_headers(auth_token="abc") == [
            "Accept: application/json",
            "Authorization: Bearer abc",
        ]

    def test_bearer_prefix_not_doubled(self) -> None:
        """A token already carrying Bearer is used as-is."""
        assert build_headers(auth_token="Bearer abc") == build_headers(auth_token="abc")

    def test_cookie_literal(self) -> None:
        headers = build_headers(cookies="a=1; b=\"x y\"")
        assert headers[-1] == 'Cookie: a=1; b="x y"'

    def test_ordering(self) -> None:
        """Accept, Authorization, Cookie, then extras in mapping order."""
        headers = build_headers(
            accept="text/html",
            auth_token="t",
            cookies="c=1",
            additional_headers={"X-B": "2", "X-A": "1"},
        )
        assert headers == [
            "Accept: text/html",
            "Authorization: Bearer t",
            "Cookie: c=1",
            "X-B: 2",
            "X-A: 1",
        ]

    def test_invalid_additional_headers_dropped(self) -> None:
        """Rejected extras disappear from the list."""
        headers = build_headers(additional_headers={
            "Accept-Encoding": "gzip",
            ":authority": "example.com",
            "X-Empty": "   ",
            "X-Ok": "yes",
        })
        assert headers == ["Accept: application/json", "X-Ok: yes"]

    def test_deterministic(self) -> None:
        kwargs = dict(auth_token="t", additional_headers={"X-A": "1", "X-B": "2"})
        assert build_headers(**kwargs) == build_headers(**kwargs)


class TestBuildHeadersWithRedaction:
    """Tests for redaction tracking alongside header building."""

    def test_authorization_redacted_by_default(self) -> None:
        """Authorization is sensitive with no configuration."""
        result = build_headers_with_redaction(auth_token="x")
        assert "Authorization: Bearer x" in result.headers
        assert result.redaction == [{"request": {"headers": ["Authorization"]}}]

    def test_exclusion_wins(self) -> None:
        """Exclusion overrides default sensitivity."""
        result = build_headers_with_redaction(auth_token="x", exclude_from_redaction=["Authorization"])
        assert "Authorization: Bearer x" in result.headers
        assert result.redaction == []

    def test_exclusion_case_insensitive(self) -> None:
        result = build_headers_with_redaction(cookies="c=1", exclude_from_redaction=["COOKIE"])
        assert result.redaction == []

    def test_x_api_key_default_sensitive(self) -> None:
        result = build_headers_with_redaction(additional_headers={"X-Api-Key": "k"})
        assert result.redaction == [{"request": {"headers": ["X-Api-Key"]}}]

    def test_original_case_preserved(self) -> None:
        """Redaction names keep the caller casing."""
        result = build_headers_with_redaction(additional_headers={"x-API-key": "k"})
        assert result.redacted_names == ["x-API-key"]

    def test_caller_sensitive_headers(self) -> None:
        result = build_headers_with_redaction(
            additional_headers={"X-Session": "s", "X-Public": "p"},
            sensitive_headers=["x-session"],
        )
        assert result.redacted_names == ["X-Session"]

    def test_exclusion_beats_caller_sensitivity(self) -> None:
        """Exclusion overrides caller sensitivity too."""
        result = build_headers_with_redaction(
            additional_headers={"X-Session": "s"},
            sensitive_headers=["X-Session"],
            exclude_from_redaction=["x-session"],
        )
        assert result.redaction == []

    def test_emission_order(self) -> None:
        result = build_headers_with_redaction(
            auth_token="t",
            cookies="c=1",
            additional_headers={"X-Api-Key": "k"},
        )
        assert result.redacted_names == ["Authorization", "Cookie", "X-Api-Key"]
        assert len(result.redaction) == 1

    def test_dropped_headers_not_redacted_but_reported(self) -> None:
        """Rejected headers land in dropped, never in redaction."""
        result = build_headers_with_redaction(additional_headers={"X-Api-Key": "", "Accept-Encoding": "br"})
        assert result.headers == ["Accept: application/json"]
        assert result.redaction == []
        assert result.dropped == ["X-Api-Key: ", "Accept-Encoding: br"]

    def test_accept_never_redacted(self) -> None:
        result = build_headers_with_redaction(sensitive_headers=["Accept"])
        assert result.redaction == []

    def test_unpacks_as_pair(self) -> None:
        """Result unpacks like a (headers, redaction) tuple."""
        headers, redaction = build_headers_with_redaction(auth_token="t")
        assert headers == ["Accept: application/json", "Authorization: Bearer t"]
        assert redaction == [{"request": {"headers": ["Authorization"]}}]

    def test_same_headers_as_plain_builder(self) -> None:
        kwargs = dict(accept="text/plain", auth_token="t", cookies="c", additional_headers={"X-A": "1"})
        assert build_headers_with_redaction(**kwargs).headers == build_headers(**kwargs)

    def test_padded_key_redacted_by_emitted_name(self) -> None:
        """A key with surrounding spaces is redacted under its trimmed name."""
        result = build_headers_with_redaction(additional_headers={"X-Api-Key ": "secret"})
        assert result.headers == ["Accept: application/json", "X-Api-Key: secret"]
        assert result.redaction == [{"request": {"headers": ["X-Api-Key"]}}]

    def test_padded_sensitive_name_builds_valid_request(self) -> None:
        """Padded names on both sides still yield a redaction the request accepts."""
        result = build_headers_with_redaction(
            additional_headers={" X-S ": "v"},
            sensitive_headers=["X-S "],
        )
        assert result.redacted_names == ["X-S"]

        request = WebProofRequest(url="https://a.test", headers=result.headers, redaction=result.redaction)
        assert request.to_payload()["redaction"] == [{"request": {"headers": ["X-S"]}}]

    def test_padded_exclusion(self) -> None:
        result = build_headers_with_redaction(
            additional_headers={"X-Api-Key ": "k"},
            exclude_from_redaction=[" x-api-key"],
        )
        assert result.redaction == []


class TestHeadersObjectToArray:
    """Tests for converting captured header mappings."""

    def test_skips_connection_level_headers(self) -> None:
        """Host, Connection, Accept-Encoding and pseudo-headers are skipped."""
        captured = {
            ":authority": "api.example.com",
            ":method": "GET",
            "Host": "api.example.com",
            "Connection": "keep-alive",
            "accept-encoding": "gzip, deflate, br",
            "Accept": "application/json",
            "User-Agent": "Mozilla/5.0",
        }
        assert headers_object_to_array(captured) == [
            "Accept: application/json",
            "User-Agent: Mozilla/5.0",
        ]

    def test_custom_skip(self) -> None:
        captured = {"Accept": "*/*", "Sec-Fetch-Mode": "cors"}
        assert headers_object_to_array(captured, skip_headers=["sec-fetch-mode"]) == ["Accept: */*"]

    def test_unknown_pseudo_header_skipped(self) -> None:
        assert headers_object_to_array({":protocol": "websocket"}) == []
