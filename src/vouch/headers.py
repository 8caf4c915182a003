"""
Header shaping for proof requests.

The prover replays the request exactly as described, so every header
must be a plain ``Name: value`` line. HTTP/2 pseudo-headers cannot be
replayed over HTTP/1.1 and compressed responses break transcript
capture, so both are rejected.

Usage:
    from vouch.headers import build_headers_with_redaction

    headers, redaction = build_headers_with_redaction(auth_token=token)
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional

logger = logging.getLogger(__name__)

DEFAULT_ACCEPT = "application/json"
BEARER_PREFIX = "Bearer "

DEFAULT_SENSITIVE_HEADERS = frozenset({"authorization", "cookie", "x-api-key"})

# Headers dropped when converting a captured header mapping.
CAPTURE_SKIP_HEADERS = frozenset({
    "accept-encoding",
    "connection",
    "host",
    ":authority",
    ":method",
    ":path",
    ":scheme",
})


def sanitize_header(header: str) -> Optional[str]:
    """Normalize a raw header line to ``Name: value``.

    Returns None if the header should be skipped.
    """
    trimmed = header.strip()
    if not trimmed:
        return None

    name, sep, value = trimmed.partition(":")
    if not sep:
        return None

    name = name.strip()
    value = value.strip()
    if not name or not value:
        return None
    if name.startswith(":"):
        return None
    if name.lower() == "accept-encoding":
        return None

    return f"{name}: {value}"


def header_name(header: str) -> str:
    """Name part of a ``Name: value`` line."""
    return header.partition(":")[0].strip()


@dataclass
class HeadersWithRedaction:
    """Result of build_headers_with_redaction.

    Unpacks as ``(headers, redaction)``. ``dropped`` holds the raw
    additional headers the sanitizer rejected.
    """

    headers: List[str] = field(default_factory=list)
    redaction: List[Dict[str, Any]] = field(default_factory=list)
    dropped: List[str] = field(default_factory=list)

    def __iter__(self) -> Iterator[Any]:
        yield self.headers
        yield self.redaction

    @property
    def redacted_names(self) -> List[str]:
        names: List[str] = []
        for entry in self.redaction:
            names.extend(entry.get("request", {}).get("headers", []))
        return names

    def to_dict(self) -> Dict[str, Any]:
        return {
            "headers": list(self.headers),
            "redaction": [dict(r) for r in self.redaction],
            "dropped": list(self.dropped),
        }


class _HeaderAssembler:
    """Shared emission logic for the two builders."""

    def __init__(self, is_sensitive=None):
        self.headers: List[str] = []
        self.redact: List[str] = []
        self.dropped: List[str] = []
        self._is_sensitive = is_sensitive

    def emit(self, name: str, line: str) -> None:
        self.headers.append(line)
        if self._is_sensitive is not None and self._is_sensitive(name):
            self.redact.append(name)

    def run(
        self,
        accept: Optional[str],
        auth_token: Optional[str],
        cookies: Optional[str],
        additional_headers: Optional[Mapping[str, str]],
    ) -> None:
        # Accept is never redacted.
        self.headers.append(f"Accept: {accept or DEFAULT_ACCEPT}")

        if auth_token:
            token = auth_token if auth_token.startswith(BEARER_PREFIX) else f"{BEARER_PREFIX}{auth_token}"
            self.emit("Authorization", f"Authorization: {token}")

        if cookies:
            self.emit("Cookie", f"Cookie: {cookies}")

        for name, value in (additional_headers or {}).items():
            raw = f"{name}: {value}"
            sanitized = sanitize_header(raw)
            if sanitized is None:
                self.dropped.append(raw)
                continue
            self.emit(header_name(sanitized), sanitized)

        if self.dropped:
            logger.warning("Dropped %d malformed or disallowed header(s)", len(self.dropped))


def build_headers(
    *,
    accept: Optional[str] = None,
    auth_token: Optional[str] = None,
    cookies: Optional[str] = None,
    additional_headers: Optional[Mapping[str, str]] = None,
) -> List[str]:
    """Build the ordered header list: Accept, Authorization, Cookie, extras."""
    assembler = _HeaderAssembler()
    assembler.run(accept, auth_token, cookies, additional_headers)
    return assembler.headers


def _sensitivity_check(
    sensitive_headers: Optional[Iterable[str]],
    exclude_from_redaction: Optional[Iterable[str]],
):
    extra = {h.strip().lower() for h in (sensitive_headers or [])}
    excluded = {h.strip().lower() for h in (exclude_from_redaction or [])}

    def should_redact(name: str) -> bool:
        lower = name.lower()
        if lower in excluded:
            return False
        return lower in DEFAULT_SENSITIVE_HEADERS or lower in extra

    return should_redact


def build_headers_with_redaction(
    *,
    accept: Optional[str] = None,
    auth_token: Optional[str] = None,
    cookies: Optional[str] = None,
    additional_headers: Optional[Mapping[str, str]] = None,
    sensitive_headers: Optional[Iterable[str]] = None,
    exclude_from_redaction: Optional[Iterable[str]] = None,
) -> HeadersWithRedaction:
    """Build headers and the matching redaction descriptor.

    Authorization, Cookie and X-Api-Key are redacted by default.
    ``sensitive_headers`` adds names to that set; ``exclude_from_redaction``
    wins over both.

    Example:
        result = build_headers_with_redaction(
            auth_token=access_token,
            additional_headers={"X-Session": "s3cr3t"},
            sensitive_headers=["X-Session"],
        )
        # result.redaction == [{"request": {"headers": ["Authorization", "X-Session"]}}]
    """
    assembler = _HeaderAssembler(_sensitivity_check(sensitive_headers, exclude_from_redaction))
    assembler.run(accept, auth_token, cookies, additional_headers)

    redaction: List[Dict[str, Any]] = []
    if assembler.redact:
        redaction.append({"request": {"headers": assembler.redact}})

    return HeadersWithRedaction(
        headers=assembler.headers,
        redaction=redaction,
        dropped=assembler.dropped,
    )


def headers_object_to_array(
    headers: Mapping[str, str],
    *,
    skip_headers: Optional[Iterable[str]] = None,
) -> List[str]:
    """Convert a captured header mapping to the wire list.

    Connection-level headers (Host, Connection), Accept-Encoding and
    pseudo-headers are skipped along with any ``skip_headers``.
    """
    skip = set(CAPTURE_SKIP_HEADERS)
    skip.update(h.lower() for h in (skip_headers or []))

    result: List[str] = []
    for name, value in headers.items():
        if name.lower() in skip or name.startswith(":"):
            continue
        sanitized = sanitize_header(f"{name}: {value}")
        if sanitized:
            result.append(sanitized)
    return result


__all__ = [
    "DEFAULT_ACCEPT",
    "DEFAULT_SENSITIVE_HEADERS",
    "HeadersWithRedaction",
    "sanitize_header",
    "header_name",
    "build_headers",
    "build_headers_with_redaction",
    "headers_object_to_array",
]
