"""
Wire models for the prove and verify endpoints.

Field names are snake_case in Python and camelCase on the wire; both
spellings are accepted on input. Serialize with ``to_wire()`` (or
``model_dump(by_alias=True, exclude_none=True)``).

Proof data is opaque: the client never parses ``WebProof.data`` and
passes unknown fields straight back to the verify endpoint.
"""
from __future__ import annotations

import json
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from vouch.headers import header_name, sanitize_header


class _WireModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        protected_namespaces=(),
    )

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# ---------------------------------------------------------------------------
# Request side
# ---------------------------------------------------------------------------

class RequestRedaction(_WireModel):
    headers: List[str] = Field(
        default_factory=list,
        description="Request header names whose values are hidden in the proof",
    )


class HeaderRedaction(_WireModel):
    """Which parts of the transcript to hide while keeping the proof valid."""

    request: Optional[RequestRedaction] = None


class WebProofRequest(_WireModel):
    """Descriptor sent to the prove endpoint."""

    url: str = Field(..., min_length=1, description="Full URL to request")
    method: str = Field(default="GET", description="HTTP method")
    headers: List[str] = Field(default_factory=list, description='Headers in "Name: value" format')
    max_recv_data: Optional[int] = Field(
        default=None,
        gt=0,
        description="Cap on received bytes (useful for large responses)",
    )
    redaction: Optional[List[HeaderRedaction]] = None

    @field_validator("method")
    @classmethod
    def _upper_method(cls, v: str) -> str:
        v = v.strip().upper()
        if not v:
            raise ValueError("method must not be empty")
        return v

    @field_validator("headers")
    @classmethod
    def _well_formed_headers(cls, v: List[str]) -> List[str]:
        for h in v:
            if sanitize_header(h) is None:
                raise ValueError(f"invalid or disallowed header: {h!r}")
        return v

    @model_validator(mode="after")
    def _redaction_matches_headers(self) -> "WebProofRequest":
        present = {header_name(h).lower() for h in self.headers}
        for entry in self.redaction or []:
            if entry.request is None:
                continue
            for name in entry.request.headers:
                if name.lower() not in present:
                    raise ValueError(f"redacted header {name!r} is not present in the request")
        return self

    def to_payload(self) -> Dict[str, Any]:
        """JSON body for the prove endpoint."""
        payload: Dict[str, Any] = {
            "url": self.url,
            "method": self.method,
            "headers": list(self.headers),
        }
        if self.max_recv_data is not None:
            payload["maxRecvData"] = self.max_recv_data
        if self.redaction:
            payload["redaction"] = [r.to_wire() for r in self.redaction]
        return payload


# ---------------------------------------------------------------------------
# Proof
# ---------------------------------------------------------------------------

class ProofMeta(_WireModel):
    model_config = ConfigDict(extra="allow")

    notary_url: str


class WebProof(_WireModel):
    """Notarized transcript returned by the prove endpoint."""

    model_config = ConfigDict(extra="allow")

    data: str = Field(..., description="Hex-encoded proof data")
    version: str = Field(..., description="TLSN protocol version")
    meta: ProofMeta

    def to_wire(self) -> Dict[str, Any]:
        # Fields the service sent as null go back as null.
        return self.model_dump(mode="json", by_alias=True, exclude_unset=True)


# ---------------------------------------------------------------------------
# Verification
# ---------------------------------------------------------------------------

class ParsedRequest(_WireModel):
    model_config = ConfigDict(extra="allow")

    method: Optional[str] = None
    url: Optional[str] = None
    version: Optional[str] = None
    headers: Optional[List[Tuple[str, str]]] = None
    body: Optional[str] = None
    raw: Optional[str] = None
    parsing_success: Optional[bool] = None


class ParsedResponse(_WireModel):
    model_config = ConfigDict(extra="allow")

    status: Optional[int] = None
    version: Optional[str] = None
    headers: Optional[List[Tuple[str, str]]] = None
    body: Optional[str] = None
    raw: Optional[str] = None
    parsing_success: Optional[bool] = None


class VerificationResult(_WireModel):
    """Verdict returned by the verify endpoint."""

    model_config = ConfigDict(extra="allow")

    success: bool
    server_domain: Optional[str] = None
    notary_key_fingerprint: Optional[str] = None
    request: Optional[ParsedRequest] = None
    response: Optional[ParsedResponse] = None
    error: Optional[str] = None

    def response_data(self) -> Any:
        """Verified response body, JSON-decoded when possible."""
        if self.response is None or not self.response.body:
            return None
        try:
            return json.loads(self.response.body)
        except ValueError:
            return self.response.body


__all__ = [
    "RequestRedaction",
    "HeaderRedaction",
    "WebProofRequest",
    "ProofMeta",
    "WebProof",
    "ParsedRequest",
    "ParsedResponse",
    "VerificationResult",
]
