"""Shared fixtures: credentials and a stub prover behind httpx.MockTransport."""
from __future__ import annotations

import json
from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest

from vouch.client import VouchClient
from vouch.config import VouchCredentials

PROVE_URL = "https://prover.test/api/v1/prove"
VERIFY_URL = "https://prover.test/api/v1/verify"

PROOF = {"data": "01ab", "version": "0.1.0", "meta": {"notaryUrl": "https://notary.test"}}

VERIFICATION = {
    "success": True,
    "serverDomain": "api.example.com",
    "notaryKeyFingerprint": "ab:cd:ef",
    "request": {
        "method": "GET",
        "url": "/data",
        "version": "HTTP/1.1",
        "headers": [["Accept", "application/json"]],
        "parsingSuccess": True,
    },
    "response": {
        "status": 200,
        "version": "HTTP/1.1",
        "headers": [["Content-Type", "application/json"]],
        "body": '{"login": "octocat", "name": "The Octocat"}',
        "parsingSuccess": True,
    },
}


class StubProver:
    """Records requests and answers prove/verify like the remote service."""

    def __init__(
        self,
        prove: Optional[Callable[[httpx.Request], httpx.Response]] = None,
        verify: Optional[Callable[[httpx.Request], httpx.Response]] = None,
    ):
        self.requests: List[httpx.Request] = []
        self._prove = prove or (lambda req: httpx.Response(200, json=PROOF))
        self._verify = verify or (lambda req: httpx.Response(200, json=VERIFICATION))

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if str(request.url) == PROVE_URL:
            return self._prove(request)
        if str(request.url) == VERIFY_URL:
            return self._verify(request)
        return httpx.Response(404, text="not found")

    def bodies(self, url: str) -> List[Dict[str, Any]]:
        return [json.loads(r.content) for r in self.requests if str(r.url) == url]

    def client(self) -> VouchClient:
        return VouchClient(
            VouchCredentials(client_id="client-123", secret_token="s3cret"),
            prove_url=PROVE_URL,
            verify_url=VERIFY_URL,
            http_client=httpx.AsyncClient(transport=httpx.MockTransport(self)),
        )


@pytest.fixture
def stub() -> StubProver:
    return StubProver()


@pytest.fixture
def credentials() -> VouchCredentials:
    return VouchCredentials(client_id="client-123", secret_token="s3cret")


@pytest.fixture
def proof_data() -> Dict[str, Any]:
    return json.loads(json.dumps(PROOF))


@pytest.fixture
def verification_data() -> Dict[str, Any]:
    return json.loads(json.dumps(VERIFICATION))


@pytest.fixture
def make_stub():
    """Factory for StubProver with custom prove/verify handlers."""
    return StubProver
