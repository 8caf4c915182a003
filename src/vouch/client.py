"""
Async client for the Vouch web prover.

Two calls, both JSON over POST with the client credentials attached:

    prove   WebProofRequest -> WebProof
    verify  WebProof        -> VerificationResult

Any non-2xx response raises VouchAPIError carrying the status code and
raw body. Nothing is retried and no timeout is imposed; both are the
caller's business.

Usage:
    from vouch import VouchClient, VouchCredentials, WebProofRequest, build_headers

    async with VouchClient(VouchCredentials(client_id, secret)) as client:
        proof = await client.generate_web_proof(
            WebProofRequest(url="https://api.github.com/zen", headers=build_headers())
        )
        verification = await client.verify_web_proof(proof)
"""
from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import httpx
from pydantic import ValidationError

from vouch.config import DEFAULT_PROVE_URL, DEFAULT_VERIFY_URL, VouchConfig, VouchCredentials
from vouch.errors import VouchAPIError, describe_error
from vouch.models import VerificationResult, WebProof, WebProofRequest

logger = logging.getLogger(__name__)


class VouchClient:
    """
    Client for the prove/verify endpoints.

    Owns the credential pair for its lifetime. Safe to share across
    concurrent tasks: every call carries its own payload.
    """

    def __init__(
        self,
        credentials: VouchCredentials,
        *,
        prove_url: str = DEFAULT_PROVE_URL,
        verify_url: str = DEFAULT_VERIFY_URL,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout_s: Optional[float] = None,
    ):
        self._credentials = credentials
        self.prove_url = prove_url
        self.verify_url = verify_url
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=timeout_s)

    @classmethod
    def from_config(
        cls, config: VouchConfig, *, http_client: Optional[httpx.AsyncClient] = None
    ) -> "VouchClient":
        return cls(
            config.credentials,
            prove_url=config.prove_url,
            verify_url=config.verify_url,
            http_client=http_client,
            timeout_s=config.timeout_s,
        )

    @property
    def client_id(self) -> str:
        return self._credentials.client_id

    async def __aenter__(self) -> "VouchClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._owns_client:
            await self._client.aclose()

    async def _post(self, url: str, payload: Dict[str, Any], label: str) -> Tuple[int, Dict[str, Any]]:
        logger.debug("POST %s (client_id=%s)", url, self._credentials.client_id)
        response = await self._client.post(
            url,
            headers=self._credentials.auth_headers(),
            content=json.dumps(payload),
        )
        logger.debug("POST %s -> %d", url, response.status_code)

        if not response.is_success:
            logger.warning("%s (%d) from %s", label, response.status_code, url)
            raise VouchAPIError(response.status_code, response.text, label=label)

        try:
            body = response.json()
        except ValueError:
            raise VouchAPIError(response.status_code, response.text, label=f"{label}: invalid JSON")
        if not isinstance(body, dict):
            raise VouchAPIError(response.status_code, response.text, label=f"{label}: expected object")
        return response.status_code, body

    async def generate_web_proof(self, request: WebProofRequest) -> WebProof:
        """Generate a proof for an HTTP request."""
        status, body = await self._post(self.prove_url, request.to_payload(), "Vouch API error")
        try:
            return WebProof.model_validate(body)
        except ValidationError as e:
            raise VouchAPIError(status, json.dumps(body), label=f"Vouch API error: malformed proof ({e.error_count()} errors)")

    async def verify_web_proof(self, proof: WebProof) -> VerificationResult:
        """Verify a proof and return the authenticated request/response."""
        status, body = await self._post(self.verify_url, proof.to_wire(), "Verification API error")
        try:
            return VerificationResult.model_validate(body)
        except ValidationError as e:
            raise VouchAPIError(
                status, json.dumps(body), label=f"Verification API error: malformed result ({e.error_count()} errors)"
            )


def create_vouch_client(config: Optional[VouchConfig] = None, **kwargs: Any) -> VouchClient:
    """Build a client from ``config`` or, failing that, the environment."""
    if config is None:
        config = VouchConfig.from_env()
    return VouchClient.from_config(config, **kwargs)


# ---------------------------------------------------------------------------
# Composite operations
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ProofRound:
    """Proof plus its verification and the decoded verified body."""

    proof: WebProof
    verification: VerificationResult
    response_data: Any = None


async def generate_and_verify_proof(client: VouchClient, request: WebProofRequest) -> ProofRound:
    """Generate a proof, then verify it. Verify is never issued if generate fails."""
    proof = await client.generate_web_proof(request)
    verification = await client.verify_web_proof(proof)
    return ProofRound(proof=proof, verification=verification, response_data=verification.response_data())


@dataclass(frozen=True)
class ProofOutcome:
    """Settled result for one input of generate_many.

    ``proof`` survives a failed verify; ``error`` is set on any failure.
    """

    index: int
    request: WebProofRequest
    proof: Optional[WebProof] = None
    verification: Optional[VerificationResult] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "index": self.index,
            "url": self.request.url,
            "status": "ok" if self.ok else "error",
        }
        if self.proof is not None:
            d["proof"] = self.proof.to_wire()
        if self.verification is not None:
            d["verification"] = self.verification.to_wire()
        if self.error is not None:
            d["error"] = describe_error(self.error)
            if isinstance(self.error, VouchAPIError):
                d["status_code"] = self.error.status_code
        return d


async def _settle_one(
    client: VouchClient, index: int, request: WebProofRequest, verify: bool
) -> ProofOutcome:
    try:
        proof = await client.generate_web_proof(request)
    except (VouchAPIError, httpx.HTTPError) as e:
        return ProofOutcome(index=index, request=request, error=e)
    if not verify:
        return ProofOutcome(index=index, request=request, proof=proof)
    try:
        verification = await client.verify_web_proof(proof)
    except (VouchAPIError, httpx.HTTPError) as e:
        return ProofOutcome(index=index, request=request, proof=proof, error=e)
    return ProofOutcome(index=index, request=request, proof=proof, verification=verification)


async def generate_many(
    client: VouchClient,
    requests: Sequence[WebProofRequest],
    *,
    verify: bool = True,
    concurrency: Optional[int] = None,
) -> List[ProofOutcome]:
    """Run many proof rounds concurrently.

    Returns one ProofOutcome per input, in input order. Individual
    failures are captured in the outcome instead of raised.
    """
    semaphore = asyncio.Semaphore(concurrency) if concurrency else None

    async def run(index: int, request: WebProofRequest) -> ProofOutcome:
        if semaphore is None:
            return await _settle_one(client, index, request, verify)
        async with semaphore:
            return await _settle_one(client, index, request, verify)

    settled: List[Union[ProofOutcome, BaseException]] = await asyncio.gather(
        *(run(i, r) for i, r in enumerate(requests)),
        return_exceptions=True,
    )

    outcomes: List[ProofOutcome] = []
    for i, item in enumerate(settled):
        if isinstance(item, asyncio.CancelledError):
            raise item
        if isinstance(item, BaseException):
            outcomes.append(ProofOutcome(index=i, request=requests[i], error=item))
        else:
            outcomes.append(item)

    failed = sum(1 for o in outcomes if not o.ok)
    if failed:
        logger.warning("%d of %d proof rounds failed", failed, len(outcomes))
    return outcomes


__all__ = [
    "VouchClient",
    "create_vouch_client",
    "ProofRound",
    "ProofOutcome",
    "generate_and_verify_proof",
    "generate_many",
]
