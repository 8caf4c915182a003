"""
Vouch: client for TLS-notarized web proofs.

- Build sanitized request headers with automatic redaction of credentials
- Generate proofs of HTTP exchanges via the remote prover
- Verify proofs and extract the authenticated response
- Persist proof artifacts to disk or emit them as JSON
"""

__version__ = "0.3.0"

from .artifacts import OutputMode, OutputOptions, output_proof_artifacts, persist_proof_artifacts
from .client import (
    ProofOutcome,
    ProofRound,
    VouchClient,
    create_vouch_client,
    generate_and_verify_proof,
    generate_many,
)
from .config import VouchConfig, VouchCredentials
from .errors import OutputConfigError, VouchAPIError, VouchConfigError, VouchError
from .headers import build_headers, build_headers_with_redaction, headers_object_to_array, sanitize_header
from .models import HeaderRedaction, VerificationResult, WebProof, WebProofRequest

__all__ = [
    "__version__",
    "VouchClient",
    "create_vouch_client",
    "generate_and_verify_proof",
    "generate_many",
    "ProofRound",
    "ProofOutcome",
    "VouchConfig",
    "VouchCredentials",
    "VouchError",
    "VouchConfigError",
    "VouchAPIError",
    "OutputConfigError",
    "sanitize_header",
    "build_headers",
    "build_headers_with_redaction",
    "headers_object_to_array",
    "HeaderRedaction",
    "WebProofRequest",
    "WebProof",
    "VerificationResult",
    "OutputMode",
    "OutputOptions",
    "output_proof_artifacts",
    "persist_proof_artifacts",
]
