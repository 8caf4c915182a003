"""
Client configuration.

Credentials are an explicit value passed to VouchClient. Environment
lookup happens only through the from_env() constructors, which the CLI
calls at its boundary.

Environment:
    VOUCH_CLIENT_ID     client identifier (required by from_env)
    VOUCH_SECRET_TOKEN  secret bearer token (required by from_env)
    VOUCH_PROVE_URL     override the proof-generation endpoint
    VOUCH_VERIFY_URL    override the proof-verification endpoint
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Mapping, Optional

from vouch.errors import VouchConfigError

DEFAULT_PROVE_URL = "https://web-prover.vlayer.xyz/api/v1/prove"
DEFAULT_VERIFY_URL = "https://web-prover.vlayer.xyz/api/v1/verify"

ENV_CLIENT_ID = "VOUCH_CLIENT_ID"
ENV_SECRET_TOKEN = "VOUCH_SECRET_TOKEN"
ENV_PROVE_URL = "VOUCH_PROVE_URL"
ENV_VERIFY_URL = "VOUCH_VERIFY_URL"


@dataclass(frozen=True)
class VouchCredentials:
    """Client identifier and secret token. Immutable after construction."""

    client_id: str
    secret_token: str = field(repr=False)

    def __post_init__(self) -> None:
        missing = [
            name
            for name, value in (("client_id", self.client_id), ("secret_token", self.secret_token))
            if not value
        ]
        if missing:
            raise VouchConfigError(f"Missing Vouch credentials: {', '.join(missing)}")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "VouchCredentials":
        env = os.environ if environ is None else environ
        client_id = env.get(ENV_CLIENT_ID, "")
        secret_token = env.get(ENV_SECRET_TOKEN, "")
        if not client_id or not secret_token:
            raise VouchConfigError(
                f"Missing {ENV_CLIENT_ID} or {ENV_SECRET_TOKEN} environment variables"
            )
        return cls(client_id=client_id, secret_token=secret_token)

    def auth_headers(self) -> dict[str, str]:
        """Headers attached to every prove/verify call."""
        return {
            "Content-Type": "application/json",
            "x-client-id": self.client_id,
            "Authorization": f"Bearer {self.secret_token}",
        }


@dataclass(frozen=True)
class VouchConfig:
    """
    Endpoint and credential configuration for VouchClient.

    timeout_s=None means the client imposes no timeout; cancellation is
    left to the caller.
    """

    credentials: VouchCredentials
    prove_url: str = field(default_factory=lambda: os.environ.get(ENV_PROVE_URL, DEFAULT_PROVE_URL))
    verify_url: str = field(default_factory=lambda: os.environ.get(ENV_VERIFY_URL, DEFAULT_VERIFY_URL))
    timeout_s: Optional[float] = None

    def __post_init__(self) -> None:
        for name in ("prove_url", "verify_url"):
            value = getattr(self, name)
            if not value.startswith(("http://", "https://")):
                raise VouchConfigError(f"{name} must be an http(s) URL, got {value!r}")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "VouchConfig":
        env = os.environ if environ is None else environ
        return cls(
            credentials=VouchCredentials.from_env(env),
            prove_url=env.get(ENV_PROVE_URL, DEFAULT_PROVE_URL),
            verify_url=env.get(ENV_VERIFY_URL, DEFAULT_VERIFY_URL),
        )


__all__ = [
    "DEFAULT_PROVE_URL",
    "DEFAULT_VERIFY_URL",
    "VouchCredentials",
    "VouchConfig",
]
