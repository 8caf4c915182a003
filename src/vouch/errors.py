"""
Error taxonomy for the vouch client.

All errors derive from VouchError so callers can catch the whole family.
Malformed headers are not errors: the header builders drop them and
report them back (see vouch.headers.HeadersWithRedaction.dropped).
"""
from __future__ import annotations

from typing import Optional


class VouchError(Exception):
    """Base class for every error raised by vouch."""


class VouchConfigError(VouchError, ValueError):
    """Missing or invalid configuration (credentials, endpoint URLs)."""


class OutputConfigError(VouchError, ValueError):
    """Artifact sink misconfigured, e.g. file mode without an output dir."""


class VouchAPIError(VouchError):
    """Non-success response from the remote prove/verify service.

    The service returns no structured error taxonomy, so the status code
    and raw body text are kept verbatim for the caller to inspect.
    """

    def __init__(self, status_code: int, body: str, *, label: str = "Vouch API error"):
        self.status_code = status_code
        self.body = body
        self.label = label
        super().__init__(f"{label} ({status_code}): {body}")

    @property
    def is_auth_error(self) -> bool:
        """True for 401/403 responses."""
        return self.status_code in (401, 403)

    def to_dict(self) -> dict:
        d = {"status_code": self.status_code, "error": str(self)}
        if self.is_auth_error:
            d["auth_error"] = True
        return d


def describe_error(exc: BaseException) -> str:
    """One-line description used by the CLI and batch summaries."""
    msg: Optional[str] = str(exc) or None
    return msg or type(exc).__name__


__all__ = [
    "VouchError",
    "VouchConfigError",
    "OutputConfigError",
    "VouchAPIError",
    "describe_error",
]
