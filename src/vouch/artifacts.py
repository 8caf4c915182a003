"""
Proof artifact sink: write to disk, print to stdout, or hand back as text.

File layout per proof round (timestamp is ISO-8601 UTC with ':' and '.'
replaced by '-'):

    <output_dir>/<prefix>-<timestamp>.json
    <output_dir>/<prefix>-verification-<timestamp>.json
"""
from __future__ import annotations

import json
import logging
import sys
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, TextIO, Union

from vouch.errors import OutputConfigError
from vouch.models import VerificationResult, WebProof

logger = logging.getLogger(__name__)

DEFAULT_PREFIX = "proof"


class OutputMode(str, Enum):
    FILE = "file"
    STDOUT = "stdout"
    RETURN = "return"


@dataclass(frozen=True)
class OutputOptions:
    """How to emit a proof round.

    ``output_dir`` is required for file mode.
    """

    mode: OutputMode = OutputMode.FILE
    output_dir: Optional[Union[str, Path]] = None
    prefix: str = DEFAULT_PREFIX
    include_verification: bool = True
    pretty: bool = True


@dataclass(frozen=True)
class ProofArtifactPaths:
    proof_path: Path
    verification_path: Path


@dataclass(frozen=True)
class ProofArtifactOutput:
    mode: OutputMode
    paths: Optional[ProofArtifactPaths] = None
    json: Optional[str] = None


def artifact_timestamp(now: Optional[datetime] = None) -> str:
    """Filesystem-safe ISO-8601 timestamp, e.g. 2026-10-18T05-02-11-123Z."""
    now = now or datetime.now(timezone.utc)
    iso = now.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
    return iso.replace(":", "-").replace(".", "-")


def _dumps(data: Dict[str, Any], pretty: bool) -> str:
    if pretty:
        return json.dumps(data, indent=2)
    return json.dumps(data, separators=(",", ":"))


def combined_json(
    proof: WebProof,
    verification: Optional[VerificationResult],
    *,
    include_verification: bool = True,
    pretty: bool = True,
) -> str:
    """JSON text of ``{proof, verification?}`` shared by stdout and return modes."""
    data: Dict[str, Any] = {"proof": proof.to_wire()}
    if include_verification:
        data["verification"] = verification.to_wire() if verification is not None else None
    return _dumps(data, pretty)


def output_proof_artifacts(
    proof: WebProof,
    verification: Optional[VerificationResult],
    output: OutputOptions,
    *,
    stream: Optional[TextIO] = None,
) -> ProofArtifactOutput:
    """Emit a proof round according to ``output.mode``."""
    mode = OutputMode(output.mode)

    if mode is OutputMode.STDOUT:
        text = combined_json(
            proof, verification, include_verification=output.include_verification, pretty=output.pretty
        )
        out = stream if stream is not None else sys.stdout
        out.write(text + "\n")
        out.flush()
        return ProofArtifactOutput(mode=mode)

    if mode is OutputMode.RETURN:
        text = combined_json(
            proof, verification, include_verification=output.include_verification, pretty=output.pretty
        )
        return ProofArtifactOutput(mode=mode, json=text)

    if not output.output_dir:
        raise OutputConfigError("output_dir is required for file output mode")

    paths = _write_files(
        proof,
        verification if output.include_verification else None,
        Path(output.output_dir),
        output.prefix,
        output.pretty,
    )
    return ProofArtifactOutput(mode=mode, paths=paths)


def _write_files(
    proof: WebProof,
    verification: Optional[VerificationResult],
    out_dir: Path,
    prefix: str,
    pretty: bool = True,
) -> ProofArtifactPaths:
    out_dir.mkdir(parents=True, exist_ok=True)

    ts = artifact_timestamp()
    proof_path = out_dir / f"{prefix}-{ts}.json"
    verification_path = out_dir / f"{prefix}-verification-{ts}.json"

    proof_path.write_text(_dumps(proof.to_wire(), pretty), encoding="utf-8")
    if verification is not None:
        verification_path.write_text(_dumps(verification.to_wire(), pretty), encoding="utf-8")

    logger.debug("Wrote proof artifacts to %s", out_dir)
    return ProofArtifactPaths(proof_path=proof_path, verification_path=verification_path)


def persist_proof_artifacts(
    proof: WebProof,
    verification: Optional[VerificationResult],
    output_dir: Union[str, Path],
    prefix: str = DEFAULT_PREFIX,
) -> ProofArtifactPaths:
    """Write a proof round to ``output_dir`` and return the file paths."""
    if not output_dir:
        raise OutputConfigError("output_dir is required for file output mode")
    return _write_files(proof, verification, Path(output_dir), prefix)


def output_to_stdout(
    proof: WebProof,
    verification: Optional[VerificationResult],
    *,
    include_verification: bool = True,
    pretty: bool = True,
) -> None:
    output_proof_artifacts(
        proof,
        verification,
        OutputOptions(mode=OutputMode.STDOUT, include_verification=include_verification, pretty=pretty),
    )


def _load_json(path: Union[str, Path]) -> Dict[str, Any]:
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a JSON object")
    return data


def load_proof_artifact(path: Union[str, Path]) -> WebProof:
    """Read a proof written in file mode, or the ``proof`` of a combined document."""
    data = _load_json(path)
    if "proof" in data and isinstance(data["proof"], dict):
        data = data["proof"]
    return WebProof.model_validate(data)


def load_verification_artifact(path: Union[str, Path]) -> VerificationResult:
    """Read a verification written in file mode, or from a combined document."""
    data = _load_json(path)
    if "verification" in data and isinstance(data["verification"], dict):
        data = data["verification"]
    return VerificationResult.model_validate(data)


__all__ = [
    "OutputMode",
    "OutputOptions",
    "ProofArtifactPaths",
    "ProofArtifactOutput",
    "artifact_timestamp",
    "combined_json",
    "output_proof_artifacts",
    "persist_proof_artifacts",
    "output_to_stdout",
    "load_proof_artifact",
    "load_verification_artifact",
]
