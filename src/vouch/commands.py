"""
Vouch CLI commands: generate and verify web proofs.

Commands:
  vouch public   - Proof of a public API (no auth needed)
  vouch oauth    - Proof of an OAuth bearer-token API (GitHub user)
  vouch gmail    - Proof of a Gmail message
  vouch cookie   - Proof of a cookie-authenticated API
  vouch large    - Proof of a large response with a size cap
  vouch prove    - Proof of an arbitrary URL
  vouch verify   - Re-verify a saved proof file
  vouch batch    - Prove many requests concurrently from a JSON file
  vouch headers  - Preview sanitized headers and redaction (offline)
  vouch extract  - Pull a value out of a verified response (offline)
  vouch version  - Show version info

Output options (proof commands):
  --stdout, --json    Write proof JSON to stdout (no files created)
  --quiet, -q         Suppress progress messages
  --output-dir, -o    Directory for proof files (default: ./proofs)

Credentials come from VOUCH_CLIENT_ID and VOUCH_SECRET_TOKEN.
Exit codes: 0 success, 1 any failure.
"""
from __future__ import annotations

import asyncio
import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, NoReturn, Optional, Tuple

import httpx
import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from vouch.artifacts import (
    OutputMode,
    OutputOptions,
    load_proof_artifact,
    load_verification_artifact,
    output_proof_artifacts,
    persist_proof_artifacts,
)
from vouch.client import ProofRound, VouchClient, create_vouch_client, generate_and_verify_proof, generate_many
from vouch.errors import VouchAPIError, VouchError
from vouch.headers import build_headers, build_headers_with_redaction
from vouch.jsonpath import extract
from vouch.models import WebProofRequest
from vouch.report import print_verification_result

# Progress and reports go to stderr so --stdout output stays clean JSON.
console = Console(stderr=True)

DEFAULT_OUTPUT_DIR = "./proofs"

vouch_app = typer.Typer(
    name="vouch",
    help="Generate and verify TLS-notarized web proofs",
    no_args_is_help=True,
)


@vouch_app.callback()
def _main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging to stderr"),
):
    """Generate and verify TLS-notarized web proofs."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")


@dataclass(frozen=True)
class _CliOptions:
    output_mode: OutputMode
    output_dir: Path
    quiet: bool


def _options(stdout: bool, quiet: bool, output_dir: Path) -> _CliOptions:
    return _CliOptions(
        output_mode=OutputMode.STDOUT if stdout else OutputMode.FILE,
        output_dir=output_dir,
        quiet=quiet,
    )


def _log(opts: _CliOptions, message: str) -> None:
    if not opts.quiet:
        console.print(message)


def _output_json(data: Any, exit_code: int = 0) -> NoReturn:
    """Print structured JSON to stdout and exit."""
    print(json.dumps(data, indent=2, default=str))
    raise typer.Exit(exit_code)


def _fail(exc: BaseException) -> NoReturn:
    console.print(f"\n[red]Error:[/] {escape(str(exc))}")
    if isinstance(exc, VouchAPIError) and exc.is_auth_error:
        console.print("[dim]Check VOUCH_CLIENT_ID and VOUCH_SECRET_TOKEN.[/]")
    raise typer.Exit(1)


def _usage(message: str) -> NoReturn:
    console.print(f"[red]Usage:[/] {escape(message)}")
    raise typer.Exit(1)


def _make_client() -> VouchClient:
    """Client from the environment. Tests patch this."""
    return create_vouch_client()


async def _prove_and_verify(request: WebProofRequest) -> ProofRound:
    async with _make_client() as client:
        return await generate_and_verify_proof(client, request)


def _parse_header_args(raw: Optional[List[str]]) -> Tuple[Dict[str, str], List[str]]:
    """-H "Name: value" arguments to an ordered mapping.

    A repeated name (case-insensitive) keeps the last value; the earlier
    arguments are returned as overridden.
    """
    headers: Dict[str, str] = {}
    seen: Dict[str, str] = {}
    overridden: List[str] = []
    for item in raw or []:
        name, _, value = item.partition(":")
        name = name.strip()
        previous = seen.get(name.lower())
        if previous is not None:
            overridden.append(f"{previous}: {headers.pop(previous)}")
        seen[name.lower()] = name
        headers[name] = value.strip()
    return headers, overridden


def _run_round(
    opts: _CliOptions,
    request: WebProofRequest,
    prefix: str,
    describe: Optional[Callable[[ProofRound], None]] = None,
) -> ProofRound:
    """Generate and verify one round; emit artifacts before printing anything remote."""
    try:
        result = asyncio.run(_prove_and_verify(request))
    except (VouchError, httpx.HTTPError) as e:
        _fail(e)

    try:
        out = output_proof_artifacts(
            result.proof,
            result.verification,
            OutputOptions(mode=opts.output_mode, output_dir=opts.output_dir, prefix=prefix),
        )
    except (VouchError, OSError) as e:
        _fail(e)

    if not opts.quiet:
        print_verification_result(result.verification, console)
        if describe is not None:
            describe(result)

    if out.paths is not None:
        _log(opts, f"\nSaved: {escape(str(out.paths.proof_path))}")
    return result


# ---------------------------------------------------------------------------
# Example commands
# ---------------------------------------------------------------------------

@vouch_app.command("public")
def public_cmd(
    stdout: bool = typer.Option(False, "--stdout", "--json", help="Output proof JSON to stdout"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress progress messages"),
    output_dir: Path = typer.Option(Path(DEFAULT_OUTPUT_DIR), "--output-dir", "-o", help="Directory for proof files"),
):
    """Proof of a public API (GitHub Zen, no auth needed)."""
    opts = _options(stdout, quiet, output_dir)
    _log(opts, "\n[bold]=== Example: Public API ===[/]\n")
    _log(opts, "Generating proof for GitHub Zen API...")

    request = WebProofRequest(
        url="https://api.github.com/zen",
        method="GET",
        headers=build_headers(accept="text/plain"),
    )

    def describe(result: ProofRound) -> None:
        console.print(f"\nVerified response: {escape(repr(result.response_data))}")

    _run_round(opts, request, "public-api", describe)


@vouch_app.command("oauth")
def oauth_cmd(
    token: Optional[str] = typer.Argument(None, help="GitHub access token (or GITHUB_TOKEN)"),
    stdout: bool = typer.Option(False, "--stdout", "--json", help="Output proof JSON to stdout"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress progress messages"),
    output_dir: Path = typer.Option(Path(DEFAULT_OUTPUT_DIR), "--output-dir", "-o", help="Directory for proof files"),
):
    """Proof of an OAuth bearer-token API (GitHub user). Authorization is redacted."""
    token = token or os.environ.get("GITHUB_TOKEN")
    if not token:
        _usage("vouch oauth <github-token> [--stdout]  (or set GITHUB_TOKEN)")

    opts = _options(stdout, quiet, output_dir)
    _log(opts, "\n[bold]=== Example: OAuth API (GitHub User) ===[/]\n")
    _log(opts, "Generating proof for GitHub user endpoint...")

    headers, redaction = build_headers_with_redaction(auth_token=token)
    request = WebProofRequest(
        url="https://api.github.com/user",
        method="GET",
        headers=headers,
        redaction=redaction,
    )

    def describe(result: ProofRound) -> None:
        data = result.response_data
        if isinstance(data, dict):
            console.print(f"\nVerified user: {escape(str(extract(data, 'login')))}")
            console.print(f"Name: {escape(str(extract(data, 'name')))}")

    _run_round(opts, request, "github-user", describe)


@vouch_app.command("gmail")
def gmail_cmd(
    email_id: Optional[str] = typer.Argument(None, help="Gmail message ID"),
    token: Optional[str] = typer.Argument(None, help="Gmail access token (or GMAIL_ACCESS_TOKEN)"),
    stdout: bool = typer.Option(False, "--stdout", "--json", help="Output proof JSON to stdout"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress progress messages"),
    output_dir: Path = typer.Option(Path(DEFAULT_OUTPUT_DIR), "--output-dir", "-o", help="Directory for proof files"),
):
    """Proof of a Gmail message."""
    token = token or os.environ.get("GMAIL_ACCESS_TOKEN")
    if not email_id or not token:
        _usage("vouch gmail <email-id> <access-token> [--stdout]")

    opts = _options(stdout, quiet, output_dir)
    _log(opts, "\n[bold]=== Example: Gmail Email Proof ===[/]\n")
    _log(opts, f"Generating proof for email: {escape(email_id)}")

    headers, redaction = build_headers_with_redaction(auth_token=token)
    request = WebProofRequest(
        url=f"https://gmail.googleapis.com/gmail/v1/users/me/messages/{email_id}?format=full",
        method="GET",
        headers=headers,
        redaction=redaction,
    )

    def describe(result: ProofRound) -> None:
        data = result.response_data
        subject = extract(data, "payload.headers[name=Subject].value")
        sender = extract(data, "payload.headers[name=From].value")
        if subject is not None:
            console.print(f"\nVerified email subject: {escape(str(subject))}")
        if sender is not None:
            console.print(f"Verified from: {escape(str(sender))}")

    _run_round(opts, request, f"gmail-{email_id}", describe)


@vouch_app.command("cookie")
def cookie_cmd(
    auth: Optional[str] = typer.Argument(None, help="Authorization token"),
    cookies: Optional[str] = typer.Argument(None, help="Cookie header value"),
    stdout: bool = typer.Option(False, "--stdout", "--json", help="Output proof JSON to stdout"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress progress messages"),
    output_dir: Path = typer.Option(Path(DEFAULT_OUTPUT_DIR), "--output-dir", "-o", help="Directory for proof files"),
):
    """Proof of a cookie-authenticated API (portfolio balances)."""
    if not auth or not cookies:
        _usage("vouch cookie <auth-header> <cookies> [--stdout]")

    opts = _options(stdout, quiet, output_dir)
    _log(opts, "\n[bold]=== Example: Cookie Auth API ===[/]\n")
    _log(opts, "Generating proof for authenticated API...")

    headers, redaction = build_headers_with_redaction(auth_token=auth, cookies=cookies)
    request = WebProofRequest(
        url="https://id.securitize.io/gw/sid-gw/api/v1/portfolio/balances",
        method="GET",
        headers=headers,
        redaction=redaction,
    )

    def describe(result: ProofRound) -> None:
        usd_value = extract(result.response_data, "totalBalanceIn.data[0].total")
        if usd_value is not None:
            console.print(f"\nVerified portfolio value (USD): {escape(str(usd_value))}")

    _run_round(opts, request, "portfolio", describe)


@vouch_app.command("large")
def large_cmd(
    max_recv_data: int = typer.Option(92160, "--max-recv-data", help="Response size cap in bytes"),
    stdout: bool = typer.Option(False, "--stdout", "--json", help="Output proof JSON to stdout"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress progress messages"),
    output_dir: Path = typer.Option(Path(DEFAULT_OUTPUT_DIR), "--output-dir", "-o", help="Directory for proof files"),
):
    """Proof of a large response with a size cap."""
    opts = _options(stdout, quiet, output_dir)
    _log(opts, "\n[bold]=== Example: Large Response (with size limit) ===[/]\n")
    _log(opts, f"Generating proof with maxRecvData={max_recv_data}...")

    request = WebProofRequest(
        url="https://www.analizy.pl/api/quotation/fiz/PTN09",
        method="GET",
        headers=build_headers(),
        max_recv_data=max_recv_data,
    )

    def describe(result: ProofRound) -> None:
        if isinstance(result.response_data, dict):
            console.print(f"\nVerified data keys: {escape(str(list(result.response_data)))}")

    _run_round(opts, request, "large-response", describe)


# ---------------------------------------------------------------------------
# General-purpose commands
# ---------------------------------------------------------------------------

@vouch_app.command("prove")
def prove_cmd(
    url: Optional[str] = typer.Argument(None, help="URL to request"),
    method: str = typer.Option("GET", "--method", "-X", help="HTTP method"),
    header: Optional[List[str]] = typer.Option(None, "--header", "-H", help='Extra header "Name: value" (repeatable)'),
    accept: Optional[str] = typer.Option(None, "--accept", help="Accept header (default application/json)"),
    auth_token: Optional[str] = typer.Option(None, "--auth-token", help="Bearer token for Authorization"),
    cookie: Optional[str] = typer.Option(None, "--cookie", help="Cookie header value"),
    max_recv_data: Optional[int] = typer.Option(None, "--max-recv-data", help="Response size cap in bytes"),
    redact: Optional[List[str]] = typer.Option(None, "--redact", help="Extra header name to redact (repeatable)"),
    no_redact: Optional[List[str]] = typer.Option(None, "--no-redact", help="Header name to leave unredacted (repeatable)"),
    prefix: str = typer.Option("proof", "--prefix", help="Filename prefix"),
    stdout: bool = typer.Option(False, "--stdout", "--json", help="Output proof JSON to stdout"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress progress messages"),
    output_dir: Path = typer.Option(Path(DEFAULT_OUTPUT_DIR), "--output-dir", "-o", help="Directory for proof files"),
):
    """Proof of an arbitrary URL."""
    if not url:
        _usage("vouch prove <url> [-H 'Name: value' ...] [--stdout]")
    opts = _options(stdout, quiet, output_dir)

    additional, overridden = _parse_header_args(header)
    built = build_headers_with_redaction(
        accept=accept,
        auth_token=auth_token,
        cookies=cookie,
        additional_headers=additional,
        sensitive_headers=redact,
        exclude_from_redaction=no_redact,
    )
    for raw in overridden:
        _log(opts, f"[yellow]Warning: header {escape(repr(raw))} overridden by a later -H[/]")
    for dropped in built.dropped:
        _log(opts, f"[yellow]Warning: dropped header {escape(repr(dropped))}[/]")

    try:
        request = WebProofRequest(
            url=url,
            method=method,
            headers=built.headers,
            max_recv_data=max_recv_data,
            redaction=built.redaction,
        )
    except ValueError as e:
        _fail(e)

    _log(opts, f"Generating proof for {escape(request.method)} {escape(request.url)}...")
    if built.redacted_names:
        _log(opts, f"[dim]Redacting: {escape(', '.join(built.redacted_names))}[/]")
    _run_round(opts, request, prefix)


@vouch_app.command("verify")
def verify_cmd(
    proof_file: Optional[Path] = typer.Argument(None, help="Proof JSON file (file-mode proof or combined output)"),
    prefix: str = typer.Option("reverify", "--prefix", help="Filename prefix"),
    stdout: bool = typer.Option(False, "--stdout", "--json", help="Output proof JSON to stdout"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress progress messages"),
    output_dir: Path = typer.Option(Path(DEFAULT_OUTPUT_DIR), "--output-dir", "-o", help="Directory for proof files"),
):
    """Re-verify a saved proof."""
    if proof_file is None:
        _usage("vouch verify <proof-file> [--stdout]")
    opts = _options(stdout, quiet, output_dir)
    try:
        proof = load_proof_artifact(proof_file)
    except (OSError, ValueError) as e:
        _fail(e)

    async def _verify():
        async with _make_client() as client:
            return await client.verify_web_proof(proof)

    _log(opts, f"Verifying {escape(str(proof_file))}...")
    try:
        verification = asyncio.run(_verify())
    except (VouchError, httpx.HTTPError) as e:
        _fail(e)

    if not opts.quiet:
        print_verification_result(verification, console)

    try:
        out = output_proof_artifacts(
            proof,
            verification,
            OutputOptions(mode=opts.output_mode, output_dir=opts.output_dir, prefix=prefix),
        )
    except (VouchError, OSError) as e:
        _fail(e)
    if out.paths is not None:
        _log(opts, f"\nSaved: {escape(str(out.paths.verification_path))}")
    if not verification.success:
        raise typer.Exit(1)


@vouch_app.command("batch")
def batch_cmd(
    requests_file: Optional[Path] = typer.Argument(None, help="JSON array of request descriptors"),
    concurrency: Optional[int] = typer.Option(None, "--concurrency", "-c", min=1, help="Max rounds in flight"),
    no_verify: bool = typer.Option(False, "--no-verify", help="Generate proofs only"),
    prefix: str = typer.Option("batch", "--prefix", help="Filename prefix"),
    stdout: bool = typer.Option(False, "--stdout", "--json", help="Output results JSON to stdout"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress progress messages"),
    output_dir: Path = typer.Option(Path(DEFAULT_OUTPUT_DIR), "--output-dir", "-o", help="Directory for proof files"),
):
    """Prove many requests concurrently. Exits 1 if any round failed."""
    if requests_file is None:
        _usage("vouch batch <requests-file> [--concurrency N] [--stdout]")
    opts = _options(stdout, quiet, output_dir)
    try:
        raw = json.loads(requests_file.read_text(encoding="utf-8"))
        if not isinstance(raw, list):
            raise ValueError(f"{requests_file}: expected a JSON array")
        requests = [WebProofRequest.model_validate(item) for item in raw]
    except (OSError, ValueError) as e:
        _fail(e)

    async def _run():
        async with _make_client() as client:
            return await generate_many(client, requests, verify=not no_verify, concurrency=concurrency)

    _log(opts, f"Running {len(requests)} proof round(s)...")
    try:
        outcomes = asyncio.run(_run())
    except VouchError as e:
        _fail(e)

    if opts.output_mode is OutputMode.STDOUT:
        print(json.dumps([o.to_dict() for o in outcomes], indent=2))
    else:
        for o in outcomes:
            if o.proof is None:
                continue
            try:
                paths = persist_proof_artifacts(o.proof, o.verification, opts.output_dir, f"{prefix}-{o.index}")
            except (VouchError, OSError) as e:
                _fail(e)
            _log(opts, f"Saved: {escape(str(paths.proof_path))}")

    if not opts.quiet:
        table = Table(show_header=True, header_style="bold magenta")
        table.add_column("#", width=4)
        table.add_column("url", style="cyan")
        table.add_column("status")
        table.add_column("detail", style="dim")
        for o in outcomes:
            if o.ok:
                v = o.verification
                status = "[yellow]unverified[/]" if v is not None and not v.success else "[green]ok[/]"
                detail = escape(v.server_domain or "") if v is not None else ""
            else:
                status = "[red]error[/]"
                detail = escape(str(o.error))
            table.add_row(str(o.index), escape(o.request.url), status, detail)
        console.print(table)

    if any(not o.ok for o in outcomes):
        raise typer.Exit(1)


@vouch_app.command("headers")
def headers_cmd(
    header: Optional[List[str]] = typer.Option(None, "--header", "-H", help='Extra header "Name: value" (repeatable)'),
    accept: Optional[str] = typer.Option(None, "--accept", help="Accept header (default application/json)"),
    auth_token: Optional[str] = typer.Option(None, "--auth-token", help="Bearer token for Authorization"),
    cookie: Optional[str] = typer.Option(None, "--cookie", help="Cookie header value"),
    redact: Optional[List[str]] = typer.Option(None, "--redact", help="Extra header name to redact (repeatable)"),
    no_redact: Optional[List[str]] = typer.Option(None, "--no-redact", help="Header name to leave unredacted (repeatable)"),
):
    """Preview sanitized headers, redaction and dropped headers as JSON.

    ``overridden`` lists -H arguments replaced by a later one of the same name.
    """
    additional, overridden = _parse_header_args(header)
    built = build_headers_with_redaction(
        accept=accept,
        auth_token=auth_token,
        cookies=cookie,
        additional_headers=additional,
        sensitive_headers=redact,
        exclude_from_redaction=no_redact,
    )
    _output_json({"command": "headers", "status": "ok", **built.to_dict(), "overridden": overridden})


@vouch_app.command("extract")
def extract_cmd(
    artifact: Optional[Path] = typer.Argument(None, help="Verification JSON file (or combined output)"),
    path: Optional[str] = typer.Argument(None, help="Path expression, e.g. payload.headers[name=Subject].value"),
):
    """Pull a value out of a verified response body."""
    if artifact is None or not path:
        _usage("vouch extract <verification-file> <path>")
    try:
        verification = load_verification_artifact(artifact)
        value = extract(verification.response_data(), path)
    except (OSError, ValueError) as e:
        _fail(e)

    if value is None:
        console.print(f"[yellow]No value at path:[/] {escape(path)}")
        raise typer.Exit(1)
    print(json.dumps(value, indent=2) if isinstance(value, (dict, list)) else json.dumps(value))


@vouch_app.command("version")
def version_cmd():
    """Show version info."""
    from vouch import __version__

    print(f"vouch {__version__}")


def main():
    """Console-script entrypoint."""
    vouch_app()


if __name__ == "__main__":
    main()
