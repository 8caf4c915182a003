"""Human-readable rendering of a VerificationResult."""
from __future__ import annotations

from typing import Optional

from rich.console import Console, Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from vouch.models import VerificationResult

BODY_PREVIEW_CHARS = 300


def body_preview(body: str, limit: int = BODY_PREVIEW_CHARS) -> str:
    if len(body) <= limit:
        return body
    return body[:limit] + "..."


def _ok(flag: Optional[bool]) -> str:
    return "[green]OK[/]" if flag else "[red]FAILED[/]"


def render_verification(verification: VerificationResult) -> Panel:
    table = Table(show_header=False, box=None, pad_edge=False)
    table.add_column("field", style="dim")
    table.add_column("value")

    status = "[bold green]VERIFIED[/]" if verification.success else "[bold red]FAILED[/]"
    table.add_row("Status", status)
    table.add_row("Server Domain", Text(verification.server_domain or "-"))
    table.add_row("Notary Key", Text(verification.notary_key_fingerprint or "-"))

    req = verification.request
    if req is not None:
        table.add_row("Request Method", Text(req.method or "-"))
        table.add_row("Request Parsing", _ok(req.parsing_success))
        if req.headers:
            table.add_row("Request Headers", str(len(req.headers)))

    resp = verification.response
    if resp is not None:
        table.add_row("Response Status", str(resp.status) if resp.status is not None else "-")
        table.add_row("Response Parsing", _ok(resp.parsing_success))

    if verification.error:
        table.add_row("Error", Text(verification.error, style="red"))

    parts = [table]
    if resp is not None and resp.body:
        parts.append(Text(""))
        parts.append(Text("Response Body Preview:", style="bold"))
        parts.append(Text(body_preview(resp.body)))

    return Panel(Group(*parts), title="Verification Results", expand=False)


def print_verification_result(
    verification: VerificationResult, console: Optional[Console] = None
) -> None:
    """Print the verification summary (to stderr by default)."""
    console = console or Console(stderr=True)
    console.print()
    console.print(render_verification(verification))


__all__ = ["body_preview", "render_verification", "print_verification_result"]
