"""
Command-line interface for vc-graph.

Usage:
    vc-graph credential.json
    vc-graph https://example.com/credentials/123
    vc-graph --presentation presentation.json
    cat credential.json | vc-graph -
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from vc_graph.config import set_max_json_size
from vc_graph.contexts import ContextCache
from vc_graph.exceptions import VCGraphError
from vc_graph.fetch import fetch_json_ld
from vc_graph.inspector import CredentialInspector, InspectionResult, InspectionStatus
from vc_graph.parser import load_json

console = Console()


def format_result(result: InspectionResult) -> None:
    """Format and print an inspection result."""
    if result.status == InspectionStatus.VALID and result.is_valid:
        status_icon = "[bold green]VALID[/]"
        panel_style = "green"
    elif result.status == InspectionStatus.INVALID:
        status_icon = "[bold red]INVALID[/]"
        panel_style = "red"
    else:
        status_icon = "[bold yellow]ERROR[/]"
        panel_style = "yellow"

    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column("Field", style="dim")
    table.add_column("Value")

    table.add_row("Status", status_icon)
    table.add_row("Kind", result.kind.capitalize())

    if result.credential_id:
        table.add_row("ID", result.credential_id)

    if result.issuer:
        table.add_row("Holder" if result.kind == "presentation" else "Issuer", result.issuer)

    if result.statements:
        table.add_row("Statements", str(result.statements))

    if result.kind == "presentation" and result.status == InspectionStatus.VALID:
        table.add_row("Credentials", str(result.credential_count))

    document = result.document or {}
    if result.kind == "credential" and document:
        table.add_row("Issued", document.get("issuanceDate", ""))
        if "expirationDate" in document:
            table.add_row("Expires", document["expirationDate"])
        proof = document.get("proof", {})
        table.add_row("Proof Type", proof.get("type", ""))
        table.add_row("Verification Method", proof.get("verificationMethod", ""))

    title = "Presentation" if result.kind == "presentation" else "Credential"
    console.print(Panel(table, title=f"{title} Inspection", border_style=panel_style))

    if result.kind == "credential" and document.get("credentialSubject"):
        console.print("\n[bold]Credential Subject:[/]")
        console.print_json(data=document["credentialSubject"])

    if result.errors:
        console.print("\n[bold red]Errors:[/]")
        for error in result.errors:
            console.print(f"  [red]x[/] {error}")

    if result.warnings:
        console.print("\n[bold yellow]Warnings:[/]")
        for warning in result.warnings:
            console.print(f"  [yellow]![/] {warning}")


def load_source(source: str, timeout: float, verify_ssl: bool) -> Any:
    """Load a JSON-LD document from a file, URL, or stdin.

    Args:
        source: File path, URL, or "-" for stdin.
        timeout: HTTP request timeout in seconds.
        verify_ssl: Whether to verify SSL certificates.

    Returns:
        Parsed JSON document.
    """
    if source == "-":
        return load_json(sys.stdin.buffer.read())

    if source.startswith("http://") or source.startswith("https://"):
        return fetch_json_ld(source, timeout=timeout, verify_ssl=verify_ssl)

    path = Path(source)
    if not path.exists():
        raise click.ClickException(f"File not found: {source}")

    try:
        payload = path.read_bytes()
    except OSError as e:
        raise click.ClickException(f"Could not read {source}: {e.strerror or e}") from e
    return load_json(payload)


def parse_max_json_size(value: str) -> int | None:
    """Parse the --max-json-size option ("unlimited" disables the limit)."""
    if value.lower() == "unlimited":
        return None
    try:
        return int(value)
    except ValueError:
        raise click.BadParameter(
            f"{value!r} is not a number of bytes or 'unlimited'",
            param_hint="--max-json-size",
        ) from None


@click.command()
@click.argument("source", required=True)
@click.option(
    "--presentation",
    is_flag=True,
    help="Treat SOURCE as a Verifiable Presentation",
)
@click.option(
    "--allow-remote-contexts",
    is_flag=True,
    help="Fetch JSON-LD contexts that are not bundled",
)
@click.option(
    "--max-json-size",
    default=None,
    help="Largest JSON payload to parse, in bytes, or 'unlimited'",
)
@click.option(
    "--no-ssl-verify",
    is_flag=True,
    help="Disable SSL certificate verification",
)
@click.option(
    "--json-output",
    is_flag=True,
    help="Output result as JSON",
)
@click.option(
    "--timeout",
    type=float,
    default=30.0,
    help="HTTP request timeout in seconds",
)
@click.version_option(package_name="vc-graph")
def main(
    source: str,
    presentation: bool,
    allow_remote_contexts: bool,
    max_json_size: str | None,
    no_ssl_verify: bool,
    json_output: bool,
    timeout: float,
) -> None:
    """Parse and validate a W3C Verifiable Credential or Presentation.

    SOURCE can be:
    - A file path (e.g., credential.json)
    - A URL (e.g., https://example.com/credentials/123)
    - "-" to read from stdin

    Examples:

        vc-graph credential.json

        vc-graph --presentation presentation.json

        curl -s https://api.example.com/vc/123 | vc-graph -
    """
    if max_json_size is not None:
        try:
            set_max_json_size(parse_max_json_size(max_json_size))
        except VCGraphError as e:
            raise click.BadParameter(str(e), param_hint="--max-json-size") from e

    try:
        data = load_source(source, timeout=timeout, verify_ssl=not no_ssl_verify)

        cache = ContextCache(
            allow_remote_fetch=allow_remote_contexts,
            timeout=timeout,
            verify_ssl=not no_ssl_verify,
        )
        inspector = CredentialInspector(cache=cache, allow_remote_contexts=allow_remote_contexts)

        if presentation:
            result = inspector.inspect_presentation(data)
        else:
            result = inspector.inspect_credential(data)

    except VCGraphError as e:
        if json_output:
            console.print_json(data={"error": str(e)})
        else:
            console.print(f"[red]Error:[/] {e}")
        sys.exit(2)

    if json_output:
        console.print_json(data=result.to_dict())
    else:
        format_result(result)

    if result.status == InspectionStatus.ERROR:
        sys.exit(2)
    sys.exit(0 if result.is_valid else 1)


if __name__ == "__main__":
    main()
