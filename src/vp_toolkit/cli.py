"""
Command-line interface for vp-toolkit.

Usage:
    vp-toolkit verify presentation.json
    vp-toolkit verify https://example.com/presentations/123
    cat challenge.json | vp-toolkit verify -
    vp-toolkit generate credential params.json --account-id 0 --key-id 0
"""

from __future__ import annotations

import json
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import click
import httpx
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from vp_toolkit.challenge_request_signer import ChallengeRequestSigner
from vp_toolkit.credential_signer import VerifiableCredentialSigner
from vp_toolkit.crypt_util import CryptUtilError, LocalCryptUtil
from vp_toolkit.generators import (
    ChallengeRequestGenerator,
    VerifiableCredentialGenerator,
    VerifiablePresentationGenerator,
)
from vp_toolkit.models import (
    ChallengeRequest,
    KeyReference,
    ModelValidationError,
    Proof,
    VerifiableCredential,
    VerifiablePresentation,
)
from vp_toolkit.presentation_signer import VerifiablePresentationSigner


console = Console()
err_console = Console(stderr=True)

MASTER_KEY_ENVVAR = "VP_TOOLKIT_MASTER_KEY"


class DocumentLoadError(Exception):
    """Raised when a document cannot be read from its source."""


@dataclass
class VerificationReport:
    """Outcome of verifying one document."""

    kind: str
    valid: bool
    document_id: str | None
    proofs: list[Proof]


def detect_kind(data: dict[str, Any]) -> str:
    """Guess the document kind from its top-level fields."""
    if "verifiableCredential" in data:
        return "presentation"
    if any(key in data for key in ("toAttest", "toVerify", "correspondenceId")):
        return "challenge"
    return "credential"


def verify_document(
    data: dict[str, Any],
    verify_credentials: bool = False,
) -> VerificationReport:
    """Parse and verify a credential, presentation or challenge request."""
    # Verification needs no master key
    crypt_util = LocalCryptUtil()
    credential_signer = VerifiableCredentialSigner(crypt_util)
    kind = detect_kind(data)

    if kind == "presentation":
        presentation = VerifiablePresentation.from_dict(data)
        signer = VerifiablePresentationSigner(crypt_util, credential_signer)
        valid = signer.verify_verifiable_presentation(
            presentation, verify_credentials=verify_credentials
        )
        return VerificationReport(kind, valid, presentation.id, list(presentation.proof))

    if kind == "challenge":
        request = ChallengeRequest.from_dict(data)
        valid = ChallengeRequestSigner(crypt_util).verify_challenge_request(request)
        return VerificationReport(kind, valid, request.correspondence_id, [request.proof])

    credential = VerifiableCredential.from_dict(data)
    valid = credential_signer.verify_verifiable_credential(credential)
    return VerificationReport(kind, valid, credential.id, [credential.proof])


def format_report(report: VerificationReport) -> None:
    """Format and print a verification report."""
    if report.valid:
        status_icon = "[bold green]VALID[/]"
        panel_style = "green"
    else:
        status_icon = "[bold red]INVALID[/]"
        panel_style = "red"

    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column("Field", style="dim")
    table.add_column("Value")

    table.add_row("Status", status_icon)
    table.add_row("Document", report.kind)
    if report.document_id:
        table.add_row("ID", report.document_id)

    for index, proof in enumerate(report.proofs):
        table.add_row(f"Proof {index}", proof.type)
        table.add_row("Verification Method", proof.verification_method)
        if proof.nonce:
            table.add_row("Nonce", proof.nonce)

    console.print(Panel(table, title="Verification Result", border_style=panel_style))


def load_json(source: str, timeout: float = 30.0) -> dict[str, Any]:
    """Load a JSON document from a file, URL, or stdin.

    Args:
        source: File path, URL, or "-" for stdin.
        timeout: HTTP request timeout in seconds.

    Returns:
        Parsed JSON object.

    Raises:
        DocumentLoadError: If the file is missing or unreadable.
    """
    if source == "-":
        return json.loads(sys.stdin.read())

    if source.startswith("http://") or source.startswith("https://"):
        with httpx.Client(timeout=timeout) as client:
            response = client.get(
                source,
                headers={"Accept": "application/vp+ld+json, application/json"},
            )
            response.raise_for_status()
            return response.json()

    path = Path(source)
    if not path.exists():
        raise DocumentLoadError(f"File not found: {source}")

    try:
        with path.open(encoding="utf-8") as f:
            return json.load(f)
    except (OSError, UnicodeDecodeError) as e:
        raise DocumentLoadError(f"Cannot read {source}: {e}") from e


def load_crypt_util(master_key: str | None) -> LocalCryptUtil:
    if not master_key:
        raise click.UsageError(
            f"A master private key is required (--master-key or {MASTER_KEY_ENVVAR})"
        )
    try:
        return LocalCryptUtil(master_key)
    except CryptUtilError as e:
        raise click.UsageError(str(e)) from e


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Log signing and verification details")
@click.version_option(package_name="vp-toolkit")
def main(verbose: bool) -> None:
    """Issue and verify Verifiable Credentials and Presentations."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=err_console, show_path=False)],
        )


@main.command()
@click.argument("source", required=True)
@click.option(
    "--verify-credentials",
    is_flag=True,
    help="Also verify the proofs of credentials embedded in a presentation",
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
def verify(
    source: str,
    verify_credentials: bool,
    json_output: bool,
    timeout: float,
) -> None:
    """Verify a credential, presentation or challenge request.

    SOURCE can be:
    - A file path (e.g., presentation.json)
    - A URL (e.g., https://example.com/presentations/123)
    - "-" to read from stdin
    """
    try:
        data = load_json(source, timeout=timeout)
        if not isinstance(data, dict):
            raise ModelValidationError("Document must be a JSON object")
        report = verify_document(data, verify_credentials=verify_credentials)

        if json_output:
            console.print_json(
                data={
                    "kind": report.kind,
                    "valid": report.valid,
                    "id": report.document_id,
                    "proofs": [
                        {
                            "type": proof.type,
                            "verificationMethod": proof.verification_method,
                            "nonce": proof.nonce,
                        }
                        for proof in report.proofs
                    ],
                }
            )
        else:
            format_report(report)

        sys.exit(0 if report.valid else 1)

    except json.JSONDecodeError as e:
        _fail(json_output, f"Invalid JSON: {e}")

    except ModelValidationError as e:
        _fail(json_output, f"Invalid document: {e}")

    except httpx.HTTPError as e:
        _fail(json_output, f"HTTP error: {e}")

    except DocumentLoadError as e:
        _fail(json_output, str(e))


def _fail(json_output: bool, message: str) -> None:
    if json_output:
        console.print_json(data={"error": message})
    else:
        console.print(f"[red]Error:[/] {message}")
    sys.exit(2)


@main.command("new-key")
def new_key() -> None:
    """Print a new random master private key."""
    click.echo(LocalCryptUtil().create_master_private_key())


@main.command("public-key")
@click.option("--master-key", envvar=MASTER_KEY_ENVVAR, help="Hex master private key")
@click.option("--account-id", type=int, default=0, show_default=True)
@click.option("--key-id", type=int, default=0, show_default=True)
def public_key(master_key: str | None, account_id: int, key_id: int) -> None:
    """Print the public key derived for an account and key index."""
    crypt_util = load_crypt_util(master_key)
    try:
        click.echo(crypt_util.derive_public_key(account_id, key_id))
    except CryptUtilError as e:
        raise click.UsageError(str(e)) from e


@main.command()
@click.argument("kind", type=click.Choice(["credential", "presentation", "challenge"]))
@click.argument("params_source")
@click.option("--master-key", envvar=MASTER_KEY_ENVVAR, help="Hex master private key")
@click.option("--account-id", type=int, default=0, show_default=True)
@click.option("--key-id", type=int, default=0, show_default=True)
@click.option(
    "--key",
    "keys",
    multiple=True,
    help="ACCOUNT_ID:KEY_ID for a presentation proof; repeat for a proof set",
)
@click.option("--nonce", help="Nonce (credential) or correspondence id (presentation)")
def generate(
    kind: str,
    params_source: str,
    master_key: str | None,
    account_id: int,
    key_id: int,
    keys: tuple[str, ...],
    nonce: str | None,
) -> None:
    """Generate a signed document from a JSON params file.

    PARAMS_SOURCE is a file path or "-" for stdin. Any proof in it is replaced.
    """
    crypt_util = load_crypt_util(master_key)
    try:
        params = load_json(params_source)
    except json.JSONDecodeError as e:
        raise click.ClickException(f"Invalid JSON in params: {e}") from e
    except (DocumentLoadError, httpx.HTTPError) as e:
        raise click.ClickException(f"Cannot load params: {e}") from e
    if not isinstance(params, dict):
        raise click.ClickException("Params must be a JSON object")

    try:
        if kind == "credential":
            generator = VerifiableCredentialGenerator(VerifiableCredentialSigner(crypt_util))
            document = generator.generate_verifiable_credential(
                params, account_id, key_id, nonce=nonce
            )
        elif kind == "presentation":
            references = [KeyReference.parse(k) for k in keys] or [
                KeyReference(account_id, key_id)
            ]
            signer = VerifiablePresentationSigner(
                crypt_util, VerifiableCredentialSigner(crypt_util)
            )
            document = VerifiablePresentationGenerator(signer).generate_verifiable_presentation(
                params, references, correspondence_id=nonce
            )
        else:
            generator = ChallengeRequestGenerator(ChallengeRequestSigner(crypt_util))
            document = generator.generate_challenge_request(params, account_id, key_id)
    except (ModelValidationError, CryptUtilError) as e:
        raise click.ClickException(str(e)) from e

    click.echo(document.serialize())


if __name__ == "__main__":
    main()
