"""
userproof CLI — key setup and independent verification of user exports.

Usage:
    python -m verifier_cli.cli keys ./data
    python -m verifier_cli.cli inspect users.bin
    python -m verifier_cli.cli verify users.bin --public-key keys/public.pem
"""

from __future__ import annotations

import sys
from pathlib import Path

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from userproof.codec import CollectionCodec
from userproof.config import configure_logging
from userproof.crypto import hash_email
from userproof.errors import InvalidInput, UserProofError
from userproof.keys import KeyManager
from userproof.registry import SchemaRegistry
from userproof.schema import UserCollection, UserRecord
from userproof.signing import SigningEngine


console = Console()


def _load_export(path: str, schema: str | None) -> UserCollection:
    """Decode a protobuf UserCollection file."""
    try:
        codec = CollectionCodec(SchemaRegistry.load(schema))
        return codec.decode(Path(path).read_bytes())
    except UserProofError as e:
        raise click.ClickException(f"{type(e).__name__}: {e}")


def _check_record(record: UserRecord, engine: SigningEngine, public_key: str) -> tuple[bool, bool]:
    """Return (hash_ok, signature_ok) for one exported user."""
    try:
        hash_ok = hash_email(record.email) == record.email_hash
    except InvalidInput:
        hash_ok = False
    sig_ok = engine.verify(record.email_hash, record.signature, public_key)
    return hash_ok, sig_ok


@click.group()
@click.option("--log-level", default="WARNING", help="Python logging level")
def main(log_level: str):
    """userproof — signed user records and protobuf exports."""
    configure_logging(log_level)


@main.command()
@click.argument("root_dir", type=click.Path(file_okay=False))
def keys(root_dir: str):
    """Load or generate the RSA key pair under ROOT_DIR/keys."""
    manager = KeyManager(root_dir)
    try:
        manager.initialize()
    except UserProofError as e:
        raise click.ClickException(f"{type(e).__name__}: {e}")

    console.print(Panel("userproof key pair", style="bold blue"))
    console.print(f"  Key ID:   {manager.key_id}")
    console.print(f"  Private:  {manager.private_key_path}")
    console.print(f"  Public:   {manager.public_key_path}\n")
    console.print(manager.public_key_pem(), highlight=False)


@main.command()
@click.argument("export_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--schema", type=click.Path(exists=True, dir_okay=False), default=None,
              help="Schema description (defaults to the packaged schema)")
def inspect(export_file: str, schema: str | None):
    """Inspect a user export without verification."""
    collection = _load_export(export_file, schema)
    meta = collection.metadata

    console.print(Panel("userproof Export Inspection", style="bold cyan"))
    console.print(f"  Exported:  {meta.exported_at or '?'}")
    console.print(f"  Users:     {meta.total_count}")
    console.print(f"  Signing:   {meta.sign_algorithm or '?'}")
    console.print(f"  Hashing:   {meta.hash_algorithm or '?'}")

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("ID")
    table.add_column("Email")
    table.add_column("Role")
    table.add_column("Status")
    table.add_column("Created")
    table.add_column("Hash", width=14)
    for r in collection.records:
        table.add_row(r.identifier, r.email, r.role, r.status, r.created_at, r.email_hash[:12])
    console.print(table)


@main.command()
@click.argument("export_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--public-key", "-k", "public_key_file", required=True,
              type=click.Path(exists=True, dir_okay=False), help="PEM public key")
@click.option("--schema", type=click.Path(exists=True, dir_okay=False), default=None,
              help="Schema description (defaults to the packaged schema)")
@click.option("--strict/--no-strict", default=True, help="Fail-closed mode (default: strict)")
def verify(export_file: str, public_key_file: str, schema: str | None, strict: bool):
    """Verify email hashes and signatures of every user in an export."""
    collection = _load_export(export_file, schema)
    public_key = Path(public_key_file).read_text()
    engine = SigningEngine()

    console.print(Panel("userproof Export Verification", style="bold blue"))

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("ID", width=14)
    table.add_column("Email")
    table.add_column("Hash", width=8)
    table.add_column("Signature", width=10)

    failed = 0
    for record in collection.records:
        hash_ok, sig_ok = _check_record(record, engine, public_key)
        if not (hash_ok and sig_ok):
            failed += 1
        table.add_row(
            record.identifier,
            record.email,
            "[green]OK[/green]" if hash_ok else "[red]BAD[/red]",
            "[green]VALID[/green]" if sig_ok else "[red]INVALID[/red]",
        )

    console.print(table)
    total = len(collection.records)
    console.print(f"\n  Verified: {total - failed}/{total}  |  Failed: {failed}/{total}")

    if failed == 0:
        console.print("\n[bold green]✓ EXPORT VERIFIED SUCCESSFULLY[/bold green]")
    else:
        console.print("\n[bold red]✗ EXPORT VERIFICATION FAILED[/bold red]")
        if strict:
            sys.exit(1)


if __name__ == "__main__":
    main()
