"""CLI entry point for aumai-docattest."""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import NoReturn

import click

from aumai_docattest.canonical import (
    attach_signature,
    dump_record,
    load_record,
    to_canonical_dict,
)
from aumai_docattest.config import AttestationSettings
from aumai_docattest.core import AttestationSigner, AttestationVerifier, describe_provider
from aumai_docattest.errors import AttestationError
from aumai_docattest.keystore import JsonKeyRepository, KeyManager
from aumai_docattest.models import AttestationPackage

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _settings(ctx: click.Context) -> AttestationSettings:
    return ctx.obj["settings"]


def _open_store(ctx: click.Context, store: str | None) -> JsonKeyRepository:
    path = store or _settings(ctx).require_key_store()
    return JsonKeyRepository(path)


def _fail(message: str) -> NoReturn:
    click.echo(f"Error: {message}", err=True)
    sys.exit(1)


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

_store_option = click.option(
    "--store",
    default=None,
    metavar="PATH",
    help="JSON key store (default: $DOCATTEST_KEY_STORE).",
)


@click.group()
@click.version_option()
@click.option("--verbose", "-v", is_flag=True, help="Log to stderr.")
@click.pass_context
def main(ctx: click.Context, verbose: bool) -> None:
    """AumAI DocAttest — signed, verifiable document attestations."""
    if verbose:
        logging.basicConfig(
            level=logging.INFO,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
    try:
        settings = AttestationSettings.from_env()
    except AttestationError as exc:
        _fail(str(exc))
    ctx.obj = {"settings": settings}


@main.command("keygen")
@_store_option
@click.option("--key-id", default=None, help="Key id (default: key-<epoch ms>).")
@click.option("--purpose", default=None, help="Key purpose (default: configured).")
@click.option(
    "--expires-in-days",
    type=click.IntRange(min=1),
    default=None,
    help="Validity window length; omit for no expiry.",
)
@click.option(
    "--activate/--inactive",
    default=True,
    show_default=True,
    help="Make this the active key for its purpose (retiring the current one).",
)
@click.pass_context
def keygen_command(
    ctx: click.Context,
    store: str | None,
    key_id: str | None,
    purpose: str | None,
    expires_in_days: int | None,
    activate: bool,
) -> None:
    """Generate an Ed25519 signing key and add it to the key store."""
    try:
        repository = _open_store(ctx, store)
        if key_id and repository.find_key_by_id(key_id) is not None:
            _fail(f"Key '{key_id}' already exists in {repository.path}")
        now = datetime.now(tz=UTC)
        key = KeyManager().generate_signing_key(
            key_id=key_id,
            purpose=purpose or _settings(ctx).key_purpose,
            created_at=now,
            expires_at=now + timedelta(days=expires_in_days) if expires_in_days else None,
            is_active=False,
        )
        repository.add_key(key)
        if activate:
            key = repository.activate_key(key.id)
    except AttestationError as exc:
        _fail(str(exc))

    click.echo(f"Key '{key.id}' ({key.algorithm.value}) added to '{repository.path}'")
    click.echo(f"  Purpose: {key.key_purpose}")
    click.echo(f"  Active : {'yes' if key.is_active else 'no'}")
    click.echo(f"  Expires: {key.expires_at.isoformat() if key.expires_at else 'never'}")
    click.echo(key.public_key.rstrip())


@main.command("list-keys")
@_store_option
@click.pass_context
def list_keys_command(ctx: click.Context, store: str | None) -> None:
    """List the keys in the key store (public metadata only)."""
    try:
        repository = _open_store(ctx, store)
    except AttestationError as exc:
        _fail(str(exc))

    keys = sorted(repository.list_keys(), key=lambda k: k.created_at)
    if not keys:
        click.echo("No keys.")
        return
    for key in keys:
        status = "active" if key.is_active else "inactive"
        expires = key.expires_at.isoformat() if key.expires_at else "never"
        click.echo(
            f"{key.id}  [{status}]  purpose={key.key_purpose}  "
            f"created={key.created_at.isoformat()}  expires={expires}"
        )


@main.command("sign")
@_store_option
@click.option(
    "--package",
    "package_path",
    required=True,
    metavar="PATH",
    help="Attestation package JSON.",
)
@click.option(
    "--output",
    default=None,
    metavar="PATH",
    help="Output path for the signed record (default: <package>.signed.json).",
)
@click.pass_context
def sign_command(
    ctx: click.Context, store: str | None, package_path: str, output: str | None
) -> None:
    """Sign an attestation package and write the compact signed record."""
    settings = _settings(ctx)
    try:
        package = AttestationPackage.model_validate_json(
            Path(package_path).read_text(encoding="utf-8")
        )
        signer = AttestationSigner(_open_store(ctx, store), settings)
        response = signer.sign(package)
        record = attach_signature(package, response, settings.service_name)
    except Exception as exc:
        _fail(str(exc))

    out_path = (
        Path(output) if output else Path(package_path).with_suffix(".signed.json")
    )
    out_path.write_text(dump_record(record), encoding="utf-8")

    click.echo(f"Signed record written to: {out_path}")
    click.echo(f"  Key      : {response.public_key_id}")
    click.echo(f"  Timestamp: {response.timestamp}")
    click.echo(f"  Provider : {package.identity.provider}")


@main.command("verify")
@_store_option
@click.option(
    "--record",
    "record_path",
    required=True,
    metavar="PATH",
    help="Signed record JSON.",
)
@click.option("--json-output", is_flag=True, help="Emit the raw result JSON.")
@click.pass_context
def verify_command(
    ctx: click.Context, store: str | None, record_path: str, json_output: bool
) -> None:
    """Verify a signed attestation record against the key store."""
    try:
        record = load_record(Path(record_path).read_text(encoding="utf-8"))
        verifier = AttestationVerifier(_open_store(ctx, store), _settings(ctx))
        result = verifier.verify(record)
    except Exception as exc:
        _fail(str(exc))

    if json_output:
        click.echo(json.dumps(result.to_wire(), indent=2))
    elif result.is_valid:
        click.echo("Attestation: VALID")
        click.echo(f"  Key      : {result.public_key_id}")
        click.echo(f"  Signed at: {result.timestamp}")
        click.echo(
            f"  Identity : {result.identity.identifier} "
            f"({describe_provider(result.identity.provider)})"
        )
    else:
        click.echo(f"Attestation: INVALID — {result.error or 'signature mismatch'}")
        if result.details is not None:
            d = result.details
            click.echo(f"  Key found      : {d.key_found}")
            click.echo(f"  Timestamp valid: {d.timestamp_valid}")
            click.echo(f"  Signature match: {d.signature_match}")

    if not result.is_valid:
        sys.exit(2)


@main.command("inspect")
@click.option(
    "--record",
    "record_path",
    required=True,
    metavar="PATH",
    help="Signed record JSON.",
)
@click.option("--json-output", is_flag=True, help="Emit the record as indented JSON.")
def inspect_command(record_path: str, json_output: bool) -> None:
    """Display the contents of a signed record."""
    try:
        record = load_record(Path(record_path).read_text(encoding="utf-8"))
    except Exception as exc:
        click.echo(f"Error loading record: {exc}", err=True)
        sys.exit(1)

    if json_output:
        try:
            data = to_canonical_dict(record, include_signature=True)
        except AttestationError as exc:
            _fail(str(exc))
        click.echo(json.dumps(data, indent=2))
        return

    zone = record.exclusion_zone
    click.echo(f"Timestamp    : {record.timestamp}")
    click.echo(f"Identity     : {record.identity.identifier}")
    click.echo(f"Provider     : {describe_provider(record.identity.provider)}")
    click.echo(f"Service      : {record.service.name}")
    click.echo(f"Key          : {record.service.key_id or '(none)'}")
    click.echo(f"SHA-256      : {record.hashes.cryptographic}")
    click.echo(f"pHash        : {record.hashes.perceptual.p_hash}")
    click.echo(f"dHash        : {record.hashes.perceptual.d_hash}")
    click.echo(
        f"Exclusion    : x={zone.x} y={zone.y} w={zone.width} h={zone.height} "
        f"fill=#{zone.fill}"
    )
    if record.user_url:
        click.echo(f"URL          : {record.user_url}")
    click.echo(f"Signed       : {'yes' if record.signature else 'no'}")


if __name__ == "__main__":
    main()
