from __future__ import annotations
import json
import logging
import os
import pathlib
from typing import Any, List, Optional

import typer
from rich import print
from rich.markup import escape

from gumdrop_api.crypto import B58, derive_pseudo_address, ed25519_generate, parse_pubkey
from gumdrop_api.distribution import (
    DistributionSet,
    claim_payloads,
    ingredient_tree,
    load_distribution,
    payload_from_claim,
    prepare_claims,
    save_distribution,
)
from gumdrop_api.errors import GumdropError
from gumdrop_api.hashing import Hasher
from gumdrop_api.logutil import setup_logging
from gumdrop_api.models import Claimant, DistributionFile
from gumdrop_api.roots import make_signed_root
from gumdrop_api.settings import settings
from gumdrop_sdk.verify import verify_claim, verify_signed_root

app = typer.Typer(add_completion=False, no_args_is_help=True)
logger = logging.getLogger("gumdrop_cli")


@app.callback()
def main(log_level: str = typer.Option(settings.log_level, help="Logging level")):
    setup_logging(log_level)


def _fail(msg: str) -> None:
    print(f"[red]{escape(msg)}[/red]")
    raise typer.Exit(code=1)


def _read_json(path: str, what: str) -> Any:
    try:
        return json.loads(pathlib.Path(path).read_text())
    except (OSError, ValueError) as e:
        _fail(f"Could not read {what} {path}: {e}")


def _load_distribution(path: str) -> DistributionFile:
    # pydantic's ValidationError is a ValueError
    try:
        return load_distribution(path)
    except (OSError, ValueError) as e:
        _fail(f"Could not read distribution {path}: {e}")


def _load_claimants(path: str) -> List[Claimant]:
    raw = _read_json(path, "distribution list")
    if not isinstance(raw, list):
        _fail("Distribution list must be a JSON array of claimants")
    try:
        return [Claimant(**c) for c in raw]
    except (TypeError, ValueError) as e:
        _fail(f"Invalid claimant entry: {e}")


@app.command()
def gen_keys(out_dir: str = typer.Option("./keys", help="Directory to write keypair")):
    os.makedirs(out_dir, exist_ok=True)
    sk, pk = ed25519_generate()
    (pathlib.Path(out_dir) / "ed25519_private.key").write_bytes(sk)
    (pathlib.Path(out_dir) / "ed25519_public.key").write_bytes(pk)
    print(f"[green]Wrote keys to {out_dir}[/green]")


@app.command()
def create(
    distribution_list: str = typer.Option(..., help="JSON array of claimants"),
    claim_integration: str = typer.Option(..., help="transfer | candy | edition"),
    target: str = typer.Option(
        ..., help="Mint (transfer), candy config (candy) or master mint (edition)"
    ),
    distribution_method: str = typer.Option(
        "manual", help="wallets: handles are wallets; manual: handles get PINs"
    ),
    host: str = typer.Option(settings.claim_host, help="Claim website"),
    distributor: Optional[str] = typer.Option(None, help="On-chain distributor key"),
    out: str = typer.Option(None, help="Output file (default under storage dir)"),
    sign: bool = typer.Option(True, help="Write a signed root next to the output"),
):
    """Build a distribution: assign indices and PINs, build the tree, write claims."""
    if distribution_method not in ("wallets", "manual"):
        _fail("Distribution method must either be 'wallets' or 'manual'.")
    claimants = _load_claimants(distribution_list)
    if not claimants:
        _fail("No claimants provided")
    logger.info(
        "creating %s distribution for %d claimants via %s",
        claim_integration,
        len(claimants),
        distribution_method,
    )

    try:
        hasher = Hasher.from_settings()
        rows, records = prepare_claims(
            claimants,
            claim_integration,
            target,
            settings.program_id,
            via_wallets=distribution_method == "wallets",
        )
        dset = DistributionSet.from_records(records, hasher)
        payloads = claim_payloads(dset, rows, distributor)
    except ValueError as e:
        _fail(f"Distribution build failed: {e}")

    root_b58 = B58(dset.root)
    out_path = pathlib.Path(out or pathlib.Path(settings.storage_dir) / f"claims-{root_b58}.json")
    try:
        save_distribution(out_path, dset, payloads, host)
    except OSError as e:
        _fail(f"Could not write {out_path}: {e}")
    print(f"[green]Wrote {dset.size} claims to {out_path}[/green]")
    print(f"[cyan]Root[/cyan]: {root_b58}")

    if sign:
        sk_path = pathlib.Path(settings.signing_key_path)
        pk_path = pathlib.Path(settings.signing_pubkey_path)
        if not sk_path.exists() or not pk_path.exists():
            print("[yellow]No signing keypair found; skipping signed root[/yellow]")
            return
        sr = make_signed_root(dset, sk_path.read_bytes(), pk_path.read_bytes())
        sr_path = out_path.with_name(f"root-{root_b58}.json")
        sr_path.write_text(json.dumps(sr.model_dump(), indent=2))
        print(f"[green]Wrote signed root to {sr_path}[/green]")


@app.command()
def proof(
    distribution: str = typer.Option(..., help="Distribution file written by create"),
    index: int = typer.Option(..., help="Claim index"),
):
    doc = _load_distribution(distribution)
    if not 0 <= index < len(doc.claims):
        _fail(f"Index {index} out of range for {len(doc.claims)} claims")
    claim = doc.claims[index]
    print({"index": index, "proof": claim["proof"], "root": doc.merkle_root_b58})


@app.command(name="verify-claim")
def verify_claim_cmd(
    claim: str = typer.Argument(..., help="Claim payload JSON file"),
    root: str = typer.Option(..., help="Expected root (base58)"),
    tree_size: Optional[int] = typer.Option(None, help="Number of leaves under the root"),
):
    """Check one claimant's payload against a published root."""
    obj = _read_json(claim, "claim")
    if not isinstance(obj, dict):
        _fail("Claim must be a JSON object")
    try:
        ok = verify_claim(
            payload_from_claim(obj), root, Hasher.from_settings(), tree_size=tree_size
        )
    except ValueError as e:
        _fail(f"Malformed claim: {e}")
    print({"claim_valid": ok})
    if not ok:
        raise typer.Exit(code=2)


@app.command()
def verify_distribution(
    distribution: str = typer.Argument(..., help="Distribution file written by create"),
):
    """Re-verify every claim in a distribution file against its root."""
    doc = _load_distribution(distribution)
    try:
        hasher = Hasher.from_description(doc.hash_config)
    except ValueError as e:
        _fail(f"Invalid hash configuration: {e}")
    bad = []
    malformed = []
    for pos, c in enumerate(doc.claims):
        try:
            ok = verify_claim(
                payload_from_claim(c), doc.merkle_root_b58, hasher, tree_size=doc.tree_size
            )
        except ValueError as e:
            logger.warning("claim %d cannot be checked: %s", pos, e)
            malformed.append(pos)
            continue
        if not ok:
            bad.append(pos)
    print({"claims": len(doc.claims), "invalid": bad, "malformed": malformed})
    if bad or malformed:
        raise typer.Exit(code=2)


@app.command()
def verify_root(path: str):
    obj = _read_json(path, "signed root")
    if not isinstance(obj, dict):
        _fail("Signed root must be a JSON object")
    print({"signature_valid": verify_signed_root(obj)})


@app.command()
def pseudo_address(
    seed: str = typer.Option(..., help="Distribution seed key (base58)"),
    handle: str = typer.Option(..., help="Claimant handle (email, phone, ...)"),
    pin: int = typer.Option(..., help="Claim PIN"),
):
    """Derive the claimant address bound to (seed, handle, pin)."""
    try:
        addr = derive_pseudo_address(
            parse_pubkey(seed, "seed"), handle, pin, parse_pubkey(settings.program_id)
        )
    except GumdropError as e:
        _fail(str(e))
    print(B58(addr))


@app.command()
def ingredient_root(
    mints: str = typer.Argument(
        ..., help='JSON array of {"mint": ..., "allowLimitedEditions": bool}'
    ),
):
    """Root committing to the mints that satisfy one recipe ingredient."""
    raw = _read_json(mints, "ingredient list")
    try:
        dset = ingredient_tree(
            [m["mint"] for m in raw],
            [bool(m.get("allowLimitedEditions", False)) for m in raw],
            Hasher.from_settings(),
        )
    except (ValueError, KeyError, TypeError, AttributeError) as e:
        _fail(f"Invalid ingredient list: {e}")
    print(
        {
            "root": B58(dset.root),
            "mints": [
                {
                    "mint": B58(e.record.mint),
                    "allowLimitedEditions": e.record.allows_limited_editions,
                    "proof": [B58(p) for p in e.proof],
                }
                for e in dset.entries
            ],
        }
    )


if __name__ == "__main__":
    app()
