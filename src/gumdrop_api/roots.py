from __future__ import annotations
import datetime
from typing import Any, Dict

from .crypto import B58, B64, B64D, ed25519_sign, ed25519_verify, jcs_dumps
from .distribution import DistributionSet
from .models import SignedRoot


def _now_iso() -> str:
    return datetime.datetime.now(datetime.timezone.utc).isoformat()


def make_signed_root(
    dset: DistributionSet, signer_sk_bytes: bytes, signer_pk_bytes: bytes
) -> SignedRoot:
    """Attest to a distribution root with the authority's Ed25519 key.

    The signature covers the RFC 8785 canonical JSON of every other field.
    """
    body = {
        "tree_size": dset.size,
        "merkle_root_b58": B58(dset.root),
        "hash_algorithm": dset.hasher.algorithm,
        "integration": dset.kind,
        "ts": _now_iso(),
        "signer_pubkey_b64": B64(signer_pk_bytes),
    }
    sig = ed25519_sign(signer_sk_bytes, jcs_dumps(body))
    return SignedRoot(**{**body, "signature_b64": B64(sig)})


def signed_root_valid(obj: Dict[str, Any]) -> bool:
    try:
        sig_b64 = obj["signature_b64"]
        pub_b64 = obj["signer_pubkey_b64"]
    except KeyError:
        return False
    body = {k: v for k, v in obj.items() if k != "signature_b64"}
    try:
        return ed25519_verify(B64D(pub_b64), jcs_dumps(body), B64D(sig_b64))
    except Exception:
        return False
