from typing import Any, Dict, Optional, Union

from gumdrop_api.crypto import B58D, parse_pubkey
from gumdrop_api.distribution import make_record, resolve_claimant, root_from_b58
from gumdrop_api.errors import MalformedProofError
from gumdrop_api.hashing import Hasher, resolve
from gumdrop_api.leaves import ClaimLeaf, leaf_hash
from gumdrop_api.merkle import verify_inclusion
from gumdrop_api.models import ClaimPayload
from gumdrop_api.roots import signed_root_valid
from gumdrop_api.settings import settings


def _payload(claim: Union[ClaimPayload, Dict[str, Any]]) -> ClaimPayload:
    if isinstance(claim, ClaimPayload):
        return claim
    return ClaimPayload(**{k: v for k, v in claim.items() if k != "url"})


def claim_leaf(
    claim: Union[ClaimPayload, Dict[str, Any]], program_id=None
) -> ClaimLeaf:
    """Rebuild the leaf record from the fields a claimant holds.

    With a PIN the claimant is the pseudo-address derived from (target,
    handle, pin); without one the handle must be the claimant's wallet.
    """
    p = _payload(claim)
    if program_id is None:
        program_id = settings.program_id
    target = parse_pubkey(p.target, "target")
    claimant = resolve_claimant(
        p.handle, p.pin, target, parse_pubkey(program_id, "program_id")
    )
    return make_record(p.integration, p.index, claimant, target, p.amount, p.edition)


def verify_claim(
    claim: Union[ClaimPayload, Dict[str, Any]],
    root: Union[bytes, str],
    hasher: Optional[Hasher] = None,
    program_id=None,
    tree_size: Optional[int] = None,
) -> bool:
    """Return True if the claim's leaf and proof reach `root`.

    A mismatch is a False result; MalformedProofError and EncodingError
    signal a payload that cannot be checked at all. Pass `tree_size` when the
    number of leaves is known so indices past the last leaf are refused.
    """
    p = _payload(claim)
    if isinstance(root, str):
        root = root_from_b58(root)
    try:
        proof = [B58D(s) for s in p.proof]
    except ValueError as e:
        raise MalformedProofError("proof entry is not valid base58") from e
    leaf = leaf_hash(claim_leaf(p, program_id), hasher)
    return verify_inclusion(leaf, proof, p.index, root, resolve(hasher), tree_size)


def verify_signed_root(signed_root_json: Dict[str, Any]) -> bool:
    """Verify a signed root's Ed25519 signature."""
    return signed_root_valid(signed_root_json)
