from __future__ import annotations
import json
import logging
import secrets
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Tuple
from urllib.parse import parse_qs, urlencode, urlsplit

from .crypto import B58, B58D, derive_pseudo_address, parse_pubkey
from .errors import DuplicateClaimError, EmptyTreeError, EncodingError
from .hashing import Hasher, resolve
from .leaves import (
    FLAG_ALLOW_LIMITED_EDITIONS,
    FLAG_NONE,
    INDEXED_KINDS,
    CandyLeaf,
    ClaimLeaf,
    EditionLeaf,
    IngredientLeaf,
    TransferLeaf,
    encode_leaf,
)
from .merkle import MerkleTree, verify_inclusion
from .models import Claimant, ClaimPayload, DistributionFile

logger = logging.getLogger(__name__)

INTEGRATIONS = ("transfer", "candy", "edition")

# claim page query parameter naming the target key, per integration
_TARGET_PARAM = {"transfer": "mint", "candy": "config", "edition": "master"}


@dataclass(frozen=True)
class ClaimEntry:
    index: int
    record: ClaimLeaf
    leaf_hash: bytes
    proof: Tuple[bytes, ...]


class DistributionSet:
    """Built tree plus the (index, record, proof) of every claim.

    Read-only once built; a changed claim list means building a new set,
    which invalidates every proof issued from this one.
    """

    def __init__(self, tree: MerkleTree, entries: List[ClaimEntry], kind: str):
        self.tree = tree
        self.entries = entries
        self.kind = kind

    @classmethod
    def from_records(
        cls, records: Sequence[ClaimLeaf], hasher: Optional[Hasher] = None
    ) -> "DistributionSet":
        hasher = resolve(hasher)
        records = list(records)
        if not records:
            raise EmptyTreeError("no claim records")

        kind = getattr(records[0], "kind", None)
        seen: Dict[bytes, int] = {}
        hashes = []
        for pos, record in enumerate(records):
            encoded = encode_leaf(record)
            if record.kind != kind:
                raise EncodingError(
                    f"record {pos} is a {record.kind} claim in a {kind} distribution"
                )
            if kind in INDEXED_KINDS and record.index != pos:
                raise EncodingError(
                    f"record at position {pos} carries index {record.index}"
                )
            if encoded in seen:
                raise DuplicateClaimError(
                    f"record {pos} duplicates record {seen[encoded]}"
                )
            seen[encoded] = pos
            hashes.append(hasher.hash_leaf(encoded))

        tree = MerkleTree.from_leaves(hashes, hasher)
        entries = [
            ClaimEntry(i, record, hashes[i], tuple(tree.proof(i)))
            for i, record in enumerate(records)
        ]
        logger.info(
            "built %s distribution: size=%d depth=%d root=%s",
            kind,
            tree.size,
            tree.depth,
            B58(tree.root),
        )
        return cls(tree, entries, kind)

    @property
    def root(self) -> bytes:
        return self.tree.root

    @property
    def size(self) -> int:
        return self.tree.size

    @property
    def hasher(self) -> Hasher:
        return self.tree.hasher

    def proof(self, index: int) -> List[bytes]:
        return self.tree.proof(index)

    def verify(self, index: int) -> bool:
        e = self.entries[index]
        return verify_inclusion(
            e.leaf_hash, e.proof, e.index, self.root, self.hasher, self.size
        )


def make_record(
    integration: str,
    index: int,
    claimant: bytes,
    target: bytes,
    amount: int,
    edition: Optional[int] = None,
) -> ClaimLeaf:
    """Build the leaf variant named by `integration`."""
    if integration == "transfer":
        return TransferLeaf(index, claimant, target, amount)
    if integration == "candy":
        return CandyLeaf(index, claimant, target, amount)
    if integration == "edition":
        if edition is None:
            raise EncodingError(f"claim {index}: edition is required")
        return EditionLeaf(index, claimant, target, amount, edition)
    raise EncodingError(f"unknown claim integration: {integration}")


def resolve_claimant(
    handle: str, pin: Optional[int], seed: bytes, program_id: bytes
) -> bytes:
    """Wallet key for PIN-less claims, otherwise the derived pseudo-address."""
    if pin is None:
        return parse_pubkey(handle, "wallet handle")
    return derive_pseudo_address(seed, handle, pin, program_id)


def _random_pin() -> int:
    return secrets.randbits(32)


def prepare_claims(
    claimants: Sequence[Claimant],
    integration: str,
    target,
    program_id,
    via_wallets: bool,
    pin_source: Callable[[], int] = _random_pin,
) -> Tuple[List[Claimant], List[ClaimLeaf]]:
    """Assign indices and PINs and turn claimant rows into leaf records.

    The target key (mint, candy config or master mint) doubles as the seed
    for pseudo-addresses, so the same handle yields different claimants in
    different distributions. Returns the rows with PINs filled in.
    """
    if integration not in INTEGRATIONS:
        raise EncodingError(f"unknown claim integration: {integration}")
    target = parse_pubkey(target, "target")
    program_id = parse_pubkey(program_id, "program_id")

    rows: List[Claimant] = []
    records: List[ClaimLeaf] = []
    for index, c in enumerate(claimants):
        if via_wallets:
            pin = None
        else:
            pin = c.pin if c.pin is not None else pin_source()
        row = c.model_copy(update={"pin": pin})
        claimant = resolve_claimant(row.handle, pin, target, program_id)
        records.append(
            make_record(integration, index, claimant, target, row.amount, row.edition)
        )
        rows.append(row)
    return rows, records


def claim_payloads(
    dset: DistributionSet,
    claimants: Sequence[Claimant],
    distributor: Optional[str] = None,
) -> List[ClaimPayload]:
    if len(claimants) != dset.size:
        raise EncodingError("claimant rows do not match the distribution size")
    out = []
    for entry, c in zip(dset.entries, claimants):
        out.append(
            ClaimPayload(
                integration=dset.kind,
                handle=c.handle,
                amount=c.amount,
                index=entry.index,
                pin=c.pin,
                proof=[B58(p) for p in entry.proof],
                target=B58(entry.record.target),
                edition=c.edition,
                distributor=distributor,
            )
        )
    return out


def claim_url(host: str, payload: ClaimPayload) -> str:
    """Render a payload as the query string the claim page reads."""
    params = {}
    if payload.distributor:
        params["distributor"] = payload.distributor
    params[_TARGET_PARAM[payload.integration]] = payload.target
    if payload.edition is not None:
        params["edition"] = str(payload.edition)
    params["handle"] = payload.handle
    params["amount"] = str(payload.amount)
    params["index"] = str(payload.index)
    params["pin"] = "NA" if payload.pin is None else str(payload.pin)
    params["proof"] = ",".join(payload.proof)
    return f"{host.rstrip('/')}/claim?{urlencode(params)}"


def parse_claim_url(url: str) -> ClaimPayload:
    qs = {k: v[0] for k, v in parse_qs(urlsplit(url).query, keep_blank_values=True).items()}
    integration = next(
        (name for name, param in _TARGET_PARAM.items() if param in qs), None
    )
    if integration is None:
        raise EncodingError("claim url names no mint, config or master")
    try:
        pin = qs.get("pin", "NA")
        return ClaimPayload(
            integration=integration,
            handle=qs["handle"],
            amount=int(qs["amount"]),
            index=int(qs["index"]),
            pin=None if pin == "NA" else int(pin),
            proof=[p for p in qs.get("proof", "").split(",") if p],
            target=qs[_TARGET_PARAM[integration]],
            edition=int(qs["edition"]) if "edition" in qs else None,
            distributor=qs.get("distributor"),
        )
    except (KeyError, ValueError) as e:
        raise EncodingError(f"malformed claim url: {e}") from e


def ingredient_tree(
    mints: Sequence,
    allow_limited_editions: Optional[Sequence[bool]] = None,
    hasher: Optional[Hasher] = None,
) -> DistributionSet:
    """Tree over the mints that satisfy one ingredient group of a recipe."""
    if allow_limited_editions is None:
        allow_limited_editions = [False] * len(mints)
    if len(allow_limited_editions) != len(mints):
        raise EncodingError("one limited-edition flag is required per mint")
    records = [
        IngredientLeaf(
            parse_pubkey(m, f"ingredient mint {i}"),
            FLAG_ALLOW_LIMITED_EDITIONS if allow else FLAG_NONE,
        )
        for i, (m, allow) in enumerate(zip(mints, allow_limited_editions))
    ]
    return DistributionSet.from_records(records, hasher)


def save_distribution(
    path,
    dset: DistributionSet,
    payloads: Sequence[ClaimPayload],
    host: Optional[str] = None,
) -> DistributionFile:
    claims = []
    for p in payloads:
        d = p.model_dump()
        if host:
            d["url"] = claim_url(host, p)
        claims.append(d)
    doc = DistributionFile(
        merkle_root_b58=B58(dset.root),
        tree_size=dset.size,
        integration=dset.kind,
        hash_config=dset.hasher.describe(),
        claims=claims,
    )
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(json.dumps(doc.model_dump(), indent=2))
    return doc


def load_distribution(path) -> DistributionFile:
    return DistributionFile.model_validate_json(Path(path).read_text())


def payload_from_claim(claim: Dict) -> ClaimPayload:
    return ClaimPayload(**{k: v for k, v in claim.items() if k != "url"})


def root_from_b58(s: str) -> bytes:
    try:
        return B58D(s)
    except ValueError as e:
        raise EncodingError("root is not valid base58") from e
