import itertools
import json

import pytest

from gumdrop_api.crypto import B58, B58D, derive_pseudo_address
from gumdrop_api.distribution import (
    DistributionSet,
    claim_payloads,
    claim_url,
    ingredient_tree,
    load_distribution,
    parse_claim_url,
    prepare_claims,
    save_distribution,
)
from gumdrop_api.errors import (
    DuplicateClaimError,
    EmptyTreeError,
    EncodingError,
    MalformedProofError,
)
from gumdrop_api.hashing import Hasher
from gumdrop_api.leaves import (
    EditionLeaf,
    IngredientLeaf,
    TransferLeaf,
    leaf_hash,
)
from gumdrop_api.merkle import verify_inclusion
from gumdrop_api.models import Claimant


def _key(n: int) -> bytes:
    return bytes([n]) * 32


def _transfers(n):
    return [TransferLeaf(i, _key(i + 1), _key(200), 10 * (i + 1)) for i in range(n)]


def _pins():
    counter = itertools.count(1000)
    return lambda: next(counter)


def test_distribution_round_trip():
    records = _transfers(5)
    dset = DistributionSet.from_records(records)
    assert dset.size == 5
    assert dset.kind == "transfer"
    for i, entry in enumerate(dset.entries):
        assert entry.index == i
        assert entry.record == records[i]
        assert entry.leaf_hash == leaf_hash(records[i])
        assert list(entry.proof) == dset.proof(i)
        assert dset.verify(i)
        assert verify_inclusion(entry.leaf_hash, entry.proof, i, dset.root)


def test_same_recipient_different_amounts_are_distinct_leaves():
    records = [
        TransferLeaf(0, _key(1), _key(200), 5),
        TransferLeaf(1, _key(1), _key(200), 7),
    ]
    dset = DistributionSet.from_records(records)
    assert dset.entries[0].leaf_hash != dset.entries[1].leaf_hash


def test_duplicate_records_rejected():
    records = [IngredientLeaf(_key(1)), IngredientLeaf(_key(2)), IngredientLeaf(_key(1))]
    with pytest.raises(DuplicateClaimError):
        DistributionSet.from_records(records)


def test_index_must_match_position():
    records = _transfers(3)
    gap = [records[0], records[1], TransferLeaf(3, _key(9), _key(200), 1)]
    with pytest.raises(EncodingError):
        DistributionSet.from_records(gap)
    with pytest.raises(EncodingError):
        DistributionSet.from_records([records[1], records[0]])


def test_mixed_variants_rejected():
    records = [
        TransferLeaf(0, _key(1), _key(200), 1),
        EditionLeaf(1, _key(2), _key(200), 1, 1),
    ]
    with pytest.raises(EncodingError):
        DistributionSet.from_records(records)


def test_empty_and_bad_records_abort_build():
    with pytest.raises(EmptyTreeError):
        DistributionSet.from_records([])
    with pytest.raises(EncodingError):
        DistributionSet.from_records(
            [TransferLeaf(0, _key(1), _key(2), 1), TransferLeaf(1, _key(1), _key(2), -5)]
        )


def test_prepare_claims_with_pins(program_id):
    claimants = [
        Claimant(handle="alice@example.com", amount=1, edition=1),
        Claimant(handle="bob@example.com", amount=1, edition=2, pin=77),
    ]
    rows, records = prepare_claims(
        claimants, "edition", _key(50), program_id, via_wallets=False, pin_source=_pins()
    )
    assert [r.pin for r in rows] == [1000, 77]
    assert claimants[0].pin is None  # input rows are left untouched
    assert records[0] == EditionLeaf(
        0,
        derive_pseudo_address(_key(50), "alice@example.com", 1000, program_id),
        _key(50),
        1,
        1,
    )
    assert records[1].claimant == derive_pseudo_address(
        _key(50), "bob@example.com", 77, program_id
    )


def test_prepare_claims_via_wallets(program_id):
    wallets = [B58(_key(10)), B58(_key(11))]
    claimants = [Claimant(handle=w, amount=3, pin=5) for w in wallets]
    rows, records = prepare_claims(
        claimants, "transfer", B58(_key(60)), program_id, via_wallets=True
    )
    assert all(r.pin is None for r in rows)
    assert [r.claimant for r in records] == [_key(10), _key(11)]
    assert records[1] == TransferLeaf(1, _key(11), _key(60), 3)


def test_prepare_claims_errors(program_id):
    with pytest.raises(EncodingError):
        prepare_claims(
            [Claimant(handle="not a wallet", amount=1)],
            "transfer",
            _key(1),
            program_id,
            via_wallets=True,
        )
    with pytest.raises(EncodingError):
        prepare_claims(
            [Claimant(handle="a@b.c", amount=1)], "edition", _key(1), program_id, False
        )
    with pytest.raises(EncodingError):
        prepare_claims(
            [Claimant(handle="a@b.c", amount=1)], "airdrop", _key(1), program_id, False
        )


def test_payloads_and_urls(program_id):
    claimants = [
        Claimant(handle=f"user{i}@example.com", amount=i + 1) for i in range(3)
    ]
    rows, records = prepare_claims(
        claimants, "candy", _key(70), program_id, via_wallets=False, pin_source=_pins()
    )
    dset = DistributionSet.from_records(records)
    payloads = claim_payloads(dset, rows, distributor=B58(_key(90)))
    assert [p.index for p in payloads] == [0, 1, 2]
    assert payloads[2].proof == [B58(h) for h in dset.proof(2)]
    assert payloads[0].target == B58(_key(70))

    url = claim_url("https://claims.example/", payloads[1])
    assert url.startswith("https://claims.example/claim?")
    assert "config=" in url and "pin=1001" in url
    assert parse_claim_url(url) == payloads[1]


def test_wallet_claim_url_uses_na_pin():
    dset = DistributionSet.from_records([TransferLeaf(0, _key(1), _key(2), 4)])
    rows = [Claimant(handle=B58(_key(1)), amount=4)]
    (payload,) = claim_payloads(dset, rows)
    assert payload.proof == []
    url = claim_url("https://claims.example", payload)
    assert "pin=NA" in url and "mint=" in url
    assert parse_claim_url(url).pin is None


def test_parse_claim_url_errors():
    with pytest.raises(EncodingError):
        parse_claim_url("https://claims.example/claim?handle=x&amount=1&index=0")
    with pytest.raises(EncodingError):
        parse_claim_url("https://claims.example/claim?mint=abc&amount=1&index=0")


def test_claim_payloads_size_mismatch():
    dset = DistributionSet.from_records(_transfers(2))
    with pytest.raises(EncodingError):
        claim_payloads(dset, [Claimant(handle="x", amount=1)])


def test_ingredient_tree():
    mints = [_key(1), B58(_key(2)), _key(3)]
    dset = ingredient_tree(mints, [False, True, False])
    assert dset.kind == "ingredient"
    assert dset.entries[1].record == IngredientLeaf(_key(2), 0x02)
    assert dset.entries[1].record.allows_limited_editions
    assert not dset.entries[0].record.allows_limited_editions
    for i in range(3):
        assert dset.verify(i)
    # flag participates in the leaf
    assert ingredient_tree(mints).root != dset.root
    with pytest.raises(EncodingError):
        ingredient_tree(mints, [True])


def test_save_and_load_distribution(tmp_path, program_id):
    claimants = [Claimant(handle=f"u{i}", amount=1) for i in range(4)]
    rows, records = prepare_claims(
        claimants, "transfer", _key(5), program_id, via_wallets=False, pin_source=_pins()
    )
    hasher = Hasher(leaf_prefix=b"\x00", node_prefix=b"\x01")
    dset = DistributionSet.from_records(records, hasher)
    payloads = claim_payloads(dset, rows)
    path = tmp_path / "out" / "claims.json"
    save_distribution(path, dset, payloads, host="https://claims.example")

    doc = load_distribution(path)
    assert B58D(doc.merkle_root_b58) == dset.root
    assert doc.tree_size == 4
    assert Hasher.from_description(doc.hash_config) == hasher
    assert doc.claims[3]["url"].startswith("https://claims.example/claim?")
    raw = json.loads(path.read_text())
    assert raw["integration"] == "transfer"


def test_ingredient_proof_bound_to_tree_size():
    # ingredient leaves carry no index, so only the size pins the position
    dset = ingredient_tree([_key(1), _key(2), _key(3)])
    last = dset.entries[2]
    assert verify_inclusion(last.leaf_hash, last.proof, 2, dset.root, tree_size=3)
    with pytest.raises(MalformedProofError):
        verify_inclusion(last.leaf_hash, last.proof, 3, dset.root, tree_size=3)
