import hashlib

import pytest

from gumdrop_api.errors import (
    EmptyTreeError,
    EncodingError,
    IndexOutOfRangeError,
    MalformedProofError,
)
from gumdrop_api.hashing import Hasher
from gumdrop_api.merkle import MerkleTree, depth_for, verify_inclusion


def H(b: bytes) -> bytes:
    return hashlib.sha256(b).digest()


def _leaves(n, tag="leaf"):
    return [H(f"{tag}-{i}".encode()) for i in range(n)]


def _flip(b: bytes, bit: int = 0) -> bytes:
    return bytes([b[0] ^ (1 << bit)]) + b[1:]


def test_merkle_basic():
    leaves = _leaves(5)
    tree = MerkleTree.from_leaves(leaves)
    assert tree.root
    proof = tree.proof(2)
    assert verify_inclusion(leaves[2], proof, 2, tree.root)


def test_four_leaf_scenario():
    h0, h1, h2, h3 = _leaves(4)
    tree = MerkleTree.from_leaves([h0, h1, h2, h3])
    assert tree.root == H(H(h0 + h1) + H(h2 + h3))
    assert tree.proof(2) == [h3, H(h0 + h1)]
    assert verify_inclusion(h2, [h3, H(h0 + h1)], 2, tree.root)


def test_three_leaf_scenario_duplicates_last():
    h0, h1, h2 = _leaves(3)
    tree = MerkleTree.from_leaves([h0, h1, h2])
    assert tree.root == H(H(h0 + h1) + H(h2 + h2))
    assert tree.proof(2) == [h2, H(h0 + h1)]
    assert verify_inclusion(h2, tree.proof(2), 2, tree.root, tree_size=3)


def test_single_leaf_root_is_leaf():
    (h0,) = _leaves(1)
    tree = MerkleTree.from_leaves([h0])
    assert tree.root == h0
    assert tree.depth == 0
    assert tree.proof(0) == []
    assert verify_inclusion(h0, [], 0, tree.root, tree_size=1)


@pytest.mark.parametrize("n", [1, 2, 3, 5, 6, 7, 8, 9, 17])
def test_every_index_round_trips(n):
    leaves = _leaves(n)
    tree = MerkleTree.from_leaves(leaves)
    assert tree.depth == depth_for(n)
    for i in range(n):
        proof = tree.proof(i)
        assert len(proof) == depth_for(n)
        assert verify_inclusion(leaves[i], proof, i, tree.root, tree_size=n)


def test_depth_is_ceil_log2():
    assert [depth_for(n) for n in (1, 2, 3, 4, 5, 8, 9, 1024, 1025)] == [
        0, 1, 2, 2, 3, 3, 4, 10, 11,
    ]


def test_build_is_deterministic():
    leaves = _leaves(11)
    a = MerkleTree.from_leaves(leaves)
    b = MerkleTree.from_leaves(list(leaves))
    assert a.root == b.root
    assert all(a.proof(i) == b.proof(i) for i in range(11))


def test_input_list_mutation_does_not_affect_tree():
    leaves = _leaves(4)
    tree = MerkleTree.from_leaves(leaves)
    root = tree.root
    leaves[0] = H(b"other")
    assert tree.root == root
    assert tree.leaves[0] != leaves[0]


def test_tampering_is_rejected():
    leaves = _leaves(6)
    tree = MerkleTree.from_leaves(leaves)
    i = 3
    proof = tree.proof(i)
    assert not verify_inclusion(_flip(leaves[i], 5), proof, i, tree.root)
    for k in range(len(proof)):
        bad = list(proof)
        bad[k] = _flip(bad[k], 7)
        assert not verify_inclusion(leaves[i], bad, i, tree.root)
    for j in range(6):
        if j != i:
            assert not verify_inclusion(leaves[i], proof, j, tree.root, tree_size=6)


def test_proof_from_other_tree_of_same_size_is_rejected():
    a_leaves = _leaves(5, "a")
    b_leaves = _leaves(5, "b")
    a = MerkleTree.from_leaves(a_leaves)
    b = MerkleTree.from_leaves(b_leaves)
    assert a.root != b.root
    for i in range(5):
        assert not verify_inclusion(a_leaves[i], a.proof(i), i, b.root, tree_size=5)


def test_children_are_not_sorted():
    h0, h1 = _leaves(2)
    lo, hi = sorted([h0, h1])
    tree = MerkleTree.from_leaves([hi, lo])
    assert tree.root == H(hi + lo)


def test_empty_tree_rejected():
    with pytest.raises(EmptyTreeError):
        MerkleTree.from_leaves([])


def test_wrong_width_leaf_rejected():
    with pytest.raises(EncodingError):
        MerkleTree.from_leaves([b"short"])


def test_proof_index_out_of_range():
    tree = MerkleTree.from_leaves(_leaves(3))
    with pytest.raises(IndexOutOfRangeError):
        tree.proof(3)
    with pytest.raises(IndexOutOfRangeError):
        tree.proof(-1)
    # also an IndexError for callers that only know the builtin
    with pytest.raises(IndexError):
        tree.proof(10)


def test_malformed_proofs():
    leaves = _leaves(4)
    tree = MerkleTree.from_leaves(leaves)
    proof = tree.proof(1)
    with pytest.raises(MalformedProofError):
        verify_inclusion(leaves[1], [proof[0][:31], proof[1]], 1, tree.root)
    with pytest.raises(MalformedProofError):
        verify_inclusion(leaves[1][:16], proof, 1, tree.root)
    with pytest.raises(MalformedProofError):
        verify_inclusion(leaves[1], proof, 1, tree.root[:31])
    # two levels cannot reach index 4
    with pytest.raises(MalformedProofError):
        verify_inclusion(leaves[1], proof, 4, tree.root)
    with pytest.raises(MalformedProofError):
        verify_inclusion(leaves[1], proof, -1, tree.root)
    with pytest.raises(MalformedProofError):
        verify_inclusion(leaves[1], proof[:1], 1, tree.root, tree_size=4)
    with pytest.raises(MalformedProofError):
        verify_inclusion(leaves[1], proof, 3, tree.root, tree_size=3)


def test_mismatch_is_false_not_error():
    leaves = _leaves(4)
    tree = MerkleTree.from_leaves(leaves)
    assert verify_inclusion(leaves[0], tree.proof(0), 0, H(b"elsewhere")) is False


def test_domain_separated_hasher():
    hasher = Hasher(leaf_prefix=b"\x00", node_prefix=b"\x01")
    h0, h1, h2 = _leaves(3)
    tree = MerkleTree.from_leaves([h0, h1, h2], hasher)
    assert tree.root == H(b"\x01" + H(b"\x01" + h0 + h1) + H(b"\x01" + h2 + h2))
    assert verify_inclusion(h1, tree.proof(1), 1, tree.root, hasher)
    # builder and verifier must agree on the hasher
    assert not verify_inclusion(h1, tree.proof(1), 1, tree.root)


def test_keccak_hasher():
    hasher = Hasher("keccak256")
    assert hasher.digest(b"").hex() == (
        "c5d2460186f7233c927e7db2dcc703c0e500b653ca82273b7bfad8045d85a470"
    )
    leaves = [hasher.digest(bytes([i])) for i in range(5)]
    tree = MerkleTree.from_leaves(leaves, hasher)
    for i in range(5):
        assert verify_inclusion(leaves[i], tree.proof(i), i, tree.root, hasher)
    assert tree.root != MerkleTree.from_leaves(leaves).root


def test_unknown_hash_algorithm():
    with pytest.raises(ValueError):
        Hasher("md5")


def test_tree_verify_helper():
    leaves = _leaves(7)
    tree = MerkleTree.from_leaves(leaves)
    assert tree.verify(6, leaves[6])
    assert not tree.verify(6, leaves[5])
