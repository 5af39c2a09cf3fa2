"""Fuzz harness for Merkle tree construction & inclusion proof verification."""
from __future__ import annotations
import atheris
import sys
import hashlib

with atheris.instrument_imports():
    from gumdrop_api.merkle import MerkleTree, verify_inclusion


def TestOneInput(data: bytes):  # noqa: N802
    if not data:
        return
    # Split data deterministically into pseudo-leaves (bounded count)
    size = max(1, min(32, data[0]))
    chunks = [data[i : i + size] for i in range(1, min(len(data), 1 + size * 32), size)]
    leaves = [hashlib.sha256(c).digest() for c in chunks if c]
    if not leaves:
        return
    tree = MerkleTree.from_leaves(leaves)
    idx = data[-1] % len(leaves)
    proof = tree.proof(idx)
    if len(proof) != tree.depth:
        raise RuntimeError("proof length differs from tree depth")
    ok = verify_inclusion(leaves[idx], proof, idx, tree.root, tree_size=len(leaves))
    if not ok:
        raise RuntimeError("valid inclusion proof failed")


def main():
    atheris.Setup(sys.argv, TestOneInput, enable_python_coverage=True)
    atheris.Fuzz()


if __name__ == "__main__":
    main()
