"""Higher-level inclusion proof fuzzing with mutated proofs and indices."""
from __future__ import annotations
import atheris
import sys
import hashlib
import random

with atheris.instrument_imports():
    from gumdrop_api.merkle import MerkleTree, verify_inclusion


def TestOneInput(data: bytes):  # noqa: N802
    if len(data) < 8:
        return
    seed = int.from_bytes(data[:4], 'little')
    random.seed(seed)
    chunk_len = 1 + (data[4] % 32)
    body = data[5:]
    leaves_raw = [body[i:i+chunk_len] for i in range(0, min(len(body), chunk_len * 16), chunk_len)]
    leaves = [hashlib.sha256(x).digest() for x in leaves_raw if x]
    if len(leaves) < 3:
        return
    tree = MerkleTree.from_leaves(leaves)
    idx = seed % len(leaves)
    proof = tree.proof(idx)
    roll = random.random()
    if roll < 0.2:
        # flip one bit of one sibling
        k = random.randrange(len(proof))
        proof[k] = bytes([proof[k][0] ^ 0x01]) + proof[k][1:]
        if verify_inclusion(leaves[idx], proof, idx, tree.root):
            raise RuntimeError("tampered proof unexpectedly verified")
    elif roll < 0.4:
        other = (idx + 1 + random.randrange(len(leaves) - 1)) % len(leaves)
        # only meaningful when all leaves are distinct
        if len(set(leaves)) == len(leaves) and verify_inclusion(
            leaves[idx], proof, other, tree.root, tree_size=len(leaves)
        ):
            raise RuntimeError("proof verified at a foreign index")
    else:
        if not verify_inclusion(leaves[idx], proof, idx, tree.root):
            raise RuntimeError("valid proof failed")


def main():
    atheris.Setup(sys.argv, TestOneInput, enable_python_coverage=True)
    atheris.Fuzz()


if __name__ == "__main__":
    main()
