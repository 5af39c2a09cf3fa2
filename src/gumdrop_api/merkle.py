from __future__ import annotations
import hmac
from dataclasses import dataclass
from typing import List, Optional, Sequence

from .errors import (
    EmptyTreeError,
    EncodingError,
    IndexOutOfRangeError,
    MalformedProofError,
)
from .hashing import Hasher, resolve


def depth_for(size: int) -> int:
    """ceil(log2(size)); 0 for a single leaf."""
    return (size - 1).bit_length() if size > 1 else 0


@dataclass
class MerkleTree:
    levels: List[List[bytes]]  # level 0 = leaves
    hasher: Hasher

    @classmethod
    def from_leaves(
        cls, leaves: Sequence[bytes], hasher: Optional[Hasher] = None
    ) -> "MerkleTree":
        """Build over leaf hashes in index order.

        Children are never sorted: left is the lower index. A level with an
        odd node count pairs its last node with itself.
        """
        hasher = resolve(hasher)
        if not leaves:
            raise EmptyTreeError("no leaves")
        for i, leaf in enumerate(leaves):
            if len(leaf) != hasher.digest_size:
                raise EncodingError(
                    f"leaf {i} is {len(leaf)} bytes, expected {hasher.digest_size}"
                )
        lvl = [bytes(leaf) for leaf in leaves]
        levels = [lvl]
        while len(lvl) > 1:
            nxt = []
            for i in range(0, len(lvl), 2):
                a = lvl[i]
                b = lvl[i + 1] if i + 1 < len(lvl) else lvl[i]  # duplicate last if odd
                nxt.append(hasher.hash_node(a, b))
            levels.append(nxt)
            lvl = nxt
        return cls(levels, hasher)

    @property
    def root(self) -> bytes:
        return self.levels[-1][0]

    @property
    def size(self) -> int:
        return len(self.levels[0])

    @property
    def depth(self) -> int:
        return len(self.levels) - 1

    @property
    def leaves(self) -> List[bytes]:
        return list(self.levels[0])

    def proof(self, index: int) -> List[bytes]:
        """Sibling hashes from leaf level to just below the root."""
        if not 0 <= index < self.size:
            raise IndexOutOfRangeError(
                f"index {index} out of range for tree of size {self.size}"
            )
        proof = []
        idx = index
        for level in self.levels[:-1]:
            sibling_idx = idx ^ 1
            if sibling_idx >= len(level):
                sibling = level[idx]
            else:
                sibling = level[sibling_idx]
            proof.append(sibling)
            idx //= 2
        return proof

    def verify(self, index: int, leaf: bytes) -> bool:
        return verify_inclusion(
            leaf, self.proof(index), index, self.root, self.hasher, self.size
        )


def verify_inclusion(
    leaf: bytes,
    proof: Sequence[bytes],
    index: int,
    root: bytes,
    hasher: Optional[Hasher] = None,
    tree_size: Optional[int] = None,
) -> bool:
    """Recompute the root from `leaf` and `proof` and compare with `root`.

    Bit k of `index` selects the side at level k: 0 means the running hash is
    the left child. Returns False on mismatch; raises MalformedProofError only
    when the inputs cannot describe a path at all.
    """
    hasher = resolve(hasher)
    size = hasher.digest_size
    if len(leaf) != size:
        raise MalformedProofError(f"leaf hash must be {size} bytes")
    if len(root) != size:
        raise MalformedProofError(f"root must be {size} bytes")
    for k, sibling in enumerate(proof):
        if len(sibling) != size:
            raise MalformedProofError(f"proof entry {k} must be {size} bytes")
    if index < 0 or index >> len(proof):
        raise MalformedProofError(
            f"proof of length {len(proof)} cannot address index {index}"
        )
    if tree_size is not None:
        if index >= tree_size:
            raise MalformedProofError(f"index {index} outside tree of size {tree_size}")
        if len(proof) != depth_for(tree_size):
            raise MalformedProofError(
                f"proof length {len(proof)} does not match tree of size {tree_size}"
            )

    h = bytes(leaf)
    idx = index
    for sibling in proof:
        if idx & 1:
            h = hasher.hash_node(sibling, h)
        else:
            h = hasher.hash_node(h, sibling)
        idx >>= 1
    return hmac.compare_digest(h, bytes(root))
