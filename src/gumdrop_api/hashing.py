from __future__ import annotations
import hashlib
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from eth_utils import keccak


def _sha256(b: bytes) -> bytes:
    return hashlib.sha256(b).digest()


def _keccak256(b: bytes) -> bytes:
    return keccak(b)


ALGORITHMS: Dict[str, Callable[[bytes], bytes]] = {
    "sha256": _sha256,
    "keccak256": _keccak256,
}


@dataclass(frozen=True)
class Hasher:
    """256-bit hash used for leaves and internal nodes.

    Leaf hash:     H(leaf_prefix + encoded_leaf)
    Internal hash: H(node_prefix + left + right)

    Both prefixes default to empty; pass b"\\x00" / b"\\x01" for leaf/node
    domain separation. Builder and verifier must use the same Hasher.
    """

    algorithm: str = "sha256"
    leaf_prefix: bytes = b""
    node_prefix: bytes = b""

    digest_size = 32

    def __post_init__(self):
        if self.algorithm not in ALGORITHMS:
            raise ValueError(f"unsupported hash algorithm: {self.algorithm}")

    def digest(self, data: bytes) -> bytes:
        return ALGORITHMS[self.algorithm](data)

    def hash_leaf(self, encoded: bytes) -> bytes:
        return self.digest(self.leaf_prefix + encoded)

    def hash_node(self, left: bytes, right: bytes) -> bytes:
        return self.digest(self.node_prefix + left + right)

    def describe(self) -> Dict[str, str]:
        return {
            "algorithm": self.algorithm,
            "leaf_prefix_hex": self.leaf_prefix.hex(),
            "node_prefix_hex": self.node_prefix.hex(),
        }

    @classmethod
    def from_description(cls, d: Dict[str, str]) -> "Hasher":
        return cls(
            algorithm=d.get("algorithm", "sha256"),
            leaf_prefix=bytes.fromhex(d.get("leaf_prefix_hex", "")),
            node_prefix=bytes.fromhex(d.get("node_prefix_hex", "")),
        )

    @classmethod
    def from_settings(cls, s=None) -> "Hasher":
        if s is None:
            from .settings import settings as s
        return cls(
            algorithm=s.hash_algorithm,
            leaf_prefix=bytes.fromhex(s.leaf_prefix_hex),
            node_prefix=bytes.fromhex(s.node_prefix_hex),
        )


DEFAULT_HASHER = Hasher()


def resolve(hasher: Optional[Hasher]) -> Hasher:
    return DEFAULT_HASHER if hasher is None else hasher
