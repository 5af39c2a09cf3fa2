"""Canonical leaf encodings, one fixed byte layout per claim variant.

All integers are little-endian and fixed width; all keys are 32 raw bytes.
Variable-length data (handles) never appears in a leaf directly, only via the
pseudo-address derived from it.

    transfer    index u64 | claimant 32 | mint 32        | amount u64
    candy       index u64 | claimant 32 | config 32      | amount u64
    edition     index u64 | claimant 32 | master_mint 32 | amount u64 | edition u64
    ingredient  mint 32   | flags u8
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Optional, Union

from .crypto import PUBKEY_LEN
from .errors import EncodingError
from .hashing import Hasher, resolve

U8_MAX = 2**8 - 1
U64_MAX = 2**64 - 1

# ingredient flag bits
FLAG_NONE = 0x00
FLAG_ALLOW_LIMITED_EDITIONS = 0x02


def _uint(value: Optional[int], width: int, field: str) -> bytes:
    if value is None:
        raise EncodingError(f"{field} is required")
    if isinstance(value, bool) or not isinstance(value, int):
        raise EncodingError(f"{field} must be an integer")
    if value < 0 or value >= 1 << (8 * width):
        raise EncodingError(f"{field} does not fit in {8 * width} bits: {value}")
    return value.to_bytes(width, "little")


def _key(value: Optional[bytes], field: str) -> bytes:
    if value is None:
        raise EncodingError(f"{field} is required")
    if not isinstance(value, (bytes, bytearray)) or len(value) != PUBKEY_LEN:
        raise EncodingError(f"{field} must be {PUBKEY_LEN} bytes")
    return bytes(value)


@dataclass(frozen=True)
class TransferLeaf:
    index: int
    claimant: bytes
    mint: bytes
    amount: int

    kind = "transfer"

    @property
    def target(self) -> bytes:
        return self.mint

    def encode(self) -> bytes:
        return (
            _uint(self.index, 8, "index")
            + _key(self.claimant, "claimant")
            + _key(self.mint, "mint")
            + _uint(self.amount, 8, "amount")
        )


@dataclass(frozen=True)
class CandyLeaf:
    index: int
    claimant: bytes
    config: bytes
    amount: int

    kind = "candy"

    @property
    def target(self) -> bytes:
        return self.config

    def encode(self) -> bytes:
        return (
            _uint(self.index, 8, "index")
            + _key(self.claimant, "claimant")
            + _key(self.config, "config")
            + _uint(self.amount, 8, "amount")
        )


@dataclass(frozen=True)
class EditionLeaf:
    index: int
    claimant: bytes
    master_mint: bytes
    amount: int
    edition: int

    kind = "edition"

    @property
    def target(self) -> bytes:
        return self.master_mint

    def encode(self) -> bytes:
        return (
            _uint(self.index, 8, "index")
            + _key(self.claimant, "claimant")
            + _key(self.master_mint, "master_mint")
            + _uint(self.amount, 8, "amount")
            + _uint(self.edition, 8, "edition")
        )


@dataclass(frozen=True)
class IngredientLeaf:
    """Ownership of `mint` satisfies an ingredient slot of a recipe.

    The leaf position in its tree is the index; it is not part of the leaf.
    """

    mint: bytes
    flags: int = FLAG_NONE

    kind = "ingredient"

    @property
    def allows_limited_editions(self) -> bool:
        return bool(self.flags & FLAG_ALLOW_LIMITED_EDITIONS)

    def encode(self) -> bytes:
        return _key(self.mint, "mint") + _uint(self.flags, 1, "flags")


ClaimLeaf = Union[TransferLeaf, CandyLeaf, EditionLeaf, IngredientLeaf]

LEAF_TYPES = {
    TransferLeaf.kind: TransferLeaf,
    CandyLeaf.kind: CandyLeaf,
    EditionLeaf.kind: EditionLeaf,
    IngredientLeaf.kind: IngredientLeaf,
}

INDEXED_KINDS = frozenset({"transfer", "candy", "edition"})


def encode_leaf(leaf: ClaimLeaf) -> bytes:
    kind = getattr(leaf, "kind", None)
    cls = LEAF_TYPES.get(kind)
    if cls is None or type(leaf) is not cls:
        raise EncodingError(f"unknown leaf variant: {type(leaf).__name__}")
    return leaf.encode()


def leaf_hash(leaf: ClaimLeaf, hasher: Optional[Hasher] = None) -> bytes:
    return resolve(hasher).hash_leaf(encode_leaf(leaf))
