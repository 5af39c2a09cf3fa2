#!/usr/bin/env python3
"""Emit Merkle test vectors for checking other verifier implementations.

Writes a JSON document with, per tree size, the leaf hashes, root and every
proof, using the same hasher the distribution tooling is configured with.

Usage:
  python scripts/emit_vectors.py --sizes 1,2,3,4,5,8 --out ./vectors.json
  python scripts/emit_vectors.py --algo keccak256 --leaf-prefix 00 --node-prefix 01
"""

from __future__ import annotations
import argparse
import json
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from gumdrop_api.crypto import B58  # noqa: E402
from gumdrop_api.distribution import DistributionSet  # noqa: E402
from gumdrop_api.hashing import Hasher  # noqa: E402
from gumdrop_api.leaves import TransferLeaf  # noqa: E402


def _records(n: int):
    mint = bytes([0xEE]) * 32
    return [TransferLeaf(i, bytes([i % 256]) * 32, mint, i + 1) for i in range(n)]


def vectors_for(n: int, hasher: Hasher) -> dict:
    dset = DistributionSet.from_records(_records(n), hasher)
    return {
        "size": n,
        "root_hex": dset.root.hex(),
        "root_b58": B58(dset.root),
        "leaves": [
            {
                "index": e.index,
                "encoded_hex": e.record.encode().hex(),
                "leaf_hash_hex": e.leaf_hash.hex(),
                "proof_hex": [p.hex() for p in e.proof],
            }
            for e in dset.entries
        ],
    }


def main() -> int:
    ap = argparse.ArgumentParser()
    ap.add_argument("--sizes", default="1,2,3,4,5,7,8")
    ap.add_argument("--algo", default="sha256")
    ap.add_argument("--leaf-prefix", default="", help="hex")
    ap.add_argument("--node-prefix", default="", help="hex")
    ap.add_argument("--out", default="-")
    args = ap.parse_args()

    try:
        hasher = Hasher(
            args.algo,
            bytes.fromhex(args.leaf_prefix),
            bytes.fromhex(args.node_prefix),
        )
        sizes = [int(s) for s in args.sizes.split(",") if s.strip()]
    except ValueError as e:
        print(f"invalid arguments: {e}", file=sys.stderr)
        return 2

    doc = {
        "hash": hasher.describe(),
        "trees": [vectors_for(n, hasher) for n in sizes],
    }
    text = json.dumps(doc, indent=2)
    if args.out == "-":
        print(text)  # noqa: T201
    else:
        Path(args.out).write_text(text, encoding="utf-8")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
