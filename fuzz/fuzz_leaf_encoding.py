"""Fuzz harness for leaf encoding and distribution build.

Arbitrary bytes become edition claims; encoding must either produce the fixed
88-byte layout or raise EncodingError, and every built proof must verify.
"""
from __future__ import annotations
import atheris
import sys

with atheris.instrument_imports():
    from gumdrop_api.distribution import DistributionSet
    from gumdrop_api.errors import EncodingError
    from gumdrop_api.leaves import EditionLeaf, encode_leaf


def TestOneInput(data: bytes):  # noqa: N802
    fdp = atheris.FuzzedDataProvider(data)
    n = fdp.ConsumeIntInRange(1, 12)
    master = fdp.ConsumeBytes(32)
    records = []
    for i in range(n):
        rec = EditionLeaf(
            index=i,
            claimant=fdp.ConsumeBytes(32),
            master_mint=master,
            amount=fdp.ConsumeIntInRange(0, 2**65),
            edition=fdp.ConsumeIntInRange(0, 2**64 - 1),
        )
        try:
            if len(encode_leaf(rec)) != 88:
                raise RuntimeError("edition leaf has wrong width")
        except EncodingError:
            return
        records.append(rec)
    try:
        dset = DistributionSet.from_records(records)
    except EncodingError:
        return
    for i in range(dset.size):
        if not dset.verify(i):
            raise RuntimeError("distribution proof failed")


def main():
    atheris.Setup(sys.argv, TestOneInput, enable_python_coverage=True)
    atheris.Fuzz()


if __name__ == "__main__":
    main()
