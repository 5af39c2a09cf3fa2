from __future__ import annotations


class GumdropError(ValueError):
    """Base class for distribution build and proof errors."""


class EncodingError(GumdropError):
    """A claim record is missing a field or a field does not fit its width."""


class DuplicateClaimError(EncodingError):
    """The same claim record appears more than once in a distribution."""


class EmptyTreeError(GumdropError):
    pass


class IndexOutOfRangeError(GumdropError, IndexError):
    pass


class MalformedProofError(GumdropError):
    """Proof is structurally unusable (bad hash width, too short for the index).

    A proof that is well formed but does not reach the expected root is not an
    error; verification simply returns False.
    """
