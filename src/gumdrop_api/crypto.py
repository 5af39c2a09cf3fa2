from __future__ import annotations
import base64
import hashlib
from typing import List, Sequence, Tuple

import base58
import nacl.signing
import rfc8785

from .errors import EncodingError

PUBKEY_LEN = 32
MAX_SEED_LEN = 32
MAX_SEEDS = 16
PDA_MARKER = b"ProgramDerivedAddress"

# ed25519 curve constants (edwards25519)
_P = 2**255 - 19
_D = (-121665 * pow(121666, _P - 2, _P)) % _P


def B64(b: bytes) -> str:
    """Base64-encode bytes to ASCII string."""
    return base64.b64encode(b).decode("ascii")


def B64D(s: str) -> bytes:
    """Decode base64 ASCII string to bytes with strict validation."""
    try:
        return base64.b64decode(s.encode("ascii"), validate=True)
    except Exception as e:
        raise ValueError("invalid base64") from e


def B58(b: bytes) -> str:
    return base58.b58encode(b).decode("ascii")


def B58D(s: str) -> bytes:
    try:
        return base58.b58decode(s)
    except Exception as e:
        raise ValueError("invalid base58") from e


def parse_pubkey(value, field: str = "key") -> bytes:
    """Accept a base58 string or raw bytes and return a 32-byte key."""
    if value is None:
        raise EncodingError(f"{field} is required")
    if isinstance(value, str):
        try:
            value = B58D(value)
        except ValueError as e:
            raise EncodingError(f"{field} is not valid base58") from e
    if not isinstance(value, (bytes, bytearray)):
        raise EncodingError(f"{field} must be bytes or base58 text")
    if len(value) != PUBKEY_LEN:
        raise EncodingError(f"{field} must be {PUBKEY_LEN} bytes, got {len(value)}")
    return bytes(value)


def sha256(data: bytes) -> bytes:
    return hashlib.sha256(data).digest()


def jcs_dumps(obj) -> bytes:
    """Deterministic canonical JSON bytes per RFC8785."""
    return rfc8785.dumps(obj)


def ed25519_generate() -> Tuple[bytes, bytes]:
    sk = nacl.signing.SigningKey.generate()
    pk = sk.verify_key
    return (sk.encode(), pk.encode())


def ed25519_sign(sk_bytes: bytes, data: bytes) -> bytes:
    sk = nacl.signing.SigningKey(sk_bytes)
    sig = sk.sign(data).signature
    return sig


def ed25519_verify(pk_bytes: bytes, data: bytes, signature: bytes) -> bool:
    vk = nacl.signing.VerifyKey(pk_bytes)
    try:
        vk.verify(data, signature)
        return True
    except Exception:
        return False


def is_on_curve(b: bytes) -> bool:
    """True if `b` decompresses to an edwards25519 point.

    Same acceptance rule as the chain runtime: the sign bit is ignored and
    y is reduced mod p; the point is valid iff (y^2 - 1) / (d*y^2 + 1) is a
    square. Subgroup membership is not checked.
    """
    if len(b) != PUBKEY_LEN:
        return False
    y = (int.from_bytes(b, "little") & ((1 << 255) - 1)) % _P
    yy = y * y % _P
    u = (yy - 1) % _P
    v = (_D * yy + 1) % _P
    x2 = u * pow(v, _P - 2, _P) % _P
    return x2 == 0 or pow(x2, (_P - 1) // 2, _P) == 1


def _check_seeds(seeds: Sequence[bytes]) -> None:
    if len(seeds) > MAX_SEEDS:
        raise EncodingError(f"too many seeds: {len(seeds)} > {MAX_SEEDS}")
    for s in seeds:
        if len(s) > MAX_SEED_LEN:
            raise EncodingError(f"seed longer than {MAX_SEED_LEN} bytes")


def find_program_address(
    seeds: Sequence[bytes], program_id: bytes
) -> Tuple[bytes, int]:
    """Return (address, bump) for the first off-curve bump from 255 down."""
    _check_seeds(list(seeds) + [b"\xff"])
    prefix = b"".join(seeds)
    for bump in range(255, -1, -1):
        h = sha256(prefix + bytes([bump]) + program_id + PDA_MARKER)
        if not is_on_curve(h):
            return h, bump
    raise EncodingError("unable to find a viable program address bump")


def pseudo_address_seeds(seed: bytes, handle: str, pin: int) -> List[bytes]:
    """Seeds binding a claim to (distribution seed, handle, PIN).

    The handle is split into 32-byte chunks; the PIN is a u32 little-endian.
    """
    if handle is None or handle == "":
        raise EncodingError("handle is required")
    if pin is None:
        raise EncodingError("pin is required")
    if not 0 <= pin < 2**32:
        raise EncodingError(f"pin out of u32 range: {pin}")
    raw = handle.encode("utf-8")
    chunks = [raw[i : i + MAX_SEED_LEN] for i in range(0, len(raw), MAX_SEED_LEN)]
    return [parse_pubkey(seed, "seed"), *chunks, pin.to_bytes(4, "little")]


def derive_pseudo_address(
    seed: bytes, handle: str, pin: int, program_id: bytes
) -> bytes:
    seeds = pseudo_address_seeds(seed, handle, pin)
    address, _bump = find_program_address(seeds, parse_pubkey(program_id, "program_id"))
    return address
