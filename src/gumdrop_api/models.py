from __future__ import annotations
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field, field_validator
from pydantic import ConfigDict


class Claimant(BaseModel):
    """One row of the authority's distribution list.

    `handle` is a wallet address (base58) when distributing to wallets, or an
    opaque contact string (email, phone) otherwise. `pin` is normally drawn
    at build time; a preset value is kept so a rebuilt list stays stable.
    """

    model_config = ConfigDict(extra="ignore")

    handle: str
    amount: int = Field(ge=0)
    edition: Optional[int] = Field(default=None, ge=0)
    pin: Optional[int] = Field(default=None, ge=0, lt=2**32)
    url: Optional[str] = None

    @field_validator("handle")
    @classmethod
    def _handle_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("handle must not be blank")
        return v


class ClaimPayload(BaseModel):
    """What a claimant receives out of band: their record, index and proof.

    `pin` is None for wallet claims, where `handle` is the wallet itself.
    Proof entries and keys are base58.
    """

    model_config = ConfigDict(extra="forbid")

    integration: str
    handle: str
    amount: int = Field(ge=0)
    index: int = Field(ge=0)
    pin: Optional[int] = Field(default=None, ge=0, lt=2**32)
    proof: List[str] = Field(default_factory=list)
    target: str
    edition: Optional[int] = Field(default=None, ge=0)
    distributor: Optional[str] = None

    @field_validator("integration")
    @classmethod
    def _known_integration(cls, v: str) -> str:
        if v not in ("transfer", "candy", "edition"):
            raise ValueError("integration must be transfer, candy or edition")
        return v


class DistributionFile(BaseModel):
    """Authority-side record of a built distribution.

    Holds every claimant's PIN, so it must be kept private; claimants only
    ever see their own entry.
    """

    merkle_root_b58: str
    tree_size: int
    integration: str
    hash_config: Dict[str, str]
    claims: List[Dict[str, Any]] = Field(default_factory=list)


class SignedRoot(BaseModel):
    tree_size: int
    merkle_root_b58: str
    hash_algorithm: str
    integration: str
    ts: str
    signer_pubkey_b64: str
    signature_b64: str


class VerifyClaimRequest(BaseModel):
    claim: ClaimPayload
    root: str
    hash_algorithm: str = "sha256"
    leaf_prefix_hex: str = ""
    node_prefix_hex: str = ""
    tree_size: Optional[int] = Field(default=None, ge=1)
