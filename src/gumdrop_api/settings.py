from __future__ import annotations
from pydantic_settings import BaseSettings
from pydantic import Field

GUMDROP_PROGRAM_ID = "gdrpGjVffourzkdDRrQmySw4aTHr8a3xmQzzxSwFD1a"


class Settings(BaseSettings):
    # Tree hashing; must match whatever program verifies the claims
    hash_algorithm: str = Field(default="sha256", alias="GUMDROP_HASH_ALGORITHM")
    leaf_prefix_hex: str = Field(default="", alias="GUMDROP_LEAF_PREFIX_HEX")
    node_prefix_hex: str = Field(default="", alias="GUMDROP_NODE_PREFIX_HEX")

    # Program that owns pseudo-address (PDA) claimants
    program_id: str = Field(default=GUMDROP_PROGRAM_ID, alias="GUMDROP_PROGRAM_ID")

    storage_dir: str = Field(default="./storage", alias="GUMDROP_STORAGE_DIR")
    signing_key_path: str = Field(
        default="./keys/ed25519_private.key", alias="GUMDROP_SIGNING_KEY_PATH"
    )
    signing_pubkey_path: str = Field(
        default="./keys/ed25519_public.key", alias="GUMDROP_SIGNING_PUBKEY_PATH"
    )

    claim_host: str = Field(
        default="https://lwus.github.io/gumdrop/", alias="GUMDROP_CLAIM_HOST"
    )

    # Global request size limit enforced by middleware (bytes)
    max_request_bytes: int = Field(default=262144, alias="GUMDROP_MAX_REQUEST_BYTES")

    log_level: str = Field(default="INFO", alias="GUMDROP_LOG_LEVEL")

    class Config:
        env_file = ".env"
        case_sensitive = False


settings = Settings()  # load at import
