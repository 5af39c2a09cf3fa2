from __future__ import annotations
import datetime
import logging
from fastapi import FastAPI, HTTPException

from gumdrop_sdk.verify import verify_claim

from .hashing import Hasher
from .models import SignedRoot, VerifyClaimRequest
from .roots import signed_root_valid
from .middleware.size_limit import SizeLimitMiddleware

logger = logging.getLogger(__name__)

app = FastAPI(title="Gumdrop claim verifier")
app.add_middleware(SizeLimitMiddleware)


@app.get("/healthz")
async def healthz():
    return {"ok": True, "ts": datetime.datetime.now(datetime.timezone.utc).isoformat()}


@app.post("/claims/verify")
async def claims_verify(req: VerifyClaimRequest):
    # a root mismatch is a normal negative answer; only unusable input is a 400
    try:
        hasher = Hasher(
            algorithm=req.hash_algorithm,
            leaf_prefix=bytes.fromhex(req.leaf_prefix_hex),
            node_prefix=bytes.fromhex(req.node_prefix_hex),
        )
        ok = verify_claim(req.claim, req.root, hasher, tree_size=req.tree_size)
    except ValueError as e:
        logger.info("rejecting malformed claim index=%d: %s", req.claim.index, e)
        raise HTTPException(status_code=400, detail=str(e))
    return {"valid": bool(ok)}


@app.post("/roots/verify")
async def roots_verify(signed_root: SignedRoot):
    return {"signature_valid": signed_root_valid(signed_root.model_dump())}
