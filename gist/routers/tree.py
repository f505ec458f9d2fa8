from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from gist.checkpoint import make_checkpoint, verify_checkpoint
from gist.config import settings
from gist.crypto import ed25519_from_seed_b64, public_jwk
from gist.db import get_db
from gist.deps import get_proofs, get_registry
from gist.proofs import GistProofService
from gist.registry import StateRegistry
from gist.schemas import CheckpointOut, CheckpointVerifyOut, GistProofOut, GistRootInfoOut, LengthOut, RootOut

router = APIRouter(prefix="/gist", tags=["gist"])


@router.get("/root", response_model=RootOut)
def get_gist_root(reg: StateRegistry = Depends(get_registry)):
    return {"root": str(reg.get_gist_root())}


@router.get("/roots/length", response_model=LengthOut)
def get_gist_root_history_length(reg: StateRegistry = Depends(get_registry)):
    return {"length": reg.get_gist_root_history_length()}


@router.get("/roots", response_model=list[GistRootInfoOut])
def get_gist_root_history(start: int = 0, length: int = 1, reg: StateRegistry = Depends(get_registry)):
    return [GistRootInfoOut.from_record(r) for r in reg.get_gist_root_history(start, length)]


@router.get("/roots/at-block/{block_number}", response_model=GistRootInfoOut)
def get_gist_root_info_by_block(block_number: int, reg: StateRegistry = Depends(get_registry)):
    return GistRootInfoOut.from_record(reg.get_gist_root_info_by_block(block_number))


@router.get("/roots/at-time/{timestamp}", response_model=GistRootInfoOut)
def get_gist_root_info_by_time(timestamp: int, reg: StateRegistry = Depends(get_registry)):
    return GistRootInfoOut.from_record(reg.get_gist_root_info_by_time(timestamp))


@router.get("/roots/{root}", response_model=GistRootInfoOut)
def get_gist_root_info(root: int, reg: StateRegistry = Depends(get_registry)):
    return GistRootInfoOut.from_record(reg.get_gist_root_info(root))


@router.get("/proof/{id}", response_model=GistProofOut)
def get_gist_proof(id: int, svc: GistProofService = Depends(get_proofs)):
    p = svc.prove_current(id)
    return GistProofOut.from_proof(p, svc.verify(p))


@router.get("/proof/{id}/at-root/{root}", response_model=GistProofOut)
def get_gist_proof_by_root(id: int, root: int, svc: GistProofService = Depends(get_proofs)):
    p = svc.prove_at_root(id, root)
    return GistProofOut.from_proof(p, svc.verify(p))


@router.get("/proof/{id}/at-block/{block_number}", response_model=GistProofOut)
def get_gist_proof_by_block(id: int, block_number: int, svc: GistProofService = Depends(get_proofs)):
    p = svc.prove_at_block(id, block_number)
    return GistProofOut.from_proof(p, svc.verify(p))


@router.get("/proof/{id}/at-time/{timestamp}", response_model=GistProofOut)
def get_gist_proof_by_time(id: int, timestamp: int, svc: GistProofService = Depends(get_proofs)):
    p = svc.prove_at_time(id, timestamp)
    return GistProofOut.from_proof(p, svc.verify(p))


@router.get("/checkpoint", response_model=CheckpointOut)
def checkpoint(db: Session = Depends(get_db)):
    if not settings.checkpoint_signing_key_b64:
        raise HTTPException(status_code=404, detail="checkpoint_signing_disabled")
    cp = make_checkpoint(db, settings.checkpoint_signing_key_b64)
    if cp is None:
        raise HTTPException(status_code=404, detail="no_gist_root_yet")
    return cp


@router.post("/checkpoint/verify", response_model=CheckpointVerifyOut)
def verify_checkpoint_signature(body: CheckpointOut):
    if not settings.checkpoint_signing_key_b64:
        raise HTTPException(status_code=404, detail="checkpoint_signing_disabled")
    pub = ed25519_from_seed_b64(settings.checkpoint_signing_key_b64).public_key()
    return {"valid": verify_checkpoint(body.model_dump(), pub)}


jwks_router = APIRouter()


@jwks_router.get("/.well-known/gist.jwks.json")
def gist_jwks():
    if not settings.checkpoint_signing_key_b64:
        return {"keys": []}
    pub = ed25519_from_seed_b64(settings.checkpoint_signing_key_b64).public_key()
    return {"keys": [public_jwk(pub)]}
