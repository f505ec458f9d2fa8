from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from gist.config import settings
from gist.db import get_db
from gist.deps import get_hasher
from gist.hashing import HashEngine
from gist.replay import replay
from gist.schemas import ReplayOut

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/replay", response_model=ReplayOut)
def replay_audit(db: Session = Depends(get_db), hasher: HashEngine = Depends(get_hasher)):
    r = replay(db, hasher, settings.smt_depth)
    return {
        "ok": r.ok,
        "transitions": r.transitions,
        "root": str(r.root),
        "mismatch_position": r.mismatch_position,
        "expected_root": None if r.expected_root is None else str(r.expected_root),
        "replayed_root": None if r.replayed_root is None else str(r.replayed_root),
        "identities": r.identities,
    }
