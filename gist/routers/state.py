import logging
from fastapi import APIRouter, Depends, HTTPException

from gist.config import settings
from gist.deps import get_registry
from gist.errors import GistError
from gist.metrics import ROOTS, TRANSITIONS
from gist.registry import WRITER_LOCK, StateRegistry
from gist.schemas import (
    EventsEnvelope,
    ExistsOut,
    LengthOut,
    StateInfoOut,
    TransitionOut,
    TransitionRequest,
)
from gist.verifier import Groth16Proof

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/state", tags=["state"])


@router.post("/transitions", response_model=TransitionOut)
def transit_state(body: TransitionRequest, reg: StateRegistry = Depends(get_registry)):
    proof = Groth16Proof(a=body.proof.a, b=body.proof.b, c=body.proof.c)
    with WRITER_LOCK:
        try:
            ev = reg.transit_state(
                identity=body.id,
                old_state=body.old_state,
                new_state=body.new_state,
                is_old_state_genesis=body.is_old_state_genesis,
                proof=proof,
                block_number=body.block_number,
                timestamp=body.timestamp,
            )
            out = TransitionOut.from_event(ev)
            reg.db.commit()
        except GistError as e:
            reg.db.rollback()
            TRANSITIONS.labels(outcome=e.code).inc()
            logger.info("transition rejected id=%s: %s", body.id, e.code)
            raise
        except Exception:
            reg.db.rollback()
            TRANSITIONS.labels(outcome="error").inc()
            raise
    TRANSITIONS.labels(outcome="committed").inc()
    ROOTS.set(reg.get_gist_root_history_length())
    return out


@router.get("/events", response_model=EventsEnvelope)
def export_events(cursor: str | None = None, limit: int = 500, reg: StateRegistry = Depends(get_registry)):
    if limit < 1 or limit > settings.export_limit:
        raise HTTPException(status_code=400, detail="bad_limit")
    cseq = None
    if cursor:
        try:
            cseq = int(cursor)
        except ValueError:
            raise HTTPException(status_code=400, detail="bad_cursor")
    items, next_cursor = reg.export_events(cseq, limit)
    return {"items": [TransitionOut.from_event(ev) for ev in items], "next_cursor": next_cursor}


@router.get("/{id}", response_model=StateInfoOut)
def get_state_info(id: int, reg: StateRegistry = Depends(get_registry)):
    return StateInfoOut.from_record(reg.get_state_info(id))


@router.get("/{id}/exists", response_model=ExistsOut)
def id_exists(id: int, reg: StateRegistry = Depends(get_registry)):
    return {"exists": reg.id_exists(id)}


@router.get("/{id}/history/length", response_model=LengthOut)
def get_state_history_length(id: int, reg: StateRegistry = Depends(get_registry)):
    return {"length": reg.get_state_history_length(id)}


@router.get("/{id}/history", response_model=list[StateInfoOut])
def get_state_history(id: int, start: int = 0, length: int = 1, reg: StateRegistry = Depends(get_registry)):
    return [StateInfoOut.from_record(r) for r in reg.get_state_history(id, start, length)]


@router.get("/{id}/states/{state}", response_model=StateInfoOut)
def get_state_info_by_state(id: int, state: int, reg: StateRegistry = Depends(get_registry)):
    return StateInfoOut.from_record(reg.get_state_info_by_state(id, state))


@router.get("/{id}/states/{state}/exists", response_model=ExistsOut)
def state_exists(id: int, state: int, reg: StateRegistry = Depends(get_registry)):
    return {"exists": reg.state_exists(id, state)}


@router.get("/{id}/at-block/{block_number}", response_model=StateInfoOut)
def get_state_info_by_block(id: int, block_number: int, reg: StateRegistry = Depends(get_registry)):
    return StateInfoOut.from_record(reg.get_state_info_by_block(id, block_number))


@router.get("/{id}/at-time/{timestamp}", response_model=StateInfoOut)
def get_state_info_by_time(id: int, timestamp: int, reg: StateRegistry = Depends(get_registry)):
    return StateInfoOut.from_record(reg.get_state_info_by_time(id, timestamp))
