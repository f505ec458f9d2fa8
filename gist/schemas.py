from pydantic import BaseModel, Field
from typing import List, Optional

from gist.smt import MerkleProof

# Big integers (ids, states, roots, hashes) go out as decimal strings so that
# clients without arbitrary-precision numbers do not truncate them.


class ProofIn(BaseModel):
    a: List[int] = Field(min_length=2, max_length=2)
    b: List[List[int]] = Field(min_length=2, max_length=2)
    c: List[int] = Field(min_length=2, max_length=2)


class TransitionRequest(BaseModel):
    id: int = Field(ge=0)
    old_state: int = Field(default=0, ge=0)
    new_state: int = Field(ge=0)
    is_old_state_genesis: bool
    proof: ProofIn
    block_number: int = Field(ge=0, lt=2**63)
    timestamp: int = Field(ge=0, lt=2**63)


class TransitionOut(BaseModel):
    seq: int
    id: str
    old_state: str
    new_state: str
    is_old_state_genesis: bool
    root: str
    block_number: int
    timestamp: int

    @classmethod
    def from_event(cls, ev):
        return cls(
            seq=int(ev.seq),
            id=ev.identity,
            old_state=ev.old_state,
            new_state=ev.new_state,
            is_old_state_genesis=bool(ev.is_old_state_genesis),
            root=ev.root,
            block_number=int(ev.block_number),
            timestamp=int(ev.timestamp),
        )


class EventsEnvelope(BaseModel):
    items: List[TransitionOut]
    next_cursor: Optional[str]


class StateInfoOut(BaseModel):
    id: str
    state: str
    position: int
    replaced_by_state: Optional[str] = None
    created_at_block: int
    created_at_time: int
    replaced_at_block: Optional[int] = None
    replaced_at_time: Optional[int] = None

    @classmethod
    def from_record(cls, rec):
        return cls(
            id=rec.identity,
            state=rec.state,
            position=int(rec.position),
            replaced_by_state=rec.replaced_by_state,
            created_at_block=int(rec.created_at_block),
            created_at_time=int(rec.created_at_time),
            replaced_at_block=rec.replaced_at_block,
            replaced_at_time=rec.replaced_at_time,
        )


class GistRootInfoOut(BaseModel):
    root: str
    position: int
    replaced_by_root: Optional[str] = None
    created_at_block: int
    created_at_time: int
    replaced_at_block: Optional[int] = None
    replaced_at_time: Optional[int] = None

    @classmethod
    def from_record(cls, rec):
        return cls(
            root=rec.root,
            position=int(rec.position),
            replaced_by_root=rec.replaced_by_root,
            created_at_block=int(rec.created_at_block),
            created_at_time=int(rec.created_at_time),
            replaced_at_block=rec.replaced_at_block,
            replaced_at_time=rec.replaced_at_time,
        )


class GistProofOut(BaseModel):
    root: str
    index: str
    existence: bool
    value: str
    siblings: List[str]
    aux_existence: bool
    aux_index: str
    aux_value: str
    proof_valid: bool

    @classmethod
    def from_proof(cls, p: MerkleProof, valid: bool):
        return cls(
            root=str(p.root),
            index=str(p.index),
            existence=p.existence,
            value=str(p.value),
            siblings=[str(s) for s in p.siblings],
            aux_existence=p.aux_existence,
            aux_index=str(p.aux_index),
            aux_value=str(p.aux_value),
            proof_valid=valid,
        )


class RootOut(BaseModel):
    root: str


class LengthOut(BaseModel):
    length: int


class ExistsOut(BaseModel):
    exists: bool


class CheckpointOut(BaseModel):
    root: str
    history_length: int
    created_at_block: int
    created_at_time: int
    issued_at: str
    kid: str
    signature_b64u: str


class CheckpointVerifyOut(BaseModel):
    valid: bool


class ReplayOut(BaseModel):
    ok: bool
    transitions: int
    root: str
    mismatch_position: Optional[int] = None
    expected_root: Optional[str] = None
    replayed_root: Optional[str] = None
    identities: int = 0
