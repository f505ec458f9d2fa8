"""State registry: the transition state machine and its read-only query surface.

Per identity: Nonexistent -> Genesis -> Active (-> Active ...). A transition is
validated against the history logs, then handed to the verifier, and only then
applied to the tree and both logs. Callers commit the session after a
successful ``transit_state`` and roll it back on any error.
"""
from __future__ import annotations
import datetime as dt
import logging
import threading
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from gist.errors import (
    GenesisButIdentityExists,
    InvalidTransitionProof,
    NonMonotonicClock,
    NotFieldElement,
    OldStateMismatch,
    OldStateNotGenesisButNoIdentity,
    OutOfBounds,
    StateAlreadyExists,
    ZeroId,
    ZeroNewState,
)
from gist.hashing import FIELD_MODULUS, HashEngine
from gist.history import RootHistory, StateHistory
from gist.models import GistHead, GistRoot, StateRecord, TransitionEvent
from gist.nodes import SqlNodeStore
from gist.smt import EMPTY, SparseMerkleTree
from gist.verifier import DenyAllVerifier, Groth16Proof, Verifier

logger = logging.getLogger(__name__)

# one writer at a time; the gist_head row lock covers multi-process deployments
WRITER_LOCK = threading.Lock()


class StateRegistry:
    def __init__(
        self,
        db: Session,
        hasher: HashEngine,
        depth: int = 64,
        verifier: Optional[Verifier] = None,
        page_limit: int = 1000,
    ):
        self.db = db
        self.hasher = hasher
        self.depth = depth
        self.verifier = verifier if verifier is not None else DenyAllVerifier()
        self.page_limit = page_limit

    # ---- plumbing ----

    def head(self, for_update: bool = False) -> GistHead:
        q = self.db.query(GistHead).filter(GistHead.id == 1)
        if for_update:
            q = q.with_for_update()
        row = q.first()
        if row is None:
            row = GistHead(id=1, root=str(EMPTY), depth=self.depth, hash_engine=self.hasher.name, size=0)
            self.db.add(row)
            self.db.flush()
            logger.info("initialized gist head depth=%s hash_engine=%s", self.depth, self.hasher.name)
        elif row.depth != self.depth or row.hash_engine != self.hasher.name:
            raise RuntimeError(
                f"tree was built with depth={row.depth} hash_engine={row.hash_engine}, "
                f"configured depth={self.depth} hash_engine={self.hasher.name}"
            )
        return row

    def tree(self, root: Optional[int] = None) -> SparseMerkleTree:
        if root is None:
            root = int(self.head().root)
        return SparseMerkleTree(SqlNodeStore(self.db), self.hasher, self.depth, root=root)

    def states(self, identity: int) -> StateHistory:
        return StateHistory(self.db, identity, self.page_limit)

    def roots(self) -> RootHistory:
        return RootHistory(self.db, self.page_limit)

    # ---- writer ----

    def transit_state(
        self,
        identity: int,
        old_state: int,
        new_state: int,
        is_old_state_genesis: bool,
        proof: Groth16Proof,
        block_number: int,
        timestamp: int,
    ) -> TransitionEvent:
        if identity == 0:
            raise ZeroId("ID should not be zero")
        if new_state == 0:
            raise ZeroNewState("new state should not be zero")
        for name, value in (("old state", old_state), ("new state", new_state)):
            if not 0 <= value < FIELD_MODULUS:
                raise NotFieldElement(f"{name} is not an element of the hash field")

        head = self.head(for_update=True)
        tree = self.tree(int(head.root))
        tree.check_index(identity)

        states = self.states(identity)
        if self.db.query(StateRecord.id).filter(StateRecord.state == str(new_state)).first() is not None:
            raise StateAlreadyExists("new state already exists")

        if is_old_state_genesis:
            if states.exists():
                raise GenesisButIdentityExists("old state is genesis but identity already exists")
        else:
            if not states.exists():
                raise OldStateNotGenesisButNoIdentity("old state is not genesis but identity does not yet exist")
            current = states.current()
            if int(current.state) != old_state:
                raise OldStateMismatch("old state does not match the latest state")

        roots = self.roots()
        self._check_clock(states, roots, block_number, timestamp)

        public_inputs = [identity, old_state, new_state, int(bool(is_old_state_genesis))]
        try:
            ok = bool(self.verifier.verify(public_inputs, proof))
        except Exception:
            logger.warning("verifier raised for id=%s new_state=%s", identity, new_state, exc_info=True)
            ok = False
        if not ok:
            raise InvalidTransitionProof("zero-knowledge proof of state transition is not valid")

        new_root = tree.insert_or_update(identity, new_state)
        states.append(new_state, block_number, timestamp)
        roots.append(new_root, block_number, timestamp)

        head.root = str(new_root)
        head.size = int(head.size) + 1
        head.updated_at = dt.datetime.now(dt.timezone.utc)

        ev = TransitionEvent(
            identity=str(identity),
            old_state=str(old_state),
            new_state=str(new_state),
            is_old_state_genesis=bool(is_old_state_genesis),
            root=str(new_root),
            block_number=block_number,
            timestamp=timestamp,
        )
        self.db.add(ev)
        self.db.flush()
        logger.info(
            "state transition id=%s new_state=%s genesis=%s root=%s block=%s",
            identity, new_state, bool(is_old_state_genesis), new_root, block_number,
        )
        return ev

    def _check_clock(self, states: StateHistory, roots: RootHistory, block_number: int, timestamp: int):
        if block_number < 0 or timestamp < 0:
            raise NonMonotonicClock("block number and timestamp must be non-negative")
        last_root = roots.latest()
        if last_root is not None and (
            block_number < last_root.created_at_block or timestamp < last_root.created_at_time
        ):
            raise NonMonotonicClock("clock is behind the current gist root")
        last_state = states.latest()
        if last_state is not None and (
            block_number <= last_state.created_at_block or timestamp <= last_state.created_at_time
        ):
            raise NonMonotonicClock("identity already transitioned at this block or time")

    # ---- identity state queries ----

    def id_exists(self, identity: int) -> bool:
        return self.states(identity).exists()

    def state_exists(self, identity: int, state: int) -> bool:
        return (
            self.db.query(StateRecord.id)
            .filter(StateRecord.identity == str(identity), StateRecord.state == str(state))
            .first()
            is not None
        )

    def get_state_info(self, identity: int) -> StateRecord:
        return self.states(identity).current()

    def get_state_history_length(self, identity: int) -> int:
        return self.states(identity).length()

    def get_state_history(self, identity: int, start: int, count: int) -> List[StateRecord]:
        return self.states(identity).get_range(start, count)

    def get_state_info_by_state(self, identity: int, state: int) -> StateRecord:
        return self.states(identity).find_by_value(state)

    def get_state_info_by_block(self, identity: int, block_number: int) -> StateRecord:
        return self.states(identity).find_by_block(block_number)

    def get_state_info_by_time(self, identity: int, timestamp: int) -> StateRecord:
        return self.states(identity).find_by_time(timestamp)

    # ---- gist root queries ----

    def get_gist_root(self) -> int:
        return int(self.head().root)

    def get_gist_root_history_length(self) -> int:
        return self.roots().length()

    def get_gist_root_history(self, start: int, count: int) -> List[GistRoot]:
        return self.roots().get_range(start, count)

    def get_gist_root_info(self, root: int) -> GistRoot:
        return self.roots().find_by_value(root)

    def get_gist_root_info_by_block(self, block_number: int) -> GistRoot:
        return self.roots().find_by_block(block_number)

    def get_gist_root_info_by_time(self, timestamp: int) -> GistRoot:
        return self.roots().find_by_time(timestamp)

    # ---- event export ----

    def export_events(self, cursor: Optional[int], limit: int) -> Tuple[List[TransitionEvent], Optional[str]]:
        if limit < 1:
            raise OutOfBounds("limit should be greater than 0")
        q = self.db.query(TransitionEvent).order_by(TransitionEvent.seq.asc())
        if cursor is not None:
            q = q.filter(TransitionEvent.seq > cursor)
        items = q.limit(limit).all()
        if not items:
            return [], None
        return items, str(items[-1].seq)
