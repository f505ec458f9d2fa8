"""Replay audit.

Rebuilds the tree in memory from the transition log, in commit order, and
checks that every intermediate root equals the recorded gist root at the same
position, then that the rebuilt leaves are the current state of every identity.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Optional
from sqlalchemy.orm import Session

from gist.hashing import HashEngine
from gist.models import GistRoot, IdentityHead, StateRecord, TransitionEvent
from gist.smt import MemoryNodeStore, SparseMerkleTree

logger = logging.getLogger(__name__)


@dataclass
class ReplayReport:
    ok: bool
    transitions: int
    root: int
    mismatch_position: Optional[int] = None
    expected_root: Optional[int] = None
    replayed_root: Optional[int] = None
    identities: int = 0


def replay(db: Session, hasher: HashEngine, depth: int) -> ReplayReport:
    tree = SparseMerkleTree(MemoryNodeStore(), hasher, depth)
    events = db.query(TransitionEvent).order_by(TransitionEvent.seq.asc()).yield_per(500)
    roots = db.query(GistRoot).order_by(GistRoot.position.asc()).yield_per(500)
    n = 0
    for n, (ev, rec) in enumerate(zip(events, roots), start=1):
        got = tree.insert_or_update(int(ev.identity), int(ev.new_state))
        if got != int(rec.root) or got != int(ev.root):
            logger.error("replay diverged at position %s: recorded=%s replayed=%s", rec.position, rec.root, got)
            return ReplayReport(
                ok=False,
                transitions=n,
                root=got,
                mismatch_position=int(rec.position),
                expected_root=int(rec.root),
                replayed_root=got,
            )
    total_roots = db.query(GistRoot).count()
    total_events = db.query(TransitionEvent).count()
    if total_roots != total_events:
        logger.error("root history has %s records but %s transitions were logged", total_roots, total_events)
        return ReplayReport(ok=False, transitions=n, root=tree.root, mismatch_position=n)

    # the replayed leaves must be exactly the current state of every identity
    current = {
        int(head.identity): int(rec.state)
        for head, rec in db.query(IdentityHead, StateRecord).join(
            StateRecord, StateRecord.id == IdentityHead.current_record_id
        )
    }
    leaves = {leaf.index: leaf.value for leaf in tree.leaves()}
    if leaves != current:
        logger.error("replayed tree holds %s identities, state log has %s current states", len(leaves), len(current))
        return ReplayReport(ok=False, transitions=n, root=tree.root, identities=len(leaves))
    return ReplayReport(ok=True, transitions=n, root=tree.root, identities=len(leaves))
