import random

import pytest
from sqlalchemy import func

from gist.errors import (
    DepthExceeded,
    GenesisButIdentityExists,
    InvalidTransitionProof,
    NonMonotonicClock,
    NotFieldElement,
    NotFound,
    OldStateMismatch,
    OldStateNotGenesisButNoIdentity,
    OutOfBounds,
    StateAlreadyExists,
    ZeroId,
    ZeroNewState,
)
from gist.hashing import FIELD_MODULUS, Sha256FieldHasher
from gist.models import GistRoot, StateRecord, TransitionEvent
from gist.registry import StateRegistry
from gist.smt import MemoryNodeStore, SparseMerkleTree
from gist.verifier import DenyAllVerifier


def counts(db):
    return (
        db.query(func.count(StateRecord.id)).scalar(),
        db.query(func.count(GistRoot.id)).scalar(),
        db.query(func.count(TransitionEvent.seq)).scalar(),
    )


def test_genesis_transition(registry, transit):
    ev = transit(1, 0, 100, True, 5, 1000)
    assert ev.new_state == "100"
    assert registry.id_exists(1)
    assert registry.get_state_history_length(1) == 1
    assert registry.get_state_info(1).state == "100"
    assert registry.get_gist_root_history_length() == 1
    assert registry.get_gist_root_info_by_block(5).root == str(registry.get_gist_root())
    assert registry.get_gist_root() == int(ev.root)


def test_repeated_genesis_hits_state_uniqueness_first(registry, transit, db):
    transit(1, 0, 100, True, 5, 1000)
    before = counts(db)
    with pytest.raises(StateAlreadyExists):
        transit(1, 0, 100, True, 5, 1000)
    assert counts(db) == before


def test_second_transition_replaces_first(registry, transit):
    transit(1, 0, 100, True, 5, 1000)
    transit(1, 100, 200, False, 6, 1012)
    first, second = registry.get_state_history(1, 0, 2)
    assert first.state == "100" and second.state == "200"
    assert (first.replaced_at_block, first.replaced_at_time, first.replaced_by_state) == (6, 1012, "200")
    assert second.replaced_at_block is None
    assert registry.get_gist_root_history_length() == 2
    r0, r1 = registry.get_gist_root_history(0, 2)
    assert r0.replaced_by_root == r1.root


def test_old_state_mismatch(registry, transit, db):
    transit(1, 0, 100, True, 5, 1000)
    before = counts(db)
    with pytest.raises(OldStateMismatch):
        transit(1, 999, 300, False, 6, 1012)
    assert counts(db) == before


def test_input_validation(transit):
    with pytest.raises(ZeroId):
        transit(0, 0, 100, True, 1, 1)
    with pytest.raises(ZeroNewState):
        transit(1, 0, 0, True, 1, 1)
    with pytest.raises(DepthExceeded):
        transit(1 << 64, 0, 100, True, 1, 1)


def test_states_must_be_field_elements(db, transit):
    with pytest.raises(NotFieldElement):
        transit(1, 0, 10**90, True, 1, 1)
    with pytest.raises(NotFieldElement):
        transit(1, 0, FIELD_MODULUS, True, 1, 1)
    transit(1, 0, FIELD_MODULUS - 1, True, 1, 1)
    with pytest.raises(NotFieldElement):
        transit(1, FIELD_MODULUS + 5, 200, False, 2, 2)
    assert counts(db) == (1, 1, 1)


def test_genesis_exclusivity(transit):
    with pytest.raises(OldStateNotGenesisButNoIdentity):
        transit(1, 1, 100, False, 1, 1)
    transit(1, 0, 100, True, 1, 1)
    with pytest.raises(GenesisButIdentityExists):
        transit(1, 0, 101, True, 2, 2)
    # genesis old state is a placeholder and is not checked
    transit(2, 12345, 200, True, 3, 3)


def test_state_values_are_unique_across_identities(transit):
    transit(1, 0, 100, True, 1, 1)
    transit(1, 100, 101, False, 2, 2)
    with pytest.raises(StateAlreadyExists):
        transit(2, 0, 100, True, 3, 3)
    with pytest.raises(StateAlreadyExists):
        transit(2, 0, 101, True, 3, 3)


def test_rejected_proof_mutates_nothing(db, hasher, transit):
    transit(1, 0, 100, True, 1, 1)
    root = StateRegistry(db, hasher).get_gist_root()
    before = counts(db)
    deny = StateRegistry(db, hasher, verifier=DenyAllVerifier())
    with pytest.raises(InvalidTransitionProof):
        transit(1, 100, 200, False, 2, 2, reg=deny)
    assert counts(db) == before
    assert deny.get_gist_root() == root


def test_verifier_failure_counts_as_rejection(db, hasher, transit):
    class Broken:
        def verify(self, public_inputs, proof):
            raise ValueError("malformed proof")

    reg = StateRegistry(db, hasher, verifier=Broken())
    with pytest.raises(InvalidTransitionProof):
        transit(1, 0, 100, True, 1, 1, reg=reg)
    assert counts(db) == (0, 0, 0)


def test_verifier_sees_public_inputs(db, hasher, transit):
    seen = []

    class Recorder:
        def verify(self, public_inputs, proof):
            seen.append(list(public_inputs))
            return True

    reg = StateRegistry(db, hasher, verifier=Recorder())
    transit(7, 0, 70, True, 1, 1, reg=reg)
    transit(7, 70, 71, False, 2, 2, reg=reg)
    assert seen == [[7, 0, 70, 1], [7, 70, 71, 0]]


def test_clock_must_move_forward(transit):
    transit(1, 0, 100, True, 10, 1000)
    with pytest.raises(NonMonotonicClock):
        transit(2, 0, 200, True, 9, 1001)
    with pytest.raises(NonMonotonicClock):
        transit(1, 100, 101, False, 10, 1001)
    # another identity may share the block
    transit(2, 0, 200, True, 10, 1000)
    transit(1, 100, 101, False, 11, 1012)


def test_state_queries(registry, transit):
    transit(1, 0, 100, True, 10, 1000)
    transit(1, 100, 200, False, 20, 2000)
    assert registry.state_exists(1, 100)
    assert not registry.state_exists(2, 100)
    assert registry.get_state_info_by_state(1, 100).replaced_by_state == "200"
    assert registry.get_state_info_by_block(1, 15).state == "100"
    assert registry.get_state_info_by_time(1, 2500).state == "200"
    with pytest.raises(NotFound):
        registry.get_state_info_by_time(1, 999)
    with pytest.raises(NotFound):
        registry.get_state_info(2)
    with pytest.raises(OutOfBounds):
        registry.get_state_history(2, 0, 1)
    assert registry.get_gist_root_info(registry.get_gist_root()).position == 1


def test_head_pins_tree_parameters(db, hasher, registry):
    registry.head()
    db.commit()
    with pytest.raises(RuntimeError):
        StateRegistry(db, hasher, depth=32).head()


def test_history_is_monotonic_and_replays(db, hasher, registry, transit):
    rng = random.Random(11)
    current = {}
    used = set()
    block, ts = 100, 10_000
    for _ in range(80):
        identity = rng.randint(1, 12)
        new = rng.randint(1, 1 << 128)
        if new in used:
            continue
        used.add(new)
        block += rng.randint(1, 3)
        ts += rng.randint(1, 30)
        transit(identity, current.get(identity, 0), new, identity not in current, block, ts)
        current[identity] = new

    for identity in current:
        recs = registry.get_state_history(identity, 0, registry.get_state_history_length(identity))
        for a, b in zip(recs, recs[1:]):
            assert a.created_at_block < b.created_at_block
            assert a.created_at_time < b.created_at_time
            assert a.replaced_at_block == b.created_at_block
        assert recs[-1].state == str(current[identity])

    # rebuilding from the state logs in commit order reproduces every root
    tree = SparseMerkleTree(MemoryNodeStore(), Sha256FieldHasher(), 64)
    records = db.query(StateRecord).order_by(StateRecord.id.asc()).all()
    roots = db.query(GistRoot).order_by(GistRoot.position.asc()).all()
    assert len(records) == len(roots)
    for rec, root in zip(records, roots):
        assert tree.insert_or_update(int(rec.identity), int(rec.state)) == int(root.root)
