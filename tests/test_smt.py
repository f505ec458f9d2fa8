import random

import pytest

from gist.errors import DepthExceeded
from gist.hashing import PoseidonHasher, Sha256FieldHasher
from gist.smt import EMPTY, MemoryNodeStore, MerkleProof, SparseMerkleTree, verify_proof

H = Sha256FieldHasher()


def new_tree(depth=64):
    return SparseMerkleTree(MemoryNodeStore(), H, depth)


def test_empty_tree_proves_absence():
    t = new_tree()
    assert t.root == EMPTY
    p = t.generate_proof(7)
    assert not p.existence and not p.aux_existence
    assert len(p.siblings) == 64
    assert verify_proof(p, H)


def test_single_leaf_is_the_root():
    t = new_tree()
    root = t.insert_or_update(1, 100)
    assert root == H.hash([1, 100, 1])
    p = t.generate_proof(1)
    assert p.existence and p.value == 100
    assert p.depth == 0
    assert verify_proof(p, H)


def test_absent_index_next_to_leaf_gives_aux_proof():
    t = new_tree()
    t.insert_or_update(1, 100)
    p = t.generate_proof(3)
    assert not p.existence
    assert p.aux_existence and p.aux_index == 1 and p.aux_value == 100
    assert verify_proof(p, H)


def test_absent_index_in_empty_subtree():
    t = new_tree()
    t.insert_or_update(0b01, 10)
    t.insert_or_update(0b11, 30)
    # bit 0 of 2 is 0, the left subtree of the root is empty
    p = t.generate_proof(0b10)
    assert not p.existence and not p.aux_existence
    assert p.depth == 1
    assert verify_proof(p, H)


def test_every_inserted_leaf_proves_and_others_do_not():
    t = new_tree()
    rng = random.Random(5)
    keys = rng.sample(range(1, 1 << 20), 60)
    for k in keys:
        t.insert_or_update(k, k * 7 + 1)
    for k in keys:
        p = t.generate_proof(k)
        assert p.existence and p.value == k * 7 + 1
        assert verify_proof(p, H)
    for k in rng.sample(range(1 << 20, 1 << 21), 20):
        p = t.generate_proof(k)
        assert not p.existence
        assert verify_proof(p, H)


def test_root_does_not_depend_on_insertion_order():
    items = [(5, 50), (9, 90), (1 << 40, 3), (17, 170), (2, 20)]
    a, b = new_tree(), new_tree()
    for k, v in items:
        a.insert_or_update(k, v)
    for k, v in reversed(items):
        b.insert_or_update(k, v)
    assert a.root == b.root


def test_old_roots_stay_queryable():
    t = new_tree()
    t.insert_or_update(1, 100)
    t.insert_or_update(2, 5)
    r1 = t.root
    t.insert_or_update(1, 200)
    r2 = t.root
    assert r1 != r2
    assert t.get(1, r1) == 100
    assert t.get(1, r2) == 200
    assert t.get(1) == 200
    p_old = t.generate_proof(1, r1)
    assert p_old.root == r1 and p_old.value == 100
    assert verify_proof(p_old, H)


def test_leaves_diverging_on_the_last_bit():
    t = new_tree(depth=8)
    t.insert_or_update(0b00000001, 1)
    t.insert_or_update(0b10000001, 2)
    p = t.generate_proof(0b10000001)
    assert p.existence
    assert p.depth == 8
    assert verify_proof(p, H)
    assert sorted(n.index for n in t.leaves()) == [0b00000001, 0b10000001]


def test_depth_exceeded():
    t = new_tree(depth=8)
    with pytest.raises(DepthExceeded):
        t.insert_or_update(1 << 8, 1)
    with pytest.raises(DepthExceeded):
        t.insert_or_update(-1, 1)
    with pytest.raises(DepthExceeded):
        t.generate_proof(1 << 9)
    t.insert_or_update((1 << 8) - 1, 1)


def test_tampered_proofs_are_rejected():
    t = new_tree()
    for k in (3, 4, 12):
        t.insert_or_update(k, k + 1000)
    p = t.generate_proof(4)
    p.value = 9999
    assert not verify_proof(p, H)

    bad_aux = MerkleProof(root=t.root, index=5, aux_existence=True, aux_index=5, aux_value=1, siblings=[0] * 64)
    assert not verify_proof(bad_aux, H)

    p = t.generate_proof(12)
    p.siblings[0] += 1
    assert not verify_proof(p, H)


def test_unchanged_value_keeps_root():
    t = new_tree()
    t.insert_or_update(8, 1)
    r = t.root
    assert t.insert_or_update(8, 1) == r


def test_poseidon_tree_proofs():
    ph = PoseidonHasher()
    t = SparseMerkleTree(MemoryNodeStore(), ph, 8)
    t.insert_or_update(1, 100)
    root = t.insert_or_update(3, 300)
    # both keys go right on bit 0 and split on bit 1
    assert root == ph.hash([EMPTY, ph.hash([ph.hash([1, 100, 1]), ph.hash([3, 300, 1])])])
    for index in (1, 3, 2):
        assert verify_proof(t.generate_proof(index), ph)
    assert t.generate_proof(3).value == 300
