"""Persistent sparse Merkle tree.

Nodes are content addressed and written once; an update copies the path from
the touched leaf up to a new root, so every earlier root keeps resolving to the
tree it described. Bit ``i`` of a key (least significant first) picks the
child at depth ``i``: 0 goes left, 1 goes right. Leaves sit at the shortest
prefix that separates them from every other key.

    leaf   = H(index, value, 1)
    middle = H(left, right)
    empty  = 0
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Protocol

from gist.errors import DepthExceeded
from gist.hashing import HashEngine

EMPTY = 0
LEAF = "leaf"
MIDDLE = "middle"


def _bit(index: int, depth: int) -> int:
    return (index >> depth) & 1


@dataclass(frozen=True)
class Node:
    hash: int
    kind: str
    left: int = EMPTY
    right: int = EMPTY
    index: int = 0
    value: int = 0


class NodeStore(Protocol):
    def get(self, node_hash: int) -> Optional[Node]: ...

    def put(self, node: Node) -> None: ...


class MemoryNodeStore:
    def __init__(self):
        self._nodes: Dict[int, Node] = {}

    def get(self, node_hash: int) -> Optional[Node]:
        return self._nodes.get(node_hash)

    def put(self, node: Node) -> None:
        self._nodes.setdefault(node.hash, node)

    def __len__(self) -> int:
        return len(self._nodes)


@dataclass
class MerkleProof:
    root: int
    index: int
    existence: bool = False
    value: int = 0
    siblings: List[int] = field(default_factory=list)
    aux_existence: bool = False
    aux_index: int = 0
    aux_value: int = 0

    @property
    def depth(self) -> int:
        # siblings are zero padded; the path ends below the last nonzero one
        d = len(self.siblings)
        while d > 0 and self.siblings[d - 1] == EMPTY:
            d -= 1
        return d


class SparseMerkleTree:
    def __init__(self, store: NodeStore, hasher: HashEngine, max_depth: int = 64, root: int = EMPTY):
        self.store = store
        self.hasher = hasher
        self.max_depth = max_depth
        self.root = root

    def check_index(self, index: int) -> None:
        if index < 0 or index.bit_length() > self.max_depth:
            raise DepthExceeded(f"index needs {index.bit_length()} bits, tree depth is {self.max_depth}")

    def leaf_hash(self, index: int, value: int) -> int:
        return self.hasher.hash([index, value, 1])

    def middle_hash(self, left: int, right: int) -> int:
        return self.hasher.hash([left, right])

    def node(self, node_hash: int) -> Node:
        n = self.store.get(node_hash)
        if n is None:
            raise LookupError(f"smt node {node_hash} missing from store")
        return n

    def _new_leaf(self, index: int, value: int) -> int:
        n = Node(hash=self.leaf_hash(index, value), kind=LEAF, index=index, value=value)
        self.store.put(n)
        return n.hash

    def _new_middle(self, left: int, right: int) -> int:
        n = Node(hash=self.middle_hash(left, right), kind=MIDDLE, left=left, right=right)
        self.store.put(n)
        return n.hash

    def insert_or_update(self, index: int, value: int) -> int:
        """Set leaf ``index`` to ``value`` and return the new root."""
        self.check_index(index)
        self.root = self._add_leaf(index, value, self.root, 0)
        return self.root

    def _add_leaf(self, index: int, value: int, node_hash: int, depth: int) -> int:
        if node_hash == EMPTY:
            return self._new_leaf(index, value)
        n = self.node(node_hash)
        if n.kind == LEAF:
            if n.index == index:
                return self._new_leaf(index, value)
            return self._push_leaf(index, value, n, depth)
        if _bit(index, depth):
            return self._new_middle(n.left, self._add_leaf(index, value, n.right, depth + 1))
        return self._new_middle(self._add_leaf(index, value, n.left, depth + 1), n.right)

    def _push_leaf(self, index: int, value: int, old: Node, depth: int) -> int:
        if depth >= self.max_depth:
            raise DepthExceeded("keys collide on every level of the tree")
        new_bit = _bit(index, depth)
        if new_bit == _bit(old.index, depth):
            child = self._push_leaf(index, value, old, depth + 1)
            return self._new_middle(EMPTY, child) if new_bit else self._new_middle(child, EMPTY)
        leaf = self._new_leaf(index, value)
        return self._new_middle(old.hash, leaf) if new_bit else self._new_middle(leaf, old.hash)

    def generate_proof(self, index: int, root: Optional[int] = None) -> MerkleProof:
        self.check_index(index)
        root = self.root if root is None else root
        proof = MerkleProof(root=root, index=index)
        node_hash = root
        for depth in range(self.max_depth + 1):
            if node_hash == EMPTY:
                break
            n = self.node(node_hash)
            if n.kind == LEAF:
                if n.index == index:
                    proof.existence = True
                    proof.value = n.value
                else:
                    proof.aux_existence = True
                    proof.aux_index = n.index
                    proof.aux_value = n.value
                break
            if _bit(index, depth):
                proof.siblings.append(n.left)
                node_hash = n.right
            else:
                proof.siblings.append(n.right)
                node_hash = n.left
        proof.siblings.extend([EMPTY] * (self.max_depth - len(proof.siblings)))
        return proof

    def get(self, index: int, root: Optional[int] = None) -> Optional[int]:
        p = self.generate_proof(index, root)
        return p.value if p.existence else None

    def leaves(self, root: Optional[int] = None) -> Iterator[Node]:
        stack = [self.root if root is None else root]
        while stack:
            h = stack.pop()
            if h == EMPTY:
                continue
            n = self.node(h)
            if n.kind == LEAF:
                yield n
            else:
                stack.append(n.right)
                stack.append(n.left)


def verify_proof(proof: MerkleProof, hasher: HashEngine) -> bool:
    depth = proof.depth
    if proof.existence:
        cur = hasher.hash([proof.index, proof.value, 1])
    elif proof.aux_existence:
        if proof.aux_index == proof.index:
            return False
        # the other leaf must sit on our path
        if any(_bit(proof.aux_index, i) != _bit(proof.index, i) for i in range(depth)):
            return False
        cur = hasher.hash([proof.aux_index, proof.aux_value, 1])
    else:
        cur = EMPTY
    for i in reversed(range(depth)):
        sib = proof.siblings[i]
        if _bit(proof.index, i):
            cur = hasher.hash([sib, cur])
        else:
            cur = hasher.hash([cur, sib])
    return cur == proof.root
