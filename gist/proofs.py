from __future__ import annotations
from gist.errors import NotFound, UnknownRoot
from gist.registry import StateRegistry
from gist.smt import MerkleProof, verify_proof


class GistProofService:
    """GIST inclusion / non-inclusion proofs at the current or a historical root."""

    def __init__(self, registry: StateRegistry):
        self.registry = registry

    def prove_current(self, identity: int) -> MerkleProof:
        return self.registry.tree().generate_proof(identity)

    def prove_at_root(self, identity: int, root: int) -> MerkleProof:
        try:
            self.registry.roots().find_by_value(root)
        except NotFound:
            raise UnknownRoot(f"root {root} is not in the gist root history") from None
        return self._prove(identity, root)

    def prove_at_block(self, identity: int, block_number: int) -> MerkleProof:
        rec = self.registry.roots().find_by_block(block_number)
        return self._prove(identity, int(rec.root))

    def prove_at_time(self, identity: int, timestamp: int) -> MerkleProof:
        rec = self.registry.roots().find_by_time(timestamp)
        return self._prove(identity, int(rec.root))

    def _prove(self, identity: int, root: int) -> MerkleProof:
        return self.registry.tree(root).generate_proof(identity, root)

    def verify(self, proof: MerkleProof) -> bool:
        return verify_proof(proof, self.registry.hasher)
