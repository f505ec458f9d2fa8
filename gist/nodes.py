from __future__ import annotations
from typing import Dict, Optional
from sqlalchemy.orm import Session

from gist.models import SmtNode
from gist.smt import Node


class SqlNodeStore:
    """NodeStore over the smt_nodes table, scoped to one session."""

    def __init__(self, db: Session):
        self.db = db
        # nodes added in this session but not flushed yet
        self._pending: Dict[int, Node] = {}

    def get(self, node_hash: int) -> Optional[Node]:
        if node_hash in self._pending:
            return self._pending[node_hash]
        row = self.db.get(SmtNode, str(node_hash))
        if row is None:
            return None
        return Node(
            hash=int(row.hash),
            kind=row.kind,
            left=int(row.left),
            right=int(row.right),
            index=int(row.index),
            value=int(row.value),
        )

    def put(self, node: Node) -> None:
        # identical content means identical row
        if self.get(node.hash) is not None:
            return
        self._pending[node.hash] = node
        self.db.add(SmtNode(
            hash=str(node.hash),
            kind=node.kind,
            left=str(node.left),
            right=str(node.right),
            index=str(node.index),
            value=str(node.value),
        ))
