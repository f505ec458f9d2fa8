"""Append-only history logs.

A log is an ordered run of records addressed by ``position``. Appending stamps
the ``replaced_*`` fields of the record it supersedes; nothing else is ever
rewritten and nothing is deleted. Records are created in non-decreasing block
and time order, so the validity interval ``[created_at, replaced_at)`` of any
point can be found by binary search over positions.
"""
from __future__ import annotations
from typing import List, Optional
from sqlalchemy.orm import Session

from gist.errors import DuplicateAdjacentValue, NotFound, OutOfBounds
from gist.models import GistRoot, IdentityHead, StateRecord


class HistoryLog:
    model: type = None
    value_attr: str = ""
    replaced_by_attr: str = ""

    def __init__(self, db: Session, page_limit: int = 1000):
        self.db = db
        self.page_limit = page_limit

    def _query(self):
        return self.db.query(self.model)

    def _new_record(self, value: int, position: int, block: int, timestamp: int):
        raise NotImplementedError

    def latest(self):
        return self._query().order_by(self.model.position.desc()).first()

    def length(self) -> int:
        last = self.latest()
        return 0 if last is None else int(last.position) + 1

    def record_at(self, position: int):
        rec = self._query().filter(self.model.position == position).first()
        if rec is None:
            raise NotFound(f"no record at position {position}")
        return rec

    def append(self, value: int, block: int, timestamp: int):
        prev = self.latest()
        if prev is not None:
            if int(getattr(prev, self.value_attr)) == value:
                raise DuplicateAdjacentValue(f"{self.value_attr} {value} repeats the current record")
            prev.replaced_at_block = block
            prev.replaced_at_time = timestamp
            setattr(prev, self.replaced_by_attr, str(value))
        position = 0 if prev is None else int(prev.position) + 1
        rec = self._new_record(value, position, block, timestamp)
        self.db.add(rec)
        self.db.flush()
        return rec

    def get_range(self, start: int, count: int) -> List:
        if start < 0 or count <= 0:
            raise OutOfBounds("length should be greater than 0")
        if count > self.page_limit:
            raise OutOfBounds(f"length exceeds page limit {self.page_limit}")
        if start + count > self.length():
            raise OutOfBounds("out of bounds of history")
        return (
            self._query()
            .filter(self.model.position >= start, self.model.position < start + count)
            .order_by(self.model.position.asc())
            .all()
        )

    def find_by_value(self, value: int):
        rec = self._query().filter(getattr(self.model, self.value_attr) == str(value)).first()
        if rec is None:
            raise NotFound(f"{self.value_attr} {value} not found")
        return rec

    def find_by_block(self, block: int):
        return self._search("created_at_block", block)

    def find_by_time(self, timestamp: int):
        return self._search("created_at_time", timestamp)

    def _search(self, attr: str, point: int):
        # last record created at or before point
        n = self.length()
        if n == 0:
            raise NotFound("history is empty")
        lo, hi = 0, n - 1
        if getattr(self.record_at(lo), attr) > point:
            raise NotFound(f"no record at or before {point}")
        while lo < hi:
            mid = (lo + hi + 1) // 2
            if getattr(self.record_at(mid), attr) <= point:
                lo = mid
            else:
                hi = mid - 1
        return self.record_at(lo)


class StateHistory(HistoryLog):
    """Per-identity log of states."""

    model = StateRecord
    value_attr = "state"
    replaced_by_attr = "replaced_by_state"

    def __init__(self, db: Session, identity: int, page_limit: int = 1000):
        super().__init__(db, page_limit)
        self.identity = identity

    def _query(self):
        return self.db.query(StateRecord).filter(StateRecord.identity == str(self.identity))

    def _head(self) -> Optional[IdentityHead]:
        return self.db.get(IdentityHead, str(self.identity))

    def exists(self) -> bool:
        return self._head() is not None

    def current(self) -> StateRecord:
        head = self._head()
        if head is None:
            raise NotFound(f"identity {self.identity} does not exist")
        return self.db.get(StateRecord, head.current_record_id)

    def latest(self):
        head = self._head()
        if head is None:
            return None
        return self.db.get(StateRecord, head.current_record_id)

    def length(self) -> int:
        head = self._head()
        return 0 if head is None else int(head.length)

    def append(self, value: int, block: int, timestamp: int):
        rec = super().append(value, block, timestamp)
        head = self._head()
        if head is None:
            head = IdentityHead(identity=str(self.identity), current_record_id=rec.id, length=0)
            self.db.add(head)
        head.current_record_id = rec.id
        head.length = int(rec.position) + 1
        self.db.flush()
        return rec

    def _new_record(self, value, position, block, timestamp):
        return StateRecord(
            identity=str(self.identity),
            position=position,
            state=str(value),
            created_at_block=block,
            created_at_time=timestamp,
        )


class RootHistory(HistoryLog):
    """Global log of GIST roots, one record per committed transition."""

    model = GistRoot
    value_attr = "root"
    replaced_by_attr = "replaced_by_root"

    def _new_record(self, value, position, block, timestamp):
        return GistRoot(
            position=position,
            root=str(value),
            created_at_block=block,
            created_at_time=timestamp,
        )
