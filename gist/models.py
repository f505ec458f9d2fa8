import datetime as dt
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy import String, Integer, BigInteger, Boolean, DateTime, UniqueConstraint, Index

# SQLite only autoincrements INTEGER PRIMARY KEY
BigId = BigInteger().with_variant(Integer, "sqlite")

# big integers (ids, states, hashes) are stored as decimal strings
BIG = 80  # decimal field elements need at most 77 digits


def _now() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


class Base(DeclarativeBase):
    pass


class GistHead(Base):
    __tablename__ = "gist_head"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, default=1)
    root: Mapped[str] = mapped_column(String(BIG), default="0")
    depth: Mapped[int] = mapped_column(Integer)
    hash_engine: Mapped[str] = mapped_column(String(32))
    size: Mapped[int] = mapped_column(BigInteger, default=0)
    updated_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=_now)


class SmtNode(Base):
    __tablename__ = "smt_nodes"
    # content address; rows are never updated or deleted
    hash: Mapped[str] = mapped_column(String(BIG), primary_key=True)
    kind: Mapped[str] = mapped_column(String(8))
    left: Mapped[str] = mapped_column(String(BIG), default="0")
    right: Mapped[str] = mapped_column(String(BIG), default="0")
    index: Mapped[str] = mapped_column(String(BIG), default="0")
    value: Mapped[str] = mapped_column(String(BIG), default="0")


class IdentityHead(Base):
    __tablename__ = "identity_heads"
    identity: Mapped[str] = mapped_column(String(BIG), primary_key=True)
    current_record_id: Mapped[int] = mapped_column(BigInteger)
    length: Mapped[int] = mapped_column(BigInteger, default=0)


class StateRecord(Base):
    __tablename__ = "state_records"
    id: Mapped[int] = mapped_column(BigId, primary_key=True, autoincrement=True)
    identity: Mapped[str] = mapped_column(String(BIG))
    position: Mapped[int] = mapped_column(BigInteger)
    state: Mapped[str] = mapped_column(String(BIG), unique=True)
    created_at_block: Mapped[int] = mapped_column(BigInteger)
    created_at_time: Mapped[int] = mapped_column(BigInteger)
    replaced_at_block: Mapped[int | None] = mapped_column(BigInteger, default=None)
    replaced_at_time: Mapped[int | None] = mapped_column(BigInteger, default=None)
    replaced_by_state: Mapped[str | None] = mapped_column(String(BIG), default=None)

    __table_args__ = (
        UniqueConstraint("identity", "position", name="uq_state_identity_position"),
        Index("ix_state_identity_position", "identity", "position"),
    )


class GistRoot(Base):
    __tablename__ = "gist_roots"
    id: Mapped[int] = mapped_column(BigId, primary_key=True, autoincrement=True)
    position: Mapped[int] = mapped_column(BigInteger, unique=True)
    root: Mapped[str] = mapped_column(String(BIG), unique=True)
    created_at_block: Mapped[int] = mapped_column(BigInteger)
    created_at_time: Mapped[int] = mapped_column(BigInteger)
    replaced_at_block: Mapped[int | None] = mapped_column(BigInteger, default=None)
    replaced_at_time: Mapped[int | None] = mapped_column(BigInteger, default=None)
    replaced_by_root: Mapped[str | None] = mapped_column(String(BIG), default=None)


class TransitionEvent(Base):
    __tablename__ = "transition_events"
    seq: Mapped[int] = mapped_column(BigId, primary_key=True, autoincrement=True)
    identity: Mapped[str] = mapped_column(String(BIG), index=True)
    old_state: Mapped[str] = mapped_column(String(BIG))
    new_state: Mapped[str] = mapped_column(String(BIG))
    is_old_state_genesis: Mapped[bool] = mapped_column(Boolean)
    root: Mapped[str] = mapped_column(String(BIG))
    block_number: Mapped[int] = mapped_column(BigInteger)
    timestamp: Mapped[int] = mapped_column(BigInteger)
    recorded_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=_now)
