"""gist registry tables

Revision ID: 0001_gist_registry
Revises:
Create Date: 2026-10-19
"""
from alembic import op
import sqlalchemy as sa

revision = "0001_gist_registry"
down_revision = None
branch_labels = None
depends_on = None

BigId = sa.BigInteger().with_variant(sa.Integer(), "sqlite")


def upgrade():
    op.create_table(
        "gist_head",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("root", sa.String(length=80), nullable=False, server_default="0"),
        sa.Column("depth", sa.Integer(), nullable=False),
        sa.Column("hash_engine", sa.String(length=32), nullable=False),
        sa.Column("size", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_table(
        "smt_nodes",
        sa.Column("hash", sa.String(length=80), primary_key=True),
        sa.Column("kind", sa.String(length=8), nullable=False),
        sa.Column("left", sa.String(length=80), nullable=False, server_default="0"),
        sa.Column("right", sa.String(length=80), nullable=False, server_default="0"),
        sa.Column("index", sa.String(length=80), nullable=False, server_default="0"),
        sa.Column("value", sa.String(length=80), nullable=False, server_default="0"),
    )
    op.create_table(
        "identity_heads",
        sa.Column("identity", sa.String(length=80), primary_key=True),
        sa.Column("current_record_id", sa.BigInteger(), nullable=False),
        sa.Column("length", sa.BigInteger(), nullable=False, server_default="0"),
    )
    op.create_table(
        "state_records",
        sa.Column("id", BigId, primary_key=True, autoincrement=True),
        sa.Column("identity", sa.String(length=80), nullable=False),
        sa.Column("position", sa.BigInteger(), nullable=False),
        sa.Column("state", sa.String(length=80), nullable=False, unique=True),
        sa.Column("created_at_block", sa.BigInteger(), nullable=False),
        sa.Column("created_at_time", sa.BigInteger(), nullable=False),
        sa.Column("replaced_at_block", sa.BigInteger(), nullable=True),
        sa.Column("replaced_at_time", sa.BigInteger(), nullable=True),
        sa.Column("replaced_by_state", sa.String(length=80), nullable=True),
        sa.UniqueConstraint("identity", "position", name="uq_state_identity_position"),
    )
    op.create_index("ix_state_identity_position", "state_records", ["identity", "position"])
    op.create_table(
        "gist_roots",
        sa.Column("id", BigId, primary_key=True, autoincrement=True),
        sa.Column("position", sa.BigInteger(), nullable=False, unique=True),
        sa.Column("root", sa.String(length=80), nullable=False, unique=True),
        sa.Column("created_at_block", sa.BigInteger(), nullable=False),
        sa.Column("created_at_time", sa.BigInteger(), nullable=False),
        sa.Column("replaced_at_block", sa.BigInteger(), nullable=True),
        sa.Column("replaced_at_time", sa.BigInteger(), nullable=True),
        sa.Column("replaced_by_root", sa.String(length=80), nullable=True),
    )
    op.create_table(
        "transition_events",
        sa.Column("seq", BigId, primary_key=True, autoincrement=True),
        sa.Column("identity", sa.String(length=80), nullable=False, index=True),
        sa.Column("old_state", sa.String(length=80), nullable=False),
        sa.Column("new_state", sa.String(length=80), nullable=False),
        sa.Column("is_old_state_genesis", sa.Boolean(), nullable=False),
        sa.Column("root", sa.String(length=80), nullable=False),
        sa.Column("block_number", sa.BigInteger(), nullable=False),
        sa.Column("timestamp", sa.BigInteger(), nullable=False),
        sa.Column("recorded_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )


def downgrade():
    op.drop_table("transition_events")
    op.drop_table("gist_roots")
    op.drop_index("ix_state_identity_position", table_name="state_records")
    op.drop_table("state_records")
    op.drop_table("identity_heads")
    op.drop_table("smt_nodes")
    op.drop_table("gist_head")
