"""Add friendships table for friend requests and blocks.

Revision ID: 20251019030000
Revises: 20251019020000
Create Date: 2025-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "20251019030000"
down_revision: Union[str, None] = "20251019020000"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "friendships",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("requester_id", sa.Integer(), nullable=False),
        sa.Column("addressee_id", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["requester_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["addressee_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("requester_id", "addressee_id", name="uq_friendships_pair"),
    )
    op.create_index(
        "ix_friendships_requester_status",
        "friendships",
        ["requester_id", "status"],
        unique=False,
    )
    op.create_index(
        "ix_friendships_addressee_status",
        "friendships",
        ["addressee_id", "status"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_friendships_addressee_status", table_name="friendships")
    op.drop_index("ix_friendships_requester_status", table_name="friendships")
    op.drop_table("friendships")
