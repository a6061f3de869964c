"""create rental requests table

Revision ID: 003
Revises: 002
Create Date: 2025-03-02 10:20:00.000000

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "rental_requests",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("listing_id", sa.Integer(), nullable=False),
        sa.Column("requester_user_id", sa.Integer(), nullable=False),
        sa.Column("desired_move_in", sa.Date(), nullable=True),
        sa.Column("message", sa.Text(), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["listing_id"], ["listings.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["requester_user_id"], ["users.id"], ondelete="RESTRICT"),
        sa.CheckConstraint(
            "status IN ('pending', 'accepted', 'rejected', 'cancelled')",
            name="ck_rental_requests_status",
        ),
    )
    op.create_index("ix_rental_requests_id", "rental_requests", ["id"], unique=False)
    op.create_index(
        "ix_rental_requests_listing_id", "rental_requests", ["listing_id"], unique=False
    )
    op.create_index(
        "ix_rental_requests_requester_user_id",
        "rental_requests",
        ["requester_user_id"],
        unique=False,
    )
    # Partial unique index: a tenant can only have one pending request per listing
    op.create_index(
        "uq_rental_requests_pending_listing_requester",
        "rental_requests",
        ["listing_id", "requester_user_id"],
        unique=True,
        sqlite_where=sa.text("status = 'pending'"),
        postgresql_where=sa.text("status = 'pending'"),
    )


def downgrade() -> None:
    op.drop_index("uq_rental_requests_pending_listing_requester", table_name="rental_requests")
    op.drop_index("ix_rental_requests_requester_user_id", table_name="rental_requests")
    op.drop_index("ix_rental_requests_listing_id", table_name="rental_requests")
    op.drop_index("ix_rental_requests_id", table_name="rental_requests")
    op.drop_table("rental_requests")
