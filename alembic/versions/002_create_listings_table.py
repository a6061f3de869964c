"""create listings table

Revision ID: 002
Revises: 001
Create Date: 2025-03-02 10:10:00.000000

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "listings",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("owner_user_id", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column(
            "status",
            sa.String(32),
            nullable=False,
            server_default="pending_verification",
        ),
        sa.Column("price", sa.Numeric(12, 2), nullable=False),
        sa.Column("deposit", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["owner_user_id"], ["users.id"], ondelete="RESTRICT"),
        sa.CheckConstraint("price >= 0", name="ck_listings_price_non_negative"),
        sa.CheckConstraint("deposit >= 0", name="ck_listings_deposit_non_negative"),
    )
    op.create_index("ix_listings_id", "listings", ["id"], unique=False)
    op.create_index("ix_listings_owner_user_id", "listings", ["owner_user_id"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_listings_owner_user_id", table_name="listings")
    op.drop_index("ix_listings_id", table_name="listings")
    op.drop_table("listings")
