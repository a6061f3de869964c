"""create contract signatures table

Revision ID: 005
Revises: 004
Create Date: 2025-03-02 10:40:00.000000

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "005"
down_revision: Union[str, None] = "004"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "contract_signatures",
        sa.Column("contract_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("signed_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "signature_method", sa.String(32), nullable=False, server_default="checkbox"
        ),
        # Composite primary key: one signature per party per contract
        sa.PrimaryKeyConstraint("contract_id", "user_id"),
        sa.ForeignKeyConstraint(["contract_id"], ["contracts.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="RESTRICT"),
    )
    op.create_index(
        "ix_contract_signatures_user_id", "contract_signatures", ["user_id"], unique=False
    )


def downgrade() -> None:
    op.drop_index("ix_contract_signatures_user_id", table_name="contract_signatures")
    op.drop_table("contract_signatures")
