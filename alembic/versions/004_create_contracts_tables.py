"""create contracts and contract tenants tables

Revision ID: 004
Revises: 003
Create Date: 2025-03-02 10:30:00.000000

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "004"
down_revision: Union[str, None] = "003"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "contracts",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("listing_id", sa.Integer(), nullable=False),
        sa.Column("landlord_user_id", sa.Integer(), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column("rent", sa.Numeric(12, 2), nullable=False),
        sa.Column("deposit", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("status", sa.String(20), nullable=False, server_default="draft"),
        sa.Column("signed_at", sa.DateTime(timezone=True), nullable=True),
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
        sa.ForeignKeyConstraint(["listing_id"], ["listings.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["landlord_user_id"], ["users.id"], ondelete="RESTRICT"),
        sa.CheckConstraint(
            "status IN ('draft', 'signed', 'cancelled')", name="ck_contracts_status"
        ),
        sa.CheckConstraint("rent >= 0", name="ck_contracts_rent_non_negative"),
        sa.CheckConstraint("deposit >= 0", name="ck_contracts_deposit_non_negative"),
    )
    op.create_index("ix_contracts_id", "contracts", ["id"], unique=False)
    op.create_index("ix_contracts_listing_id", "contracts", ["listing_id"], unique=False)
    op.create_index(
        "ix_contracts_landlord_user_id", "contracts", ["landlord_user_id"], unique=False
    )
    # Partial unique index: accepting twice must not produce a second live contract
    op.create_index(
        "uq_contracts_active_listing_landlord",
        "contracts",
        ["listing_id", "landlord_user_id"],
        unique=True,
        sqlite_where=sa.text("status != 'cancelled'"),
        postgresql_where=sa.text("status != 'cancelled'"),
    )

    op.create_table(
        "contract_tenants",
        sa.Column("contract_id", sa.Integer(), nullable=False),
        sa.Column("tenant_user_id", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("contract_id", "tenant_user_id"),
        sa.ForeignKeyConstraint(["contract_id"], ["contracts.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["tenant_user_id"], ["users.id"], ondelete="RESTRICT"),
    )
    op.create_index(
        "ix_contract_tenants_tenant_user_id",
        "contract_tenants",
        ["tenant_user_id"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_contract_tenants_tenant_user_id", table_name="contract_tenants")
    op.drop_table("contract_tenants")
    op.drop_index("uq_contracts_active_listing_landlord", table_name="contracts")
    op.drop_index("ix_contracts_landlord_user_id", table_name="contracts")
    op.drop_index("ix_contracts_listing_id", table_name="contracts")
    op.drop_index("ix_contracts_id", table_name="contracts")
    op.drop_table("contracts")
