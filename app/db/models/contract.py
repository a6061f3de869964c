from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    func,
    text,
)
from sqlalchemy.orm import relationship

from app.db.base import Base


class Contract(Base):
    __tablename__ = "contracts"

    id = Column(Integer, primary_key=True, index=True)
    listing_id = Column(
        Integer, ForeignKey("listings.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    landlord_user_id = Column(
        Integer, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=True)
    rent = Column(Numeric(12, 2), nullable=False)
    deposit = Column(Numeric(12, 2), nullable=False, default=0)
    status = Column(String(20), nullable=False, default="draft")
    signed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    # Relationships
    landlord = relationship("User")
    listing = relationship("Listing")
    tenants = relationship(
        "ContractTenant",
        back_populates="contract",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('draft', 'signed', 'cancelled')", name="ck_contracts_status"
        ),
        CheckConstraint("rent >= 0", name="ck_contracts_rent_non_negative"),
        CheckConstraint("deposit >= 0", name="ck_contracts_deposit_non_negative"),
        # One live contract per listing and landlord
        Index(
            "uq_contracts_active_listing_landlord",
            "listing_id",
            "landlord_user_id",
            unique=True,
            sqlite_where=text("status != 'cancelled'"),
            postgresql_where=text("status != 'cancelled'"),
        ),
    )


class ContractTenant(Base):
    __tablename__ = "contract_tenants"

    contract_id = Column(
        Integer, ForeignKey("contracts.id", ondelete="CASCADE"), primary_key=True
    )
    tenant_user_id = Column(
        Integer, ForeignKey("users.id", ondelete="RESTRICT"), primary_key=True, index=True
    )

    # Relationships
    contract = relationship("Contract", back_populates="tenants")
    tenant = relationship("User")
