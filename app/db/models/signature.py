from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from app.db.base import Base


class ContractSignature(Base):
    __tablename__ = "contract_signatures"

    # Composite key: a party signs a contract at most once
    contract_id = Column(
        Integer, ForeignKey("contracts.id", ondelete="CASCADE"), primary_key=True
    )
    user_id = Column(
        Integer, ForeignKey("users.id", ondelete="RESTRICT"), primary_key=True, index=True
    )
    signed_at = Column(DateTime(timezone=True), nullable=False)
    signature_method = Column(String(32), nullable=False, default="checkbox")

    # Relationships
    signer = relationship("User")
