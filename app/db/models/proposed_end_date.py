from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer

from app.db.base import Base


class ProposedEndDate(Base):
    __tablename__ = "contract_proposed_end_dates"

    # One current proposal per user per contract
    contract_id = Column(
        Integer, ForeignKey("contracts.id", ondelete="CASCADE"), primary_key=True
    )
    user_id = Column(
        Integer, ForeignKey("users.id", ondelete="RESTRICT"), primary_key=True
    )
    proposed_end_date = Column(Date, nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)
