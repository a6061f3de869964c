from sqlalchemy import Column, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import relationship

from app.db.base import Base


class Listing(Base):
    __tablename__ = "listings"

    id = Column(Integer, primary_key=True, index=True)
    owner_user_id = Column(
        Integer, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    title = Column(String(255), nullable=False)
    status = Column(String(32), nullable=False, default="pending_verification")
    price = Column(Numeric(12, 2), nullable=False)
    deposit = Column(Numeric(12, 2), nullable=False, default=0)

    # Relationships
    owner = relationship("User")
