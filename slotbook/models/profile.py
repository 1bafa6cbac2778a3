"""Provider profile: one per provider account, written with upsert semantics."""
from sqlalchemy import Column, Integer, Numeric, Text, ForeignKey
from sqlalchemy.orm import relationship

from slotbook.database import Base


class Profile(Base):
    __tablename__ = "profiles"

    id = Column(Integer, primary_key=True, index=True)
    account_id = Column(Integer, ForeignKey("accounts.id", ondelete="CASCADE"), unique=True, nullable=False)
    expertise = Column(Text, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)

    account = relationship("Account", back_populates="profile")
