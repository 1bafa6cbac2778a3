"""Accounts: requesters book sessions, providers offer them."""
from sqlalchemy import Column, Integer, String, Enum as SQLEnum, DateTime, Boolean
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from slotbook.database import Base
import enum


class AccountRole(str, enum.Enum):
    requester = "requester"
    provider = "provider"


class Account(Base):
    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True, index=True)
    first_name = Column(String(255), nullable=False)
    last_name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_verifier = Column(String(255), nullable=False)
    role = Column(SQLEnum(AccountRole), nullable=False)

    verified = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    verification_codes = relationship(
        "VerificationCode",
        back_populates="account",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    profile = relationship("Profile", back_populates="account", uselist=False)
