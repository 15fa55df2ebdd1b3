"""SQLAlchemy models for the SpendShare backend."""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from .database import Base


class Group(Base):
    __tablename__ = "groups"

    id: int = Column(Integer, primary_key=True, index=True)
    name: str = Column(String(100), unique=True, nullable=False, index=True)
    password: str = Column(String(255), nullable=False)

    users = relationship("User", back_populates="group", passive_deletes=True, order_by="User.id")


class User(Base):
    __tablename__ = "users"

    id: int = Column(Integer, primary_key=True, index=True)
    name: str = Column(String(150), nullable=False)
    email: str = Column(String(255), unique=True, nullable=False, index=True)
    password: str = Column(String(255), nullable=False)
    group_id: Optional[int] = Column(
        Integer,
        ForeignKey("groups.id", ondelete="SET NULL", onupdate="CASCADE"),
        nullable=True,
    )

    group = relationship("Group", back_populates="users")
    spendings = relationship("Spending", back_populates="user", order_by="Spending.day")


class Spending(Base):
    __tablename__ = "spendings"

    id: int = Column(Integer, primary_key=True, index=True)
    name: Optional[str] = Column(String(255), nullable=True)
    day: datetime = Column(DateTime, nullable=False)
    value: float = Column(Float, nullable=False)
    user_id: int = Column(
        Integer,
        ForeignKey("users.id", ondelete="RESTRICT", onupdate="CASCADE"),
        nullable=False,
        index=True,
    )

    user = relationship("User", back_populates="spendings")
