"""SQLAlchemy models for the budgeting backend."""
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import Boolean, Column, Date, DateTime, ForeignKey, Integer, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from .database import Base


class Category(Base):
    __tablename__ = "categories"

    id: int = Column(Integer, primary_key=True, index=True)
    parent_id: Optional[int] = Column(Integer, ForeignKey("categories.id"), nullable=True, index=True)
    name: str = Column(String(100), nullable=False, index=True)
    description: Optional[str] = Column(Text, nullable=True)
    color: str = Column(String(20), nullable=False, default="#6B7280")
    sort_order: int = Column(Integer, nullable=False, default=0)
    is_active: bool = Column(Boolean, nullable=False, default=True)
    created_at: datetime = Column(DateTime, nullable=False, default=datetime.utcnow)

    expenses = relationship("Expense", back_populates="category")
    budgets = relationship("Budget", back_populates="category", cascade="all, delete-orphan")


class Expense(Base):
    __tablename__ = "expenses"

    id: int = Column(Integer, primary_key=True, index=True)
    description: str = Column(String(255), nullable=False)
    amount: Decimal = Column(Numeric(12, 2), nullable=False)
    incurred_on: date = Column(Date, nullable=False, default=date.today, index=True)
    category_id: Optional[int] = Column(Integer, ForeignKey("categories.id", ondelete="SET NULL"), nullable=True)

    category = relationship("Category", back_populates="expenses")


class Budget(Base):
    __tablename__ = "budgets"
    __table_args__ = (UniqueConstraint("category_id", "month", name="uq_budget_category_month"),)

    id: int = Column(Integer, primary_key=True, index=True)
    category_id: int = Column(Integer, ForeignKey("categories.id", ondelete="CASCADE"), nullable=False)
    limit_amount: Decimal = Column(Numeric(12, 2), nullable=False)
    month: date = Column(Date, nullable=False, index=True)
    created_at: datetime = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: datetime = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    category = relationship("Category", back_populates="budgets")


class UserPreference(Base):
    __tablename__ = "user_preferences"

    id: int = Column(Integer, primary_key=True, index=True)
    auto_adjust_parent_budgets: bool = Column(Boolean, nullable=False, default=True)
