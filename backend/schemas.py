"""Pydantic schemas for serialising budgeting data."""
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

MONTH_PATTERN = r"^\d{4}-\d{2}(-\d{2})?$"


class ORMModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class CategoryBase(BaseModel):
    name: str = Field(..., max_length=100)
    description: Optional[str] = None
    parent_id: Optional[int] = Field(None, ge=1)
    color: str = Field("#6B7280", max_length=20)
    sort_order: int = Field(0, ge=0)


class CategoryCreate(CategoryBase):
    pass


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = None
    color: Optional[str] = Field(None, max_length=20)
    sort_order: Optional[int] = Field(None, ge=0)


class CategoryRead(CategoryBase, ORMModel):
    id: int
    is_active: bool
    created_at: datetime


class CategoryNodeRead(CategoryRead):
    children: List[CategoryRead] = Field(default_factory=list)


class CategoryReorder(BaseModel):
    ids: List[int] = Field(..., min_length=1)


class ExpenseBase(BaseModel):
    description: str = Field(..., max_length=255)
    amount: Decimal = Field(..., gt=0)
    incurred_on: Optional[date] = None
    category_id: Optional[int] = Field(None, ge=1)


class ExpenseCreate(ExpenseBase):
    pass


class ExpenseUpdate(BaseModel):
    description: Optional[str] = Field(None, max_length=255)
    amount: Optional[Decimal] = Field(None, gt=0)
    incurred_on: Optional[date] = None
    category_id: Optional[int] = Field(None, ge=1)


class ExpenseRead(ExpenseBase, ORMModel):
    id: int


class BudgetCreate(BaseModel):
    category_id: int = Field(..., ge=1)
    limit_amount: Decimal
    month: str = Field(..., pattern=MONTH_PATTERN)


class BudgetUpdate(BaseModel):
    limit_amount: Decimal


class BudgetRead(ORMModel):
    id: int
    category_id: int
    limit_amount: Decimal
    month: date


class ParentAdjustmentRead(BaseModel):
    category_id: int
    old_amount: Decimal
    new_amount: Decimal
    reason: str


class BudgetWriteRead(BaseModel):
    budget: BudgetRead
    parent_budget: Optional[BudgetRead] = None
    parent_adjustment: Optional[ParentAdjustmentRead] = None


class BudgetStatusRead(BaseModel):
    spent: Decimal
    remaining: Decimal
    percentage: Decimal
    is_over_budget: bool


class BudgetWithStatusRead(BaseModel):
    budget: BudgetRead
    category_name: Optional[str] = None
    parent_name: Optional[str] = None
    status: BudgetStatusRead


class BudgetGroupRead(BaseModel):
    category: CategoryRead
    parent: Optional[BudgetWithStatusRead] = None
    children: List[BudgetWithStatusRead] = Field(default_factory=list)


class MonthSummaryRead(BaseModel):
    month: date
    label: str
    total_budget: Decimal
    total_spent: Decimal
    overall_percentage: Decimal
    over_budget: int
    warning: int
    on_track: int
    overspend: Decimal


class PreflightRequest(BaseModel):
    category_id: int = Field(..., ge=1)
    limit_amount: Decimal
    month: str = Field(..., pattern=MONTH_PATTERN)
    budget_id: Optional[int] = Field(None, ge=1)


class PreflightRead(BaseModel):
    ok: bool
    error_kind: Optional[str] = None
    message: Optional[str] = None


class PreferencesRead(ORMModel):
    auto_adjust_parent_budgets: bool


class PreferencesUpdate(BaseModel):
    auto_adjust_parent_budgets: bool
