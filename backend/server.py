"""FastAPI application exposing the hierarchical budgeting endpoints."""
from __future__ import annotations

from contextlib import asynccontextmanager
from functools import lru_cache
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, status
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm import Session

from budgetree import __version__
from budgetree.engine.budgets import ErrorKind
from budgetree.engine.policy import BudgetPolicy, load_policy

from . import crud, database, schemas

ERROR_STATUS = {
    ErrorKind.DUPLICATE_BUDGET: status.HTTP_409_CONFLICT,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
}


@asynccontextmanager
async def lifespan(_: FastAPI):
    database.init_db()
    yield


app = FastAPI(title="Budgetree Backend", version=__version__, lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@lru_cache(maxsize=1)
def _load_policy() -> BudgetPolicy:
    return load_policy()


def get_policy() -> BudgetPolicy:
    return _load_policy()


def _rule_error(exc: crud.BudgetRuleError) -> HTTPException:
    failure = exc.failure
    return HTTPException(
        status_code=ERROR_STATUS.get(failure.error_kind, status.HTTP_422_UNPROCESSABLE_ENTITY),
        detail={"error_kind": failure.error_kind.value, "message": failure.message},
    )


def _not_found(exc: crud.EntityNotFoundError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail={"error_kind": ErrorKind.NOT_FOUND.value, "message": str(exc)},
    )


def _conflict(exc: crud.EntityConflictError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail={"error_kind": ErrorKind.DUPLICATE_BUDGET.value, "message": str(exc)},
    )


# Expenses


@app.get("/expenses", response_model=List[schemas.ExpenseRead])
def list_expenses(
    month: Optional[str] = Query(None, pattern=schemas.MONTH_PATTERN),
    db: Session = Depends(database.get_db),
) -> List[schemas.ExpenseRead]:
    return crud.list_expenses(db, month)


@app.post(
    "/expenses",
    response_model=schemas.ExpenseRead,
    status_code=status.HTTP_201_CREATED,
)
def create_expense(expense_in: schemas.ExpenseCreate, db: Session = Depends(database.get_db)) -> schemas.ExpenseRead:
    try:
        return crud.create_expense(db, expense_in)
    except crud.EntityNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc


@app.get("/expenses/{expense_id}", response_model=schemas.ExpenseRead)
def get_expense(expense_id: int, db: Session = Depends(database.get_db)) -> schemas.ExpenseRead:
    try:
        return crud.get_expense(db, expense_id)
    except crud.EntityNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc


@app.put("/expenses/{expense_id}", response_model=schemas.ExpenseRead)
def update_expense(
    expense_id: int,
    update_in: schemas.ExpenseUpdate,
    db: Session = Depends(database.get_db),
) -> schemas.ExpenseRead:
    try:
        return crud.update_expense(db, expense_id, update_in)
    except crud.EntityNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc


@app.delete("/expenses/{expense_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_expense(expense_id: int, db: Session = Depends(database.get_db)) -> None:
    try:
        crud.delete_expense(db, expense_id)
    except crud.EntityNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc


# Categories


@app.get("/categories", response_model=List[schemas.CategoryRead])
def list_categories(
    include_inactive: bool = False, db: Session = Depends(database.get_db)
) -> List[schemas.CategoryRead]:
    return crud.list_categories(db, include_inactive=include_inactive)


@app.get("/categories/tree", response_model=List[schemas.CategoryNodeRead])
def category_tree(db: Session = Depends(database.get_db)) -> List[schemas.CategoryNodeRead]:
    return crud.category_tree_read(db)


@app.post("/categories/reorder", response_model=List[schemas.CategoryRead])
def reorder_categories(
    reorder_in: schemas.CategoryReorder, db: Session = Depends(database.get_db)
) -> List[schemas.CategoryRead]:
    try:
        return crud.reorder_categories(db, reorder_in.ids)
    except crud.EntityNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except crud.EntityConflictError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc


@app.post(
    "/categories",
    response_model=schemas.CategoryRead,
    status_code=status.HTTP_201_CREATED,
)
def create_category(category_in: schemas.CategoryCreate, db: Session = Depends(database.get_db)) -> schemas.CategoryRead:
    try:
        return crud.create_category(db, category_in)
    except crud.EntityNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except crud.EntityConflictError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc


@app.get("/categories/{category_id}", response_model=schemas.CategoryRead)
def get_category(category_id: int, db: Session = Depends(database.get_db)) -> schemas.CategoryRead:
    try:
        return crud.get_category(db, category_id)
    except crud.EntityNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc


@app.put("/categories/{category_id}", response_model=schemas.CategoryRead)
def update_category(
    category_id: int,
    update_in: schemas.CategoryUpdate,
    db: Session = Depends(database.get_db),
) -> schemas.CategoryRead:
    try:
        return crud.update_category(db, category_id, update_in)
    except crud.EntityNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc


@app.delete("/categories/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_category(category_id: int, db: Session = Depends(database.get_db)) -> None:
    try:
        crud.delete_category(db, category_id)
    except crud.EntityNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc


# Budgets


@app.get("/budgets", response_model=List[schemas.BudgetRead])
def list_budgets(
    month: Optional[str] = Query(None, pattern=schemas.MONTH_PATTERN),
    db: Session = Depends(database.get_db),
) -> List[schemas.BudgetRead]:
    return crud.list_budgets(db, month)


@app.post(
    "/budgets",
    response_model=schemas.BudgetWriteRead,
    status_code=status.HTTP_201_CREATED,
)
def create_budget(
    budget_in: schemas.BudgetCreate,
    db: Session = Depends(database.get_db),
    policy: BudgetPolicy = Depends(get_policy),
) -> schemas.BudgetWriteRead:
    try:
        return crud.create_budget(db, budget_in, policy)
    except crud.BudgetRuleError as exc:
        raise _rule_error(exc) from exc
    except crud.EntityConflictError as exc:
        raise _conflict(exc) from exc


@app.post(
    "/budgets/copy",
    response_model=List[schemas.BudgetRead],
    status_code=status.HTTP_201_CREATED,
)
def copy_budgets(
    month: str = Query(..., pattern=schemas.MONTH_PATTERN),
    db: Session = Depends(database.get_db),
) -> List[schemas.BudgetRead]:
    try:
        return crud.copy_budgets(db, month)
    except crud.BudgetRuleError as exc:
        raise _rule_error(exc) from exc
    except crud.EntityConflictError as exc:
        raise _conflict(exc) from exc


@app.post("/budgets/preflight", response_model=schemas.PreflightRead)
def preflight_budget(
    request: schemas.PreflightRequest, db: Session = Depends(database.get_db)
) -> schemas.PreflightRead:
    return crud.preflight(db, request)


@app.get("/budgets/status", response_model=List[schemas.BudgetWithStatusRead])
def budget_statuses(
    month: str = Query(..., pattern=schemas.MONTH_PATTERN),
    db: Session = Depends(database.get_db),
) -> List[schemas.BudgetWithStatusRead]:
    return crud.budget_statuses(db, month)


@app.get("/budgets/hierarchy", response_model=List[schemas.BudgetGroupRead])
def budget_hierarchy(
    month: str = Query(..., pattern=schemas.MONTH_PATTERN),
    db: Session = Depends(database.get_db),
) -> List[schemas.BudgetGroupRead]:
    return crud.budget_hierarchy(db, month)


@app.get("/budgets/summary", response_model=schemas.MonthSummaryRead)
def month_summary(
    month: str = Query(..., pattern=schemas.MONTH_PATTERN),
    db: Session = Depends(database.get_db),
    policy: BudgetPolicy = Depends(get_policy),
) -> schemas.MonthSummaryRead:
    return crud.month_summary(db, month, policy)


@app.get("/budgets/{budget_id}", response_model=schemas.BudgetRead)
def get_budget(budget_id: int, db: Session = Depends(database.get_db)) -> schemas.BudgetRead:
    try:
        return crud.get_budget(db, budget_id)
    except crud.EntityNotFoundError as exc:
        raise _not_found(exc) from exc


@app.put("/budgets/{budget_id}", response_model=schemas.BudgetWriteRead)
def update_budget(
    budget_id: int,
    update_in: schemas.BudgetUpdate,
    db: Session = Depends(database.get_db),
) -> schemas.BudgetWriteRead:
    try:
        return crud.update_budget(db, budget_id, update_in)
    except crud.EntityNotFoundError as exc:
        raise _not_found(exc) from exc
    except crud.BudgetRuleError as exc:
        raise _rule_error(exc) from exc


@app.delete("/budgets/{budget_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_budget(budget_id: int, db: Session = Depends(database.get_db)) -> None:
    try:
        crud.delete_budget(db, budget_id)
    except crud.EntityNotFoundError as exc:
        raise _not_found(exc) from exc
    except crud.BudgetRuleError as exc:
        raise _rule_error(exc) from exc


# Preferences


@app.get("/preferences", response_model=schemas.PreferencesRead)
def get_preferences(db: Session = Depends(database.get_db)) -> schemas.PreferencesRead:
    return crud.get_preferences(db)


@app.put("/preferences", response_model=schemas.PreferencesRead)
def update_preferences(
    update_in: schemas.PreferencesUpdate, db: Session = Depends(database.get_db)
) -> schemas.PreferencesRead:
    return crud.update_preferences(db, update_in)


@app.get("/health", tags=["system"])
def healthcheck() -> dict[str, str]:
    return {"status": "ok"}
