from __future__ import annotations

import os
import pathlib
import sys
from datetime import date
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

PROJECT_ROOT = pathlib.Path(__file__).resolve().parents[2]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

# Keep the application's own engine off the on-disk database during tests.
os.environ.setdefault("BUDGETREE_DATABASE_URL", "sqlite://")

import backend.models  # noqa: F401,E402  # Ensure models are registered with metadata
from backend import crud, database, schemas  # noqa: E402
from backend.database import Base  # noqa: E402
from backend.server import app, get_policy  # noqa: E402
from budgetree.engine.policy import BudgetPolicy  # noqa: E402

@pytest.fixture(scope="session")
def engine():
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    Base.metadata.drop_all(bind=test_engine)


@pytest.fixture()
def db_session(engine):
    connection = engine.connect()
    transaction = connection.begin()
    TestingSessionLocal = sessionmaker(bind=connection, autoflush=False, autocommit=False, future=True)
    session: Session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        transaction.rollback()
        connection.close()


@pytest.fixture()
def client(db_session):
    def override_get_db():
        yield db_session

    app.dependency_overrides[database.get_db] = override_get_db
    app.dependency_overrides[get_policy] = lambda: BudgetPolicy()
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture()
def housing(db_session):
    """Housing with Rent and Utilities subcategories."""

    parent = crud.create_category(db_session, schemas.CategoryCreate(name="Housing", sort_order=1))
    rent = crud.create_category(
        db_session, schemas.CategoryCreate(name="Rent", parent_id=parent.id, sort_order=1)
    )
    utilities = crud.create_category(
        db_session, schemas.CategoryCreate(name="Utilities", parent_id=parent.id, sort_order=2)
    )
    return parent, rent, utilities


@pytest.fixture()
def add_expense(db_session):
    def _add(category_id: int, amount: str, day: date = date(2026, 1, 15)):
        return crud.create_expense(
            db_session,
            schemas.ExpenseCreate(
                description="expense", amount=Decimal(amount), incurred_on=day, category_id=category_id
            ),
        )

    return _add
