"""Pytest fixtures for testing"""

import pytest
from datetime import date, datetime, timezone
from typing import Generator
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from finance_tracker.api.main import create_app
from finance_tracker.infrastructure.database.models import Base
from finance_tracker.infrastructure.database.session import get_db
from finance_tracker.domain.models import AccountType, TransactionType
from finance_tracker.services.accounts import AccountService
from finance_tracker.services.ledger import PaymentLedger
from finance_tracker.services.summaries import SummaryStore
from finance_tracker.services.transactions import TransactionService


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

USER_ID = "user_123"
OTHER_USER_ID = "user_456"

# Fixed clock: every settlement in tests happens on 2025-03-15
FIXED_NOW = datetime(2025, 3, 15, 12, 0, tzinfo=timezone.utc)


def fixed_now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db: Session) -> TestClient:
    """Create FastAPI test client with test database"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    return TestClient(app, headers={"X-User-ID": USER_ID})


@pytest.fixture
def account_service(db: Session) -> AccountService:
    return AccountService(db)


@pytest.fixture
def ledger(db: Session) -> PaymentLedger:
    return PaymentLedger(db, now=fixed_now)


@pytest.fixture
def summary_store(db: Session) -> SummaryStore:
    return SummaryStore(db, now=fixed_now)


@pytest.fixture
def transaction_service(db: Session) -> TransactionService:
    return TransactionService(db)


@pytest.fixture
def loan_account(account_service: AccountService):
    """Loan of $1000.00 in 3 monthly installments due on the 10th, starting March 2025"""
    return account_service.open_account(
        USER_ID,
        name="Car loan",
        type=AccountType.LOAN,
        start_date=date(2025, 3, 1),
        due_day=10,
        principal_cents=100000,
        installment_count=3,
    )


@pytest.fixture
def march_salary(transaction_service: TransactionService):
    """$3000.00 income in March 2025"""
    return transaction_service.record(
        user_id=USER_ID,
        type=TransactionType.INCOME,
        amount_cents=300000,
        description="Salary",
        txn_date=date(2025, 3, 5),
        category="SALARY",
    )
