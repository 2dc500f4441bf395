"""Dependency injection for FastAPI endpoints"""

from fastapi import Depends, Header, HTTPException, Query, Request
from sqlalchemy.orm import Session

from finance_tracker.config import settings
from finance_tracker.domain.exceptions import (
    AggregationError,
    ConflictError,
    DomainException,
    NotFoundError,
    ValidationError,
)
from finance_tracker.infrastructure.database.session import get_db
from finance_tracker.services.accounts import AccountService
from finance_tracker.services.ledger import PaymentLedger
from finance_tracker.services.summaries import SummaryStore
from finance_tracker.services.transactions import TransactionService

_STATUS_BY_ERROR = [
    (ValidationError, 422),
    (NotFoundError, 404),
    (ConflictError, 409),
    (AggregationError, 503),
]


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_user_id(x_user_id: str | None = Header(None)) -> str:
    """Caller identity, resolved upstream by the authentication layer"""
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Missing user identity")
    return x_user_id


def get_pagination(
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    page: int = Query(0, ge=0),
) -> tuple[int, int]:
    return limit, page


def to_http_exception(error: DomainException) -> HTTPException:
    """Translate a domain error into an HTTP error carrying its code"""
    status_code = next((status for cls, status in _STATUS_BY_ERROR if isinstance(error, cls)), 500)
    return HTTPException(status_code=status_code, detail={"code": error.code, "message": error.message})


def get_account_service(db: Session = Depends(get_db)) -> AccountService:
    return AccountService(db)


def get_payment_ledger(db: Session = Depends(get_db)) -> PaymentLedger:
    return PaymentLedger(db)


def get_summary_store(db: Session = Depends(get_db)) -> SummaryStore:
    return SummaryStore(db)


def get_transaction_service(db: Session = Depends(get_db)) -> TransactionService:
    return TransactionService(db)
