"""/v1/transactions - ad-hoc income and expenses"""

import uuid
from typing import Optional
from fastapi import APIRouter, Depends, Query, Response

from finance_tracker.api.dependencies import (
    get_pagination,
    get_summary_store,
    get_transaction_service,
    get_user_id,
    to_http_exception,
)
from finance_tracker.api.v1.schemas import BalanceSchema, TransactionCreateRequest, TransactionPage, TransactionSchema
from finance_tracker.domain.exceptions import DomainException
from finance_tracker.domain.models import TransactionType
from finance_tracker.services.summaries import SummaryStore
from finance_tracker.services.transactions import TransactionService

router = APIRouter()


@router.post("/transactions", response_model=TransactionSchema, status_code=201)
def create_transaction(
    request_body: TransactionCreateRequest,
    user_id: str = Depends(get_user_id),
    transaction_service: TransactionService = Depends(get_transaction_service),
    summary_store: SummaryStore = Depends(get_summary_store),
):
    try:
        transaction = transaction_service.record(
            user_id=user_id,
            type=request_body.type,
            amount_cents=request_body.amount_cents,
            description=request_body.description,
            txn_date=request_body.date,
            category=request_body.category,
            account_id=request_body.account_id,
        )
    except DomainException as e:
        raise to_http_exception(e)

    summary_store.refresh_periods(user_id, [(transaction.date.month, transaction.date.year)])
    return TransactionSchema.model_validate(transaction)


@router.get("/transactions", response_model=TransactionPage)
def list_transactions(
    type: Optional[TransactionType] = Query(None),
    category: Optional[str] = Query(None, max_length=50),
    pagination: tuple[int, int] = Depends(get_pagination),
    user_id: str = Depends(get_user_id),
    transaction_service: TransactionService = Depends(get_transaction_service),
):
    limit, page = pagination
    rows, total = transaction_service.list(user_id, limit=limit, page=page, type=type, category=category)

    return TransactionPage(
        docs=[TransactionSchema.model_validate(t) for t in rows],
        total=total,
        limit=limit,
        page=page,
        has_next_page=(page + 1) * limit < total,
        has_prev_page=page > 0,
    )


@router.get("/transactions/balance", response_model=BalanceSchema)
def get_balance(
    user_id: str = Depends(get_user_id),
    transaction_service: TransactionService = Depends(get_transaction_service),
):
    """All-time income, expenses and their difference"""
    return BalanceSchema.model_validate(transaction_service.balance(user_id))


@router.delete("/transactions/{transaction_id}", status_code=204)
def delete_transaction(
    transaction_id: uuid.UUID,
    user_id: str = Depends(get_user_id),
    transaction_service: TransactionService = Depends(get_transaction_service),
    summary_store: SummaryStore = Depends(get_summary_store),
):
    try:
        txn_date = transaction_service.delete(transaction_id, user_id)
    except DomainException as e:
        raise to_http_exception(e)

    summary_store.refresh_periods(user_id, [(txn_date.month, txn_date.year)])
    return Response(status_code=204)
