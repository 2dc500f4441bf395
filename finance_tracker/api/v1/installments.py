"""/v1/installments - per-installment settlement"""

import logging
import uuid
from datetime import date
from fastapi import APIRouter, Depends, Request

from finance_tracker.api.dependencies import (
    get_account_service,
    get_payment_ledger,
    get_request_id,
    get_summary_store,
    get_user_id,
    to_http_exception,
)
from finance_tracker.api.v1.schemas import InstallmentSchema, PaymentResponse, TransactionSchema
from finance_tracker.domain.exceptions import DomainException
from finance_tracker.services.accounts import AccountService
from finance_tracker.services.ledger import PaymentLedger
from finance_tracker.services.summaries import SummaryStore

router = APIRouter()


@router.get("/installments/overdue", response_model=list[InstallmentSchema])
def list_overdue_installments(
    user_id: str = Depends(get_user_id),
    account_service: AccountService = Depends(get_account_service),
):
    """Unpaid installments whose due date has passed"""
    installments = account_service.get_overdue_installments(user_id, date.today())
    return [InstallmentSchema.model_validate(inst) for inst in installments]


@router.post("/installments/{installment_id}/pay", response_model=PaymentResponse)
def pay_installment(
    installment_id: uuid.UUID,
    request: Request,
    user_id: str = Depends(get_user_id),
    ledger: PaymentLedger = Depends(get_payment_ledger),
    summary_store: SummaryStore = Depends(get_summary_store),
):
    """
    Mark an installment paid.

    Flow:
    1. Settle the installment and create its expense transaction (one commit)
    2. Refresh the installment's reference period and the payment's month
    """
    try:
        result = ledger.mark_paid(installment_id, user_id)
    except DomainException as e:
        logging.warning(f"Installment payment rejected: {e}", extra={"request_id": get_request_id(request)})
        raise to_http_exception(e)

    installment, transaction = result.installment, result.transaction
    summary_store.refresh_periods(
        user_id,
        [
            (installment.reference_month, installment.reference_year),
            (transaction.date.month, transaction.date.year),
        ],
    )
    return PaymentResponse(
        installment=InstallmentSchema.model_validate(installment),
        transaction=TransactionSchema.model_validate(transaction),
    )


@router.post("/installments/{installment_id}/unpay", response_model=InstallmentSchema)
def unpay_installment(
    installment_id: uuid.UUID,
    user_id: str = Depends(get_user_id),
    ledger: PaymentLedger = Depends(get_payment_ledger),
    summary_store: SummaryStore = Depends(get_summary_store),
):
    """Clear the paid flag; the settlement transaction is left in place"""
    try:
        installment = ledger.mark_unpaid(installment_id, user_id=user_id)
    except DomainException as e:
        raise to_http_exception(e)

    summary_store.refresh_periods(user_id, [(installment.reference_month, installment.reference_year)])
    return InstallmentSchema.model_validate(installment)
