"""/v1/accounts - account lifecycle, schedules and whole-account settlement"""

import dataclasses
import logging
import uuid
from typing import Optional
from fastapi import APIRouter, Depends, Query, Request, Response

from finance_tracker.api.dependencies import (
    get_account_service,
    get_pagination,
    get_payment_ledger,
    get_request_id,
    get_summary_store,
    get_user_id,
    to_http_exception,
)
from finance_tracker.api.v1.schemas import (
    AccountCreateRequest,
    AccountPage,
    AccountResponse,
    InstallmentSchema,
    LoanTermsSchema,
    PeriodStatisticsSchema,
    ReferenceUpdateRequest,
    SettleAccountRequest,
)
from finance_tracker.domain.exceptions import DomainException
from finance_tracker.domain.models import AccountType
from finance_tracker.services.accounts import AccountService, affected_periods
from finance_tracker.services.ledger import PaymentLedger
from finance_tracker.services.summaries import SummaryStore

router = APIRouter()


@router.post("/accounts", response_model=AccountResponse, status_code=201)
def create_account(
    request_body: AccountCreateRequest,
    request: Request,
    user_id: str = Depends(get_user_id),
    account_service: AccountService = Depends(get_account_service),
    summary_store: SummaryStore = Depends(get_summary_store),
):
    """
    Create an account and its installment schedule.

    Flow:
    1. Insert the account
    2. Schedule installments when a count is given
    3. Commit
    4. Refresh the summaries of every period the schedule touches
    """
    try:
        account = account_service.open_account(user_id, **request_body.model_dump())
    except DomainException as e:
        logging.warning(f"Account creation rejected: {e}", extra={"request_id": get_request_id(request)})
        raise to_http_exception(e)

    summary_store.refresh_periods(user_id, affected_periods(account))
    return AccountResponse.model_validate(account)


@router.get("/accounts", response_model=AccountPage)
def list_accounts(
    month: int = Query(..., description="Reference month (1-12)"),
    year: int = Query(..., description="Reference year"),
    type: Optional[AccountType] = Query(None),
    is_paid: Optional[bool] = Query(None),
    name: Optional[str] = Query(None, max_length=100, description="Case-insensitive name fragment"),
    pagination: tuple[int, int] = Depends(get_pagination),
    user_id: str = Depends(get_user_id),
    account_service: AccountService = Depends(get_account_service),
):
    """Accounts budgeted to a reference period"""
    limit, page = pagination
    try:
        rows, total = account_service.list_by_period(
            user_id, month, year, limit=limit, page=page, type=type, is_paid=is_paid, name=name
        )
    except DomainException as e:
        raise to_http_exception(e)

    return AccountPage(
        docs=[AccountResponse.model_validate(account) for account in rows],
        total=total,
        limit=limit,
        page=page,
        has_next_page=(page + 1) * limit < total,
        has_prev_page=page > 0,
    )


@router.get("/accounts/statistics", response_model=PeriodStatisticsSchema)
def get_period_statistics(
    month: int = Query(..., description="Reference month (1-12)"),
    year: int = Query(..., description="Reference year"),
    user_id: str = Depends(get_user_id),
    account_service: AccountService = Depends(get_account_service),
):
    """Paid and unpaid account totals for a reference period, overall and per type"""
    try:
        stats = account_service.get_period_statistics(user_id, month, year)
    except DomainException as e:
        raise to_http_exception(e)

    return PeriodStatisticsSchema(reference_month=month, reference_year=year, **dataclasses.asdict(stats))


@router.get("/accounts/{account_id}", response_model=AccountResponse)
def get_account(
    account_id: uuid.UUID,
    user_id: str = Depends(get_user_id),
    account_service: AccountService = Depends(get_account_service),
):
    try:
        return AccountResponse.model_validate(account_service.get_account(account_id, user_id))
    except DomainException as e:
        raise to_http_exception(e)


@router.delete("/accounts/{account_id}", status_code=204)
def delete_account(
    account_id: uuid.UUID,
    user_id: str = Depends(get_user_id),
    account_service: AccountService = Depends(get_account_service),
    summary_store: SummaryStore = Depends(get_summary_store),
):
    """Delete an account; its transactions stay, with the account reference cleared"""
    try:
        periods = account_service.delete_account(account_id, user_id)
    except DomainException as e:
        raise to_http_exception(e)

    summary_store.refresh_periods(user_id, periods)
    return Response(status_code=204)


@router.get("/accounts/{account_id}/installments", response_model=list[InstallmentSchema])
def list_installments(
    account_id: uuid.UUID,
    unpaid: bool = Query(False, description="Only unpaid installments"),
    user_id: str = Depends(get_user_id),
    account_service: AccountService = Depends(get_account_service),
):
    try:
        installments = account_service.get_installments(account_id, user_id, unpaid_only=unpaid)
        return [InstallmentSchema.model_validate(inst) for inst in installments]
    except DomainException as e:
        raise to_http_exception(e)


@router.post("/accounts/{account_id}/settle", response_model=AccountResponse)
def settle_account(
    account_id: uuid.UUID,
    request_body: SettleAccountRequest,
    request: Request,
    user_id: str = Depends(get_user_id),
    ledger: PaymentLedger = Depends(get_payment_ledger),
    summary_store: SummaryStore = Depends(get_summary_store),
):
    """Pay every unpaid installment of an account at once"""
    try:
        account = ledger.settle_account(account_id, request_body.payment_amount_cents, user_id=user_id)
    except DomainException as e:
        logging.warning(f"Account settlement rejected: {e}", extra={"request_id": get_request_id(request)})
        raise to_http_exception(e)

    periods = affected_periods(account)
    periods.update((t.date.month, t.date.year) for t in account.transactions)
    summary_store.refresh_periods(user_id, periods)
    return AccountResponse.model_validate(account)


@router.patch("/accounts/{account_id}/reference", response_model=AccountResponse)
def update_reference(
    account_id: uuid.UUID,
    request_body: ReferenceUpdateRequest,
    user_id: str = Depends(get_user_id),
    account_service: AccountService = Depends(get_account_service),
    summary_store: SummaryStore = Depends(get_summary_store),
):
    """Move an account and its installments to another budget period; old and new periods are refreshed"""
    try:
        periods = account_service.update_reference(
            account_id, user_id, request_body.reference_month, request_body.reference_year
        )
    except DomainException as e:
        raise to_http_exception(e)

    summary_store.refresh_periods(user_id, periods)
    return AccountResponse.model_validate(account_service.get_account(account_id, user_id))


@router.get("/accounts/{account_id}/loan-terms", response_model=LoanTermsSchema)
def get_loan_terms(
    account_id: uuid.UUID,
    user_id: str = Depends(get_user_id),
    account_service: AccountService = Depends(get_account_service),
):
    """Total with interest and implied monthly rate of an installment loan"""
    try:
        return LoanTermsSchema.model_validate(account_service.get_loan_terms(account_id, user_id))
    except DomainException as e:
        raise to_http_exception(e)
