"""Pydantic schemas for API request/response validation"""

from pydantic import BaseModel, ConfigDict, Field, StrictInt, model_validator
from datetime import date, datetime
from typing import Dict, List, Optional
from uuid import UUID

from finance_tracker.domain.models import AccountType, FinancialStatus, TransactionType


class ORMModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class AccountCreateRequest(BaseModel):
    """Request body for POST /v1/accounts"""

    name: str = Field(..., min_length=1, max_length=100)
    type: AccountType
    start_date: date
    due_day: StrictInt = Field(..., ge=1, le=31, description="Day of month installments fall due")
    principal_cents: Optional[StrictInt] = Field(None, gt=0, description="Total amount in cents")
    installment_count: Optional[StrictInt] = Field(None, ge=1)
    installment_amount_cents: Optional[StrictInt] = Field(
        None, gt=0, description="Amount repeated by every installment (fixed bills, loans with interest)"
    )
    reference_month: Optional[StrictInt] = Field(None, ge=1, le=12)
    reference_year: Optional[StrictInt] = None

    @model_validator(mode="after")
    def check_schedule_source(self) -> "AccountCreateRequest":
        if self.installment_count and not (self.principal_cents or self.installment_amount_cents):
            raise ValueError("installment_count requires principal_cents or installment_amount_cents")
        return self


class InstallmentSchema(ORMModel):
    """Single installment in an account schedule"""

    id: UUID
    account_id: UUID
    number: int
    due_date: date
    amount_cents: int
    is_paid: bool
    paid_at: Optional[datetime] = None
    reference_month: int
    reference_year: int


class AccountResponse(ORMModel):
    """Account with its installment schedule"""

    id: UUID
    name: str
    type: AccountType
    principal_cents: Optional[int] = None
    installment_amount_cents: Optional[int] = None
    installment_count: Optional[int] = None
    start_date: date
    due_day: int
    reference_month: int
    reference_year: int
    is_paid: bool
    installments: List[InstallmentSchema] = []


class ReferenceUpdateRequest(BaseModel):
    """Request body for PATCH /v1/accounts/{account_id}/reference"""

    reference_month: StrictInt = Field(..., ge=1, le=12)
    reference_year: StrictInt


class AccountPage(BaseModel):
    """Response for GET /v1/accounts"""

    docs: List[AccountResponse]
    total: int
    limit: int
    page: int
    has_next_page: bool
    has_prev_page: bool


class TypeStatisticsSchema(BaseModel):
    total: int
    paid: int
    unpaid: int
    amount_cents: int


class PeriodStatisticsSchema(BaseModel):
    """Response for GET /v1/accounts/statistics"""

    reference_month: int
    reference_year: int
    total_accounts: int
    paid_accounts: int
    unpaid_accounts: int
    total_amount_cents: int
    paid_amount_cents: int
    unpaid_amount_cents: int
    by_type: Dict[AccountType, TypeStatisticsSchema]


class LoanTermsSchema(ORMModel):
    """Response for GET /v1/accounts/{account_id}/loan-terms"""

    principal_cents: int
    total_with_interest_cents: int
    interest_cents: int
    monthly_interest_rate_percent: float


class SettleAccountRequest(BaseModel):
    """Request body for POST /v1/accounts/{account_id}/settle"""

    payment_amount_cents: StrictInt = Field(..., gt=0)


class TransactionCreateRequest(BaseModel):
    """Request body for POST /v1/transactions"""

    type: TransactionType
    amount_cents: StrictInt = Field(..., gt=0, description="Amount in cents")
    description: str = Field(..., min_length=1, max_length=255)
    date: date
    category: Optional[str] = Field(None, max_length=50)
    account_id: Optional[UUID] = None


class TransactionSchema(ORMModel):
    id: UUID
    account_id: Optional[UUID] = None
    installment_id: Optional[UUID] = None
    type: TransactionType
    amount_cents: int
    category: Optional[str] = None
    description: str
    date: date


class BalanceSchema(ORMModel):
    """Response for GET /v1/transactions/balance"""

    total_income_cents: int
    total_expenses_cents: int
    total_balance_cents: int


class TransactionPage(BaseModel):
    """Response for GET /v1/transactions"""

    docs: List[TransactionSchema]
    total: int
    limit: int
    page: int
    has_next_page: bool
    has_prev_page: bool


class PaymentResponse(BaseModel):
    """Response for POST /v1/installments/{installment_id}/pay"""

    installment: InstallmentSchema
    transaction: TransactionSchema


class MonthlySummarySchema(ORMModel):
    """Stored monthly summary"""

    reference_month: int
    reference_year: int
    total_income_cents: int
    total_expenses_cents: int
    total_balance_cents: int
    bills_to_pay_cents: int
    bills_count: int
    status: FinancialStatus
    last_calculated_at: datetime


class TrendSchema(BaseModel):
    average_income_cents: int
    average_expenses_cents: int
    average_surplus_cents: int


class MonthlyComparisonResponse(BaseModel):
    """Response for GET /v1/summaries"""

    docs: List[MonthlySummarySchema]
    total: int
    limit: int
    page: int
    has_next_page: bool
    has_prev_page: bool
    trend: TrendSchema


class RecalculationResponse(BaseModel):
    """Response for POST /v1/summaries/recalculate"""

    total: int
    recalculated: int
