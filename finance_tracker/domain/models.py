"""Domain models - pure Python dataclasses representing business entities"""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Dict


class AccountType(str, Enum):
    FIXED = "FIXED"
    LOAN = "LOAN"
    CREDIT_CARD = "CREDIT_CARD"
    SUBSCRIPTION = "SUBSCRIPTION"
    OTHER = "OTHER"


class TransactionType(str, Enum):
    INCOME = "INCOME"
    EXPENSE = "EXPENSE"


class FinancialStatus(str, Enum):
    """Four-level financial health of a month, best first"""

    EXCELLENT = "EXCELLENT"
    GOOD = "GOOD"
    WARNING = "WARNING"
    CRITICAL = "CRITICAL"


# Categories stamped on transactions created by settlements
INSTALLMENT_PAYMENT_CATEGORY = "INSTALLMENT_PAYMENT"
ACCOUNT_PAYMENT_CATEGORY = "ACCOUNT_PAYMENT"


@dataclass
class Installment:
    """Single scheduled payment of an amortized account"""

    number: int
    due_date: date
    amount_cents: int
    reference_month: int
    reference_year: int


@dataclass
class LedgerEntry:
    """Income or expense transaction as seen by the monthly aggregation"""

    type: TransactionType
    amount_cents: int
    date: date


@dataclass
class BillEntry:
    """Installment assigned to a reference period, as seen by the monthly aggregation"""

    account_id: object
    amount_cents: int
    is_paid: bool


@dataclass
class MonthlyTotals:
    """Raw aggregation output for one (user, month, year), unclassified"""

    total_income_cents: int
    total_expenses_cents: int
    total_balance_cents: int
    bills_to_pay_cents: int
    bills_count: int


@dataclass
class TrendAnalysis:
    """Averages across a set of monthly summaries"""

    average_income_cents: int
    average_expenses_cents: int
    average_surplus_cents: int


@dataclass
class AccountEntry:
    """Account as seen by the per-period statistics"""

    type: str
    amount_cents: int
    is_paid: bool


@dataclass
class TypeStatistics:
    total: int = 0
    paid: int = 0
    unpaid: int = 0
    amount_cents: int = 0


@dataclass
class PeriodStatistics:
    """Paid/unpaid account counts and amounts for one reference period"""

    total_accounts: int
    paid_accounts: int
    unpaid_accounts: int
    total_amount_cents: int
    paid_amount_cents: int
    unpaid_amount_cents: int
    by_type: Dict[str, TypeStatistics] = field(default_factory=dict)


@dataclass
class LoanTerms:
    """Cost of a loan repaid in equal installments"""

    principal_cents: int
    total_with_interest_cents: int
    interest_cents: int
    monthly_interest_rate_percent: float


@dataclass
class UserBalance:
    """All-time income and expenses of a user"""

    total_income_cents: int
    total_expenses_cents: int
    total_balance_cents: int
