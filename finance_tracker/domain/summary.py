"""Monthly aggregation and financial health classification - core business logic for summaries"""

import math
from typing import Iterable, Sequence
from finance_tracker.domain.models import (
    AccountEntry,
    BillEntry,
    FinancialStatus,
    LedgerEntry,
    MonthlyTotals,
    PeriodStatistics,
    TransactionType,
    TypeStatistics,
    TrendAnalysis,
)
from finance_tracker.domain.exceptions import ValidationError

# Bills-to-income ratio thresholds, in percent
EXCELLENT_BILLS_PERCENT = 30
GOOD_BILLS_PERCENT = 50
WARNING_BILLS_PERCENT = 70


def aggregate_month(entries: Iterable[LedgerEntry], bills: Iterable[BillEntry]) -> MonthlyTotals:
    """
    Reduce one month of transactions and period installments to raw totals.

    Callers are responsible for selecting the rows: ``entries`` are the user's
    transactions dated inside the month, ``bills`` the user's installments
    whose reference period is the month.

    - Income and expenses are split by transaction type
    - bills_to_pay sums unpaid installment amounts
    - bills_count counts distinct accounts with at least one unpaid installment
    """
    total_income = 0
    total_expenses = 0
    for entry in entries:
        if entry.type == TransactionType.INCOME:
            total_income += entry.amount_cents
        else:
            total_expenses += entry.amount_cents

    unpaid = [bill for bill in bills if not bill.is_paid]
    bills_to_pay = sum(bill.amount_cents for bill in unpaid)
    bills_count = len({bill.account_id for bill in unpaid})

    return MonthlyTotals(
        total_income_cents=total_income,
        total_expenses_cents=total_expenses,
        total_balance_cents=total_income - total_expenses,
        bills_to_pay_cents=bills_to_pay,
        bills_count=bills_count,
    )


def classify_status(total_income: int, total_expenses: int, bills_to_pay: int) -> FinancialStatus:
    """
    Map monthly totals to a health status.

    surplus = income - expenses
    bills ratio = bills_to_pay / income, or 1 when there is no income

    - EXCELLENT: surplus > 0 and ratio < 0.30
    - GOOD:      surplus > 0 and ratio < 0.50
    - WARNING:   surplus >= 0 and ratio < 0.70
    - CRITICAL:  anything else

    Ratios are compared by cross-multiplying so integer cents never go through
    float division.
    """
    for name, value in (
        ("total_income", total_income),
        ("total_expenses", total_expenses),
        ("bills_to_pay", bills_to_pay),
    ):
        if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
            raise ValidationError(f"{name} must be a finite number, got {value!r}")

    surplus = total_income - total_expenses

    def ratio_below(percent: int) -> bool:
        if total_income > 0:
            return bills_to_pay * 100 < percent * total_income
        # No income: ratio defaults to 1
        return 100 < percent

    if surplus > 0 and ratio_below(EXCELLENT_BILLS_PERCENT):
        return FinancialStatus.EXCELLENT
    elif surplus > 0 and ratio_below(GOOD_BILLS_PERCENT):
        return FinancialStatus.GOOD
    elif surplus >= 0 and ratio_below(WARNING_BILLS_PERCENT):
        return FinancialStatus.WARNING
    else:
        return FinancialStatus.CRITICAL


def analyze_trend(summaries: Sequence) -> TrendAnalysis:
    """Average income, expenses and surplus over stored summaries, rounded to whole cents"""
    if not summaries:
        return TrendAnalysis(average_income_cents=0, average_expenses_cents=0, average_surplus_cents=0)

    count = len(summaries)
    total_income = sum(s.total_income_cents for s in summaries)
    total_expenses = sum(s.total_expenses_cents for s in summaries)

    return TrendAnalysis(
        average_income_cents=round(total_income / count),
        average_expenses_cents=round(total_expenses / count),
        average_surplus_cents=round((total_income - total_expenses) / count),
    )


def period_statistics(accounts: Iterable[AccountEntry]) -> PeriodStatistics:
    """Count accounts of a reference period and total their amounts, overall and per account type"""
    by_type = {}
    total_accounts = paid_accounts = 0
    total_amount = paid_amount = 0

    for account in accounts:
        stats = by_type.setdefault(account.type, TypeStatistics())
        stats.total += 1
        stats.amount_cents += account.amount_cents
        total_accounts += 1
        total_amount += account.amount_cents

        if account.is_paid:
            stats.paid += 1
            paid_accounts += 1
            paid_amount += account.amount_cents
        else:
            stats.unpaid += 1

    return PeriodStatistics(
        total_accounts=total_accounts,
        paid_accounts=paid_accounts,
        unpaid_accounts=total_accounts - paid_accounts,
        total_amount_cents=total_amount,
        paid_amount_cents=paid_amount,
        unpaid_amount_cents=total_amount - paid_amount,
        by_type=by_type,
    )
