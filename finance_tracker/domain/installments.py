"""Installment schedule generation for amortized accounts"""

from datetime import date
from typing import List
from finance_tracker.domain.models import Installment
from finance_tracker.domain.exceptions import ValidationError
from finance_tracker.domain.money import require_cents
from finance_tracker.utils.date_utils import add_months


def validate_due_day(due_day: int) -> None:
    if isinstance(due_day, bool) or not isinstance(due_day, int) or not 1 <= due_day <= 31:
        raise ValidationError(f"Due day must be between 1 and 31, got {due_day!r}")


def _validate_schedule_inputs(num_installments: int, due_day: int) -> None:
    if isinstance(num_installments, bool) or not isinstance(num_installments, int) or num_installments < 1:
        raise ValidationError(f"Installment count must be an integer >= 1, got {num_installments}")
    validate_due_day(due_day)


def _due_dates(num_installments: int, start_date: date, due_day: int) -> List[date]:
    # One installment per calendar month, starting in the start date's month
    return [add_months(start_date, i, day=due_day) for i in range(num_installments)]


def generate_installment_plan(
    principal_cents: int,
    num_installments: int,
    start_date: date,
    due_day: int,
) -> List[Installment]:
    """
    Split a principal into monthly installments.

    Requirements:
    - One installment per month, first one in the start date's month
    - Day component forced to due_day, clamped to the month's last day
    - Installments 1..N-1 get principal // N, the last absorbs the remainder

    Args:
        principal_cents: Total amount to split (> 0)
        num_installments: Number of payments (>= 1)
        start_date: Any day in the month of the first installment
        due_day: Day of month the installments fall due (1-31)

    Returns:
        List of Installment objects ordered by number

    Example:
        1000 cents / 3 -> [333, 333, 334]
    """
    require_cents(principal_cents, "principal_cents")
    _validate_schedule_inputs(num_installments, due_day)

    base_amount = principal_cents // num_installments
    if base_amount == 0:
        raise ValidationError(
            f"Principal of {principal_cents} cents cannot cover {num_installments} positive installments"
        )
    remainder = principal_cents - base_amount * num_installments

    installments = []
    for i, due_date in enumerate(_due_dates(num_installments, start_date, due_day)):
        # Last installment absorbs remainder to ensure exact total
        amount = base_amount + (remainder if i == num_installments - 1 else 0)

        installments.append(
            Installment(
                number=i + 1,
                due_date=due_date,
                amount_cents=amount,
                reference_month=due_date.month,
                reference_year=due_date.year,
            )
        )

    return installments


def generate_fixed_plan(
    installment_amount_cents: int,
    num_installments: int,
    start_date: date,
    due_day: int,
) -> List[Installment]:
    """Repeat a known per-installment amount (fixed bills, loans with interest) on the same monthly calendar"""
    require_cents(installment_amount_cents, "installment_amount_cents")
    _validate_schedule_inputs(num_installments, due_day)

    return [
        Installment(
            number=i + 1,
            due_date=due_date,
            amount_cents=installment_amount_cents,
            reference_month=due_date.month,
            reference_year=due_date.year,
        )
        for i, due_date in enumerate(_due_dates(num_installments, start_date, due_day))
    ]
