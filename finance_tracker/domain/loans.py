"""Loan cost figures for accounts repaid in equal installments"""

from finance_tracker.domain.models import LoanTerms
from finance_tracker.domain.exceptions import ValidationError
from finance_tracker.domain.money import require_cents

# Newton iteration settings for the monthly rate
INITIAL_RATE = 0.01
RATE_TOLERANCE = 1e-10
MAX_ITERATIONS = 100
MIN_RATE = 0.0001
MAX_RATE = 0.5


def monthly_interest_rate(installment_cents: int, principal_cents: int, periods: int) -> float:
    """
    Solve the annuity (Price) formula for the monthly rate.

        installment = principal * i / (1 - (1 + i) ** -periods)

    Returns:
        Monthly rate as a percentage rounded to two decimals, 0.0 when the
        installments do not exceed the principal
    """
    if principal_cents <= 0 or periods <= 0 or installment_cents * periods <= principal_cents:
        return 0.0

    rate = INITIAL_RATE
    for _ in range(MAX_ITERATIONS):
        discount = (1 + rate) ** -periods
        error = principal_cents * rate / (1 - discount) - installment_cents
        if abs(error) < RATE_TOLERANCE:
            break

        derivative = principal_cents * (1 - discount - periods * rate * discount) / (1 - discount) ** 2
        rate -= error / derivative
        rate = min(max(rate, MIN_RATE), MAX_RATE)

    return round(rate * 100, 2)


def calculate_loan_terms(principal_cents: int, installment_cents: int, periods: int) -> LoanTerms:
    """
    Total paid, interest and implied monthly rate of a loan.

    Example:
        100000 borrowed, 12 x 8885 -> 106620 total, 6620 interest, 1.0 %/month
    """
    require_cents(principal_cents, "principal_cents")
    require_cents(installment_cents, "installment_amount_cents")
    if isinstance(periods, bool) or not isinstance(periods, int) or periods < 1:
        raise ValidationError(f"Installment count must be an integer >= 1, got {periods}")

    total = installment_cents * periods
    return LoanTerms(
        principal_cents=principal_cents,
        total_with_interest_cents=total,
        interest_cents=total - principal_cents,
        monthly_interest_rate_percent=monthly_interest_rate(installment_cents, principal_cents, periods),
    )
