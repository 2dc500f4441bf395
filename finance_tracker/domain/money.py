"""Integer minor-unit money helpers.

Every amount in the system is an ``int`` number of cents. Floats never enter
an amount field; callers that receive external input go through
``require_cents`` first.
"""

from finance_tracker.domain.exceptions import ValidationError


def require_cents(value: object, field: str = "amount_cents", allow_zero: bool = False) -> int:
    """Return ``value`` if it is a valid amount in cents, else raise ValidationError"""
    # bool is an int subclass, but True is not one cent
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{field} must be an integer number of cents")

    if value < 0 or (value == 0 and not allow_zero):
        bound = "non-negative" if allow_zero else "positive"
        raise ValidationError(f"{field} must be {bound}, got {value}")

    return value


def format_cents(amount_cents: int) -> str:
    """Render cents as a decimal string, e.g. 40003 -> '400.03'"""
    sign = "-" if amount_cents < 0 else ""
    whole, cents = divmod(abs(amount_cents), 100)
    return f"{sign}{whole}.{cents:02d}"
