"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    code = "DOMAIN_ERROR"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.code)
        self.message = message or self.code


class ValidationError(DomainException):
    """Input has the wrong shape or is out of range"""

    code = "VALIDATION_ERROR"


class NotFoundError(DomainException):
    """Referenced record does not exist"""

    code = "NOT_FOUND"


class AccountNotFoundError(NotFoundError):
    code = "ACCOUNT_NOT_FOUND"


class InstallmentNotFoundError(NotFoundError):
    code = "INSTALLMENT_NOT_FOUND"


class TransactionNotFoundError(NotFoundError):
    code = "TRANSACTION_NOT_FOUND"


class SummaryNotFoundError(NotFoundError):
    code = "MONTHLY_SUMMARY_NOT_FOUND"


class ConflictError(DomainException):
    """Operation conflicts with the current business state; do not retry"""

    code = "CONFLICT"


class InstallmentAlreadyPaidError(ConflictError):
    code = "INSTALLMENT_ALREADY_PAID"


class InstallmentAlreadySettledError(ConflictError):
    """A settlement transaction already references the installment"""

    code = "INSTALLMENT_ALREADY_SETTLED"


class AccountAlreadySettledError(ConflictError):
    code = "ACCOUNT_ALREADY_PAID"


class InsufficientAmountError(ConflictError):
    code = "INSUFFICIENT_PAYMENT_AMOUNT"


class InstallmentsAlreadyScheduledError(ConflictError):
    """Installment count is fixed once a schedule exists"""

    code = "ACCOUNT_INSTALLMENTS_ALREADY_SCHEDULED"


class AggregationError(DomainException):
    """Reading transactions or installments failed while computing a summary"""

    code = "MONTHLY_SUMMARY_CALCULATION_ERROR"
