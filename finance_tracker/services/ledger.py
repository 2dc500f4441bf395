"""Installment and account settlement with exactly-once transaction linkage"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from finance_tracker.domain.exceptions import (
    AccountAlreadySettledError,
    AccountNotFoundError,
    DomainException,
    InstallmentAlreadyPaidError,
    InstallmentAlreadySettledError,
    InstallmentNotFoundError,
    InsufficientAmountError,
)
from finance_tracker.domain.models import (
    ACCOUNT_PAYMENT_CATEGORY,
    INSTALLMENT_PAYMENT_CATEGORY,
    TransactionType,
)
from finance_tracker.domain.money import require_cents
from finance_tracker.infrastructure.database.models import Account, Installment, Transaction
from finance_tracker.infrastructure.database.repositories import (
    AccountRepository,
    InstallmentRepository,
    TransactionRepository,
)
from finance_tracker.infrastructure.observability.logging import log_account_settled, log_installment_paid
from finance_tracker.infrastructure.observability.metrics import (
    account_settlement_counter,
    installment_payment_counter,
)

logger = logging.getLogger(__name__)

_OUTCOMES = {
    InstallmentNotFoundError: "not_found",
    InstallmentAlreadyPaidError: "already_paid",
    InstallmentAlreadySettledError: "already_settled",
    AccountNotFoundError: "not_found",
    AccountAlreadySettledError: "already_settled",
    InsufficientAmountError: "insufficient_amount",
}


@dataclass
class PaymentResult:
    installment: Installment
    transaction: Transaction


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PaymentLedger:
    """
    Moves installments between unpaid and paid.

    Every settlement runs its read-check-write sequence inside one database
    transaction: rows are locked with SELECT ... FOR UPDATE, and the unique
    constraint on transactions.installment_id rejects a second settlement that
    slips past the checks. Any failure rolls the whole operation back.
    """

    def __init__(self, db: Session, now: Callable[[], datetime] = _utcnow):
        self.db = db
        self.accounts = AccountRepository(db)
        self.installments = InstallmentRepository(db)
        self.transactions = TransactionRepository(db)
        self._now = now

    def mark_paid(self, installment_id: uuid.UUID, user_id: str) -> PaymentResult:
        """
        Mark an installment paid and record exactly one expense transaction for it.

        Raises:
            InstallmentNotFoundError: Installment missing or owned by another user
            InstallmentAlreadyPaidError: Installment is already flagged paid
            InstallmentAlreadySettledError: A transaction already references the installment
        """
        try:
            installment = self.installments.get_installment(installment_id, for_update=True)
            if installment is None or installment.account.user_id != user_id:
                raise InstallmentNotFoundError(f"Installment {installment_id} not found")

            if installment.is_paid:
                raise InstallmentAlreadyPaidError(f"Installment {installment_id} is already paid")

            if self.transactions.get_by_installment(installment.id) is not None:
                raise InstallmentAlreadySettledError(
                    f"Installment {installment_id} already has a settlement transaction"
                )

            now = self._now()
            account = installment.account
            transaction = self.transactions.create_transaction(
                user_id=user_id,
                type=TransactionType.EXPENSE,
                amount_cents=installment.amount_cents,
                description=f"{account.name} - installment {installment.number}/{account.installment_count}",
                txn_date=now.date(),
                category=INSTALLMENT_PAYMENT_CATEGORY,
                account_id=account.id,
                installment_id=installment.id,
            )
            installment.is_paid = True
            installment.paid_at = now

            self.db.commit()

        except IntegrityError as e:
            # Lost the race against a concurrent settlement of the same installment
            self.db.rollback()
            installment_payment_counter.labels(outcome="already_settled").inc()
            raise InstallmentAlreadySettledError(
                f"Installment {installment_id} already has a settlement transaction"
            ) from e

        except DomainException as e:
            self.db.rollback()
            installment_payment_counter.labels(outcome=_OUTCOMES.get(type(e), "error")).inc()
            raise

        except SQLAlchemyError:
            self.db.rollback()
            logger.exception("Installment payment failed", extra={"installment_id": str(installment_id)})
            raise

        installment_payment_counter.labels(outcome="paid").inc()
        log_installment_paid(user_id, str(installment.id), str(transaction.id), transaction.amount_cents)
        return PaymentResult(installment=installment, transaction=transaction)

    def mark_unpaid(self, installment_id: uuid.UUID, user_id: Optional[str] = None) -> Installment:
        """
        Clear the paid flag and timestamp.

        The settlement transaction is kept; deleting it is a separate,
        explicit operation.
        """
        try:
            installment = self.installments.get_installment(installment_id, for_update=True)
            if installment is None or (user_id is not None and installment.account.user_id != user_id):
                raise InstallmentNotFoundError(f"Installment {installment_id} not found")

            installment.is_paid = False
            installment.paid_at = None
            self.db.commit()
        except (DomainException, SQLAlchemyError):
            self.db.rollback()
            raise

        return installment

    def settle_account(
        self,
        account_id: uuid.UUID,
        payment_amount_cents: int,
        user_id: Optional[str] = None,
    ) -> Account:
        """
        Pay off an account in one step, all-or-nothing.

        Every unpaid installment is marked paid, the account is flagged
        settled, and one expense transaction records the payment.

        Raises:
            ValidationError: payment_amount_cents is not a positive integer
            AccountNotFoundError: Account missing or owned by another user
            AccountAlreadySettledError: Account is already flagged settled
            InsufficientAmountError: Payment below the unpaid installment total,
                or below the principal for accounts without installments
        """
        require_cents(payment_amount_cents, "payment_amount_cents")

        try:
            account = self.accounts.get_account(account_id, for_update=True)
            if account is None or (user_id is not None and account.user_id != user_id):
                raise AccountNotFoundError(f"Account {account_id} not found")

            if account.is_paid:
                raise AccountAlreadySettledError(f"Account {account_id} is already settled")

            unpaid = self.installments.get_unpaid_for_update(account.id)
            if account.installment_count:
                amount_due = sum(inst.amount_cents for inst in unpaid)
            else:
                amount_due = account.principal_cents or 0

            if payment_amount_cents < amount_due:
                raise InsufficientAmountError(
                    f"Payment of {payment_amount_cents} cents is below the {amount_due} cents due"
                )

            now = self._now()
            for inst in unpaid:
                inst.is_paid = True
                inst.paid_at = now
            account.is_paid = True

            self.transactions.create_transaction(
                user_id=account.user_id,
                type=TransactionType.EXPENSE,
                amount_cents=payment_amount_cents,
                description=f"{account.name} - settlement",
                txn_date=now.date(),
                category=ACCOUNT_PAYMENT_CATEGORY,
                account_id=account.id,
            )

            self.db.commit()

        except DomainException as e:
            self.db.rollback()
            account_settlement_counter.labels(outcome=_OUTCOMES.get(type(e), "error")).inc()
            raise

        except SQLAlchemyError:
            self.db.rollback()
            logger.exception("Account settlement failed", extra={"account_id": str(account_id)})
            raise

        account_settlement_counter.labels(outcome="settled").inc()
        log_account_settled(str(account.id), payment_amount_cents, len(unpaid))
        return account
