"""Integration tests for installment and account settlement"""

import uuid
import pytest
from datetime import date
from sqlalchemy.orm import Session

from finance_tracker.domain.exceptions import (
    AccountAlreadySettledError,
    AccountNotFoundError,
    InstallmentAlreadyPaidError,
    InstallmentAlreadySettledError,
    InstallmentNotFoundError,
    InsufficientAmountError,
    ValidationError,
)
from finance_tracker.domain.models import AccountType
from finance_tracker.infrastructure.database.models import Transaction
from finance_tracker.services.accounts import AccountService
from finance_tracker.services.ledger import PaymentLedger

USER_ID = "user_123"
OTHER_USER_ID = "user_456"


def _settlements(db: Session, installment_id: uuid.UUID) -> list[Transaction]:
    return db.query(Transaction).filter(Transaction.installment_id == installment_id).all()


def test_mark_paid_records_expense_transaction(ledger: PaymentLedger, loan_account):
    """Paying an installment flags it and creates its settlement transaction"""
    first = loan_account.installments[0]

    result = ledger.mark_paid(first.id, USER_ID)

    assert result.installment.is_paid is True
    assert result.installment.paid_at is not None
    txn = result.transaction
    assert txn.type == "EXPENSE"
    assert txn.amount_cents == 33333
    assert txn.category == "INSTALLMENT_PAYMENT"
    assert txn.description == "Car loan - installment 1/3"
    assert txn.date == date(2025, 3, 15)
    assert txn.account_id == loan_account.id
    assert txn.installment_id == first.id


def test_mark_paid_twice_is_rejected(ledger: PaymentLedger, loan_account, db: Session):
    """Second payment fails and does not create another transaction"""
    first = loan_account.installments[0]
    ledger.mark_paid(first.id, USER_ID)

    with pytest.raises(InstallmentAlreadyPaidError) as exc_info:
        ledger.mark_paid(first.id, USER_ID)

    assert exc_info.value.code == "INSTALLMENT_ALREADY_PAID"
    assert len(_settlements(db, first.id)) == 1


def test_mark_paid_unknown_installment(ledger: PaymentLedger):
    with pytest.raises(InstallmentNotFoundError):
        ledger.mark_paid(uuid.uuid4(), USER_ID)


def test_mark_paid_hides_other_users_installments(ledger: PaymentLedger, loan_account, db: Session):
    first = loan_account.installments[0]

    with pytest.raises(InstallmentNotFoundError):
        ledger.mark_paid(first.id, OTHER_USER_ID)

    assert _settlements(db, first.id) == []


def test_mark_unpaid_keeps_settlement_transaction(ledger: PaymentLedger, loan_account, db: Session):
    """Unpaying clears the flag only; re-paying is blocked by the existing settlement"""
    first = loan_account.installments[0]
    ledger.mark_paid(first.id, USER_ID)

    installment = ledger.mark_unpaid(first.id, USER_ID)

    assert installment.is_paid is False
    assert installment.paid_at is None
    assert len(_settlements(db, first.id)) == 1

    with pytest.raises(InstallmentAlreadySettledError):
        ledger.mark_paid(first.id, USER_ID)


def test_mark_unpaid_unknown_installment(ledger: PaymentLedger):
    with pytest.raises(InstallmentNotFoundError):
        ledger.mark_unpaid(uuid.uuid4())


def test_concurrent_settlement_loses_on_unique_constraint(
    ledger: PaymentLedger, loan_account, db: Session, monkeypatch
):
    """
    A settlement that passes the checks but collides with an existing
    settlement row is rolled back by the unique constraint.
    """
    first = loan_account.installments[0]
    ledger.mark_paid(first.id, USER_ID)
    ledger.mark_unpaid(first.id, USER_ID)

    # Simulate the concurrent writer: the existence check sees nothing
    monkeypatch.setattr(ledger.transactions, "get_by_installment", lambda installment_id: None)

    with pytest.raises(InstallmentAlreadySettledError):
        ledger.mark_paid(first.id, USER_ID)

    assert ledger.installments.get_installment(first.id).is_paid is False
    assert len(_settlements(db, first.id)) == 1


def test_settle_account_pays_everything(ledger: PaymentLedger, loan_account, db: Session):
    account = ledger.settle_account(loan_account.id, 100000, user_id=USER_ID)

    assert account.is_paid is True
    assert all(inst.is_paid for inst in account.installments)

    txns = db.query(Transaction).filter(Transaction.account_id == account.id).all()
    assert len(txns) == 1
    assert txns[0].category == "ACCOUNT_PAYMENT"
    assert txns[0].amount_cents == 100000
    assert txns[0].installment_id is None


def test_settle_account_after_partial_payment(ledger: PaymentLedger, loan_account):
    """Amount due is the remaining unpaid installments"""
    ledger.mark_paid(loan_account.installments[0].id, USER_ID)

    with pytest.raises(InsufficientAmountError):
        ledger.settle_account(loan_account.id, 66666, user_id=USER_ID)

    account = ledger.settle_account(loan_account.id, 66667, user_id=USER_ID)
    assert account.is_paid is True


def test_settle_account_insufficient_changes_nothing(ledger: PaymentLedger, loan_account, db: Session):
    with pytest.raises(InsufficientAmountError) as exc_info:
        ledger.settle_account(loan_account.id, 50000, user_id=USER_ID)

    assert exc_info.value.code == "INSUFFICIENT_PAYMENT_AMOUNT"
    account = ledger.accounts.get_account(loan_account.id)
    assert account.is_paid is False
    assert not any(inst.is_paid for inst in account.installments)
    assert db.query(Transaction).count() == 0


def test_settle_account_twice(ledger: PaymentLedger, loan_account):
    ledger.settle_account(loan_account.id, 100000, user_id=USER_ID)

    with pytest.raises(AccountAlreadySettledError) as exc_info:
        ledger.settle_account(loan_account.id, 100000, user_id=USER_ID)

    assert exc_info.value.code == "ACCOUNT_ALREADY_PAID"


def test_settle_account_without_schedule_uses_principal(
    ledger: PaymentLedger, account_service: AccountService
):
    account = account_service.open_account(
        USER_ID,
        name="Dentist",
        type=AccountType.OTHER,
        start_date=date(2025, 3, 1),
        due_day=20,
        principal_cents=25000,
    )

    with pytest.raises(InsufficientAmountError):
        ledger.settle_account(account.id, 24999, user_id=USER_ID)

    assert ledger.settle_account(account.id, 25000, user_id=USER_ID).is_paid is True


def test_settle_account_rejects_non_positive_amount(ledger: PaymentLedger, loan_account):
    with pytest.raises(ValidationError):
        ledger.settle_account(loan_account.id, 0, user_id=USER_ID)


def test_settle_account_of_other_user(ledger: PaymentLedger, loan_account):
    with pytest.raises(AccountNotFoundError):
        ledger.settle_account(loan_account.id, 100000, user_id=OTHER_USER_ID)
