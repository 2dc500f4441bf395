"""Data access layer for accounts, installments, transactions and summaries"""

import uuid
from datetime import date
from typing import Dict, List, Optional, Tuple
from sqlalchemy import func
from sqlalchemy.orm import Session
from finance_tracker.infrastructure.database.models import Account, Installment, Transaction, MonthlySummary
from finance_tracker.domain import models as domain


class AccountRepository:
    """Repository for accounts"""

    def __init__(self, db: Session):
        self.db = db

    def create_account(self, user_id: str, **fields) -> Account:
        """Persist a new account without installments"""
        db_account = Account(user_id=user_id, **fields)
        self.db.add(db_account)
        self.db.flush()  # Get ID without committing
        return db_account

    def get_account(self, account_id: uuid.UUID, for_update: bool = False) -> Optional[Account]:
        """Fetch account, optionally locking the row until commit"""
        query = self.db.query(Account).filter(Account.id == account_id)
        if for_update:
            query = query.with_for_update()
        return query.first()

    def get_user_account(self, account_id: uuid.UUID, user_id: str) -> Optional[Account]:
        return (
            self.db.query(Account)
            .filter(Account.id == account_id, Account.user_id == user_id)
            .first()
        )

    def list_for_period(
        self,
        user_id: str,
        month: int,
        year: int,
        limit: Optional[int] = None,
        offset: int = 0,
        type: Optional[domain.AccountType] = None,
        is_paid: Optional[bool] = None,
        name: Optional[str] = None,
    ) -> Tuple[List[Account], int]:
        """Accounts whose reference period is (month, year), newest first; returns (rows, total)"""
        query = self.db.query(Account).filter(
            Account.user_id == user_id,
            Account.reference_month == month,
            Account.reference_year == year,
        )
        if type is not None:
            query = query.filter(Account.type == type.value)
        if is_paid is not None:
            query = query.filter(Account.is_paid.is_(is_paid))
        if name:
            query = query.filter(Account.name.ilike(f"%{name}%"))

        total = query.count()
        query = query.order_by(Account.created_at.desc()).offset(offset)
        if limit is not None:
            query = query.limit(limit)
        return query.all(), total

    def delete_account(self, account: Account) -> None:
        """Delete account; installments cascade, transaction references are nulled"""
        self.db.delete(account)
        self.db.flush()


class InstallmentRepository:
    """Repository for installments"""

    def __init__(self, db: Session):
        self.db = db

    def add_installments(self, account_id: uuid.UUID, installments: List[domain.Installment]) -> List[Installment]:
        """Create installment rows for a generated schedule"""
        db_installments = []
        for inst in installments:
            db_installment = Installment(
                account_id=account_id,
                number=inst.number,
                due_date=inst.due_date,
                amount_cents=inst.amount_cents,
                is_paid=False,
                reference_month=inst.reference_month,
                reference_year=inst.reference_year,
            )
            self.db.add(db_installment)
            db_installments.append(db_installment)

        self.db.flush()
        return db_installments

    def count_for_account(self, account_id: uuid.UUID) -> int:
        return self.db.query(func.count(Installment.id)).filter(Installment.account_id == account_id).scalar()

    def get_installment(self, installment_id: uuid.UUID, for_update: bool = False) -> Optional[Installment]:
        """Fetch installment, optionally locking the row until commit"""
        query = self.db.query(Installment).filter(Installment.id == installment_id)
        if for_update:
            query = query.with_for_update()
        return query.first()

    def get_by_account(self, account_id: uuid.UUID, unpaid_only: bool = False) -> List[Installment]:
        query = self.db.query(Installment).filter(Installment.account_id == account_id)
        if unpaid_only:
            query = query.filter(Installment.is_paid.is_(False))
        return query.order_by(Installment.number).all()

    def get_unpaid_for_update(self, account_id: uuid.UUID) -> List[Installment]:
        """Lock and return every unpaid installment of an account"""
        return (
            self.db.query(Installment)
            .filter(Installment.account_id == account_id, Installment.is_paid.is_(False))
            .order_by(Installment.number)
            .with_for_update()
            .all()
        )

    def get_overdue(self, user_id: str, today: date) -> List[Installment]:
        """Unpaid installments of the user's accounts due before ``today``"""
        return (
            self.db.query(Installment)
            .join(Account, Installment.account_id == Account.id)
            .filter(
                Account.user_id == user_id,
                Installment.is_paid.is_(False),
                Installment.due_date < today,
            )
            .order_by(Installment.due_date)
            .all()
        )

    def get_for_period(self, user_id: str, month: int, year: int) -> List[Installment]:
        """Installments of the user's accounts whose reference period is (month, year)"""
        return (
            self.db.query(Installment)
            .join(Account, Installment.account_id == Account.id)
            .filter(
                Account.user_id == user_id,
                Installment.reference_month == month,
                Installment.reference_year == year,
            )
            .all()
        )


class TransactionRepository:
    """Repository for income/expense transactions"""

    def __init__(self, db: Session):
        self.db = db

    def create_transaction(
        self,
        user_id: str,
        type: domain.TransactionType,
        amount_cents: int,
        description: str,
        txn_date: date,
        category: Optional[str] = None,
        account_id: Optional[uuid.UUID] = None,
        installment_id: Optional[uuid.UUID] = None,
    ) -> Transaction:
        """Persist transaction and flush so constraint violations surface here"""
        db_transaction = Transaction(
            user_id=user_id,
            type=type.value,
            amount_cents=amount_cents,
            description=description,
            date=txn_date,
            category=category,
            account_id=account_id,
            installment_id=installment_id,
        )
        self.db.add(db_transaction)
        self.db.flush()
        return db_transaction

    def get_transaction(self, transaction_id: uuid.UUID, user_id: str) -> Optional[Transaction]:
        return (
            self.db.query(Transaction)
            .filter(Transaction.id == transaction_id, Transaction.user_id == user_id)
            .first()
        )

    def get_by_installment(self, installment_id: uuid.UUID) -> Optional[Transaction]:
        """Settlement transaction for an installment, if any"""
        return self.db.query(Transaction).filter(Transaction.installment_id == installment_id).first()

    def get_in_range(self, user_id: str, start: date, end: date) -> List[Transaction]:
        """User transactions dated within [start, end], both inclusive"""
        return (
            self.db.query(Transaction)
            .filter(
                Transaction.user_id == user_id,
                Transaction.date >= start,
                Transaction.date <= end,
            )
            .all()
        )

    def list_transactions(
        self,
        user_id: str,
        limit: int,
        offset: int,
        type: Optional[domain.TransactionType] = None,
        category: Optional[str] = None,
    ) -> Tuple[List[Transaction], int]:
        """Page through user transactions, newest first; returns (rows, total)"""
        query = self.db.query(Transaction).filter(Transaction.user_id == user_id)
        if type is not None:
            query = query.filter(Transaction.type == type.value)
        if category:
            query = query.filter(Transaction.category == category)

        total = query.count()
        rows = (
            query.order_by(Transaction.date.desc(), Transaction.created_at.desc())
            .limit(limit)
            .offset(offset)
            .all()
        )
        return rows, total

    def totals_by_type(self, user_id: str) -> Dict[str, int]:
        """All-time amount sums keyed by transaction type"""
        rows = (
            self.db.query(Transaction.type, func.coalesce(func.sum(Transaction.amount_cents), 0))
            .filter(Transaction.user_id == user_id)
            .group_by(Transaction.type)
            .all()
        )
        return {type_: int(total) for type_, total in rows}

    def delete_transaction(self, transaction: Transaction) -> None:
        self.db.delete(transaction)
        self.db.flush()


class SummaryRepository:
    """Repository for monthly summaries"""

    def __init__(self, db: Session):
        self.db = db

    def get_by_period(self, user_id: str, month: int, year: int) -> Optional[MonthlySummary]:
        return (
            self.db.query(MonthlySummary)
            .filter(
                MonthlySummary.user_id == user_id,
                MonthlySummary.reference_month == month,
                MonthlySummary.reference_year == year,
            )
            .first()
        )

    def get_all_for_user(self, user_id: str) -> List[MonthlySummary]:
        return self.db.query(MonthlySummary).filter(MonthlySummary.user_id == user_id).all()

    def list_for_user(self, user_id: str, limit: int, offset: int) -> Tuple[List[MonthlySummary], int]:
        """Page through summaries in chronological order; returns (rows, total)"""
        query = self.db.query(MonthlySummary).filter(MonthlySummary.user_id == user_id)
        total = query.count()
        rows = (
            query.order_by(MonthlySummary.reference_year.asc(), MonthlySummary.reference_month.asc())
            .limit(limit)
            .offset(offset)
            .all()
        )
        return rows, total

    def insert_summary(self, summary: MonthlySummary) -> MonthlySummary:
        """Insert and flush; raises IntegrityError if the period already exists"""
        self.db.add(summary)
        self.db.flush()
        return summary
