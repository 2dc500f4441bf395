"""Ad-hoc income and expense transactions"""

import uuid
from datetime import date
from typing import List, Optional, Tuple
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from finance_tracker.domain.exceptions import AccountNotFoundError, DomainException, TransactionNotFoundError
from finance_tracker.domain.models import TransactionType, UserBalance
from finance_tracker.domain.money import require_cents
from finance_tracker.infrastructure.database.models import Transaction
from finance_tracker.infrastructure.database.repositories import AccountRepository, TransactionRepository


class TransactionService:
    def __init__(self, db: Session):
        self.db = db
        self.accounts = AccountRepository(db)
        self.transactions = TransactionRepository(db)

    def record(
        self,
        user_id: str,
        type: TransactionType,
        amount_cents: int,
        description: str,
        txn_date: date,
        category: Optional[str] = None,
        account_id: Optional[uuid.UUID] = None,
    ) -> Transaction:
        """Store a user transaction, optionally tagged with one of the user's accounts"""
        require_cents(amount_cents)

        try:
            if account_id is not None and self.accounts.get_user_account(account_id, user_id) is None:
                raise AccountNotFoundError(f"Account {account_id} not found")

            transaction = self.transactions.create_transaction(
                user_id=user_id,
                type=TransactionType(type),
                amount_cents=amount_cents,
                description=description,
                txn_date=txn_date,
                category=category,
                account_id=account_id,
            )
            self.db.commit()
        except (DomainException, SQLAlchemyError):
            self.db.rollback()
            raise

        return transaction

    def list(
        self,
        user_id: str,
        limit: int,
        page: int,
        type: Optional[TransactionType] = None,
        category: Optional[str] = None,
    ) -> Tuple[List[Transaction], int]:
        return self.transactions.list_transactions(
            user_id, limit=limit, offset=page * limit, type=type, category=category
        )

    def balance(self, user_id: str) -> UserBalance:
        """All-time income, expenses and their difference"""
        totals = self.transactions.totals_by_type(user_id)
        income = totals.get(TransactionType.INCOME.value, 0)
        expenses = totals.get(TransactionType.EXPENSE.value, 0)
        return UserBalance(
            total_income_cents=income,
            total_expenses_cents=expenses,
            total_balance_cents=income - expenses,
        )

    def delete(self, transaction_id: uuid.UUID, user_id: str) -> date:
        """
        Delete a transaction, including a settlement transaction.

        Deleting a settlement does not touch the installment's paid flag.
        Returns the transaction date so the caller can refresh its month.
        """
        try:
            transaction = self.transactions.get_transaction(transaction_id, user_id)
            if transaction is None:
                raise TransactionNotFoundError(f"Transaction {transaction_id} not found")

            txn_date = transaction.date
            self.transactions.delete_transaction(transaction)
            self.db.commit()
        except (DomainException, SQLAlchemyError):
            self.db.rollback()
            raise

        return txn_date
