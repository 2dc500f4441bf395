"""Account lifecycle and installment scheduling"""

import uuid
from datetime import date
from typing import List, Optional, Set, Tuple
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from finance_tracker.domain.exceptions import (
    AccountNotFoundError,
    DomainException,
    InstallmentsAlreadyScheduledError,
    ValidationError,
)
from finance_tracker.domain.installments import generate_fixed_plan, generate_installment_plan, validate_due_day
from finance_tracker.domain.loans import calculate_loan_terms
from finance_tracker.domain.models import AccountEntry, AccountType, LoanTerms, PeriodStatistics
from finance_tracker.domain.summary import period_statistics
from finance_tracker.domain.money import require_cents
from finance_tracker.infrastructure.database.models import Account, Installment
from finance_tracker.infrastructure.database.repositories import AccountRepository, InstallmentRepository
from finance_tracker.services.summaries import validate_period
from finance_tracker.utils.date_utils import shift_period

Period = Tuple[int, int]  # (month, year)


class AccountService:
    """Creates and deletes accounts and derives their installment schedules"""

    def __init__(self, db: Session):
        self.db = db
        self.accounts = AccountRepository(db)
        self.installments = InstallmentRepository(db)

    def create_account(
        self,
        user_id: str,
        name: str,
        type: AccountType,
        start_date: date,
        due_day: int,
        principal_cents: Optional[int] = None,
        installment_amount_cents: Optional[int] = None,
        reference_month: Optional[int] = None,
        reference_year: Optional[int] = None,
    ) -> Account:
        """
        Insert the account row only; installments are scheduled by a separate call.

        The reference period defaults to the start date's month and year.
        The session is flushed, not committed.
        """
        validate_due_day(due_day)
        if principal_cents is not None:
            require_cents(principal_cents, "principal_cents")
        if installment_amount_cents is not None:
            require_cents(installment_amount_cents, "installment_amount_cents")
        if (reference_month is None) != (reference_year is None):
            raise ValidationError("reference_month and reference_year must be given together")
        if reference_month is not None:
            validate_period(reference_month, reference_year)

        return self.accounts.create_account(
            user_id=user_id,
            name=name,
            type=AccountType(type).value,
            start_date=start_date,
            due_day=due_day,
            principal_cents=principal_cents,
            installment_count=None,  # set by schedule_installments
            installment_amount_cents=installment_amount_cents,
            reference_month=reference_month or start_date.month,
            reference_year=reference_year or start_date.year,
            is_paid=False,
        )

    def schedule_installments(
        self,
        account_id: uuid.UUID,
        principal_cents: int,
        count: int,
        start_date: date,
        due_day: int,
    ) -> List[Installment]:
        """
        Generate and store the amortization schedule of an account.

        Amounts split the principal with the remainder on the last installment.
        The session is flushed, not committed.

        Raises:
            AccountNotFoundError: Account does not exist
            InstallmentsAlreadyScheduledError: Account already has installments
            ValidationError: Invalid principal, count or due day
        """
        account = self._get_unscheduled_account(account_id)
        plan = generate_installment_plan(principal_cents, count, start_date, due_day)

        account.principal_cents = principal_cents
        account.installment_count = count
        return self.installments.add_installments(account.id, plan)

    def schedule_fixed_installments(
        self,
        account_id: uuid.UUID,
        installment_amount_cents: int,
        count: int,
        start_date: date,
        due_day: int,
    ) -> List[Installment]:
        """
        Schedule installments that repeat the same amount.

        Without a principal (fixed bills) the principal becomes amount * count;
        a loan keeps its borrowed principal and the difference is interest.
        """
        account = self._get_unscheduled_account(account_id)
        plan = generate_fixed_plan(installment_amount_cents, count, start_date, due_day)

        account.installment_amount_cents = installment_amount_cents
        if account.principal_cents is None:
            account.principal_cents = installment_amount_cents * count
        account.installment_count = count
        return self.installments.add_installments(account.id, plan)

    def open_account(self, user_id: str, **fields) -> Account:
        """
        Create an account and, when it is amortized, its schedule, in one commit.

        A per-installment amount, when given, is repeated (fixed bills, loans
        with interest); otherwise the principal is split.
        """
        installment_count = fields.pop("installment_count", None)

        try:
            account = self.create_account(user_id, **fields)

            if installment_count:
                if account.installment_amount_cents:
                    self.schedule_fixed_installments(
                        account.id,
                        account.installment_amount_cents,
                        installment_count,
                        account.start_date,
                        account.due_day,
                    )
                elif account.principal_cents:
                    self.schedule_installments(
                        account.id,
                        account.principal_cents,
                        installment_count,
                        account.start_date,
                        account.due_day,
                    )
                else:
                    raise ValidationError("installment_count requires principal_cents or installment_amount_cents")

            self.db.commit()
        except (DomainException, SQLAlchemyError):
            self.db.rollback()
            raise

        self.db.refresh(account)
        return account

    def get_account(self, account_id: uuid.UUID, user_id: str) -> Account:
        account = self.accounts.get_user_account(account_id, user_id)
        if account is None:
            raise AccountNotFoundError(f"Account {account_id} not found")
        return account

    def get_installments(self, account_id: uuid.UUID, user_id: str, unpaid_only: bool = False) -> List[Installment]:
        account = self.get_account(account_id, user_id)
        return self.installments.get_by_account(account.id, unpaid_only=unpaid_only)

    def get_overdue_installments(self, user_id: str, today: date) -> List[Installment]:
        return self.installments.get_overdue(user_id, today)

    def list_by_period(
        self,
        user_id: str,
        month: int,
        year: int,
        limit: int,
        page: int,
        type: Optional[AccountType] = None,
        is_paid: Optional[bool] = None,
        name: Optional[str] = None,
    ) -> Tuple[List[Account], int]:
        """Accounts budgeted to a reference period, filtered and paginated; returns (rows, total)"""
        validate_period(month, year)
        return self.accounts.list_for_period(
            user_id, month, year, limit=limit, offset=page * limit, type=type, is_paid=is_paid, name=name
        )

    def get_period_statistics(self, user_id: str, month: int, year: int) -> PeriodStatistics:
        """
        Paid and unpaid account counts and amounts for a reference period.

        An account's amount is its principal, or its installment amount when
        it has no principal.
        """
        validate_period(month, year)
        accounts, _ = self.accounts.list_for_period(user_id, month, year)
        return period_statistics(
            AccountEntry(
                type=account.type,
                amount_cents=account.principal_cents or account.installment_amount_cents or 0,
                is_paid=account.is_paid,
            )
            for account in accounts
        )

    def get_loan_terms(self, account_id: uuid.UUID, user_id: str) -> LoanTerms:
        """
        Total with interest and implied monthly rate of an installment loan.

        Raises:
            AccountNotFoundError: Account missing or owned by another user
            ValidationError: Account has no principal, installment amount or count
        """
        account = self.get_account(account_id, user_id)
        if not (account.principal_cents and account.installment_amount_cents and account.installment_count):
            raise ValidationError(
                f"Account {account_id} needs a principal, an installment amount and a count for loan terms"
            )
        return calculate_loan_terms(
            account.principal_cents, account.installment_amount_cents, account.installment_count
        )

    def update_reference(self, account_id: uuid.UUID, user_id: str, month: int, year: int) -> Set[Period]:
        """
        Move an account to another reference period.

        Installments keep their due dates; their reference periods move by
        the same number of months as the account. Returns the old and new
        periods, whose summaries are now stale.
        """
        validate_period(month, year)

        try:
            account = self.get_account(account_id, user_id)
            stale = affected_periods(account)

            offset = (year - account.reference_year) * 12 + (month - account.reference_month)
            account.reference_month, account.reference_year = month, year
            for inst in account.installments:
                inst.reference_month, inst.reference_year = shift_period(
                    inst.reference_month, inst.reference_year, offset
                )
            stale.update(affected_periods(account))
            self.db.commit()
        except (DomainException, SQLAlchemyError):
            self.db.rollback()
            raise

        return stale

    def delete_account(self, account_id: uuid.UUID, user_id: str) -> Set[Period]:
        """
        Delete an account and its installments.

        Transactions that referenced the account or its installments are kept
        with the references cleared. Returns the reference periods whose
        summaries are now stale.
        """
        try:
            account = self.get_account(account_id, user_id)
            periods = affected_periods(account)
            self.accounts.delete_account(account)
            self.db.commit()
        except (DomainException, SQLAlchemyError):
            self.db.rollback()
            raise

        return periods

    def _get_unscheduled_account(self, account_id: uuid.UUID) -> Account:
        account = self.accounts.get_account(account_id)
        if account is None:
            raise AccountNotFoundError(f"Account {account_id} not found")
        if self.installments.count_for_account(account.id) > 0:
            raise InstallmentsAlreadyScheduledError(
                f"Account {account_id} already has a schedule; delete and recreate it to change the count"
            )
        return account


def affected_periods(account: Account) -> Set[Period]:
    """Reference periods of an account and all of its installments"""
    periods = {(account.reference_month, account.reference_year)}
    periods.update((inst.reference_month, inst.reference_year) for inst in account.installments)
    return periods
