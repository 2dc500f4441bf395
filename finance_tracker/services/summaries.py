"""Monthly summary computation and the per-(user, month, year) summary cache"""

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Iterable, List, Optional, Tuple
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from finance_tracker.config import settings
from finance_tracker.domain.exceptions import AggregationError, DomainException, SummaryNotFoundError, ValidationError
from finance_tracker.domain.models import BillEntry, LedgerEntry, MonthlyTotals, TransactionType
from finance_tracker.domain.summary import aggregate_month, classify_status
from finance_tracker.infrastructure.database.models import MonthlySummary
from finance_tracker.infrastructure.database.repositories import (
    InstallmentRepository,
    SummaryRepository,
    TransactionRepository,
)
from finance_tracker.infrastructure.observability.logging import log_summary_computed
from finance_tracker.infrastructure.observability.metrics import (
    record_summary_read,
    summary_compute_histogram,
    summary_recalculation_failures_counter,
    summary_status_counter,
    summary_upsert_conflicts_counter,
)
from finance_tracker.utils.date_utils import month_bounds

logger = logging.getLogger(__name__)

Period = Tuple[int, int]  # (month, year)


@dataclass
class RecalculationResult:
    total: int
    recalculated: int


def validate_period(month: int, year: int) -> None:
    """Reject months outside 1-12 and years outside the configured range"""
    if isinstance(month, bool) or not isinstance(month, int) or not 1 <= month <= 12:
        raise ValidationError(f"Month must be between 1 and 12, got {month}")
    if isinstance(year, bool) or not isinstance(year, int) or not (
        settings.min_reference_year <= year <= settings.max_reference_year
    ):
        raise ValidationError(
            f"Year must be between {settings.min_reference_year} and {settings.max_reference_year}, got {year}"
        )


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MonthlyAggregator:
    """Reads one month of a user's transactions and period installments and totals them"""

    def __init__(self, db: Session):
        self.transactions = TransactionRepository(db)
        self.installments = InstallmentRepository(db)

    def aggregate(self, user_id: str, month: int, year: int) -> MonthlyTotals:
        """
        Compute raw totals for a calendar month.

        Raises:
            AggregationError: Any database failure while reading; nothing is returned partially
        """
        first_day, last_day = month_bounds(month, year)

        try:
            transactions = self.transactions.get_in_range(user_id, first_day, last_day)
            installments = self.installments.get_for_period(user_id, month, year)

            entries = [
                LedgerEntry(type=TransactionType(t.type), amount_cents=t.amount_cents, date=t.date)
                for t in transactions
            ]
            bills = [
                BillEntry(account_id=i.account_id, amount_cents=i.amount_cents, is_paid=i.is_paid)
                for i in installments
            ]
        except SQLAlchemyError as e:
            raise AggregationError(f"Failed to read data for {month:02d}/{year}: {e}") from e

        return aggregate_month(entries, bills)


class SummaryStore:
    """
    Read-or-compute cache of one MonthlySummary per (user, month, year).

    Each computing call commits its own unit of work, so callers must not
    hold unrelated pending changes on the same session.
    """

    def __init__(
        self,
        db: Session,
        aggregator: Optional[MonthlyAggregator] = None,
        now: Callable[[], datetime] = _utcnow,
    ):
        self.db = db
        self.summaries = SummaryRepository(db)
        self.aggregator = aggregator or MonthlyAggregator(db)
        self._now = now

    def get_summary(self, user_id: str, month: int, year: int) -> MonthlySummary:
        """Return the stored summary without computing one"""
        validate_period(month, year)
        summary = self.summaries.get_by_period(user_id, month, year)
        if summary is None:
            raise SummaryNotFoundError(f"No summary stored for {month:02d}/{year}")
        return summary

    def get_or_compute(
        self,
        user_id: str,
        month: int,
        year: int,
        force_recalculate: bool = False,
    ) -> MonthlySummary:
        """
        Return the cached summary, computing and upserting it when absent or forced.

        A cache hit performs no aggregation. A forced call always re-aggregates
        and overwrites the stored row in place.
        """
        validate_period(month, year)

        try:
            existing = self.summaries.get_by_period(user_id, month, year)
        except SQLAlchemyError as e:
            self.db.rollback()
            raise AggregationError(f"Failed to read summary for {month:02d}/{year}: {e}") from e

        if existing is not None and not force_recalculate:
            record_summary_read(cache_hit=True, forced=False)
            return existing

        record_summary_read(cache_hit=False, forced=force_recalculate)

        start_time = time.time()
        try:
            with summary_compute_histogram.time():
                totals = self.aggregator.aggregate(user_id, month, year)
        except AggregationError:
            # A failed read aborts the transaction on PostgreSQL; the next period needs a clean one
            self.db.rollback()
            raise
        status = classify_status(
            totals.total_income_cents,
            totals.total_expenses_cents,
            totals.bills_to_pay_cents,
        )

        summary = self._upsert(user_id, month, year, totals, status.value, existing)

        summary_status_counter.labels(status=status.value).inc()
        duration_ms = (time.time() - start_time) * 1000
        log_summary_computed(user_id, month, year, status.value, duration_ms)
        return summary

    def recalculate_all(self, user_id: str) -> RecalculationResult:
        """
        Force recomputation of every stored summary of a user, one period at a time.

        A period whose aggregation fails is logged and skipped; the result
        reports how many of the stored periods were recalculated.
        """
        try:
            periods = [(s.reference_month, s.reference_year) for s in self.summaries.get_all_for_user(user_id)]
        except SQLAlchemyError as e:
            raise AggregationError(f"Failed to list summaries: {e}") from e

        recalculated = 0
        for month, year in periods:
            try:
                self.get_or_compute(user_id, month, year, force_recalculate=True)
                recalculated += 1
            except AggregationError as e:
                summary_recalculation_failures_counter.inc()
                logger.warning(
                    f"Skipping summary recalculation for {month:02d}/{year}: {e}",
                    extra={"user_id": user_id, "reference_month": month, "reference_year": year},
                )

        return RecalculationResult(total=len(periods), recalculated=recalculated)

    def refresh_periods(self, user_id: str, periods: Iterable[Period]) -> int:
        """
        Force recomputation of the periods touched by a mutation.

        Refresh failures never undo the mutation that triggered them; they are
        logged and the next forced read repairs the row. Returns how many
        periods were refreshed.
        """
        refreshed = 0
        for month, year in sorted(set(periods), key=lambda p: (p[1], p[0])):
            try:
                self.get_or_compute(user_id, month, year, force_recalculate=True)
                refreshed += 1
            except DomainException as e:
                logger.warning(
                    f"Failed to refresh summary for {month:02d}/{year}: {e}",
                    extra={"user_id": user_id, "reference_month": month, "reference_year": year},
                )
        return refreshed

    def list_summaries(self, user_id: str, limit: int, page: int) -> Tuple[List[MonthlySummary], int]:
        """Stored summaries in chronological order, paginated; returns (rows, total)"""
        return self.summaries.list_for_user(user_id, limit=limit, offset=page * limit)

    def _apply(self, summary: MonthlySummary, totals: MonthlyTotals, status: str) -> None:
        summary.total_income_cents = totals.total_income_cents
        summary.total_expenses_cents = totals.total_expenses_cents
        summary.total_balance_cents = totals.total_balance_cents
        summary.bills_to_pay_cents = totals.bills_to_pay_cents
        summary.bills_count = totals.bills_count
        summary.status = status
        summary.last_calculated_at = self._now()

    def _upsert(
        self,
        user_id: str,
        month: int,
        year: int,
        totals: MonthlyTotals,
        status: str,
        existing: Optional[MonthlySummary],
    ) -> MonthlySummary:
        try:
            if existing is not None:
                self._apply(existing, totals, status)
                self.db.commit()
                return existing

            summary = MonthlySummary(user_id=user_id, reference_month=month, reference_year=year)
            self._apply(summary, totals, status)
            try:
                self.summaries.insert_summary(summary)
                self.db.commit()
                return summary
            except IntegrityError:
                # A concurrent first access inserted the period; update that row instead
                self.db.rollback()
                summary_upsert_conflicts_counter.inc()
                existing = self.summaries.get_by_period(user_id, month, year)
                if existing is None:
                    raise
                self._apply(existing, totals, status)
                self.db.commit()
                return existing

        except SQLAlchemyError as e:
            self.db.rollback()
            raise AggregationError(f"Failed to store summary for {month:02d}/{year}: {e}") from e
