"""/v1/summaries - monthly financial summaries"""

import logging
from fastapi import APIRouter, Depends, Query, Request

from finance_tracker.api.dependencies import (
    get_pagination,
    get_request_id,
    get_summary_store,
    get_user_id,
    to_http_exception,
)
from finance_tracker.api.v1.schemas import (
    MonthlyComparisonResponse,
    MonthlySummarySchema,
    RecalculationResponse,
    TrendSchema,
)
from finance_tracker.domain.exceptions import DomainException
from finance_tracker.domain.summary import analyze_trend
from finance_tracker.services.summaries import SummaryStore

router = APIRouter()


@router.get("/summaries", response_model=MonthlyComparisonResponse)
def list_summaries(
    pagination: tuple[int, int] = Depends(get_pagination),
    user_id: str = Depends(get_user_id),
    summary_store: SummaryStore = Depends(get_summary_store),
):
    """
    Month-by-month comparison of stored summaries.

    Returns:
        Summaries ordered by year and month, with averages over the page
    """
    limit, page = pagination
    rows, total = summary_store.list_summaries(user_id, limit=limit, page=page)
    trend = analyze_trend(rows)

    return MonthlyComparisonResponse(
        docs=[MonthlySummarySchema.model_validate(s) for s in rows],
        total=total,
        limit=limit,
        page=page,
        has_next_page=(page + 1) * limit < total,
        has_prev_page=page > 0,
        trend=TrendSchema(
            average_income_cents=trend.average_income_cents,
            average_expenses_cents=trend.average_expenses_cents,
            average_surplus_cents=trend.average_surplus_cents,
        ),
    )


@router.get("/summaries/{year}/{month}", response_model=MonthlySummarySchema)
def get_monthly_summary(
    year: int,
    month: int,
    request: Request,
    force: bool = Query(False, description="Recompute even when a summary is cached"),
    cached_only: bool = Query(False, description="Return the stored summary without computing one"),
    user_id: str = Depends(get_user_id),
    summary_store: SummaryStore = Depends(get_summary_store),
):
    """
    Retrieve the summary for a month, computing it on first access.

    Returns:
        Totals in cents, bills to pay, and the month's financial status
    """
    try:
        if cached_only:
            summary = summary_store.get_summary(user_id, month, year)
        else:
            summary = summary_store.get_or_compute(user_id, month, year, force_recalculate=force)
    except DomainException as e:
        logging.warning(f"Monthly summary failed: {e}", extra={"request_id": get_request_id(request)})
        raise to_http_exception(e)

    return MonthlySummarySchema.model_validate(summary)


@router.post("/summaries/recalculate", response_model=RecalculationResponse)
def recalculate_summaries(
    user_id: str = Depends(get_user_id),
    summary_store: SummaryStore = Depends(get_summary_store),
):
    """Force recomputation of every stored summary of the caller"""
    try:
        result = summary_store.recalculate_all(user_id)
    except DomainException as e:
        raise to_http_exception(e)

    return RecalculationResponse(total=result.total, recalculated=result.recalculated)
