"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict
from pythonjsonlogger import jsonlogger
from finance_tracker.config import settings
from finance_tracker.domain.money import format_cents


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name


def setup_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging"""
    logger = logging.getLogger()
    logger.setLevel(level)

    # Remove existing handlers
    logger.handlers.clear()

    # JSON handler for stdout
    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s"
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)


logger = logging.getLogger("finance_tracker.events")


def log_installment_paid(user_id: str, installment_id: str, transaction_id: str, amount_cents: int) -> None:
    """Log settlement of a single installment"""
    logger.info(
        "Installment paid",
        extra={
            "user_id": user_id,
            "installment_id": installment_id,
            "transaction_id": transaction_id,
            "amount_cents": amount_cents,
            "amount": format_cents(amount_cents),
            "step": "installment_paid",
        },
    )


def log_account_settled(account_id: str, payment_amount_cents: int, installments_paid: int) -> None:
    """Log whole-account settlement"""
    logger.info(
        "Account settled",
        extra={
            "account_id": account_id,
            "payment_amount_cents": payment_amount_cents,
            "amount": format_cents(payment_amount_cents),
            "installments_paid": installments_paid,
            "step": "account_settled",
        },
    )


def log_summary_computed(user_id: str, month: int, year: int, status: str, duration_ms: float) -> None:
    """Log a monthly summary (re)computation"""
    logger.info(
        "Monthly summary computed",
        extra={
            "user_id": user_id,
            "reference_month": month,
            "reference_year": year,
            "status": status,
            "duration_ms": duration_ms,
            "step": "summary_computed",
        },
    )
