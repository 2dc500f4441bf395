"""SQLAlchemy ORM models for accounts, installments, transactions and monthly summaries"""

import uuid
from sqlalchemy import (
    Column,
    String,
    BigInteger,
    Boolean,
    DateTime,
    Date,
    Integer,
    ForeignKey,
    Text,
    Uuid,
    UniqueConstraint,
    CheckConstraint,
    Index,
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()


class Account(Base):
    """User-owned bill, loan, card or subscription"""

    __tablename__ = "accounts"
    __table_args__ = (
        CheckConstraint("due_day BETWEEN 1 AND 31", name="ck_accounts_due_day"),
        Index("ix_accounts_user_period", "user_id", "reference_year", "reference_month"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Text, nullable=False, index=True)
    name = Column(String(100), nullable=False)
    type = Column(Text, nullable=False)
    principal_cents = Column(BigInteger, nullable=True)
    installment_amount_cents = Column(BigInteger, nullable=True)
    installment_count = Column(Integer, nullable=True)
    start_date = Column(Date, nullable=False)
    due_day = Column(Integer, nullable=False)
    reference_month = Column(Integer, nullable=False)
    reference_year = Column(Integer, nullable=False)
    is_paid = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    installments = relationship(
        "Installment",
        back_populates="account",
        cascade="all, delete-orphan",
        order_by="Installment.number",
    )
    # No delete cascade: removing an account nulls transactions.account_id
    transactions = relationship("Transaction", back_populates="account")


class Installment(Base):
    """Scheduled partial payment of an account"""

    __tablename__ = "installments"
    __table_args__ = (
        UniqueConstraint("account_id", "number", name="uq_installments_account_number"),
        CheckConstraint("amount_cents > 0", name="ck_installments_amount_positive"),
        Index("ix_installments_period", "reference_year", "reference_month"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    account_id = Column(Uuid, ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True)
    number = Column(Integer, nullable=False)
    due_date = Column(Date, nullable=False, index=True)
    amount_cents = Column(BigInteger, nullable=False)
    is_paid = Column(Boolean, nullable=False, default=False)
    paid_at = Column(DateTime(timezone=True), nullable=True)
    reference_month = Column(Integer, nullable=False)
    reference_year = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    account = relationship("Account", back_populates="installments")
    settlement = relationship("Transaction", back_populates="installment", uselist=False)


class Transaction(Base):
    """Income or expense owned by a user; weakly references an account/installment"""

    __tablename__ = "transactions"
    __table_args__ = (
        # At most one settlement transaction per installment (NULLs are not compared)
        UniqueConstraint("installment_id", name="uq_transactions_installment"),
        CheckConstraint("amount_cents > 0", name="ck_transactions_amount_positive"),
        Index("ix_transactions_user_date", "user_id", "date"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Text, nullable=False, index=True)
    account_id = Column(Uuid, ForeignKey("accounts.id", ondelete="SET NULL"), nullable=True)
    installment_id = Column(Uuid, ForeignKey("installments.id", ondelete="SET NULL"), nullable=True)
    type = Column(Text, nullable=False)
    amount_cents = Column(BigInteger, nullable=False)
    category = Column(String(50), nullable=True)
    description = Column(String(255), nullable=False)
    date = Column(Date, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    account = relationship("Account", back_populates="transactions")
    installment = relationship("Installment", back_populates="settlement")


class MonthlySummary(Base):
    """Derived per-month cache, one row per (user, month, year)"""

    __tablename__ = "monthly_summaries"
    __table_args__ = (
        UniqueConstraint("user_id", "reference_year", "reference_month", name="uq_monthly_summaries_period"),
        CheckConstraint("reference_month BETWEEN 1 AND 12", name="ck_monthly_summaries_month"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Text, nullable=False, index=True)
    reference_month = Column(Integer, nullable=False)
    reference_year = Column(Integer, nullable=False)
    total_income_cents = Column(BigInteger, nullable=False, default=0)
    total_expenses_cents = Column(BigInteger, nullable=False, default=0)
    total_balance_cents = Column(BigInteger, nullable=False, default=0)
    bills_to_pay_cents = Column(BigInteger, nullable=False, default=0)
    bills_count = Column(Integer, nullable=False, default=0)
    status = Column(Text, nullable=False)
    last_calculated_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
