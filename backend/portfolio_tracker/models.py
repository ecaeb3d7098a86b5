# backend/portfolio_tracker/models.py
import enum
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import String, DateTime, Enum, Numeric, UniqueConstraint, Boolean, Integer, Index
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


class AssetCategory(str, enum.Enum):
    LOCAL_EQUITY = "LOCAL_EQUITY"  # Local stock index (e.g. BIST100)
    FOREIGN_EQUITY = "FOREIGN_EQUITY"  # Foreign-currency stocks (e.g. US markets)
    PRECIOUS_METAL = "PRECIOUS_METAL"

    @property
    def is_equity(self) -> bool:
        """Equities are held in whole shares; metals may be fractional."""
        return self in (AssetCategory.LOCAL_EQUITY, AssetCategory.FOREIGN_EQUITY)

    @property
    def is_foreign(self) -> bool:
        """Priced in the foreign currency and converted with the FX rate."""
        return self is AssetCategory.FOREIGN_EQUITY


class TransactionType(str, enum.Enum):
    BUY = "BUY"
    SELL = "SELL"
    DIVIDEND = "DIVIDEND"


class GoalCategory(str, enum.Enum):
    """
    Goal buckets. Distinct from AssetCategory: the last two have no
    structural asset category and are matched by name heuristics.
    """
    LOCAL_EQUITY = "LOCAL_EQUITY"
    FOREIGN_EQUITY = "FOREIGN_EQUITY"
    PRECIOUS_METAL = "PRECIOUS_METAL"
    EUROBOND = "EUROBOND"
    MONEY_MARKET_FUND = "MONEY_MARKET_FUND"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Transaction(Base):
    """
    Append-only ledger entry. Never updated or deleted once written.
    """
    __tablename__ = "transactions"
    __table_args__ = (
        # Paginated listing: "transactions for user X, newest first"
        Index('ix_transaction_user_date', 'user_id', 'date'),
        # Category-filtered listing
        Index('ix_transaction_user_category_date', 'user_id', 'category', 'date'),
    )

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    user_id: Mapped[str] = mapped_column(String, index=True)
    symbol: Mapped[str] = mapped_column(String)
    category: Mapped[AssetCategory] = mapped_column(Enum(AssetCategory))
    transaction_type: Mapped[TransactionType] = mapped_column(Enum(TransactionType))
    date: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    # Numeric(18, 8) supports values up to 9,999,999,999.99999999
    quantity: Mapped[Decimal] = mapped_column(Numeric(18, 8))  # 0 for DIVIDEND
    price: Mapped[Decimal] = mapped_column(Numeric(18, 8))
    total: Mapped[Decimal] = mapped_column(Numeric(18, 8))
    is_dividend_reinvested: Mapped[bool] = mapped_column(Boolean, default=False)
    # Foreign-currency amount of the trade, when the user supplied it
    total_foreign_currency_value: Mapped[Decimal | None] = mapped_column(Numeric(18, 8), nullable=True)


class Holding(Base):
    """
    Current position derived from the ledger, one row per user and symbol.

    version_id enables optimistic concurrency: a concurrent update of the
    same row makes the flush fail with StaleDataError.
    """
    __tablename__ = "holdings"
    __table_args__ = (
        UniqueConstraint('user_id', 'symbol', name='uq_holding_user_symbol'),
    )

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    user_id: Mapped[str] = mapped_column(String, index=True)
    symbol: Mapped[str] = mapped_column(String)
    name: Mapped[str | None] = mapped_column(String, nullable=True)
    category: Mapped[AssetCategory] = mapped_column(Enum(AssetCategory))

    quantity: Mapped[Decimal] = mapped_column(Numeric(18, 8))
    average_cost: Mapped[Decimal] = mapped_column(Numeric(18, 8))
    total_cost: Mapped[Decimal] = mapped_column(Numeric(18, 8))
    total_dividends: Mapped[Decimal] = mapped_column(Numeric(18, 8), default=Decimal(0))
    cash_dividends: Mapped[Decimal] = mapped_column(Numeric(18, 8), default=Decimal(0))
    reinvested_dividends: Mapped[Decimal] = mapped_column(Numeric(18, 8), default=Decimal(0))

    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)
    version_id: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version_id}


class IncomeRecord(Base):
    __tablename__ = "income_records"
    __table_args__ = (
        Index('ix_income_user_year_month', 'user_id', 'year', 'month'),
    )

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    user_id: Mapped[str] = mapped_column(String, index=True)
    year: Mapped[int] = mapped_column(Integer)
    month: Mapped[int] = mapped_column(Integer)  # 0 = January, 11 = December
    amount: Mapped[Decimal] = mapped_column(Numeric(18, 8))  # Local currency
    amount_foreign_currency: Mapped[Decimal | None] = mapped_column(Numeric(18, 8), nullable=True)
    category: Mapped[str] = mapped_column(String)
    description: Mapped[str | None] = mapped_column(String, nullable=True)
    company: Mapped[str | None] = mapped_column(String, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)


class Goal(Base):
    """
    Savings target per goal category, denominated in the foreign currency.

    One goal per category is enforced by GoalService, not by the schema.
    """
    __tablename__ = "goals"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    user_id: Mapped[str] = mapped_column(String, index=True)
    category: Mapped[GoalCategory] = mapped_column(Enum(GoalCategory))
    target_amount: Mapped[Decimal] = mapped_column(Numeric(18, 8))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)
