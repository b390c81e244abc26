"""Holding and FundTransaction models."""

from datetime import datetime
from sqlalchemy import String, Float, Text
from sqlalchemy.orm import Mapped, mapped_column
from fund_tracker.models.database import Base


class Holding(Base):
    __tablename__ = "holding"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    fund_code: Mapped[str] = mapped_column(String(10), unique=True, index=True)
    fund_name: Mapped[str] = mapped_column(String(100), default="")
    share_class: Mapped[str] = mapped_column(String(1), default="A")
    amount: Mapped[float] = mapped_column(Float)
    buy_net_value: Mapped[float] = mapped_column(Float)
    shares: Mapped[float] = mapped_column(Float)
    buy_date: Mapped[str] = mapped_column(String(10))  # "YYYY-MM-DD"
    buy_fee_rate: Mapped[float] = mapped_column(Float, default=0.0)  # percent
    service_fee_rate: Mapped[float] = mapped_column(Float, default=0.0)  # annual percent
    created_at: Mapped[str] = mapped_column(
        String(30), default=lambda: datetime.now().isoformat()
    )


class FundTransaction(Base):
    __tablename__ = "fund_transaction"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    fund_code: Mapped[str] = mapped_column(String(10), index=True)
    fund_name: Mapped[str] = mapped_column(String(100), default="")
    tx_type: Mapped[str] = mapped_column(String(12))  # buy / sell / dividend / auto_invest
    amount: Mapped[float] = mapped_column(Float)
    shares: Mapped[float] = mapped_column(Float, default=0.0)
    net_value: Mapped[float] = mapped_column(Float, default=0.0)
    fee: Mapped[float] = mapped_column(Float, default=0.0)
    tx_date: Mapped[str] = mapped_column(String(10), index=True)
    remark: Mapped[str] = mapped_column(Text, default="")
    created_at: Mapped[str] = mapped_column(
        String(30), default=lambda: datetime.now().isoformat()
    )
