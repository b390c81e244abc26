"""Persisted cache snapshot model."""

from datetime import datetime
from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column
from fund_tracker.models.database import Base


class CacheSnapshot(Base):
    """Last successfully fetched payload per cache key, kept indefinitely."""

    __tablename__ = "cache_snapshot"

    cache_key: Mapped[str] = mapped_column(String(100), primary_key=True)
    payload: Mapped[str] = mapped_column(Text)  # JSON
    updated_at: Mapped[str] = mapped_column(
        String(30),
        default=lambda: datetime.now().isoformat(),
        onupdate=lambda: datetime.now().isoformat(),
    )
