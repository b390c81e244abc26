"""ShownAnnouncement model."""

from datetime import datetime
from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column
from fund_tracker.models.database import Base


class ShownAnnouncement(Base):
    __tablename__ = "shown_announcement"

    announcement_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    shown_at: Mapped[str] = mapped_column(
        String(30), default=lambda: datetime.now().isoformat()
    )
