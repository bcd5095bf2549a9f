from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import Boolean, Date, DateTime, Integer, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class UserQuota(Base):
    """Daily free-message allowance of a signed-in user."""

    __tablename__ = "user_quotas"

    user_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    daily_free_messages: Mapped[int] = mapped_column(Integer, nullable=False)
    paid: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    last_reset_date: Mapped[date] = mapped_column(Date, nullable=False)


class GuestUsage(Base):
    """Requests made by an anonymous caller; the row is void once ``expires_at`` has passed."""

    __tablename__ = "guest_usage"

    guest_key: Mapped[str] = mapped_column(String(128), primary_key=True)
    count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    expires_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
