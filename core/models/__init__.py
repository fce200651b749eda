from __future__ import annotations

from sqlalchemy import Boolean, Float, ForeignKey, Index, Integer, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    login: Mapped[str] = mapped_column(String(80), nullable=False, unique=True, index=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    is_admin: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_worker: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    pay: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)  # fixed day-rate
    percent: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    pwd_hash: Mapped[str] = mapped_column(String(128), nullable=False, default="")
    pwd_salt: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    token: Mapped[str] = mapped_column(String(64), nullable=False, default="", index=True)


class ScheduleEntry(Base):
    """Presence of a row means the worker worked that day."""

    __tablename__ = "schedule"

    day: Mapped[int] = mapped_column(Integer, primary_key=True)
    month: Mapped[int] = mapped_column(Integer, primary_key=True)
    year: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), primary_key=True)

    __table_args__ = (
        Index("ix_schedule_year_month", "year", "month"),
    )


class RevenueEntry(Base):
    __tablename__ = "revenue"

    day: Mapped[int] = mapped_column(Integer, primary_key=True)
    month: Mapped[int] = mapped_column(Integer, primary_key=True)
    year: Mapped[int] = mapped_column(Integer, primary_key=True)
    with_percent: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    without_percent: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)

    __table_args__ = (
        Index("ix_revenue_year_month", "year", "month"),
    )


class PayoutRecord(Base):
    __tablename__ = "payouts"

    day: Mapped[int] = mapped_column(Integer, primary_key=True)
    month: Mapped[int] = mapped_column(Integer, primary_key=True)
    year: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), primary_key=True)
    amount: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)

    __table_args__ = (
        Index("ix_payouts_year_month", "year", "month"),
    )
