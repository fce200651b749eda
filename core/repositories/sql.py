from __future__ import annotations

import logging
from typing import Optional, Sequence

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from core.db import get_sessionmaker, session_scope
from core.errors import UserExist
from core.models import PayoutRecord, RevenueEntry, ScheduleEntry, User
from core.records import PayoutData, RevenueData, SalaryData, ScheduleData, UserData
from core.services.salary import calculate_salaries

from .base import select_user_key

logger = logging.getLogger("shiftpay_core.storage")

_USER_FIELDS = ("login", "name", "is_admin", "is_worker", "pay", "percent", "pwd_hash", "pwd_salt", "token")


def _to_user(row: User) -> UserData:
    return UserData(
        id=row.id,
        login=row.login,
        name=row.name,
        is_admin=bool(row.is_admin),
        is_worker=bool(row.is_worker),
        pay=float(row.pay or 0),
        percent=float(row.percent or 0),
        pwd_hash=row.pwd_hash or "",
        pwd_salt=row.pwd_salt or "",
        token=row.token or "",
    )


def _to_schedule(row: ScheduleEntry) -> ScheduleData:
    return ScheduleData(day=row.day, month=row.month, year=row.year, user_id=row.user_id)


def _to_revenue(row: RevenueEntry) -> RevenueData:
    return RevenueData(
        day=row.day,
        month=row.month,
        year=row.year,
        with_percent=float(row.with_percent or 0),
        without_percent=float(row.without_percent or 0),
    )


def _to_payout(row: PayoutRecord) -> PayoutData:
    return PayoutData(day=row.day, month=row.month, year=row.year, user_id=row.user_id, amount=float(row.amount or 0))


def _insert_for(session: Session):
    """Return the dialect ``insert`` that supports ON CONFLICT, if any."""
    name = session.get_bind().dialect.name
    if name == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
        return insert
    if name == "sqlite":
        from sqlalchemy.dialects.sqlite import insert
        return insert
    return None


def upsert(session: Session, model, values: dict, keys: Sequence[str], update: Sequence[str] = ()) -> None:
    """INSERT ... ON CONFLICT, falling back to ``merge`` on other dialects."""
    insert = _insert_for(session)
    if insert is None:
        if update or session.get(model, tuple(values[k] for k in keys)) is None:
            session.merge(model(**values))
        return
    stmt = insert(model).values(**values)
    if update:
        stmt = stmt.on_conflict_do_update(index_elements=list(keys), set_={c: stmt.excluded[c] for c in update})
    else:
        stmt = stmt.on_conflict_do_nothing(index_elements=list(keys))
    session.execute(stmt)


class SqlStorage:
    """SQLAlchemy-backed storage; one short transaction per call."""

    def __init__(self, factory: Optional[sessionmaker] = None) -> None:
        self._factory = factory or get_sessionmaker()

    # Users
    def add_user(self, user: UserData) -> UserData:
        row = User(**{f: getattr(user, f) for f in _USER_FIELDS})
        try:
            with session_scope(self._factory) as session:
                session.add(row)
                session.flush()
                return _to_user(row)
        except IntegrityError as exc:
            logger.warning("add_user conflict for login %r: %s", user.login, exc.orig)
            raise UserExist(user.login) from exc

    def get_user(
        self,
        *,
        id: Optional[int] = None,
        login: Optional[str] = None,
        token: Optional[str] = None,
    ) -> Optional[UserData]:
        key, value = select_user_key(id, login, token)
        with session_scope(self._factory) as session:
            row = session.execute(select(User).where(getattr(User, key) == value)).scalars().first()
            return _to_user(row) if row is not None else None

    def get_users(self, ids: Optional[Sequence[int]] = None) -> list[UserData]:
        if ids is not None and not ids:
            return []
        stmt = select(User).order_by(User.id)
        if ids is not None:
            stmt = stmt.where(User.id.in_(list(ids)))
        with session_scope(self._factory) as session:
            return [_to_user(r) for r in session.execute(stmt).scalars()]

    def update_user(self, user: UserData) -> UserData:
        with session_scope(self._factory) as session:
            row = session.get(User, user.id)
            if row is None:
                raise LookupError(f"user {user.id} not found")
            for field in _USER_FIELDS:
                setattr(row, field, getattr(user, field))
            session.flush()
            return _to_user(row)

    # Schedule
    def get_schedule(self, year: int, month: int) -> list[ScheduleData]:
        with session_scope(self._factory) as session:
            return self._schedule(session, year, month)

    def set_schedule(self, entry: ScheduleData, working: bool) -> None:
        values = {"day": entry.day, "month": entry.month, "year": entry.year, "user_id": entry.user_id}
        with session_scope(self._factory) as session:
            if working:
                upsert(session, ScheduleEntry, values, keys=("day", "month", "year", "user_id"))
            else:
                session.execute(
                    delete(ScheduleEntry).where(
                        ScheduleEntry.day == entry.day,
                        ScheduleEntry.month == entry.month,
                        ScheduleEntry.year == entry.year,
                        ScheduleEntry.user_id == entry.user_id,
                    )
                )

    # Revenue
    def get_revenue(self, year: int, month: int) -> list[RevenueData]:
        with session_scope(self._factory) as session:
            return self._revenue(session, year, month)

    def set_revenue(self, revenue: RevenueData) -> None:
        values = {
            "day": revenue.day,
            "month": revenue.month,
            "year": revenue.year,
            "with_percent": revenue.with_percent,
            "without_percent": revenue.without_percent,
        }
        with session_scope(self._factory) as session:
            upsert(session, RevenueEntry, values, keys=("day", "month", "year"), update=("with_percent", "without_percent"))

    # Payouts
    def get_payouts(self, year: int, month: int) -> list[PayoutData]:
        with session_scope(self._factory) as session:
            return self._payouts(session, year, month)

    def add_payout(self, payout: PayoutData) -> None:
        values = {
            "day": payout.day,
            "month": payout.month,
            "year": payout.year,
            "user_id": payout.user_id,
            "amount": payout.amount,
        }
        with session_scope(self._factory) as session:
            upsert(session, PayoutRecord, values, keys=("day", "month", "year", "user_id"), update=("amount",))

    # Salary
    def get_salaries(self, year: int, month: int) -> list[SalaryData]:
        # All four reads share one transaction
        with session_scope(self._factory) as session:
            users = [_to_user(r) for r in session.execute(select(User).where(User.is_worker.is_(True))).scalars()]
            return calculate_salaries(
                users,
                self._schedule(session, year, month),
                self._revenue(session, year, month),
                self._payouts(session, year, month),
            )

    @staticmethod
    def _schedule(session: Session, year: int, month: int) -> list[ScheduleData]:
        stmt = (
            select(ScheduleEntry)
            .where(ScheduleEntry.year == year, ScheduleEntry.month == month)
            .order_by(ScheduleEntry.day, ScheduleEntry.user_id)
        )
        return [_to_schedule(r) for r in session.execute(stmt).scalars()]

    @staticmethod
    def _revenue(session: Session, year: int, month: int) -> list[RevenueData]:
        stmt = (
            select(RevenueEntry)
            .where(RevenueEntry.year == year, RevenueEntry.month == month)
            .order_by(RevenueEntry.day)
        )
        return [_to_revenue(r) for r in session.execute(stmt).scalars()]

    @staticmethod
    def _payouts(session: Session, year: int, month: int) -> list[PayoutData]:
        stmt = (
            select(PayoutRecord)
            .where(PayoutRecord.year == year, PayoutRecord.month == month)
            .order_by(PayoutRecord.day, PayoutRecord.user_id)
        )
        return [_to_payout(r) for r in session.execute(stmt).scalars()]
