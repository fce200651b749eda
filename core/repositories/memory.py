from __future__ import annotations

import threading
from dataclasses import replace
from typing import Dict, Optional, Sequence, Tuple

from core.errors import UserExist
from core.records import PayoutData, RevenueData, ScheduleData, UserData

from .base import LedgerSalaries, select_user_key


class MemoryStorage(LedgerSalaries):
    """Dict-backed storage for tests and throwaway local runs.

    Mirrors the database semantics: upsert for revenue/payouts, presence for
    schedule rows, unique logins.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._users: Dict[int, UserData] = {}
        self._next_id = 1
        self._schedule: set[Tuple[int, int, int, int]] = set()
        self._revenue: Dict[Tuple[int, int, int], RevenueData] = {}
        self._payouts: Dict[Tuple[int, int, int, int], PayoutData] = {}

    # Users
    def add_user(self, user: UserData) -> UserData:
        with self._lock:
            if any(u.login == user.login for u in self._users.values()):
                raise UserExist(user.login)
            stored = replace(user, id=self._next_id)
            self._next_id += 1
            self._users[stored.id] = stored
            return replace(stored)

    def get_user(
        self,
        *,
        id: Optional[int] = None,
        login: Optional[str] = None,
        token: Optional[str] = None,
    ) -> Optional[UserData]:
        key, value = select_user_key(id, login, token)
        with self._lock:
            for user in self._users.values():
                if getattr(user, key) == value:
                    return replace(user)
        return None

    def get_users(self, ids: Optional[Sequence[int]] = None) -> list[UserData]:
        with self._lock:
            users = sorted(self._users.values(), key=lambda u: u.id)
            if ids is not None:
                wanted = set(ids)
                users = [u for u in users if u.id in wanted]
            return [replace(u) for u in users]

    def update_user(self, user: UserData) -> UserData:
        with self._lock:
            if user.id not in self._users:
                raise LookupError(f"user {user.id} not found")
            self._users[user.id] = replace(user)
            return replace(user)

    # Schedule
    def get_schedule(self, year: int, month: int) -> list[ScheduleData]:
        with self._lock:
            keys = sorted(k for k in self._schedule if k[2] == year and k[1] == month)
        return [ScheduleData(day=d, month=m, year=y, user_id=u) for (d, m, y, u) in keys]

    def set_schedule(self, entry: ScheduleData, working: bool) -> None:
        key = (entry.day, entry.month, entry.year, entry.user_id)
        with self._lock:
            if working:
                self._schedule.add(key)
            else:
                self._schedule.discard(key)

    # Revenue
    def get_revenue(self, year: int, month: int) -> list[RevenueData]:
        with self._lock:
            rows = [r for r in self._revenue.values() if r.year == year and r.month == month]
        return sorted(rows, key=lambda r: r.day)

    def set_revenue(self, revenue: RevenueData) -> None:
        with self._lock:
            self._revenue[(revenue.day, revenue.month, revenue.year)] = revenue

    # Payouts
    def get_payouts(self, year: int, month: int) -> list[PayoutData]:
        with self._lock:
            rows = [p for p in self._payouts.values() if p.year == year and p.month == month]
        return sorted(rows, key=lambda p: (p.day, p.user_id))

    def add_payout(self, payout: PayoutData) -> None:
        with self._lock:
            self._payouts[(payout.day, payout.month, payout.year, payout.user_id)] = payout
