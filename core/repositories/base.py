from __future__ import annotations

from typing import Optional, Protocol, Sequence

from core.records import PayoutData, RevenueData, SalaryData, ScheduleData, UserData
from core.services.salary import calculate_salaries


class Storage(Protocol):
    """Everything the dispatcher needs from persistence."""

    # Users
    def add_user(self, user: UserData) -> UserData: ...

    def get_user(
        self,
        *,
        id: Optional[int] = None,
        login: Optional[str] = None,
        token: Optional[str] = None,
    ) -> Optional[UserData]: ...

    def get_users(self, ids: Optional[Sequence[int]] = None) -> list[UserData]: ...

    def update_user(self, user: UserData) -> UserData: ...

    # Schedule
    def get_schedule(self, year: int, month: int) -> list[ScheduleData]: ...

    def set_schedule(self, entry: ScheduleData, working: bool) -> None: ...

    # Revenue
    def get_revenue(self, year: int, month: int) -> list[RevenueData]: ...

    def set_revenue(self, revenue: RevenueData) -> None: ...

    # Payouts
    def get_payouts(self, year: int, month: int) -> list[PayoutData]: ...

    def add_payout(self, payout: PayoutData) -> None: ...

    # Salary
    def get_salaries(self, year: int, month: int) -> list[SalaryData]: ...


class LedgerSalaries:
    """Mixin computing ``get_salaries`` from the storage's own ledgers."""

    def get_salaries(self, year: int, month: int) -> list[SalaryData]:
        return calculate_salaries(
            self.get_users(),  # type: ignore[attr-defined]
            self.get_schedule(year, month),  # type: ignore[attr-defined]
            self.get_revenue(year, month),  # type: ignore[attr-defined]
            self.get_payouts(year, month),  # type: ignore[attr-defined]
        )


def select_user_key(id: Optional[int], login: Optional[str], token: Optional[str]) -> tuple[str, object]:
    """Validate a get_user() call: exactly one lookup key must be given."""
    given = [(name, value) for name, value in (("id", id), ("login", login), ("token", token)) if value is not None]
    if len(given) != 1:
        raise ValueError("get_user() needs exactly one of id, login or token")
    return given[0]
