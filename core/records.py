"""Plain records exchanged between storage backends and services."""
from __future__ import annotations

from dataclasses import dataclass


@dataclass
class UserData:
    id: int
    login: str
    name: str
    is_admin: bool = False
    is_worker: bool = True
    pay: float = 0.0
    percent: float = 0.0
    pwd_hash: str = ""
    pwd_salt: str = ""
    token: str = ""


@dataclass(frozen=True)
class ScheduleData:
    day: int
    month: int
    year: int
    user_id: int


@dataclass(frozen=True)
class RevenueData:
    day: int
    month: int
    year: int
    with_percent: float = 0.0
    without_percent: float = 0.0


@dataclass(frozen=True)
class PayoutData:
    day: int
    month: int
    year: int
    user_id: int
    amount: float = 0.0


@dataclass(frozen=True)
class SalaryData:
    user_id: int
    amount_paid: float
    amount_owed: float

    @property
    def total(self) -> float:
        # Literal owed + paid; whether "owed" should net out payouts is unresolved
        return self.amount_owed + self.amount_paid
