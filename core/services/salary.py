"""Salary reconciliation: schedule x revenue x payouts -> per-worker statement.

For one period every worker is owed ``pay`` for each day they worked plus
their ``percent`` share of that day's percent-eligible revenue, split evenly
between everybody scheduled on the day. Payouts already made are summed
separately. Nothing here is cached; callers pass the current ledger rows.
"""
from __future__ import annotations

import math
from collections import defaultdict
from typing import Dict, Iterable, List, Set

from core.records import PayoutData, RevenueData, SalaryData, ScheduleData, UserData


def group_workers_by_day(schedule: Iterable[ScheduleData]) -> Dict[int, Set[int]]:
    workers: Dict[int, Set[int]] = defaultdict(set)
    for entry in schedule:
        workers[entry.day].add(entry.user_id)
    return dict(workers)


def group_days_by_worker(schedule: Iterable[ScheduleData]) -> Dict[int, Set[int]]:
    days: Dict[int, Set[int]] = defaultdict(set)
    for entry in schedule:
        days[entry.user_id].add(entry.day)
    return dict(days)


def sum_payouts(payouts: Iterable[PayoutData]) -> Dict[int, float]:
    amounts: Dict[int, List[float]] = defaultdict(list)
    for payout in payouts:
        amounts[payout.user_id].append(float(payout.amount))
    # fsum is exactly rounded, so the total does not depend on row order
    return {user_id: math.fsum(values) for user_id, values in amounts.items()}


def daily_share(revenue: RevenueData | None, workers_present: int) -> float:
    """Per-head slice of a day's percent-eligible revenue (before percent)."""
    if revenue is None or workers_present <= 0:
        return 0.0
    return float(revenue.with_percent) / workers_present


def calculate_salaries(
    users: Iterable[UserData],
    schedule: Iterable[ScheduleData],
    revenue: Iterable[RevenueData],
    payouts: Iterable[PayoutData],
) -> List[SalaryData]:
    """Build one statement per ``is_worker`` user, sorted by user id.

    All ledger rows are expected to belong to the same (year, month).
    """
    schedule = list(schedule)
    workers_by_day = group_workers_by_day(schedule)
    days_by_worker = group_days_by_worker(schedule)
    revenue_by_day = {entry.day: entry for entry in revenue}
    paid_by_worker = sum_payouts(payouts)

    statements: List[SalaryData] = []
    for user in sorted((u for u in users if u.is_worker), key=lambda u: u.id):
        days = days_by_worker.get(user.id, set())
        shares = [
            daily_share(revenue_by_day.get(day), len(workers_by_day.get(day, ())))
            for day in days
        ]
        percent_earnings = math.fsum(shares) * float(user.percent) / 100
        fixed_earnings = float(user.pay) * len(days)
        statements.append(
            SalaryData(
                user_id=user.id,
                amount_paid=paid_by_worker.get(user.id, 0.0),
                amount_owed=fixed_earnings + percent_earnings,
            )
        )
    return statements
