"""Authorization gate and router for protocol requests.

``login`` is the only operation reachable without a token. Everything else
resolves the token to a user first; admin-only requests additionally need
``is_admin``. Write operations are executed once and never retried here.
"""
from __future__ import annotations

import logging
from dataclasses import replace
from typing import Callable, Dict, Optional

from core import protocol as p
from core.errors import Forbidden, ProtocolError, Unknown
from core.logging_utils import set_operation
from core.records import PayoutData, RevenueData, ScheduleData, UserData
from core.repositories.base import Storage
from core.services import auth as auth_service
from core.utils.dates import days_in_month

logger = logging.getLogger("shiftpay_core.dispatcher")


def to_profile(user: UserData) -> p.UserProfile:
    return p.UserProfile(
        id=user.id,
        login=user.login,
        name=user.name,
        is_admin=user.is_admin,
        is_worker=user.is_worker,
        pay=user.pay,
        percent=user.percent,
    )


class RequestDispatcher:
    def __init__(self, storage: Storage, *, default_password: Optional[str] = None) -> None:
        self.storage = storage
        self.default_password = default_password
        self._handlers: Dict[str, Callable] = {
            "get_user_info": self._get_user_info,
            "get_schedule": self._get_schedule,
            "set_workday": self._set_workday,
            "change_password": self._change_password,
            "get_user_names": self._get_user_names,
            "get_users": self._get_users,
            "add_user": self._add_user,
            "reset_password": self._reset_password,
            "update_user": self._update_user,
            "get_revenue": self._get_revenue,
            "set_revenue": self._set_revenue,
            "get_payouts": self._get_payouts,
            "add_payout": self._add_payout,
            "get_salary_calculation": self._get_salary_calculation,
        }

    def process(self, request, token: Optional[str]) -> p.Response:
        """Run ``request`` on behalf of the bearer of ``token``.

        Raises ``ProtocolError``; anything unexpected is logged and wrapped
        in ``Unknown``.
        """
        set_operation(request.op)
        try:
            if isinstance(request, p.LoginRequest):
                user = auth_service.login(self.storage, request.login, request.password)
                return p.LoginResult(token=user.token, id=user.id)

            user = auth_service.resolve_token(self.storage, token)
            if request.admin_only and not user.is_admin:
                logger.warning("user_id=%s denied admin operation %s", user.id, request.op)
                raise Forbidden()
            return self._handlers[request.op](user, request)
        except ProtocolError:
            raise
        except Exception as exc:
            logger.exception("unexpected failure in %s", getattr(request, "op", "?"))
            raise Unknown(f"{type(exc).__name__}: {exc}") from exc

    # ---------------- self-scoped ----------------
    def _get_user_info(self, user: UserData, _: p.GetUserInfoRequest) -> p.UserInfoResult:
        return p.UserInfoResult(user=to_profile(user))

    def _get_schedule(self, _: UserData, request: p.GetScheduleRequest) -> p.ScheduleResult:
        return self.schedule(request.year, request.month)

    def schedule(self, year: int, month: int) -> p.ScheduleResult:
        entries = self.storage.get_schedule(year, month)
        blank = [False] * (days_in_month(year, month) + 1)
        grid: Dict[int, list[bool]] = {}
        for entry in entries:
            row = grid.setdefault(entry.user_id, list(blank))
            if 0 < entry.day < len(row):
                row[entry.day] = True
        return p.ScheduleResult(year=year, month=month, schedule=grid)

    def _set_workday(self, user: UserData, request: p.SetWorkdayRequest) -> p.ScheduleResult:
        entry = ScheduleData(day=request.day, month=request.month, year=request.year, user_id=user.id)
        self.storage.set_schedule(entry, request.is_working)
        return self.schedule(request.year, request.month)

    def _change_password(self, user: UserData, request: p.ChangePasswordRequest) -> p.PasswordChangedResult:
        auth_service.change_password(self.storage, user, request.old_password, request.new_password)
        return p.PasswordChangedResult()

    def _get_user_names(self, _: UserData, request: p.GetUserNamesRequest) -> p.UserNamesResult:
        users = self.storage.get_users(request.ids)
        return p.UserNamesResult(names={u.id: u.name for u in users})

    # ---------------- admin ----------------
    def _get_users(self, _: UserData, __: p.GetUsersRequest) -> p.UsersResult:
        return self.users()

    def users(self) -> p.UsersResult:
        return p.UsersResult(users=[to_profile(u) for u in self.storage.get_users()])

    def _add_user(self, _: UserData, request: p.AddUserRequest) -> p.UsersResult:
        profile = request.user
        auth_service.add_user(
            self.storage,
            login=profile.login,
            name=profile.name,
            is_admin=profile.is_admin,
            is_worker=profile.is_worker,
            pay=profile.pay,
            percent=profile.percent,
            default_password=self.default_password,
        )
        return self.users()

    def _find_user(self, user_id: int) -> UserData:
        target = self.storage.get_user(id=user_id)
        if target is None:
            raise Unknown(f"user {user_id} not found")
        return target

    def _reset_password(self, _: UserData, request: p.ResetPasswordRequest) -> p.PasswordResetResult:
        target = self._find_user(request.id)
        auth_service.reset_password(self.storage, target, self.default_password)
        return p.PasswordResetResult()

    def _update_user(self, _: UserData, request: p.UpdateUserRequest) -> p.UsersResult:
        target = self._find_user(request.user.id)
        # Login and credentials are not editable here
        profile = request.user
        self.storage.update_user(
            replace(
                target,
                name=profile.name,
                is_admin=profile.is_admin,
                is_worker=profile.is_worker,
                pay=profile.pay,
                percent=profile.percent,
            )
        )
        return self.users()

    def _get_revenue(self, _: UserData, request: p.GetRevenueRequest) -> p.RevenueResult:
        return self.revenue(request.year, request.month)

    def revenue(self, year: int, month: int) -> p.RevenueResult:
        rows = self.storage.get_revenue(year, month)
        return p.RevenueResult(
            year=year,
            month=month,
            revenue=[
                p.Revenue(day=r.day, with_percent=r.with_percent, without_percent=r.without_percent)
                for r in rows
            ],
        )

    def _set_revenue(self, _: UserData, request: p.SetRevenueRequest) -> p.RevenueResult:
        self.storage.set_revenue(
            RevenueData(
                day=request.revenue.day,
                month=request.month,
                year=request.year,
                with_percent=request.revenue.with_percent,
                without_percent=request.revenue.without_percent,
            )
        )
        return self.revenue(request.year, request.month)

    def _get_payouts(self, _: UserData, request: p.GetPayoutsRequest) -> p.PayoutsResult:
        return self.payouts(request.year, request.month)

    def payouts(self, year: int, month: int) -> p.PayoutsResult:
        rows = self.storage.get_payouts(year, month)
        return p.PayoutsResult(
            year=year,
            month=month,
            payouts=[p.Payout(day=r.day, user_id=r.user_id, amount=r.amount) for r in rows],
        )

    def _add_payout(self, _: UserData, request: p.AddPayoutRequest) -> p.PayoutsResult:
        self._find_user(request.payout.user_id)
        self.storage.add_payout(
            PayoutData(
                day=request.payout.day,
                month=request.month,
                year=request.year,
                user_id=request.payout.user_id,
                amount=request.payout.amount,
            )
        )
        return self.payouts(request.year, request.month)

    def _get_salary_calculation(self, _: UserData, request: p.GetSalaryCalculationRequest) -> p.SalaryCalculationResult:
        statements = self.storage.get_salaries(request.year, request.month)
        return p.SalaryCalculationResult(
            year=request.year,
            month=request.month,
            salaries=[
                p.Salary(user_id=s.user_id, amount_paid=s.amount_paid, amount_owed=s.amount_owed, total=s.total)
                for s in statements
            ],
        )
