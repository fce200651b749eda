"""Request and response shapes understood by the dispatcher.

A request is one JSON object discriminated by ``op``; admin-only operations
carry ``admin_only = True``.
"""
from __future__ import annotations

from typing import Annotated, Any, ClassVar, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter, model_validator

from core.utils.dates import validate_day

Year = Annotated[int, Field(ge=1, le=9999)]
Month = Annotated[int, Field(ge=1, le=12)]
Day = Annotated[int, Field(ge=1, le=31)]


class _Period(BaseModel):
    year: Year
    month: Month


class _CalendarDay(_Period):
    """Rejects days past the end of the month (e.g. 30 February)."""

    @model_validator(mode="after")
    def _check_date(self):
        day = self.calendar_day()
        try:
            validate_day(self.year, self.month, day)
        except ValueError as exc:
            raise ValueError(f"invalid day {day} for {self.year}-{self.month:02d}") from exc
        return self

    def calendar_day(self) -> int:
        return self.day  # type: ignore[attr-defined]


# ---------------- Payload models ----------------
class UserProfile(BaseModel):
    id: int = 0
    login: str = Field(min_length=1, max_length=80)
    name: str = Field(default="", max_length=200)
    is_admin: bool = False
    is_worker: bool = True
    pay: float = Field(default=0.0, ge=0)
    percent: float = Field(default=0.0, ge=0)


class Revenue(BaseModel):
    day: Day
    with_percent: float = 0.0
    without_percent: float = 0.0


class Payout(BaseModel):
    day: Day
    user_id: int
    amount: float


class Salary(BaseModel):
    user_id: int
    amount_paid: float
    amount_owed: float
    total: float


# ---------------- Requests ----------------
class _Request(BaseModel):
    admin_only: ClassVar[bool] = False


class LoginRequest(_Request):
    op: Literal["login"]
    login: str
    password: str


class GetUserInfoRequest(_Request):
    op: Literal["get_user_info"]


class GetScheduleRequest(_Request, _Period):
    op: Literal["get_schedule"]


class SetWorkdayRequest(_Request, _CalendarDay):
    op: Literal["set_workday"]
    day: Day
    is_working: bool


class ChangePasswordRequest(_Request):
    op: Literal["change_password"]
    old_password: str
    new_password: str = Field(min_length=1)


class GetUserNamesRequest(_Request):
    op: Literal["get_user_names"]
    ids: list[int] = Field(default_factory=list)


class GetUsersRequest(_Request):
    admin_only: ClassVar[bool] = True
    op: Literal["get_users"]


class AddUserRequest(_Request):
    admin_only: ClassVar[bool] = True
    op: Literal["add_user"]
    user: UserProfile


class ResetPasswordRequest(_Request):
    admin_only: ClassVar[bool] = True
    op: Literal["reset_password"]
    id: int


class UpdateUserRequest(_Request):
    admin_only: ClassVar[bool] = True
    op: Literal["update_user"]
    user: UserProfile


class GetRevenueRequest(_Request, _Period):
    admin_only: ClassVar[bool] = True
    op: Literal["get_revenue"]


class SetRevenueRequest(_Request, _CalendarDay):
    admin_only: ClassVar[bool] = True
    op: Literal["set_revenue"]
    revenue: Revenue

    def calendar_day(self) -> int:
        return self.revenue.day


class GetPayoutsRequest(_Request, _Period):
    admin_only: ClassVar[bool] = True
    op: Literal["get_payouts"]


class AddPayoutRequest(_Request, _CalendarDay):
    admin_only: ClassVar[bool] = True
    op: Literal["add_payout"]
    payout: Payout

    def calendar_day(self) -> int:
        return self.payout.day


class GetSalaryCalculationRequest(_Request, _Period):
    admin_only: ClassVar[bool] = True
    op: Literal["get_salary_calculation"]


Request = Annotated[
    Union[
        LoginRequest,
        GetUserInfoRequest,
        GetScheduleRequest,
        SetWorkdayRequest,
        ChangePasswordRequest,
        GetUserNamesRequest,
        GetUsersRequest,
        AddUserRequest,
        ResetPasswordRequest,
        UpdateUserRequest,
        GetRevenueRequest,
        SetRevenueRequest,
        GetPayoutsRequest,
        AddPayoutRequest,
        GetSalaryCalculationRequest,
    ],
    Field(discriminator="op"),
]


# ---------------- Responses ----------------
class LoginResult(BaseModel):
    kind: Literal["login"] = "login"
    token: str
    id: int


class UserInfoResult(BaseModel):
    kind: Literal["user_info"] = "user_info"
    user: UserProfile


class ScheduleResult(BaseModel):
    kind: Literal["schedule"] = "schedule"
    year: int
    month: int
    # user id -> [unused, day 1, ..., day N]
    schedule: dict[int, list[bool]]


class PasswordChangedResult(BaseModel):
    kind: Literal["password_changed"] = "password_changed"


class PasswordResetResult(BaseModel):
    kind: Literal["password_reset"] = "password_reset"


class UserNamesResult(BaseModel):
    kind: Literal["user_names"] = "user_names"
    names: dict[int, str]


class UsersResult(BaseModel):
    kind: Literal["users"] = "users"
    users: list[UserProfile]


class RevenueResult(BaseModel):
    kind: Literal["revenue"] = "revenue"
    year: int
    month: int
    revenue: list[Revenue]


class PayoutsResult(BaseModel):
    kind: Literal["payouts"] = "payouts"
    year: int
    month: int
    payouts: list[Payout]


class SalaryCalculationResult(BaseModel):
    kind: Literal["salary_calculation"] = "salary_calculation"
    year: int
    month: int
    salaries: list[Salary]


Response = Union[
    LoginResult,
    UserInfoResult,
    ScheduleResult,
    PasswordChangedResult,
    PasswordResetResult,
    UserNamesResult,
    UsersResult,
    RevenueResult,
    PayoutsResult,
    SalaryCalculationResult,
]


_request_adapter: TypeAdapter = TypeAdapter(Request)


def parse_request(data: Any):
    """Validate a decoded JSON body into one of the request models."""
    return _request_adapter.validate_python(data)
