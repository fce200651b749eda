from __future__ import annotations

import pytest

from core import protocol as p
from core.errors import Forbidden, LoginFailed, Unknown, UnknownToken, UserExist
from core.protocol import parse_request
from core.services.dispatcher import RequestDispatcher


@pytest.fixture()
def dispatcher(storage, seeded):
    return RequestDispatcher(storage)


def _login(dispatcher, login="anna", password="Qwer4321") -> str:
    result = dispatcher.process(parse_request({"op": "login", "login": login, "password": password}), None)
    assert isinstance(result, p.LoginResult)
    return result.token


def _call(dispatcher, token, **body):
    return dispatcher.process(parse_request(body), token)


def test_login_returns_token_and_id(dispatcher, seeded):
    _, anna, _ = seeded
    result = dispatcher.process(parse_request({"op": "login", "login": "anna", "password": "Qwer4321"}), None)
    assert result.id == anna.id
    assert result.token


def test_login_failure(dispatcher):
    with pytest.raises(LoginFailed):
        _login(dispatcher, password="wrong")


def test_missing_token_is_forbidden(dispatcher):
    with pytest.raises(Forbidden):
        _call(dispatcher, None, op="get_user_info")


def test_unknown_token(dispatcher):
    with pytest.raises(UnknownToken):
        _call(dispatcher, "deadbeef", op="get_user_info")


def test_user_info_is_own_profile(dispatcher, seeded):
    token = _login(dispatcher, "boris")
    info = _call(dispatcher, token, op="get_user_info")
    assert info.user.login == "boris"
    assert info.user.percent == 20.0
    assert "pwd_hash" not in info.model_dump()["user"]


@pytest.mark.parametrize(
    "body",
    [
        {"op": "get_users"},
        {"op": "add_user", "user": {"login": "x", "name": "X"}},
        {"op": "reset_password", "id": 1},
        {"op": "update_user", "user": {"id": 1, "login": "admin", "name": "A"}},
        {"op": "get_revenue", "year": 2024, "month": 1},
        {"op": "set_revenue", "year": 2024, "month": 1, "revenue": {"day": 1, "with_percent": 1}},
        {"op": "get_payouts", "year": 2024, "month": 1},
        {"op": "add_payout", "year": 2024, "month": 1, "payout": {"day": 1, "user_id": 2, "amount": 5}},
        {"op": "get_salary_calculation", "year": 2024, "month": 1},
    ],
)
def test_admin_operations_forbidden_for_workers(dispatcher, body):
    token = _login(dispatcher, "anna")
    with pytest.raises(Forbidden):
        _call(dispatcher, token, **body)


def test_set_workday_toggle_is_reversible(dispatcher, seeded):
    _, anna, _ = seeded
    token = _login(dispatcher, "anna")
    before = _call(dispatcher, token, op="get_schedule", year=2024, month=2)
    on = _call(dispatcher, token, op="set_workday", year=2024, month=2, day=29, is_working=True)
    row = on.schedule[anna.id]
    assert len(row) == 30
    assert row[29] is True and row[0] is False
    off = _call(dispatcher, token, op="set_workday", year=2024, month=2, day=29, is_working=False)
    assert off.schedule == before.schedule == {}


def test_set_workday_only_touches_caller(dispatcher, seeded):
    _, anna, boris = seeded
    token = _login(dispatcher, "boris")
    result = _call(dispatcher, token, op="set_workday", year=2024, month=3, day=5, is_working=True)
    assert set(result.schedule) == {boris.id}
    assert result.schedule[boris.id][5] is True


def test_set_workday_is_idempotent_when_repeated(dispatcher, seeded):
    _, anna, _ = seeded
    token = _login(dispatcher, "anna")
    _call(dispatcher, token, op="set_workday", year=2024, month=3, day=5, is_working=True)
    again = _call(dispatcher, token, op="set_workday", year=2024, month=3, day=5, is_working=True)
    assert sum(again.schedule[anna.id]) == 1


def test_change_password_via_dispatcher(dispatcher):
    token = _login(dispatcher, "anna")
    with pytest.raises(LoginFailed):
        _call(dispatcher, token, op="change_password", old_password="x", new_password="y")
    result = _call(dispatcher, token, op="change_password", old_password="Qwer4321", new_password="y")
    assert isinstance(result, p.PasswordChangedResult)
    # Token survives a password change
    assert _call(dispatcher, token, op="get_user_info").user.login == "anna"
    assert _login(dispatcher, "anna", "y")


def test_user_names(dispatcher, seeded):
    admin, anna, boris = seeded
    token = _login(dispatcher, "anna")
    result = _call(dispatcher, token, op="get_user_names", ids=[anna.id, boris.id, 999])
    assert result.names == {anna.id: "Anna", boris.id: "Boris"}
    assert _call(dispatcher, token, op="get_user_names", ids=[]).names == {}


def test_admin_manages_users(dispatcher, storage, seeded):
    _, anna, _ = seeded
    token = _login(dispatcher, "admin")
    users = _call(dispatcher, token, op="add_user", user={"login": "carl", "name": "Carl", "pay": 5, "percent": 1})
    assert [u.login for u in users.users] == ["admin", "anna", "boris", "carl"]
    assert _login(dispatcher, "carl")

    with pytest.raises(UserExist):
        _call(dispatcher, token, op="add_user", user={"login": "carl", "name": "Carl 2"})

    updated = _call(
        dispatcher,
        token,
        op="update_user",
        user={"id": anna.id, "login": "ignored", "name": "Anna K", "is_worker": False, "pay": 12, "percent": 3},
    )
    row = next(u for u in updated.users if u.id == anna.id)
    assert (row.login, row.name, row.is_worker, row.pay, row.percent) == ("anna", "Anna K", False, 12.0, 3.0)
    # Credentials and session survive a profile update
    assert _login(dispatcher, "anna")
    assert storage.get_user(id=anna.id).pwd_hash == anna.pwd_hash


def test_update_missing_user_is_unknown(dispatcher):
    token = _login(dispatcher, "admin")
    with pytest.raises(Unknown):
        _call(dispatcher, token, op="update_user", user={"id": 999, "login": "x"})
    with pytest.raises(Unknown):
        _call(dispatcher, token, op="reset_password", id=999)


def test_admin_reset_password_revokes_session(dispatcher, seeded):
    _, anna, _ = seeded
    anna_token = _login(dispatcher, "anna")
    _call(dispatcher, anna_token, op="change_password", old_password="Qwer4321", new_password="mine")
    admin_token = _login(dispatcher, "admin")
    assert isinstance(_call(dispatcher, admin_token, op="reset_password", id=anna.id), p.PasswordResetResult)
    with pytest.raises(UnknownToken):
        _call(dispatcher, anna_token, op="get_user_info")
    assert _login(dispatcher, "anna", "Qwer4321")


def test_revenue_upsert(dispatcher):
    token = _login(dispatcher, "admin")
    _call(dispatcher, token, op="set_revenue", year=2024, month=3, revenue={"day": 5, "with_percent": 100})
    result = _call(
        dispatcher, token, op="set_revenue", year=2024, month=3, revenue={"day": 5, "with_percent": 80, "without_percent": 7}
    )
    assert [(r.day, r.with_percent, r.without_percent) for r in result.revenue] == [(5, 80.0, 7.0)]
    assert _call(dispatcher, token, op="get_revenue", year=2024, month=4).revenue == []


def test_payout_upsert_and_unknown_user(dispatcher, seeded):
    _, anna, _ = seeded
    token = _login(dispatcher, "admin")
    _call(dispatcher, token, op="add_payout", year=2024, month=3, payout={"day": 1, "user_id": anna.id, "amount": 10})
    result = _call(dispatcher, token, op="add_payout", year=2024, month=3, payout={"day": 1, "user_id": anna.id, "amount": 15})
    assert [(x.day, x.user_id, x.amount) for x in result.payouts] == [(1, anna.id, 15.0)]
    with pytest.raises(Unknown):
        _call(dispatcher, token, op="add_payout", year=2024, month=3, payout={"day": 1, "user_id": 999, "amount": 1})


def test_salary_calculation_end_to_end(dispatcher, seeded):
    admin, anna, boris = seeded
    for login in ("anna", "boris"):
        token = _login(dispatcher, login)
        _call(dispatcher, token, op="set_workday", year=2024, month=3, day=5, is_working=True)
    token = _login(dispatcher, "admin")
    _call(dispatcher, token, op="set_revenue", year=2024, month=3, revenue={"day": 5, "with_percent": 100})
    _call(dispatcher, token, op="add_payout", year=2024, month=3, payout={"day": 6, "user_id": anna.id, "amount": 4})

    result = _call(dispatcher, token, op="get_salary_calculation", year=2024, month=3)
    by_id = {s.user_id: s for s in result.salaries}
    assert set(by_id) == {anna.id, boris.id}
    # anna: pay 10 + 100/2 * 10% ; boris: 100/2 * 20%
    assert by_id[anna.id].amount_owed == pytest.approx(15.0)
    assert by_id[anna.id].amount_paid == pytest.approx(4.0)
    assert by_id[anna.id].total == pytest.approx(19.0)
    assert by_id[boris.id].amount_owed == pytest.approx(10.0)


def test_storage_failures_become_unknown(storage, seeded):
    class Broken:
        def __init__(self, inner):
            self.inner = inner

        def __getattr__(self, name):
            return getattr(self.inner, name)

        def get_revenue(self, year, month):
            raise RuntimeError("database is gone")

    raise_on = RequestDispatcher(Broken(storage))
    token = _login(raise_on, "admin")
    with pytest.raises(Unknown) as info:
        _call(raise_on, token, op="get_revenue", year=2024, month=1)
    assert "database is gone" in info.value.detail
