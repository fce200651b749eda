from __future__ import annotations

import pytest

from core.auth import password_digest, verify_password
from core.errors import Forbidden, InvalidProfile, LoginFailed, UnknownToken, UserExist
from core.services import auth as auth_service


def test_password_digest_is_sha3_of_password_and_salt():
    # sha3_256(b"Qwer4321#salt") = 4664aedc...9f63c6c5, one unpadded hex item per byte
    digest = password_digest("Qwer4321", "salt")
    assert digest == (
        "[46, 64, ae, dc, 4a, d9, a3, 24, 63, b2, e, 2b, 8f, ec, b9, fc, "
        "7e, 19, 9f, c3, 64, 97, 82, d, be, 61, f4, dd, 9f, 63, c6, c5]"
    )
    assert digest != password_digest("Qwer4321", "other")
    assert verify_password("Qwer4321", "salt", digest)
    assert not verify_password("qwer4321", "salt", digest)
    assert not verify_password("Qwer4321", "salt", "")


def test_extract_token_prefers_dedicated_header():
    assert auth_service.extract_token(" abc ", "Bearer xyz") == "abc"
    assert auth_service.extract_token(None, "Bearer xyz") == "xyz"
    assert auth_service.extract_token("", "Basic xyz") is None
    assert auth_service.extract_token(None, None) is None


def test_login_rotates_token(storage, seeded):
    _, anna, _ = seeded
    first = auth_service.login(storage, "anna", "Qwer4321")
    assert first.id == anna.id
    assert first.token and first.token != anna.token
    second = auth_service.login(storage, "anna", "Qwer4321")
    assert second.token != first.token
    assert auth_service.resolve_token(storage, second.token).id == anna.id
    with pytest.raises(UnknownToken):
        auth_service.resolve_token(storage, first.token)


def test_wrong_password_keeps_token(storage, seeded):
    before = auth_service.login(storage, "anna", "Qwer4321")
    with pytest.raises(LoginFailed):
        auth_service.login(storage, "anna", "nope")
    with pytest.raises(LoginFailed):
        auth_service.login(storage, "ghost", "Qwer4321")
    assert storage.get_user(login="anna").token == before.token


def test_resolve_token_without_token_is_forbidden(storage, seeded):
    with pytest.raises(Forbidden):
        auth_service.resolve_token(storage, None)
    with pytest.raises(Forbidden):
        auth_service.resolve_token(storage, "")
    with pytest.raises(UnknownToken):
        auth_service.resolve_token(storage, "not-a-token")


def test_change_password_wrong_old_changes_nothing(storage, seeded):
    user = auth_service.login(storage, "boris", "Qwer4321")
    with pytest.raises(LoginFailed):
        auth_service.change_password(storage, user, "bad", "new-secret")
    after = storage.get_user(id=user.id)
    assert (after.pwd_hash, after.pwd_salt, after.token) == (user.pwd_hash, user.pwd_salt, user.token)


def test_change_password_switches_credentials(storage, seeded):
    user = auth_service.login(storage, "boris", "Qwer4321")
    changed = auth_service.change_password(storage, user, "Qwer4321", "new-secret")
    assert changed.token == user.token
    assert changed.pwd_salt != user.pwd_salt
    assert auth_service.login(storage, "boris", "new-secret").id == user.id
    with pytest.raises(LoginFailed):
        auth_service.login(storage, "boris", "Qwer4321")


def test_reset_password_restores_default_and_revokes_session(storage, seeded):
    user = auth_service.login(storage, "boris", "Qwer4321")
    user = auth_service.change_password(storage, user, "Qwer4321", "s3cret")
    reset = auth_service.reset_password(storage, user)
    assert reset.token != user.token
    with pytest.raises(UnknownToken):
        auth_service.resolve_token(storage, user.token)
    assert auth_service.login(storage, "boris", "Qwer4321").id == user.id


def test_reset_password_uses_configured_default(storage, seeded, monkeypatch):
    from core.settings import reset_settings_cache

    monkeypatch.setenv("SHIFTPAY_DEFAULT_PASSWORD", "Changeme1")
    reset_settings_cache()
    _, anna, _ = seeded
    auth_service.reset_password(storage, anna)
    assert auth_service.login(storage, "anna", "Changeme1").id == anna.id


def test_add_user_duplicate_login(storage, seeded):
    count = len(storage.get_users())
    with pytest.raises(UserExist):
        auth_service.add_user(storage, login="anna", name="Another Anna")
    assert len(storage.get_users()) == count


def test_new_users_get_distinct_salt_and_token(storage, seeded):
    _, anna, boris = seeded
    assert anna.pwd_salt != boris.pwd_salt
    assert anna.token != boris.token
    assert anna.pwd_hash != boris.pwd_hash


@pytest.mark.parametrize(
    "fields",
    [
        {"login": "", "name": "Blank"},
        {"login": "neg", "name": "Neg", "pay": -5.0},
        {"login": "neg2", "name": "Neg", "percent": -1.0},
    ],
)
def test_add_user_rejects_profiles_the_roster_cannot_show(storage, seeded, fields):
    from core.protocol import parse_request
    from core.services.dispatcher import RequestDispatcher

    with pytest.raises(InvalidProfile):
        auth_service.add_user(storage, **fields)
    assert [u.login for u in storage.get_users()] == ["admin", "anna", "boris"]

    dispatcher = RequestDispatcher(storage)
    token = auth_service.login(storage, "admin", "Qwer4321").token
    roster = dispatcher.process(parse_request({"op": "get_users"}), token)
    assert len(roster.users) == 3


def test_create_user_command_rejects_negative_pay(capsys):
    import argparse

    from core.repositories.sql import SqlStorage
    from scripts.manage import cmd_create_user

    args = argparse.Namespace(login="w", name=None, admin=False, no_worker=False, pay=-5.0, percent=0.0)
    assert cmd_create_user(args) == 1
    assert "invalid pay" in capsys.readouterr().err
    assert SqlStorage().get_user(login="w") is None

    args.pay = 5.0
    assert cmd_create_user(args) == 0
    assert SqlStorage().get_user(login="w").pay == 5.0
