from __future__ import annotations

import logging
from dataclasses import replace
from typing import Optional

from pydantic import ValidationError

from core.auth import make_uuid, password_digest, verify_password
from core.errors import Forbidden, InvalidProfile, LoginFailed, UnknownToken, UserExist
from core.protocol import UserProfile
from core.records import UserData
from core.repositories.base import Storage
from core.settings import get_settings

logger = logging.getLogger("shiftpay_core.auth")


def extract_token(header_token: str | None, authorization: str | None = None) -> str | None:
    """Normalize token retrieval across the dedicated header and Bearer auth."""

    if header_token:
        token = str(header_token).strip()
        if token:
            return token
    if authorization and authorization.lower().startswith("bearer "):
        token = authorization.split(" ", 1)[1].strip()
        if token:
            return token
    return None


def _with_password(user: UserData, password: str) -> UserData:
    salt = make_uuid()
    return replace(user, pwd_salt=salt, pwd_hash=password_digest(password, salt))


def _default_password(password: Optional[str]) -> str:
    return password if password is not None else get_settings().default_password


def login(storage: Storage, login_name: str, password: str) -> UserData:
    """Verify credentials and rotate the session token.

    The existing token is left alone when verification fails.
    """
    user = storage.get_user(login=login_name)
    if user is None or not verify_password(password, user.pwd_salt, user.pwd_hash):
        logger.info("login failed for %r", login_name)
        raise LoginFailed()
    user = storage.update_user(replace(user, token=make_uuid()))
    logger.info("login ok user_id=%s", user.id)
    return user


def resolve_token(storage: Storage, token: Optional[str]) -> UserData:
    if not token:
        raise Forbidden()
    user = storage.get_user(token=token)
    if user is None:
        raise UnknownToken()
    return user


def change_password(storage: Storage, user: UserData, old_password: str, new_password: str) -> UserData:
    if not verify_password(old_password, user.pwd_salt, user.pwd_hash):
        raise LoginFailed()
    return storage.update_user(_with_password(user, new_password))


def reset_password(storage: Storage, user: UserData, default_password: Optional[str] = None) -> UserData:
    """Force the default password and drop any live session of ``user``."""
    updated = replace(_with_password(user, _default_password(default_password)), token=make_uuid())
    logger.info("password reset for user_id=%s", user.id)
    return storage.update_user(updated)


def add_user(
    storage: Storage,
    *,
    login: str,
    name: str,
    is_admin: bool = False,
    is_worker: bool = True,
    pay: float = 0.0,
    percent: float = 0.0,
    default_password: Optional[str] = None,
) -> UserData:
    # Stored rows must satisfy the UserProfile returned by the roster
    try:
        UserProfile(login=login, name=name, is_admin=is_admin, is_worker=is_worker, pay=pay, percent=percent)
    except ValidationError as exc:
        fields = ", ".join(str(err["loc"][0]) for err in exc.errors())
        raise InvalidProfile(f"invalid {fields}") from exc
    if storage.get_user(login=login) is not None:
        raise UserExist(login)
    user = UserData(
        id=0,
        login=login,
        name=name,
        is_admin=is_admin,
        is_worker=is_worker,
        pay=pay,
        percent=percent,
        token=make_uuid(),
    )
    created = storage.add_user(_with_password(user, _default_password(default_password)))
    logger.info("user created id=%s login=%r", created.id, created.login)
    return created
