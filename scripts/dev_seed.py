from __future__ import annotations

from core.db import init_database
from core.repositories.sql import SqlStorage
from core.services import auth as auth_service
from core.settings import get_settings

DEMO_USERS = [
    {"login": "admin", "name": "Administrator", "is_admin": True, "is_worker": False},
    {"login": "anna", "name": "Anna", "pay": 1500.0, "percent": 5.0},
    {"login": "boris", "name": "Boris", "pay": 1200.0, "percent": 3.0},
]


def main() -> None:
    init_database(auto_apply_ddl=True)
    storage = SqlStorage()
    for fields in DEMO_USERS:
        existing = storage.get_user(login=fields["login"])
        if existing:
            print(f"User already exists: {existing.login} (id={existing.id})")
            continue
        user = auth_service.add_user(storage, **fields)
        print(f"Created user: {user.login} (id={user.id})")
    print(f"Default password: {get_settings().default_password}")


if __name__ == "__main__":
    main()
