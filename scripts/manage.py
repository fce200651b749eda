from __future__ import annotations

import argparse
import subprocess
import sys

from sqlalchemy import func, select, text

from core.alembic_utils import migration_status
from core.db import get_engine, init_database, session_scope
from core.errors import InvalidProfile, UserExist
from core.models import PayoutRecord, RevenueEntry, ScheduleEntry, User
from core.repositories.sql import SqlStorage
from core.services import auth as auth_service
from core.utils.dates import current_year_month


def _run(cmd: list[str]) -> int:
    print("$", " ".join(cmd))
    return subprocess.call(cmd)


def cmd_migrate(_: argparse.Namespace) -> int:
    return _run(["alembic", "upgrade", "head"])


def cmd_downgrade(args: argparse.Namespace) -> int:
    target = args.to or "base"
    return _run(["alembic", "downgrade", target])


def cmd_seed_demo(_: argparse.Namespace) -> int:
    from scripts import dev_seed

    dev_seed.main()
    return 0


def cmd_db_check(_: argparse.Namespace) -> int:
    engine = init_database()
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))
    print("DB OK")
    return 0


def cmd_check_migrations(_: argparse.Namespace) -> int:
    status = migration_status(get_engine())
    print(f"Alembic status: {'OK' if status.up_to_date else 'FAIL'} ({status.describe()})")
    return 0 if status.up_to_date else 1


def cmd_create_user(args: argparse.Namespace) -> int:
    init_database()
    try:
        user = auth_service.add_user(
            SqlStorage(),
            login=args.login,
            name=args.name or args.login,
            is_admin=args.admin,
            is_worker=not args.no_worker,
            pay=args.pay,
            percent=args.percent,
        )
    except UserExist:
        print(f"Login already taken: {args.login}", file=sys.stderr)
        return 1
    except InvalidProfile as exc:
        print(f"Rejected: {exc.detail}", file=sys.stderr)
        return 1
    print(f"Created user: id={user.id} login={user.login} admin={user.is_admin}")
    print("Password: the configured default (SHIFTPAY_DEFAULT_PASSWORD); ask the user to change it.")
    return 0


def cmd_reset_password(args: argparse.Namespace) -> int:
    init_database()
    storage = SqlStorage()
    user = storage.get_user(login=args.login)
    if user is None:
        print("User not found", file=sys.stderr)
        return 1
    auth_service.reset_password(storage, user)
    print(f"Password reset for {user.login}; existing sessions were revoked.")
    return 0


def cmd_salary(args: argparse.Namespace) -> int:
    init_database()
    year, month = current_year_month()
    year = args.year or year
    month = args.month or month
    storage = SqlStorage()
    names = {u.id: u.name for u in storage.get_users()}
    print(f"# {year}-{month:02d}")
    print("id\tname\towed\tpaid\ttotal")
    for s in storage.get_salaries(year, month):
        print(f"{s.user_id}\t{names.get(s.user_id, '')}\t{s.amount_owed:.2f}\t{s.amount_paid:.2f}\t{s.total:.2f}")
    return 0


def cmd_health(args: argparse.Namespace) -> int:
    import json
    import urllib.request

    host = args.host or "127.0.0.1"
    port = args.port or 8000
    url = f"http://{host}:{port}/api/healthz"
    try:
        with urllib.request.urlopen(url, timeout=3) as resp:  # nosec - local
            ok = resp.getcode() == 200 and json.loads(resp.read().decode("utf-8")).get("ok")
            print("HEALTH:", "OK" if ok else "FAIL", url)
            return 0 if ok else 1
    except Exception as e:
        print("HEALTH: ERROR", e)
        return 1


def cmd_stats(_: argparse.Namespace) -> int:
    init_database()
    with session_scope() as session:
        stats = {
            "users": session.scalar(select(func.count()).select_from(User)),
            "schedule": session.scalar(select(func.count()).select_from(ScheduleEntry)),
            "revenue": session.scalar(select(func.count()).select_from(RevenueEntry)),
            "payouts": session.scalar(select(func.count()).select_from(PayoutRecord)),
        }
        for k, v in stats.items():
            print(f"{k}: {v}")
    return 0


def cmd_list_users(_: argparse.Namespace) -> int:
    init_database()
    for u in SqlStorage().get_users():
        flags = ",".join(f for f, on in (("admin", u.is_admin), ("worker", u.is_worker)) if on)
        print(f"{u.id}\t{u.login}\t{u.name}\t{flags}\tpay={u.pay:g}\tpercent={u.percent:g}")
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(prog="manage", description="shiftpay management CLI")
    sub = parser.add_subparsers(dest="cmd", required=True)

    sub.add_parser("migrate", help="Upgrade DB to head").set_defaults(func=cmd_migrate)

    p_down = sub.add_parser("downgrade", help="Downgrade DB to target (default base)")
    p_down.add_argument("to", nargs="?", default="base")
    p_down.set_defaults(func=cmd_downgrade)

    sub.add_parser("seed-demo", help="Create a demo admin and two workers").set_defaults(func=cmd_seed_demo)

    sub.add_parser("db-check", help="Run a simple DB connectivity check").set_defaults(func=cmd_db_check)
    sub.add_parser("check-migrations", help="Fail unless the DB is at the Alembic head").set_defaults(func=cmd_check_migrations)

    p_new = sub.add_parser("create-user", help="Create a user with the default password")
    p_new.add_argument("--login", required=True)
    p_new.add_argument("--name")
    p_new.add_argument("--admin", action="store_true", help="Grant admin rights")
    p_new.add_argument("--no-worker", action="store_true", help="Exclude from salary calculation")
    p_new.add_argument("--pay", type=float, default=0.0, help="Fixed pay per worked day")
    p_new.add_argument("--percent", type=float, default=0.0, help="Share of percent-eligible revenue")
    p_new.set_defaults(func=cmd_create_user)

    p_reset = sub.add_parser("reset-password", help="Reset a user's password to the default")
    p_reset.add_argument("--login", required=True)
    p_reset.set_defaults(func=cmd_reset_password)

    p_salary = sub.add_parser("salary", help="Print salary statements for a month")
    p_salary.add_argument("--year", type=int)
    p_salary.add_argument("--month", type=int)
    p_salary.set_defaults(func=cmd_salary)

    p_health = sub.add_parser("health", help="Call /api/healthz on host:port")
    p_health.add_argument("--host", default="127.0.0.1")
    p_health.add_argument("--port", type=int, default=8000)
    p_health.set_defaults(func=cmd_health)

    sub.add_parser("stats", help="Print table counts").set_defaults(func=cmd_stats)
    sub.add_parser("list-users", help="List users").set_defaults(func=cmd_list_users)

    args = parser.parse_args()
    return int(args.func(args))


if __name__ == "__main__":
    raise SystemExit(main())
