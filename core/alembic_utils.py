from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from alembic.script import ScriptDirectory

_ROOT = Path(__file__).resolve().parent.parent


def _alembic_config() -> Config:
    ini = _ROOT / "alembic.ini"
    if not ini.exists():
        raise RuntimeError(f"Alembic config not found at {ini}")
    cfg = Config(str(ini))
    # Absolute so commands work from any working directory
    cfg.set_main_option("script_location", str(_ROOT / "alembic"))
    return cfg


@dataclass(frozen=True)
class MigrationStatus:
    current: frozenset[str]
    expected: frozenset[str]

    @property
    def up_to_date(self) -> bool:
        return bool(self.current) and self.current == self.expected

    def describe(self) -> str:
        if not self.current:
            return "no Alembic revision recorded; run 'python -m scripts.manage migrate'"
        if self.up_to_date:
            return f"at head {', '.join(sorted(self.current))}"
        return f"at {sorted(self.current)}, head is {sorted(self.expected)}; run 'python -m scripts.manage migrate'"


def migration_status(engine) -> MigrationStatus:
    heads = ScriptDirectory.from_config(_alembic_config()).get_heads()
    with engine.connect() as conn:
        current = MigrationContext.configure(conn).get_current_heads() or ()
    return MigrationStatus(current=frozenset(current), expected=frozenset(heads))


def ensure_up_to_date(engine) -> None:
    """Refuse to serve a schema that is not at the latest migration."""
    status = migration_status(engine)
    if not status.up_to_date:
        raise RuntimeError(f"shiftpay database schema: {status.describe()}")
