import fcntl
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from alembic.config import Config

from alembic import command
from arena.config import config
from arena.utils.logging import logger

_MIGRATION_LOCK_PATH = "/tmp/arena-alembic.lock"
_ALEMBIC_INI_PATH = Path(__file__).resolve().parents[2] / "alembic.ini"


@contextmanager
def _exclusive_migration_lock() -> Iterator[None]:
    # Several uvicorn workers may boot at once; only one may run upgrade at a time.
    with open(_MIGRATION_LOCK_PATH, "w", encoding="utf-8") as lock_file:
        fcntl.flock(lock_file, fcntl.LOCK_EX)
        try:
            yield
        finally:
            fcntl.flock(lock_file, fcntl.LOCK_UN)


def get_alembic_config() -> Config:
    alembic_config = Config(str(_ALEMBIC_INI_PATH))
    alembic_config.set_main_option("script_location", str(_ALEMBIC_INI_PATH.parent / "alembic"))
    alembic_config.set_main_option("sqlalchemy.url", str(config.pg_dsn))
    return alembic_config


def upgrade_schema_to_head() -> None:
    with _exclusive_migration_lock():
        logger.info("Upgrading database schema to the latest revision")
        command.upgrade(get_alembic_config(), "head")


def run_startup_migrations() -> None:
    if not config.auto_run_migrations:
        logger.info("Skipping migrations on startup, auto_run_migrations is disabled")
        return
    upgrade_schema_to_head()
