"""
Alembic environment for the event scheduler schema.

Run from the repository root:

    alembic -c backend/alembic.ini upgrade head

alembic.ini puts the repository root on sys.path (prepend_sys_path), so the
models import as ``backend.src.models``. The target database is
EVSCHED_DB_URL (environment or the repository's .env file); sqlalchemy.url
in alembic.ini is only the fallback.
"""

import os
from logging.config import fileConfig
from pathlib import Path

from alembic import context
from dotenv import load_dotenv
from sqlalchemy import engine_from_config, pool

from backend.src.models import Base


REPO_ROOT = Path(__file__).resolve().parents[4]

load_dotenv(dotenv_path=REPO_ROOT / ".env")

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

if os.environ.get("EVSCHED_DB_URL"):
    config.set_main_option("sqlalchemy.url", os.environ["EVSCHED_DB_URL"])

target_metadata = Base.metadata


def _configure(dialect_name: str, **kwargs) -> None:
    # SQLite cannot ALTER most things in place; batch mode rebuilds the table
    context.configure(
        target_metadata=target_metadata,
        compare_type=True,
        render_as_batch=dialect_name == "sqlite",
        **kwargs,
    )


def run_migrations_offline() -> None:
    """Emit the migration SQL for the configured URL without connecting."""
    url = config.get_main_option("sqlalchemy.url")
    _configure(
        url.split(":", 1)[0].split("+", 1)[0],
        url=url,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Apply migrations over a dedicated, unpooled connection."""
    engine = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with engine.connect() as connection:
        _configure(connection.dialect.name, connection=connection)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
