import os
import sys
from pathlib import Path

from alembic import context
from sqlalchemy import create_engine, pool

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from lora_connector.config import load_settings  # noqa: E402
from lora_connector.models import Base  # noqa: E402


def migration_url() -> str:
    """Sync psycopg URL for the connector database.

    ``ALEMBIC_DATABASE_URL`` wins, then the service settings
    (``LORACONN_DATABASE_URL`` / ``DATABASE_URL`` / ``.env``).
    """
    url = os.getenv("ALEMBIC_DATABASE_URL") or load_settings().database_url
    return url.replace("+asyncpg", "+psycopg")


def _configure(**kwargs) -> None:
    context.configure(
        target_metadata=Base.metadata,
        compare_type=True,
        compare_server_default=True,
        **kwargs,
    )


def run_offline() -> None:
    _configure(url=migration_url(), literal_binds=True)
    with context.begin_transaction():
        context.run_migrations()


def run_online() -> None:
    engine = create_engine(migration_url(), poolclass=pool.NullPool)
    with engine.connect() as connection:
        _configure(connection=connection)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_offline()
else:
    run_online()
