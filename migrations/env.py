import os
import sys

from alembic import context

# ------------------------------------------------------------
# Put the project root on sys.path so "authflow" is importable
# ------------------------------------------------------------
BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if BASE_DIR not in sys.path:
    sys.path.insert(0, BASE_DIR)

from authflow.core.config import get_settings
from authflow.db.database import Base, init_models, make_engine

# Import every model so autogenerate sees the full metadata
init_models()

config = context.config

# No fileConfig(): logging is configured by the application, not alembic.ini
target_metadata = Base.metadata


def _db_url() -> str:
    return config.get_main_option("sqlalchemy.url") or get_settings().DB_URL


def run_migrations_offline() -> None:
    """Emit SQL without a database connection."""
    context.configure(
        url=_db_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        compare_type=True,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Run migrations against a live connection."""
    connectable = make_engine(_db_url())

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
            render_as_batch=connection.dialect.name == "sqlite",
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
