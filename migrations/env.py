"""
Alembic environment for the ledger schema.

The database URL comes from application settings, or from
`alembic -x url=...` for a one-off target. Online migrations
run on an engine built by create_store_engine(), so SQLite
gets the same pragmas and timeouts the ledger itself uses.
"""

from logging.config import fileConfig

from alembic import context

from bank_ledger.config import get_settings
from bank_ledger.models import Base
from bank_ledger.models.base import create_store_engine

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def database_url() -> str:
    return context.get_x_argument(as_dictionary=True).get(
        "url", get_settings().DATABASE_URL
    )


def run_migrations_offline() -> None:
    """Emit the migration as a SQL script without connecting."""
    url = database_url()
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        render_as_batch=url.startswith("sqlite"),
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Connect to the database and apply the migration."""
    url = database_url()
    engine = create_store_engine(url=url)

    try:
        with engine.connect() as connection:
            context.configure(
                connection=connection,
                target_metadata=target_metadata,
                compare_type=True,
                # SQLite cannot ALTER constraints in place.
                render_as_batch=url.startswith("sqlite"),
            )
            with context.begin_transaction():
                context.run_migrations()
    finally:
        engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
