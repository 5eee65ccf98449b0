"""
Alembic environment for the site admin database.
The database URL always comes from the application settings, never from alembic.ini.
"""
from logging.config import fileConfig

from sqlalchemy import engine_from_config, pool

from alembic import context

from siteadmin.config import settings
from siteadmin.database import Base
import siteadmin.models  # noqa: F401 - registers blog, audit and token tables

config = context.config
config.set_main_option("sqlalchemy.url", f"sqlite:///{settings.database_path}")

# Keep the application's loggers when migrations run at startup
if config.config_file_name is not None:
    fileConfig(config.config_file_name, disable_existing_loggers=False)

target_metadata = Base.metadata

# SQLite cannot ALTER most constraints in place
_CONFIGURE_OPTIONS = {"target_metadata": target_metadata, "render_as_batch": True}


def run_migrations_offline() -> None:
    """Emit the migration SQL without a database connection."""
    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **_CONFIGURE_OPTIONS,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Apply the migrations over a throwaway connection."""
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with connectable.connect() as connection:
        context.configure(connection=connection, **_CONFIGURE_OPTIONS)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
