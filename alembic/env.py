from logging.config import fileConfig
from sqlalchemy import engine_from_config, pool
from alembic import context

from core.config import settings
from models.base import Base
import models  # noqa: F401  registers every table on Base.metadata

# Alembic Config object
config = context.config

# Logging (skipped when driven from the application, which configures its own)
if config.config_file_name is not None and config.attributes.get("configure_logger", True):
    fileConfig(config.config_file_name, disable_existing_loggers=False)

# Target metadata
target_metadata = Base.metadata


def database_url() -> str:
    return config.attributes.get("sqlalchemy.url") or settings.sync_database_url


def process_revision_directives(context, revision, directives):
    """Drop autogenerated revisions that contain no operations."""
    if not config.attributes.get("skip_empty_revision"):
        return
    script = directives[0]
    if script.upgrade_ops.is_empty():
        directives[:] = []


def run_migrations_offline():
    context.configure(
        url=database_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        compare_type=True,
        render_as_batch=True,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online():
    connectable = engine_from_config(
        {
            "sqlalchemy.url": database_url()
        },
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
            render_as_batch=True,
            process_revision_directives=process_revision_directives,
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
