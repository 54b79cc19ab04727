# alembic/env.py
from logging.config import fileConfig
from alembic import context
from sqlalchemy import engine_from_config, pool

# --- Load .env so we can read DB_URL
import os, sys
from pathlib import Path
from dotenv import load_dotenv

# Ensure project root is on sys.path (so "model" imports work when running alembic from repo root)
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

load_dotenv(PROJECT_ROOT / ".env")

from model.base import Base

# Load all models so they're registered with Base.metadata
from model import load_all_models
load_all_models()

config = context.config

# Prefer DB_URL from env over alembic.ini
db_url = os.getenv("DB_URL")
if db_url:
    config.set_main_option("sqlalchemy.url", db_url)

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata

# Tables an autogenerated revision may never drop (accounts, tokens, listings, bookings)
PROTECTED_TABLES = {
    "users", "user_shortlist", "tokens", "otp_requests", "otp_attempts",
    "admins", "builders", "builder_team_members", "builder_documents",
    "properties", "property_media", "property_amenities", "property_flags",
    "visits", "property_likes", "property_comments", "property_views",
    "notifications", "chat_messages", "cities",
}


def process_revision_directives(context, revision, directives):
    """Block autogenerated revisions that drop protected tables or their columns."""
    if config.cmd_opts and config.cmd_opts.autogenerate:
        script = directives[0]
        dangerous_ops = []

        for op in script.upgrade_ops.ops:
            name = op.__class__.__name__
            table = getattr(op, "table_name", None)
            if table not in PROTECTED_TABLES:
                continue
            if name == "DropTableOp":
                dangerous_ops.append(f"DROP TABLE {table}")
            elif name == "DropColumnOp":
                dangerous_ops.append(f"DROP COLUMN {op.column_name} from {table}")

        if dangerous_ops:
            print("\nBlocked autogenerate; destructive operations detected:")
            for op in dangerous_ops:
                print(f"  - {op}")
            print("Write a manual revision (alembic revision -m '...') and review it before applying.\n")
            directives[:] = []


def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode."""
    url = config.get_main_option("sqlalchemy.url")
    context.configure(
        url=url,
        target_metadata=target_metadata,
        compare_type=True,
        process_revision_directives=process_revision_directives,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Run migrations in 'online' mode."""
    connectable = engine_from_config(
        config.get_section(config.config_ini_section),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
            process_revision_directives=process_revision_directives,
        )
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
