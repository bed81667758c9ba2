import logging
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from wingman import create_app
from wingman.extensions import db
from wingman.services.seed import seed_providers

logger = logging.getLogger("wingman.scripts.init_db")


def _sqlite_tables(connection) -> set[str]:
    rows = connection.exec_driver_sql("SELECT name FROM sqlite_master WHERE type='table'")
    return {row[0] for row in rows}


def _sqlite_columns(connection, table_name: str) -> set[str]:
    rows = connection.exec_driver_sql(f"PRAGMA table_info({table_name})")
    return {row[1] for row in rows}


def _apply_sqlite_compat_migrations() -> None:
    """Backfill columns for older local SQLite databases."""
    column_migrations = {
        "users": [
            ("provider_id", "VARCHAR(64)"),
            ("profile_image", "VARCHAR(255)"),
        ],
        "ai_providers": [
            ("requires_auth", "BOOLEAN NOT NULL DEFAULT 1"),
            ("auth_header", "VARCHAR(128) DEFAULT 'Authorization'"),
        ],
        "chat_messages": [
            ("provider", "VARCHAR(64)"),
        ],
    }

    with db.engine.begin() as connection:
        existing_tables = _sqlite_tables(connection)
        for table_name, columns in column_migrations.items():
            if table_name not in existing_tables:
                continue
            existing_columns = _sqlite_columns(connection, table_name)
            for column_name, column_def in columns:
                if column_name in existing_columns:
                    continue
                connection.exec_driver_sql(
                    f"ALTER TABLE {table_name} ADD COLUMN {column_name} {column_def}"
                )
                logger.info("Added missing column: %s.%s", table_name, column_name)


def main() -> None:
    app = create_app()
    with app.app_context():
        db.create_all()
        if db.engine.dialect.name == "sqlite":
            _apply_sqlite_compat_migrations()
        added = seed_providers()
        logger.info("Database initialized (%d provider(s) seeded).", added)


if __name__ == "__main__":
    main()
