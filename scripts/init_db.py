"""Apply schema.sql to the configured MySQL database (idempotent)."""

from __future__ import annotations

from dotenv import load_dotenv

from attendance_api.common.logging_config import setup_logging
from attendance_api.database.bootstrap import apply_schema
from attendance_api.database.connection import DBConfig, DatabaseConnection
from attendance_api.settings import load_settings


def main() -> None:
    load_dotenv(override=False)
    settings = load_settings()
    setup_logging(settings.LOG_LEVEL)

    conn = DatabaseConnection(DBConfig.from_mapping(settings.DB_CONFIG))
    count = apply_schema(conn)
    db = conn.config
    print(f"OK: Applied schema.sql -> {db.user}@{db.host}:{db.port}/{db.database} (statements={count})")


if __name__ == "__main__":
    main()
