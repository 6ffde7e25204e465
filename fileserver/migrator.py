"""Sequential schema migration runner.

Migration files live in ``fileserver/migrations`` and are named
``NNNN_description.sql``. Each one is applied in its own transaction together
with the row recording its version in the ``migrations`` table.
"""

import argparse
import sqlite3
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Set

from common.logging_config import get_logger, setup_logging

logger = get_logger(__name__)

MIGRATIONS_DIR = Path(__file__).parent / "migrations"


@dataclass(frozen=True)
class Migration:
    version: int
    name: str
    path: Path

    def read_sql(self) -> str:
        return self.path.read_text(encoding="utf-8")


def get_version_from_filename(filename: str) -> int:
    """
    Parse the numeric prefix of a migration file name.

    Raises:
        ValueError: If the name has no integer prefix
    """
    prefix = Path(filename).name.split("_", 1)[0]
    try:
        return int(prefix)
    except ValueError:
        raise ValueError(f"Migration file {filename!r} does not start with a version number")


def discover_migrations(migrations_dir: Path = MIGRATIONS_DIR) -> List[Migration]:
    """
    List migration files ordered by version.

    Raises:
        ValueError: If two files share a version number
    """
    migrations = [
        Migration(version=get_version_from_filename(path.name), name=path.stem, path=path)
        for path in migrations_dir.glob("*.sql")
    ]
    migrations.sort(key=lambda m: m.version)

    seen: Set[int] = set()
    for migration in migrations:
        if migration.version in seen:
            raise ValueError(f"Duplicate migration version {migration.version}")
        seen.add(migration.version)

    return migrations


def ensure_migrations_table(conn: sqlite3.Connection) -> None:
    conn.execute("""
        CREATE TABLE IF NOT EXISTS migrations (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            version INTEGER NOT NULL UNIQUE,
            name TEXT NOT NULL,
            applied_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
        )
    """)
    conn.commit()


def get_applied_versions(conn: sqlite3.Connection) -> Set[int]:
    cursor = conn.execute("SELECT version FROM migrations")
    return {row[0] for row in cursor.fetchall()}


def apply_migration(conn: sqlite3.Connection, migration: Migration) -> None:
    """
    Apply one migration and record its version atomically.

    Raises:
        sqlite3.Error: If any statement fails; the transaction is rolled back
    """
    sql = migration.read_sql().strip().rstrip(";")
    name = migration.name.replace("'", "''")
    script = (
        "BEGIN;\n"
        f"{sql};\n"
        f"INSERT INTO migrations (version, name) VALUES ({migration.version}, '{name}');\n"
        "COMMIT;"
    )
    try:
        conn.executescript(script)
    except sqlite3.Error:
        if conn.in_transaction:
            conn.rollback()
        logger.error(f"Migration {migration.version} ({migration.name}) failed", exc_info=True)
        raise

    logger.info(f"Applied migration {migration.version} ({migration.name})")


def apply_migrations(conn: sqlite3.Connection, migrations_dir: Path = MIGRATIONS_DIR) -> int:
    """
    Apply every pending migration in version order.

    Returns:
        Number of migrations applied
    """
    ensure_migrations_table(conn)
    applied = get_applied_versions(conn)

    count = 0
    for migration in discover_migrations(migrations_dir):
        if migration.version in applied:
            logger.debug(f"Migration {migration.version} already applied, skipping")
            continue
        apply_migration(conn, migration)
        count += 1

    logger.info(f"Database schema up to date ({count} migration(s) applied)")
    return count


def main(argv: Optional[List[str]] = None) -> None:
    """Apply pending migrations to the catalog database."""
    from fileserver.config import DATABASE_PATH
    from fileserver.database import init_database

    parser = argparse.ArgumentParser(description="Apply SplitStore catalog migrations")
    parser.add_argument("--database", default=DATABASE_PATH, help="Path to the SQLite catalog")
    args = parser.parse_args(argv)

    setup_logging('migrator')
    init_database(args.database)


if __name__ == "__main__":
    main()
