"""Tests for the schema migration runner."""

import sqlite3

import pytest

from fileserver.database import get_db_connection, init_database
from fileserver.migrator import (
    MIGRATIONS_DIR,
    apply_migrations,
    discover_migrations,
    get_applied_versions,
    get_version_from_filename,
    main,
)


def _tables(db_path):
    with get_db_connection(db_path) as conn:
        rows = conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'").fetchall()
    return {row["name"] for row in rows}


def test_version_from_filename():
    assert get_version_from_filename("0003_create_orphaned_chunks.sql") == 3
    with pytest.raises(ValueError):
        get_version_from_filename("create_files.sql")


def test_bundled_migrations_are_ordered():
    versions = [m.version for m in discover_migrations()]

    assert versions == sorted(versions)
    assert versions[:3] == [1, 2, 3]


def test_init_database_creates_schema(tmp_path):
    db_path = str(tmp_path / "sub" / "catalog.db")

    applied = init_database(db_path)

    assert applied == len(discover_migrations())
    assert {"files", "file_chunks", "orphaned_chunks", "migrations"} <= _tables(db_path)


def test_migrations_applied_once(tmp_path):
    db_path = str(tmp_path / "catalog.db")
    init_database(db_path)

    assert init_database(db_path) == 0
    with get_db_connection(db_path) as conn:
        assert get_applied_versions(conn) == {m.version for m in discover_migrations(MIGRATIONS_DIR)}


def test_pending_migration_applied_in_order(tmp_path):
    migrations_dir = tmp_path / "migrations"
    migrations_dir.mkdir()
    (migrations_dir / "0002_add_index.sql").write_text("CREATE INDEX idx_t_name ON t (name);")
    (migrations_dir / "0001_create_t.sql").write_text("CREATE TABLE t (id INTEGER PRIMARY KEY, name TEXT);")

    with get_db_connection(str(tmp_path / "db.sqlite")) as conn:
        assert apply_migrations(conn, migrations_dir) == 2

        (migrations_dir / "0003_add_column.sql").write_text("ALTER TABLE t ADD COLUMN size INTEGER")
        assert apply_migrations(conn, migrations_dir) == 1
        assert get_applied_versions(conn) == {1, 2, 3}


def test_failed_migration_is_rolled_back(tmp_path):
    migrations_dir = tmp_path / "migrations"
    migrations_dir.mkdir()
    (migrations_dir / "0001_create_t.sql").write_text("CREATE TABLE t (id INTEGER PRIMARY KEY);")
    (migrations_dir / "0002_broken.sql").write_text(
        "CREATE TABLE u (id INTEGER);\nINSERT INTO missing_table VALUES (1);"
    )

    db_path = str(tmp_path / "db.sqlite")
    with get_db_connection(db_path) as conn:
        with pytest.raises(sqlite3.Error):
            apply_migrations(conn, migrations_dir)
        assert get_applied_versions(conn) == {1}

    assert "u" not in _tables(db_path)


def test_duplicate_versions_rejected(tmp_path):
    (tmp_path / "0001_a.sql").write_text("SELECT 1;")
    (tmp_path / "0001_b.sql").write_text("SELECT 1;")

    with pytest.raises(ValueError):
        discover_migrations(tmp_path)


def test_main_migrates_given_database(tmp_path):
    db_path = tmp_path / "cli.db"

    main(["--database", str(db_path)])

    assert "files" in _tables(str(db_path))
