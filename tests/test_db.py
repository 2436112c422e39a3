# tests/test_db.py
import os

from concept_refresher.db import PROGRESS_KEY, get_connection, init_db, read_value, write_value


def test_init_db_creates_table(tmp_db):
    init_db(tmp_db)
    assert os.path.exists(tmp_db)
    conn = get_connection(tmp_db)
    tables = [r[0] for r in conn.execute("SELECT name FROM sqlite_master WHERE type='table'").fetchall()]
    conn.close()
    assert "progress_store" in tables


def test_init_db_is_idempotent(tmp_db):
    init_db(tmp_db)
    init_db(tmp_db)


def test_init_db_creates_parent_dirs(tmp_path):
    db_path = str(tmp_path / "nested" / "dir" / "progress.db")
    init_db(db_path)
    assert os.path.exists(db_path)


def test_read_missing_value(tmp_db):
    init_db(tmp_db)
    assert read_value(tmp_db) is None


def test_write_then_overwrite_keeps_one_row(tmp_db):
    init_db(tmp_db)
    write_value(tmp_db, '{"a": 1}')
    write_value(tmp_db, '{"a": 2}')
    assert read_value(tmp_db) == '{"a": 2}'
    conn = get_connection(tmp_db)
    count = conn.execute("SELECT COUNT(*) FROM progress_store WHERE key = ?", (PROGRESS_KEY,)).fetchone()[0]
    conn.close()
    assert count == 1


def test_values_are_keyed(tmp_db):
    init_db(tmp_db)
    write_value(tmp_db, "one", key="other")
    assert read_value(tmp_db) is None
    assert read_value(tmp_db, key="other") == "one"
