import os

from database import initialize_database, create_tables, ensure_data_dir, IN_MEMORY


def _columns(conn):
    return [row[1] for row in conn.execute("PRAGMA table_info(audiobooks)").fetchall()]


def test_creates_missing_data_directory(tmp_path):
    db_file = str(tmp_path / "nested" / "data" / "audiobooks.db")

    conn = initialize_database(db_file)
    conn.close()

    assert os.path.isdir(tmp_path / "nested" / "data")
    assert os.path.exists(db_file)


def test_schema_is_idempotent(tmp_path):
    conn = initialize_database(str(tmp_path / "a.db"))
    conn.execute("INSERT INTO audiobooks (title) VALUES ('Kept')")
    conn.commit()

    create_tables(conn)
    create_tables(conn)

    assert conn.execute("SELECT COUNT(*) FROM audiobooks").fetchone()[0] == 1
    conn.close()


def test_schema_columns_and_defaults():
    conn = initialize_database(IN_MEMORY)
    assert _columns(conn) == [
        "id", "title", "author", "narrator", "duration", "genre", "description",
        "cover_url", "goodreads_url", "rating", "date_added",
        "date_started_listening", "date_end_listened", "notes", "status",
    ]

    conn.execute("INSERT INTO audiobooks (title) VALUES ('Raw')")
    row = conn.execute("SELECT * FROM audiobooks").fetchone()
    assert row["id"] == 1
    assert row["date_added"] is not None
    conn.close()


def test_ids_are_not_reused(tmp_path):
    conn = initialize_database(str(tmp_path / "ids.db"))
    conn.execute("INSERT INTO audiobooks (title) VALUES ('one')")
    conn.execute("DELETE FROM audiobooks")
    conn.execute("INSERT INTO audiobooks (title) VALUES ('two')")
    conn.commit()

    assert conn.execute("SELECT id FROM audiobooks").fetchone()[0] == 2
    conn.close()


def test_in_memory_needs_no_directory():
    ensure_data_dir(IN_MEMORY)
