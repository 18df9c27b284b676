import logging
import os
import sqlite3

logger = logging.getLogger(__name__)

IN_MEMORY = ":memory:"

# Columns written by an update. id, date_added, cover_url and goodreads_url are never replaced.
UPDATABLE_COLUMNS = (
    "title", "author", "narrator", "duration", "genre", "description",
    "date_started_listening", "date_end_listened", "notes", "status", "rating",
)

INSERT_COLUMNS = (
    "title", "author", "narrator", "duration", "genre", "description",
    "cover_url", "date_started_listening", "date_end_listened", "notes", "status",
)


def ensure_data_dir(db_file: str) -> None:
    """Create the directory holding the database file if it is missing."""
    if db_file == IN_MEMORY:
        return
    data_dir = os.path.dirname(os.path.abspath(db_file))
    if not os.path.exists(data_dir):
        os.makedirs(data_dir, exist_ok=True)
        logger.info("Created data directory %s", data_dir)


def get_db_connection(db_file: str) -> sqlite3.Connection:
    """Establishes a connection to the SQLite database."""
    ensure_data_dir(db_file)
    # One handle is shared by FastAPI's worker threads; callers serialize access.
    conn = sqlite3.connect(db_file, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    return conn


def create_tables(conn: sqlite3.Connection) -> None:
    """Creates the audiobooks table if it doesn't exist."""
    conn.execute("""
        CREATE TABLE IF NOT EXISTS audiobooks (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            title TEXT NOT NULL,
            author TEXT,
            narrator TEXT,
            duration TEXT,
            genre TEXT,
            description TEXT,
            cover_url TEXT,
            goodreads_url TEXT,
            rating REAL,
            date_added DATETIME DEFAULT CURRENT_TIMESTAMP,
            date_started_listening DATETIME,
            date_end_listened DATETIME,
            notes TEXT,
            status TEXT DEFAULT 'to_listen'
        )
    """)
    conn.commit()


def initialize_database(db_file: str) -> sqlite3.Connection:
    """Opens the database and makes sure the schema exists. Safe on every start."""
    conn = get_db_connection(db_file)
    create_tables(conn)
    logger.info("Connected to SQLite database at %s", db_file)
    return conn
