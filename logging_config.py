# logging_config.py

import logging
import os
import sqlite3
from contextlib import closing
from datetime import datetime, timezone

LOG_DB_PATH = os.getenv("LOG_DB_PATH", "logs.db")
MAX_LOG_ENTRIES = 10000  # Maximum number of log entries to keep
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class SQLiteLogHandler(logging.Handler):
    def __init__(self, db_path=LOG_DB_PATH, max_entries=MAX_LOG_ENTRIES):
        super().__init__()
        self.db_path = db_path
        self.max_entries = max_entries
        self.create_table()

    def create_table(self):
        """Creates the logs table if it doesn't exist."""
        with closing(sqlite3.connect(self.db_path)) as conn, conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS logs (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    timestamp TEXT NOT NULL,
                    level TEXT NOT NULL,
                    logger TEXT,
                    message TEXT NOT NULL,
                    exception TEXT
                )
            """)

    def emit(self, record):
        """Stores a log record and drops the oldest rows beyond max_entries."""
        try:
            exception = None
            if record.exc_info:
                exception = logging.Formatter().formatException(record.exc_info)

            with closing(sqlite3.connect(self.db_path)) as conn, conn:
                conn.execute(
                    """
                    INSERT INTO logs (timestamp, level, logger, message, exception)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    (
                        datetime.now(timezone.utc).isoformat(),
                        record.levelname,
                        record.name,
                        record.getMessage(),
                        exception,
                    )
                )
                conn.execute(
                    """
                    DELETE FROM logs
                    WHERE id <= (SELECT MAX(id) FROM logs) - ?
                    """,
                    (self.max_entries,)
                )
        except Exception:
            self.handleError(record)


def setup_logging(debug: bool = False, db_path: str = LOG_DB_PATH):
    level = logging.DEBUG if debug else logging.INFO
    root = logging.getLogger()
    root.setLevel(level)

    # Replace whatever basicConfig installed while the configuration was loading.
    for handler in list(root.handlers):
        root.removeHandler(handler)

    formatter = logging.Formatter(LOG_FORMAT)

    # Console handler for real-time logs
    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    root.addHandler(console_handler)

    # SQLite handler for persistent logs
    if db_path:
        sqlite_handler = SQLiteLogHandler(db_path=db_path, max_entries=MAX_LOG_ENTRIES)
        sqlite_handler.setLevel(level)
        sqlite_handler.setFormatter(formatter)
        root.addHandler(sqlite_handler)

    return root
