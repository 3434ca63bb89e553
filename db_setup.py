import logging
import sqlite3
from contextlib import contextmanager

from config import get_settings
from errors import StorageError

logger = logging.getLogger(__name__)


def init_db(db_path: str):
    conn = get_db_connection(db_path)
    try:
        conn.executescript('''
            CREATE TABLE IF NOT EXISTS Contact (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                phoneNumber TEXT,
                email TEXT,
                linkedId INTEGER,
                linkPrecedence TEXT CHECK(linkPrecedence IN ('secondary', 'primary')),
                createdAt DATETIME DEFAULT CURRENT_TIMESTAMP,
                updatedAt DATETIME DEFAULT CURRENT_TIMESTAMP,
                deletedAt DATETIME,
                FOREIGN KEY (linkedId) REFERENCES Contact (id)
            );
            CREATE INDEX IF NOT EXISTS ix_contact_email ON Contact (email);
            CREATE INDEX IF NOT EXISTS ix_contact_phone ON Contact (phoneNumber);
            CREATE INDEX IF NOT EXISTS ix_contact_linked ON Contact (linkedId);
        ''')
    except sqlite3.Error as e:
        raise StorageError(f"Failed to initialize schema: {e}") from e
    finally:
        conn.close()
    logger.info(f"Contact schema ready in {db_path}")


def get_db_connection(db_path: str) -> sqlite3.Connection:
    """Open a connection with Row access and manual transaction control."""
    try:
        conn = sqlite3.connect(
            db_path,
            timeout=get_settings().db.timeout,
            isolation_level=None,
        )
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
    except sqlite3.Error as e:
        raise StorageError(f"Failed to open database {db_path}: {e}") from e
    return conn


@contextmanager
def transaction(conn: sqlite3.Connection):
    """Run the enclosed statements as one write transaction.

    BEGIN IMMEDIATE takes the write lock up front so two reconciliations on the
    same database never interleave; the later one waits up to the busy timeout.
    """
    try:
        conn.execute("BEGIN IMMEDIATE")
    except sqlite3.Error as e:
        raise StorageError(f"Failed to begin transaction: {e}") from e

    try:
        yield conn
    except BaseException:
        conn.rollback()
        raise

    try:
        conn.commit()
    except sqlite3.Error as e:
        conn.rollback()
        raise StorageError(f"Failed to commit transaction: {e}") from e
