import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Tuple

from db_models import Contact, LinkPrecedence
from errors import StorageError


def _timestamp(value: Optional[datetime] = None) -> str:
    # one fixed ISO layout so createdAt sorts correctly as text
    if value is None:
        value = datetime.now(timezone.utc)
    elif value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


@contextmanager
def _storage_errors(operation: str):
    try:
        yield
    except sqlite3.Error as e:
        raise StorageError(f"{operation} failed: {e}") from e


class ContactStore:
    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    def query_by_email_or_phone(self, email: Optional[str], phone: Optional[str]) -> List[Contact]:
        with _storage_errors("Contact lookup"):
            rows = self.conn.execute("""
                SELECT * FROM Contact
                WHERE (email = ? AND email IS NOT NULL)
                   OR (phoneNumber = ? AND phoneNumber IS NOT NULL)
                ORDER BY createdAt ASC, id ASC
            """, (email, phone)).fetchall()
        return [Contact.from_row(row) for row in rows]

    def insert_contact(
        self,
        email: Optional[str],
        phone: Optional[str],
        linked_id: Optional[int],
        precedence: LinkPrecedence,
        created_at: Optional[datetime] = None,
    ) -> int:
        now = _timestamp(created_at)
        with _storage_errors("Contact insert"):
            cursor = self.conn.execute("""
                INSERT INTO Contact (phoneNumber, email, linkedId, linkPrecedence, createdAt, updatedAt)
                VALUES (?, ?, ?, ?, ?, ?)
            """, (phone, email, linked_id, LinkPrecedence(precedence).value, now, now))
        return cursor.lastrowid

    def update_contact_linkage(self, contact_id: int, precedence: LinkPrecedence, linked_id: Optional[int]):
        with _storage_errors("Contact linkage update"):
            self.conn.execute("""
                UPDATE Contact
                SET linkPrecedence = ?, linkedId = ?, updatedAt = ?
                WHERE id = ?
            """, (LinkPrecedence(precedence).value, linked_id, _timestamp(), contact_id))

    def repoint_secondaries(self, from_primary_id: int, to_primary_id: int) -> int:
        """Move every contact linked to from_primary_id under to_primary_id."""
        with _storage_errors("Secondary relink"):
            cursor = self.conn.execute("""
                UPDATE Contact
                SET linkedId = ?, updatedAt = ?
                WHERE linkedId = ?
            """, (to_primary_id, _timestamp(), from_primary_id))
        return cursor.rowcount

    def query_cluster_members(self, primary_id: int) -> List[Contact]:
        with _storage_errors("Cluster lookup"):
            rows = self.conn.execute("""
                SELECT * FROM Contact
                WHERE id = ? OR linkedId = ?
                ORDER BY createdAt ASC, id ASC
            """, (primary_id, primary_id)).fetchall()
        return [Contact.from_row(row) for row in rows]

    def query_creation_times(self, ids: Iterable[int]) -> List[Tuple[int, datetime]]:
        ids = list(ids)
        if not ids:
            return []
        placeholders = ", ".join("?" for _ in ids)
        with _storage_errors("Creation time lookup"):
            rows = self.conn.execute(f"""
                SELECT id, createdAt FROM Contact
                WHERE id IN ({placeholders})
                ORDER BY createdAt ASC, id ASC
            """, ids).fetchall()
        return [(row["id"], datetime.fromisoformat(row["createdAt"])) for row in rows]

    def get_contact(self, contact_id: int) -> Optional[Contact]:
        with _storage_errors("Contact fetch"):
            row = self.conn.execute("SELECT * FROM Contact WHERE id = ?", (contact_id,)).fetchone()
        return Contact.from_row(row) if row else None
