"""SQLite document store for TripSplit groups."""

import logging
import sqlite3
from datetime import datetime
from pathlib import Path

from pydantic import ValidationError

from .exceptions import GroupNotFoundError, StorageError
from .models import Group

logger = logging.getLogger(__name__)


class Database:
    """SQLite database manager.

    Each group is stored as one JSON document. Saving replaces the whole
    document; the last writer wins.
    """

    def __init__(self, db_path: Path):
        """Initialize database connection."""
        self.db_path = db_path
        self.conn = sqlite3.connect(str(db_path))
        self.conn.row_factory = sqlite3.Row
        self._init_schema()

    def _init_schema(self):
        """Initialize database schema."""
        cursor = self.conn.cursor()

        # Group documents table
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS groups (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                document TEXT NOT NULL,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """
        )

        # Config table
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS config (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """
        )

        self.conn.commit()

    def close(self):
        """Close database connection."""
        self.conn.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    # ========================================================================
    # Config operations
    # ========================================================================

    def get_config(self, key: str) -> str | None:
        """Get a config value by key."""
        cursor = self.conn.cursor()
        cursor.execute("SELECT value FROM config WHERE key = ?", (key,))
        row = cursor.fetchone()
        return str(row["value"]) if row else None

    def set_config(self, key: str, value: str):
        """Set a config value."""
        cursor = self.conn.cursor()
        cursor.execute(
            """
            INSERT INTO config (key, value, updated_at)
            VALUES (?, ?, ?)
            ON CONFLICT(key) DO UPDATE SET
                value = excluded.value,
                updated_at = excluded.updated_at
            """,
            (key, value, datetime.now().isoformat()),
        )
        self.conn.commit()

    def delete_config(self, key: str):
        """Remove a config value."""
        cursor = self.conn.cursor()
        cursor.execute("DELETE FROM config WHERE key = ?", (key,))
        self.conn.commit()

    def get_active_group_id(self) -> str | None:
        """Get the id of the group commands act on by default."""
        return self.get_config("active_group_id")

    def set_active_group_id(self, group_id: str):
        """Set the default group."""
        self.set_config("active_group_id", group_id)

    # ========================================================================
    # Group document operations
    # ========================================================================

    def save_group(self, group: Group):
        """Insert or fully replace a group document."""
        cursor = self.conn.cursor()
        cursor.execute(
            """
            INSERT INTO groups (id, name, document, updated_at)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                name = excluded.name,
                document = excluded.document,
                updated_at = excluded.updated_at
            """,
            (
                group.id,
                group.name,
                group.model_dump_json(by_alias=True),
                datetime.now().isoformat(),
            ),
        )
        self.conn.commit()
        logger.debug(f"Saved group {group.id} ({len(group.expenses)} expenses)")

    def get_group(self, group_id: str) -> Group:
        """
        Load a group document.

        Raises:
            GroupNotFoundError: If no group has this id
            StorageError: If the stored document can't be decoded
        """
        cursor = self.conn.cursor()
        cursor.execute("SELECT document FROM groups WHERE id = ?", (group_id,))
        row = cursor.fetchone()
        if not row:
            raise GroupNotFoundError(group_id)
        return self._decode(group_id, row["document"])

    def list_groups(self) -> list[Group]:
        """Get all groups, most recently created first."""
        cursor = self.conn.cursor()
        cursor.execute(
            "SELECT id, document FROM groups ORDER BY created_at DESC, rowid DESC"
        )
        return [self._decode(row["id"], row["document"]) for row in cursor.fetchall()]

    def delete_group(self, group_id: str):
        """
        Delete a group document.

        Raises:
            GroupNotFoundError: If no group has this id
        """
        cursor = self.conn.cursor()
        cursor.execute("DELETE FROM groups WHERE id = ?", (group_id,))
        self.conn.commit()
        if cursor.rowcount == 0:
            raise GroupNotFoundError(group_id)

        if self.get_active_group_id() == group_id:
            self.delete_config("active_group_id")

    def _decode(self, group_id: str, document: str) -> Group:
        try:
            return Group.model_validate_json(document)
        except ValidationError as e:
            raise StorageError(
                f"Stored document for group '{group_id}' is invalid: {e}"
            ) from e
