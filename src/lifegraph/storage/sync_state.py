"""Per-connector sync checkpoints.

Stored in their own table so incremental sync can resume from the last
successful run. Checkpoints are overwritable and independent of the items
table.
"""

import logging
import sqlite3
import threading
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from ..items import utc_now
from .base import StorageError
from .codec import format_timestamp, parse_timestamp
from .store import BUSY_TIMEOUT, open_connection

logger = logging.getLogger(__name__)

STATUS_SUCCESS = "success"
STATUS_FAILED = "failed"


@dataclass(frozen=True)
class SyncState:
    """Checkpoint for one connector.

    Attributes:
        connector_id: Connector the checkpoint belongs to.
        last_synced_at: Start time of the last successful sync, or None.
        last_status: 'success' or 'failed'.
        last_error: Message of the last failure, cleared on success.
        items_synced: Total items saved across successful runs.
        updated_at: When the checkpoint was last written.
    """

    connector_id: str
    last_synced_at: datetime | None
    last_status: str
    last_error: str | None
    items_synced: int
    updated_at: datetime


class SyncStateStore:
    """SQLite-backed checkpoint store keyed by connector id."""

    def __init__(self, db_path: Path | str, timeout: float = BUSY_TIMEOUT) -> None:
        self.db_path = Path(db_path)
        self.timeout = timeout
        self._conn: sqlite3.Connection | None = None
        self._lock = threading.Lock()

    def _get_connection(self) -> sqlite3.Connection:
        if self._conn is None:
            self._conn = open_connection(self.db_path, self.timeout)
        return self._conn

    def _execute(self, sql: str, params: tuple = ()) -> list[sqlite3.Row]:
        """Run one statement in its own transaction and return any rows."""
        with self._lock:
            conn = self._get_connection()
            try:
                rows = conn.execute(sql, params).fetchall()
                conn.commit()
            except sqlite3.Error as e:
                conn.rollback()
                raise StorageError(f"Sync state query failed: {e}") from e
        return rows

    def init(self) -> None:
        """Create the sync_state table if it doesn't exist."""
        self._execute("""
            CREATE TABLE IF NOT EXISTS sync_state (
                connector_id   TEXT PRIMARY KEY NOT NULL,
                last_synced_at TEXT,
                last_status    TEXT NOT NULL,
                last_error     TEXT,
                items_synced   INTEGER NOT NULL DEFAULT 0,
                updated_at     TEXT NOT NULL
            )
        """)

    def get(self, connector_id: str) -> SyncState | None:
        """Get the checkpoint for a connector, or None if it never ran."""
        rows = self._execute(
            "SELECT * FROM sync_state WHERE connector_id = ?", (connector_id,)
        )
        return self._row_to_state(rows[0]) if rows else None

    def list_states(self) -> list[SyncState]:
        """Get every checkpoint, ordered by connector id."""
        rows = self._execute("SELECT * FROM sync_state ORDER BY connector_id")
        return [self._row_to_state(row) for row in rows]

    def record_success(
        self,
        connector_id: str,
        synced_at: datetime,
        item_count: int,
    ) -> None:
        """Advance the checkpoint after a successful sync.

        Args:
            connector_id: Connector that synced.
            synced_at: When the sync started; the next incremental sync
                resumes from here.
            item_count: Items saved by this run.
        """
        self._execute(
            """
            INSERT INTO sync_state (
                connector_id, last_synced_at, last_status, last_error,
                items_synced, updated_at
            ) VALUES (?, ?, ?, NULL, ?, ?)
            ON CONFLICT(connector_id) DO UPDATE SET
                last_synced_at = excluded.last_synced_at,
                last_status = excluded.last_status,
                last_error = NULL,
                items_synced = sync_state.items_synced + excluded.items_synced,
                updated_at = excluded.updated_at
            """,
            (
                connector_id,
                format_timestamp(synced_at),
                STATUS_SUCCESS,
                item_count,
                format_timestamp(utc_now()),
            ),
        )

    def record_failure(self, connector_id: str, error: str) -> None:
        """Record a failed run. The previous checkpoint is kept."""
        self._execute(
            """
            INSERT INTO sync_state (
                connector_id, last_synced_at, last_status, last_error,
                items_synced, updated_at
            ) VALUES (?, NULL, ?, ?, 0, ?)
            ON CONFLICT(connector_id) DO UPDATE SET
                last_status = excluded.last_status,
                last_error = excluded.last_error,
                updated_at = excluded.updated_at
            """,
            (connector_id, STATUS_FAILED, error, format_timestamp(utc_now())),
        )

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    def _row_to_state(self, row: sqlite3.Row) -> SyncState:
        """Convert a database row to a SyncState."""
        last_synced_at = row["last_synced_at"]
        return SyncState(
            connector_id=row["connector_id"],
            last_synced_at=parse_timestamp(last_synced_at) if last_synced_at else None,
            last_status=row["last_status"],
            last_error=row["last_error"],
            items_synced=row["items_synced"],
            updated_at=parse_timestamp(row["updated_at"]),
        )
