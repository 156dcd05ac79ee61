"""SQLite storage for vault items."""

import logging
import sqlite3
import threading
from collections.abc import Iterable
from datetime import datetime
from pathlib import Path

from ..items import PARSE_ERROR_KIND, Item, utc_now
from .base import Storage, StorageError
from .codec import (
    decode_json,
    decode_kind,
    encode_json,
    encode_kind,
    format_timestamp,
    parse_timestamp,
)

logger = logging.getLogger(__name__)

ITEM_COLUMNS = (
    "id",
    "source_id",
    "connector_id",
    "kind",
    "timestamp",
    "ingested_at",
    "properties",
    "raw_payload",
)

_UPSERT_SQL = f"""
    INSERT INTO items ({", ".join(ITEM_COLUMNS)})
    VALUES ({", ".join("?" for _ in ITEM_COLUMNS)})
    ON CONFLICT(id) DO UPDATE SET
        {", ".join(f"{c} = excluded.{c}" for c in ITEM_COLUMNS if c != "id")}
"""

# Seconds a writer waits for another connection's write lock.
BUSY_TIMEOUT = 30.0


def _decode_text(value: bytes) -> str:
    return value.decode("utf-8", errors="replace")


def open_connection(db_path: Path, timeout: float = BUSY_TIMEOUT) -> sqlite3.Connection:
    """Open a thread-shareable connection to the vault database.

    Invalid UTF-8 in TEXT columns is decoded with replacement characters so
    a corrupt row fails field decoding instead of the whole query.

    Raises:
        StorageError: If the file cannot be opened.
    """
    try:
        db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(db_path, timeout=timeout, check_same_thread=False)
    except (OSError, sqlite3.Error) as e:
        raise StorageError(f"Cannot open database {db_path}: {e}") from e
    conn.row_factory = sqlite3.Row
    conn.text_factory = _decode_text
    return conn


class SQLiteStorage(Storage):
    """Persistent item storage in a single SQLite file.

    One connection is shared by every caller and guarded by a lock, so
    concurrent writers queue instead of interleaving. Structured fields are
    stored as canonical JSON text and timestamps as sortable UTC strings.
    """

    def __init__(self, db_path: Path | str, timeout: float = BUSY_TIMEOUT) -> None:
        """Initialize the storage with a database path.

        Args:
            db_path: Path to the SQLite database file. Created if absent.
            timeout: Seconds to wait when another connection holds the
                write lock.
        """
        self.db_path = Path(db_path)
        self.timeout = timeout
        self._conn: sqlite3.Connection | None = None
        self._lock = threading.Lock()

    def _get_connection(self) -> sqlite3.Connection:
        """Get or create the database connection."""
        if self._conn is None:
            self._conn = open_connection(self.db_path, self.timeout)
        return self._conn

    def init(self) -> None:
        """Create the items table and timestamp index if they don't exist."""
        with self._lock:
            conn = self._get_connection()
            try:
                conn.execute("""
                    CREATE TABLE IF NOT EXISTS items (
                        id           TEXT PRIMARY KEY NOT NULL,
                        source_id    TEXT NOT NULL,
                        connector_id TEXT NOT NULL,
                        kind         TEXT NOT NULL,
                        timestamp    TEXT NOT NULL,
                        ingested_at  TEXT NOT NULL,
                        properties   TEXT NOT NULL,
                        raw_payload  TEXT
                    )
                """)
                conn.execute(
                    "CREATE INDEX IF NOT EXISTS idx_items_timestamp ON items(timestamp)"
                )
                conn.commit()
            except sqlite3.Error as e:
                conn.rollback()
                raise StorageError(f"Failed to initialize schema: {e}") from e
        logger.debug("Item storage ready at %s", self.db_path)

    def save_items(self, items: Iterable[Item]) -> int:
        """Upsert a batch of items atomically.

        An item whose id already exists replaces the stored row entirely.
        If any item fails to encode or write, the whole batch is rolled back.

        Args:
            items: Items to persist.

        Returns:
            Number of items written.

        Raises:
            StorageError: If the batch could not be committed.
        """
        batch = list(items)
        if not batch:
            return 0

        with self._lock:
            conn = self._get_connection()
            try:
                for item in batch:
                    conn.execute(_UPSERT_SQL, self._item_to_row(item))
                conn.commit()
            except sqlite3.Error as e:
                conn.rollback()
                raise StorageError(f"Failed to save batch of {len(batch)} items: {e}") from e
            except Exception:
                conn.rollback()
                raise

        logger.debug("Saved %d item(s)", len(batch))
        return len(batch)

    def get_all_items(self) -> list[Item]:
        """Get all items, most recent timestamp first.

        Rows with undecodable fields are still returned in degraded form.

        Returns:
            List of stored items.

        Raises:
            StorageError: If the query itself fails.
        """
        with self._lock:
            conn = self._get_connection()
            try:
                cursor = conn.execute(
                    f"SELECT {', '.join(ITEM_COLUMNS)} FROM items "
                    "ORDER BY timestamp DESC, ingested_at DESC"
                )
                rows = cursor.fetchall()
            except sqlite3.Error as e:
                raise StorageError(f"Failed to read items: {e}") from e
        return [self._row_to_item(row) for row in rows]

    def count_items(self) -> int:
        """Return the number of stored items."""
        with self._lock:
            conn = self._get_connection()
            try:
                row = conn.execute("SELECT COUNT(*) FROM items").fetchone()
            except sqlite3.Error as e:
                raise StorageError(f"Failed to count items: {e}") from e
        return row[0]

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    def __enter__(self) -> "SQLiteStorage":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _item_to_row(self, item: Item) -> tuple:
        """Encode an item as a row tuple in ITEM_COLUMNS order."""
        return (
            item.id,
            item.source_id,
            item.connector_id,
            encode_kind(item.kind),
            format_timestamp(item.timestamp),
            format_timestamp(item.ingested_at),
            encode_json(item.properties),
            None if item.raw_payload is None else encode_json(item.raw_payload),
        )

    def _row_to_item(self, row: sqlite3.Row) -> Item:
        """Decode a row, degrading malformed fields instead of failing."""
        item_id = row["id"]

        try:
            kind = decode_kind(row["kind"])
        except (TypeError, ValueError):
            logger.warning("Item %s has malformed kind %r", item_id, row["kind"])
            kind = PARSE_ERROR_KIND

        try:
            properties = decode_json(row["properties"])
        except (TypeError, ValueError):
            logger.warning("Item %s has malformed properties", item_id)
            properties = None

        raw_payload = None
        if row["raw_payload"] is not None:
            try:
                raw_payload = decode_json(row["raw_payload"])
            except (TypeError, ValueError):
                logger.warning("Item %s has malformed raw_payload", item_id)

        return Item(
            id=item_id,
            source_id=row["source_id"],
            connector_id=row["connector_id"],
            kind=kind,
            timestamp=self._decode_timestamp(item_id, "timestamp", row["timestamp"]),
            ingested_at=self._decode_timestamp(item_id, "ingested_at", row["ingested_at"]),
            properties=properties,
            raw_payload=raw_payload,
        )

    def _decode_timestamp(self, item_id: str, column: str, value: str) -> datetime:
        """Parse a stored timestamp, falling back to now when unparsable."""
        try:
            return parse_timestamp(value)
        except ValueError:
            logger.warning("Item %s has unparsable %s %r, using now", item_id, column, value)
            return utc_now()
