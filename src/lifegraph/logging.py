"""JSONL event log of sync runs.

Every event of one run carries the same ``run_id`` so a run can be
reassembled from the file with a single filter.
"""

import json
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

DEFAULT_FILENAME = "sync.jsonl"


@dataclass
class SyncEvent:
    """One line of the sync log."""

    timestamp: str
    event: str
    run_id: str | None = None
    connector_id: str | None = None
    mode: str | None = None
    items_fetched: int | None = None
    items_saved: int | None = None
    duration_ms: float | None = None
    error: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict, dropping unset fields."""
        return {k: v for k, v in asdict(self).items() if v is not None and v != {}}


class JSONLLogger:
    """Appends sync events to ``log_dir/sync.jsonl``, rotating by size."""

    def __init__(
        self,
        log_dir: str | Path,
        filename: str = DEFAULT_FILENAME,
        max_size_mb: float = 10.0,
    ) -> None:
        self.log_dir = Path(log_dir)
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self.filename = filename
        self.max_size_bytes = int(max_size_mb * 1024 * 1024)

    @property
    def log_path(self) -> Path:
        return self.log_dir / self.filename

    def _rotate_if_needed(self) -> None:
        """Move a full log aside as sync_<utc stamp>.jsonl."""
        if not self.log_path.exists():
            return
        if self.log_path.stat().st_size < self.max_size_bytes:
            return
        stamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S_%f")
        self.log_path.rename(self.log_dir / f"{self.log_path.stem}_{stamp}.jsonl")

    def log(self, event: str, **fields: Any) -> None:
        """Append one event.

        Keyword arguments matching ``SyncEvent`` fields fill them; anything
        else lands in ``extra``.
        """
        known = {k: fields.pop(k) for k in list(fields) if k in _EVENT_FIELDS}
        entry = SyncEvent(
            timestamp=datetime.now(timezone.utc).isoformat(),
            event=event,
            extra=fields,
            **known,
        )
        self._rotate_if_needed()
        with open(self.log_path, "a", encoding="utf-8") as f:
            f.write(json.dumps(entry.to_dict(), ensure_ascii=False) + "\n")

    def log_sync_start(self, run_id: str, mode: str, connectors: list[str]) -> None:
        self.log("sync_start", run_id=run_id, mode=mode, connectors=connectors)

    def log_connector_result(
        self,
        run_id: str,
        connector_id: str,
        mode: str,
        *,
        items_fetched: int,
        items_saved: int,
        duration_ms: float,
        error: str | None = None,
    ) -> None:
        """Log one connector's outcome within a run."""
        self.log(
            "connector_error" if error else "connector_synced",
            run_id=run_id,
            connector_id=connector_id,
            mode=mode,
            items_fetched=items_fetched,
            items_saved=items_saved,
            duration_ms=duration_ms,
            error=error,
        )

    def log_sync_complete(
        self,
        run_id: str,
        mode: str,
        *,
        items_saved: int,
        failed: list[str],
        duration_ms: float,
    ) -> None:
        self.log(
            "sync_complete",
            run_id=run_id,
            mode=mode,
            items_saved=items_saved,
            duration_ms=duration_ms,
            failed=failed,
        )


_EVENT_FIELDS = frozenset(SyncEvent.__dataclass_fields__) - {"timestamp", "event", "extra"}
