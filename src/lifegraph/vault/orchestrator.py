"""Sync orchestrator: drives connectors and persists what they produce."""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, TypeVar

from ..connectors import Connector, ConnectorUnavailableError
from ..items import Item, utc_now
from ..storage import Storage

if TYPE_CHECKING:
    from ..logging import JSONLLogger
    from ..storage import SyncStateStore

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SyncMode(Enum):
    """How a connector is asked for data."""

    FULL = "full"
    INCREMENTAL = "incremental"
    AUTO = "auto"


@dataclass
class ConnectorResult:
    """Outcome of one connector within a sync run."""

    connector_id: str
    mode: SyncMode
    items_fetched: int = 0
    items_saved: int = 0
    error: str | None = None
    duration_ms: float = 0.0

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class SyncReport:
    """Result of a sync run across all connectors."""

    mode: SyncMode
    started_at: datetime
    run_id: str
    results: list[ConnectorResult] = field(default_factory=list)

    @property
    def total_saved(self) -> int:
        return sum(r.items_saved for r in self.results)

    @property
    def failed(self) -> list[str]:
        return [r.connector_id for r in self.results if not r.ok]

    @property
    def succeeded(self) -> list[str]:
        return [r.connector_id for r in self.results if r.ok]


class SyncOrchestrator:
    """Owns one storage and a set of connectors, and runs sync passes.

    A failing connector never fails the run: its error is reported and its
    contribution treated as empty. Storage errors are not isolated and
    propagate to the caller.
    """

    def __init__(
        self,
        storage: Storage,
        connectors: Iterable[Connector],
        *,
        state_store: SyncStateStore | None = None,
        event_logger: JSONLLogger | None = None,
        connector_timeout: float | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            storage: Storage shared by every connector.
            connectors: Connectors wired at startup.
            state_store: Optional checkpoint store enabling ``sync()`` to
                resume incrementally.
            event_logger: Optional JSONL logger for sync events.
            connector_timeout: Seconds allowed per connector call, or None
                to wait indefinitely.
        """
        self.storage = storage
        self.connectors = list(connectors)
        self.state_store = state_store
        self.event_logger = event_logger
        self.connector_timeout = connector_timeout
        self.init_errors: dict[str, str] = {}
        self._ready: list[Connector] | None = None

    @property
    def ready_connectors(self) -> list[str]:
        """Ids of connectors that initialized successfully."""
        return [c.id for c in self._ready or []]

    async def initialize(self) -> list[str]:
        """Prepare storage and initialize every connector.

        Returns:
            Ids of the connectors ready to sync.

        Raises:
            StorageError: If the storage cannot be initialized.
        """
        await asyncio.to_thread(self.storage.init)
        if self.state_store is not None:
            await asyncio.to_thread(self.state_store.init)

        ready: list[Connector] = []
        self.init_errors = {}
        for connector in self.connectors:
            try:
                await self._call(connector, connector.init)
            except Exception as e:
                logger.error("Connector %s failed to initialize: %s", connector.id, e)
                self.init_errors[connector.id] = _describe(e)
                if self.event_logger:
                    self.event_logger.log(
                        "connector_init_failed",
                        connector_id=connector.id,
                        error=_describe(e),
                    )
                continue
            ready.append(connector)

        self._ready = ready
        logger.debug("%d of %d connector(s) ready", len(ready), len(self.connectors))
        return self.ready_connectors

    async def full_sync(self) -> SyncReport:
        """Run a full sync on every ready connector."""
        return await self._run(SyncMode.FULL)

    async def incremental_sync(self, since: datetime) -> SyncReport:
        """Run an incremental sync since ``since`` on every ready connector."""
        return await self._run(SyncMode.INCREMENTAL, since=since)

    async def sync(self) -> SyncReport:
        """Sync each connector incrementally from its checkpoint.

        Connectors without a checkpoint (or without a state store) get a
        full sync.
        """
        return await self._run(SyncMode.AUTO)

    async def run_periodic(
        self,
        interval_seconds: float,
        stop_event: asyncio.Event | None = None,
        max_runs: int | None = None,
        on_report: Callable[[SyncReport], None] | None = None,
    ) -> int:
        """Repeat ``sync()`` every ``interval_seconds`` until stopped.

        Args:
            interval_seconds: Pause between the end of one run and the next.
            stop_event: Set it to stop after the current run.
            max_runs: Stop after this many runs.
            on_report: Called with the report of every run.

        Returns:
            Number of runs performed.
        """
        runs = 0
        while stop_event is None or not stop_event.is_set():
            report = await self.sync()
            runs += 1
            if on_report is not None:
                on_report(report)
            if max_runs is not None and runs >= max_runs:
                break
            if stop_event is None:
                await asyncio.sleep(interval_seconds)
                continue
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=interval_seconds)
            except asyncio.TimeoutError:
                pass
        return runs

    def close(self) -> None:
        """Close the storage and checkpoint store."""
        self.storage.close()
        if self.state_store is not None:
            self.state_store.close()

    async def _run(self, mode: SyncMode, since: datetime | None = None) -> SyncReport:
        if self._ready is None:
            await self.initialize()
        assert self._ready is not None

        report = SyncReport(mode=mode, started_at=utc_now(), run_id=uuid.uuid4().hex[:12])
        if self.event_logger:
            self.event_logger.log_sync_start(report.run_id, mode.value, self.ready_connectors)

        start = time.monotonic()
        report.results = list(
            await asyncio.gather(
                *(
                    self._sync_connector(report.run_id, c, mode, since)
                    for c in self._ready
                )
            )
        )

        if self.event_logger:
            self.event_logger.log_sync_complete(
                report.run_id,
                mode.value,
                items_saved=report.total_saved,
                failed=report.failed,
                duration_ms=(time.monotonic() - start) * 1000,
            )
        logger.info(
            "Run %s: %s sync saved %d item(s); %d connector(s) failed",
            report.run_id,
            mode.value,
            report.total_saved,
            len(report.failed),
        )
        return report

    async def _resolve_mode(
        self, connector: Connector, mode: SyncMode, since: datetime | None
    ) -> tuple[SyncMode, datetime | None]:
        """Turn AUTO into FULL or INCREMENTAL using the connector's checkpoint."""
        if mode is not SyncMode.AUTO:
            return mode, since
        if self.state_store is None:
            return SyncMode.FULL, None
        state = await asyncio.to_thread(self.state_store.get, connector.id)
        if state is None or state.last_synced_at is None:
            return SyncMode.FULL, None
        return SyncMode.INCREMENTAL, state.last_synced_at

    async def _sync_connector(
        self, run_id: str, connector: Connector, mode: SyncMode, since: datetime | None
    ) -> ConnectorResult:
        mode, since = await self._resolve_mode(connector, mode, since)
        result = ConnectorResult(connector_id=connector.id, mode=mode)
        synced_at = utc_now()
        start = time.monotonic()

        try:
            items = await self._fetch(connector, mode, since)
        except Exception as e:
            result.error = _describe(e)
            logger.warning("Connector %s %s sync failed: %s", connector.id, mode.value, e)
            if self.state_store is not None:
                await asyncio.to_thread(
                    self.state_store.record_failure, connector.id, result.error
                )
        else:
            result.items_fetched = len(items)
            result.items_saved = await asyncio.to_thread(self.storage.save_items, items)
            if self.state_store is not None:
                await asyncio.to_thread(
                    self.state_store.record_success,
                    connector.id,
                    synced_at,
                    result.items_saved,
                )

        result.duration_ms = (time.monotonic() - start) * 1000
        if self.event_logger:
            self.event_logger.log_connector_result(
                run_id,
                connector.id,
                mode.value,
                items_fetched=result.items_fetched,
                items_saved=result.items_saved,
                duration_ms=result.duration_ms,
                error=result.error,
            )
        return result

    async def _fetch(
        self, connector: Connector, mode: SyncMode, since: datetime | None
    ) -> list[Item]:
        if mode is SyncMode.INCREMENTAL:
            assert since is not None
            return await self._call(connector, lambda: connector.incremental_sync(since))
        return await self._call(connector, connector.full_sync)

    async def _call(self, connector: Connector, func: Callable[[], Awaitable[T]]) -> T:
        """Await a connector call, bounded by ``connector_timeout`` if set."""
        if self.connector_timeout is None:
            return await func()
        try:
            return await asyncio.wait_for(func(), timeout=self.connector_timeout)
        except asyncio.TimeoutError as e:
            raise ConnectorUnavailableError(
                f"Timed out after {self.connector_timeout}s",
                connector_id=connector.id,
            ) from e


def _describe(error: BaseException) -> str:
    """Short description of an error for reports and logs."""
    message = str(error)
    name = type(error).__name__
    return f"{name}: {message}" if message else name
