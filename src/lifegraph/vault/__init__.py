"""Sync orchestration."""

from .orchestrator import ConnectorResult, SyncMode, SyncOrchestrator, SyncReport

__all__ = [
    "ConnectorResult",
    "SyncMode",
    "SyncOrchestrator",
    "SyncReport",
]
