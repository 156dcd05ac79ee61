"""Connector contract and implementations."""

from .base import (
    Connector,
    ConnectorAuthError,
    ConnectorError,
    ConnectorUnavailableError,
    MalformedPayloadError,
)
from .mock import MockConnector
from .registry import CONNECTOR_TYPES, ConnectorRegistry, build_connector

__all__ = [
    "CONNECTOR_TYPES",
    "Connector",
    "ConnectorAuthError",
    "ConnectorError",
    "ConnectorRegistry",
    "ConnectorUnavailableError",
    "MalformedPayloadError",
    "MockConnector",
    "build_connector",
]
