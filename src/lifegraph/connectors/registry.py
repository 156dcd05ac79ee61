"""Connector registry and factory for explicit startup wiring."""

from collections.abc import Callable, Iterator
from typing import Any

from .base import Connector
from .mock import MockConnector

# Known connector types. New integrations are added here explicitly.
CONNECTOR_TYPES: dict[str, Callable[..., Connector]] = {
    "mock": MockConnector,
}


def build_connector(spec: dict[str, Any]) -> Connector:
    """Construct a connector from a config entry.

    Args:
        spec: Mapping with a ``type`` key and an optional ``id``. Any other
            keys are passed to the connector constructor.

    Returns:
        The constructed connector.

    Raises:
        ValueError: If the type is missing or unknown.
    """
    options = dict(spec)
    connector_type = options.pop("type", None)
    if not connector_type:
        raise ValueError("Connector spec is missing 'type'")

    factory = CONNECTOR_TYPES.get(connector_type)
    if factory is None:
        known = ", ".join(sorted(CONNECTOR_TYPES))
        raise ValueError(f"Unknown connector type '{connector_type}' (known: {known})")

    connector_id = options.pop("id", connector_type)
    return factory(connector_id, **options)


class ConnectorRegistry:
    """Connector instances keyed by id, in registration order."""

    def __init__(self) -> None:
        self._connectors: dict[str, Connector] = {}

    def register(self, connector: Connector) -> None:
        """Add a connector. Ids must be unique."""
        if connector.id in self._connectors:
            raise ValueError(f"Connector '{connector.id}' already registered")
        self._connectors[connector.id] = connector

    @property
    def ids(self) -> list[str]:
        return list(self._connectors)

    def __iter__(self) -> Iterator[Connector]:
        return iter(list(self._connectors.values()))

    @classmethod
    def from_specs(cls, specs: list[dict[str, Any]]) -> "ConnectorRegistry":
        """Build a registry from a list of connector config entries."""
        registry = cls()
        for spec in specs:
            registry.register(build_connector(spec))
        return registry
