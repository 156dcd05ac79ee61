"""Vault configuration loader.

Loads configuration from ~/.lifegraph/config.json, then applies environment
variable overrides.
"""

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_DATA_DIR = Path.home() / ".lifegraph"
DEFAULT_SYNC_INTERVAL = 300.0


def _default_connectors() -> list[dict[str, Any]]:
    return [{"type": "mock", "id": "mock"}]


@dataclass
class VaultConfig:
    """Configuration for the vault.

    Attributes:
        data_dir: Base directory for vault state (~/.lifegraph).
        db_path: SQLite database file (data_dir/vault.db).
        log_dir: Directory for JSONL sync logs (data_dir/logs).
        auth_path: File holding the login session (data_dir/auth.json).
        sync_interval: Seconds between runs in watch mode.
        connector_timeout: Seconds allowed per connector call, None for no limit.
        connectors: Connector specs, each with a 'type' and optional 'id'.
    """

    data_dir: Path | None = None
    db_path: Path | None = None
    log_dir: Path | None = None
    auth_path: Path | None = None
    sync_interval: float = DEFAULT_SYNC_INTERVAL
    connector_timeout: float | None = None
    connectors: list[dict[str, Any]] = field(default_factory=_default_connectors)

    def __post_init__(self) -> None:
        """Validate config and set defaults."""
        if self.data_dir is None:
            self.data_dir = DEFAULT_DATA_DIR
        if self.db_path is None:
            self.db_path = self.data_dir / "vault.db"
        if self.log_dir is None:
            self.log_dir = self.data_dir / "logs"
        if self.auth_path is None:
            self.auth_path = self.data_dir / "auth.json"

        if self.sync_interval < 1:
            raise ValueError("sync_interval must be at least 1 second")
        if self.connector_timeout is not None and self.connector_timeout <= 0:
            raise ValueError("connector_timeout must be positive")


def default_config_path() -> Path:
    """Config file location, honoring LIFEGRAPH_DATA_DIR."""
    data_dir = os.getenv("LIFEGRAPH_DATA_DIR")
    base = Path(data_dir).expanduser() if data_dir else DEFAULT_DATA_DIR
    return base / "config.json"


def load_config(config_path: Path | None = None) -> VaultConfig:
    """Load VaultConfig from a JSON file and the environment.

    The config file should have this structure:
    ```json
    {
      "vault": {
        "data_dir": "~/.lifegraph",
        "db_path": "~/.lifegraph/vault.db",
        "sync_interval": 300,
        "connector_timeout": 30,
        "connectors": [{"type": "mock", "id": "mock"}]
      }
    }
    ```

    Environment variables LIFEGRAPH_DATA_DIR, LIFEGRAPH_DB_PATH,
    LIFEGRAPH_SYNC_INTERVAL and LIFEGRAPH_CONNECTOR_TIMEOUT override the
    file.

    Args:
        config_path: Path to config file. Uses default_config_path() if None.

    Returns:
        VaultConfig instance with loaded values.
    """
    path = config_path or default_config_path()
    data: dict[str, Any] = {}

    if not path.exists():
        logger.debug("No config file at %s, using defaults", path)
    else:
        try:
            with open(path, "r") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            logger.warning("Invalid JSON in %s: %s. Using defaults.", path, e)
        except OSError as e:
            logger.warning("Cannot read %s: %s. Using defaults.", path, e)

    values = _parse_config(data if isinstance(data, dict) else {})
    values.update(_env_overrides())
    return VaultConfig(**values)


def _parse_path(value: Any) -> Path | None:
    if isinstance(value, str) and value:
        return Path(value).expanduser()
    return None


def _parse_config(data: dict[str, Any]) -> dict[str, Any]:
    """Parse config dictionary into VaultConfig keyword arguments.

    Invalid entries are dropped with a warning so defaults apply.
    """
    vault_data = data.get("vault", {})
    if not isinstance(vault_data, dict):
        logger.warning("'vault' section must be an object, ignoring it")
        return {}

    values: dict[str, Any] = {}

    for key in ("data_dir", "db_path", "log_dir", "auth_path"):
        path = _parse_path(vault_data.get(key))
        if path is not None:
            values[key] = path

    interval = vault_data.get("sync_interval")
    if isinstance(interval, (int, float)) and not isinstance(interval, bool) and interval >= 1:
        values["sync_interval"] = float(interval)
    elif interval is not None:
        logger.warning("Invalid sync_interval %r, using default", interval)

    timeout = vault_data.get("connector_timeout")
    if isinstance(timeout, (int, float)) and not isinstance(timeout, bool) and timeout > 0:
        values["connector_timeout"] = float(timeout)
    elif timeout is not None:
        logger.warning("Invalid connector_timeout %r, ignoring it", timeout)

    connectors = vault_data.get("connectors")
    if isinstance(connectors, list):
        specs = [c for c in connectors if isinstance(c, dict) and c.get("type")]
        if len(specs) != len(connectors):
            logger.warning("Skipped %d invalid connector spec(s)", len(connectors) - len(specs))
        values["connectors"] = specs
    elif connectors is not None:
        logger.warning("'connectors' must be a list, using default")

    return values


def _env_overrides() -> dict[str, Any]:
    """Read overrides from LIFEGRAPH_* environment variables."""
    values: dict[str, Any] = {}

    data_dir = _parse_path(os.getenv("LIFEGRAPH_DATA_DIR"))
    if data_dir is not None:
        values["data_dir"] = data_dir

    db_path = _parse_path(os.getenv("LIFEGRAPH_DB_PATH"))
    if db_path is not None:
        values["db_path"] = db_path

    interval = _parse_float_env("LIFEGRAPH_SYNC_INTERVAL", minimum=1)
    if interval is not None:
        values["sync_interval"] = interval

    timeout = _parse_float_env("LIFEGRAPH_CONNECTOR_TIMEOUT", minimum=0, exclusive=True)
    if timeout is not None:
        values["connector_timeout"] = timeout

    return values


def _parse_float_env(name: str, minimum: float, exclusive: bool = False) -> float | None:
    raw = os.getenv(name)
    if not raw:
        return None
    try:
        value = float(raw)
    except ValueError:
        value = None
    if value is None or value < minimum or (exclusive and value == minimum):
        logger.warning("Invalid %s %r, ignoring it", name, raw)
        return None
    return value


def save_config(config: VaultConfig, config_path: Path | None = None) -> None:
    """Save VaultConfig to a JSON file.

    Args:
        config: The config to save.
        config_path: Path to write to. Uses default_config_path() if None.
    """
    path = config_path or default_config_path()

    # Ensure parent directory exists
    path.parent.mkdir(parents=True, exist_ok=True)

    vault_data: dict[str, Any] = {
        "data_dir": str(config.data_dir),
        "db_path": str(config.db_path),
        "log_dir": str(config.log_dir),
        "auth_path": str(config.auth_path),
        "sync_interval": config.sync_interval,
        "connectors": config.connectors,
    }
    if config.connector_timeout is not None:
        vault_data["connector_timeout"] = config.connector_timeout

    try:
        with open(path, "w") as f:
            json.dump({"vault": vault_data}, f, indent=2)
    except OSError as e:
        logger.error("Failed to save config to %s: %s", path, e)
        raise
