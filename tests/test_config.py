"""Tests for vault configuration loading."""

import json
from pathlib import Path

import pytest

from lifegraph.config import VaultConfig, default_config_path, load_config, save_config


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (
        "LIFEGRAPH_DATA_DIR",
        "LIFEGRAPH_DB_PATH",
        "LIFEGRAPH_SYNC_INTERVAL",
        "LIFEGRAPH_CONNECTOR_TIMEOUT",
    ):
        monkeypatch.delenv(name, raising=False)


def write_config(path: Path, vault: object) -> Path:
    path.write_text(json.dumps({"vault": vault}))
    return path


class TestVaultConfig:
    """Tests for VaultConfig dataclass."""

    def test_default_values(self) -> None:
        """Paths derive from the data directory."""
        config = VaultConfig()
        assert config.data_dir == Path.home() / ".lifegraph"
        assert config.db_path == config.data_dir / "vault.db"
        assert config.log_dir == config.data_dir / "logs"
        assert config.auth_path == config.data_dir / "auth.json"
        assert config.sync_interval == 300.0
        assert config.connector_timeout is None
        assert config.connectors == [{"type": "mock", "id": "mock"}]

    def test_custom_data_dir(self, tmp_path: Path) -> None:
        config = VaultConfig(data_dir=tmp_path)
        assert config.db_path == tmp_path / "vault.db"

    def test_explicit_db_path_kept(self, tmp_path: Path) -> None:
        config = VaultConfig(data_dir=tmp_path, db_path=tmp_path / "other.db")
        assert config.db_path == tmp_path / "other.db"

    def test_invalid_interval(self) -> None:
        with pytest.raises(ValueError, match="at least 1 second"):
            VaultConfig(sync_interval=0.5)

    def test_invalid_timeout(self) -> None:
        with pytest.raises(ValueError, match="must be positive"):
            VaultConfig(connector_timeout=0)


class TestLoadConfig:
    """Tests for load_config function."""

    def test_missing_file_uses_defaults(self, tmp_path: Path) -> None:
        config = load_config(tmp_path / "nope.json")
        assert config.sync_interval == 300.0

    def test_invalid_json_uses_defaults(self, tmp_path: Path) -> None:
        path = tmp_path / "config.json"
        path.write_text("{not json")
        config = load_config(path)
        assert config.connectors == [{"type": "mock", "id": "mock"}]

    def test_loads_values(self, tmp_path: Path) -> None:
        path = write_config(
            tmp_path / "config.json",
            {
                "data_dir": str(tmp_path / "data"),
                "sync_interval": 60,
                "connector_timeout": 10,
                "connectors": [{"type": "mock", "id": "inbox"}],
            },
        )
        config = load_config(path)
        assert config.data_dir == tmp_path / "data"
        assert config.db_path == tmp_path / "data" / "vault.db"
        assert config.sync_interval == 60.0
        assert config.connector_timeout == 10.0
        assert config.connectors == [{"type": "mock", "id": "inbox"}]

    def test_invalid_values_fall_back(self, tmp_path: Path) -> None:
        """Bad entries are dropped so defaults apply."""
        path = write_config(
            tmp_path / "config.json",
            {"sync_interval": "soon", "connector_timeout": -1, "connectors": "mock"},
        )
        config = load_config(path)
        assert config.sync_interval == 300.0
        assert config.connector_timeout is None
        assert config.connectors == [{"type": "mock", "id": "mock"}]

    def test_invalid_connector_specs_skipped(self, tmp_path: Path) -> None:
        path = write_config(
            tmp_path / "config.json",
            {"connectors": [{"type": "mock"}, {"id": "no-type"}, "mock"]},
        )
        assert load_config(path).connectors == [{"type": "mock"}]

    def test_non_object_vault_section(self, tmp_path: Path) -> None:
        path = write_config(tmp_path / "config.json", ["mock"])
        assert load_config(path).sync_interval == 300.0

    def test_env_overrides_file(self, tmp_path: Path, monkeypatch) -> None:
        path = write_config(tmp_path / "config.json", {"sync_interval": 60})
        monkeypatch.setenv("LIFEGRAPH_SYNC_INTERVAL", "15")
        monkeypatch.setenv("LIFEGRAPH_DB_PATH", str(tmp_path / "env.db"))
        monkeypatch.setenv("LIFEGRAPH_CONNECTOR_TIMEOUT", "2.5")
        config = load_config(path)
        assert config.sync_interval == 15.0
        assert config.db_path == tmp_path / "env.db"
        assert config.connector_timeout == 2.5

    def test_invalid_env_ignored(self, tmp_path: Path, monkeypatch) -> None:
        monkeypatch.setenv("LIFEGRAPH_SYNC_INTERVAL", "fast")
        monkeypatch.setenv("LIFEGRAPH_CONNECTOR_TIMEOUT", "0")
        config = load_config(tmp_path / "nope.json")
        assert config.sync_interval == 300.0
        assert config.connector_timeout is None

    def test_default_path_follows_data_dir(self, tmp_path: Path, monkeypatch) -> None:
        monkeypatch.setenv("LIFEGRAPH_DATA_DIR", str(tmp_path))
        assert default_config_path() == tmp_path / "config.json"
        assert load_config().db_path == tmp_path / "vault.db"


class TestSaveConfig:
    """Tests for save_config function."""

    def test_save_and_reload(self, tmp_path: Path) -> None:
        path = tmp_path / "nested" / "config.json"
        config = VaultConfig(
            data_dir=tmp_path,
            sync_interval=42,
            connector_timeout=5,
            connectors=[{"type": "mock", "id": "a"}],
        )
        save_config(config, path)

        loaded = load_config(path)
        assert loaded.db_path == tmp_path / "vault.db"
        assert loaded.sync_interval == 42.0
        assert loaded.connector_timeout == 5.0
        assert loaded.connectors == [{"type": "mock", "id": "a"}]

    def test_omits_unset_timeout(self, tmp_path: Path) -> None:
        path = tmp_path / "config.json"
        save_config(VaultConfig(data_dir=tmp_path), path)
        assert "connector_timeout" not in json.loads(path.read_text())["vault"]
