"""Tests for environment-driven configuration."""

from pathlib import Path

from storefront.config import (
    COURIER_TIMEOUT,
    GRAPH_HOST,
    SIMULATION_DELAY,
    AppConfig,
)

ENV_VARS = [
    "STOREFRONT_DATA_DIR",
    "STOREFRONT_COURIER_TIMEOUT",
    "STOREFRONT_CONVERSION_TIMEOUT",
    "STOREFRONT_GRAPH_HOST",
    "STOREFRONT_SIMULATION_DELAY",
    "STOREFRONT_LOG_LEVEL",
]


def clear_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults(monkeypatch, temp_dir):
    clear_env(monkeypatch)

    config = AppConfig.from_env(data_dir=temp_dir)

    assert config.snapshot_path == temp_dir / "storefront.json"
    assert config.courier_timeout == COURIER_TIMEOUT
    assert config.graph_host == GRAPH_HOST
    assert config.simulation_delay == SIMULATION_DELAY
    assert config.log_level == "INFO"


def test_environment_overrides(monkeypatch, temp_dir):
    clear_env(monkeypatch)
    monkeypatch.setenv("STOREFRONT_DATA_DIR", str(temp_dir))
    monkeypatch.setenv("STOREFRONT_COURIER_TIMEOUT", "3")
    monkeypatch.setenv("STOREFRONT_GRAPH_HOST", "http://graph.test/")
    monkeypatch.setenv("STOREFRONT_SIMULATION_DELAY", "0")
    monkeypatch.setenv("STOREFRONT_LOG_LEVEL", "debug")

    config = AppConfig.from_env()

    assert config.data_dir == Path(temp_dir)
    assert config.courier_timeout == 3.0
    assert config.graph_host == "http://graph.test"
    assert config.simulation_delay == 0.0
    assert config.log_level == "DEBUG"
