"""Unit tests for configuration loading."""
from __future__ import annotations

import json

import pytest

from routermon.config import AppConfig, Settings, get_config, get_devices, parse_devices


def test_defaults():
    config = AppConfig()

    assert config.pool.idle_window == 120
    assert config.pool.hard_expiry == 300
    assert config.pool.connect_timeout == 15
    assert config.pool.default_port == 8728
    assert config.cache.ttls["bandwidth"] == 2
    assert config.cache.hard_ceiling == 30
    assert config.rates.min_sample_interval == 1.5
    assert config.display.queue_limit == 20
    assert config.polling.sweep_interval == 60


def test_get_config_from_yaml(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("pool:\n  idle_window: 90\nrates:\n  min_sample_interval: 2\n")

    config = get_config(Settings(config_path=str(path)))

    assert config.pool.idle_window == 90
    assert config.pool.hard_expiry == 300
    assert config.rates.min_sample_interval == 2


def test_get_config_missing_file(tmp_path):
    config = get_config(Settings(config_path=str(tmp_path / "missing.yaml")))
    assert config == AppConfig()


def test_get_devices_from_yaml(tmp_path):
    path = tmp_path / "routers.yaml"
    path.write_text(
        "devices:\n"
        "  - {id: 2, name: Branch, ip: 10.0.0.2, username: api, password: x}\n"
        "  - {id: 1, name: Core, ip: 10.0.0.1, port: 8729}\n"
    )

    devices = get_devices(Settings(devices_path=str(path)))

    assert [d.id for d in devices] == [2, 1]
    assert devices[0].port == 8728
    assert devices[1].port == 8729


def test_get_devices_from_json_list(tmp_path):
    path = tmp_path / "routers.json"
    path.write_text(json.dumps([{"id": 7, "name": "Edge", "ip": "10.9.9.9"}]))

    devices = get_devices(Settings(devices_path=str(path)))

    assert devices[0].name == "Edge"


def test_get_devices_missing_file(tmp_path):
    assert get_devices(Settings(devices_path=str(tmp_path / "none.yaml"))) == []


def test_duplicate_device_id_rejected():
    with pytest.raises(ValueError, match="Duplicate device id 1"):
        parse_devices([
            {"id": 1, "name": "a", "ip": "10.0.0.1"},
            {"id": 1, "name": "b", "ip": "10.0.0.2"},
        ])


def test_device_address_key_accepted():
    devices = parse_devices([{"id": 1, "name": "Core", "address": "10.0.0.9"}])

    assert devices[0].ip == "10.0.0.9"


def test_default_port_applies_when_record_has_none(tmp_path):
    path = tmp_path / "routers.yaml"
    path.write_text(
        "- {id: 1, name: Core, address: 10.0.0.1}\n"
        "- {id: 2, name: Branch, ip: 10.0.0.2, port: 8728}\n"
    )

    devices = get_devices(Settings(devices_path=str(path)), default_port=8729)

    assert [d.port for d in devices] == [8729, 8728]
    assert devices[0].ip == "10.0.0.1"
