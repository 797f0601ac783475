"""Configuration loader for Routermon."""

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class DeviceConfig(BaseModel):
    """A monitored RouterOS device, as listed in the devices file."""

    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    ip: str = Field(validation_alias=AliasChoices("ip", "address"))
    port: int = 8728
    username: str = "admin"
    password: str = ""


class PoolConfig(BaseModel):
    idle_window: float = 120.0  # seconds a warm session may be reused
    hard_expiry: float = 300.0  # sweep closes sessions idle longer than this
    connect_timeout: float = 15.0
    default_port: int = 8728  # applied to device records without a port


class CacheConfig(BaseModel):
    ttls: dict[str, float] = {
        "overview": 3.0,
        "bandwidth": 2.0,
        "queues": 10.0,
        "interfaces": 5.0,
        "resources": 3.0,
    }
    default_ttl: float = 5.0
    hard_ceiling: float = 30.0


class RatesConfig(BaseModel):
    min_sample_interval: float = 1.5


class DisplayConfig(BaseModel):
    queue_limit: int = 20
    bandwidth_limit: int = 20
    wan_interfaces: list[str] = ["ether1", "pppoe"]


class PollingConfig(BaseModel):
    sweep_interval: int = 60
    overview_interval: int = 10
    broadcast: bool = True


class AppConfig(BaseModel):
    pool: PoolConfig = PoolConfig()
    cache: CacheConfig = CacheConfig()
    rates: RatesConfig = RatesConfig()
    display: DisplayConfig = DisplayConfig()
    polling: PollingConfig = PollingConfig()


class Settings(BaseSettings):
    """Environment-based settings."""

    model_config = SettingsConfigDict(
        env_prefix="ROUTERMON_",
        env_file=".env",
        env_file_encoding="utf-8",
    )

    dev_mode: bool = True
    use_mock: bool = False
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 3001
    config_path: str = "../config/config.yaml"
    devices_path: str = "../config/routers.yaml"


def load_yaml_config(path: str) -> Any:
    """Load a YAML (or JSON) file, returning None if it does not exist."""
    config_path = Path(path)
    if not config_path.is_absolute():
        config_path = Path(__file__).parent.parent / path

    if not config_path.exists():
        return None

    with open(config_path) as f:
        return yaml.safe_load(f)


def get_config(settings: Settings | None = None) -> AppConfig:
    """Load and return the application configuration."""
    settings = settings or Settings()
    yaml_config = load_yaml_config(settings.config_path) or {}
    return AppConfig(**yaml_config)


def parse_devices(raw: list[dict[str, Any]], default_port: int = 8728) -> list[DeviceConfig]:
    """
    Validate raw device records, preserving their order. Records without a
    port get ``default_port``.

    Raises ValueError when two records share an id.
    """
    devices: list[DeviceConfig] = []
    seen: set[int] = set()
    for entry in raw:
        device = DeviceConfig(**{"port": default_port, **entry})
        if device.id in seen:
            raise ValueError(f"Duplicate device id {device.id} ({device.name})")
        seen.add(device.id)
        devices.append(device)
    return devices


def get_devices(
    settings: Settings | None = None, default_port: int = 8728,
) -> list[DeviceConfig]:
    """Load the ordered device list. A missing file yields an empty fleet."""
    settings = settings or Settings()
    raw = load_yaml_config(settings.devices_path)
    if raw is None:
        logger.warning("No device file at %s, monitoring an empty fleet", settings.devices_path)
        return []

    # Accept either a bare list or {"devices": [...]}
    if isinstance(raw, dict):
        raw = raw.get("devices", [])

    devices = parse_devices(raw, default_port)
    logger.info("Loaded %d router configurations", len(devices))
    return devices


# Singleton instance
settings = Settings()
