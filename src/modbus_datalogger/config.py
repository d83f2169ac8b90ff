"""Load the JSON run configuration into Device/Tag models; build the sample configuration."""

import json
import logging
from pathlib import Path
from typing import Any

from .errors import ConfigError
from .names import validate_destination_name, validate_host
from .types import DeviceType, Device, LoggerConfig, SerialEndpoint, Tag, TcpEndpoint, ValueKind

logger = logging.getLogger(__name__)

DEFAULT_CONNECT_TIMEOUT = 5.0
DEFAULT_RECONNECT_DELAY = 5.0


def _require(raw: dict[str, Any], key: str, where: str) -> Any:
    if key not in raw:
        raise ConfigError(f"{where}: missing required key {key!r}")
    return raw[key]


def _as_int(value: Any, key: str, where: str) -> int:
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"{where}: {key!r} must be an integer, got {value!r}")
    return value


def _as_positive_number(value: Any, key: str, where: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"{where}: {key!r} must be a number, got {value!r}")
    if value <= 0:
        raise ConfigError(f"{where}: {key!r} must be positive, got {value!r}")
    return float(value)


def _parse_tag(raw: dict[str, Any], where: str) -> Tag:
    """Build Tag from a JSON entry (name, description, address, value)."""
    if not isinstance(raw, dict):
        raise ConfigError(f"{where}: tag entry must be an object")
    name = _require(raw, "name", where)
    if not isinstance(name, str) or not name.strip():
        raise ConfigError(f"{where}: tag name must be a non-empty string")
    where = f"{where} tag {name!r}"
    address = _as_int(_require(raw, "address", where), "address", where)
    value_str = _require(raw, "value", where)
    try:
        value = ValueKind(value_str)
    except ValueError:
        raise ConfigError(f"{where}: unknown value kind {value_str!r}") from None
    description = raw.get("description", "")
    if not isinstance(description, str):
        raise ConfigError(f"{where}: 'description' must be a string")
    try:
        return Tag(name=name, address=address, value=value, description=description)
    except ValueError as e:
        raise ConfigError(f"{where}: {e}") from None


def _parse_tags(raw: dict[str, Any], where: str) -> tuple[Tag, ...]:
    entries = raw.get("tags", [])
    if not isinstance(entries, list):
        raise ConfigError(f"{where}: 'tags' must be a list")
    tags: list[Tag] = []
    seen: set[str] = set()
    for entry in entries:
        tag = _parse_tag(entry, where)
        if tag.name in seen:
            raise ConfigError(f"{where}: duplicate tag name {tag.name!r}")
        seen.add(tag.name)
        tags.append(tag)
    return tuple(tags)


def _parse_device(raw: dict[str, Any]) -> Device:
    """Build Device from a JSON entry; endpoint fields depend on the device type."""
    if not isinstance(raw, dict):
        raise ConfigError("device entry must be an object")
    name = _require(raw, "name", "device")
    if not isinstance(name, str):
        raise ConfigError(f"device name must be a string, got {name!r}")
    try:
        name = validate_destination_name(name)
    except ValueError as e:
        raise ConfigError(str(e)) from None
    where = f"device {name!r}"

    type_str = _require(raw, "type", where)
    try:
        device_type = DeviceType(type_str)
    except ValueError:
        raise ConfigError(f"{where}: unknown device type {type_str!r}") from None

    if device_type == DeviceType.MODBUS_TCP:
        host = _require(raw, "ip", where)
        if not isinstance(host, str):
            raise ConfigError(f"{where}: 'ip' must be a string")
        try:
            host = validate_host(host)
        except ValueError as e:
            raise ConfigError(f"{where}: {e}") from None
        port = _as_int(raw.get("port", 502), "port", where)
        if not 1 <= port <= 65535:
            raise ConfigError(f"{where}: port out of range 1-65535: {port}")
        unit_id = _as_int(raw.get("unit_id", 1), "unit_id", where)
        endpoint: TcpEndpoint | SerialEndpoint | None = TcpEndpoint(host=host, port=port, unit_id=unit_id)
        tags = _parse_tags(raw, where)
    elif device_type == DeviceType.MODBUS_RTU:
        com = _require(raw, "com", where)
        if not isinstance(com, str) or not com.strip():
            raise ConfigError(f"{where}: 'com' must be a non-empty string")
        baudrate = _as_int(_require(raw, "baudrate", where), "baudrate", where)
        unit_id = _as_int(raw.get("unit_id", 1), "unit_id", where)
        endpoint = SerialEndpoint(com=com.strip(), baudrate=baudrate, unit_id=unit_id)
        tags = _parse_tags(raw, where)
    else:
        endpoint = None
        tags = ()

    return Device(name=name, type=device_type, endpoint=endpoint, tags=tags)


def parse_config(data: Any, path: str | None = None) -> LoggerConfig:
    """Validate decoded JSON and return a LoggerConfig. Raises ConfigError on any problem."""
    try:
        if not isinstance(data, dict):
            raise ConfigError("top level must be an object")
        poll_period = _as_positive_number(_require(data, "poll_period", "config"), "poll_period", "config")
        database_path = _require(data, "database_path", "config")
        if not isinstance(database_path, str) or not database_path:
            raise ConfigError("config: 'database_path' must be a non-empty string")
        connect_timeout = _as_positive_number(
            data.get("connect_timeout", DEFAULT_CONNECT_TIMEOUT), "connect_timeout", "config"
        )
        reconnect_delay = _as_positive_number(
            data.get("reconnect_delay", DEFAULT_RECONNECT_DELAY), "reconnect_delay", "config"
        )
        entries = _require(data, "devices", "config")
        if not isinstance(entries, list):
            raise ConfigError("config: 'devices' must be a list")

        devices: list[Device] = []
        seen: set[str] = set()
        for entry in entries:
            device = _parse_device(entry)
            # SQLite table names are case-insensitive
            key = device.name.lower()
            if key in seen:
                raise ConfigError(f"duplicate device name {device.name!r}")
            seen.add(key)
            devices.append(device)
    except ConfigError as e:
        if path is None or e.path is not None:
            raise
        raise ConfigError(str(e), path=path) from None

    logger.debug("Config loaded: %d devices, poll period %ss", len(devices), poll_period)
    return LoggerConfig(
        poll_period=poll_period,
        database_path=database_path,
        devices=tuple(devices),
        connect_timeout=connect_timeout,
        reconnect_delay=reconnect_delay,
    )


def load_config(path: str | Path) -> LoggerConfig:
    """Read and parse a JSON configuration file."""
    p = Path(path)
    try:
        with p.open("r", encoding="utf-8") as f:
            data = json.load(f)
    except OSError as e:
        raise ConfigError(f"cannot read config: {e.strerror or e}", path=str(p)) from e
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid JSON: {e}", path=str(p)) from e
    return parse_config(data, path=str(p))


def config_to_dict(config: LoggerConfig) -> dict[str, Any]:
    """Render a LoggerConfig back to the JSON document shape load_config accepts."""
    devices: list[dict[str, Any]] = []
    for device in config.devices:
        entry: dict[str, Any] = {"name": device.name, "type": device.type.value}
        if isinstance(device.endpoint, TcpEndpoint):
            entry.update(ip=device.endpoint.host, port=device.endpoint.port, unit_id=device.endpoint.unit_id)
        elif isinstance(device.endpoint, SerialEndpoint):
            entry.update(com=device.endpoint.com, baudrate=device.endpoint.baudrate, unit_id=device.endpoint.unit_id)
        if device.endpoint is not None:
            entry["tags"] = [
                {
                    "name": t.name,
                    "description": t.description,
                    "address": t.address,
                    "value": t.value.value,
                }
                for t in device.tags
            ]
        devices.append(entry)
    return {
        "poll_period": config.poll_period,
        "database_path": config.database_path,
        "connect_timeout": config.connect_timeout,
        "reconnect_delay": config.reconnect_delay,
        "devices": devices,
    }


def sample_config() -> LoggerConfig:
    """The documented starting configuration printed by ``mdlog create-config``."""
    device = Device(
        name="PLC_2",
        type=DeviceType.MODBUS_TCP,
        endpoint=TcpEndpoint(host="192.168.0.1", port=5502, unit_id=1),
        tags=(Tag(name="PIT-1001", description="Nothing", address=0, value=ValueKind.INT_HOLDING),),
    )
    return LoggerConfig(
        poll_period=60,
        database_path="./db.sqlite",
        devices=(device,),
        connect_timeout=DEFAULT_CONNECT_TIMEOUT,
        reconnect_delay=DEFAULT_RECONNECT_DELAY,
    )


def dump_config(config: LoggerConfig) -> str:
    return json.dumps(config_to_dict(config), indent=2)
