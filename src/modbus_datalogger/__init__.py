"""modbus-datalogger: poll Modbus TCP devices and log time-stamped readings to SQLite."""

__version__ = "0.1.0"

from .codec import decode, registers_to_float
from .config import dump_config, load_config, parse_config, sample_config
from .connection import ConnectionManager, ModbusSession
from .errors import (
    ConfigError,
    DataLoggerError,
    ModbusConnectError,
    ModbusReadError,
    SinkError,
    StorageUnavailableError,
)
from .names import quote_identifier, validate_destination_name
from .poller import PollLoop
from .sink import SqliteSink
from .supervisor import DeviceSupervisor
from .types import (
    Device,
    DeviceType,
    LoggerConfig,
    ModbusTable,
    Sample,
    SerialEndpoint,
    Tag,
    TcpEndpoint,
    ValueKind,
)

__all__ = [
    "__version__",
    "decode",
    "registers_to_float",
    "dump_config",
    "load_config",
    "parse_config",
    "sample_config",
    "ConnectionManager",
    "ModbusSession",
    "ConfigError",
    "DataLoggerError",
    "ModbusConnectError",
    "ModbusReadError",
    "SinkError",
    "StorageUnavailableError",
    "quote_identifier",
    "validate_destination_name",
    "PollLoop",
    "SqliteSink",
    "DeviceSupervisor",
    "Device",
    "DeviceType",
    "LoggerConfig",
    "ModbusTable",
    "Sample",
    "SerialEndpoint",
    "Tag",
    "TcpEndpoint",
    "ValueKind",
]
