"""Core data model: value kinds, device types, endpoints, Tag, Device, Sample, and LoggerConfig."""

from dataclasses import dataclass, field
from enum import Enum


class ModbusTable(str, Enum):
    """Modbus table types used for pymodbus dispatch."""

    COIL = "coil"
    INPUT_REGISTER = "input_register"
    HOLDING_REGISTER = "holding_register"


class ValueKind(str, Enum):
    """How the raw registers behind a tag are interpreted."""

    INT_HOLDING = "int_holding"
    REAL_HOLDING = "real_holding"
    INT_INPUT = "int_input"
    REAL_INPUT = "real_input"
    COIL = "coil"

    @property
    def table(self) -> ModbusTable:
        if self in (ValueKind.INT_HOLDING, ValueKind.REAL_HOLDING):
            return ModbusTable.HOLDING_REGISTER
        if self in (ValueKind.INT_INPUT, ValueKind.REAL_INPUT):
            return ModbusTable.INPUT_REGISTER
        return ModbusTable.COIL

    @property
    def register_count(self) -> int:
        """Number of consecutive registers one sample of this kind occupies."""
        return 2 if self in (ValueKind.REAL_HOLDING, ValueKind.REAL_INPUT) else 1


class DeviceType(str, Enum):
    """Device transport variants recognized in configuration."""

    MODBUS_TCP = "modbus_tcp"
    MODBUS_RTU = "modbus_rtu"
    OPC_UA = "opc_ua"
    ETHERNET_IP = "ethernet_ip"
    S7 = "s7"


@dataclass(frozen=True)
class TcpEndpoint:
    """Modbus TCP endpoint: host, port, and unit id."""

    host: str
    port: int = 502
    unit_id: int = 1

    def __str__(self) -> str:
        return f"{self.host}:{self.port}"


@dataclass(frozen=True)
class SerialEndpoint:
    """Modbus RTU endpoint. Accepted by configuration; not polled."""

    com: str
    baudrate: int
    unit_id: int = 1

    def __str__(self) -> str:
        return f"{self.com}@{self.baudrate}"


@dataclass(frozen=True)
class Tag:
    """One named data point on a device."""

    name: str
    address: int
    value: ValueKind
    description: str = ""

    def __post_init__(self) -> None:
        if not 0 <= self.address <= 0xFFFF:
            raise ValueError(f"address must be in 0..65535, got {self.address}")
        if self.address + self.value.register_count - 1 > 0xFFFF:
            raise ValueError(f"{self.value.value} at address {self.address} runs past register 65535")


@dataclass(frozen=True)
class Device:
    """A configured device: unique name, transport type, endpoint, and ordered tags."""

    name: str
    type: DeviceType
    endpoint: TcpEndpoint | SerialEndpoint | None = None
    tags: tuple[Tag, ...] = ()


@dataclass(frozen=True)
class Sample:
    """One reading destined for the sink; timestamp is epoch seconds for the whole cycle."""

    device: str
    tag: str
    description: str
    timestamp: int
    value: float


@dataclass(frozen=True)
class LoggerConfig:
    """Top-level run configuration."""

    poll_period: float
    database_path: str
    devices: tuple[Device, ...] = field(default_factory=tuple)
    connect_timeout: float = 5.0
    reconnect_delay: float = 5.0
