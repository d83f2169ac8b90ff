"""Exceptions for modbus-datalogger: configuration, storage, and Modbus I/O failures."""


class DataLoggerError(Exception):
    """Base exception for modbus-datalogger."""

    pass


class ConfigError(DataLoggerError):
    """Raised when the configuration file is unreadable or malformed."""

    def __init__(self, message: str, *, path: str | None = None) -> None:
        self.path = path
        self._msg = f"{path}: {message}" if path else message
        super().__init__(self._msg)


class StorageUnavailableError(DataLoggerError):
    """Raised when the sample database cannot be opened or bootstrapped."""

    def __init__(self, message: str, *, cause: BaseException | None = None) -> None:
        self.cause = cause
        super().__init__(message)


class ModbusConnectError(DataLoggerError):
    """Raised when a connection attempt to a device endpoint fails or times out."""

    def __init__(
        self,
        message: str,
        *,
        device: str | None = None,
        endpoint: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        self.device = device
        self.endpoint = endpoint
        self.cause = cause
        super().__init__(message)


class ModbusReadError(DataLoggerError):
    """Raised when a register read fails (exception response, short response, or transport drop)."""

    def __init__(
        self,
        message: str,
        *,
        device: str | None = None,
        tag: str | None = None,
        address: int | None = None,
        cause: BaseException | None = None,
    ) -> None:
        self.device = device
        self.tag = tag
        self.address = address
        self.cause = cause
        super().__init__(message)


class SinkError(DataLoggerError):
    """Raised when a sample cannot be written to the store."""

    def __init__(
        self,
        message: str,
        *,
        device: str | None = None,
        tag: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        self.device = device
        self.tag = tag
        self.cause = cause
        super().__init__(message)
