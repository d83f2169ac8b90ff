"""Connection manager: one pymodbus TCP session per device, with fixed-delay reconnect."""

import logging
import threading
from typing import Any

from pymodbus.client import ModbusTcpClient
from pymodbus.exceptions import ModbusException as PymodbusException

from .errors import ModbusConnectError, ModbusReadError
from .types import ModbusTable, Tag, TcpEndpoint

logger = logging.getLogger(__name__)


class ModbusSession:
    """A live, connected pymodbus client. Discarded as a whole on any read failure."""

    def __init__(self, client: ModbusTcpClient, endpoint: TcpEndpoint) -> None:
        self._client = client
        self._endpoint = endpoint

    @property
    def endpoint(self) -> TcpEndpoint:
        return self._endpoint

    def read(self, table: ModbusTable, address: int, count: int) -> list[int]:
        """Read ``count`` consecutive registers (or coils, as 0/1) starting at ``address``."""
        unit = self._endpoint.unit_id
        try:
            if table == ModbusTable.COIL:
                rr = self._client.read_coils(address, count=count, device_id=unit)
            elif table == ModbusTable.INPUT_REGISTER:
                rr = self._client.read_input_registers(address, count=count, device_id=unit)
            elif table == ModbusTable.HOLDING_REGISTER:
                rr = self._client.read_holding_registers(address, count=count, device_id=unit)
            else:
                raise ModbusReadError(f"Unknown table: {table}", address=address)
        except PymodbusException as e:
            raise ModbusReadError(str(e), address=address, cause=e) from e
        except OSError as e:
            raise ModbusReadError(f"Transport error: {e}", address=address, cause=e) from e

        if rr.isError():
            raise ModbusReadError(str(rr), address=address, cause=getattr(rr, "exception", None))

        if table == ModbusTable.COIL:
            # pymodbus pads bit responses to a multiple of 8
            bits = getattr(rr, "bits", None)
            if not bits or len(bits) < count:
                raise ModbusReadError("Short bit response", address=address)
            return [1 if b else 0 for b in bits[:count]]
        registers = getattr(rr, "registers", None)
        if not registers or len(registers) < count:
            raise ModbusReadError("Short register response", address=address)
        return [int(r) for r in registers[:count]]

    def close(self) -> None:
        try:
            self._client.close()
        except Exception as e:
            logger.warning("Error closing Modbus client for %s: %s", self._endpoint, e)


class ConnectionManager:
    """
    Owns the session lifecycle for one device: Disconnected -> Connecting -> Connected.

    A failed read closes the session and returns to Disconnected; there is no
    partial repair. Connect attempts are bounded by ``timeout``; retries are
    spaced by ``reconnect_delay`` with no growth and no attempt limit.
    """

    def __init__(
        self,
        device: str,
        endpoint: TcpEndpoint,
        timeout: float = 5.0,
        reconnect_delay: float = 5.0,
    ) -> None:
        self._device = device
        self._endpoint = endpoint
        self._timeout = timeout
        self._reconnect_delay = reconnect_delay
        self._session: ModbusSession | None = None

    @property
    def connected(self) -> bool:
        return self._session is not None

    @property
    def reconnect_delay(self) -> float:
        return self._reconnect_delay

    def _new_client(self) -> ModbusTcpClient:
        # retries=0: retry policy lives here, not in pymodbus
        return ModbusTcpClient(
            host=self._endpoint.host,
            port=self._endpoint.port,
            timeout=self._timeout,
            retries=0,
        )

    def connect(self) -> ModbusSession:
        """Make one connection attempt, replacing any current session on success."""
        self.close()
        client = self._new_client()
        try:
            ok = client.connect()
        except (PymodbusException, OSError) as e:
            client.close()
            raise ModbusConnectError(
                f"Failed to connect to {self._endpoint}: {e}",
                device=self._device,
                endpoint=str(self._endpoint),
                cause=e,
            ) from e
        if not ok:
            client.close()
            raise ModbusConnectError(
                f"Failed to connect to {self._endpoint}",
                device=self._device,
                endpoint=str(self._endpoint),
            )
        self._session = ModbusSession(client, self._endpoint)
        logger.info("Connected to device %s at %s", self._device, self._endpoint)
        return self._session

    def connect_until_ready(self, stop: threading.Event) -> ModbusSession | None:
        """
        Attempt connect until it succeeds, waiting ``reconnect_delay`` between attempts.

        Returns None only if ``stop`` is set while waiting.
        """
        while not stop.is_set():
            try:
                return self.connect()
            except ModbusConnectError as e:
                logger.warning("%s; retrying in %ss", e, self._reconnect_delay)
            if stop.wait(self._reconnect_delay):
                break
        return None

    def reconnect(self) -> bool:
        """One immediate reconnect attempt after a read failure. Returns True on success."""
        try:
            self.connect()
        except ModbusConnectError as e:
            logger.warning("Reconnect to device %s failed: %s", self._device, e)
            return False
        logger.info("Reconnected to device %s", self._device)
        return True

    def read(self, tag: Tag) -> list[int]:
        """Read the registers behind ``tag``. On any failure the session is dropped."""
        count = tag.value.register_count
        if self._session is None:
            raise ModbusReadError(
                "Not connected",
                device=self._device,
                tag=tag.name,
                address=tag.address,
            )
        try:
            return self._session.read(tag.value.table, tag.address, count)
        except ModbusReadError as e:
            self.close()
            raise ModbusReadError(
                str(e),
                device=self._device,
                tag=tag.name,
                address=tag.address,
                cause=e.cause,
            ) from e

    def close(self) -> None:
        if self._session is not None:
            self._session.close()
            self._session = None

    def __enter__(self) -> "ConnectionManager":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()
