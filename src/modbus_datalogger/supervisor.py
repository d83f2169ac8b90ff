"""Device supervisor: one daemon thread per polled device, failures isolated per thread."""

import logging
import threading

from .connection import ConnectionManager
from .poller import PollLoop
from .sink import SqliteSink
from .types import Device, DeviceType, LoggerConfig, TcpEndpoint

logger = logging.getLogger(__name__)


class DeviceSupervisor:
    """
    Starts a PollLoop thread for each Modbus TCP device in the config.

    Other device types are accepted by configuration but have no engine yet;
    they are logged and skipped. An exception escaping one device's loop ends
    only that thread.
    """

    def __init__(self, config: LoggerConfig, sink: SqliteSink) -> None:
        self._config = config
        self._sink = sink
        self._stop = threading.Event()
        self._threads: list[threading.Thread] = []

    @property
    def threads(self) -> list[threading.Thread]:
        return list(self._threads)

    def _build_loop(self, device: Device) -> PollLoop | None:
        if device.type == DeviceType.MODBUS_TCP:
            if not isinstance(device.endpoint, TcpEndpoint):
                raise ValueError(f"Device {device.name!r} is modbus_tcp but has no TCP endpoint")
            connection = ConnectionManager(
                device.name,
                device.endpoint,
                timeout=self._config.connect_timeout,
                reconnect_delay=self._config.reconnect_delay,
            )
            return PollLoop(device, connection, self._sink, self._config.poll_period, stop=self._stop)
        if device.type in (DeviceType.MODBUS_RTU, DeviceType.OPC_UA, DeviceType.ETHERNET_IP, DeviceType.S7):
            logger.warning("Device %s: type %s is not supported yet; skipping", device.name, device.type.value)
            return None
        raise ValueError(f"Unknown device type: {device.type!r}")

    def _run_isolated(self, loop: PollLoop) -> None:
        try:
            loop.run()
        except Exception:
            logger.exception("Poll loop for %s crashed", loop.device.name)

    def start(self) -> list[threading.Thread]:
        """
        Spawn one thread per supported device and return them. Does not block.

        Every device is checked before any thread starts, so a bad device leaves nothing running.
        """
        loops = [loop for loop in map(self._build_loop, self._config.devices) if loop is not None]
        for loop in loops:
            t = threading.Thread(
                target=self._run_isolated,
                args=(loop,),
                name=f"poll-{loop.device.name}",
                daemon=True,
            )
            t.start()
            self._threads.append(t)
        logger.info("Started %d device thread(s)", len(self._threads))
        return self.threads

    def wait(self, timeout: float | None = None) -> bool:
        """Block until stop() is called. Returns True if stopped within ``timeout``."""
        return self._stop.wait(timeout)

    def stop(self, timeout: float | None = None) -> None:
        """Signal every poll loop to finish its current read, close its session, and exit."""
        self._stop.set()
        for t in self._threads:
            t.join(timeout)
            if t.is_alive():
                logger.warning("Thread %s did not stop within %ss", t.name, timeout)
