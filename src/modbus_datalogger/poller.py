"""Per-device poll loop: acquire session, read every tag once per cycle, record, sleep."""

import logging
import threading
import time
from collections.abc import Callable

from .codec import decode
from .connection import ConnectionManager
from .errors import ModbusReadError, SinkError
from .sink import SqliteSink
from .types import Device, Sample

logger = logging.getLogger(__name__)


class PollLoop:
    """
    Polls one device until ``stop`` is set.

    Each cycle shares one timestamp across all tags. A failed read loses that
    tag's sample, triggers exactly one reconnect attempt, and the cycle moves
    on to the next tag. Sink failures are logged and the cycle continues.
    """

    def __init__(
        self,
        device: Device,
        connection: ConnectionManager,
        sink: SqliteSink,
        poll_period: float,
        stop: threading.Event | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._device = device
        self._connection = connection
        self._sink = sink
        self._poll_period = poll_period
        self._stop = stop if stop is not None else threading.Event()
        self._clock = clock

    @property
    def device(self) -> Device:
        return self._device

    def run_cycle(self) -> int:
        """Read every tag once in configured order. Returns the number of samples recorded."""
        timestamp = int(self._clock())
        recorded = 0
        for tag in self._device.tags:
            try:
                registers = self._connection.read(tag)
            except ModbusReadError as e:
                logger.warning(
                    "Failed to read tag <%s> with address <%s> on %s: %s",
                    tag.name,
                    tag.address,
                    self._device.name,
                    e,
                )
                self._connection.reconnect()
                continue

            sample = Sample(
                device=self._device.name,
                tag=tag.name,
                description=tag.description,
                timestamp=timestamp,
                value=decode(tag.value, registers),
            )
            try:
                self._sink.record(sample)
            except SinkError as e:
                logger.error("Failed to record tag <%s> on %s: %s", tag.name, self._device.name, e)
                continue
            recorded += 1
        return recorded

    def run(self) -> None:
        """Loop until stopped. The session is closed on exit."""
        logger.info("Polling %s every %ss (%d tags)", self._device.name, self._poll_period, len(self._device.tags))
        try:
            while not self._stop.is_set():
                if not self._connection.connected:
                    if self._connection.connect_until_ready(self._stop) is None:
                        break
                self.run_cycle()
                if self._stop.wait(self._poll_period):
                    break
        finally:
            self._connection.close()
            logger.info("Stopped polling %s", self._device.name)
