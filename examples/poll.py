#!/usr/bin/env python3
"""Example: log two float tags from one PLC to SQLite without a config file; Ctrl+C to stop."""

import logging
import sys

from modbus_datalogger import (
    Device,
    DeviceSupervisor,
    DeviceType,
    LoggerConfig,
    SqliteSink,
    Tag,
    TcpEndpoint,
    ValueKind,
)
from modbus_datalogger.errors import StorageUnavailableError


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s: %(message)s")

    device = Device(
        name="PLC_1",
        type=DeviceType.MODBUS_TCP,
        endpoint=TcpEndpoint(host="192.168.1.10", port=502),  # change to your PLC IP
        tags=(
            Tag("FT-100", 100, ValueKind.REAL_HOLDING, "Inlet flow"),
            Tag("PT-102", 102, ValueKind.REAL_HOLDING, "Inlet pressure"),
        ),
    )
    config = LoggerConfig(poll_period=10, database_path="./example.sqlite", devices=(device,))

    try:
        with SqliteSink(config.database_path) as sink:
            sink.bootstrap(config.devices)
            supervisor = DeviceSupervisor(config, sink)
            supervisor.start()
            print(f"Logging {device.name} every {config.poll_period}s to {config.database_path} (Ctrl+C to stop)...")
            try:
                while not supervisor.wait(1.0):
                    pass
            except KeyboardInterrupt:
                print("\nStopped.")
            finally:
                supervisor.stop(timeout=10)
    except StorageUnavailableError as e:
        print(f"Database error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
