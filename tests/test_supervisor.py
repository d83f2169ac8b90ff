"""Tests for the device supervisor: per-device threads, crash isolation, clean stop."""

import logging
import threading
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from modbus_datalogger import (
    Device,
    DeviceSupervisor,
    DeviceType,
    LoggerConfig,
    SerialEndpoint,
    SqliteSink,
    Tag,
    TcpEndpoint,
    ValueKind,
)


def _tcp(name: str) -> Device:
    return Device(
        name=name,
        type=DeviceType.MODBUS_TCP,
        endpoint=TcpEndpoint("127.0.0.1", 5020),
        tags=(Tag("T1", 0, ValueKind.INT_HOLDING),),
    )


def _config(*devices: Device) -> LoggerConfig:
    return LoggerConfig(
        poll_period=60,
        database_path=":memory:",
        devices=devices,
        connect_timeout=1.0,
        reconnect_delay=1.0,
    )


def test_start_spawns_one_thread_per_tcp_device(caplog: pytest.LogCaptureFixture) -> None:
    config = _config(
        _tcp("PLC_1"),
        _tcp("PLC_2"),
        Device("RTU_1", DeviceType.MODBUS_RTU, SerialEndpoint("/dev/ttyUSB0", 9600)),
        Device("OPC", DeviceType.OPC_UA),
    )
    with patch("modbus_datalogger.supervisor.PollLoop") as loop_cls:
        loop_cls.return_value.run.return_value = None
        supervisor = DeviceSupervisor(config, MagicMock())
        with caplog.at_level(logging.WARNING):
            threads = supervisor.start()
        supervisor.stop(timeout=5)

    assert sorted(t.name for t in threads) == ["poll-PLC_1", "poll-PLC_2"]
    assert all(t.daemon for t in threads)
    assert [c.args[0].name for c in loop_cls.call_args_list] == ["PLC_1", "PLC_2"]
    assert "RTU_1" in caplog.text and "not supported" in caplog.text


def test_loops_share_sink_and_poll_period() -> None:
    sink = MagicMock()
    with patch("modbus_datalogger.supervisor.PollLoop") as loop_cls:
        supervisor = DeviceSupervisor(_config(_tcp("A"), _tcp("B")), sink)
        supervisor.start()
        supervisor.stop(timeout=5)
    for c in loop_cls.call_args_list:
        assert c.args[2] is sink
        assert c.args[3] == 60


def test_bad_device_aborts_start_before_any_thread_runs() -> None:
    broken = Device("BROKEN", DeviceType.MODBUS_TCP, endpoint=None)
    with patch("modbus_datalogger.supervisor.PollLoop") as loop_cls, patch(
        "modbus_datalogger.supervisor.threading.Thread"
    ) as thread_cls:
        supervisor = DeviceSupervisor(_config(_tcp("PLC_1"), broken), MagicMock())
        with pytest.raises(ValueError, match="BROKEN"):
            supervisor.start()

    thread_cls.assert_not_called()
    loop_cls.return_value.run.assert_not_called()
    assert supervisor.threads == []


def test_crash_in_one_device_does_not_stop_others(caplog: pytest.LogCaptureFixture) -> None:
    good_started = threading.Event()
    good_finished = threading.Event()

    def make_loop(device, connection, sink, poll_period, stop):
        loop = MagicMock()
        loop.device = device
        if device.name == "BAD":
            loop.run.side_effect = RuntimeError("boom")
        else:

            def run() -> None:
                good_started.set()
                stop.wait(10)
                good_finished.set()

            loop.run.side_effect = run
        return loop

    with patch("modbus_datalogger.supervisor.PollLoop", side_effect=make_loop):
        supervisor = DeviceSupervisor(_config(_tcp("BAD"), _tcp("GOOD")), MagicMock())
        with caplog.at_level(logging.ERROR):
            threads = supervisor.start()
            by_name = {t.name: t for t in threads}
            by_name["poll-BAD"].join(5)
            assert good_started.wait(5)
            assert not by_name["poll-BAD"].is_alive()
            assert by_name["poll-GOOD"].is_alive()
            supervisor.stop(timeout=5)

    assert good_finished.is_set()
    assert "Poll loop for BAD crashed" in caplog.text


def test_stop_wakes_sleeping_loops_and_closes_sessions(tmp_path: Path) -> None:
    read_done = threading.Event()

    def read_holding_registers(address, count, device_id):
        read_done.set()
        return MagicMock(isError=lambda: False, registers=[7])

    client = MagicMock()
    client.connect.return_value = True
    client.read_holding_registers.side_effect = read_holding_registers
    device = _tcp("PLC_1")
    config = LoggerConfig(poll_period=3600, database_path=str(tmp_path / "db.sqlite"), devices=(device,))

    with SqliteSink(config.database_path) as sink, patch(
        "modbus_datalogger.connection.ModbusTcpClient", return_value=client
    ):
        sink.bootstrap(config.devices)
        supervisor = DeviceSupervisor(config, sink)
        (thread,) = supervisor.start()
        assert read_done.wait(5)
        assert not supervisor.wait(0)
        supervisor.stop(timeout=5)
        assert supervisor.wait(0)

    assert not thread.is_alive()
    client.read_holding_registers.assert_called_once_with(0, count=1, device_id=1)
    client.close.assert_called_once()
