"""Tests for the SQLite sink: bootstrap, append, error surfacing, and write serialization."""

import sqlite3
import threading
from pathlib import Path

import pytest

from modbus_datalogger import (
    Device,
    DeviceType,
    Sample,
    SinkError,
    SqliteSink,
    StorageUnavailableError,
    TcpEndpoint,
)


def _device(name: str) -> Device:
    return Device(name=name, type=DeviceType.MODBUS_TCP, endpoint=TcpEndpoint("127.0.0.1"))


def _rows(path: Path, table: str) -> list[tuple]:
    conn = sqlite3.connect(path)
    try:
        return conn.execute(f'SELECT timestamp, tag, description, value FROM "{table}" ORDER BY id').fetchall()
    finally:
        conn.close()


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "samples.sqlite"


def test_bootstrap_creates_table_per_device(db_path: Path) -> None:
    with SqliteSink(db_path) as sink:
        sink.bootstrap([_device("PLC_1"), _device("order")])
    conn = sqlite3.connect(db_path)
    names = {r[0] for r in conn.execute("SELECT name FROM sqlite_master WHERE type='table'")}
    cols = [r[1] for r in conn.execute('PRAGMA table_info("PLC_1")')]
    conn.close()
    assert {"PLC_1", "order"} <= names
    assert cols == ["id", "timestamp", "tag", "description", "value"]


def test_bootstrap_is_idempotent(db_path: Path) -> None:
    with SqliteSink(db_path) as sink:
        sink.bootstrap([_device("PLC_1")])
        sink.record(Sample("PLC_1", "FT-100", "Flow", 1700000000, 1.5))
        sink.bootstrap([_device("PLC_1")])
    assert _rows(db_path, "PLC_1") == [(1700000000, "FT-100", "Flow", 1.5)]


def test_record_appends_in_order(db_path: Path) -> None:
    with SqliteSink(db_path) as sink:
        sink.bootstrap([_device("PLC_1")])
        sink.record(Sample("PLC_1", "A", "first", 100, 1.0))
        sink.record(Sample("PLC_1", "B", "second", 100, 2.0))
        sink.record(Sample("PLC_1", "A", "first", 160, 3.0))
    assert _rows(db_path, "PLC_1") == [
        (100, "A", "first", 1.0),
        (100, "B", "second", 2.0),
        (160, "A", "first", 3.0),
    ]


def test_record_missing_table_raises_sink_error(db_path: Path) -> None:
    with SqliteSink(db_path) as sink:
        with pytest.raises(SinkError) as exc_info:
            sink.record(Sample("NOT_BOOTSTRAPPED", "A", "", 1, 1.0))
    assert exc_info.value.device == "NOT_BOOTSTRAPPED"
    assert exc_info.value.tag == "A"
    assert isinstance(exc_info.value.cause, sqlite3.Error)


def test_record_unsafe_device_name_raises_sink_error(db_path: Path) -> None:
    with SqliteSink(db_path) as sink:
        with pytest.raises(SinkError):
            sink.record(Sample("x; DROP TABLE y", "A", "", 1, 1.0))


def test_record_after_close_raises_sink_error(db_path: Path) -> None:
    sink = SqliteSink(db_path)
    sink.bootstrap([_device("PLC_1")])
    sink.close()
    with pytest.raises(SinkError, match="closed"):
        sink.record(Sample("PLC_1", "A", "", 1, 1.0))


def test_bootstrap_after_close_raises_storage_unavailable(db_path: Path) -> None:
    sink = SqliteSink(db_path)
    sink.close()
    with pytest.raises(StorageUnavailableError, match="closed"):
        sink.bootstrap([_device("PLC_1")])


def test_bootstrap_unsafe_device_name_raises_storage_unavailable(db_path: Path) -> None:
    with SqliteSink(db_path) as sink:
        with pytest.raises(StorageUnavailableError) as exc_info:
            sink.bootstrap([_device("x; DROP TABLE y")])
    assert isinstance(exc_info.value.cause, ValueError)


def test_open_unwritable_path_raises_storage_unavailable(tmp_path: Path) -> None:
    with pytest.raises(StorageUnavailableError):
        SqliteSink(tmp_path / "missing_dir" / "db.sqlite")


def test_concurrent_records_never_interleave(db_path: Path) -> None:
    devices = ["DEV_A", "DEV_B"]
    per_thread = 200
    with SqliteSink(db_path) as sink:
        sink.bootstrap([_device(n) for n in devices])
        barrier = threading.Barrier(len(devices))

        def writer(name: str) -> None:
            barrier.wait()
            for i in range(per_thread):
                sink.record(Sample(name, f"{name}-tag", f"{name} desc", i, float(i)))

        threads = [threading.Thread(target=writer, args=(n,)) for n in devices]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

    for name in devices:
        rows = _rows(db_path, name)
        assert len(rows) == per_thread
        for i, (ts, tag, desc, value) in enumerate(rows):
            assert (ts, tag, desc, value) == (i, f"{name}-tag", f"{name} desc", float(i))
