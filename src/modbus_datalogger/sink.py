"""SQLite sample sink: one shared connection, one lock, one table per device."""

import logging
import sqlite3
import threading
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from .errors import SinkError, StorageUnavailableError
from .names import quote_identifier
from .types import Device, Sample

logger = logging.getLogger(__name__)


class SqliteSink:
    """
    Append-only store for samples, shared by every device poll loop.

    All statements run under a single lock, held only for the duration of one
    write, so at most one write is in flight across the whole process.
    """

    def __init__(self, database_path: str | Path) -> None:
        self._path = str(database_path)
        self._lock = threading.Lock()
        try:
            # Shared across device threads; self._lock serializes access
            self._conn: sqlite3.Connection | None = sqlite3.connect(self._path, check_same_thread=False)
        except sqlite3.Error as e:
            raise StorageUnavailableError(f"Could not open database {self._path!r}: {e}", cause=e) from e

    @property
    def path(self) -> str:
        return self._path

    def _connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise SinkError("Sink is closed")
        return self._conn

    def bootstrap(self, devices: Iterable[Device]) -> None:
        """Create one table per device if it does not already exist. Idempotent."""
        with self._lock:
            if self._conn is None:
                raise StorageUnavailableError(f"Cannot create tables in {self._path!r}: sink is closed")
            conn = self._conn
            try:
                for device in devices:
                    conn.execute(
                        f"""
                        CREATE TABLE IF NOT EXISTS {quote_identifier(device.name)} (
                            id INTEGER PRIMARY KEY,
                            timestamp INTEGER,
                            tag TEXT NOT NULL,
                            description TEXT NOT NULL,
                            value REAL
                        )
                        """
                    )
                conn.commit()
            except (sqlite3.Error, ValueError) as e:
                raise StorageUnavailableError(f"Could not create tables in {self._path!r}: {e}", cause=e) from e
        logger.debug("Sink bootstrapped at %s", self._path)

    def record(self, sample: Sample) -> None:
        """Append one sample to its device's table. Raises SinkError on failure."""
        try:
            sql = (
                f"INSERT INTO {quote_identifier(sample.device)} "
                "(id, timestamp, tag, description, value) VALUES (NULL, ?, ?, ?, ?)"
            )
        except ValueError as e:
            raise SinkError(str(e), device=sample.device, tag=sample.tag, cause=e) from e
        with self._lock:
            try:
                conn = self._connection()
                conn.execute(sql, (sample.timestamp, sample.tag, sample.description, sample.value))
                conn.commit()
            except sqlite3.Error as e:
                raise SinkError(
                    f"Failed to record {sample.device}.{sample.tag}: {e}",
                    device=sample.device,
                    tag=sample.tag,
                    cause=e,
                ) from e

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                try:
                    self._conn.close()
                except sqlite3.Error as e:
                    logger.warning("Error closing database: %s", e)
                self._conn = None

    def __enter__(self) -> "SqliteSink":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()
