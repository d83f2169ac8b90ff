"""Shared test helpers: a threading.Event stand-in that never blocks."""

from collections.abc import Callable

import pytest


class RecordingEvent:
    """Stand-in for threading.Event whose wait() returns immediately and records the delay."""

    def __init__(self, stop_after: int | None = None) -> None:
        self.waits: list[float | None] = []
        self._stop_after = stop_after
        self._set = False

    def is_set(self) -> bool:
        return self._set

    def set(self) -> None:
        self._set = True

    def wait(self, timeout: float | None = None) -> bool:
        self.waits.append(timeout)
        if self._stop_after is not None and len(self.waits) >= self._stop_after:
            self._set = True
        return self._set


@pytest.fixture
def recording_event() -> Callable[..., RecordingEvent]:
    """Factory fixture: ``recording_event(stop_after=N)`` sets itself on the Nth wait()."""
    return RecordingEvent
